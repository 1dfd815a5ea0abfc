"""Tests for lead intake: numbering, normalization and auto-assignment."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from admissions.core.deps import CSRF_HEADER
from admissions.db.enums import Availability, LeadStatus, Role
from admissions.db.models import Lead
from admissions.schemas.lead import LeadCreate
from admissions.services import assignment_service, lead_service

T0 = datetime(2026, 3, 10, 10, 0, tzinfo=timezone.utc)


def _enquiry(course_id, **overrides) -> LeadCreate:
    data = {
        "student_name": "  Riya   Sharma ",
        "parent_name": "Anil  Sharma",
        "parent_email": "Anil.Sharma@Gmail.COM",
        "parent_mobile": "+91 98765-43210",
        "preferred_language": "hindi",
        "course_id": course_id,
    }
    data.update(overrides)
    return LeadCreate(**data)


# =============================================================================
# Service
# =============================================================================

def test_create_lead_normalizes_and_auto_assigns(db, course, make_counselor):
    expert = make_counselor(
        "Expert", expertise=["Computer Science"], languages=["Hindi", "English"]
    )

    lead = lead_service.create_lead(db, _enquiry(course.id), now=T0)

    assert lead.lead_number == "LEAD-20260310-0001"
    assert lead.student_name == "Riya Sharma"
    assert lead.parent_name == "Anil Sharma"
    assert lead.parent_email == "anil.sharma@gmail.com"
    assert lead.parent_mobile == "+919876543210"
    assert lead.preferred_language == "Hindi"
    assert lead.status == LeadStatus.NEW.value
    assert lead.assigned_counselor_id == expert.id
    assert lead.auto_assigned is True
    assert lead.assignment_reason.endswith("(Score: 100)")
    db.refresh(expert)
    assert expert.current_load == 1


def test_lead_numbers_are_sequential_per_day(db, course, make_counselor):
    make_counselor()

    first = lead_service.create_lead(db, _enquiry(course.id), now=T0)
    second = lead_service.create_lead(db, _enquiry(course.id), now=T0 + timedelta(hours=1))
    next_day = lead_service.create_lead(db, _enquiry(course.id), now=T0 + timedelta(days=1))

    assert first.lead_number == "LEAD-20260310-0001"
    assert second.lead_number == "LEAD-20260310-0002"
    assert next_day.lead_number == "LEAD-20260311-0001"


def test_create_lead_without_counselors_is_saved_unassigned(db, course, make_counselor):
    make_counselor("Inactive", availability=Availability.INACTIVE)

    lead = lead_service.create_lead(db, _enquiry(course.id), now=T0)

    assert lead.id is not None
    assert lead.assigned_counselor_id is None
    assert lead.auto_assigned is False
    assert lead.assignment_reason == "No counselors available: No active counselors available"


def test_create_lead_capacity_race_leaves_lead_unassigned(
    db, course, make_counselor, monkeypatch
):
    counselor = make_counselor(current_load=1)
    monkeypatch.setattr(assignment_service, "increment_load", lambda *args, **kwargs: False)

    lead = lead_service.create_lead(db, _enquiry(course.id), now=T0)

    assert db.get(Lead, lead.id) is not None
    assert lead.assigned_counselor_id is None
    assert lead.assignment_reason.startswith("Assignment failed: counselor reached capacity (")
    assert "Auto-assigned:" in lead.assignment_reason
    db.refresh(counselor)
    assert counselor.current_load == 1


def test_create_lead_when_only_counselor_is_full(db, course, make_counselor):
    full = make_counselor(
        "Full", expertise=["Computer Science"], languages=["Hindi"],
        current_load=50, max_capacity=50,
    )

    lead = lead_service.create_lead(db, _enquiry(course.id), now=T0)

    assert lead.assigned_counselor_id is None
    assert lead.assignment_reason == "No counselors available: No counselors meet the criteria"
    assert str(full.id) not in lead.assignment_reason


def test_lead_numbers_compare_numerically_past_9999(db, make_lead):
    for suffix in ("9999", "10000"):
        lead = make_lead()
        lead.lead_number = f"LEAD-20260310-{suffix}"
    db.flush()

    assert lead_service.generate_lead_number(db, T0) == "LEAD-20260310-10001"


def test_create_lead_rejects_bad_phone(db, course):
    with pytest.raises(ValueError):
        lead_service.create_lead(db, _enquiry(course.id, parent_mobile="12-34"), now=T0)


def test_optional_contact_fields(db, course, make_counselor):
    make_counselor()

    lead = lead_service.create_lead(
        db,
        _enquiry(
            course.id,
            parent_name=None,
            parent_email=None,
            parent_mobile=None,
            preferred_language="  ",
        ),
        now=T0,
    )

    assert lead.parent_email is None
    assert lead.parent_mobile is None
    assert lead.preferred_language == "English"


# =============================================================================
# HTTP
# =============================================================================

async def test_public_intake(client, db, course, make_counselor):
    make_counselor(expertise=["computer science"])

    response = await client.post(
        "/leads",
        json={
            "student_name": "Kabir Rao",
            "parent_email": "kabir.parent@gmail.com",
            "course_id": str(course.id),
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["lead_number"].startswith("LEAD-")
    assert body["assigned"] is True
    assert body["message"] == "Thank you! A counselor will contact you shortly."


async def test_public_intake_without_counselors(client, course):
    response = await client.post(
        "/leads", json={"student_name": "Kabir Rao", "course_id": str(course.id)}
    )

    assert response.status_code == 201
    assert response.json()["assigned"] is False


async def test_public_intake_unknown_course(client):
    response = await client.post(
        "/leads", json={"student_name": "Kabir Rao", "course_id": str(uuid.uuid4())}
    )

    assert response.status_code == 404


async def test_public_intake_bad_phone(client, course):
    response = await client.post(
        "/leads",
        json={"student_name": "Kabir Rao", "course_id": str(course.id), "parent_mobile": "123"},
    )

    assert response.status_code == 400


async def test_public_intake_validates_payload(client, course):
    response = await client.post(
        "/leads", json={"student_name": "", "course_id": str(course.id)}
    )

    assert response.status_code == 422


async def test_get_lead_requires_auth(client, make_lead):
    lead = make_lead()

    response = await client.get(f"/leads/{lead.id}")

    assert response.status_code == 401


async def test_get_lead_forbidden_for_counselor(counselor_client, make_lead):
    lead = make_lead()

    response = await counselor_client.get(f"/leads/{lead.id}")

    assert response.status_code == 403


async def test_get_lead(management_client, make_lead):
    lead = make_lead()

    response = await management_client.get(f"/leads/{lead.id}")

    assert response.status_code == 200
    assert response.json()["lead_number"] == lead.lead_number


async def test_get_lead_not_found(admin_client):
    response = await admin_client.get(f"/leads/{uuid.uuid4()}")

    assert response.status_code == 404


async def test_admin_assigns_lead(admin_client, db, make_counselor, make_lead):
    old = make_counselor("Old", current_load=1)
    new = make_counselor("New")
    lead = make_lead(counselor=old)

    response = await admin_client.post(
        f"/leads/{lead.id}/assign", json={"counselor_id": str(new.id), "reason": "language"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["assigned_counselor_id"] == str(new.id)
    assert body["assignment_reason"] == "Manually reassigned: language"
    db.refresh(old)
    db.refresh(new)
    assert old.current_load == 0
    assert new.current_load == 1


async def test_assign_unknown_counselor(admin_client, make_lead):
    lead = make_lead()

    response = await admin_client.post(
        f"/leads/{lead.id}/assign", json={"counselor_id": str(uuid.uuid4())}
    )

    assert response.status_code == 404


async def test_assign_requires_admin(management_client, make_lead):
    lead = make_lead()

    response = await management_client.post(f"/leads/{lead.id}/assign", json={})

    assert response.status_code == 403


async def test_assign_requires_csrf_header(client_for, make_user, make_lead):
    lead = make_lead()

    async with client_for(make_user(Role.ADMIN)) as c:
        del c.headers[CSRF_HEADER]
        response = await c.post(f"/leads/{lead.id}/assign", json={})

    assert response.status_code == 403
    assert "CSRF" in response.json()["detail"]


async def test_available_counselors(admin_client, make_counselor):
    light = make_counselor("Light", languages=["Tamil"], current_load=5)
    make_counselor("Heavy", languages=["tamil"], current_load=25)
    make_counselor("Other Language", languages=["English"])

    response = await admin_client.get(
        "/leads/available-counselors",
        params={"language": "TAMIL"},
    )

    assert response.status_code == 200
    body = response.json()
    assert [row["full_name"] for row in body] == ["Light", "Heavy"]
    assert body[0]["id"] == str(light.id)
    assert body[0]["load_percentage"] == 10
    assert body[0]["presence_status"] == "offline"


async def test_available_counselors_excludes_current_assignee(management_client, make_counselor):
    current = make_counselor("Current")
    other = make_counselor("Other")

    response = await management_client.get(
        "/leads/available-counselors",
        params={"exclude_counselor_id": str(current.id)},
    )

    assert response.status_code == 200
    assert [row["id"] for row in response.json()] == [str(other.id)]


async def test_available_counselors_forbidden_for_counselor(counselor_client):
    response = await counselor_client.get("/leads/available-counselors")

    assert response.status_code == 403
