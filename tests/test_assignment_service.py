"""Tests for lead assignment: selection, load accounting and reassignment."""

import uuid

import pytest

from admissions.db.enums import Availability
from admissions.services import assignment_service
from admissions.services.assignment_scoring import Assigned, Unassigned


def _load(db, counselor) -> int:
    db.refresh(counselor)
    return counselor.current_load


# =============================================================================
# find_best_counselor
# =============================================================================

def test_find_best_counselor_picks_highest_score(db, make_counselor, make_lead):
    make_counselor("Generalist", languages=["Hindi"], current_load=30)
    expert = make_counselor(
        "Expert", expertise=["Computer Science"], languages=["English"], current_load=5
    )
    lead = make_lead()

    outcome = assignment_service.find_best_counselor(db, lead)

    assert isinstance(outcome, Assigned)
    assert outcome.counselor.id == expert.id
    assert outcome.auto_assigned is True
    assert outcome.score == 90
    assert outcome.assignment_reason == (
        "Auto-assigned: Expertise match, Language match, Low workload (Score: 90)"
    )


def test_find_best_counselor_unknown_course_falls_back_to_lowest_load(
    db, make_counselor, make_lead
):
    make_counselor("Busy", current_load=10)
    light = make_counselor("Light", current_load=2)
    lead = make_lead(course_id=uuid.uuid4())

    outcome = assignment_service.find_best_counselor(db, lead)

    assert outcome.counselor.id == light.id
    assert outcome.auto_assigned is False
    assert outcome.assignment_reason == "Default assignment: Course not found"


def test_find_best_counselor_without_active_counselors_is_unassigned(
    db, make_counselor, make_lead
):
    make_counselor("Away", availability=Availability.INACTIVE)
    lead = make_lead()

    outcome = assignment_service.find_best_counselor(db, lead)

    assert isinstance(outcome, Unassigned)
    assert outcome.counselor is None
    assert outcome.assignment_reason == (
        "No counselors available: No active counselors available"
    )


def test_find_best_counselor_when_everyone_is_full(db, make_counselor, make_lead):
    make_counselor("Full", current_load=5, max_capacity=5)
    lead = make_lead()

    outcome = assignment_service.find_best_counselor(db, lead)

    assert isinstance(outcome, Unassigned)
    assert outcome.assignment_reason == "No counselors available: No counselors meet the criteria"


def test_default_assignment_skips_full_counselors(db, make_counselor):
    make_counselor("Full", current_load=5, max_capacity=5)
    roomy = make_counselor("Roomy", current_load=8, max_capacity=50)

    outcome = assignment_service.get_default_assignment(db, "Course not found")

    assert outcome.counselor.id == roomy.id
    assert outcome.assignment_reason == "Default assignment: Course not found"


def test_find_best_counselor_scoring_error_uses_default(
    db, make_counselor, make_lead, monkeypatch, caplog
):
    counselor = make_counselor("Only")
    lead = make_lead()

    def boom(*args, **kwargs):
        raise RuntimeError("scoring exploded")

    monkeypatch.setattr(assignment_service, "score_counselor", boom)

    outcome = assignment_service.find_best_counselor(db, lead)

    assert outcome.counselor.id == counselor.id
    assert outcome.auto_assigned is False
    assert outcome.assignment_reason == "Default assignment: Error in assignment: scoring exploded"
    assert "Assignment scoring failed" in caplog.text


def test_default_assignment_lookup_error_is_unassigned(db, monkeypatch):
    def boom(db, **kwargs):
        raise RuntimeError("db down")

    monkeypatch.setattr(
        assignment_service.counselor_directory, "get_lowest_load_active_counselor", boom
    )

    outcome = assignment_service.get_default_assignment(db, "Course not found")

    assert isinstance(outcome, Unassigned)
    assert outcome.assignment_reason == "Error: db down"


# =============================================================================
# assign_lead
# =============================================================================

def test_assign_lead_sets_fields_and_increments_load(db, make_counselor, make_lead):
    counselor = make_counselor(current_load=3)
    lead = make_lead()
    outcome = Assigned(
        counselor=counselor, auto_assigned=True, assignment_reason="Auto-assigned: x", score=50
    )

    assignment_service.assign_lead(db, lead, outcome)

    assert lead.assigned_counselor_id == counselor.id
    assert lead.auto_assigned is True
    assert lead.assignment_reason == "Auto-assigned: x"
    assert _load(db, counselor) == 4


def test_assign_lead_unassigned_records_reason_only(db, make_counselor, make_lead):
    counselor = make_counselor(current_load=3)
    lead = make_lead()

    assignment_service.assign_lead(db, lead, Unassigned(assignment_reason="No counselors"))

    assert lead.assigned_counselor_id is None
    assert lead.auto_assigned is False
    assert lead.assignment_reason == "No counselors"
    assert _load(db, counselor) == 3


def test_assign_lead_at_capacity_raises_and_writes_nothing(db, make_counselor, make_lead):
    counselor = make_counselor(current_load=2, max_capacity=2)
    lead = make_lead()
    outcome = Assigned(counselor=counselor, auto_assigned=False, assignment_reason="Default")

    with pytest.raises(assignment_service.CapacityExhaustedError):
        assignment_service.assign_lead(db, lead, outcome)

    db.refresh(lead)
    assert lead.assigned_counselor_id is None
    assert _load(db, counselor) == 2


def test_assign_lead_missing_lead_raises(db, make_counselor, make_lead):
    counselor = make_counselor()
    lead = make_lead()
    db.delete(lead)
    db.flush()

    with pytest.raises(assignment_service.LeadNotFoundError):
        assignment_service.assign_lead(
            db, lead, Assigned(counselor=counselor, auto_assigned=True, assignment_reason="x")
        )
    assert _load(db, counselor) == 0


# =============================================================================
# Load accounting
# =============================================================================

def test_decrement_load_never_goes_negative(db, make_counselor, caplog):
    counselor = make_counselor(current_load=0)

    assert assignment_service.decrement_load(db, counselor.id) is False
    assert _load(db, counselor) == 0
    assert "already at zero" in caplog.text


def test_increment_without_capacity_check_can_exceed_max(db, make_counselor):
    counselor = make_counselor(current_load=1, max_capacity=1)

    assert assignment_service.increment_load(db, counselor.id) is False
    assert assignment_service.increment_load(db, counselor.id, enforce_capacity=False) is True
    assert _load(db, counselor) == 2


# =============================================================================
# reassign_lead
# =============================================================================

def test_reassign_moves_load_between_counselors(db, make_counselor, make_lead):
    original = make_counselor("A", current_load=5)
    target = make_counselor("B", current_load=1)
    lead = make_lead(counselor=original)

    assignment_service.reassign_lead(db, lead, target.id, "vacation cover")

    assert lead.assigned_counselor_id == target.id
    assert lead.auto_assigned is False
    assert lead.assignment_reason == "Manually reassigned: vacation cover"
    assert _load(db, original) == 4
    assert _load(db, target) == 2


def test_reassign_round_trip_restores_loads(db, make_counselor, make_lead):
    counselor_a = make_counselor("A", current_load=5)
    counselor_b = make_counselor("B", current_load=3)
    lead = make_lead(counselor=counselor_a)

    assignment_service.reassign_lead(db, lead, counselor_b.id, "test")
    assignment_service.reassign_lead(db, lead, counselor_a.id, "test2")

    assert lead.assigned_counselor_id == counselor_a.id
    assert _load(db, counselor_a) == 5
    assert _load(db, counselor_b) == 3


def test_reassign_to_none_unassigns(db, make_counselor, make_lead):
    counselor = make_counselor(current_load=2)
    lead = make_lead(counselor=counselor)

    assignment_service.reassign_lead(db, lead, None, "duplicate enquiry")

    assert lead.assigned_counselor_id is None
    assert lead.assignment_reason == "Unassigned: duplicate enquiry"
    assert _load(db, counselor) == 1


def test_reassign_ignores_capacity(db, make_counselor, make_lead):
    full = make_counselor("Full", current_load=1, max_capacity=1)
    lead = make_lead()

    assignment_service.reassign_lead(db, lead, full.id, "admin override")

    assert lead.assigned_counselor_id == full.id
    assert _load(db, full) == 2


def test_reassign_unknown_counselor_rolls_back(db, make_counselor, make_lead):
    counselor = make_counselor(current_load=4)
    lead = make_lead(counselor=counselor)

    with pytest.raises(assignment_service.CounselorNotFoundError):
        assignment_service.reassign_lead(db, lead, uuid.uuid4(), "typo")

    db.refresh(lead)
    assert lead.assigned_counselor_id == counselor.id
    assert _load(db, counselor) == 4


def test_reassign_with_zero_load_clamps(db, make_counselor, make_lead):
    drifted = make_counselor("Drifted", current_load=0)
    target = make_counselor("Target", current_load=0)
    lead = make_lead(counselor=drifted)

    assignment_service.reassign_lead(db, lead, target.id, "cleanup")

    assert _load(db, drifted) == 0
    assert _load(db, target) == 1
