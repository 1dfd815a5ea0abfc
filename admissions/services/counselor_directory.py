"""Read-only queries over counselors and courses."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from admissions.db.enums import Availability, PresenceStatus
from admissions.db.models import CounselorProfile, Course, Lead
from admissions.utils.datetime_utils import ensure_utc


@dataclass
class AvailableCounselor:
    """Row of the manual assignment picker."""
    counselor: CounselorProfile
    presence_status: str
    load_percentage: int
    assigned_leads: int
    last_activity_at: datetime | None


def list_active_counselors(db: Session) -> list[CounselorProfile]:
    """Counselors available for auto-assignment."""
    return list(
        db.execute(
            select(CounselorProfile)
            .where(CounselorProfile.availability == Availability.ACTIVE.value)
            .order_by(CounselorProfile.created_at, CounselorProfile.id)
        ).scalars().all()
    )


def get_lowest_load_active_counselor(
    db: Session,
    *,
    with_capacity: bool = False,
) -> CounselorProfile | None:
    """ACTIVE counselor with the lowest current load (fallback assignee)."""
    query = select(CounselorProfile).where(
        CounselorProfile.availability == Availability.ACTIVE.value
    )
    if with_capacity:
        query = query.where(CounselorProfile.current_load < CounselorProfile.max_capacity)
    return db.execute(
        query.order_by(CounselorProfile.current_load.asc(), CounselorProfile.created_at).limit(1)
    ).scalar_one_or_none()


def _has_entry(values: list[str] | None, wanted: str) -> bool:
    return any(value and value.strip().lower() == wanted for value in values or [])


def list_available_counselors(
    db: Session,
    *,
    language: str | None = None,
    expertise: str | None = None,
    exclude_counselor_id: UUID | None = None,
) -> list[AvailableCounselor]:
    """
    ACTIVE counselors for manual assignment, least loaded first.

    language and expertise must equal one of the counselor's entries,
    ignoring case and surrounding whitespace.
    """
    query = (
        select(CounselorProfile)
        .options(selectinload(CounselorProfile.presence), selectinload(CounselorProfile.user))
        .where(CounselorProfile.availability == Availability.ACTIVE.value)
        .order_by(CounselorProfile.current_load.asc(), CounselorProfile.created_at)
    )
    if exclude_counselor_id is not None:
        query = query.where(CounselorProfile.id != exclude_counselor_id)
    counselors = list(db.execute(query).scalars().all())

    # JSON list columns, filtered here rather than per-dialect in SQL
    if language and language.strip():
        wanted = language.strip().lower()
        counselors = [c for c in counselors if _has_entry(c.languages, wanted)]
    if expertise and expertise.strip():
        wanted = expertise.strip().lower()
        counselors = [c for c in counselors if _has_entry(c.expertise, wanted)]
    if not counselors:
        return []

    lead_counts = dict(
        db.execute(
            select(Lead.assigned_counselor_id, func.count())
            .where(Lead.assigned_counselor_id.in_([c.id for c in counselors]))
            .group_by(Lead.assigned_counselor_id)
        ).all()
    )

    rows = []
    for counselor in counselors:
        presence = counselor.presence
        rows.append(
            AvailableCounselor(
                counselor=counselor,
                presence_status=presence.status if presence else PresenceStatus.OFFLINE.value,
                load_percentage=(
                    round(counselor.current_load / counselor.max_capacity * 100)
                    if counselor.max_capacity > 0 else 0
                ),
                assigned_leads=lead_counts.get(counselor.id, 0),
                last_activity_at=ensure_utc(presence.last_activity_at) if presence else None,
            )
        )
    return rows


def list_counselors(db: Session) -> list[CounselorProfile]:
    return list(
        db.execute(select(CounselorProfile).order_by(CounselorProfile.full_name)).scalars().all()
    )


def get_counselor(db: Session, counselor_id: UUID) -> CounselorProfile | None:
    return db.get(CounselorProfile, counselor_id)


def get_counselor_for_user(db: Session, user_id: UUID) -> CounselorProfile | None:
    return db.execute(
        select(CounselorProfile).where(CounselorProfile.user_id == user_id)
    ).scalar_one_or_none()


def get_course(db: Session, course_id: UUID | None) -> Course | None:
    if course_id is None:
        return None
    return db.get(Course, course_id)
