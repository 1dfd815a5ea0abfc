"""
Lead assignment engine.

- find_best_counselor: score ACTIVE counselors for a lead, never raises
- assign_lead: apply an AssignmentOutcome (lead + load in one transaction)
- reassign_lead: manual move between counselors (or unassign)

Load counters are changed with SQL-side arithmetic so concurrent requests
never write back stale values.
"""

import logging
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from admissions.core.structured_logging import build_log_context
from admissions.db.models import CounselorProfile, Lead
from admissions.services import counselor_directory
from admissions.services.assignment_scoring import (
    Assigned,
    AssignmentOutcome,
    Unassigned,
    format_auto_reason,
    rank_candidates,
    score_counselor,
)

logger = logging.getLogger(__name__)


class AssignmentServiceError(Exception):
    """Base exception for assignment service errors."""

    pass


class CounselorNotFoundError(AssignmentServiceError):
    """Counselor not found."""

    pass


class LeadNotFoundError(AssignmentServiceError):
    """Lead not found."""

    pass


class CapacityExhaustedError(AssignmentServiceError):
    """Counselor is at capacity; the load increment was refused."""

    pass


# =============================================================================
# Selection
# =============================================================================


def find_best_counselor(db: Session, lead: Lead) -> AssignmentOutcome:
    """
    Pick the best counselor for a lead.

    Falls back to the lowest-load ACTIVE counselor when the course is
    unknown, nobody is ACTIVE, or every score is excluded. Any error
    while scoring also ends in the fallback, so callers always get an
    outcome with a human-readable reason.
    """
    try:
        course = counselor_directory.get_course(db, lead.course_id)
        if not course:
            return get_default_assignment(db, "Course not found")

        counselors = counselor_directory.list_active_counselors(db)
        if not counselors:
            return get_default_assignment(db, "No active counselors available")

        ranked = rank_candidates(
            score_counselor(counselor, course.name, lead.preferred_language)
            for counselor in counselors
        )
        if not ranked:
            return get_default_assignment(db, "No counselors meet the criteria")

        best = ranked[0]
        return Assigned(
            counselor=best.counselor,
            auto_assigned=True,
            assignment_reason=format_auto_reason(best),
            score=best.score,
        )
    except Exception as exc:
        logger.exception(
            "Assignment scoring failed, using default assignment",
            extra=build_log_context(lead_id=lead.id),
        )
        return get_default_assignment(db, f"Error in assignment: {exc}")


def get_default_assignment(db: Session, cause: str) -> AssignmentOutcome:
    """Lowest-load ACTIVE counselor with spare capacity, or Unassigned when there is none."""
    try:
        counselor = counselor_directory.get_lowest_load_active_counselor(db, with_capacity=True)
    except Exception as exc:
        logger.exception("Default assignment lookup failed")
        return Unassigned(assignment_reason=f"Error: {exc}")

    if counselor:
        return Assigned(
            counselor=counselor,
            auto_assigned=False,
            assignment_reason=f"Default assignment: {cause}",
            score=0,
        )
    return Unassigned(assignment_reason=f"No counselors available: {cause}")


# =============================================================================
# Load accounting
# =============================================================================


def increment_load(db: Session, counselor_id: UUID, *, enforce_capacity: bool = True) -> bool:
    """
    Add one lead to a counselor's load.

    With enforce_capacity the UPDATE only matches while
    current_load < max_capacity; returns False when no row matched.
    """
    stmt = (
        update(CounselorProfile)
        .where(CounselorProfile.id == counselor_id)
        .values(current_load=CounselorProfile.current_load + 1)
    )
    if enforce_capacity:
        stmt = stmt.where(CounselorProfile.current_load < CounselorProfile.max_capacity)
    result = db.execute(stmt.execution_options(synchronize_session=False))
    _expire_counselor(db, counselor_id)
    return result.rowcount == 1


def decrement_load(db: Session, counselor_id: UUID) -> bool:
    """
    Remove one lead from a counselor's load, never going below zero.

    Returns False (and logs a warning) when the stored load was already 0,
    which means the counter drifted from the real assignments.
    """
    result = db.execute(
        update(CounselorProfile)
        .where(CounselorProfile.id == counselor_id, CounselorProfile.current_load > 0)
        .values(current_load=CounselorProfile.current_load - 1)
        .execution_options(synchronize_session=False)
    )
    _expire_counselor(db, counselor_id)
    if result.rowcount != 1:
        logger.warning(
            "Counselor load already at zero, skipping decrement",
            extra=build_log_context(counselor_id=counselor_id),
        )
        return False
    return True


def _expire_counselor(db: Session, counselor_id: UUID) -> None:
    counselor = db.identity_map.get(db.identity_key(CounselorProfile, counselor_id))
    if counselor is not None:
        db.expire(counselor, ["current_load"])


def _lock_lead(db: Session, lead_id: UUID) -> Lead:
    lead = db.execute(
        select(Lead).where(Lead.id == lead_id).with_for_update()
    ).scalar_one_or_none()
    if not lead:
        raise LeadNotFoundError(f"Lead {lead_id} not found")
    return lead


# =============================================================================
# Assign / Reassign (atomic)
# =============================================================================


def assign_lead(db: Session, lead: Lead, outcome: AssignmentOutcome) -> Lead:
    """
    Apply an assignment outcome to a lead.

    Unassigned outcomes only record the reason. Assigned outcomes set the
    lead fields and increment the counselor load inside one savepoint;
    if the counselor filled up in the meantime CapacityExhaustedError is
    raised and neither write survives.
    """
    if outcome.counselor is None:
        with db.begin_nested():
            lead = _lock_lead(db, lead.id)
            lead.assigned_counselor_id = None
            lead.auto_assigned = False
            lead.assignment_reason = outcome.assignment_reason
        logger.info(
            "Lead left unassigned: %s",
            outcome.assignment_reason,
            extra=build_log_context(lead_id=lead.id),
        )
        return lead

    counselor_id = outcome.counselor.id
    with db.begin_nested():
        lead = _lock_lead(db, lead.id)
        if not increment_load(db, counselor_id):
            raise CapacityExhaustedError(
                f"Counselor {counselor_id} is at capacity"
            )
        lead.assigned_counselor_id = counselor_id
        lead.auto_assigned = outcome.auto_assigned
        lead.assignment_reason = outcome.assignment_reason

    logger.info(
        "Lead assigned (auto=%s, score=%s)",
        outcome.auto_assigned,
        outcome.score,
        extra=build_log_context(lead_id=lead.id, counselor_id=counselor_id),
    )
    return lead


def reassign_lead(
    db: Session,
    lead: Lead,
    new_counselor_id: UUID | None,
    reason: str,
) -> Lead:
    """
    Manually move a lead to another counselor, or unassign it.

    The previous assignee's load is decremented and the new one's
    incremented in the same savepoint. Manual moves are not capacity
    checked: an admin may deliberately overload a counselor.

    Raises:
        CounselorNotFoundError: new_counselor_id does not exist
        LeadNotFoundError: lead was deleted concurrently
    """
    with db.begin_nested():
        lead = _lock_lead(db, lead.id)
        old_counselor_id = lead.assigned_counselor_id

        if old_counselor_id:
            decrement_load(db, old_counselor_id)

        if new_counselor_id:
            if counselor_directory.get_counselor(db, new_counselor_id) is None:
                raise CounselorNotFoundError(f"Counselor {new_counselor_id} not found")
            increment_load(db, new_counselor_id, enforce_capacity=False)
            lead.assigned_counselor_id = new_counselor_id
            lead.auto_assigned = False
            lead.assignment_reason = f"Manually reassigned: {reason}"
        else:
            lead.assigned_counselor_id = None
            lead.auto_assigned = False
            lead.assignment_reason = f"Unassigned: {reason}"

    logger.info(
        "Lead reassigned from %s to %s",
        old_counselor_id,
        new_counselor_id,
        extra=build_log_context(lead_id=lead.id),
    )
    return lead
