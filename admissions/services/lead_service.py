"""Lead service - public intake and automatic counselor assignment."""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from admissions.core.structured_logging import build_log_context
from admissions.db.enums import DEFAULT_LEAD_STATUS
from admissions.db.models import Lead
from admissions.schemas.lead import LeadCreate
from admissions.services import assignment_service
from admissions.services.assignment_scoring import Unassigned
from admissions.utils.datetime_utils import attendance_day, ensure_utc, utc_now
from admissions.utils.normalization import (
    normalize_email,
    normalize_language,
    normalize_name,
    normalize_phone,
)

logger = logging.getLogger(__name__)


class LeadServiceError(Exception):
    """Base exception for lead service errors."""

    pass


class LeadNotFoundError(LeadServiceError):
    """Lead not found."""

    pass


def generate_lead_number(db: Session, now: datetime) -> str:
    """
    Next lead number for the day: LEAD-YYYYMMDD-NNNN.

    The sequence restarts every calendar day and numbers are never reused.
    """
    prefix = f"LEAD-{attendance_day(now):%Y%m%d}-"
    numbers = db.execute(
        select(Lead.lead_number).where(Lead.lead_number.startswith(prefix))
    ).scalars()

    # Compare numerically: "-10000" sorts before "-9999" as text
    highest = 0
    for number in numbers:
        suffix = number[len(prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))

    return f"{prefix}{highest + 1:04d}"


def _is_lead_number_conflict(error: IntegrityError) -> bool:
    message = str(error.orig) if error.orig else str(error)
    return "lead_number" in message


def create_lead(db: Session, data: LeadCreate, *, now: datetime | None = None) -> Lead:
    """
    Persist a new enquiry and auto-assign it.

    The lead is always saved: when the chosen counselor fills up before
    the load increment lands, the lead stays unassigned with a reason
    that management can act on.

    Raises:
        ValueError: parent_mobile is not a plausible phone number
    """
    now = ensure_utc(now) or utc_now()
    parent_mobile = normalize_phone(data.parent_mobile)

    lead = None
    for attempt in range(3):
        lead = Lead(
            lead_number=generate_lead_number(db, now),
            student_name=normalize_name(data.student_name),
            parent_name=normalize_name(data.parent_name),
            parent_email=normalize_email(data.parent_email),
            parent_mobile=parent_mobile,
            preferred_language=normalize_language(data.preferred_language),
            course_id=data.course_id,
            status=DEFAULT_LEAD_STATUS.value,
            notes=data.notes,
            auto_assigned=False,
            assignment_reason="",
            submitted_at=now,
        )
        try:
            with db.begin_nested():
                db.add(lead)
                db.flush()
            break
        except IntegrityError as exc:
            if _is_lead_number_conflict(exc) and attempt < 2:
                continue
            raise

    outcome = assignment_service.find_best_counselor(db, lead)
    try:
        assignment_service.assign_lead(db, lead, outcome)
    except assignment_service.CapacityExhaustedError:
        logger.warning(
            "Counselor filled up during assignment, lead left unassigned",
            extra=build_log_context(lead_id=lead.id, counselor_id=outcome.counselor.id),
        )
        reason = f"Assignment failed: counselor reached capacity ({outcome.assignment_reason})"
        assignment_service.assign_lead(db, lead, Unassigned(assignment_reason=reason))

    logger.info(
        "Lead created",
        extra=build_log_context(lead_id=lead.id, counselor_id=lead.assigned_counselor_id),
    )
    return lead


def get_lead(db: Session, lead_id: UUID) -> Lead | None:
    return db.execute(
        select(Lead)
        .options(selectinload(Lead.course), selectinload(Lead.assigned_counselor))
        .where(Lead.id == lead_id)
    ).scalar_one_or_none()
