"""
Management dashboards and reassignment work queues.

Sessions released by presence tracking are CANCELLED with a remark
containing REASSIGNMENT_MARKER; this module surfaces them together with
unassigned leads, and moves a released session to a new counselor.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from admissions.core.constants import REASSIGNMENT_MARKER, UNASSIGNED_LEAD_LOOKBACK_DAYS
from admissions.core.structured_logging import build_log_context
from admissions.db.enums import AttendanceStatus, LeadStatus, PresenceStatus, SessionStatus
from admissions.db.models import CounselingSession, CounselorProfile, DailyAttendance, Lead
from admissions.services import assignment_service, counselor_directory, presence_service
from admissions.utils.datetime_utils import (
    attendance_day,
    ensure_utc,
    minutes_between,
    start_of_day,
    utc_now,
)

logger = logging.getLogger(__name__)


class ManagementServiceError(Exception):
    """Base exception for management service errors."""

    pass


class SessionNotFoundError(ManagementServiceError):
    """Counseling session not found."""

    pass


class CounselorNotFoundError(ManagementServiceError):
    """Counselor not found."""

    pass


# =============================================================================
# Types
# =============================================================================

@dataclass
class CounselorPresenceItem:
    counselor_id: UUID
    name: str
    last_activity_at: datetime | None
    inactive_minutes: int | None = None


@dataclass
class Dashboard:
    present: int
    absent: int
    active: int
    presence_counts: dict[str, int]
    away_counselors: list[CounselorPresenceItem]
    offline_counselors: list[CounselorPresenceItem]
    released_sessions: list[CounselingSession]


@dataclass
class CounselorPerformance:
    counselor_id: UUID
    name: str
    email: str | None
    total_leads: int
    enrolled_leads: int
    total_sessions: int
    completed_sessions: int
    presence_status: str
    active_minutes_today: int
    total_active_minutes: int
    last_login_at: datetime | None

    @property
    def conversion_rate(self) -> float:
        return _percentage(self.enrolled_leads, self.total_leads)

    @property
    def completion_rate(self) -> float:
        return _percentage(self.completed_sessions, self.total_sessions)


@dataclass
class AttendanceDay:
    day: date
    login_time: datetime | None
    logout_time: datetime | None
    active_minutes: int
    status: str


@dataclass
class CounselorAttendanceReport:
    counselor_id: UUID
    counselor_name: str
    days: list[AttendanceDay] = field(default_factory=list)
    total_active_minutes: int = 0
    present_days: int = 0
    absent_days: int = 0


# =============================================================================
# Work queues
# =============================================================================

def list_released_sessions(db: Session, *, now: datetime | None = None) -> list[CounselingSession]:
    """Cancelled sessions awaiting reassignment, from today on, earliest first."""
    now = ensure_utc(now) or utc_now()
    today_start = start_of_day(attendance_day(now))
    return list(
        db.execute(
            select(CounselingSession)
            .options(
                selectinload(CounselingSession.lead),
                selectinload(CounselingSession.counselor),
            )
            .where(
                CounselingSession.status == SessionStatus.CANCELLED.value,
                CounselingSession.remarks.contains(REASSIGNMENT_MARKER),
                CounselingSession.scheduled_date >= today_start,
            )
            .order_by(CounselingSession.scheduled_date.asc())
        ).scalars().all()
    )


def list_unassigned_leads(
    db: Session,
    *,
    now: datetime | None = None,
    limit: int = 50,
) -> list[Lead]:
    """NEW leads without a counselor submitted in the last week, newest first."""
    now = ensure_utc(now) or utc_now()
    since = start_of_day(attendance_day(now)) - timedelta(days=UNASSIGNED_LEAD_LOOKBACK_DAYS)
    return list(
        db.execute(
            select(Lead)
            .options(selectinload(Lead.course))
            .where(
                Lead.assigned_counselor_id.is_(None),
                Lead.status == LeadStatus.NEW.value,
                Lead.submitted_at >= since,
            )
            .order_by(Lead.submitted_at.desc())
            .limit(limit)
        ).scalars().all()
    )


def reassign_session(
    db: Session,
    session_id: UUID,
    new_counselor_id: UUID,
) -> CounselingSession:
    """
    Hand a (released) session to another counselor.

    The session is rescheduled under the new counselor and the lead is
    moved through assignment_service.reassign_lead so load counters stay
    in step. One savepoint covers both.
    """
    session = db.execute(
        select(CounselingSession)
        .where(CounselingSession.id == session_id)
        .with_for_update()
    ).scalar_one_or_none()
    if not session:
        raise SessionNotFoundError(f"Session {session_id} not found")

    if counselor_directory.get_counselor(db, new_counselor_id) is None:
        raise CounselorNotFoundError(f"Counselor {new_counselor_id} not found")

    old_counselor_id = session.counselor_id
    with db.begin_nested():
        session.counselor_id = new_counselor_id
        session.status = SessionStatus.SCHEDULED.value
        session.remarks = f"Reassigned from {old_counselor_id} to {new_counselor_id}"

        lead = db.get(Lead, session.lead_id)
        if lead is not None and lead.assigned_counselor_id != new_counselor_id:
            assignment_service.reassign_lead(
                db, lead, new_counselor_id, "Appointment reassigned by management"
            )

    logger.info(
        "Session reassigned",
        extra=build_log_context(session_id=session.id, counselor_id=new_counselor_id),
    )
    return session


# =============================================================================
# Dashboards
# =============================================================================

def _presence_items(presences, now: datetime, with_idle: bool) -> list[CounselorPresenceItem]:
    items = []
    for presence in presences:
        last_activity = ensure_utc(presence.last_activity_at)
        items.append(
            CounselorPresenceItem(
                counselor_id=presence.counselor_id,
                name=presence.counselor.full_name,
                last_activity_at=last_activity,
                inactive_minutes=(
                    minutes_between(last_activity, now) if with_idle and last_activity else None
                ),
            )
        )
    return items


def get_dashboard(db: Session, *, now: datetime | None = None) -> Dashboard:
    """Attendance, presence breakdown, inactivity lists and released sessions for today."""
    now = ensure_utc(now) or utc_now()
    today = attendance_day(now)

    attendance = presence_service.get_daily_attendance(db, today)
    absent = presence_service.get_absent_counselors(db, today)
    active = presence_service.get_active_counselors(db)

    away = presence_service.list_presence_by_status(db, PresenceStatus.AWAY)
    offline = presence_service.list_presence_by_status(db, PresenceStatus.OFFLINE)

    return Dashboard(
        present=len(attendance),
        absent=len(absent),
        active=len(active),
        presence_counts=presence_service.count_presence_by_status(db),
        away_counselors=_presence_items(away, now, with_idle=True),
        offline_counselors=_presence_items(offline, now, with_idle=False),
        released_sessions=list_released_sessions(db, now=now),
    )


def get_attendance_report(
    db: Session,
    start: date,
    end: date,
) -> list[CounselorAttendanceReport]:
    """Attendance between start and end (inclusive), grouped per counselor."""
    rows = db.execute(
        select(DailyAttendance, CounselorProfile.full_name)
        .join(CounselorProfile, CounselorProfile.id == DailyAttendance.counselor_id)
        .where(
            DailyAttendance.attendance_date >= start,
            DailyAttendance.attendance_date <= end,
        )
        .order_by(DailyAttendance.attendance_date.desc())
    ).all()

    reports: "OrderedDict[UUID, CounselorAttendanceReport]" = OrderedDict()
    for record, counselor_name in rows:
        report = reports.get(record.counselor_id)
        if report is None:
            report = CounselorAttendanceReport(
                counselor_id=record.counselor_id,
                counselor_name=counselor_name,
            )
            reports[record.counselor_id] = report

        report.days.append(
            AttendanceDay(
                day=record.attendance_date,
                login_time=ensure_utc(record.login_time),
                logout_time=ensure_utc(record.logout_time),
                active_minutes=record.active_minutes,
                status=record.status,
            )
        )
        report.total_active_minutes += record.active_minutes
        if record.status in (AttendanceStatus.PRESENT.value, AttendanceStatus.PARTIAL.value):
            report.present_days += 1
        else:
            report.absent_days += 1

    return list(reports.values())


# =============================================================================
# Performance
# =============================================================================

def _percentage(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def _count_by_status(db: Session, column, status_column, counselor_id: UUID) -> dict[str, int]:
    rows = db.execute(
        select(status_column, func.count())
        .where(column == counselor_id)
        .group_by(status_column)
    ).all()
    return {status: count for status, count in rows}


def get_counselor_performance(db: Session, counselor_id: UUID) -> CounselorPerformance:
    """
    Lead conversion, session completion and presence snapshot for one counselor.

    Raises:
        CounselorNotFoundError: Unknown counselor
    """
    counselor = db.execute(
        select(CounselorProfile)
        .options(selectinload(CounselorProfile.presence), selectinload(CounselorProfile.user))
        .where(CounselorProfile.id == counselor_id)
    ).scalar_one_or_none()
    if counselor is None:
        raise CounselorNotFoundError(f"Counselor {counselor_id} not found")

    leads = _count_by_status(db, Lead.assigned_counselor_id, Lead.status, counselor_id)
    sessions = _count_by_status(
        db, CounselingSession.counselor_id, CounselingSession.status, counselor_id
    )
    presence = counselor.presence

    return CounselorPerformance(
        counselor_id=counselor.id,
        name=counselor.full_name,
        email=counselor.user.email if counselor.user else None,
        total_leads=sum(leads.values()),
        enrolled_leads=leads.get(LeadStatus.ENROLLED.value, 0),
        total_sessions=sum(sessions.values()),
        completed_sessions=sessions.get(SessionStatus.COMPLETED.value, 0),
        presence_status=presence.status if presence else PresenceStatus.OFFLINE.value,
        active_minutes_today=presence.active_minutes_today if presence else 0,
        total_active_minutes=presence.total_active_minutes if presence else 0,
        last_login_at=ensure_utc(presence.last_login_at) if presence else None,
    )
