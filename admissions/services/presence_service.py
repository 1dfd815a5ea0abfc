"""
Counselor presence tracking service.

State machine per counselor (no presence row reads as OFFLINE):

    (none)/OFFLINE --record_login--> ACTIVE
    ACTIVE --update_activity--> ACTIVE   (accrues up to 5 minutes per beat)
    AWAY   --update_activity--> ACTIVE   (accrues nothing this beat)
    ACTIVE/AWAY --idle > 15 min--> AWAY
    ACTIVE/AWAY --idle > 30 min--> OFFLINE (finalize minutes, release sessions)
    OFFLINE --update_activity--> OFFLINE (no-op, only a login leaves OFFLINE)

Staleness is detected by check_inactivity, run either by the internal
sweep endpoint or lazily from get_presence_status.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import NamedTuple
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from admissions.core.constants import (
    AWAY_AFTER_MINUTES,
    HEARTBEAT_ACCRUAL_CAP_MINUTES,
    OFFLINE_AFTER_MINUTES,
    RECENTLY_OFFLINE_MINUTES,
    RELEASE_WINDOW_MINUTES,
    RELEASED_SESSION_REMARK,
)
from admissions.core.structured_logging import build_log_context
from admissions.db.enums import AttendanceStatus, LeadStatus, PresenceStatus, SessionStatus
from admissions.db.models import (
    CounselingSession, CounselorPresence, CounselorProfile, DailyAttendance, Lead
)
from admissions.services import counselor_directory
from admissions.services.assignment_service import decrement_load
from admissions.utils.datetime_utils import (
    attendance_day,
    ensure_utc,
    minutes_between,
    start_of_day,
    utc_now,
)

logger = logging.getLogger(__name__)


class PresenceServiceError(Exception):
    """Base exception for presence service errors."""

    pass


class CounselorNotFoundError(PresenceServiceError):
    """Counselor not found."""

    pass


# =============================================================================
# Types
# =============================================================================

class PresenceSnapshot(NamedTuple):
    """Read model returned by get_presence_status."""
    status: str
    last_login_at: datetime | None
    last_activity_at: datetime | None
    active_minutes_today: int
    total_active_minutes: int


class SweepResult(NamedTuple):
    counselor_id: UUID
    previous_status: str
    current_status: str
    changed: bool


@dataclass
class InactivityAlert:
    counselor_id: UUID
    counselor_name: str
    current_status: str
    inactive_minutes: int
    last_activity_at: datetime | None
    last_login_at: datetime | None
    open_leads: list[Lead] = field(default_factory=list)

    @property
    def affected_leads(self) -> int:
        return len(self.open_leads)

    @property
    def requires_reassignment(self) -> bool:
        return self.inactive_minutes > OFFLINE_AFTER_MINUTES and bool(self.open_leads)


# =============================================================================
# Helpers
# =============================================================================

def _get_presence(db: Session, counselor_id: UUID, lock: bool = False) -> CounselorPresence | None:
    query = select(CounselorPresence).where(CounselorPresence.counselor_id == counselor_id)
    if lock:
        query = query.with_for_update()
    return db.execute(query).scalar_one_or_none()


def _last_seen(presence: CounselorPresence) -> datetime | None:
    return ensure_utc(presence.last_activity_at or presence.last_login_at)


def _get_attendance(db: Session, counselor_id: UUID, day: date) -> DailyAttendance | None:
    return db.execute(
        select(DailyAttendance).where(
            DailyAttendance.counselor_id == counselor_id,
            DailyAttendance.attendance_date == day,
        )
    ).scalar_one_or_none()


def _mark_present(db: Session, presence: CounselorPresence, now: datetime) -> DailyAttendance:
    """Upsert today's attendance row as PRESENT with a fresh login time."""
    day = attendance_day(now)
    attendance = _get_attendance(db, presence.counselor_id, day)
    if attendance is None:
        try:
            with db.begin_nested():
                attendance = DailyAttendance(
                    counselor_id=presence.counselor_id,
                    presence_id=presence.id,
                    attendance_date=day,
                    login_time=now,
                    status=AttendanceStatus.PRESENT.value,
                    active_minutes=0,
                )
                db.add(attendance)
                db.flush()
            return attendance
        except IntegrityError:
            # Race condition: a concurrent login created today's row
            attendance = _get_attendance(db, presence.counselor_id, day)
            if attendance is None:
                raise

    attendance.login_time = now
    attendance.status = AttendanceStatus.PRESENT.value
    return attendance


def calculate_active_minutes(presence: CounselorPresence, now: datetime) -> int:
    """
    Minutes between the last login and the last activity, counted from
    today's midnight at the earliest.
    """
    if not presence.last_login_at or not presence.last_activity_at:
        return 0

    midnight = start_of_day(attendance_day(now))
    login_time = max(ensure_utc(presence.last_login_at), midnight)
    return max(0, minutes_between(login_time, presence.last_activity_at))


# =============================================================================
# Transitions
# =============================================================================

def record_login(
    db: Session,
    counselor_id: UUID,
    *,
    now: datetime | None = None,
) -> CounselorPresence:
    """
    Record a counselor login: presence goes ACTIVE and today's
    attendance becomes PRESENT.
    """
    now = ensure_utc(now) or utc_now()
    if counselor_directory.get_counselor(db, counselor_id) is None:
        raise CounselorNotFoundError(f"Counselor {counselor_id} not found")

    with db.begin_nested():
        presence = _get_presence(db, counselor_id, lock=True)
        if presence is None:
            presence = CounselorPresence(
                counselor_id=counselor_id,
                status=PresenceStatus.ACTIVE.value,
                last_login_at=now,
                last_activity_at=now,
                last_status_change=now,
                active_minutes_today=0,
                total_active_minutes=0,
            )
            db.add(presence)
            db.flush()
        else:
            previous_login = ensure_utc(presence.last_login_at)
            if previous_login is None or attendance_day(previous_login) != attendance_day(now):
                presence.active_minutes_today = 0
            presence.status = PresenceStatus.ACTIVE.value
            presence.last_login_at = now
            presence.last_activity_at = now
            presence.last_status_change = now

        _mark_present(db, presence, now)

    logger.info("Counselor logged in", extra=build_log_context(counselor_id=counselor_id))
    return presence


def update_activity(
    db: Session,
    counselor_id: UUID,
    *,
    now: datetime | None = None,
) -> CounselorPresence | None:
    """
    Heartbeat.

    Returns None when the counselor never logged in, and the untouched
    row when OFFLINE. Time spent AWAY, or a gap longer than one
    heartbeat interval, is not counted as active.
    """
    now = ensure_utc(now) or utc_now()
    presence = _get_presence(db, counselor_id, lock=True)
    if presence is None:
        return None
    if presence.status == PresenceStatus.OFFLINE.value:
        return presence

    previous_status = presence.status
    last_seen = _last_seen(presence) or now
    elapsed = max(0, minutes_between(last_seen, now))

    # First heartbeat of a new attendance day starts a fresh daily counter
    if attendance_day(last_seen) != attendance_day(now):
        presence.active_minutes_today = 0

    increment = 0
    if previous_status == PresenceStatus.ACTIVE.value and elapsed <= HEARTBEAT_ACCRUAL_CAP_MINUTES:
        increment = min(elapsed, HEARTBEAT_ACCRUAL_CAP_MINUTES)

    if previous_status == PresenceStatus.AWAY.value:
        presence.status = PresenceStatus.ACTIVE.value
        presence.last_status_change = now
        logger.info("Counselor back from away", extra=build_log_context(counselor_id=counselor_id))

    presence.last_activity_at = now
    presence.active_minutes_today = (presence.active_minutes_today or 0) + increment
    presence.total_active_minutes = (presence.total_active_minutes or 0) + increment
    db.flush()
    return presence


def mark_as_away(
    db: Session,
    counselor_id: UUID,
    *,
    now: datetime | None = None,
) -> CounselorPresence | None:
    """ACTIVE → AWAY. Returns None for unknown or OFFLINE counselors."""
    now = ensure_utc(now) or utc_now()
    presence = _get_presence(db, counselor_id, lock=True)
    if presence is None or presence.status == PresenceStatus.OFFLINE.value:
        return None

    if presence.status != PresenceStatus.AWAY.value:
        presence.status = PresenceStatus.AWAY.value
        presence.last_status_change = now
        db.flush()
        logger.info("Counselor marked away", extra=build_log_context(counselor_id=counselor_id))
    return presence


def mark_as_offline(
    db: Session,
    counselor_id: UUID,
    *,
    now: datetime | None = None,
) -> CounselorPresence | None:
    """
    Take a counselor OFFLINE.

    Finalizes today's active minutes, closes today's attendance as
    PARTIAL and releases imminent sessions, all in one savepoint.
    """
    now = ensure_utc(now) or utc_now()
    presence = _get_presence(db, counselor_id, lock=True)
    if presence is None:
        return None
    if presence.status == PresenceStatus.OFFLINE.value:
        return presence

    with db.begin_nested():
        active_minutes = calculate_active_minutes(presence, now)
        presence.status = PresenceStatus.OFFLINE.value
        presence.last_status_change = now
        presence.active_minutes_today = active_minutes

        attendance = _get_attendance(db, counselor_id, attendance_day(now))
        if attendance is not None:
            attendance.logout_time = now
            attendance.active_minutes = active_minutes
            attendance.status = AttendanceStatus.PARTIAL.value

        released = release_appointments(db, counselor_id, now=now)

    logger.info(
        "Counselor marked offline (%d active minutes, %d sessions released)",
        active_minutes,
        len(released),
        extra=build_log_context(counselor_id=counselor_id),
    )
    return presence


def release_appointments(
    db: Session,
    counselor_id: UUID,
    *,
    now: datetime | None = None,
) -> list[CounselingSession]:
    """
    Cancel the counselor's overdue or imminent sessions and free their leads.

    Sessions SCHEDULED up to 30 minutes from now are CANCELLED with a
    remark containing "requires reassignment". Each affected lead goes
    back to NEW without a counselor, and the former assignee's load is
    decremented so counters keep matching assignments.
    """
    now = ensure_utc(now) or utc_now()
    cutoff = now + timedelta(minutes=RELEASE_WINDOW_MINUTES)

    sessions = list(
        db.execute(
            select(CounselingSession)
            .where(
                CounselingSession.counselor_id == counselor_id,
                CounselingSession.status == SessionStatus.SCHEDULED.value,
                CounselingSession.scheduled_date <= cutoff,
            )
            .order_by(CounselingSession.scheduled_date)
            .with_for_update()
        ).scalars().all()
    )

    for session in sessions:
        session.status = SessionStatus.CANCELLED.value
        session.remarks = RELEASED_SESSION_REMARK

        lead = db.execute(
            select(Lead).where(Lead.id == session.lead_id).with_for_update()
        ).scalar_one_or_none()
        if lead is None:
            continue

        former_counselor_id = lead.assigned_counselor_id
        lead.assigned_counselor_id = None
        lead.auto_assigned = False
        lead.status = LeadStatus.NEW.value
        if former_counselor_id is not None:
            decrement_load(db, former_counselor_id)

        logger.info(
            "Session released for reassignment",
            extra=build_log_context(
                counselor_id=counselor_id, session_id=session.id, lead_id=lead.id
            ),
        )

    db.flush()
    return sessions


def check_inactivity(
    db: Session,
    counselor_id: UUID,
    *,
    now: datetime | None = None,
) -> CounselorPresence | None:
    """
    Demote a stale counselor: idle > 30 minutes → OFFLINE, > 15 → AWAY.

    OFFLINE or unknown counselors are returned untouched, so repeated
    sweeps never release sessions twice.
    """
    now = ensure_utc(now) or utc_now()
    presence = _get_presence(db, counselor_id)
    if presence is None or presence.status == PresenceStatus.OFFLINE.value:
        return presence

    last_seen = _last_seen(presence)
    if last_seen is None:
        return presence

    inactive_minutes = minutes_between(last_seen, now)
    if inactive_minutes > OFFLINE_AFTER_MINUTES:
        return mark_as_offline(db, counselor_id, now=now)
    if inactive_minutes > AWAY_AFTER_MINUTES:
        return mark_as_away(db, counselor_id, now=now)
    return presence


def check_all_inactivity(db: Session, *, now: datetime | None = None) -> list[SweepResult]:
    """Run check_inactivity for every ACTIVE or AWAY counselor."""
    now = ensure_utc(now) or utc_now()
    rows = db.execute(
        select(CounselorPresence.counselor_id, CounselorPresence.status).where(
            CounselorPresence.status.in_(
                [PresenceStatus.ACTIVE.value, PresenceStatus.AWAY.value]
            )
        )
    ).all()

    results: list[SweepResult] = []
    for counselor_id, previous_status in rows:
        updated = check_inactivity(db, counselor_id, now=now)
        current_status = updated.status if updated else PresenceStatus.OFFLINE.value
        results.append(
            SweepResult(
                counselor_id=counselor_id,
                previous_status=previous_status,
                current_status=current_status,
                changed=previous_status != current_status,
            )
        )
    return results


# =============================================================================
# Reads
# =============================================================================

def get_presence_status(
    db: Session,
    counselor_id: UUID,
    *,
    now: datetime | None = None,
) -> PresenceSnapshot:
    """Current presence, re-evaluating staleness before reading."""
    presence = check_inactivity(db, counselor_id, now=now)
    if presence is None:
        return PresenceSnapshot(
            status=PresenceStatus.OFFLINE.value,
            last_login_at=None,
            last_activity_at=None,
            active_minutes_today=0,
            total_active_minutes=0,
        )
    return PresenceSnapshot(
        status=presence.status,
        last_login_at=ensure_utc(presence.last_login_at),
        last_activity_at=ensure_utc(presence.last_activity_at),
        active_minutes_today=presence.active_minutes_today,
        total_active_minutes=presence.total_active_minutes,
    )


def get_active_counselors(db: Session) -> list[CounselorPresence]:
    """ACTIVE presences, most recently active first."""
    return list(
        db.execute(
            select(CounselorPresence)
            .options(selectinload(CounselorPresence.counselor))
            .where(CounselorPresence.status == PresenceStatus.ACTIVE.value)
            .order_by(CounselorPresence.last_activity_at.desc())
        ).scalars().all()
    )


def list_presence_by_status(db: Session, status: PresenceStatus) -> list[CounselorPresence]:
    return list(
        db.execute(
            select(CounselorPresence)
            .options(selectinload(CounselorPresence.counselor))
            .where(CounselorPresence.status == status.value)
            .order_by(CounselorPresence.last_activity_at.desc())
        ).scalars().all()
    )


def count_presence_by_status(db: Session) -> dict[str, int]:
    rows = db.execute(
        select(CounselorPresence.status, func.count(CounselorPresence.id))
        .group_by(CounselorPresence.status)
    ).all()
    counts = {status.value: 0 for status in PresenceStatus}
    for status, count in rows:
        counts[status] = count
    return counts


def get_daily_attendance(
    db: Session,
    day: date | None = None,
    *,
    now: datetime | None = None,
) -> list[DailyAttendance]:
    """Attendance rows for a day (default today), latest login first."""
    day = day or attendance_day(now or utc_now())
    return list(
        db.execute(
            select(DailyAttendance)
            .options(selectinload(DailyAttendance.counselor))
            .where(DailyAttendance.attendance_date == day)
            .order_by(DailyAttendance.login_time.desc())
        ).scalars().all()
    )


def get_absent_counselors(
    db: Session,
    day: date | None = None,
    *,
    now: datetime | None = None,
) -> list[CounselorProfile]:
    """Counselors with no PRESENT or PARTIAL attendance on the day."""
    day = day or attendance_day(now or utc_now())
    attended = (
        select(DailyAttendance.counselor_id)
        .where(
            DailyAttendance.attendance_date == day,
            DailyAttendance.status.in_(
                [AttendanceStatus.PRESENT.value, AttendanceStatus.PARTIAL.value]
            ),
        )
    )
    return list(
        db.execute(
            select(CounselorProfile)
            .where(CounselorProfile.id.not_in(attended))
            .order_by(CounselorProfile.full_name)
        ).scalars().all()
    )


def get_inactivity_alerts(db: Session, *, now: datetime | None = None) -> list[InactivityAlert]:
    """
    Counselors needing attention: ACTIVE/AWAY but idle for more than
    30 minutes, or gone OFFLINE within the last hour.
    """
    now = ensure_utc(now) or utc_now()
    idle_cutoff = now - timedelta(minutes=OFFLINE_AFTER_MINUTES)
    offline_cutoff = now - timedelta(minutes=RECENTLY_OFFLINE_MINUTES)
    last_seen = func.coalesce(CounselorPresence.last_activity_at, CounselorPresence.last_login_at)

    presences = db.execute(
        select(CounselorPresence)
        .options(selectinload(CounselorPresence.counselor))
        .where(
            or_(
                (
                    CounselorPresence.status.in_(
                        [PresenceStatus.ACTIVE.value, PresenceStatus.AWAY.value]
                    )
                    & (last_seen < idle_cutoff)
                ),
                (
                    (CounselorPresence.status == PresenceStatus.OFFLINE.value)
                    & (CounselorPresence.last_status_change >= offline_cutoff)
                ),
            )
        )
    ).scalars().all()

    alerts: list[InactivityAlert] = []
    for presence in presences:
        seen = _last_seen(presence)
        open_leads = list(
            db.execute(
                select(Lead).where(
                    Lead.assigned_counselor_id == presence.counselor_id,
                    Lead.status.in_(LeadStatus.open_statuses()),
                )
            ).scalars().all()
        )
        alerts.append(
            InactivityAlert(
                counselor_id=presence.counselor_id,
                counselor_name=presence.counselor.full_name,
                current_status=presence.status,
                inactive_minutes=minutes_between(seen, now) if seen else 0,
                last_activity_at=ensure_utc(presence.last_activity_at),
                last_login_at=ensure_utc(presence.last_login_at),
                open_leads=open_leads,
            )
        )
    return alerts
