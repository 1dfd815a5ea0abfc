"""Presence router - counselor heartbeats, attendance and inactivity checks."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from admissions.core.deps import (
    get_current_session,
    get_db,
    require_counselor,
    require_csrf_header,
    require_roles,
)
from admissions.db.enums import Role
from admissions.schemas.auth import UserSession
from admissions.schemas.lead import LeadSummary
from admissions.schemas.presence import (
    ActivePresenceRead,
    AttendanceRead,
    CheckInactivityRequest,
    CounselorBrief,
    InactivityAlertRead,
    InactivityAlertsResponse,
    PresenceRead,
    PresenceStatusRead,
    SweepResponse,
    SweepResultRead,
)
from admissions.services import presence_service

router = APIRouter(prefix="/presence", tags=["presence"])

MANAGERS = [Role.ADMIN, Role.MANAGEMENT]


# =============================================================================
# Counselor self-service
# =============================================================================

@router.post(
    "/login",
    response_model=PresenceRead,
    dependencies=[Depends(require_csrf_header)],
)
def login(
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_counselor),
):
    """Start (or resume) the counselor's working day."""
    try:
        presence = presence_service.record_login(db, session.counselor_id)
    except presence_service.CounselorNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    db.commit()
    return presence


@router.post(
    "/activity",
    response_model=PresenceRead,
    dependencies=[Depends(require_csrf_header)],
)
def heartbeat(
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_counselor),
):
    presence = presence_service.update_activity(db, session.counselor_id)
    if presence is None:
        raise HTTPException(status_code=404, detail="No presence record, log in first")
    db.commit()
    return presence


@router.get("/status", response_model=PresenceStatusRead)
def get_status(
    counselor_id: UUID | None = Query(None),
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    """
    Presence of the calling counselor, or of any counselor for managers.

    Stale presence is demoted before it is returned.
    """
    if session.role in MANAGERS:
        target = counselor_id or session.counselor_id
    else:
        if counselor_id and counselor_id != session.counselor_id:
            raise HTTPException(status_code=403, detail="Cannot view another counselor's presence")
        target = session.counselor_id

    if target is None:
        raise HTTPException(status_code=400, detail="counselor_id is required")

    snapshot = presence_service.get_presence_status(db, target)
    db.commit()
    return PresenceStatusRead(**snapshot._asdict())


# =============================================================================
# Management views
# =============================================================================

@router.get("/active", response_model=list[ActivePresenceRead])
def list_active(
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_roles(MANAGERS)),
):
    return presence_service.get_active_counselors(db)


@router.get("/attendance", response_model=list[AttendanceRead])
def list_attendance(
    day: date | None = Query(None, alias="date"),
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_roles(MANAGERS)),
):
    return presence_service.get_daily_attendance(db, day)


@router.get("/absent", response_model=list[CounselorBrief])
def list_absent(
    day: date | None = Query(None, alias="date"),
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_roles(MANAGERS)),
):
    return presence_service.get_absent_counselors(db, day)


@router.post(
    "/check-inactivity",
    response_model=PresenceStatusRead,
    dependencies=[Depends(require_csrf_header)],
)
def check_inactivity(
    data: CheckInactivityRequest,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_roles(MANAGERS)),
):
    presence = presence_service.check_inactivity(db, data.counselor_id)
    if presence is None:
        raise HTTPException(status_code=404, detail="No presence record for counselor")
    db.commit()
    return PresenceStatusRead(
        status=presence.status,
        last_login_at=presence.last_login_at,
        last_activity_at=presence.last_activity_at,
        active_minutes_today=presence.active_minutes_today,
        total_active_minutes=presence.total_active_minutes,
    )


@router.post(
    "/check-all-inactivity",
    response_model=SweepResponse,
    dependencies=[Depends(require_csrf_header)],
)
def check_all_inactivity(
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_roles(MANAGERS)),
):
    results = presence_service.check_all_inactivity(db)
    db.commit()
    return SweepResponse(
        checked=len(results),
        results=[SweepResultRead(**result._asdict()) for result in results],
    )


@router.get("/inactivity-alerts", response_model=InactivityAlertsResponse)
def inactivity_alerts(
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_roles(MANAGERS)),
):
    alerts = presence_service.get_inactivity_alerts(db)
    items = [
        InactivityAlertRead(
            counselor_id=alert.counselor_id,
            counselor_name=alert.counselor_name,
            current_status=alert.current_status,
            inactive_minutes=alert.inactive_minutes,
            last_activity_at=alert.last_activity_at,
            last_login_at=alert.last_login_at,
            affected_leads=alert.affected_leads,
            leads=[LeadSummary.model_validate(lead) for lead in alert.open_leads],
            requires_reassignment=alert.requires_reassignment,
        )
        for alert in alerts
    ]
    return InactivityAlertsResponse(
        alerts=items,
        total=len(items),
        critical=sum(1 for item in items if item.requires_reassignment),
    )
