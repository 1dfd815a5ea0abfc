"""Management router - dashboards, reassignment queues and attendance reports."""

from datetime import date, timedelta
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from admissions.core.deps import get_db, require_csrf_header, require_roles
from admissions.db.enums import Role
from admissions.schemas.auth import UserSession
from admissions.schemas.management import (
    AttendanceCounts,
    AttendanceReportResponse,
    CounselorAttendanceReportRead,
    CounselorPerformanceResponse,
    CounselorPresenceItemRead,
    DashboardResponse,
    LeadMetrics,
    PerformanceCounselor,
    PerformanceMetrics,
    PresenceAlerts,
    PresenceMetrics,
    PresenceCounts,
    ReassignAppointmentRequest,
    ReassignmentQueue,
    ReleasedAppointmentsResponse,
    ReleasedSessionRead,
    SessionMetrics,
    SessionRead,
    UnassignedLeadRead,
)
from admissions.services import management_service
from admissions.utils.datetime_utils import attendance_day, utc_now

router = APIRouter(prefix="/management", tags=["management"])

ATTENDANCE_REPORT_DEFAULT_DAYS = 30


@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_roles([Role.ADMIN, Role.MANAGEMENT])),
):
    dashboard = management_service.get_dashboard(db)
    released = [ReleasedSessionRead.model_validate(s) for s in dashboard.released_sessions]
    return DashboardResponse(
        attendance=AttendanceCounts(
            present=dashboard.present,
            absent=dashboard.absent,
            active=dashboard.active,
        ),
        presence=PresenceCounts(**dashboard.presence_counts),
        alerts=PresenceAlerts(
            away_counselors=[
                CounselorPresenceItemRead.model_validate(item)
                for item in dashboard.away_counselors
            ],
            offline_counselors=[
                CounselorPresenceItemRead.model_validate(item)
                for item in dashboard.offline_counselors
            ],
        ),
        reassignments=ReassignmentQueue(count=len(released), sessions=released),
    )


@router.get("/released-appointments", response_model=ReleasedAppointmentsResponse)
def get_released_appointments(
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_roles([Role.ADMIN, Role.MANAGEMENT])),
):
    """Work queue: sessions released by offline counselors plus unassigned leads."""
    sessions = management_service.list_released_sessions(db)
    leads = management_service.list_unassigned_leads(db)
    return ReleasedAppointmentsResponse(
        released_sessions=[ReleasedSessionRead.model_validate(s) for s in sessions],
        unassigned_leads=[
            UnassignedLeadRead(
                id=lead.id,
                lead_number=lead.lead_number,
                student_name=lead.student_name,
                parent_name=lead.parent_name,
                parent_mobile=lead.parent_mobile,
                status=lead.status,
                course_name=lead.course.name if lead.course else None,
                submitted_at=lead.submitted_at,
            )
            for lead in leads
        ],
        total=len(sessions) + len(leads),
    )


@router.post(
    "/reassign-appointment",
    response_model=SessionRead,
    dependencies=[Depends(require_csrf_header)],
)
def reassign_appointment(
    data: ReassignAppointmentRequest,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_roles([Role.ADMIN, Role.MANAGEMENT])),
):
    try:
        counseling_session = management_service.reassign_session(
            db, data.session_id, data.new_counselor_id
        )
    except (
        management_service.SessionNotFoundError,
        management_service.CounselorNotFoundError,
    ) as e:
        raise HTTPException(status_code=404, detail=str(e))
    db.commit()
    db.refresh(counseling_session)
    return counseling_session


@router.get("/attendance-report", response_model=AttendanceReportResponse)
def get_attendance_report(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_roles([Role.ADMIN, Role.MANAGEMENT])),
):
    """Per-counselor attendance, defaulting to the last 30 days."""
    end = end_date or attendance_day(utc_now())
    start = start_date or end - timedelta(days=ATTENDANCE_REPORT_DEFAULT_DAYS)
    if start > end:
        raise HTTPException(status_code=400, detail="start_date must be on or before end_date")

    reports = management_service.get_attendance_report(db, start, end)
    return AttendanceReportResponse(
        start_date=start,
        end_date=end,
        report=[
            CounselorAttendanceReportRead.model_validate(report)
            for report in reports
        ],
    )


@router.get("/counselor-performance", response_model=CounselorPerformanceResponse)
def get_counselor_performance(
    counselor_id: UUID | None = Query(None),
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_roles([Role.ADMIN, Role.MANAGEMENT])),
):
    """Lead conversion, session completion and presence for one counselor."""
    if counselor_id is None:
        raise HTTPException(status_code=400, detail="counselor_id is required")
    try:
        performance = management_service.get_counselor_performance(db, counselor_id)
    except management_service.CounselorNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return CounselorPerformanceResponse(
        counselor=PerformanceCounselor(
            id=performance.counselor_id,
            name=performance.name,
            email=performance.email,
        ),
        metrics=PerformanceMetrics(
            leads=LeadMetrics(
                total=performance.total_leads,
                enrolled=performance.enrolled_leads,
                conversion_rate=performance.conversion_rate,
            ),
            sessions=SessionMetrics(
                total=performance.total_sessions,
                completed=performance.completed_sessions,
                completion_rate=performance.completion_rate,
            ),
            presence=PresenceMetrics(
                status=performance.presence_status,
                active_minutes_today=performance.active_minutes_today,
                total_active_minutes=performance.total_active_minutes,
                last_login_at=performance.last_login_at,
            ),
        ),
    )
