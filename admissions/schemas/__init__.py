"""Pydantic schemas for API request/response models."""

from admissions.schemas.auth import UserSession
from admissions.schemas.lead import (
    AvailableCounselorRead,
    LeadAssignRequest,
    LeadCreate,
    LeadIntakeResponse,
    LeadRead,
    LeadSummary,
)
from admissions.schemas.presence import (
    AttendanceRead,
    CounselorBrief,
    InactivityAlertsResponse,
    PresenceRead,
    PresenceStatusRead,
    SweepResponse,
)
from admissions.schemas.management import (
    AttendanceReportResponse,
    CounselorPerformanceResponse,
    DashboardResponse,
    ReassignAppointmentRequest,
    ReleasedAppointmentsResponse,
    SessionRead,
)

__all__ = [
    # Auth
    "UserSession",
    # Leads
    "AvailableCounselorRead",
    "LeadAssignRequest",
    "LeadCreate",
    "LeadIntakeResponse",
    "LeadRead",
    "LeadSummary",
    # Presence
    "AttendanceRead",
    "CounselorBrief",
    "InactivityAlertsResponse",
    "PresenceRead",
    "PresenceStatusRead",
    "SweepResponse",
    # Management
    "AttendanceReportResponse",
    "CounselorPerformanceResponse",
    "DashboardResponse",
    "ReassignAppointmentRequest",
    "ReleasedAppointmentsResponse",
    "SessionRead",
]
