"""Management schemas - dashboards, work queues and attendance reports."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel

from admissions.schemas.lead import LeadSummary
from admissions.schemas.presence import CounselorBrief


class AttendanceCounts(BaseModel):
    present: int
    absent: int
    active: int


class PresenceCounts(BaseModel):
    active: int
    away: int
    offline: int


class CounselorPresenceItemRead(BaseModel):
    counselor_id: UUID
    name: str
    last_activity_at: datetime | None
    inactive_minutes: int | None = None

    model_config = {"from_attributes": True}


class PresenceAlerts(BaseModel):
    away_counselors: list[CounselorPresenceItemRead]
    offline_counselors: list[CounselorPresenceItemRead]


class ReleasedSessionRead(BaseModel):
    id: UUID
    lead_id: UUID
    counselor_id: UUID
    scheduled_date: datetime
    mode: str
    status: str
    remarks: str | None
    lead: LeadSummary
    counselor: CounselorBrief

    model_config = {"from_attributes": True}


class ReassignmentQueue(BaseModel):
    count: int
    sessions: list[ReleasedSessionRead]


class DashboardResponse(BaseModel):
    attendance: AttendanceCounts
    presence: PresenceCounts
    alerts: PresenceAlerts
    reassignments: ReassignmentQueue


class UnassignedLeadRead(LeadSummary):
    course_name: str | None = None
    submitted_at: datetime


class ReleasedAppointmentsResponse(BaseModel):
    released_sessions: list[ReleasedSessionRead]
    unassigned_leads: list[UnassignedLeadRead]
    total: int


class ReassignAppointmentRequest(BaseModel):
    session_id: UUID
    new_counselor_id: UUID


class SessionRead(BaseModel):
    id: UUID
    lead_id: UUID
    counselor_id: UUID
    scheduled_date: datetime
    mode: str
    status: str
    remarks: str | None

    model_config = {"from_attributes": True}


class AttendanceDayRead(BaseModel):
    day: date
    login_time: datetime | None
    logout_time: datetime | None
    active_minutes: int
    status: str

    model_config = {"from_attributes": True}


class CounselorAttendanceReportRead(BaseModel):
    counselor_id: UUID
    counselor_name: str
    days: list[AttendanceDayRead]
    total_active_minutes: int
    present_days: int
    absent_days: int

    model_config = {"from_attributes": True}


class AttendanceReportResponse(BaseModel):
    start_date: date
    end_date: date
    report: list[CounselorAttendanceReportRead]


class PerformanceCounselor(BaseModel):
    id: UUID
    name: str
    email: str | None


class LeadMetrics(BaseModel):
    total: int
    enrolled: int
    conversion_rate: float


class SessionMetrics(BaseModel):
    total: int
    completed: int
    completion_rate: float


class PresenceMetrics(BaseModel):
    status: str
    active_minutes_today: int
    total_active_minutes: int
    last_login_at: datetime | None


class PerformanceMetrics(BaseModel):
    leads: LeadMetrics
    sessions: SessionMetrics
    presence: PresenceMetrics


class CounselorPerformanceResponse(BaseModel):
    counselor: PerformanceCounselor
    metrics: PerformanceMetrics
