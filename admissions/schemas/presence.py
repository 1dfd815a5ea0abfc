"""Presence schemas - counselor presence, attendance and sweep results."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from admissions.schemas.lead import LeadSummary


class CounselorBrief(BaseModel):
    id: UUID
    full_name: str
    availability: str
    current_load: int
    max_capacity: int

    model_config = {"from_attributes": True}


class PresenceRead(BaseModel):
    counselor_id: UUID
    status: str
    last_login_at: datetime | None
    last_activity_at: datetime | None
    last_status_change: datetime | None
    active_minutes_today: int
    total_active_minutes: int

    model_config = {"from_attributes": True}


class ActivePresenceRead(PresenceRead):
    counselor: CounselorBrief


class PresenceStatusRead(BaseModel):
    status: str
    last_login_at: datetime | None
    last_activity_at: datetime | None
    active_minutes_today: int
    total_active_minutes: int


class AttendanceRead(BaseModel):
    id: UUID
    counselor_id: UUID
    attendance_date: date = Field(serialization_alias="date")
    login_time: datetime | None
    logout_time: datetime | None
    active_minutes: int
    status: str
    counselor: CounselorBrief

    model_config = {"from_attributes": True}


class CheckInactivityRequest(BaseModel):
    counselor_id: UUID


class SweepResultRead(BaseModel):
    counselor_id: UUID
    previous_status: str
    current_status: str
    changed: bool


class SweepResponse(BaseModel):
    checked: int
    results: list[SweepResultRead]


class InactivityAlertRead(BaseModel):
    counselor_id: UUID
    counselor_name: str
    current_status: str
    inactive_minutes: int
    last_activity_at: datetime | None
    last_login_at: datetime | None
    affected_leads: int
    leads: list[LeadSummary]
    requires_reassignment: bool


class InactivityAlertsResponse(BaseModel):
    alerts: list[InactivityAlertRead]
    total: int
    critical: int
