"""Lead schemas - Pydantic models for lead intake and assignment."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class LeadCreate(BaseModel):
    """Public admission enquiry."""
    student_name: str = Field(..., min_length=1, max_length=255)
    parent_name: str | None = Field(None, max_length=255)
    parent_email: EmailStr | None = None
    parent_mobile: str | None = Field(None, max_length=50)
    preferred_language: str = Field("English", min_length=1, max_length=50)
    course_id: UUID
    notes: str | None = Field(None, max_length=5000)


class LeadAssignRequest(BaseModel):
    """Manual assignment by an admin. counselor_id=None unassigns."""
    counselor_id: UUID | None = None
    reason: str | None = Field(None, max_length=500)


class LeadRead(BaseModel):
    id: UUID
    lead_number: str
    student_name: str
    parent_name: str | None
    parent_email: str | None
    parent_mobile: str | None
    preferred_language: str
    course_id: UUID
    assigned_counselor_id: UUID | None
    auto_assigned: bool
    assignment_reason: str
    status: str
    submitted_at: datetime

    model_config = {"from_attributes": True}


class LeadSummary(BaseModel):
    """Compact lead used inside dashboards and alerts."""
    id: UUID
    lead_number: str
    student_name: str
    parent_name: str | None
    parent_mobile: str | None
    status: str

    model_config = {"from_attributes": True}


class LeadIntakeResponse(BaseModel):
    lead_number: str
    assigned: bool
    message: str


class AvailableCounselorRead(BaseModel):
    """Manual assignment picker row."""
    id: UUID
    full_name: str
    email: str | None
    mobile: str | None
    expertise: list[str]
    languages: list[str]
    availability: str
    presence_status: str
    current_load: int
    max_capacity: int
    load_percentage: int
    assigned_leads: int
    last_activity_at: datetime | None
