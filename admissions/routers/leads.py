"""Leads router - public intake and manual assignment."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from admissions.core.deps import get_db, require_csrf_header, require_roles
from admissions.core.rate_limit import limiter, public_intake_limit
from admissions.db.enums import Role
from admissions.schemas.auth import UserSession
from admissions.schemas.lead import (
    AvailableCounselorRead,
    LeadAssignRequest,
    LeadCreate,
    LeadIntakeResponse,
    LeadRead,
)
from admissions.services import assignment_service, counselor_directory, lead_service

router = APIRouter(prefix="/leads", tags=["leads"])


@router.post("", response_model=LeadIntakeResponse, status_code=201)
@limiter.limit(public_intake_limit)
def submit_lead(request: Request, data: LeadCreate, db: Session = Depends(get_db)):
    """
    Public admission enquiry.

    The lead is always stored; when no counselor can take it right now it
    waits, unassigned, in the management work queue.
    """
    if counselor_directory.get_course(db, data.course_id) is None:
        raise HTTPException(status_code=404, detail="Course not found")

    try:
        lead = lead_service.create_lead(db, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    db.commit()

    assigned = lead.assigned_counselor_id is not None
    if assigned:
        message = "Thank you! A counselor will contact you shortly."
    else:
        message = "Thank you! Our admissions team will contact you shortly."
    return LeadIntakeResponse(lead_number=lead.lead_number, assigned=assigned, message=message)


@router.get("/available-counselors", response_model=list[AvailableCounselorRead])
def list_available_counselors(
    language: str | None = Query(None, max_length=50),
    expertise: str | None = Query(None, max_length=100),
    exclude_counselor_id: UUID | None = Query(None),
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_roles([Role.ADMIN, Role.MANAGEMENT])),
):
    """ACTIVE counselors to pick from when assigning a lead by hand, least loaded first."""
    rows = counselor_directory.list_available_counselors(
        db,
        language=language,
        expertise=expertise,
        exclude_counselor_id=exclude_counselor_id,
    )
    return [
        AvailableCounselorRead(
            id=row.counselor.id,
            full_name=row.counselor.full_name,
            email=row.counselor.user.email if row.counselor.user else None,
            mobile=row.counselor.mobile,
            expertise=row.counselor.expertise or [],
            languages=row.counselor.languages or [],
            availability=row.counselor.availability,
            presence_status=row.presence_status,
            current_load=row.counselor.current_load,
            max_capacity=row.counselor.max_capacity,
            load_percentage=row.load_percentage,
            assigned_leads=row.assigned_leads,
            last_activity_at=row.last_activity_at,
        )
        for row in rows
    ]


# Declared after the static /available-counselors path
@router.get("/{lead_id}", response_model=LeadRead)
def get_lead(
    lead_id: UUID,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_roles([Role.ADMIN, Role.MANAGEMENT])),
):
    lead = lead_service.get_lead(db, lead_id)
    if not lead:
        raise HTTPException(status_code=404, detail="Lead not found")
    return lead


@router.post(
    "/{lead_id}/assign",
    response_model=LeadRead,
    dependencies=[Depends(require_csrf_header)],
)
def assign_lead(
    lead_id: UUID,
    data: LeadAssignRequest,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_roles([Role.ADMIN])),
):
    """Move a lead to another counselor, or unassign it (counselor_id=null)."""
    lead = lead_service.get_lead(db, lead_id)
    if not lead:
        raise HTTPException(status_code=404, detail="Lead not found")

    reason = data.reason or f"by {session.display_name}"
    try:
        lead = assignment_service.reassign_lead(db, lead, data.counselor_id, reason)
    except (assignment_service.CounselorNotFoundError, assignment_service.LeadNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    db.commit()
    db.refresh(lead)
    return lead
