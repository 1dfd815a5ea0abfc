"""
Internal endpoints for scheduled/cron operations.

Protected by X-Internal-Secret header.
Call from external cron every few minutes to demote idle counselors.
"""

import logging

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from admissions.core.config import settings
from admissions.core.deps import get_db
from admissions.schemas.presence import SweepResponse, SweepResultRead
from admissions.services import presence_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/internal/scheduled", tags=["internal"])


def verify_internal_secret(x_internal_secret: str = Header(...)):
    """Verify the internal secret header."""
    expected = settings.INTERNAL_SECRET
    if not expected:
        raise HTTPException(status_code=501, detail="INTERNAL_SECRET not configured")
    if x_internal_secret != expected:
        raise HTTPException(status_code=403, detail="Invalid internal secret")


@router.post(
    "/presence-sweep",
    response_model=SweepResponse,
    dependencies=[Depends(verify_internal_secret)],
)
def presence_sweep(db: Session = Depends(get_db)):
    """
    Demote stale counselors.

    ACTIVE/AWAY counselors idle for more than 15 minutes become AWAY,
    more than 30 minutes OFFLINE (which releases their imminent sessions).
    """
    results = presence_service.check_all_inactivity(db)
    db.commit()

    changed = sum(1 for result in results if result.changed)
    logger.info("Presence sweep checked %d counselors, %d changed", len(results), changed)
    return SweepResponse(
        checked=len(results),
        results=[SweepResultRead(**result._asdict()) for result in results],
    )
