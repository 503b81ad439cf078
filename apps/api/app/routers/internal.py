"""
Internal endpoints for scheduled/cron operations.

Protected by X-Internal-Secret header.
Call from external cron, or by an administrator for a manual "run now".
"""
import logging

from fastapi import APIRouter, Header, HTTPException

from app.core.config import settings
from app.db.session import SessionLocal
from app.schemas.reminder import ReminderRunResponse
from app.services import reminder_scheduler_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/internal/scheduled", tags=["internal"])


def verify_internal_secret(x_internal_secret: str = Header(...)):
    """Verify the internal secret header."""
    expected = settings.INTERNAL_SECRET
    if not expected:
        raise HTTPException(status_code=501, detail="INTERNAL_SECRET not configured")
    if x_internal_secret != expected:
        raise HTTPException(status_code=403, detail="Invalid internal secret")


@router.post("/reminders", response_model=ReminderRunResponse)
def run_reminders(x_internal_secret: str = Header(...)):
    """
    Run one reminder tick synchronously and report the result.
    
    Blocks until every tenant has been processed. Returns 409 if a tick
    is already in progress in this process.
    """
    verify_internal_secret(x_internal_secret)

    try:
        summary = reminder_scheduler_service.run_tick(session_factory=SessionLocal)
    except reminder_scheduler_service.TickAlreadyRunning:
        raise HTTPException(status_code=409, detail="Reminder run already in progress")
    except Exception as exc:
        logger.exception("Manual reminder run failed")
        raise HTTPException(status_code=500, detail=f"Reminder run failed: {type(exc).__name__}")

    return ReminderRunResponse(**summary.to_dict())
