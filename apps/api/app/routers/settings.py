"""Settings endpoints for tenant reminder configuration."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.deps import get_db, get_tenant_scope, require_csrf_header
from app.schemas.reminder import ReminderSettingsRead, ReminderSettingsUpdate
from app.services import reminder_settings_service

router = APIRouter(prefix="/settings", tags=["settings"])


# =============================================================================
# Reminder Settings
# =============================================================================


@router.get("/reminders", response_model=ReminderSettingsRead)
def get_reminder_settings(
    tenant_id: UUID = Depends(get_tenant_scope),
    db: Session = Depends(get_db),
):
    """Get reminder settings (defaults if the tenant never saved any)."""
    data = reminder_settings_service.get_settings(db, tenant_id)
    return ReminderSettingsRead(**data.to_dict())


@router.put(
    "/reminders",
    response_model=ReminderSettingsRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_reminder_settings(
    body: ReminderSettingsUpdate,
    tenant_id: UUID = Depends(get_tenant_scope),
    db: Session = Depends(get_db),
):
    """Replace reminder settings for the tenant (upsert)."""
    data = reminder_settings_service.upsert_settings(
        db, tenant_id, body.model_dump(exclude_none=True)
    )
    return ReminderSettingsRead(**data.to_dict())
