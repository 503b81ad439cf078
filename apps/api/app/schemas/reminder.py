"""Pydantic schemas for reminder settings and reminder runs."""

from pydantic import BaseModel, Field

# One week upper bound on lead times
MAX_LEAD_MINUTES = 7 * 24 * 60


class ReminderSettingsRead(BaseModel):
    """Tenant reminder settings (defaults when never saved)."""
    hearing_reminder_minutes: int
    filing_reminder_minutes: int
    task_reminder_minutes: int
    email_enabled: bool
    sms_enabled: bool
    whatsapp_enabled: bool


class ReminderSettingsUpdate(BaseModel):
    """Replace tenant reminder settings. Omitted fields reset to defaults."""
    hearing_reminder_minutes: int | None = Field(None, ge=0, le=MAX_LEAD_MINUTES)
    filing_reminder_minutes: int | None = Field(None, ge=0, le=MAX_LEAD_MINUTES)
    task_reminder_minutes: int | None = Field(None, ge=0, le=MAX_LEAD_MINUTES)
    email_enabled: bool | None = None
    sms_enabled: bool | None = None
    whatsapp_enabled: bool | None = None


class TickError(BaseModel):
    tenant_id: str
    stage: str
    error: str


class ReminderRunResponse(BaseModel):
    """Summary of one synchronous reminder tick."""
    tick_id: str
    started_at: str
    finished_at: str | None
    tenants_processed: int
    candidates: int
    sent: int
    skipped_duplicate: int
    skipped_disabled: int
    skipped_no_contact: int
    unavailable: int
    failed: int
    errors: list[TickError]
