"""
Reminder Settings Service - per-tenant reminder configuration.

Reads never fail: a tenant without a row (or a database without the
table yet) gets DEFAULT_REMINDER_SETTINGS. Writes are an idempotent
upsert keyed by tenant_id.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, replace
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError
from sqlalchemy.orm import Session

from app.core.migrations import ensure_reminder_schema, is_missing_table_error
from app.db.models import ReminderSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReminderSettingsData:
    """Resolved reminder configuration. Every field is always present."""

    hearing_reminder_minutes: int = 60
    filing_reminder_minutes: int = 60
    task_reminder_minutes: int = 60
    email_enabled: bool = True
    sms_enabled: bool = False
    whatsapp_enabled: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


DEFAULT_REMINDER_SETTINGS = ReminderSettingsData()

SETTINGS_FIELDS = tuple(DEFAULT_REMINDER_SETTINGS.to_dict().keys())


def _to_data(row: ReminderSettings) -> ReminderSettingsData:
    return ReminderSettingsData(**{field: getattr(row, field) for field in SETTINGS_FIELDS})


def get_settings(db: Session, tenant_id: UUID) -> ReminderSettingsData:
    """
    Get reminder settings for a tenant.

    Returns defaults if no row exists, or if the table has not been
    created yet. Any other schema error (e.g. a missing column) is
    raised; defaults would re-enable channels the tenant turned off.
    """
    try:
        row = db.execute(
            select(ReminderSettings).where(ReminderSettings.tenant_id == tenant_id)
        ).scalar_one_or_none()
    except (OperationalError, ProgrammingError) as exc:
        if not is_missing_table_error(exc):
            raise
        db.rollback()
        logger.warning("tenant_settings table missing; using default reminder settings")
        return DEFAULT_REMINDER_SETTINGS

    if row is None:
        return DEFAULT_REMINDER_SETTINGS
    return _to_data(row)


def _apply_upsert(db: Session, tenant_id: UUID, values: ReminderSettingsData) -> ReminderSettings:
    row = db.execute(
        select(ReminderSettings).where(ReminderSettings.tenant_id == tenant_id)
    ).scalar_one_or_none()
    if row is None:
        row = ReminderSettings(tenant_id=tenant_id)
        db.add(row)

    for field, value in values.to_dict().items():
        setattr(row, field, value)

    db.commit()
    db.refresh(row)
    return row


def upsert_settings(
    db: Session,
    tenant_id: UUID,
    updates: dict[str, Any] | ReminderSettingsData,
) -> ReminderSettingsData:
    """
    Insert or update a tenant's reminder settings.

    Fields missing from `updates` take their default value, matching the
    admin form which always submits the full settings object. Unknown keys
    are ignored.

    Self-heals a missing table once; a concurrent insert for the same
    tenant is retried as an update.
    """
    if isinstance(updates, ReminderSettingsData):
        values = updates
    else:
        known = {k: v for k, v in updates.items() if k in SETTINGS_FIELDS and v is not None}
        values = replace(DEFAULT_REMINDER_SETTINGS, **known)

    try:
        row = _apply_upsert(db, tenant_id, values)
    except (OperationalError, ProgrammingError) as exc:
        if not is_missing_table_error(exc):
            raise
        db.rollback()
        ensure_reminder_schema(db.get_bind())
        row = _apply_upsert(db, tenant_id, values)
    except IntegrityError:
        # Another writer inserted this tenant's row between our read and insert
        db.rollback()
        logger.info("Concurrent reminder settings insert for tenant %s; updating", tenant_id)
        row = _apply_upsert(db, tenant_id, values)

    logger.info("Reminder settings updated for tenant %s", tenant_id)
    return _to_data(row)
