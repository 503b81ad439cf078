"""
Reminder Ledger Service - append-only record of reminders already sent.

The unique key (tenant_id, entity_type, entity_id, recipient, channel) is the
only thing that stops a reminder from going out again on the next tick.
Rows have no expiry and are never updated or deleted.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.models import ReminderLog

logger = logging.getLogger(__name__)


def _value(raw) -> str:
    return getattr(raw, "value", raw)


def was_sent(
    db: Session,
    tenant_id: UUID,
    entity_type: str,
    entity_id: UUID,
    recipient: str,
    channel: str,
) -> bool:
    """Point lookup on the ledger key."""
    stmt = (
        select(ReminderLog.id)
        .where(
            ReminderLog.tenant_id == tenant_id,
            ReminderLog.entity_type == _value(entity_type),
            ReminderLog.entity_id == entity_id,
            ReminderLog.recipient == recipient,
            ReminderLog.channel == _value(channel),
        )
        .limit(1)
    )
    return db.execute(stmt).first() is not None


def record_sent(
    db: Session,
    tenant_id: UUID,
    entity_type: str,
    entity_id: UUID,
    recipient: str,
    channel: str,
) -> bool:
    """
    Record a successful send and commit.

    Returns True when a new row was written, False when the key was already
    recorded (unique violation). A duplicate is never an error: the
    check-then-insert in the scheduler is not otherwise guarded.
    """
    entry = ReminderLog(
        tenant_id=tenant_id,
        entity_type=_value(entity_type),
        entity_id=entity_id,
        recipient=recipient,
        channel=_value(channel),
    )
    db.add(entry)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.debug(
            "Reminder already recorded (tenant=%s entity=%s:%s channel=%s)",
            tenant_id,
            _value(entity_type),
            entity_id,
            _value(channel),
        )
        return False
    return True


def list_sent(
    db: Session,
    tenant_id: UUID,
    entity_type: str | None = None,
    entity_id: UUID | None = None,
) -> list[ReminderLog]:
    """Ledger rows for a tenant, oldest first."""
    stmt = select(ReminderLog).where(ReminderLog.tenant_id == tenant_id)
    if entity_type is not None:
        stmt = stmt.where(ReminderLog.entity_type == _value(entity_type))
    if entity_id is not None:
        stmt = stmt.where(ReminderLog.entity_id == entity_id)
    stmt = stmt.order_by(ReminderLog.sent_at, ReminderLog.id)
    return list(db.execute(stmt).scalars())
