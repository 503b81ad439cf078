"""SQLAlchemy ORM models owned by the reminder engine."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import expression

from app.db.base import Base


class ReminderSettings(Base):
    """
    Per-tenant reminder configuration.

    Missing row = defaults (60/60/60 minutes, email only).
    Written only by the settings API, never by the scheduler.
    """

    __tablename__ = "tenant_settings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    # Lead times in minutes before the scheduled time
    hearing_reminder_minutes: Mapped[int] = mapped_column(
        Integer, default=60, server_default="60", nullable=False
    )
    filing_reminder_minutes: Mapped[int] = mapped_column(
        Integer, default=60, server_default="60", nullable=False
    )
    task_reminder_minutes: Mapped[int] = mapped_column(
        Integer, default=60, server_default="60", nullable=False
    )

    # Channel toggles
    email_enabled: Mapped[bool] = mapped_column(
        default=True, server_default=expression.true(), nullable=False
    )
    sms_enabled: Mapped[bool] = mapped_column(
        default=False, server_default=expression.false(), nullable=False
    )
    whatsapp_enabled: Mapped[bool] = mapped_column(
        default=False, server_default=expression.false(), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )


class ReminderLog(Base):
    """
    Append-only ledger of reminders already sent.

    One row per (tenant, entity_type, entity_id, recipient, channel), ever.
    Rows are written after a successful send and never updated or deleted.
    """

    __tablename__ = "reminders_log"
    __table_args__ = (
        UniqueConstraint(
            "tenant_id",
            "entity_type",
            "entity_id",
            "recipient",
            "channel",
            name="uniq_reminder",
        ),
        Index("idx_reminders_log_tenant_time", "tenant_id", "sent_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    recipient: Mapped[str] = mapped_column(String(255), nullable=False)
    channel: Mapped[str] = mapped_column(String(20), nullable=False)
    sent_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
