"""SQLAlchemy ORM models for cases and their calendar events."""

from __future__ import annotations

from typing import TYPE_CHECKING

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.db.enums import CalendarEventType

if TYPE_CHECKING:
    from app.db.models import Client


class Case(Base):
    """A legal matter. Tenant scoping for calendar events goes through the case."""

    __tablename__ = "cases"
    __table_args__ = (Index("idx_cases_tenant", "tenant_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    client_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="SET NULL"), nullable=True
    )
    case_number: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    client: Mapped["Client | None"] = relationship(back_populates="cases")
    events: Mapped[list["CalendarEvent"]] = relationship(back_populates="case")


class CalendarEvent(Base):
    """Hearing, filing or other dated event on a case."""

    __tablename__ = "calendar_events"
    __table_args__ = (
        Index("idx_calendar_events_type_start", "event_type", "start_datetime"),
        Index("idx_calendar_events_case", "case_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    case_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("cases.id", ondelete="CASCADE"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    event_type: Mapped[str] = mapped_column(
        String(30), nullable=False, default=CalendarEventType.OTHER.value
    )
    start_datetime: Mapped[datetime] = mapped_column(nullable=False)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)

    case: Mapped["Case | None"] = relationship(back_populates="events")
