"""
Reminder Event Service - candidate events for the reminder scheduler.

Four read-only query surfaces (hearings, filings, task deadlines, KYC
renewals) join collaborator tables to produce NotifiableEvent values with
recipient contact details. Events are returned even when a contact method
is missing; per-channel skipping is the scheduler's job.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Sequence
from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.enums import CalendarEventType, EntityType, NotificationChannel, TaskStatus
from app.db.models import CalendarEvent, Case, Client, KycDocument, Task, User


class TenantQueryError(Exception):
    """Raised when loading a tenant's settings or candidate events fails."""

    def __init__(self, tenant_id: UUID, stage: str, cause: BaseException):
        self.tenant_id = tenant_id
        self.stage = stage
        self.cause = cause
        super().__init__(f"{stage} failed for tenant {tenant_id}: {type(cause).__name__}: {cause}")


@dataclass(frozen=True)
class NotifiableEvent:
    """A hearing, filing, task deadline or KYC renewal due for a reminder."""

    tenant_id: UUID
    entity_type: EntityType
    entity_id: UUID
    scheduled_at: datetime | date
    title: str
    recipient_name: str = ""
    recipient_email: str | None = None
    recipient_phone: str | None = None
    case_number: str | None = None
    document_type: str | None = None
    document_number: str | None = None

    def recipient_for(self, channel: NotificationChannel) -> str | None:
        """Contact address for a channel, or None when unreachable on it."""
        if channel == NotificationChannel.EMAIL:
            address = self.recipient_email
        else:
            address = self.recipient_phone
        address = (address or "").strip()
        return address or None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; all stored times are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _full_name(first: str | None, last: str | None) -> str:
    return f"{first or ''} {last or ''}".strip()


def _window(now: datetime | None, lead_minutes: int) -> tuple[datetime, datetime]:
    start = _as_utc(now or utcnow())
    return start, start + timedelta(minutes=max(lead_minutes, 0))


def _find_due_calendar_events(
    db: Session,
    tenant_id: UUID,
    event_type: CalendarEventType,
    entity_type: EntityType,
    lead_minutes: int,
    now: datetime | None,
) -> list[NotifiableEvent]:
    start, end = _window(now, lead_minutes)
    stmt = (
        select(
            CalendarEvent.id,
            CalendarEvent.title,
            CalendarEvent.start_datetime,
            Case.case_number,
            Client.first_name,
            Client.last_name,
            Client.email,
            Client.phone,
        )
        .join(Case, CalendarEvent.case_id == Case.id)
        .outerjoin(Client, Case.client_id == Client.id)
        .where(
            Case.tenant_id == tenant_id,
            CalendarEvent.event_type == event_type.value,
            CalendarEvent.start_datetime.between(start, end),
        )
        .order_by(CalendarEvent.start_datetime, CalendarEvent.id)
    )
    return [
        NotifiableEvent(
            tenant_id=tenant_id,
            entity_type=entity_type,
            entity_id=row.id,
            scheduled_at=_as_utc(row.start_datetime),
            title=row.title,
            recipient_name=_full_name(row.first_name, row.last_name),
            recipient_email=row.email,
            recipient_phone=row.phone,
            case_number=row.case_number,
        )
        for row in db.execute(stmt)
    ]


def find_due_hearings(
    db: Session, tenant_id: UUID, lead_minutes: int, now: datetime | None = None
) -> list[NotifiableEvent]:
    """Hearings starting within [now, now + lead_minutes]; recipient is the case's client."""
    return _find_due_calendar_events(
        db, tenant_id, CalendarEventType.HEARING, EntityType.HEARING, lead_minutes, now
    )


def find_due_filings(
    db: Session, tenant_id: UUID, lead_minutes: int, now: datetime | None = None
) -> list[NotifiableEvent]:
    """Filings due within [now, now + lead_minutes]; recipient is the case's client."""
    return _find_due_calendar_events(
        db, tenant_id, CalendarEventType.FILING, EntityType.FILING, lead_minutes, now
    )


def find_due_task_deadlines(
    db: Session, tenant_id: UUID, lead_minutes: int, now: datetime | None = None
) -> list[NotifiableEvent]:
    """Pending tasks due within [now, now + lead_minutes]; recipient is the assignee."""
    start, end = _window(now, lead_minutes)
    stmt = (
        select(
            Task.id,
            Task.title,
            Task.due_date,
            User.first_name,
            User.last_name,
            User.email,
            User.phone,
        )
        .outerjoin(User, Task.assigned_to == User.id)
        .where(
            Task.tenant_id == tenant_id,
            Task.status == TaskStatus.PENDING.value,
            Task.due_date.between(start, end),
        )
        .order_by(Task.due_date, Task.id)
    )
    return [
        NotifiableEvent(
            tenant_id=tenant_id,
            entity_type=EntityType.TASK,
            entity_id=row.id,
            scheduled_at=_as_utc(row.due_date),
            title=row.title,
            recipient_name=_full_name(row.first_name, row.last_name),
            recipient_email=row.email,
            recipient_phone=row.phone,
        )
        for row in db.execute(stmt)
    ]


def find_due_kyc_renewals(
    db: Session, tenant_id: UUID, today: date | None = None
) -> list[NotifiableEvent]:
    """
    Verified KYC documents whose renewal_reminder_date falls within the
    next REMINDER_KYC_WINDOW_DAYS days (inclusive). Lead-time settings do
    not apply; unverified documents are never candidates.
    """
    start = today or utcnow().date()
    end = start + timedelta(days=settings.REMINDER_KYC_WINDOW_DAYS)
    stmt = (
        select(
            KycDocument.id,
            KycDocument.document_type,
            KycDocument.document_number,
            KycDocument.renewal_reminder_date,
            Client.first_name,
            Client.last_name,
            Client.email,
            Client.phone,
        )
        .join(Client, KycDocument.client_id == Client.id)
        .where(
            and_(
                Client.tenant_id == tenant_id,
                KycDocument.is_verified.is_(True),
                KycDocument.renewal_reminder_date.between(start, end),
            )
        )
        .order_by(KycDocument.renewal_reminder_date, KycDocument.id)
    )
    return [
        NotifiableEvent(
            tenant_id=tenant_id,
            entity_type=EntityType.KYC,
            entity_id=row.id,
            scheduled_at=row.renewal_reminder_date,
            title=row.document_type,
            recipient_name=_full_name(row.first_name, row.last_name),
            recipient_email=row.email,
            recipient_phone=row.phone,
            document_type=row.document_type,
            document_number=row.document_number,
        )
        for row in db.execute(stmt)
    ]


@dataclass(frozen=True)
class EventSource:
    """One query surface: which settings field (if any) supplies its lead time."""

    entity_type: EntityType
    finder: Callable[..., list[NotifiableEvent]]
    lead_setting: str | None


# Processing order within a tick
EVENT_SOURCES: Sequence[EventSource] = (
    EventSource(EntityType.HEARING, find_due_hearings, "hearing_reminder_minutes"),
    EventSource(EntityType.FILING, find_due_filings, "filing_reminder_minutes"),
    EventSource(EntityType.TASK, find_due_task_deadlines, "task_reminder_minutes"),
    EventSource(EntityType.KYC, find_due_kyc_renewals, None),
)
