"""
Reminder Scheduler Service - one reminder "tick" across all tenants.

Fan-out order is fixed: tenant -> event type -> candidate -> channel.
For each (candidate, channel): check the ledger, dispatch, record on
success. Everything runs sequentially on one session so the
check/dispatch/record sequence has a single writer per tick.

Failure isolation:
- a candidate/channel exception is logged and counted, the loop continues
- a tenant query failure skips the rest of that tenant only
- nothing is retried inside a tick; unsent reminders are picked up again
  by the next tick while they stay inside their window
"""

from __future__ import annotations

import logging
import threading
import uuid
from contextlib import AbstractContextManager
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Callable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.structured_logging import build_log_context
from app.db.enums import DispatchStatus, NotificationChannel
from app.db.models import Tenant
from app.db.session import SessionLocal
from app.services import (
    reminder_event_service,
    reminder_ledger_service,
    reminder_message_service,
    reminder_settings_service,
)
from app.services.reminder_dispatch_service import ReminderDispatcher
from app.services.reminder_event_service import NotifiableEvent, TenantQueryError
from app.services.reminder_settings_service import ReminderSettingsData

logger = logging.getLogger(__name__)

CHANNEL_ORDER = (
    NotificationChannel.EMAIL,
    NotificationChannel.SMS,
    NotificationChannel.WHATSAPP,
)

CHANNEL_TOGGLES = {
    NotificationChannel.EMAIL: "email_enabled",
    NotificationChannel.SMS: "sms_enabled",
    NotificationChannel.WHATSAPP: "whatsapp_enabled",
}

# Single-flight guard: overlapping triggers in this process do not run concurrently
_tick_lock = threading.Lock()


class TickAlreadyRunning(RuntimeError):
    """Raised when a tick is requested while another is in progress."""


@dataclass
class TickSummary:
    tick_id: str
    started_at: datetime
    finished_at: datetime | None = None
    tenants_processed: int = 0
    candidates: int = 0
    sent: int = 0
    skipped_duplicate: int = 0
    skipped_disabled: int = 0
    skipped_no_contact: int = 0
    unavailable: int = 0
    failed: int = 0
    errors: list[dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["started_at"] = self.started_at.isoformat()
        data["finished_at"] = self.finished_at.isoformat() if self.finished_at else None
        return data


@dataclass
class _TickState:
    summary: TickSummary
    dispatcher: ReminderDispatcher
    now: datetime
    unavailable_channels: set[NotificationChannel] = field(default_factory=set)


def list_tenant_ids(db: Session) -> list[UUID]:
    return list(db.execute(select(Tenant.id).order_by(Tenant.id)).scalars())


def _load_events(
    db: Session,
    source: reminder_event_service.EventSource,
    tenant_id: UUID,
    tenant_settings: ReminderSettingsData,
    now: datetime,
) -> list[NotifiableEvent]:
    if source.lead_setting is None:
        return source.finder(db, tenant_id, today=now.date())
    lead_minutes = getattr(tenant_settings, source.lead_setting)
    return source.finder(db, tenant_id, lead_minutes, now=now)


def _process_channel(
    db: Session,
    state: _TickState,
    event: NotifiableEvent,
    channel: NotificationChannel,
    tenant_settings: ReminderSettingsData,
) -> None:
    summary = state.summary

    if not getattr(tenant_settings, CHANNEL_TOGGLES[channel]):
        summary.skipped_disabled += 1
        return

    recipient = event.recipient_for(channel)
    if recipient is None:
        summary.skipped_no_contact += 1
        return

    if channel in state.unavailable_channels:
        summary.unavailable += 1
        return

    if reminder_ledger_service.was_sent(
        db, event.tenant_id, event.entity_type, event.entity_id, recipient, channel
    ):
        summary.skipped_duplicate += 1
        return

    subject, body = reminder_message_service.render_message(event, channel)
    result = state.dispatcher.send(channel, recipient, subject, body)

    if result.status == DispatchStatus.UNAVAILABLE:
        state.unavailable_channels.add(channel)
        summary.unavailable += 1
        return
    if result.status == DispatchStatus.FAILED:
        summary.failed += 1
        return

    reminder_ledger_service.record_sent(
        db, event.tenant_id, event.entity_type, event.entity_id, recipient, channel
    )
    summary.sent += 1


def _process_candidate(
    db: Session,
    state: _TickState,
    event: NotifiableEvent,
    tenant_settings: ReminderSettingsData,
) -> None:
    state.summary.candidates += 1
    for channel in CHANNEL_ORDER:
        try:
            _process_channel(db, state, event, channel, tenant_settings)
        except Exception as exc:
            db.rollback()
            state.summary.failed += 1
            logger.exception(
                "Reminder dispatch failed for %s %s via %s: %s",
                event.entity_type.value,
                event.entity_id,
                channel.value,
                type(exc).__name__,
                extra=build_log_context(
                    tenant_id=str(event.tenant_id),
                    tick_id=state.summary.tick_id,
                    entity_type=event.entity_type.value,
                    entity_id=str(event.entity_id),
                    channel=channel.value,
                ),
            )


def process_tenant(db: Session, state: _TickState, tenant_id: UUID) -> None:
    """Run every event source for one tenant. Raises TenantQueryError on query failure."""
    try:
        tenant_settings = reminder_settings_service.get_settings(db, tenant_id)
    except Exception as exc:
        raise TenantQueryError(tenant_id, "settings", exc) from exc

    for source in reminder_event_service.EVENT_SOURCES:
        try:
            events = _load_events(db, source, tenant_id, tenant_settings, state.now)
        except Exception as exc:
            raise TenantQueryError(tenant_id, f"{source.entity_type.value} query", exc) from exc

        if events:
            logger.info(
                "Tenant %s: %d %s reminder candidate(s)",
                tenant_id,
                len(events),
                source.entity_type.value,
            )
        for event in events:
            _process_candidate(db, state, event, tenant_settings)


def run_tick(
    session_factory: Callable[[], AbstractContextManager[Session]] = SessionLocal,
    dispatcher: ReminderDispatcher | None = None,
    now: datetime | None = None,
) -> TickSummary:
    """
    Run one reminder pass over all tenants and return its summary.

    Raises TickAlreadyRunning if another tick holds the single-flight lock.
    Errors enumerating tenants propagate; everything below that level is
    contained and reported in the summary.
    """
    if not _tick_lock.acquire(blocking=False):
        raise TickAlreadyRunning("A reminder tick is already running")
    try:
        return _run_tick(session_factory, dispatcher or ReminderDispatcher(), now)
    finally:
        _tick_lock.release()


def _run_tick(
    session_factory: Callable[[], AbstractContextManager[Session]],
    dispatcher: ReminderDispatcher,
    now: datetime | None,
) -> TickSummary:
    started_at = reminder_event_service.utcnow()
    summary = TickSummary(tick_id=uuid.uuid4().hex[:12], started_at=started_at)
    state = _TickState(summary=summary, dispatcher=dispatcher, now=now or started_at)
    logger.info("Reminder tick %s starting", summary.tick_id)

    with session_factory() as db:
        for tenant_id in list_tenant_ids(db):
            try:
                process_tenant(db, state, tenant_id)
            except TenantQueryError as exc:
                db.rollback()
                summary.errors.append(
                    {"tenant_id": str(tenant_id), "stage": exc.stage, "error": str(exc.cause)}
                )
                logger.error(
                    "Reminder tick %s: %s; skipping rest of tenant",
                    summary.tick_id,
                    exc,
                    extra=build_log_context(tenant_id=str(tenant_id), tick_id=summary.tick_id),
                )
            summary.tenants_processed += 1

    summary.finished_at = reminder_event_service.utcnow()
    logger.info(
        "Reminder tick %s complete (tenants=%s candidates=%s sent=%s duplicates=%s "
        "unavailable=%s failed=%s errors=%s)",
        summary.tick_id,
        summary.tenants_processed,
        summary.candidates,
        summary.sent,
        summary.skipped_duplicate,
        summary.unavailable,
        summary.failed,
        len(summary.errors),
    )
    return summary
