"""Reminder message rendering (subject + body per entity type and channel)."""

from __future__ import annotations

from datetime import date, datetime

from app.db.enums import EntityType, NotificationChannel
from app.services.reminder_event_service import NotifiableEvent


def _format_when(value: datetime | date) -> str:
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M UTC")
    return value.isoformat()


def _kyc_label(event: NotifiableEvent) -> str:
    if event.document_number:
        return f"{event.document_type} (Number: {event.document_number})"
    return event.document_type or "document"


def render_message(event: NotifiableEvent, channel: NotificationChannel) -> tuple[str, str]:
    """
    Build (subject, body) for a reminder.

    Email gets a full sentence; SMS and WhatsApp get the short
    "Reminder: ..." form. Subject is ignored by phone channels.
    """
    when = _format_when(event.scheduled_at)
    short = channel != NotificationChannel.EMAIL

    if event.entity_type == EntityType.HEARING:
        subject = f"Upcoming Hearing: {event.title}"
        if short:
            body = f"Reminder: Hearing scheduled for {when} for case {event.case_number}"
        else:
            body = f"You have a hearing scheduled for {when} for case {event.case_number}."
    elif event.entity_type == EntityType.FILING:
        subject = f"Upcoming Filing: {event.title}"
        if short:
            body = f"Reminder: Filing scheduled for {when} for case {event.case_number}"
        else:
            body = f"You have a filing scheduled for {when} for case {event.case_number}."
    elif event.entity_type == EntityType.TASK:
        subject = f"Task Due: {event.title}"
        if short:
            body = f"Reminder: Task '{event.title}' is due {when}"
        else:
            body = f"You have a task due: {event.title}. Due date: {when}."
    elif event.entity_type == EntityType.KYC:
        subject = f"KYC Document Renewal Due: {event.document_type}"
        prefix = "Reminder: Your" if short else "Your"
        body = f"{prefix} {_kyc_label(event)} is due for renewal on {when}."
    else:
        raise ValueError(f"Unknown reminder entity type: {event.entity_type}")

    if event.recipient_name and not short:
        body = f"Dear {event.recipient_name},\n\n{body}"
    return subject, body
