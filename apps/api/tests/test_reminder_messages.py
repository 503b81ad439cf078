"""Tests for reminder message rendering."""

import uuid
from datetime import date, datetime, timezone

import pytest

from app.db.enums import EntityType, NotificationChannel
from app.services.reminder_event_service import NotifiableEvent
from app.services.reminder_message_service import render_message


def _event(entity_type, **overrides):
    fields = dict(
        tenant_id=uuid.uuid4(),
        entity_type=entity_type,
        entity_id=uuid.uuid4(),
        scheduled_at=datetime(2026, 3, 2, 9, 45, tzinfo=timezone.utc),
        title="Bail hearing",
        recipient_name="Asha Rao",
        case_number="CIV-001",
    )
    fields.update(overrides)
    return NotifiableEvent(**fields)


def test_hearing_email_has_greeting_and_case_number():
    subject, body = render_message(_event(EntityType.HEARING), NotificationChannel.EMAIL)

    assert subject == "Upcoming Hearing: Bail hearing"
    assert body.startswith("Dear Asha Rao,\n\n")
    assert "2026-03-02 09:45 UTC" in body
    assert "case CIV-001" in body


def test_sms_and_whatsapp_use_short_form():
    event = _event(EntityType.FILING, title="Written statement")

    for channel in (NotificationChannel.SMS, NotificationChannel.WHATSAPP):
        subject, body = render_message(event, channel)
        assert subject == "Upcoming Filing: Written statement"
        assert body == "Reminder: Filing scheduled for 2026-03-02 09:45 UTC for case CIV-001"


def test_task_message():
    subject, body = render_message(
        _event(EntityType.TASK, title="Draft reply", recipient_name=""),
        NotificationChannel.EMAIL,
    )

    assert subject == "Task Due: Draft reply"
    assert body == "You have a task due: Draft reply. Due date: 2026-03-02 09:45 UTC."


def test_kyc_message_uses_document_details_and_date():
    event = _event(
        EntityType.KYC,
        scheduled_at=date(2026, 3, 5),
        title="Passport",
        document_type="Passport",
        document_number="P1234567",
    )

    subject, body = render_message(event, NotificationChannel.SMS)

    assert subject == "KYC Document Renewal Due: Passport"
    assert body == "Reminder: Your Passport (Number: P1234567) is due for renewal on 2026-03-05."


def test_unknown_entity_type_raises():
    with pytest.raises(ValueError):
        render_message(_event("appointment"), NotificationChannel.EMAIL)
