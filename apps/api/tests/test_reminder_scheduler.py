"""Tests for the reminder tick: fan-out, dedup and failure isolation."""

from __future__ import annotations

from datetime import timedelta

import pytest

from conftest import (
    NOW,
    install_legacy_settings_row,
    make_case,
    make_client,
    make_event,
    make_tenant,
    make_user,
)

from app.core import migrations
from app.db.enums import EntityType, NotificationChannel
from app.db.models import KycDocument, Task
from app.db.session import engine
from app.services import reminder_ledger_service, reminder_scheduler_service, reminder_settings_service


def _tick(session_factory, dispatcher, now=NOW):
    return reminder_scheduler_service.run_tick(
        session_factory=session_factory, dispatcher=dispatcher, now=now
    )


def _rows(db, tenant_id):
    return [
        (row.entity_type, row.entity_id, row.recipient, row.channel)
        for row in reminder_ledger_service.list_sent(db, tenant_id)
    ]


def test_hearing_email_only_client_gets_single_email(
    db, session_factory, dispatcher, transports, test_tenant, test_client, hearing_soon
):
    summary = _tick(session_factory, dispatcher)

    assert _rows(db, test_tenant.id) == [
        ("hearing", hearing_soon.id, "client@example.com", "email")
    ]
    assert summary.sent == 1
    assert summary.candidates == 1
    assert summary.tenants_processed == 1
    assert summary.errors == []
    assert transports[NotificationChannel.SMS].sent == []
    assert transports[NotificationChannel.WHATSAPP].sent == []
    recipient, subject, body = transports[NotificationChannel.EMAIL].sent[0]
    assert recipient == "client@example.com"
    assert subject == "Upcoming Hearing: Bail hearing"


def test_consecutive_ticks_send_once(
    db, session_factory, dispatcher, transports, test_tenant, hearing_soon
):
    first = _tick(session_factory, dispatcher)
    second = _tick(session_factory, dispatcher, now=NOW + timedelta(minutes=5))

    assert len(_rows(db, test_tenant.id)) == 1
    assert first.sent == 1
    assert second.sent == 0
    assert second.skipped_duplicate == 1
    assert len(transports[NotificationChannel.EMAIL].sent) == 1


def test_lead_time_comes_from_tenant_settings(
    db, session_factory, dispatcher, test_tenant, hearing_soon
):
    reminder_settings_service.upsert_settings(db, test_tenant.id, {"hearing_reminder_minutes": 30})

    summary = _tick(session_factory, dispatcher)

    assert summary.candidates == 0
    assert _rows(db, test_tenant.id) == []

    # Comes into range once now + 30 >= start
    later = _tick(session_factory, dispatcher, now=NOW + timedelta(minutes=20))
    assert later.sent == 1


def test_disabled_channels_and_missing_contacts_are_skipped(
    db, session_factory, dispatcher, transports, test_tenant
):
    client = make_client(db, test_tenant, email=None, phone="+15550001111")
    make_event(db, make_case(db, test_tenant, client), NOW + timedelta(minutes=10))
    reminder_settings_service.upsert_settings(
        db, test_tenant.id, {"email_enabled": True, "sms_enabled": True, "whatsapp_enabled": False}
    )

    summary = _tick(session_factory, dispatcher)

    assert summary.skipped_no_contact == 1  # email
    assert summary.skipped_disabled == 1  # whatsapp
    assert summary.sent == 1
    assert [row[3] for row in _rows(db, test_tenant.id)] == ["sms"]
    assert transports[NotificationChannel.SMS].sent[0][2].startswith("Reminder: Hearing")


def test_channels_are_independent(
    db, session_factory, dispatcher, transports, test_tenant
):
    client = make_client(db, test_tenant, email="client@example.com", phone="+15550001111")
    hearing = make_event(db, make_case(db, test_tenant, client), NOW + timedelta(minutes=10))
    reminder_settings_service.upsert_settings(
        db, test_tenant.id, {"email_enabled": True, "sms_enabled": True, "whatsapp_enabled": True}
    )
    transports[NotificationChannel.SMS].fail_for.add("+15550001111")

    first = _tick(session_factory, dispatcher)

    assert first.sent == 2
    assert first.failed == 1
    assert sorted(row[3] for row in _rows(db, test_tenant.id)) == ["email", "whatsapp"]

    # SMS failure was not recorded, so the next tick retries only SMS
    transports[NotificationChannel.SMS].fail_for.clear()
    second = _tick(session_factory, dispatcher, now=NOW + timedelta(minutes=1))

    assert second.sent == 1
    assert second.skipped_duplicate == 2
    assert ("hearing", hearing.id, "+15550001111", "sms") in _rows(db, test_tenant.id)


def test_disabled_sms_sends_nothing_while_email_is_delivered(
    db, session_factory, dispatcher, transports, test_tenant
):
    client = make_client(db, test_tenant, email="client@example.com", phone="+15550001111")
    hearing = make_event(db, make_case(db, test_tenant, client), NOW + timedelta(minutes=10))
    reminder_settings_service.upsert_settings(
        db, test_tenant.id, {"email_enabled": True, "sms_enabled": False}
    )

    _tick(session_factory, dispatcher)

    assert transports[NotificationChannel.SMS].sent == []
    assert [sent[0] for sent in transports[NotificationChannel.EMAIL].sent] == ["client@example.com"]
    assert _rows(db, test_tenant.id) == [("hearing", hearing.id, "client@example.com", "email")]


def test_settings_schema_drift_never_falls_back_to_defaults(
    db, session_factory, dispatcher, transports, test_tenant, hearing_soon
):
    tenant_id = test_tenant.id
    install_legacy_settings_row(db, test_tenant, email_enabled=False)

    summary = _tick(session_factory, dispatcher)

    # Email is off for this tenant; unreadable settings must not re-enable it
    assert transports[NotificationChannel.EMAIL].sent == []
    assert summary.errors[0]["tenant_id"] == str(tenant_id)
    assert summary.errors[0]["stage"] == "settings"

    migrations.ensure_reminder_schema(engine)
    healed = _tick(session_factory, dispatcher, now=NOW + timedelta(minutes=1))

    assert healed.errors == []
    assert healed.skipped_disabled == 3
    assert transports[NotificationChannel.EMAIL].sent == []


def test_unavailable_channel_is_not_recorded(
    db, session_factory, dispatcher, transports, test_tenant
):
    client = make_client(db, test_tenant, email="client@example.com", phone="+15550001111")
    case = make_case(db, test_tenant, client)
    make_event(db, case, NOW + timedelta(minutes=10))
    make_event(db, case, NOW + timedelta(minutes=20))
    reminder_settings_service.upsert_settings(db, test_tenant.id, {"sms_enabled": True})
    transports[NotificationChannel.SMS].configured = False

    summary = _tick(session_factory, dispatcher)

    assert summary.unavailable == 2
    assert summary.sent == 2
    assert all(row[3] == "email" for row in _rows(db, test_tenant.id))


def test_unexpected_error_on_one_candidate_does_not_stop_tick(
    db, session_factory, dispatcher, transports, test_tenant, monkeypatch
):
    bad = make_client(db, test_tenant, email="broken@example.com")
    good = make_client(db, test_tenant, email="fine@example.com")
    make_event(db, make_case(db, test_tenant, bad), NOW + timedelta(minutes=5))
    make_event(db, make_case(db, test_tenant, good), NOW + timedelta(minutes=10))

    email = transports[NotificationChannel.EMAIL]
    original_send = email.send

    def flaky_send(recipient, subject, body):
        if recipient == "broken@example.com":
            raise RuntimeError("template blew up")
        return original_send(recipient, subject, body)

    monkeypatch.setattr(email, "send", flaky_send)

    summary = _tick(session_factory, dispatcher)

    assert summary.failed == 1
    assert summary.sent == 1
    assert [row[2] for row in _rows(db, test_tenant.id)] == ["fine@example.com"]


def test_tenant_query_failure_skips_only_that_tenant(
    db, session_factory, dispatcher, test_tenant, hearing_soon, monkeypatch
):
    broken = make_tenant(db, name="Broken Firm")
    broken_case = make_case(db, broken, make_client(db, broken, email="x@broken.example"))
    make_event(db, broken_case, NOW + timedelta(minutes=5))

    real_get_settings = reminder_settings_service.get_settings

    def get_settings(session, tenant_id):
        if tenant_id == broken.id:
            raise RuntimeError("connection reset")
        return real_get_settings(session, tenant_id)

    monkeypatch.setattr(reminder_settings_service, "get_settings", get_settings)

    summary = _tick(session_factory, dispatcher)

    assert summary.tenants_processed == 2
    assert summary.sent == 1
    assert len(summary.errors) == 1
    assert summary.errors[0]["tenant_id"] == str(broken.id)
    assert summary.errors[0]["stage"] == "settings"
    assert _rows(db, broken.id) == []
    assert len(_rows(db, test_tenant.id)) == 1


def test_task_and_kyc_reminders(db, session_factory, dispatcher, transports, test_tenant, test_client):
    user = make_user(db, test_tenant)
    task = Task(
        tenant_id=test_tenant.id,
        assigned_to=user.id,
        title="Draft reply",
        due_date=NOW + timedelta(minutes=30),
    )
    verified = KycDocument(
        client_id=test_client.id,
        document_type="Passport",
        renewal_reminder_date=NOW.date() + timedelta(days=3),
        is_verified=True,
    )
    unverified = KycDocument(
        client_id=test_client.id,
        document_type="Aadhaar",
        renewal_reminder_date=NOW.date() + timedelta(days=3),
        is_verified=False,
    )
    db.add_all([task, verified, unverified])
    db.commit()

    summary = _tick(session_factory, dispatcher)

    rows = _rows(db, test_tenant.id)
    assert ("task", task.id, user.email, "email") in rows
    assert ("kyc", verified.id, test_client.email, "email") in rows
    assert all(row[1] != unverified.id for row in rows)
    assert summary.sent == 2


def test_summary_serializes(session_factory, dispatcher, hearing_soon):
    data = _tick(session_factory, dispatcher).to_dict()

    assert data["sent"] == 1
    assert isinstance(data["started_at"], str)
    assert isinstance(data["finished_at"], str)
    assert data["errors"] == []


def test_overlapping_tick_is_rejected(session_factory, dispatcher):
    assert reminder_scheduler_service._tick_lock.acquire(blocking=False)
    try:
        with pytest.raises(reminder_scheduler_service.TickAlreadyRunning):
            _tick(session_factory, dispatcher)
    finally:
        reminder_scheduler_service._tick_lock.release()

    # Lock released: next tick runs
    assert _tick(session_factory, dispatcher).tenants_processed == 0


def test_reminders_go_out_per_entity_type(db, session_factory, dispatcher, test_tenant, test_case):
    from app.db.enums import CalendarEventType

    make_event(db, test_case, NOW + timedelta(minutes=5))
    make_event(db, test_case, NOW + timedelta(minutes=5), event_type=CalendarEventType.FILING)

    _tick(session_factory, dispatcher)

    types = sorted(row[0] for row in _rows(db, test_tenant.id))
    assert types == [EntityType.FILING.value, EntityType.HEARING.value]
