"""CLI tools for reminder administration."""

import json
import uuid

import click

from app.core.migrations import ensure_reminder_schema
from app.db.models import Tenant
from app.db.session import SessionLocal, engine


@click.group()
def cli():
    """Reminder engine CLI tools."""
    pass


def _parse_tenant_id(tenant_id: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(tenant_id)
    except ValueError:
        click.echo(f"❌ Invalid tenant id: {tenant_id}")
        return None


@cli.command()
def bootstrap():
    """
    Create the reminder tables if they are missing.

    Safe to run repeatedly; run once before starting the worker.

    Example:
        python -m app.cli bootstrap
    """
    created = ensure_reminder_schema(engine)
    if created:
        click.echo(f"✓ Created tables: {', '.join(created)}")
    else:
        click.echo("✓ Reminder tables already present")


@cli.command("run-reminders")
def run_reminders():
    """
    Run one reminder tick now and print its summary.

    Example:
        python -m app.cli run-reminders
    """
    from app.services import reminder_scheduler_service

    try:
        summary = reminder_scheduler_service.run_tick(session_factory=SessionLocal)
    except reminder_scheduler_service.TickAlreadyRunning:
        click.echo("❌ A reminder run is already in progress")
        raise SystemExit(1)

    click.echo(f"✓ Reminder tick {summary.tick_id} complete")
    click.echo(f"  Tenants: {summary.tenants_processed}")
    click.echo(f"  Candidates: {summary.candidates}")
    click.echo(f"  Sent: {summary.sent}")
    click.echo(f"  Already sent: {summary.skipped_duplicate}")
    click.echo(f"  Unavailable: {summary.unavailable}  Failed: {summary.failed}")
    for error in summary.errors:
        click.echo(f"  ⚠ tenant {error['tenant_id']}: {error['stage']}: {error['error']}")


@cli.command("show-reminder-settings")
@click.option("--tenant-id", required=True, help="Tenant UUID")
def show_reminder_settings(tenant_id: str):
    """
    Print a tenant's effective reminder settings as JSON.

    Example:
        python -m app.cli show-reminder-settings --tenant-id "<uuid>"
    """
    from app.services import reminder_settings_service

    parsed = _parse_tenant_id(tenant_id)
    if parsed is None:
        return

    db = SessionLocal()
    try:
        data = reminder_settings_service.get_settings(db, parsed)
        click.echo(json.dumps(data.to_dict(), indent=2))
    finally:
        db.close()


@cli.command("set-reminder-settings")
@click.option("--tenant-id", required=True, help="Tenant UUID")
@click.option("--hearing-minutes", type=click.IntRange(min=0), default=None)
@click.option("--filing-minutes", type=click.IntRange(min=0), default=None)
@click.option("--task-minutes", type=click.IntRange(min=0), default=None)
@click.option("--email/--no-email", default=None, help="Email reminders")
@click.option("--sms/--no-sms", default=None, help="SMS reminders")
@click.option("--whatsapp/--no-whatsapp", default=None, help="WhatsApp reminders")
def set_reminder_settings(
    tenant_id: str,
    hearing_minutes: int | None,
    filing_minutes: int | None,
    task_minutes: int | None,
    email: bool | None,
    sms: bool | None,
    whatsapp: bool | None,
):
    """
    Update a tenant's reminder settings. Unspecified options keep their
    current value.

    Example:
        python -m app.cli set-reminder-settings --tenant-id "<uuid>" --hearing-minutes 120 --sms
    """
    from app.services import reminder_settings_service

    parsed = _parse_tenant_id(tenant_id)
    if parsed is None:
        return

    db = SessionLocal()
    try:
        if db.get(Tenant, parsed) is None:
            click.echo(f"❌ Tenant not found: {tenant_id}")
            return

        current = reminder_settings_service.get_settings(db, parsed).to_dict()
        overrides = {
            "hearing_reminder_minutes": hearing_minutes,
            "filing_reminder_minutes": filing_minutes,
            "task_reminder_minutes": task_minutes,
            "email_enabled": email,
            "sms_enabled": sms,
            "whatsapp_enabled": whatsapp,
        }
        current.update({k: v for k, v in overrides.items() if v is not None})

        data = reminder_settings_service.upsert_settings(db, parsed, current)
        click.echo(f"✓ Updated reminder settings for tenant {tenant_id}")
        click.echo(json.dumps(data.to_dict(), indent=2))
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


if __name__ == "__main__":
    cli()
