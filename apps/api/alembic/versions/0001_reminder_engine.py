"""Reminder engine: tenant reminder settings + sent-reminder ledger

Revision ID: 0001_reminder_engine
Revises:
Create Date: 2026-10-19

Tables:
- tenant_settings: Per-tenant lead times and channel toggles
- reminders_log: Append-only dedup ledger, unique per
  (tenant_id, entity_type, entity_id, recipient, channel)

Expects the tenants table owned by the tenant subsystem to exist.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_reminder_engine"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "tenant_settings",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "tenant_id",
            sa.Uuid(),
            sa.ForeignKey("tenants.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("hearing_reminder_minutes", sa.Integer(), server_default="60", nullable=False),
        sa.Column("filing_reminder_minutes", sa.Integer(), server_default="60", nullable=False),
        sa.Column("task_reminder_minutes", sa.Integer(), server_default="60", nullable=False),
        sa.Column("email_enabled", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("sms_enabled", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("whatsapp_enabled", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.UniqueConstraint("tenant_id", name="uq_tenant_settings_tenant_id"),
    )

    op.create_table(
        "reminders_log",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.Uuid(), nullable=False),
        sa.Column("recipient", sa.String(255), nullable=False),
        sa.Column("channel", sa.String(20), nullable=False),
        sa.Column(
            "sent_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.UniqueConstraint(
            "tenant_id", "entity_type", "entity_id", "recipient", "channel", name="uniq_reminder"
        ),
    )
    op.create_index(
        "idx_reminders_log_tenant_time", "reminders_log", ["tenant_id", "sent_at"]
    )


def downgrade() -> None:
    op.drop_index("idx_reminders_log_tenant_time", table_name="reminders_log")
    op.drop_table("reminders_log")
    op.drop_table("tenant_settings")
