"""SQLAlchemy ORM models for clients and their KYC documents."""

from __future__ import annotations

from typing import TYPE_CHECKING

import uuid
from datetime import date, datetime

from sqlalchemy import Date, ForeignKey, Index, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import expression

from app.db.base import Base

if TYPE_CHECKING:
    from app.db.models import Case, Tenant


class Client(Base):
    """A firm's client. Contact details drive hearing/filing/KYC reminders."""

    __tablename__ = "clients"
    __table_args__ = (Index("idx_clients_tenant", "tenant_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    tenant: Mapped["Tenant"] = relationship(back_populates="clients")
    cases: Mapped[list["Case"]] = relationship(back_populates="client")
    kyc_documents: Mapped[list["KycDocument"]] = relationship(back_populates="client")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class KycDocument(Base):
    """
    Identity/compliance document held for a client.

    Only verified documents with a renewal_reminder_date are eligible
    for renewal reminders.
    """

    __tablename__ = "kyc_documents"
    __table_args__ = (
        Index("idx_kyc_client_renewal", "client_id", "renewal_reminder_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False
    )
    document_type: Mapped[str] = mapped_column(String(100), nullable=False)
    document_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    renewal_reminder_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_verified: Mapped[bool] = mapped_column(
        default=False, server_default=expression.false(), nullable=False
    )

    client: Mapped["Client"] = relationship(back_populates="kyc_documents")
