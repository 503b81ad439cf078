"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database, schema created and dropped per test
- Tenant/client/case/user factories for reminder candidates
- Fake channel transports that record what was sent
- HTTPX AsyncClient with the tenant and CSRF headers
"""
import os
import uuid
from contextlib import nullcontext
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Generator

# Must be set before app modules read settings
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ["ENABLE_REMINDERS"] = "False"

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.main import app
from app.db.base import Base
from app.db.session import engine, SessionLocal
from app.core.deps import get_db
from app.db.enums import CalendarEventType, NotificationChannel
from app.db.models import CalendarEvent, Case, Client, ReminderSettings, Tenant, User
from app.services.reminder_dispatch_service import ProviderError, ReminderDispatcher


NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

# tenant_settings as deployed before the WhatsApp toggle existed
LEGACY_TENANT_SETTINGS_DDL = """
CREATE TABLE tenant_settings (
    id CHAR(32) NOT NULL PRIMARY KEY,
    tenant_id CHAR(32) NOT NULL UNIQUE REFERENCES tenants (id) ON DELETE CASCADE,
    hearing_reminder_minutes INTEGER DEFAULT 60 NOT NULL,
    filing_reminder_minutes INTEGER DEFAULT 60 NOT NULL,
    task_reminder_minutes INTEGER DEFAULT 60 NOT NULL,
    email_enabled BOOLEAN DEFAULT 1 NOT NULL,
    sms_enabled BOOLEAN DEFAULT 0 NOT NULL,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP NOT NULL,
    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP NOT NULL
)
"""


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Fresh schema for every test.

    App code commits freely; isolation comes from dropping all tables
    afterwards instead of an outer transaction.
    """
    Base.metadata.create_all(engine)
    session = SessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(engine)


@pytest.fixture
def session_factory(db: Session):
    """Hand the scheduler the test session instead of opening a new one."""
    return lambda: nullcontext(db)


# =============================================================================
# Domain Fixtures
# =============================================================================

def make_tenant(db: Session, name: str = "Test Firm") -> Tenant:
    tenant = Tenant(id=uuid.uuid4(), name=name, slug=f"firm-{uuid.uuid4().hex[:8]}")
    db.add(tenant)
    db.commit()
    return tenant


def make_client(
    db: Session,
    tenant: Tenant,
    email: str | None = "client@example.com",
    phone: str | None = None,
) -> Client:
    client = Client(
        tenant_id=tenant.id,
        first_name="Asha",
        last_name="Rao",
        email=email,
        phone=phone,
    )
    db.add(client)
    db.commit()
    return client


def make_case(db: Session, tenant: Tenant, client: Client | None) -> Case:
    case = Case(
        tenant_id=tenant.id,
        client_id=client.id if client else None,
        case_number=f"CIV-{uuid.uuid4().hex[:6].upper()}",
        title="Rao v. State",
    )
    db.add(case)
    db.commit()
    return case


def make_event(
    db: Session,
    case: Case,
    start: datetime,
    event_type: CalendarEventType = CalendarEventType.HEARING,
    title: str = "Bail hearing",
) -> CalendarEvent:
    event = CalendarEvent(
        tenant_id=case.tenant_id,
        case_id=case.id,
        title=title,
        event_type=event_type.value,
        start_datetime=start,
    )
    db.add(event)
    db.commit()
    return event


def make_user(
    db: Session,
    tenant: Tenant,
    email: str | None = "associate@firm.example",
    phone: str | None = None,
) -> User:
    user = User(
        tenant_id=tenant.id,
        email=email,
        phone=phone,
        first_name="Dev",
        last_name="Mehta",
    )
    db.add(user)
    db.commit()
    return user


def install_legacy_settings_row(db: Session, tenant: Tenant, email_enabled: bool) -> None:
    """Recreate tenant_settings without whatsapp_enabled and save one row."""
    tenant_id = tenant.id
    db.commit()
    ReminderSettings.__table__.drop(engine)
    with engine.begin() as conn:
        conn.execute(text(LEGACY_TENANT_SETTINGS_DDL))
        conn.execute(
            text(
                "INSERT INTO tenant_settings (id, tenant_id, email_enabled) "
                "VALUES (:id, :tenant_id, :email_enabled)"
            ),
            {"id": uuid.uuid4().hex, "tenant_id": tenant_id.hex, "email_enabled": email_enabled},
        )


@pytest.fixture
def test_tenant(db: Session) -> Tenant:
    return make_tenant(db)


@pytest.fixture
def test_client(db: Session, test_tenant: Tenant) -> Client:
    return make_client(db, test_tenant)


@pytest.fixture
def test_case(db: Session, test_tenant: Tenant, test_client: Client) -> Case:
    return make_case(db, test_tenant, test_client)


@pytest.fixture
def hearing_soon(db: Session, test_case: Case) -> CalendarEvent:
    """Hearing 45 minutes after NOW."""
    return make_event(db, test_case, NOW + timedelta(minutes=45))


# =============================================================================
# Dispatch Fixtures
# =============================================================================

class FakeTransport:
    """Records sends; optionally unconfigured or failing for given recipients."""

    def __init__(self, channel: NotificationChannel, configured: bool = True):
        self.channel = channel
        self.configured = configured
        self.fail_for: set[str] = set()
        self.sent: list[tuple[str, str, str]] = []

    def is_configured(self) -> bool:
        return self.configured

    def send(self, recipient: str, subject: str, body: str) -> str | None:
        if recipient in self.fail_for:
            raise ProviderError(f"rejected {recipient}")
        self.sent.append((recipient, subject, body))
        return f"msg-{len(self.sent)}"


@pytest.fixture
def transports() -> dict[NotificationChannel, FakeTransport]:
    return {channel: FakeTransport(channel) for channel in NotificationChannel}


@pytest.fixture
def dispatcher(transports) -> ReminderDispatcher:
    return ReminderDispatcher(transports)


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """Unscoped AsyncClient (no tenant header)."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def tenant_client(db: Session, test_tenant: Tenant) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient scoped to test_tenant, with CSRF header."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={
            "X-Tenant-ID": str(test_tenant.id),
            "X-Requested-With": "XMLHttpRequest",  # CSRF header
        },
    ) as c:
        yield c

    app.dependency_overrides.clear()
