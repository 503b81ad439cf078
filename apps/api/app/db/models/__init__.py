"""SQLAlchemy ORM models."""

from app.db.models.auth import Tenant, User
from app.db.models.cases import CalendarEvent, Case
from app.db.models.clients import Client, KycDocument
from app.db.models.reminders import ReminderLog, ReminderSettings
from app.db.models.tasks import Task

__all__ = [
    "CalendarEvent",
    "Case",
    "Client",
    "KycDocument",
    "ReminderLog",
    "ReminderSettings",
    "Task",
    "Tenant",
    "User",
]
