"""Enum definitions for application constants."""

from app.db.enums.calendar import CalendarEventType
from app.db.enums.entities import EntityType
from app.db.enums.notifications import DispatchStatus, NotificationChannel
from app.db.enums.tasks import TaskStatus

__all__ = [
    "CalendarEventType",
    "DispatchStatus",
    "EntityType",
    "NotificationChannel",
    "TaskStatus",
]
