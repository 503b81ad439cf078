"""Pydantic schemas for API request/response models."""

from app.schemas.reminder import (
    ReminderRunResponse,
    ReminderSettingsRead,
    ReminderSettingsUpdate,
    TickError,
)

__all__ = [
    "ReminderRunResponse",
    "ReminderSettingsRead",
    "ReminderSettingsUpdate",
    "TickError",
]
