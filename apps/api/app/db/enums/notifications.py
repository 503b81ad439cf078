"""Notification-related enums."""

from enum import Enum


class NotificationChannel(str, Enum):
    """Outbound reminder transports."""

    EMAIL = "email"
    SMS = "sms"
    WHATSAPP = "whatsapp"


class DispatchStatus(str, Enum):
    """Outcome of a single send attempt on one channel."""

    SENT = "sent"
    UNAVAILABLE = "unavailable"  # Provider credentials missing
    FAILED = "failed"  # Transport raised or rejected the message
