"""Service layer modules."""

# Import service modules (not individual functions) for cleaner access
from app.services import reminder_settings_service
from app.services import reminder_event_service
from app.services import reminder_message_service
from app.services import reminder_ledger_service
from app.services import reminder_dispatch_service

__all__ = [
    "reminder_settings_service",
    "reminder_event_service",
    "reminder_message_service",
    "reminder_ledger_service",
    "reminder_dispatch_service",
]
