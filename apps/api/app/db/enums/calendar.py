"""Calendar event enums."""

from enum import Enum


class CalendarEventType(str, Enum):
    """Kinds of calendar events attached to a case."""

    HEARING = "hearing"
    FILING = "filing"
    MEETING = "meeting"
    DEADLINE = "deadline"
    OTHER = "other"
