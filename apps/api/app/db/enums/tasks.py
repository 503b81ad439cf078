"""Task-related enums."""

from enum import Enum


class TaskStatus(str, Enum):
    """Task lifecycle status. Only pending tasks receive deadline reminders."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
