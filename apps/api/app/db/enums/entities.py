"""Polymorphic entity enums."""

from enum import Enum


class EntityType(str, Enum):
    """Entity types a reminder can be sent for (reminders_log.entity_type)."""

    HEARING = "hearing"
    FILING = "filing"
    TASK = "task"
    KYC = "kyc"
