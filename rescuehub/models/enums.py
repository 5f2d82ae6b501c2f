"""Closed value sets stored as plain strings in the database."""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    USER = "user"
    RESCUER = "rescuer"
    ADMIN = "admin"


class RescueStatus(str, Enum):
    OPEN = "open"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def rank(self) -> int:
        return STATUS_RANK[self]

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @classmethod
    def parse(cls, value: str | None) -> "RescueStatus | None":
        """Return the matching status, or None for anything outside the five values."""
        if value is None:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


STATUS_RANK: dict[RescueStatus, int] = {
    RescueStatus.OPEN: 0,
    RescueStatus.ASSIGNED: 1,
    RescueStatus.IN_PROGRESS: 2,
    RescueStatus.COMPLETED: 3,
    RescueStatus.CANCELLED: 3,
}

TERMINAL_STATUSES = frozenset({RescueStatus.COMPLETED, RescueStatus.CANCELLED})

# Every edge of the rescue lifecycle. Anything not listed is illegal.
ALLOWED_TRANSITIONS: dict[RescueStatus, frozenset[RescueStatus]] = {
    RescueStatus.OPEN: frozenset({
        RescueStatus.ASSIGNED, RescueStatus.IN_PROGRESS, RescueStatus.CANCELLED,
    }),
    RescueStatus.ASSIGNED: frozenset({RescueStatus.IN_PROGRESS, RescueStatus.CANCELLED}),
    RescueStatus.IN_PROGRESS: frozenset({RescueStatus.COMPLETED, RescueStatus.CANCELLED}),
    RescueStatus.COMPLETED: frozenset(),
    RescueStatus.CANCELLED: frozenset(),
}


class UrgencyLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Lower sorts first in the rescuer pool.
URGENCY_ORDER: dict[UrgencyLevel, int] = {
    UrgencyLevel.CRITICAL: 1,
    UrgencyLevel.HIGH: 2,
    UrgencyLevel.MEDIUM: 3,
    UrgencyLevel.LOW: 4,
}


class DogType(str, Enum):
    STRAY = "stray"
    OWNED = "owned"
    ABANDONED = "abandoned"
    INJURED = "injured"


class DogStatus(str, Enum):
    RESCUED = "rescued"
    AVAILABLE = "available"
    ADOPTED = "adopted"


class AdoptionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
