# hallpass/constants/waitlist.py
"""
Constants for waitlist entry status values and the request actions that
drive them.

Every action string accepted from a caller is parsed into one of these
closed enumerations before it reaches the engine.
"""

from enum import Enum


class WaitlistStatus(str, Enum):
    """Lifecycle of a WaitListEntry."""
    WAITING = "waiting"
    APPROVED = "approved"
    CHECKED_OUT = "checked_out"
    CANCELLED = "cancelled"

    @classmethod
    def active_values(cls) -> list[str]:
        """Statuses that still hold a queue position."""
        return [cls.WAITING.value, cls.APPROVED.value]


# Allowed transitions; anything else is a programming error.
VALID_TRANSITIONS = {
    WaitlistStatus.WAITING.value: {
        WaitlistStatus.APPROVED.value,
        WaitlistStatus.CANCELLED.value,
        WaitlistStatus.WAITING.value,
    },
    WaitlistStatus.APPROVED.value: {
        WaitlistStatus.CHECKED_OUT.value,
        WaitlistStatus.CANCELLED.value,
        WaitlistStatus.WAITING.value,
    },
    WaitlistStatus.CHECKED_OUT.value: set(),
    WaitlistStatus.CANCELLED.value: set(),
}


class WaitlistAction(str, Enum):
    """Administrative actions a teacher can apply to a waitlist entry."""
    SKIP = "skip"
    REMOVE = "remove"
    APPROVE = "approve"


class CheckInAction(str, Enum):
    """Direction of a scan at the classroom door."""
    IN = "in"
    OUT = "out"


class CheckoutOutcome(str, Enum):
    """Result of an admission decision."""
    ADMITTED = "admitted"
    WAITLISTED = "waitlisted"
    ALREADY_WAITING = "already_waiting"


class WaitlistEventType(str, Enum):
    """Audit log event types for waitlist entries."""
    JOINED = "JOINED"
    PROMOTED = "PROMOTED"
    APPROVED = "APPROVED"
    SKIPPED = "SKIPPED"
    REMOVED = "REMOVED"
    CHECKED_OUT = "CHECKED_OUT"
    EXPIRED = "EXPIRED"


DEFAULT_DESTINATIONS = [
    {"name": "Bathroom", "sort_order": 0},
    {"name": "Office", "sort_order": 1},
]
