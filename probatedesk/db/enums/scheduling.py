"""Callback scheduling and requisition enums."""

from enum import Enum


class CallbackStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"

    @classmethod
    def inactive(cls) -> set[str]:
        """Statuses that release the booked slot."""
        return {cls.CANCELLED.value, cls.NO_SHOW.value}


class RequisitionStatus(str, Enum):
    OPEN = "open"
    RESPONDED = "responded"
    RESOLVED = "resolved"
