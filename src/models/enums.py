"""Enums for model fields."""

from enum import Enum


class OrderSize(str, Enum):
    """Dish sizes. Pricing and ingredient caps are the same for every dish."""

    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class OrderStatus(str, Enum):
    """Lifecycle states of a persisted order."""

    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"

    def can_cancel(self) -> bool:
        """Check if an order in this state may still be cancelled."""
        return self == OrderStatus.CONFIRMED
