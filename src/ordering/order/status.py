"""Order statuses and the fulfillment status graph."""

from enum import Enum


class OrderStatus(Enum):
    PENDING = "pending"
    FOLLOW_UP = "follow_up"
    SHOPPING = "shopping"
    READY_FOR_SHIPPING = "ready_for_shipping"
    DELIVERY = "delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

ACTIVE_STATUSES = frozenset(s for s in OrderStatus if s not in TERMINAL_STATUSES)
