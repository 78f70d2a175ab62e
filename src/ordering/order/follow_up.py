"""Fulfillment split — move unfulfilled items of a shipped order into a follow-up.

Runs as a post-commit effect of ``MarkShipped``: the origin order is
already stored as DELIVERY when this executes, and nothing here can undo
that. Re-running for an origin that already has a follow-up is a no-op.
"""

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ordering.config import get_settings
from ordering.domain import ordering
from ordering.order.order import Order, OrderItem
from ordering.order.status import OrderStatus
from ordering.order.transitions import load_order

logger = structlog.get_logger(__name__)

_SPLITTABLE_STATUSES = {OrderStatus.DELIVERY.value, OrderStatus.DELIVERED.value}


def partition_items(items: list[OrderItem]) -> tuple[list[OrderItem], list[OrderItem]]:
    """Split items into (fulfilled, unfulfilled).

    Fulfilled means some quantity was actually shopped; a missing or zero
    ``actual_quantity`` is unfulfilled.
    """
    fulfilled, unfulfilled = [], []
    for item in items:
        (fulfilled if item.is_fulfilled() else unfulfilled).append(item)
    return fulfilled, unfulfilled


@ordering.command(part_of="Order")
class CreateFollowUpOrder:
    origin_order_id = Identifier(required=True)


@ordering.command_handler(part_of=Order)
class FollowUpOrderHandler:
    @handle(CreateFollowUpOrder)
    def create_follow_up(self, command):
        repo = current_domain.repository_for(Order)
        origin = load_order(command.origin_order_id)

        if origin.status not in _SPLITTABLE_STATUSES:
            logger.warning(
                "Order is not shipped, skipping follow-up",
                order_id=str(origin.id),
                status=origin.status,
            )
            return None

        existing = repo.find_follow_ups(str(origin.id))
        if existing:
            return str(existing[0].id)

        _, unfulfilled = partition_items(origin.ordered_items())
        if not unfulfilled:
            return None

        order_number = repo.allocate_order_number(
            origin.vendor_id,
            origin.household_id,
            max_attempts=get_settings().order_number_max_attempts,
        )
        follow_up = Order.create_follow_up(origin, order_number, unfulfilled)
        repo.add(follow_up)

        logger.info(
            "Follow-up order created",
            order_id=str(follow_up.id),
            order_number=order_number,
            origin_order_id=str(origin.id),
            item_count=len(unfulfilled),
        )
        return str(follow_up.id)


def create_follow_up_for(origin_order_id: str) -> str | None:
    """Create the follow-up for a shipped order. Returns its id, or None when nothing is left over."""
    return current_domain.process(
        CreateFollowUpOrder(origin_order_id=origin_order_id),
        asynchronous=False,
    )
