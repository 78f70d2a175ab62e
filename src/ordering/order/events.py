"""Order domain events — immutable facts about order state changes.

Events are past tense and versioned. They are raised for audit and for
downstream consumers; the order itself is persisted as state.
"""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A paid checkout session became an order."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    payment_session_id = String()
    vendor_id = Identifier(required=True)
    household_id = Identifier()
    user_email = String()
    item_count = Integer(required=True)
    total_amount = Float(required=True)
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class ShoppingStarted:
    """A picker started gathering the order's items."""

    __version__ = 1

    order_id = Identifier(required=True)
    picker_id = Identifier(required=True)
    picker_name = String()
    started_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderItemFulfilled:
    """The shopping result of one line was recorded."""

    __version__ = 1

    order_id = Identifier(required=True)
    item_id = Identifier(required=True)
    actual_quantity = Float(required=True)
    available = Boolean(default=True)
    substitute_product_id = Identifier()
    total_amount = Float(required=True)
    recorded_at = DateTime(required=True)


@ordering.event(part_of="Order")
class DeliveryTimeUpdated:
    """The vendor rescheduled the order's delivery."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_time = Text()
    delivery_time = Text(required=True)
    updated_by = Identifier()
    updated_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderReadyForShipping:
    """Shopping finished and the order awaits dispatch."""

    __version__ = 1

    order_id = Identifier(required=True)
    ready_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderShipped:
    """The order left the vendor and is out for delivery."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    unfulfilled_item_ids = Text()  # JSON list of item ids
    shipped_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderDelivered:
    """The customer received the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    delivered_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled before delivery."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    cancelled_by = Identifier()
    reason = String()
    cancelled_at = DateTime(required=True)


@ordering.event(part_of="Order")
class FollowUpOrderCreated:
    """Unfulfilled items of a shipped order were moved into a new order."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    origin_order_id = Identifier(required=True)
    origin_order_number = String(required=True)
    item_count = Integer(required=True)
    total_amount = Float(required=True)
    created_at = DateTime(required=True)
