"""Order aggregate (CQRS) — the core of the ordering domain.

An Order is one customer's purchase from one vendor. It is created either
from a paid checkout session or as a follow-up for items that could not be
fulfilled when the origin order shipped. Every status change and item edit
is authorized through ``ordering.order.policy``.

State Machine:
    {PENDING, FOLLOW_UP} → SHOPPING → READY_FOR_SHIPPING → DELIVERY → DELIVERED
    {any non-terminal} → CANCELLED

Totals invariant:
    total_amount == Σ(price × effective_quantity) + delivery_fee
    effective_quantity = actual_quantity if set, else quantity
"""

import json
from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from ordering.domain import ordering
from ordering.order.events import (
    DeliveryTimeUpdated,
    FollowUpOrderCreated,
    OrderCancelled,
    OrderDelivered,
    OrderItemFulfilled,
    OrderPlaced,
    OrderReadyForShipping,
    OrderShipped,
    ShoppingStarted,
)
from ordering.order.policy import OrderAction, authorize
from ordering.order.status import OrderStatus

ADDRESS_PENDING = "Address to be confirmed"
FOLLOW_UP_NOTE = "Follow-up order for items not fulfilled in {origin_number}"
GATEWAY_PAYMENT_STATUS = "client"

_ADDRESS_PARTS = ("neighborhood", "street", "building_number", "household_number")
_DELIVERY_FIELDS = (
    "time",
    "phone",
    "notes",
    "neighborhood",
    "street",
    "building_number",
    "household_number",
    "entrance_code",
    "address",
)


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class OrderTotals:
    """Money summary of an order, derived from its items."""

    items_total = Float(default=0.0)
    delivery_fee = Float(default=0.0)
    total_amount = Float(default=0.0)


@ordering.value_object(part_of="Order")
class DeliveryDetails:
    """Where and when the order is delivered."""

    # Free text typed at checkout; stored as given.
    time = Text()
    phone = Text()
    notes = Text()
    neighborhood = Text()
    street = Text()
    building_number = Text()
    household_number = Text()
    entrance_code = Text()
    address = Text()


def build_delivery_details(details: dict | None) -> DeliveryDetails:
    """Build delivery details from a checkout metadata blob.

    ``address`` is composed from the neighborhood, street, building and
    household number when not given explicitly.
    """
    details = {k: v for k, v in (details or {}).items() if k in _DELIVERY_FIELDS and v not in (None, "")}
    values = {k: str(v) for k, v in details.items()}
    if not values.get("address"):
        parts = [values[p] for p in _ADDRESS_PARTS if values.get(p)]
        values["address"] = ", ".join(parts) if parts else ADDRESS_PENDING
    return DeliveryDetails(**values)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    """A single product line of an order."""

    product_id = Identifier(required=True)
    product_name = String(max_length=255)
    sku = String(max_length=100)
    unit = String(max_length=50)
    subcategory = String(max_length=100)
    quantity = Float(required=True, min_value=0.0)
    actual_quantity = Float(min_value=0.0)
    price = Float(required=True, min_value=0.0)
    substitute_product_id = Identifier()
    substitute_product_name = String(max_length=255)
    modified = Boolean(default=False)
    shopped = Boolean(default=False)
    available = Boolean(default=True)
    position = Integer(default=0)

    @property
    def effective_quantity(self) -> float:
        return self.actual_quantity if self.actual_quantity is not None else self.quantity

    @property
    def line_total(self) -> float:
        return round(self.price * self.effective_quantity, 2)

    def is_fulfilled(self) -> bool:
        """A line counts as fulfilled only when some quantity was actually shopped."""
        return (self.actual_quantity or 0) > 0

    def reset_fulfillment(self) -> dict:
        """Line data for re-ordering this item with shopping results cleared."""
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "sku": self.sku,
            "unit": self.unit,
            "subcategory": self.subcategory,
            "quantity": self.quantity,
            "price": self.price,
            "position": self.position,
            "actual_quantity": None,
            "substitute_product_id": None,
            "substitute_product_name": None,
            "modified": False,
            "shopped": False,
            "available": True,
        }


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    order_number = String(required=True, max_length=100)
    payment_session_id = String(max_length=255)
    status = String(
        max_length=50,
        choices=OrderStatus,
        default=OrderStatus.PENDING.value,
    )
    items = HasMany(OrderItem)
    totals = ValueObject(OrderTotals)

    # Customer, vendor and household references
    user_email = String(max_length=255)
    vendor_id = Identifier(required=True)
    household_id = Identifier()
    household_code = String(max_length=50)
    household_name = String(max_length=255)
    household_lead_name = String(max_length=255)
    household_lead_phone = String(max_length=50)

    delivery = ValueObject(DeliveryDetails)

    picker_id = Identifier()
    picker_name = String(max_length=255)

    is_paid = Boolean(default=False)
    payment_method = String(max_length=50)
    payment_status = String(max_length=50)

    origin_order_id = Identifier()
    origin_order_number = String(max_length=100)

    cancelled_by = Identifier()
    cancellation_reason = String(max_length=500)

    created_at = DateTime()
    updated_at = DateTime()
    status_changed_at = DateTime()

    # -------------------------------------------------------------------
    # Factory methods
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        order_number: str,
        vendor_id: str,
        user_email: str,
        items_data: list[dict],
        delivery_fee: float = 0.0,
        household_id: str | None = None,
        payment_session_id: str | None = None,
        delivery: dict | None = None,
        household: dict | None = None,
        payment_method: str | None = None,
    ):
        """Create a paid order from a completed checkout session."""
        if not items_data:
            raise ValidationError({"items": ["An order needs at least one item"]})

        now = datetime.now(UTC)
        household = household or {}
        order = cls(
            order_number=order_number,
            payment_session_id=payment_session_id,
            status=OrderStatus.PENDING.value,
            user_email=user_email,
            vendor_id=vendor_id,
            household_id=household_id,
            household_code=household.get("code"),
            household_name=household.get("name"),
            household_lead_name=household.get("lead_name"),
            household_lead_phone=household.get("lead_phone"),
            delivery=build_delivery_details(delivery),
            totals=OrderTotals(delivery_fee=round(float(delivery_fee or 0), 2)),
            is_paid=True,
            payment_method=payment_method,
            payment_status=GATEWAY_PAYMENT_STATUS,
            created_at=now,
            updated_at=now,
            status_changed_at=now,
        )
        for position, item_data in enumerate(items_data):
            order.add_items(OrderItem(position=position, **item_data))
        order._recalculate_totals()

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                payment_session_id=payment_session_id,
                vendor_id=vendor_id,
                household_id=household_id,
                user_email=user_email,
                item_count=len(items_data),
                total_amount=order.totals.total_amount,
                placed_at=now,
            )
        )
        return order

    @classmethod
    def create_follow_up(cls, origin: "Order", order_number: str, items: list[OrderItem]):
        """Create a follow-up order carrying ``items`` of ``origin`` with shopping state reset.

        Delivery, customer and household context are copied from the origin;
        no delivery fee is charged again.
        """
        if not items:
            raise ValidationError({"items": ["A follow-up order needs at least one item"]})

        now = datetime.now(UTC)
        origin_delivery = origin.delivery
        delivery_values = {
            name: getattr(origin_delivery, name) for name in _DELIVERY_FIELDS if origin_delivery is not None
        }
        delivery_values["notes"] = FOLLOW_UP_NOTE.format(origin_number=origin.order_number)

        follow_up = cls(
            order_number=order_number,
            status=OrderStatus.FOLLOW_UP.value,
            user_email=origin.user_email,
            vendor_id=origin.vendor_id,
            household_id=origin.household_id,
            household_code=origin.household_code,
            household_name=origin.household_name,
            household_lead_name=origin.household_lead_name,
            household_lead_phone=origin.household_lead_phone,
            delivery=DeliveryDetails(**delivery_values),
            totals=OrderTotals(delivery_fee=0.0),
            origin_order_id=str(origin.id),
            origin_order_number=origin.order_number,
            created_at=now,
            updated_at=now,
            status_changed_at=now,
        )
        for item in sorted(items, key=lambda i: i.position or 0):
            follow_up.add_items(OrderItem(**item.reset_fulfillment()))
        follow_up._recalculate_totals()

        follow_up.raise_(
            FollowUpOrderCreated(
                order_id=str(follow_up.id),
                order_number=order_number,
                origin_order_id=str(origin.id),
                origin_order_number=origin.order_number,
                item_count=len(items),
                total_amount=follow_up.totals.total_amount,
                created_at=now,
            )
        )
        return follow_up

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def ordered_items(self) -> list[OrderItem]:
        return sorted(self.items or [], key=lambda i: i.position or 0)

    def find_item(self, item_id: str) -> OrderItem | None:
        return next((i for i in (self.items or []) if str(i.id) == str(item_id)), None)

    def _recalculate_totals(self) -> None:
        items_total = round(sum(i.price * i.effective_quantity for i in (self.items or [])), 2)
        delivery_fee = self.totals.delivery_fee if self.totals else 0.0
        self.totals = OrderTotals(
            items_total=items_total,
            delivery_fee=delivery_fee,
            total_amount=round(items_total + delivery_fee, 2),
        )

    def _transition(self, action: OrderAction, role) -> datetime:
        target = authorize(role, self.status, action)
        now = datetime.now(UTC)
        self.status = target.value
        self.status_changed_at = now
        self.updated_at = now
        return now

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def start_processing(self, role, picker_id: str | None, picker_name: str | None = None) -> None:
        """Assign a picker and begin shopping."""
        authorize(role, self.status, OrderAction.START_PROCESSING)
        if not picker_id:
            raise ValidationError({"picker_id": ["A picker identity is required to start processing"]})

        now = self._transition(OrderAction.START_PROCESSING, role)
        self.picker_id = picker_id
        self.picker_name = picker_name
        self.raise_(
            ShoppingStarted(
                order_id=str(self.id),
                picker_id=picker_id,
                picker_name=picker_name,
                started_at=now,
            )
        )

    def record_item_fulfillment(
        self,
        role,
        item_id: str,
        actual_quantity: float | None = None,
        available: bool = True,
        substitute_product_id: str | None = None,
        substitute_product_name: str | None = None,
    ) -> None:
        """Record what the picker actually got for one line."""
        authorize(role, self.status, OrderAction.EDIT_ITEMS)

        item = self.find_item(item_id)
        if item is None:
            raise ValidationError({"item_id": ["Item not found in this order"]})
        if actual_quantity is not None and actual_quantity < 0:
            raise ValidationError({"actual_quantity": ["Quantity cannot be negative"]})

        if not available:
            actual_quantity = 0.0
        elif actual_quantity is None:
            actual_quantity = item.quantity

        now = datetime.now(UTC)
        item.actual_quantity = float(actual_quantity)
        item.available = available
        item.shopped = True
        item.substitute_product_id = substitute_product_id
        item.substitute_product_name = substitute_product_name
        item.modified = item.actual_quantity != item.quantity or substitute_product_id is not None
        self._recalculate_totals()
        self.updated_at = now

        self.raise_(
            OrderItemFulfilled(
                order_id=str(self.id),
                item_id=str(item.id),
                actual_quantity=item.actual_quantity,
                available=available,
                substitute_product_id=substitute_product_id,
                total_amount=self.totals.total_amount,
                recorded_at=now,
            )
        )

    def update_delivery_time(self, role, delivery_time: str, updated_by: str | None = None) -> None:
        """Reschedule delivery. The rest of the delivery details are kept."""
        authorize(role, self.status, OrderAction.UPDATE_DELIVERY)
        delivery_time = (delivery_time or "").strip()
        if not delivery_time:
            raise ValidationError({"delivery_time": ["A delivery time is required"]})

        previous = self.delivery.time if self.delivery else None
        if self.delivery is None:
            self.delivery = build_delivery_details({"time": delivery_time})
        else:
            values = {name: getattr(self.delivery, name) for name in _DELIVERY_FIELDS}
            values["time"] = delivery_time
            self.delivery = DeliveryDetails(**values)

        now = datetime.now(UTC)
        self.updated_at = now
        self.raise_(
            DeliveryTimeUpdated(
                order_id=str(self.id),
                previous_time=previous,
                delivery_time=delivery_time,
                updated_by=updated_by,
                updated_at=now,
            )
        )

    def mark_ready(self, role) -> None:
        now = self._transition(OrderAction.MARK_READY, role)
        self.raise_(OrderReadyForShipping(order_id=str(self.id), ready_at=now))

    def mark_shipped(self, role) -> None:
        """Send the order out for delivery.

        Items with nothing shopped are reported in the event so a follow-up
        order can be created for them.
        """
        now = self._transition(OrderAction.MARK_SHIPPED, role)
        unfulfilled = [str(i.id) for i in self.ordered_items() if not i.is_fulfilled()]
        self.raise_(
            OrderShipped(
                order_id=str(self.id),
                order_number=self.order_number,
                unfulfilled_item_ids=json.dumps(unfulfilled),
                shipped_at=now,
            )
        )

    def mark_delivered(self, role) -> None:
        now = self._transition(OrderAction.MARK_DELIVERED, role)
        self.raise_(OrderDelivered(order_id=str(self.id), delivered_at=now))

    def cancel(self, role, cancelled_by: str | None = None, reason: str | None = None) -> None:
        previous = self.status
        now = self._transition(OrderAction.CANCEL, role)
        self.cancelled_by = cancelled_by
        self.cancellation_reason = reason
        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                previous_status=previous,
                cancelled_by=cancelled_by,
                reason=reason,
                cancelled_at=now,
            )
        )
