"""Order detail editing — record the shopping result of one line, reschedule delivery."""

from protean import handle
from protean.fields import Boolean, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.notifier.messages import MessageType, RecipientType
from ordering.order.order import Order
from ordering.order.transitions import load_order, order_notification, record_effects


@ordering.command(part_of="Order")
class RecordItemFulfillment:
    order_id = Identifier(required=True)
    item_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=50)
    actual_quantity = Float(min_value=0.0)
    available = Boolean(default=True)
    substitute_product_id = Identifier()
    substitute_product_name = String(max_length=255)


@ordering.command(part_of="Order")
class UpdateDeliveryTime:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=50)
    delivery_time = Text(required=True)


@ordering.command_handler(part_of=Order)
class ShoppingHandler:
    @handle(RecordItemFulfillment)
    def record_item_fulfillment(self, command):
        order = load_order(command.order_id)
        order.record_item_fulfillment(
            command.actor_role,
            item_id=command.item_id,
            actual_quantity=command.actual_quantity,
            available=command.available,
            substitute_product_id=command.substitute_product_id,
            substitute_product_name=command.substitute_product_name,
        )
        current_domain.repository_for(Order).add(order)
        return order.totals.total_amount

    @handle(UpdateDeliveryTime)
    def update_delivery_time(self, command):
        order = load_order(command.order_id)
        order.update_delivery_time(command.actor_role, command.delivery_time, updated_by=command.actor_id)
        current_domain.repository_for(Order).add(order)
        return record_effects([order_notification(order, MessageType.DELIVERY_DATE_UPDATED, RecipientType.CUSTOMER)])
