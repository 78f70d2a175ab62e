"""Order status transitions — commands and handler.

Each handler re-reads the persisted order, applies the transition (the
aggregate authorizes it against the policy table), saves it, and records
the post-commit effects of the transition in the same unit of work. The
handler returns the ids of those effects so the caller can dispatch them
once the unit of work has committed.
"""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.config import get_settings
from ordering.domain import ordering
from ordering.effects.effect import PostCommitEffect, follow_up_effect, notification_effect
from ordering.errors import NotFoundError
from ordering.notifier.messages import MessageType, RecipientType
from ordering.order.order import Order


@ordering.command(part_of="Order")
class StartProcessing:
    """A picker (or the vendor) starts shopping for the order."""

    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_name = String(max_length=255)
    actor_role = String(required=True, max_length=50)


@ordering.command(part_of="Order")
class MarkReady:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=50)


@ordering.command(part_of="Order")
class MarkShipped:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=50)


@ordering.command(part_of="Order")
class MarkDelivered:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=50)


@ordering.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=50)
    reason = String(max_length=500)


def load_order(order_id: str) -> Order:
    """Fetch the persisted order or raise ``NotFoundError``."""
    try:
        return current_domain.repository_for(Order).get(order_id)
    except ObjectNotFoundError as exc:
        raise NotFoundError(f"Order {order_id} not found", order_id=order_id) from exc


def record_effects(effects: list[PostCommitEffect]) -> list[str]:
    repo = current_domain.repository_for(PostCommitEffect)
    for effect in effects:
        repo.add(effect)
    return [str(effect.id) for effect in effects]


def order_notification(order: Order, message_type: MessageType, recipient: RecipientType) -> PostCommitEffect:
    return notification_effect(
        str(order.id),
        message_type.value,
        recipient.value,
        max_attempts=get_settings().effect_max_attempts,
    )


@ordering.command_handler(part_of=Order)
class OrderTransitionHandler:
    @handle(StartProcessing)
    def start_processing(self, command):
        order = load_order(command.order_id)
        order.start_processing(
            command.actor_role,
            picker_id=command.actor_id,
            picker_name=command.actor_name,
        )
        current_domain.repository_for(Order).add(order)
        return record_effects(
            [order_notification(order, MessageType.ORDER_PROCESSING_STARTED, RecipientType.HOUSEHOLD_LEAD)]
        )

    @handle(MarkReady)
    def mark_ready(self, command):
        order = load_order(command.order_id)
        order.mark_ready(command.actor_role)
        current_domain.repository_for(Order).add(order)
        return []

    @handle(MarkShipped)
    def mark_shipped(self, command):
        order = load_order(command.order_id)
        order.mark_shipped(command.actor_role)
        current_domain.repository_for(Order).add(order)
        return record_effects(
            [
                follow_up_effect(str(order.id), max_attempts=get_settings().effect_max_attempts),
                order_notification(order, MessageType.ORDER_SHIPPED, RecipientType.CUSTOMER),
                order_notification(order, MessageType.SHIPPING_NOTIFICATION, RecipientType.CUSTOMER),
            ]
        )

    @handle(MarkDelivered)
    def mark_delivered(self, command):
        order = load_order(command.order_id)
        order.mark_delivered(command.actor_role)
        current_domain.repository_for(Order).add(order)
        return record_effects([order_notification(order, MessageType.ORDER_DELIVERED, RecipientType.CUSTOMER)])

    @handle(CancelOrder)
    def cancel_order(self, command):
        order = load_order(command.order_id)
        order.cancel(command.actor_role, cancelled_by=command.actor_id, reason=command.reason)
        current_domain.repository_for(Order).add(order)
        return []
