"""Order lifecycle service — the entry points for acting on an order.

Every function takes an explicit ``RequestContext``. The transition runs
as a command in its own unit of work; once it has committed, the effects
it recorded (notifications, the follow-up split) are dispatched. Effect
failures are logged and left for the drain to retry; they never reach the
caller.
"""

from dataclasses import dataclass

import structlog
from protean.utils.globals import current_domain

from ordering.context import RequestContext
from ordering.effects.runner import dispatch_effects
from ordering.order.order import Order
from ordering.order.shopping import RecordItemFulfillment, UpdateDeliveryTime
from ordering.order.transitions import (
    CancelOrder,
    MarkDelivered,
    MarkReady,
    MarkShipped,
    StartProcessing,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TransitionResult:
    order_id: str
    status: str
    follow_up_order_id: str | None = None
    follow_up_order_number: str | None = None


def _run(command, ctx: RequestContext, order_id: str) -> TransitionResult:
    effect_ids = current_domain.process(command, asynchronous=False) or []
    order = current_domain.repository_for(Order).get(order_id)
    logger.info(
        "Order transitioned",
        order_id=order_id,
        command=type(command).__name__,
        status=order.status,
        actor_id=ctx.user_id,
        actor_role=ctx.role.value,
    )
    dispatch_effects(effect_ids)
    return TransitionResult(order_id=order_id, status=order.status)


def start_processing(ctx: RequestContext, order_id: str) -> TransitionResult:
    """Start shopping; the acting user becomes the order's picker."""
    return _run(
        StartProcessing(
            order_id=order_id,
            actor_id=ctx.user_id,
            actor_name=ctx.user_name,
            actor_role=ctx.role.value,
        ),
        ctx,
        order_id,
    )


def mark_ready(ctx: RequestContext, order_id: str) -> TransitionResult:
    return _run(MarkReady(order_id=order_id, actor_id=ctx.user_id, actor_role=ctx.role.value), ctx, order_id)


def mark_shipped(ctx: RequestContext, order_id: str) -> TransitionResult:
    """Ship the order and split unfulfilled items into a follow-up order.

    The follow-up fields of the result are empty when everything was
    fulfilled or when the split failed (it is then retried by the drain).
    """
    result = _run(MarkShipped(order_id=order_id, actor_id=ctx.user_id, actor_role=ctx.role.value), ctx, order_id)
    follow_ups = current_domain.repository_for(Order).find_follow_ups(order_id)
    if not follow_ups:
        return result
    return TransitionResult(
        order_id=result.order_id,
        status=result.status,
        follow_up_order_id=str(follow_ups[0].id),
        follow_up_order_number=follow_ups[0].order_number,
    )


def mark_delivered(ctx: RequestContext, order_id: str) -> TransitionResult:
    return _run(MarkDelivered(order_id=order_id, actor_id=ctx.user_id, actor_role=ctx.role.value), ctx, order_id)


def cancel_order(ctx: RequestContext, order_id: str, reason: str | None = None) -> TransitionResult:
    return _run(
        CancelOrder(order_id=order_id, actor_id=ctx.user_id, actor_role=ctx.role.value, reason=reason),
        ctx,
        order_id,
    )


def update_delivery_time(ctx: RequestContext, order_id: str, delivery_time: str) -> TransitionResult:
    """Reschedule delivery and let the customer know."""
    return _run(
        UpdateDeliveryTime(
            order_id=order_id,
            actor_id=ctx.user_id,
            actor_role=ctx.role.value,
            delivery_time=delivery_time,
        ),
        ctx,
        order_id,
    )


def record_item_fulfillment(
    ctx: RequestContext,
    order_id: str,
    item_id: str,
    actual_quantity: float | None = None,
    available: bool = True,
    substitute_product_id: str | None = None,
    substitute_product_name: str | None = None,
) -> float:
    """Record what was actually shopped for one line. Returns the new order total."""
    return current_domain.process(
        RecordItemFulfillment(
            order_id=order_id,
            item_id=item_id,
            actor_id=ctx.user_id,
            actor_role=ctx.role.value,
            actual_quantity=actual_quantity,
            available=available,
            substitute_product_id=substitute_product_id,
            substitute_product_name=substitute_product_name,
        ),
        asynchronous=False,
    )
