"""FastAPI routes for the Ordering domain — payment webhook and order lifecycle."""

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from ordering.api.dependencies import request_context
from ordering.api.schemas import (
    CancelOrderRequest,
    DeliveryResponse,
    DrainResponse,
    IngestionResponse,
    ItemFulfillmentResponse,
    OrderItemResponse,
    OrderListResponse,
    OrderResponse,
    RecordItemFulfillmentRequest,
    TotalsResponse,
    TransitionResponse,
    UpdateDeliveryTimeRequest,
)
from ordering.checkout.ingestion import ingest_payment_event
from ordering.context import RequestContext, Role
from ordering.documents.snapshot import build_document_snapshot
from ordering.effects.runner import drain_due_effects
from ordering.errors import SignatureError
from ordering.order import lifecycle
from ordering.order.order import Order
from ordering.order.policy import authorize_read
from ordering.order.status import OrderStatus
from ordering.order.transitions import load_order

logger = structlog.get_logger(__name__)

order_router = APIRouter(prefix="/orders", tags=["orders"])


def _order_response(order: Order) -> OrderResponse:
    delivery = order.delivery
    return OrderResponse(
        order_id=str(order.id),
        order_number=order.order_number,
        status=order.status,
        payment_session_id=order.payment_session_id,
        user_email=order.user_email,
        vendor_id=str(order.vendor_id),
        household_id=str(order.household_id) if order.household_id else None,
        household_name=order.household_name,
        picker_id=str(order.picker_id) if order.picker_id else None,
        picker_name=order.picker_name,
        is_paid=bool(order.is_paid),
        origin_order_id=str(order.origin_order_id) if order.origin_order_id else None,
        origin_order_number=order.origin_order_number,
        items=[
            OrderItemResponse(
                item_id=str(item.id),
                product_id=str(item.product_id),
                product_name=item.product_name,
                sku=item.sku,
                unit=item.unit,
                quantity=item.quantity,
                actual_quantity=item.actual_quantity,
                price=item.price,
                substitute_product_id=str(item.substitute_product_id) if item.substitute_product_id else None,
                substitute_product_name=item.substitute_product_name,
                modified=bool(item.modified),
                shopped=bool(item.shopped),
                available=bool(item.available),
            )
            for item in order.ordered_items()
        ],
        totals=TotalsResponse(
            items_total=order.totals.items_total,
            delivery_fee=order.totals.delivery_fee,
            total_amount=order.totals.total_amount,
        ),
        delivery=DeliveryResponse(
            time=delivery.time,
            phone=delivery.phone,
            notes=delivery.notes,
            address=delivery.address,
            entrance_code=delivery.entrance_code,
        )
        if delivery
        else None,
    )


# ---------------------------------------------------------------------------
# Payment webhook
# ---------------------------------------------------------------------------
@order_router.post("/payments/webhook", response_model=IngestionResponse)
async def payment_webhook(request: Request, stripe_signature: str | None = Header(default=None)):
    """Turn a completed checkout session into an order.

    200 for created, duplicate and ignored events; 400 when the event is not
    authentic or its metadata is invalid; 500 otherwise, so the gateway retries.
    """
    payload = await request.body()
    try:
        result = ingest_payment_event(payload, stripe_signature)
    except SignatureError as exc:
        return JSONResponse(status_code=400, content={"error": exc.message})
    except ValidationError as exc:
        return JSONResponse(status_code=400, content={"error": exc.messages})
    except Exception as exc:
        logger.error("Payment webhook failed", error=str(exc), error_type=type(exc).__name__)
        return JSONResponse(status_code=500, content={"error": "Webhook processing failed"})

    return IngestionResponse(
        status=result.status.value,
        order_id=result.order_id,
        order_number=result.order_number,
    )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------
@order_router.get("", response_model=OrderListResponse)
async def list_orders(status: str, ctx: RequestContext = Depends(request_context)) -> OrderListResponse:
    """List orders in a status, oldest first (staff only)."""
    authorize_read(ctx.role)
    if status not in {s.value for s in OrderStatus}:
        raise HTTPException(status_code=400, detail=f"Unknown status: {status}")
    orders = current_domain.repository_for(Order).find_by_status(status)
    return OrderListResponse(orders=[_order_response(o) for o in orders])


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, ctx: RequestContext = Depends(request_context)) -> OrderResponse:
    order = load_order(order_id)
    authorize_read(ctx.role, ctx.household_id, order.household_id)
    return _order_response(order)


@order_router.get("/{order_id}/document-snapshot")
async def get_document_snapshot(order_id: str, ctx: RequestContext = Depends(request_context)) -> dict:
    """Data for rendering the purchase order and delivery note (staff only)."""
    authorize_read(ctx.role)
    return build_document_snapshot(order_id)


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------
def _transition_response(result: lifecycle.TransitionResult) -> TransitionResponse:
    return TransitionResponse(
        order_id=result.order_id,
        status=result.status,
        follow_up_order_id=result.follow_up_order_id,
        follow_up_order_number=result.follow_up_order_number,
    )


@order_router.put("/{order_id}/start-processing", response_model=TransitionResponse)
async def start_processing(order_id: str, ctx: RequestContext = Depends(request_context)) -> TransitionResponse:
    """Start shopping for the order; the caller becomes its picker."""
    return _transition_response(lifecycle.start_processing(ctx, order_id))


@order_router.put("/{order_id}/ready", response_model=TransitionResponse)
async def mark_ready(order_id: str, ctx: RequestContext = Depends(request_context)) -> TransitionResponse:
    return _transition_response(lifecycle.mark_ready(ctx, order_id))


@order_router.put("/{order_id}/ship", response_model=TransitionResponse)
async def mark_shipped(order_id: str, ctx: RequestContext = Depends(request_context)) -> TransitionResponse:
    """Ship the order; unfulfilled items move to a follow-up order."""
    return _transition_response(lifecycle.mark_shipped(ctx, order_id))


@order_router.put("/{order_id}/deliver", response_model=TransitionResponse)
async def mark_delivered(order_id: str, ctx: RequestContext = Depends(request_context)) -> TransitionResponse:
    return _transition_response(lifecycle.mark_delivered(ctx, order_id))


@order_router.put("/{order_id}/cancel", response_model=TransitionResponse)
async def cancel_order(
    order_id: str,
    body: CancelOrderRequest | None = None,
    ctx: RequestContext = Depends(request_context),
) -> TransitionResponse:
    reason = body.reason if body else None
    return _transition_response(lifecycle.cancel_order(ctx, order_id, reason=reason))


@order_router.put("/{order_id}/delivery-time", response_model=OrderResponse)
async def update_delivery_time(
    order_id: str,
    body: UpdateDeliveryTimeRequest,
    ctx: RequestContext = Depends(request_context),
) -> OrderResponse:
    """Reschedule delivery; the customer is notified by SMS."""
    lifecycle.update_delivery_time(ctx, order_id, body.delivery_time)
    return _order_response(load_order(order_id))


@order_router.put("/{order_id}/items/{item_id}", response_model=ItemFulfillmentResponse)
async def record_item_fulfillment(
    order_id: str,
    item_id: str,
    body: RecordItemFulfillmentRequest,
    ctx: RequestContext = Depends(request_context),
) -> ItemFulfillmentResponse:
    """Record what the picker actually got for one line."""
    total = lifecycle.record_item_fulfillment(
        ctx,
        order_id,
        item_id,
        actual_quantity=body.actual_quantity,
        available=body.available,
        substitute_product_id=body.substitute_product_id,
        substitute_product_name=body.substitute_product_name,
    )
    return ItemFulfillmentResponse(order_id=order_id, item_id=item_id, total_amount=total)


# ---------------------------------------------------------------------------
# Effects
# ---------------------------------------------------------------------------
@order_router.post("/effects/drain", response_model=DrainResponse)
async def drain_effects(ctx: RequestContext = Depends(request_context)) -> DrainResponse:
    """Retry post-commit effects that are due (admin only)."""
    if ctx.role != Role.ADMIN:
        raise HTTPException(status_code=403, detail="Only admins can drain effects")
    return DrainResponse(**drain_due_effects())
