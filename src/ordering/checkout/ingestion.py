"""Payment event ingestion — turn a completed checkout session into an order.

Flow:
    1. Verify the gateway signature (SignatureError on failure).
    2. Ignore event types other than ``checkout.session.completed``.
    3. Return the existing order when the session was already ingested.
    4. Parse metadata (ValidationError), resolve products (DependencyError),
       price each line, allocate an order number, snapshot the household
       (best-effort) and persist a paid PENDING order.

The payment is already captured once the signature checks out, so any
failure past that point raises an operator alert. The whole ingestion is
bounded by WEBHOOK_BUDGET_SECONDS: when the catalogue lookup overruns it,
nothing is persisted and the gateway retries later.

Redelivery of the same session is serialized in-process and re-checked
inside the unit of work, so one session yields at most one order.
"""

import json
import threading
import time
import zlib
from dataclasses import dataclass
from enum import Enum

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.checkout.metadata import CheckoutMetadata, parse_checkout_metadata
from ordering.config import get_settings
from ordering.domain import ordering
from ordering.effects.effect import notification_effect
from ordering.effects.runner import dispatch_effects
from ordering.errors import ConflictError, DependencyError, OrderingError
from ordering.gateway import get_gateway
from ordering.lookups import get_catalogue, get_households
from ordering.notifier import get_notifier
from ordering.notifier.messages import MessageType, RecipientType
from ordering.order.order import Order
from ordering.order.transitions import record_effects

logger = structlog.get_logger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"

_LOCK_STRIPES = [threading.Lock() for _ in range(64)]


class IngestionStatus(Enum):
    CREATED = "created"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"


@dataclass(frozen=True)
class IngestionResult:
    status: IngestionStatus
    order_id: str | None = None
    order_number: str | None = None
    event_type: str | None = None


def _session_lock(session_id: str) -> threading.Lock:
    return _LOCK_STRIPES[zlib.crc32(session_id.encode("utf-8")) % len(_LOCK_STRIPES)]


# ---------------------------------------------------------------------------
# Command + handler
# ---------------------------------------------------------------------------
@ordering.command(part_of="Order")
class PlacePaidOrder:
    """Create the order for a completed, paid checkout session."""

    payment_session_id = String(required=True, max_length=255)
    user_email = String(required=True, max_length=255)
    vendor_id = Identifier(required=True)
    household_id = Identifier()
    items = Text(required=True)  # JSON list of {product_id, quantity}
    delivery_details = Text()  # JSON object
    delivery_fee = Float(default=0.0)
    payment_method = String(max_length=50)
    deadline = Float()  # epoch seconds


def _resolve_items(raw_items: list[dict], household_id: str | None) -> list[dict]:
    """Build order lines from catalogue records. Any unknown product aborts."""
    product_ids = [str(item["product_id"]) for item in raw_items]
    try:
        products = get_catalogue().get_products(product_ids)
    except Exception as exc:
        raise DependencyError("Catalogue lookup failed", error=str(exc)) from exc

    missing = [pid for pid in product_ids if pid not in products]
    if missing:
        raise DependencyError("Products could not be resolved", product_ids=missing)

    lines = []
    for item in raw_items:
        product = products[str(item["product_id"])]
        lines.append(
            {
                "product_id": product.product_id,
                "product_name": product.name,
                "sku": product.sku,
                "unit": product.unit,
                "subcategory": product.subcategory,
                "quantity": float(item["quantity"]),
                "price": product.price_for(household_id),
                "shopped": False,
                "available": True,
            }
        )
    return lines


def _past_deadline(deadline: float | None) -> bool:
    return deadline is not None and time.time() > deadline


def _household_snapshot(household_id: str | None, deadline: float | None = None) -> dict | None:
    """Fetch denormalized household details. Failures leave the snapshot empty."""
    if not household_id:
        return None
    if _past_deadline(deadline):
        logger.warning("Skipping household lookup, ingestion budget spent", household_id=household_id)
        return None
    try:
        household = get_households().get_household(household_id)
    except Exception as exc:
        logger.warning("Household lookup failed", household_id=household_id, error=str(exc))
        return None
    if household is None:
        logger.warning("Household not found", household_id=household_id)
        return None
    return household.snapshot()


@ordering.command_handler(part_of=Order)
class PlacePaidOrderHandler:
    @handle(PlacePaidOrder)
    def place_paid_order(self, command):
        repo = current_domain.repository_for(Order)

        existing = repo.find_by_payment_session(command.payment_session_id)
        if existing is not None:
            raise ConflictError(
                "Payment session already has an order",
                existing=existing,
                payment_session_id=command.payment_session_id,
            )

        items_data = _resolve_items(json.loads(command.items), command.household_id)
        if _past_deadline(command.deadline):
            raise DependencyError(
                "Ingestion exceeded its time budget",
                budget_seconds=get_settings().webhook_budget_seconds,
            )

        order_number = repo.allocate_order_number(
            command.vendor_id,
            command.household_id,
            max_attempts=get_settings().order_number_max_attempts,
        )
        order = Order.place(
            order_number=order_number,
            vendor_id=command.vendor_id,
            user_email=command.user_email,
            items_data=items_data,
            delivery_fee=command.delivery_fee,
            household_id=command.household_id,
            payment_session_id=command.payment_session_id,
            delivery=json.loads(command.delivery_details) if command.delivery_details else None,
            household=_household_snapshot(command.household_id, command.deadline),
            payment_method=command.payment_method,
        )
        repo.add(order)

        effect_ids = record_effects(
            [
                notification_effect(
                    str(order.id),
                    MessageType.NEW_ORDER.value,
                    RecipientType.VENDOR.value,
                    max_attempts=get_settings().effect_max_attempts,
                )
            ]
        )
        return {
            "order_id": str(order.id),
            "order_number": order.order_number,
            "effect_ids": effect_ids,
        }


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------
def _duplicate(order: Order) -> IngestionResult:
    logger.info(
        "Payment session already ingested",
        order_id=str(order.id),
        payment_session_id=order.payment_session_id,
    )
    return IngestionResult(
        status=IngestionStatus.DUPLICATE,
        order_id=str(order.id),
        order_number=order.order_number,
        event_type=CHECKOUT_COMPLETED,
    )


def _failure_details(error: Exception) -> dict:
    if isinstance(error, OrderingError):
        return {"reason": error.message, **error.context}
    if isinstance(error, ValidationError):
        return {"reason": "Order data failed validation", "errors": error.messages}
    return {"reason": str(error), "error_type": type(error).__name__}


def _alert_unfulfillable_payment(session_id: str, raw_metadata: dict, error: Exception) -> None:
    try:
        get_notifier().alert_operations(
            "Paid checkout session could not be turned into an order",
            {
                "payment_session_id": session_id,
                "vendor_id": raw_metadata.get("vendor_id"),
                "user_email": raw_metadata.get("user_email"),
                **_failure_details(error),
            },
        )
    except Exception as exc:
        logger.error("Operations alert failed", payment_session_id=session_id, error=str(exc))


def _place(session_id: str, metadata: CheckoutMetadata, deadline: float) -> dict:
    command = PlacePaidOrder(
        payment_session_id=session_id,
        user_email=metadata.user_email,
        vendor_id=metadata.vendor_id,
        household_id=metadata.household_id,
        items=json.dumps([{"product_id": i.product_id, "quantity": i.quantity} for i in metadata.items]),
        delivery_details=json.dumps(metadata.delivery),
        delivery_fee=metadata.delivery_fee,
        payment_method=metadata.payment_method,
        deadline=deadline,
    )
    return current_domain.process(command, asynchronous=False)


def ingest_payment_event(payload: str | bytes, signature: str | None, secret: str | None = None) -> IngestionResult:
    """Verify and ingest one payment gateway event.

    Raises ``SignatureError``, ``ValidationError`` (client errors) or
    ``DependencyError`` (server error). Redelivered sessions return the
    existing order with status DUPLICATE.
    """
    settings = get_settings()
    secret = secret or settings.stripe_webhook_secret
    if not secret:
        raise DependencyError("Payment webhook secret is not configured")

    started = time.monotonic()
    deadline = time.time() + settings.webhook_budget_seconds
    event = get_gateway().construct_event(payload, signature, secret)
    event_type = event.get("type")

    if event_type != CHECKOUT_COMPLETED:
        logger.info("Ignoring payment event", event_type=event_type, event_id=event.get("id"))
        return IngestionResult(status=IngestionStatus.IGNORED, event_type=event_type)

    session = (event.get("data") or {}).get("object") or {}
    session_id = session.get("id")
    if not session_id:
        raise ValidationError({"session": ["Checkout session id is missing"]})

    raw_metadata = session.get("metadata") if isinstance(session.get("metadata"), dict) else {}
    repo = current_domain.repository_for(Order)
    with _session_lock(session_id):
        existing = repo.find_by_payment_session(session_id)
        if existing is not None:
            return _duplicate(existing)

        try:
            metadata = parse_checkout_metadata(session.get("metadata"))
            placed = _place(session_id, metadata, deadline)
        except ConflictError as exc:
            if exc.existing is None:
                _alert_unfulfillable_payment(session_id, raw_metadata, exc)
                raise
            return _duplicate(exc.existing)
        except Exception as exc:
            logger.error(
                "Paid checkout session could not be ingested",
                payment_session_id=session_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            _alert_unfulfillable_payment(session_id, raw_metadata, exc)
            raise

    dispatch_effects(placed["effect_ids"])

    elapsed = time.monotonic() - started
    log = logger.warning if elapsed > settings.webhook_budget_seconds else logger.info
    log(
        "Payment event ingested",
        order_id=placed["order_id"],
        order_number=placed["order_number"],
        payment_session_id=session_id,
        elapsed_seconds=round(elapsed, 3),
    )
    return IngestionResult(
        status=IngestionStatus.CREATED,
        order_id=placed["order_id"],
        order_number=placed["order_number"],
        event_type=event_type,
    )
