"""Checkout session metadata parsing.

The checkout flow stores everything the order needs as string metadata on
the payment session: JSON-encoded ``items`` and ``delivery_details`` and a
decimal-string ``delivery_fee``.
"""

import json
import math
from dataclasses import dataclass, field

from protean.exceptions import ValidationError


@dataclass(frozen=True)
class CheckoutItem:
    product_id: str
    quantity: float


@dataclass(frozen=True)
class CheckoutMetadata:
    user_email: str
    vendor_id: str
    items: tuple[CheckoutItem, ...]
    household_id: str | None = None
    delivery: dict = field(default_factory=dict)
    delivery_fee: float = 0.0
    payment_method: str | None = None


def _parse_fee(raw) -> float:
    """Unparsable or missing fees count as zero."""
    try:
        fee = float(raw)
    except (TypeError, ValueError):
        return 0.0
    return fee if math.isfinite(fee) and fee >= 0 else 0.0


def _parse_json(raw, expected: type, field_name: str, errors: dict):
    if isinstance(raw, expected):
        return raw
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        errors.setdefault(field_name, []).append("Must be valid JSON")
        return None
    if not isinstance(value, expected):
        errors.setdefault(field_name, []).append(f"Must be a JSON {expected.__name__}")
        return None
    return value


def _parse_items(raw_items: list, errors: dict) -> tuple[CheckoutItem, ...]:
    items = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict) or not raw.get("product_id"):
            errors.setdefault("items", []).append(f"Item {index} has no product_id")
            continue
        try:
            quantity = float(raw.get("quantity"))
        except (TypeError, ValueError):
            quantity = 0.0
        if quantity <= 0:
            errors.setdefault("items", []).append(f"Item {index} must have a positive quantity")
            continue
        items.append(CheckoutItem(product_id=str(raw["product_id"]), quantity=quantity))
    if not items and "items" not in errors:
        errors["items"] = ["At least one item is required"]
    return tuple(items)


def parse_checkout_metadata(metadata: dict | None) -> CheckoutMetadata:
    """Validate and decode session metadata. Raises ``ValidationError``."""
    metadata = metadata or {}
    errors: dict[str, list[str]] = {}

    for required in ("user_email", "vendor_id", "items"):
        if not metadata.get(required):
            errors[required] = ["is required"]

    items: tuple[CheckoutItem, ...] = ()
    if metadata.get("items"):
        raw_items = _parse_json(metadata["items"], list, "items", errors)
        if raw_items is not None:
            items = _parse_items(raw_items, errors)

    delivery = {}
    if metadata.get("delivery_details"):
        delivery = _parse_json(metadata["delivery_details"], dict, "delivery_details", errors) or {}

    if errors:
        raise ValidationError(errors)

    return CheckoutMetadata(
        user_email=str(metadata["user_email"]),
        vendor_id=str(metadata["vendor_id"]),
        household_id=str(metadata["household_id"]) if metadata.get("household_id") else None,
        items=items,
        delivery=delivery,
        delivery_fee=_parse_fee(metadata.get("delivery_fee")),
        payment_method=metadata.get("payment_method") or None,
    )
