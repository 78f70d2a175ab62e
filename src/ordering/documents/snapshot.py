"""Document snapshot — the data a purchase-order or delivery-note renderer needs."""

from datetime import datetime

import structlog

from ordering.lookups import get_households, get_vendors
from ordering.order.order import Order
from ordering.order.transitions import load_order

logger = structlog.get_logger(__name__)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _line(item) -> dict:
    return {
        "item_id": str(item.id),
        "product_id": str(item.product_id),
        "product_name": item.product_name,
        "sku": item.sku,
        "unit": item.unit,
        "subcategory": item.subcategory,
        "quantity": item.quantity,
        "actual_quantity": item.actual_quantity,
        "effective_quantity": item.effective_quantity,
        "price": item.price,
        "line_total": item.line_total,
        "available": item.available,
        "shopped": item.shopped,
        "substitute_product_id": str(item.substitute_product_id) if item.substitute_product_id else None,
        "substitute_product_name": item.substitute_product_name,
    }


def _household(order: Order) -> dict | None:
    if not order.household_id:
        return None
    snapshot = {
        "household_id": str(order.household_id),
        "code": order.household_code,
        "name": order.household_name,
        "lead_name": order.household_lead_name,
        "lead_phone": order.household_lead_phone,
    }
    try:
        current = get_households().get_household(str(order.household_id))
    except Exception as exc:
        logger.warning("Household lookup failed", household_id=str(order.household_id), error=str(exc))
        return snapshot
    if current is not None:
        snapshot.update({k: v for k, v in current.snapshot().items() if v})
    return snapshot


def _vendor(order: Order) -> dict | None:
    try:
        vendor = get_vendors().get_vendor(str(order.vendor_id))
    except Exception as exc:
        logger.warning("Vendor lookup failed", vendor_id=str(order.vendor_id), error=str(exc))
        return None
    return vendor.snapshot() if vendor is not None else None


def build_document_snapshot(order_id: str) -> dict:
    """Collect order, lines, totals, delivery, vendor and household details for rendering.

    Vendor and household records are looked up best-effort.
    """
    order = load_order(order_id)
    delivery = order.delivery
    return {
        "order_id": str(order.id),
        "order_number": order.order_number,
        "status": order.status,
        "vendor_id": str(order.vendor_id),
        "user_email": order.user_email,
        "picker_name": order.picker_name,
        "origin_order_number": order.origin_order_number,
        "created_at": _iso(order.created_at),
        "lines": [_line(item) for item in order.ordered_items()],
        "totals": {
            "items_total": order.totals.items_total,
            "delivery_fee": order.totals.delivery_fee,
            "total_amount": order.totals.total_amount,
        },
        "delivery": {
            "time": delivery.time if delivery else None,
            "phone": delivery.phone if delivery else None,
            "address": delivery.address if delivery else None,
            "entrance_code": delivery.entrance_code if delivery else None,
            "notes": delivery.notes if delivery else None,
        },
        "vendor": _vendor(order),
        "household": _household(order),
    }
