"""Message templates for order notifications."""

from enum import Enum


class RecipientType(Enum):
    CUSTOMER = "customer"
    HOUSEHOLD_LEAD = "household_lead"
    VENDOR = "vendor"


class MessageType(Enum):
    NEW_ORDER = "new_order"
    ORDER_PROCESSING_STARTED = "order_processing_started"
    ORDER_SHIPPED = "order_shipped"
    ORDER_DELIVERED = "order_delivered"
    DELIVERY_DATE_UPDATED = "delivery_date_updated"
    SHIPPING_NOTIFICATION = "shipping_notification"


# Sent by email; everything else goes out as SMS.
EMAIL_MESSAGES = frozenset({MessageType.SHIPPING_NOTIFICATION.value})

_CUSTOMER_TEMPLATES = {
    "order_processing_started": "We've started shopping for your order {number}.",
    "order_shipped": "Your order {number} is on its way!{delivery_time}",
    "order_delivered": "Your order {number} has been delivered. Thank you for your order!",
    "delivery_date_updated": "Update: The delivery date for your order {number} has been changed to {delivery_time_or_tbd}.",
    "shipping_notification": "Order {number} has shipped. {item_count} item(s), total {total:.2f}.",
}

_VENDOR_TEMPLATES = {
    "new_order": "New order received! Order {number} from {household}. Total: {total:.2f}. Check your dashboard for details.",
}


def render_message(message_type: str, recipient_type: str, order) -> str:
    """Render the text for ``message_type`` about ``order``.

    Unknown message types fall back to a generic update line.
    """
    delivery_time = order.delivery.time if order.delivery else None
    values = {
        "number": order.order_number,
        "household": order.household_name or "Customer",
        "total": order.totals.total_amount if order.totals else 0.0,
        "item_count": len(order.items or []),
        "delivery_time": f" Expected delivery: {delivery_time}" if delivery_time else "",
        "delivery_time_or_tbd": delivery_time or "TBD",
    }

    if recipient_type == RecipientType.VENDOR.value:
        template = _VENDOR_TEMPLATES.get(message_type, "Update on order {number} from {household}.")
    else:
        template = _CUSTOMER_TEMPLATES.get(message_type, "Update on your order {number}.")
    return template.format(**values)


def normalize_phone(number: str | None, country_code: str = "+972") -> str | None:
    """Convert a local number to international format."""
    if not number:
        return None
    number = number.strip().replace(" ", "").replace("-", "")
    if number.startswith("+"):
        return number
    if number.startswith("0"):
        number = number[1:]
    return f"{country_code}{number}"
