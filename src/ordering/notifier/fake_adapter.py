"""Recording notifier — renders messages and keeps them in memory.

Used in development and tests in place of real SMS and email providers.
"""

from uuid import uuid4

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.notifier.messages import (
    EMAIL_MESSAGES,
    RecipientType,
    normalize_phone,
    render_message,
)
from ordering.notifier.port import OrderNotifier
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


class FakeNotifier(OrderNotifier):
    """Notifier that records rendered messages for test assertions."""

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.alerts: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Notification delivery failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Notification delivery failed") -> None:
        """Configure the fake notifier behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def notify(self, order_id: str, message_type: str, recipient_type: str) -> dict:
        if not self.should_succeed:
            return {"status": "failed", "error": self.failure_reason}

        try:
            order = current_domain.repository_for(Order).get(order_id)
        except ObjectNotFoundError:
            return {"status": "failed", "error": f"Order {order_id} not found"}

        channel = "email" if message_type in EMAIL_MESSAGES else "sms"
        to = self._recipient_address(order, recipient_type, channel)
        if not to:
            logger.warning(
                "No contact for notification recipient",
                order_id=order_id,
                message_type=message_type,
                recipient_type=recipient_type,
            )
            return {"status": "skipped", "error": f"No {channel} contact for {recipient_type}"}

        message_id = f"{channel}-{uuid4().hex[:12]}"
        self.sent.append(
            {
                "message_id": message_id,
                "order_id": str(order_id),
                "message_type": message_type,
                "recipient_type": recipient_type,
                "channel": channel,
                "to": to,
                "body": render_message(message_type, recipient_type, order),
            }
        )
        return {"message_id": message_id, "status": "sent"}

    def alert_operations(self, subject: str, details: dict) -> dict:
        self.alerts.append({"subject": subject, "details": details})
        logger.error("Operations alert", subject=subject, details=details)
        return {"status": "sent"}

    @staticmethod
    def _recipient_address(order: Order, recipient_type: str, channel: str) -> str | None:
        if recipient_type == RecipientType.VENDOR.value:
            return str(order.vendor_id)
        if channel == "email":
            return order.user_email
        if recipient_type == RecipientType.HOUSEHOLD_LEAD.value:
            return normalize_phone(order.household_lead_phone)
        phone = order.household_lead_phone or (order.delivery.phone if order.delivery else None)
        return normalize_phone(phone)

    def messages_of_type(self, message_type: str) -> list[dict]:
        return [m for m in self.sent if m["message_type"] == message_type]
