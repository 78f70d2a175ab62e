"""Repository for the Order aggregate.

Adds the lookups the pipeline needs on top of the standard CRUD, and
enforces order-number uniqueness when allocating a new number.
"""

from datetime import UTC, datetime, timedelta

import structlog

from ordering.domain import ordering
from ordering.errors import ConflictError
from ordering.order.numbering import generate_order_number
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


@ordering.repository(part_of=Order)
class OrderRepository:
    def find_by_payment_session(self, payment_session_id: str) -> Order | None:
        """Return the order created for a payment session, if any."""
        if not payment_session_id:
            return None
        return self._dao.query.filter(payment_session_id=payment_session_id).all().first

    def find_by_order_number(self, order_number: str) -> Order | None:
        return self._dao.query.filter(order_number=order_number).all().first

    def find_follow_ups(self, origin_order_id: str) -> list[Order]:
        """Follow-up orders created from ``origin_order_id``."""
        return self._dao.query.filter(origin_order_id=str(origin_order_id)).all().items

    def find_by_status(self, status: str) -> list[Order]:
        orders = self._dao.query.filter(status=status).all().items
        return sorted(orders, key=lambda o: o.created_at or datetime.min.replace(tzinfo=UTC))

    def allocate_order_number(
        self,
        vendor_id: str,
        household_id: str | None = None,
        max_attempts: int = 5,
        now: datetime | None = None,
    ) -> str:
        """Generate an order number that no stored order uses yet.

        On collision the generation time is advanced one millisecond, which
        changes the tail. Raises ``ConflictError`` when every attempt collides.
        """
        now = now or datetime.now(UTC)
        for attempt in range(max_attempts):
            candidate = generate_order_number(vendor_id, household_id, now + timedelta(milliseconds=attempt))
            if self.find_by_order_number(candidate) is None:
                return candidate
            logger.warning(
                "Order number collision, retrying",
                order_number=candidate,
                attempt=attempt + 1,
            )

        raise ConflictError(
            "Could not allocate a unique order number",
            vendor_id=vendor_id,
            attempts=max_attempts,
        )
