"""Payment gateway factory.

Provides get_gateway() / set_gateway() / reset_gateway(). Defaults to the
Stripe adapter configured with ``STRIPE_WEBHOOK_TOLERANCE``.
"""

from ordering.config import get_settings
from ordering.gateway.port import PaymentGateway
from ordering.gateway.stripe_adapter import StripeGateway

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = StripeGateway(tolerance=get_settings().stripe_webhook_tolerance)
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    global _current_gateway
    _current_gateway = None
