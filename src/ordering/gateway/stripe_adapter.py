"""Stripe webhook verification.

Checks the ``Stripe-Signature`` header (``t=<timestamp>,v1=<hmac>``) with
the Stripe SDK and decodes the JSON body.
"""

import json

import stripe
import structlog

from ordering.errors import SignatureError
from ordering.gateway.port import PaymentGateway

logger = structlog.get_logger(__name__)


class StripeGateway(PaymentGateway):
    def __init__(self, tolerance: int = stripe.Webhook.DEFAULT_TOLERANCE) -> None:
        self.tolerance = tolerance

    def construct_event(self, payload: str | bytes, signature: str | None, secret: str) -> dict:
        if not signature:
            raise SignatureError("Missing payment event signature")

        body = payload.decode("utf-8") if isinstance(payload, bytes) else payload
        try:
            stripe.WebhookSignature.verify_header(body, signature, secret, self.tolerance)
        except stripe.SignatureVerificationError as exc:
            logger.warning("Payment event signature rejected", error=str(exc))
            raise SignatureError("Invalid payment event signature") from exc

        try:
            event = json.loads(body)
        except ValueError as exc:
            raise SignatureError("Payment event body is not valid JSON") from exc
        if not isinstance(event, dict):
            raise SignatureError("Payment event body is not a JSON object")
        return event
