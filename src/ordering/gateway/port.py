"""Payment gateway port (abstract interface).

The ordering pipeline only needs the gateway to authenticate inbound
webhook payloads and hand back the decoded event.
"""

from abc import ABC, abstractmethod


class PaymentGateway(ABC):
    @abstractmethod
    def construct_event(self, payload: str | bytes, signature: str | None, secret: str) -> dict:
        """Verify ``signature`` over ``payload`` and return the decoded event.

        Raises ``SignatureError`` when the payload is not authentic.
        """
        ...
