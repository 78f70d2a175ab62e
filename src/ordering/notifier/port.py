"""Notification port (abstract interface).

The ordering pipeline only knows *that* a message should go out; adapters
decide how (SMS gateway, email service, in-app inbox).
"""

from abc import ABC, abstractmethod


class OrderNotifier(ABC):
    @abstractmethod
    def notify(self, order_id: str, message_type: str, recipient_type: str) -> dict:
        """Send ``message_type`` about an order to the given recipient.

        Returns a dict with ``status``: ``"sent"``, ``"skipped"`` (nothing
        to deliver to) or ``"failed"`` plus an ``error``.
        """
        ...

    @abstractmethod
    def alert_operations(self, subject: str, details: dict) -> dict:
        """Raise an alert for the operations team."""
        ...
