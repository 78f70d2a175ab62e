"""Notifier registry.

Provides get_notifier() / set_notifier() / reset_notifier(). Defaults to
the recording FakeNotifier; production deployments install a real adapter
at startup.
"""

from ordering.notifier.fake_adapter import FakeNotifier
from ordering.notifier.port import OrderNotifier

_current_notifier: OrderNotifier | None = None


def get_notifier() -> OrderNotifier:
    """Return the current notifier. Defaults to FakeNotifier."""
    global _current_notifier
    if _current_notifier is None:
        _current_notifier = FakeNotifier()
    return _current_notifier


def set_notifier(notifier: OrderNotifier) -> None:
    """Override the active notifier (useful for tests)."""
    global _current_notifier
    _current_notifier = notifier


def reset_notifier() -> None:
    """Reset to default notifier."""
    global _current_notifier
    _current_notifier = None
