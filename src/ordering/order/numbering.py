"""Order number generation.

Format::

    PO-D{YYMMDD}-H{HHMM}-C{household}-V{vendor}-{tail}

``household`` and ``vendor`` are the last four alphanumeric characters of
the ids (``0000`` without a household), left-padded with zeros. ``tail`` is
the last four digits of the epoch time in milliseconds.

The number is time-derived and can collide within the same millisecond
tail; ``OrderRepository.allocate_order_number`` checks the store and retries.
"""

import re
from datetime import UTC, datetime, timedelta

ORDER_NUMBER_PATTERN = re.compile(r"^PO-D\d{6}-H\d{4}-C\w{4}-V\w{4}-\d{4}$")

_NON_ALNUM = re.compile(r"[^0-9A-Za-z]")
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def _last4(value: str | None) -> str:
    cleaned = _NON_ALNUM.sub("", str(value or ""))
    return (cleaned[-4:] or "0000").rjust(4, "0")


def generate_order_number(
    vendor_id: str,
    household_id: str | None = None,
    now: datetime | None = None,
) -> str:
    """Build an order number for ``vendor_id`` (and optional household) at ``now``."""
    now = now or datetime.now(UTC)
    millis = (now - _EPOCH) // timedelta(milliseconds=1)
    return (
        f"PO-D{now:%y%m%d}-H{now:%H%M}"
        f"-C{_last4(household_id)}-V{_last4(vendor_id)}"
        f"-{millis % 10000:04d}"
    )


def is_valid_order_number(value: str) -> bool:
    return bool(ORDER_NUMBER_PATTERN.match(value or ""))
