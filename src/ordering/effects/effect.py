"""PostCommitEffect aggregate — an outbox row for work that follows a commit.

Side effects of an order transition (notifications, follow-up order
creation) are recorded in the same unit of work as the transition and
executed afterwards. A failed effect is retried with exponential backoff
until it succeeds or runs out of attempts.

State Machine:
    PENDING → DONE
    PENDING → PENDING (failed attempt, rescheduled)
    PENDING → ABANDONED (attempts exhausted)
"""

import json
from datetime import UTC, datetime, timedelta
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String, Text

from ordering.domain import ordering


class EffectKind(Enum):
    NOTIFY = "notify"
    FOLLOW_UP_ORDER = "follow_up_order"


class EffectStatus(Enum):
    PENDING = "Pending"
    DONE = "Done"
    ABANDONED = "Abandoned"


def backoff_delay(attempts: int, base_seconds: float, cap_seconds: float) -> float:
    """Delay before the next try after ``attempts`` failures: base × 2^(attempts-1), capped."""
    if attempts < 1:
        return 0.0
    return min(cap_seconds, base_seconds * (2 ** (attempts - 1)))


def as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@ordering.aggregate
class PostCommitEffect:
    kind = String(required=True, max_length=50, choices=EffectKind)
    order_id = Identifier(required=True)
    payload = Text()  # JSON object of effect arguments
    status = String(
        max_length=50,
        choices=EffectStatus,
        default=EffectStatus.PENDING.value,
    )
    attempts = Integer(default=0)
    max_attempts = Integer(default=5, min_value=1)
    next_attempt_at = DateTime()
    last_error = Text()
    created_at = DateTime()
    completed_at = DateTime()

    @classmethod
    def record(cls, kind: EffectKind, order_id: str, max_attempts: int = 5, **arguments):
        """Create a pending effect that is due immediately."""
        now = datetime.now(UTC)
        return cls(
            kind=kind.value,
            order_id=str(order_id),
            payload=json.dumps(arguments),
            status=EffectStatus.PENDING.value,
            attempts=0,
            max_attempts=max_attempts,
            next_attempt_at=now,
            created_at=now,
        )

    @property
    def arguments(self) -> dict:
        return json.loads(self.payload) if self.payload else {}

    def is_due(self, now: datetime | None = None) -> bool:
        if self.status != EffectStatus.PENDING.value:
            return False
        now = now or datetime.now(UTC)
        due_at = as_utc(self.next_attempt_at)
        return due_at is None or due_at <= now

    def mark_done(self) -> None:
        self._assert_pending()
        self.status = EffectStatus.DONE.value
        self.attempts = self.attempts + 1
        self.last_error = None
        self.completed_at = datetime.now(UTC)

    def mark_failed(
        self,
        error: str,
        backoff_seconds: float,
        backoff_cap_seconds: float,
        now: datetime | None = None,
    ) -> None:
        """Record a failed attempt and schedule the next one, or abandon."""
        self._assert_pending()
        now = now or datetime.now(UTC)
        self.attempts = self.attempts + 1
        self.last_error = error
        if self.attempts >= self.max_attempts:
            self.status = EffectStatus.ABANDONED.value
            self.next_attempt_at = None
            self.completed_at = now
        else:
            delay = backoff_delay(self.attempts, backoff_seconds, backoff_cap_seconds)
            self.next_attempt_at = now + timedelta(seconds=delay)

    def _assert_pending(self) -> None:
        if self.status != EffectStatus.PENDING.value:
            raise ValidationError({"status": [f"Effect is already {self.status}"]})


def notification_effect(order_id: str, message_type: str, recipient_type: str, max_attempts: int = 5):
    return PostCommitEffect.record(
        EffectKind.NOTIFY,
        order_id,
        max_attempts=max_attempts,
        message_type=message_type,
        recipient_type=recipient_type,
    )


def follow_up_effect(order_id: str, max_attempts: int = 5):
    return PostCommitEffect.record(EffectKind.FOLLOW_UP_ORDER, order_id, max_attempts=max_attempts)
