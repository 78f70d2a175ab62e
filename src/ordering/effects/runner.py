"""Post-commit effect execution.

``dispatch_effects`` runs freshly recorded effects right after the
transition that produced them commits. ``drain_due_effects`` retries
whatever is still pending and due; the worker calls it on an interval.
Neither ever raises: failures are recorded on the effect and logged.
"""

from datetime import UTC, datetime

import structlog
from protean.utils.globals import current_domain

from ordering.config import get_settings
from ordering.effects.effect import EffectKind, EffectStatus, PostCommitEffect, as_utc
from ordering.errors import DependencyError
from ordering.notifier import get_notifier

logger = structlog.get_logger(__name__)

_DELIVERED_STATUSES = ("sent", "skipped")


def run_effect(effect: PostCommitEffect) -> None:
    """Execute one effect. Raises on failure."""
    kind = EffectKind(effect.kind)
    if kind == EffectKind.NOTIFY:
        args = effect.arguments
        result = get_notifier().notify(
            str(effect.order_id),
            args["message_type"],
            args["recipient_type"],
        )
        if result.get("status") not in _DELIVERED_STATUSES:
            raise DependencyError(result.get("error", "Unknown dispatch error"))
    elif kind == EffectKind.FOLLOW_UP_ORDER:
        from ordering.order.follow_up import create_follow_up_for

        create_follow_up_for(str(effect.order_id))


def attempt_effect(effect: PostCommitEffect, now: datetime | None = None) -> bool:
    """Run ``effect`` once and persist the outcome. Returns True on success."""
    settings = get_settings()
    repo = current_domain.repository_for(PostCommitEffect)

    try:
        run_effect(effect)
    except Exception as e:
        effect.mark_failed(
            str(e),
            backoff_seconds=settings.effect_backoff_seconds,
            backoff_cap_seconds=settings.effect_backoff_cap_seconds,
            now=now,
        )
        logger.error(
            "Post-commit effect failed",
            effect_id=str(effect.id),
            kind=effect.kind,
            order_id=str(effect.order_id),
            attempts=effect.attempts,
            status=effect.status,
            error=str(e),
        )
        repo.add(effect)
        return False

    effect.mark_done()
    repo.add(effect)
    logger.info(
        "Post-commit effect completed",
        effect_id=str(effect.id),
        kind=effect.kind,
        order_id=str(effect.order_id),
    )
    return True


def dispatch_effects(effect_ids: list[str]) -> dict[str, bool]:
    """Run the given effects once, in order. Returns success per effect id."""
    repo = current_domain.repository_for(PostCommitEffect)
    outcomes = {}
    for effect_id in effect_ids or []:
        try:
            effect = repo.get(effect_id)
            if effect.status != EffectStatus.PENDING.value:
                continue
            outcomes[effect_id] = attempt_effect(effect)
        except Exception as e:
            outcomes[effect_id] = False
            logger.error("Could not dispatch post-commit effect", effect_id=effect_id, error=str(e))
    return outcomes


def drain_due_effects(now: datetime | None = None, limit: int = 100) -> dict:
    """Retry pending effects whose next attempt time has passed."""
    now = now or datetime.now(UTC)
    repo = current_domain.repository_for(PostCommitEffect)

    pending = repo._dao.query.filter(status=EffectStatus.PENDING.value).all().items
    due = sorted(
        (e for e in pending if e.is_due(now)),
        key=lambda e: as_utc(e.created_at) or now,
    )[:limit]

    succeeded = 0
    for effect in due:
        try:
            if attempt_effect(effect, now=now):
                succeeded += 1
        except Exception as e:
            logger.error("Could not retry post-commit effect", effect_id=str(effect.id), error=str(e))

    summary = {"attempted": len(due), "succeeded": succeeded, "failed": len(due) - succeeded}
    if due:
        logger.info("Post-commit effects drained", **summary)
    return summary
