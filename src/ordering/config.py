"""Runtime settings for the ordering context, read from the environment."""

import os
from dataclasses import dataclass


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    return float(raw) if raw else default


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    return int(raw) if raw else default


@dataclass(frozen=True)
class Settings:
    environment: str = "development"
    stripe_webhook_secret: str | None = None
    stripe_webhook_tolerance: int = 300
    webhook_budget_seconds: float = 10.0
    effect_max_attempts: int = 5
    effect_backoff_seconds: float = 30.0
    effect_backoff_cap_seconds: float = 3600.0
    order_number_max_attempts: int = 5


def get_settings() -> Settings:
    """Read settings from environment variables.

    Read on every call so tests can monkeypatch the environment.
    """
    return Settings(
        environment=os.environ.get("PROTEAN_ENV", "development"),
        stripe_webhook_secret=os.environ.get("STRIPE_WEBHOOK_SECRET") or None,
        stripe_webhook_tolerance=_int_env("STRIPE_WEBHOOK_TOLERANCE", 300),
        webhook_budget_seconds=_float_env("WEBHOOK_BUDGET_SECONDS", 10.0),
        effect_max_attempts=_int_env("EFFECT_MAX_ATTEMPTS", 5),
        effect_backoff_seconds=_float_env("EFFECT_BACKOFF_SECONDS", 30.0),
        effect_backoff_cap_seconds=_float_env("EFFECT_BACKOFF_CAP_SECONDS", 3600.0),
        order_number_max_attempts=_int_env("ORDER_NUMBER_MAX_ATTEMPTS", 5),
    )
