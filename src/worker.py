"""Post-commit effect worker.

Periodically retries notifications and follow-up order creation that
failed when they were first dispatched.

Usage:
    python src/worker.py                 # Drain every 30 seconds
    python src/worker.py --interval 5    # Drain every 5 seconds
    python src/worker.py --once          # Drain once and exit
"""

import argparse
import asyncio

import structlog
from ordering.domain import ordering
from ordering.effects.runner import drain_due_effects
from ordering.utils.logging import configure_logging

logger = structlog.get_logger(__name__)


def drain_once(limit: int) -> dict:
    with ordering.domain_context():
        return drain_due_effects(limit=limit)


async def run(interval: float, limit: int, once: bool = False) -> None:
    while True:
        try:
            summary = drain_once(limit)
        except Exception as e:
            logger.error("Effect drain failed", error=str(e))
        else:
            if once:
                logger.info("Effect drain finished", **summary)
        if once:
            return
        await asyncio.sleep(interval)


def main():
    parser = argparse.ArgumentParser(description="Ordering post-commit effect worker")
    parser.add_argument("--interval", type=float, default=30.0, help="Seconds between drains")
    parser.add_argument("--limit", type=int, default=100, help="Maximum effects per drain")
    parser.add_argument("--once", action="store_true", help="Drain once and exit")
    args = parser.parse_args()

    configure_logging()
    ordering.init()
    logger.info("Starting effect worker", interval=args.interval, limit=args.limit)

    asyncio.run(run(args.interval, args.limit, once=args.once))


if __name__ == "__main__":
    main()
