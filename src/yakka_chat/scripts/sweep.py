# src/yakka_chat/scripts/sweep.py
"""
Run the chat moderation sweep outside the API process.

Useful when the sweep is scheduled by cron instead of the in-process
worker (set MODERATION_SWEEP_ENABLED=false on the API in that case).

    python -m yakka_chat.scripts.sweep            # one cycle
    python -m yakka_chat.scripts.sweep --forever  # loop on the configured interval
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from yakka_chat.core.settings import settings
from yakka_chat.services.container import build_services

logger = logging.getLogger("yakka_chat.scripts.sweep")


async def run(forever: bool) -> int:
    services = build_services()
    try:
        if not forever:
            result = await services.sweep.run_once()
            print(
                f"Scanned {result.scanned} messages, flagged {result.flagged}, "
                f"banned {len(result.banned_user_ids)} users"
            )
            return 0

        await services.sweep_worker.start()
        logger.info("Sweeping every %ss, press Ctrl+C to stop", services.sweep_worker.interval)
        try:
            await asyncio.Event().wait()
        finally:
            await services.sweep_worker.stop()
    finally:
        await services.push_sender.close()
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument(
        "--forever",
        action="store_true",
        help="keep running and sweep every MODERATION_SWEEP_INTERVAL_SECONDS",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)
    try:
        return asyncio.run(run(args.forever))
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
