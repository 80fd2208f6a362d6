"""Standalone runner that replays attempt logs and reports or repairs drifted user stats.

Usage: python -m anton.workers.reconcile_runner [--apply] [--user USER_ID]
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from anton.config import get_settings
from anton.database import close_db, get_session_factory, init_db
from anton.progression.reconcile import list_users_with_attempts, reconcile_user_stats

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


async def run(apply: bool, user_ids: list[str] | None = None) -> int:
    """Reconcile the given users (or everyone with attempts). Returns the number of drifted rows."""
    session_factory = get_session_factory()

    if not user_ids:
        async with session_factory() as db:
            user_ids = await list_users_with_attempts(db)

    drifted = 0
    for user_id in user_ids:
        # One transaction per user so a failure doesn't discard earlier repairs
        async with session_factory() as db:
            report = await reconcile_user_stats(db, user_id, apply=apply)
            if report["missing"] or report["drift"]:
                drifted += 1
                logger.info("User %s drift=%s missing=%s", user_id, report["drift"], report["missing"])
            if apply:
                await db.commit()

    logger.info("Reconciled %d users, %d drifted (apply=%s)", len(user_ids), drifted, apply)
    return drifted


async def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Rebuild user stats from the attempt log.")
    parser.add_argument("--apply", action="store_true", help="write repaired rows instead of only reporting")
    parser.add_argument("--user", action="append", dest="users", help="limit to this user id (repeatable)")
    args = parser.parse_args(argv)

    settings = get_settings()
    await init_db(settings.database_url)
    try:
        await run(args.apply, args.users)
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
