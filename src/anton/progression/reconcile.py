"""Compare stored user stats against a replay of the attempt log, optionally repairing drift."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from anton.db.models import QuestionAttempt, UserStats
from anton.progression.ledger import STATS_FIELDS, rebuild_user_stats

logger = logging.getLogger(__name__)


async def reconcile_user_stats(db: AsyncSession, user_id: str, apply: bool = False) -> dict:
    """Diff one user's stored stats against the rebuilt ones.

    Returns {"user_id", "missing", "drift": {field: (stored, rebuilt)}}.
    With apply=True the stored row is overwritten (or created); the caller commits.
    """
    rebuilt = await rebuild_user_stats(db, user_id)
    stored = await db.get(UserStats, user_id)

    report: dict = {"user_id": user_id, "missing": stored is None and rebuilt is not None, "drift": {}}
    if rebuilt is None:
        return report

    if stored is not None:
        for field in STATS_FIELDS:
            before, after = getattr(stored, field), getattr(rebuilt, field)
            if before != after:
                report["drift"][field] = (before, after)

    if apply and (report["missing"] or report["drift"]):
        if stored is None:
            db.add(rebuilt)
        else:
            for field in report["drift"]:
                setattr(stored, field, getattr(rebuilt, field))
            stored.updated_at = datetime.now(timezone.utc)
        await db.flush()
        logger.info("Repaired stats for user %s: %s", user_id, sorted(report["drift"]) or "created")

    return report


async def list_users_with_attempts(db: AsyncSession) -> list[str]:
    """Every user id present in the attempt log."""
    result = await db.execute(
        select(QuestionAttempt.user_id).distinct().order_by(QuestionAttempt.user_id)
    )
    return list(result.scalars().all())
