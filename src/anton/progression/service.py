"""Progression service: daily validation, ledger call, XP/level/streak outcome."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from anton.db.models import UserStats
from anton.progression.daily import (
    format_time_until_reset,
    local_day_window,
    resolve_daily_question,
)
from anton.progression.errors import DomainConflict, Reason
from anton.progression.ledger import (
    AttemptLedger,
    LedgerResult,
    Submission,
    find_attempt_between,
)
from anton.progression.levels import progress_to_next, xp_to_next

logger = logging.getLogger(__name__)


class ProgressionService:
    """Answer submission engine: composes the daily selector, the ledger and the level table."""

    def __init__(
        self,
        db: AsyncSession,
        redis: object | None = None,
        ledger: AttemptLedger | None = None,
    ) -> None:
        self.db = db
        self.redis = redis
        self.ledger = ledger or AttemptLedger()

    # --- Submission ---

    async def submit_attempt(
        self,
        user_id: str,
        user_email: str,
        question_id: str,
        selected_answer: str,
        is_daily: bool = False,
        now: datetime | None = None,
    ) -> dict:
        """Record an answer and report what changed."""
        if now is None:
            now = datetime.now(timezone.utc)

        if is_daily:
            await self._check_daily_target(question_id, now)

        submission = Submission(
            user_id=user_id,
            user_email=user_email,
            question_id=question_id,
            selected_answer=selected_answer,
            is_daily=is_daily,
        )
        result = await self.ledger.record(submission, now=now)

        if result.leveled_up:
            await self._emit_level_up(result)

        stats = result.stats
        return {
            "attempt_id": result.attempt.id,
            "is_correct": result.attempt.is_correct,
            "correct_answer": result.question.correct_answer,
            "explanation": result.question.explanation,
            "xp_earned": result.xp_earned,
            "leveled_up": result.leveled_up,
            "total_xp": stats.total_xp,
            "current_level": stats.current_level,
            "current_title": stats.current_title,
            "xp_to_next_level": xp_to_next(stats.current_level, stats.total_xp),
            "current_streak": stats.current_streak,
            "longest_streak": stats.longest_streak,
            "answered_at": result.attempt.answered_at,
        }

    async def _check_daily_target(self, question_id: str, now: datetime) -> None:
        """A daily submission must target today's question. Depends only on the clock and the catalog."""
        selection = await resolve_daily_question(self.db, now)
        if selection.question_id is None:
            raise DomainConflict(Reason.NO_DAILY_QUESTION, "Today's daily question is not available")
        if selection.question_id != question_id:
            raise DomainConflict(Reason.NOT_TODAYS_DAILY, "This is not today's daily question")

    async def _emit_level_up(self, result: LedgerResult) -> None:
        """Broadcast a level-up after commit. Best effort: the ledger is already durable."""
        if self.redis is None:
            return
        try:
            await self.redis.publish(  # type: ignore[union-attr]
                "pubsub:level_up",
                json.dumps({
                    "user_id": result.stats.user_id,
                    "new_level": result.stats.current_level,
                    "title": result.stats.current_title,
                    "total_xp": result.stats.total_xp,
                }),
            )
        except Exception:
            logger.warning("Failed to publish level_up broadcast", exc_info=True)

    # --- Daily question ---

    async def get_daily_question_info(
        self,
        now: datetime | None = None,
        user_id: str | None = None,
    ) -> dict | None:
        """Today's question metadata, or None if the catalog has no active question."""
        if now is None:
            now = datetime.now(timezone.utc)

        selection = await resolve_daily_question(self.db, now)
        if selection.question is None:
            return None

        info = {
            "question_id": selection.question.id,
            "number": selection.question.number,
            "difficulty": selection.question.difficulty,
            "date": selection.date,
            "reset_instant": selection.reset_instant,
            "time_until_reset": format_time_until_reset(selection.reset_instant, now),
            "has_attempted": False,
            "is_completed": False,
        }

        if user_id is not None:
            start, end = local_day_window(now)
            attempted = await find_attempt_between(self.db, user_id, selection.question.id, start, end)
            solved = await find_attempt_between(
                self.db, user_id, selection.question.id, start, end, correct_only=True
            )
            info["has_attempted"] = attempted is not None
            info["is_completed"] = solved is not None

        return info

    # --- Read-only stats ---

    async def get_user_stats(self, user_id: str) -> dict | None:
        """The user's stats row with level progress, or None before their first attempt."""
        stats = await self.db.get(UserStats, user_id)
        if stats is None:
            return None

        return {
            "user_id": stats.user_id,
            "total_questions_answered": stats.total_questions_answered,
            "total_correct_answers": stats.total_correct_answers,
            "easy": {"answered": stats.easy_questions_answered, "correct": stats.easy_correct_answers},
            "medium": {"answered": stats.medium_questions_answered, "correct": stats.medium_correct_answers},
            "hard": {"answered": stats.hard_questions_answered, "correct": stats.hard_correct_answers},
            "current_streak": stats.current_streak,
            "longest_streak": stats.longest_streak,
            "last_answered_date": stats.last_answered_date,
            "total_xp": stats.total_xp,
            "current_level": stats.current_level,
            "current_title": stats.current_title,
            "xp_to_next_level": xp_to_next(stats.current_level, stats.total_xp),
            "progress_percent": round(progress_to_next(stats.current_level, stats.total_xp), 2),
        }
