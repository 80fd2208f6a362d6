"""Attempt ledger: the transactional write path for answer submissions.

Every submission appends one QuestionAttempt and folds it into the user's
UserStats row inside a single SERIALIZABLE unit of work. The invariant the
ledger protects: for any (user, question) at most one attempt is ever
recorded with is_correct = true, no matter how many submissions race.

The database enforces that ordering, not this process. Conflicting units
of work fail with a serialization error and are replayed from the top with
the same inputs until they either commit or see the already-solved state.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from anton.catalog.service import get_active_question
from anton.config import Settings, get_settings
from anton.database import get_serializable_session_factory, get_session_factory
from anton.db.models import (
    OPTION_KEYS,
    SOURCE_DAILY_QUESTION,
    SOURCE_PRACTICE,
    Question,
    QuestionAttempt,
    UserStats,
)
from anton.progression.daily import local_day_window
from anton.progression.errors import (
    ConcurrencyConflict,
    DomainConflict,
    InvalidSubmission,
    Reason,
    StorageFault,
)
from anton.progression.levels import DEFAULT_TITLE, MIN_LEVEL, did_level_up, level_for, xp_for_difficulty

logger = logging.getLogger(__name__)

# serialization_failure, deadlock_detected, and unique_violation raised when
# racing units claim the same user_stats row or the same user_seq
_RETRYABLE_SQLSTATES = frozenset({"40001", "40P01", "23505"})

_DIFFICULTY_COUNTERS: dict[str, tuple[str, str]] = {
    "EASY": ("easy_questions_answered", "easy_correct_answers"),
    "MEDIUM": ("medium_questions_answered", "medium_correct_answers"),
    "HARD": ("hard_questions_answered", "hard_correct_answers"),
}

STATS_FIELDS: tuple[str, ...] = (
    "total_questions_answered",
    "total_correct_answers",
    "easy_questions_answered",
    "easy_correct_answers",
    "medium_questions_answered",
    "medium_correct_answers",
    "hard_questions_answered",
    "hard_correct_answers",
    "current_streak",
    "longest_streak",
    "total_xp",
    "current_level",
    "current_title",
)


@dataclass(frozen=True)
class Submission:
    user_id: str
    user_email: str
    question_id: str
    selected_answer: str
    is_daily: bool = False


@dataclass(frozen=True)
class LedgerResult:
    attempt: QuestionAttempt
    stats: UserStats
    question: Question
    xp_earned: int
    leveled_up: bool


# ---------------------------------------------------------------------------
# Stats projection (shared by the incremental path and the rebuild oracle)
# ---------------------------------------------------------------------------


def new_user_stats(user_id: str, user_email: str, now: datetime) -> UserStats:
    """Zeroed stats row for a user's first attempt."""
    return UserStats(
        user_id=user_id,
        user_email=user_email,
        total_questions_answered=0,
        total_correct_answers=0,
        easy_questions_answered=0,
        easy_correct_answers=0,
        medium_questions_answered=0,
        medium_correct_answers=0,
        hard_questions_answered=0,
        hard_correct_answers=0,
        current_streak=0,
        longest_streak=0,
        last_answered_date=now,
        total_xp=0,
        current_level=MIN_LEVEL,
        current_title=DEFAULT_TITLE,
        created_at=now,
        updated_at=now,
    )


def apply_attempt(
    stats: UserStats,
    difficulty: str,
    is_correct: bool,
    xp_earned: int,
    answered_at: datetime,
) -> None:
    """Fold one attempt into a stats row in place."""
    stats.total_questions_answered += 1

    counters = _DIFFICULTY_COUNTERS.get(difficulty)
    if counters is not None:
        answered_field, correct_field = counters
        setattr(stats, answered_field, getattr(stats, answered_field) + 1)
        if is_correct:
            setattr(stats, correct_field, getattr(stats, correct_field) + 1)

    if is_correct:
        stats.total_correct_answers += 1
        stats.current_streak += 1
        stats.last_answered_date = answered_at
    else:
        stats.current_streak = 0

    stats.longest_streak = max(stats.longest_streak, stats.current_streak)

    stats.total_xp += xp_earned
    level_info = level_for(stats.total_xp)
    stats.current_level = level_info["level"]
    stats.current_title = level_info["title"]
    stats.updated_at = answered_at


# ---------------------------------------------------------------------------
# Solved / daily checks
# ---------------------------------------------------------------------------


async def find_correct_attempt(
    db: AsyncSession,
    user_id: str,
    question_id: str,
) -> QuestionAttempt | None:
    """The user's correct attempt at this question, if one exists."""
    result = await db.execute(
        select(QuestionAttempt)
        .where(
            QuestionAttempt.question_id == question_id,
            QuestionAttempt.user_id == user_id,
            QuestionAttempt.is_correct.is_(True),
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


async def find_attempt_between(
    db: AsyncSession,
    user_id: str,
    question_id: str,
    start: datetime,
    end: datetime,
    correct_only: bool = False,
) -> QuestionAttempt | None:
    """An attempt at this question answered in [start, end), optionally only a correct one."""
    stmt = select(QuestionAttempt).where(
        QuestionAttempt.question_id == question_id,
        QuestionAttempt.user_id == user_id,
        QuestionAttempt.answered_at >= start,
        QuestionAttempt.answered_at < end,
    )
    if correct_only:
        stmt = stmt.where(QuestionAttempt.is_correct.is_(True))
    result = await db.execute(stmt.limit(1))
    return result.scalars().first()


async def next_user_seq(db: AsyncSession, user_id: str) -> int:
    """Next position in the user's attempt log. Read inside the unit of work."""
    result = await db.execute(
        select(func.coalesce(func.max(QuestionAttempt.user_seq), 0)).where(QuestionAttempt.user_id == user_id)
    )
    return int(result.scalar_one()) + 1


async def _reject_if_closed(db: AsyncSession, submission: Submission, now: datetime) -> None:
    if await find_correct_attempt(db, submission.user_id, submission.question_id) is not None:
        raise DomainConflict(Reason.ALREADY_SOLVED, "You have already answered this question correctly")

    if submission.is_daily:
        start, end = local_day_window(now)
        if await find_attempt_between(db, submission.user_id, submission.question_id, start, end) is not None:
            raise DomainConflict(
                Reason.DAILY_ALREADY_ATTEMPTED, "You have already attempted today's daily question"
            )


async def fast_path_check(db: AsyncSession, submission: Submission, now: datetime) -> None:
    """Advisory rejection outside any transaction. Not relied on for correctness."""
    await _reject_if_closed(db, submission, now)


async def authoritative_check(db: AsyncSession, submission: Submission, now: datetime) -> None:
    """The same rejection, run inside the serializable unit of work. This one is binding."""
    await _reject_if_closed(db, submission, now)


def is_serialization_failure(exc: DBAPIError) -> bool:
    """True for store errors that mean "a concurrent transaction won, replay me"."""
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code is None:
        code = getattr(getattr(orig, "__cause__", None), "sqlstate", None)
    if code in _RETRYABLE_SQLSTATES:
        return True
    # SQLite reports write-lock contention this way
    return "database is locked" in str(orig)


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


class AttemptLedger:
    """Validates, records and folds answer submissions."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        serializable_factory: async_sessionmaker[AsyncSession] | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.session_factory = session_factory or get_session_factory()
        self.serializable_factory = serializable_factory or get_serializable_session_factory()
        self.settings = settings or get_settings()

    async def validate(self, submission: Submission) -> Question:
        """Pre-transaction validation. Returns the active question being answered."""
        if submission.selected_answer not in OPTION_KEYS:
            raise InvalidSubmission(Reason.INVALID_OPTION, "Invalid answer. Must be A, B, C, or D")

        async with self.session_factory() as db:
            question = await get_active_question(db, submission.question_id)
        if question is None:
            raise InvalidSubmission(Reason.QUESTION_NOT_FOUND, "Question not found")
        return question

    async def record(self, submission: Submission, now: datetime | None = None) -> LedgerResult:
        """Record one submission. Serialization conflicts are retried here, never surfaced as such."""
        if now is None:
            now = datetime.now(timezone.utc)
        elif now.tzinfo is not None:
            now = now.astimezone(timezone.utc)

        question = await self.validate(submission)

        try:
            async with self.session_factory() as db:
                await fast_path_check(db, submission, now)
        except SQLAlchemyError as exc:
            raise StorageFault(Reason.STORAGE_UNAVAILABLE, "Attempt store unavailable") from exc

        retries = 0
        while True:
            try:
                return await asyncio.wait_for(
                    self._unit_of_work(submission, question, now),
                    timeout=self.settings.ledger_timeout_seconds,
                )
            except DBAPIError as exc:
                if not is_serialization_failure(exc):
                    logger.error("Attempt store failure for user %s: %s", submission.user_id, exc)
                    raise StorageFault(Reason.STORAGE_UNAVAILABLE, "Attempt store unavailable") from exc
                retries += 1
                if retries > self.settings.ledger_max_retries:
                    logger.warning(
                        "Giving up after %d serialization conflicts (user=%s, question=%s)",
                        retries - 1, submission.user_id, submission.question_id,
                    )
                    raise ConcurrencyConflict(
                        Reason.RETRIES_EXHAUSTED, "Too many concurrent submissions, try again"
                    ) from exc
                logger.info(
                    "Serialization conflict, retry %d (user=%s, question=%s)",
                    retries, submission.user_id, submission.question_id,
                )
                await asyncio.sleep(self._backoff(retries))
            except SQLAlchemyError as exc:
                raise StorageFault(Reason.STORAGE_UNAVAILABLE, "Attempt store unavailable") from exc
            except asyncio.TimeoutError as exc:
                raise StorageFault(Reason.TIMEOUT, "Submission timed out, outcome unknown; safe to retry") from exc

    def _backoff(self, retry: int) -> float:
        base = self.settings.ledger_retry_backoff_ms / 1000
        return base * (2 ** (retry - 1)) * random.uniform(0.5, 1.5)  # noqa: S311

    async def _unit_of_work(
        self,
        submission: Submission,
        question: Question,
        now: datetime,
    ) -> LedgerResult:
        async with self.serializable_factory() as db, db.begin():
            # Anything raised before commit rolls the whole unit back
            await authoritative_check(db, submission, now)

            is_correct = submission.selected_answer == question.correct_answer
            # No prior correct attempt survived the check, so a correct answer is the first
            xp_earned = xp_for_difficulty(question.difficulty) if is_correct else 0

            attempt = QuestionAttempt(
                question_id=submission.question_id,
                user_id=submission.user_id,
                user_seq=await next_user_seq(db, submission.user_id),
                user_email=submission.user_email,
                selected_answer=submission.selected_answer,
                is_correct=is_correct,
                source=SOURCE_DAILY_QUESTION if submission.is_daily else SOURCE_PRACTICE,
                answered_at=now,
            )
            db.add(attempt)

            stats = await db.get(UserStats, submission.user_id)
            if stats is None:
                stats = new_user_stats(submission.user_id, submission.user_email, now)
                db.add(stats)
            previous_xp = stats.total_xp

            apply_attempt(stats, question.difficulty, is_correct, xp_earned, now)
            await db.flush()

        return LedgerResult(
            attempt=attempt,
            stats=stats,
            question=question,
            xp_earned=xp_earned,
            leveled_up=did_level_up(previous_xp, stats.total_xp),
        )


# ---------------------------------------------------------------------------
# Rebuild from log
# ---------------------------------------------------------------------------


async def rebuild_user_stats(db: AsyncSession, user_id: str) -> UserStats | None:
    """Recompute a user's stats by replaying their attempt log.

    Attempts are replayed in user_seq order, the order the incremental path
    applied them. Returns a transient UserStats (not added to the session),
    or None if the user has no attempts. Only the first correct attempt per
    question earns XP.
    """
    result = await db.execute(
        select(QuestionAttempt, Question.difficulty)
        .outerjoin(Question, Question.id == QuestionAttempt.question_id)
        .where(QuestionAttempt.user_id == user_id)
        .order_by(QuestionAttempt.user_seq.asc())
    )

    stats: UserStats | None = None
    solved: set[str] = set()
    for attempt, difficulty in result.all():
        if stats is None:
            stats = new_user_stats(user_id, attempt.user_email, attempt.answered_at)

        first_correct = attempt.is_correct and attempt.question_id not in solved
        if first_correct:
            solved.add(attempt.question_id)
        xp = xp_for_difficulty(difficulty) if first_correct and difficulty is not None else 0

        apply_attempt(stats, difficulty or "", attempt.is_correct, xp, attempt.answered_at)

    return stats
