"""Deterministic daily question selection.

Every replica computes the same question for the same local calendar date
from the date string, a fixed salt and the live set of active questions.
Nothing is persisted.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession

from anton.catalog.service import (
    count_active_questions,
    find_active_question_by_number,
    find_any_active_question,
)
from anton.config import get_settings
from anton.db.models import Question


@dataclass(frozen=True)
class DailySelection:
    """Today's question, derived from the date key. question is None when the catalog is empty."""

    date: str
    daily_index: int
    target_number: int | None
    question: Question | None
    reset_instant: datetime

    @property
    def question_id(self) -> str | None:
        return self.question.id if self.question is not None else None


def get_timezone(tz_name: str | None = None) -> ZoneInfo:
    """Configured daily-question timezone."""
    return ZoneInfo(tz_name or get_settings().daily_timezone)


def _to_local(when: datetime, tz: ZoneInfo) -> datetime:
    # Naive datetimes are treated as UTC
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return when.astimezone(tz)


def local_date(when: datetime | None = None, tz: ZoneInfo | None = None) -> date:
    """Calendar date of `when` in the daily-question timezone."""
    if when is None:
        when = datetime.now(timezone.utc)
    return _to_local(when, tz or get_timezone()).date()


def rolling_hash(value: str) -> int:
    """32-bit signed rolling hash: h = h * 31 + code, wrapped like int32 arithmetic."""
    h = 0
    for ch in value:
        h = ((h << 5) - h + ord(ch)) & 0xFFFFFFFF
    if h & 0x80000000:
        h -= 1 << 32
    return h


def daily_index(
    when: datetime | date | None = None,
    salt: str | None = None,
    tz: ZoneInfo | None = None,
) -> int:
    """Non-negative pseudo-index for the local calendar date of `when`."""
    if salt is None:
        salt = get_settings().daily_salt
    day = when if isinstance(when, date) and not isinstance(when, datetime) else local_date(when, tz)
    return abs(rolling_hash(f"{day.isoformat()}-{salt}"))


def next_reset(now: datetime | None = None, tz: ZoneInfo | None = None) -> datetime:
    """Today's reset instant if `now` is before it, otherwise tomorrow's. Returned in UTC."""
    settings = get_settings()
    tz = tz or get_timezone()
    if now is None:
        now = datetime.now(timezone.utc)

    local_now = _to_local(now, tz)
    reset_at = time(settings.daily_reset_hour, settings.daily_reset_minute)
    reset = datetime.combine(local_now.date(), reset_at, tzinfo=tz)
    if local_now >= reset:
        reset = datetime.combine(local_now.date() + timedelta(days=1), reset_at, tzinfo=tz)
    return reset.astimezone(timezone.utc)


def format_time_until_reset(reset: datetime, now: datetime | None = None) -> str:
    """Human-readable countdown, e.g. '5h 23m' or '23m'."""
    if now is None:
        now = datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    diff_minutes = int((reset - now).total_seconds() // 60)
    if diff_minutes < 0:
        return "0m"

    hours, minutes = divmod(diff_minutes, 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def local_day_window(when: datetime | None = None, tz: ZoneInfo | None = None) -> tuple[datetime, datetime]:
    """[start, end) of the local calendar day containing `when`, as UTC instants."""
    tz = tz or get_timezone()
    day = local_date(when, tz)
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


async def resolve_daily_question(
    db: AsyncSession,
    when: datetime | None = None,
) -> DailySelection:
    """Resolve today's question against the active catalog.

    Numbers are not contiguous (deactivated questions leave gaps), so the
    lookup falls back from the exact number to the next higher one, then to
    any active question.
    """
    if when is None:
        when = datetime.now(timezone.utc)

    tz = get_timezone()
    day = local_date(when, tz)
    index = daily_index(day)
    reset = next_reset(when, tz)

    total = await count_active_questions(db)
    if total == 0:
        return DailySelection(day.isoformat(), index, None, None, reset)

    target = (index % total) + 1
    question = await find_active_question_by_number(db, target, mode="exact")
    if question is None:
        question = await find_active_question_by_number(db, target, mode="gte")
    if question is None:
        question = await find_any_active_question(db)

    return DailySelection(day.isoformat(), index, target, question, reset)
