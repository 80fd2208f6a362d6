"""Read-only question catalog queries used by the progression engine."""

from __future__ import annotations

from typing import Literal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from anton.db.models import Question


async def get_question(db: AsyncSession, question_id: str) -> Question | None:
    """Fetch a question by id, active or not."""
    return await db.get(Question, question_id)


async def get_active_question(db: AsyncSession, question_id: str) -> Question | None:
    """Fetch a question by id only if it is active."""
    result = await db.execute(
        select(Question).where(
            Question.id == question_id,
            Question.is_active.is_(True),
        )
    )
    return result.scalar_one_or_none()


async def count_active_questions(db: AsyncSession) -> int:
    """Number of active questions."""
    result = await db.execute(
        select(func.count(Question.id)).where(Question.is_active.is_(True))
    )
    return result.scalar() or 0


async def find_active_question_by_number(
    db: AsyncSession,
    number: int,
    mode: Literal["exact", "gte"] = "exact",
) -> Question | None:
    """Find an active question by its catalog number.

    mode="exact" matches number exactly; mode="gte" returns the active
    question with the smallest number >= number.
    """
    stmt = select(Question).where(Question.is_active.is_(True))
    if mode == "exact":
        stmt = stmt.where(Question.number == number)
    elif mode == "gte":
        stmt = stmt.where(Question.number >= number).order_by(Question.number.asc()).limit(1)
    else:
        msg = f"Unknown lookup mode: {mode}"
        raise ValueError(msg)

    result = await db.execute(stmt)
    return result.scalars().first()


async def find_any_active_question(db: AsyncSession) -> Question | None:
    """Lowest-numbered active question, or None if the catalog has none."""
    result = await db.execute(
        select(Question)
        .where(Question.is_active.is_(True))
        .order_by(Question.number.asc())
        .limit(1)
    )
    return result.scalar_one_or_none()
