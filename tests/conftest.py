"""Shared test fixtures.

Tests run against a throwaway SQLite file by default. Set
ANTON_TEST_DATABASE_URL to a PostgreSQL URL to exercise real
SERIALIZABLE isolation instead; tables are dropped and recreated per test.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timezone
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from anton.database import close_db, get_engine, get_session_factory, init_db
from anton.db.base import Base
from anton.db.models import Question, UserStats
from anton.main import create_app
from anton.progression.ledger import new_user_stats
from anton.progression.levels import level_for

QuestionFactory = Callable[..., Awaitable[Question]]


def _test_database_url(tmp_path: Path) -> str:
    return os.environ.get("ANTON_TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path}/anton_test.db"


@pytest_asyncio.fixture
async def db_session(tmp_path: Path) -> AsyncGenerator[AsyncSession, None]:
    """Fresh schema and a direct session for seeding and assertions."""
    await init_db(_test_database_url(tmp_path))
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with get_session_factory()() as session:
        yield session

    await close_db()


@pytest_asyncio.fixture
async def make_question(db_session: AsyncSession) -> QuestionFactory:
    """Factory that inserts and commits a catalog question."""

    async def _make(
        number: int,
        difficulty: str = "MEDIUM",
        correct_answer: str = "A",
        is_active: bool = True,
    ) -> Question:
        question = Question(
            id=f"q-{number}",
            number=number,
            text=f"Question {number}?",
            option_a="Option A",
            option_b="Option B",
            option_c="Option C",
            option_d="Option D",
            correct_answer=correct_answer,
            explanation=f"Because {correct_answer}.",
            difficulty=difficulty,
            is_active=is_active,
        )
        db_session.add(question)
        await db_session.commit()
        return question

    return _make


@pytest_asyncio.fixture
async def make_stats(db_session: AsyncSession) -> Callable[..., Awaitable[UserStats]]:
    """Factory that inserts a pre-existing stats row for a user."""
    async def _make(user_id: str = "user-1", total_xp: int = 0, streak: int = 0, longest: int | None = None) -> UserStats:
        stats = new_user_stats(user_id, f"{user_id}@example.com", datetime(2024, 1, 1, tzinfo=timezone.utc))
        info = level_for(total_xp)
        stats.total_xp = total_xp
        stats.current_level = info["level"]
        stats.current_title = info["title"]
        stats.current_streak = streak
        stats.longest_streak = streak if longest is None else longest
        db_session.add(stats)
        await db_session.commit()
        return stats

    return _make


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client bound to the test database. Redis is left uninitialized."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
