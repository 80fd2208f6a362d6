"""Reconcile tests: drift detection and repair from the attempt log."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import update

from anton.db.models import UserStats
from anton.progression.ledger import AttemptLedger, Submission
from anton.progression.reconcile import list_users_with_attempts, reconcile_user_stats
from anton.workers.reconcile_runner import run

NOW = datetime(2024, 6, 1, 5, 0, tzinfo=timezone.utc)


async def _answer(question_id: str, answer: str, user_id: str = "user-1", minutes: int = 0) -> None:
    submission = Submission(user_id, f"{user_id}@example.com", question_id, answer)
    await AttemptLedger().record(submission, now=NOW + timedelta(minutes=minutes))


async def _corrupt(db, user_id: str = "user-1", **values) -> None:
    await db.execute(update(UserStats).where(UserStats.user_id == user_id).values(**values))
    await db.commit()
    db.expire_all()


class TestReconcileUserStats:
    @pytest.mark.asyncio
    async def test_consistent_user_has_no_drift(self, db_session, make_question):
        await make_question(1, difficulty="HARD")
        await make_question(2, difficulty="EASY")
        await _answer("q-1", "A")
        await _answer("q-2", "B", minutes=1)

        report = await reconcile_user_stats(db_session, "user-1")

        assert report == {"user_id": "user-1", "missing": False, "drift": {}}

    @pytest.mark.asyncio
    async def test_detects_drift_without_writing(self, db_session, make_question):
        await make_question(1, difficulty="HARD")
        await _answer("q-1", "A")
        await _corrupt(db_session, total_xp=999, current_streak=4)

        report = await reconcile_user_stats(db_session, "user-1")

        assert report["drift"]["total_xp"] == (999, 50)
        assert report["drift"]["current_streak"] == (4, 1)
        db_session.expire_all()
        stored = await db_session.get(UserStats, "user-1")
        assert stored.total_xp == 999

    @pytest.mark.asyncio
    async def test_apply_repairs_row(self, db_session, make_question):
        await make_question(1, difficulty="HARD")
        await _answer("q-1", "A")
        await _corrupt(db_session, total_xp=999, current_level=7, current_title="Junior Dev III")

        await reconcile_user_stats(db_session, "user-1", apply=True)
        await db_session.commit()

        db_session.expire_all()
        stored = await db_session.get(UserStats, "user-1")
        assert stored.total_xp == 50
        assert stored.current_level == 2
        assert stored.current_title == "Intern"

    @pytest.mark.asyncio
    async def test_missing_row_is_created(self, db_session, make_question):
        await make_question(1)
        await _answer("q-1", "A")
        await db_session.delete(await db_session.get(UserStats, "user-1"))
        await db_session.commit()

        report = await reconcile_user_stats(db_session, "user-1", apply=True)
        await db_session.commit()

        assert report["missing"] is True
        db_session.expire_all()
        stored = await db_session.get(UserStats, "user-1")
        assert stored.total_xp == 25

    @pytest.mark.asyncio
    async def test_user_without_attempts(self, db_session):
        report = await reconcile_user_stats(db_session, "nobody", apply=True)
        assert report == {"user_id": "nobody", "missing": False, "drift": {}}


class TestReconcileRunner:
    @pytest.mark.asyncio
    async def test_lists_users(self, db_session, make_question):
        await make_question(1)
        await _answer("q-1", "A", user_id="user-b")
        await _answer("q-1", "B", user_id="user-a")

        assert await list_users_with_attempts(db_session) == ["user-a", "user-b"]

    @pytest.mark.asyncio
    async def test_run_reports_then_repairs(self, db_session, make_question):
        await make_question(1)
        await _answer("q-1", "A", user_id="user-a")
        await _answer("q-1", "A", user_id="user-b")
        await _corrupt(db_session, user_id="user-b", total_xp=0)

        assert await run(apply=False) == 1
        assert await run(apply=True) == 1
        assert await run(apply=False) == 0

    @pytest.mark.asyncio
    async def test_run_limited_to_users(self, db_session, make_question):
        await make_question(1)
        await _answer("q-1", "A", user_id="user-a")
        await _corrupt(db_session, user_id="user-a", total_xp=0)

        assert await run(apply=False, user_ids=["user-b"]) == 0
        assert await run(apply=False, user_ids=["user-a"]) == 1
