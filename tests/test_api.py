"""Progression API tests: attempt submission, daily question, levels, stats."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

HEADERS = {"X-User-Id": "user-1", "X-User-Email": "user-1@example.com"}


@pytest.mark.asyncio
async def test_attempt_requires_identity(client: AsyncClient, make_question) -> None:
    await make_question(1)
    response = await client.post("/api/v1/questions/q-1/attempt", json={"selected_answer": "A"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Unauthorized"


@pytest.mark.asyncio
async def test_correct_attempt(client: AsyncClient, make_question) -> None:
    await make_question(1, difficulty="HARD", correct_answer="C")

    response = await client.post("/api/v1/questions/q-1/attempt", json={"selected_answer": "C"}, headers=HEADERS)

    assert response.status_code == 200
    data = response.json()
    assert data["is_correct"] is True
    assert data["xp_earned"] == 50
    assert data["total_xp"] == 50
    assert data["current_title"] == "Intern"
    assert data["leveled_up"] is True


@pytest.mark.asyncio
async def test_already_solved_is_409(client: AsyncClient, make_question) -> None:
    await make_question(1)
    await client.post("/api/v1/questions/q-1/attempt", json={"selected_answer": "A"}, headers=HEADERS)

    response = await client.post("/api/v1/questions/q-1/attempt", json={"selected_answer": "A"}, headers=HEADERS)

    assert response.status_code == 409
    assert response.json() == {
        "detail": "You have already answered this question correctly",
        "reason": "already_solved",
    }


@pytest.mark.asyncio
async def test_invalid_option_is_400(client: AsyncClient, make_question) -> None:
    await make_question(1)
    response = await client.post("/api/v1/questions/q-1/attempt", json={"selected_answer": "E"}, headers=HEADERS)
    assert response.status_code == 400
    assert response.json()["reason"] == "invalid_option"


@pytest.mark.asyncio
async def test_unknown_question_is_404(client: AsyncClient) -> None:
    response = await client.post("/api/v1/questions/nope/attempt", json={"selected_answer": "A"}, headers=HEADERS)
    assert response.status_code == 404
    assert response.json()["reason"] == "question_not_found"


@pytest.mark.asyncio
async def test_missing_body_is_422(client: AsyncClient) -> None:
    response = await client.post("/api/v1/questions/q-1/attempt", json={}, headers=HEADERS)
    assert response.status_code == 422
    assert response.json()["detail"] == "Validation error"


@pytest.mark.asyncio
async def test_daily_question(client: AsyncClient, make_question) -> None:
    await make_question(1)

    response = await client.get("/api/v1/daily-question", headers=HEADERS)

    assert response.status_code == 200
    data = response.json()
    # A single active question is always the daily question
    assert data["question_id"] == "q-1"
    assert data["has_attempted"] is False
    assert "time_until_reset" in data


@pytest.mark.asyncio
async def test_daily_question_empty_catalog(client: AsyncClient) -> None:
    response = await client.get("/api/v1/daily-question")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_daily_submission_wrong_question(client: AsyncClient, make_question) -> None:
    await make_question(1)
    await make_question(2, is_active=False)

    response = await client.post(
        "/api/v1/questions/q-2/attempt",
        json={"selected_answer": "A", "is_daily": True},
        headers=HEADERS,
    )

    assert response.status_code == 409
    assert response.json()["reason"] == "not_todays_daily"


@pytest.mark.asyncio
async def test_levels(client: AsyncClient) -> None:
    response = await client.get("/api/v1/levels")
    assert response.status_code == 200
    levels = response.json()["levels"]
    assert len(levels) == 20
    assert levels[0] == {"level": 1, "title": "Newbie", "cumulative_xp_needed": 0}
    assert levels[-1] == {"level": 20, "title": "Solution Architect", "cumulative_xp_needed": 20000}


@pytest.mark.asyncio
async def test_user_stats(client: AsyncClient, make_question) -> None:
    response = await client.get("/api/v1/users/user-1/stats")
    assert response.status_code == 404

    await make_question(1, difficulty="EASY")
    await client.post("/api/v1/questions/q-1/attempt", json={"selected_answer": "A"}, headers=HEADERS)

    response = await client.get("/api/v1/users/user-1/stats")
    assert response.status_code == 200
    data = response.json()
    assert data["total_xp"] == 10
    assert data["easy"] == {"answered": 1, "correct": 1}
    assert data["progress_percent"] == 50.0
