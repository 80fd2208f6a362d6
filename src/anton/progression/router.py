"""Progression API endpoints: attempt submission, daily question, levels, stats."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from anton.dependencies import Identity, get_db, get_identity, get_identity_optional, get_redis_optional
from anton.progression.levels import LEVEL_DATA
from anton.progression.schemas import (
    AllLevelsResponse,
    AttemptRequest,
    AttemptResultResponse,
    DailyQuestionResponse,
    LevelEntry,
    UserStatsResponse,
)
from anton.progression.service import ProgressionService

router = APIRouter(prefix="/api/v1", tags=["Progression"])


@router.post("/questions/{question_id}/attempt", response_model=AttemptResultResponse)
async def submit_attempt(
    question_id: str,
    body: AttemptRequest,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
    redis: Redis | None = Depends(get_redis_optional),
):
    """Submit an answer. Rejections surface through the progression error handler."""
    svc = ProgressionService(db, redis=redis)
    return await svc.submit_attempt(
        user_id=identity.user_id,
        user_email=identity.email,
        question_id=question_id,
        selected_answer=body.selected_answer,
        is_daily=body.is_daily,
    )


@router.get("/daily-question", response_model=DailyQuestionResponse)
async def get_daily_question(
    identity: Identity | None = Depends(get_identity_optional),
    db: AsyncSession = Depends(get_db),
):
    """Today's question metadata, with attempt status when the caller is identified."""
    svc = ProgressionService(db)
    info = await svc.get_daily_question_info(user_id=identity.user_id if identity else None)
    if info is None:
        raise HTTPException(status_code=404, detail="Today's daily question is not available")
    return info


@router.get("/levels", response_model=AllLevelsResponse)
async def list_levels():
    """Get all level definitions."""
    return AllLevelsResponse(
        levels=[
            LevelEntry(level=t["level"], title=t["title"], cumulative_xp_needed=t["cumulative"])
            for t in LEVEL_DATA
        ]
    )


@router.get("/users/{user_id}/stats", response_model=UserStatsResponse)
async def get_user_stats(user_id: str, db: AsyncSession = Depends(get_db)):
    """Read-only stats for a user."""
    svc = ProgressionService(db)
    stats = await svc.get_user_stats(user_id)
    if stats is None:
        raise HTTPException(status_code=404, detail="No stats for this user")
    return stats
