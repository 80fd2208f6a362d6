"""Pydantic request/response models for progression endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

# --- Attempt ---


class AttemptRequest(BaseModel):
    selected_answer: str = Field(..., min_length=1, max_length=1)
    is_daily: bool = False


class AttemptResultResponse(BaseModel):
    attempt_id: str
    is_correct: bool
    correct_answer: str
    explanation: str | None = None
    xp_earned: int
    leveled_up: bool
    total_xp: int
    current_level: int
    current_title: str
    xp_to_next_level: int
    current_streak: int
    longest_streak: int
    answered_at: datetime


# --- Daily question ---


class DailyQuestionResponse(BaseModel):
    question_id: str
    number: int
    difficulty: str
    date: str
    reset_instant: datetime
    time_until_reset: str
    has_attempted: bool = False
    is_completed: bool = False


# --- Levels ---


class LevelEntry(BaseModel):
    level: int
    title: str
    cumulative_xp_needed: int


class AllLevelsResponse(BaseModel):
    levels: list[LevelEntry]


# --- User stats ---


class DifficultyBreakdown(BaseModel):
    answered: int
    correct: int


class UserStatsResponse(BaseModel):
    user_id: str
    total_questions_answered: int
    total_correct_answers: int
    easy: DifficultyBreakdown
    medium: DifficultyBreakdown
    hard: DifficultyBreakdown
    current_streak: int
    longest_streak: int
    last_answered_date: datetime | None = None
    total_xp: int
    current_level: int
    current_title: str
    xp_to_next_level: int
    progress_percent: float
