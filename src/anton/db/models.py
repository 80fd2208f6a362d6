"""ORM models for the question catalog, attempt log and user stats.

Tables are created by Alembic migration 001_progression_tables.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    true,
)
from sqlalchemy.orm import Mapped, mapped_column

from anton.db.base import Base

OPTION_KEYS = ("A", "B", "C", "D")

SOURCE_PRACTICE = "PRACTICE"
SOURCE_DAILY_QUESTION = "DAILY_QUESTION"


# ---------------------------------------------------------------------------
# Question catalog (read-only for the engine)
# ---------------------------------------------------------------------------


class Question(Base):
    """Catalog question. The engine reads id, number, difficulty, correct_answer, is_active."""

    __tablename__ = "questions"
    __table_args__ = (
        Index("idx_questions_active_number", "is_active", "number"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    number: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    option_a: Mapped[str] = mapped_column(Text, nullable=False)
    option_b: Mapped[str] = mapped_column(Text, nullable=False)
    option_c: Mapped[str] = mapped_column(Text, nullable=False)
    option_d: Mapped[str] = mapped_column(Text, nullable=False)
    correct_answer: Mapped[str] = mapped_column(String(1), nullable=False)
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
    difficulty: Mapped[str] = mapped_column(String(8), nullable=False, server_default="MEDIUM")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=true())
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), server_default=func.now())


# ---------------------------------------------------------------------------
# Attempt log
# ---------------------------------------------------------------------------


class QuestionAttempt(Base):
    """Append-only answer log. At most one correct row per (user, question), enforced by the ledger.

    user_seq numbers a user's attempts in the order their units of work
    committed; replaying the log follows it, not answered_at.
    """

    __tablename__ = "question_attempts"
    __table_args__ = (
        UniqueConstraint("user_id", "user_seq", name="uq_attempts_user_seq"),
        Index("idx_attempts_question_user", "question_id", "user_id"),
        Index("idx_attempts_user_answered", "user_id", "answered_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    question_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_seq: Mapped[int] = mapped_column(Integer, nullable=False)
    user_email: Mapped[str] = mapped_column(String(320), nullable=False)
    selected_answer: Mapped[str] = mapped_column(String(1), nullable=False)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    source: Mapped[str] = mapped_column(String(16), nullable=False, server_default=SOURCE_PRACTICE)
    answered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# User stats
# ---------------------------------------------------------------------------


class UserStats(Base):
    """Denormalized per-user summary of the attempt log, single row per user."""

    __tablename__ = "user_stats"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_email: Mapped[str] = mapped_column(String(320), nullable=False)
    total_questions_answered: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    total_correct_answers: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    easy_questions_answered: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    easy_correct_answers: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    medium_questions_answered: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    medium_correct_answers: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    hard_questions_answered: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    hard_correct_answers: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    last_answered_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    total_xp: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    current_level: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")
    current_title: Mapped[str] = mapped_column(String(64), nullable=False, server_default="Newbie")
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
