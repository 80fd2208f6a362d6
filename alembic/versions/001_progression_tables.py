"""Question catalog, attempt log and user stats.

Creates questions, question_attempts and user_stats tables.

Revision ID: 001_progression_tables
Revises:
Create Date: 2026-10-17
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001_progression_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Questions (owned by the catalog, read-only here) ---
    op.create_table(
        "questions",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("number", sa.Integer, nullable=False, unique=True),
        sa.Column("text", sa.Text, nullable=False),
        sa.Column("option_a", sa.Text, nullable=False),
        sa.Column("option_b", sa.Text, nullable=False),
        sa.Column("option_c", sa.Text, nullable=False),
        sa.Column("option_d", sa.Text, nullable=False),
        sa.Column("correct_answer", sa.String(1), nullable=False),
        sa.Column("explanation", sa.Text, nullable=True),
        sa.Column("difficulty", sa.String(8), nullable=False, server_default="MEDIUM"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("correct_answer IN ('A', 'B', 'C', 'D')", name="ck_questions_correct_answer"),
        sa.CheckConstraint("difficulty IN ('EASY', 'MEDIUM', 'HARD')", name="ck_questions_difficulty"),
    )
    op.create_index("idx_questions_active_number", "questions", ["is_active", "number"])

    # --- Attempt log (append-only) ---
    op.create_table(
        "question_attempts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("question_id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("user_seq", sa.Integer, nullable=False),
        sa.Column("user_email", sa.String(320), nullable=False),
        sa.Column("selected_answer", sa.String(1), nullable=False),
        sa.Column("is_correct", sa.Boolean, nullable=False),
        sa.Column("source", sa.String(16), nullable=False, server_default="PRACTICE"),
        sa.Column("answered_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("user_id", "user_seq", name="uq_attempts_user_seq"),
    )
    op.create_index("idx_attempts_question_user", "question_attempts", ["question_id", "user_id"])
    op.create_index("idx_attempts_user_answered", "question_attempts", ["user_id", "answered_at"])

    # --- User stats (one row per user, derived from the attempt log) ---
    op.create_table(
        "user_stats",
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column("user_email", sa.String(320), nullable=False),
        sa.Column("total_questions_answered", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_correct_answers", sa.Integer, nullable=False, server_default="0"),
        sa.Column("easy_questions_answered", sa.Integer, nullable=False, server_default="0"),
        sa.Column("easy_correct_answers", sa.Integer, nullable=False, server_default="0"),
        sa.Column("medium_questions_answered", sa.Integer, nullable=False, server_default="0"),
        sa.Column("medium_correct_answers", sa.Integer, nullable=False, server_default="0"),
        sa.Column("hard_questions_answered", sa.Integer, nullable=False, server_default="0"),
        sa.Column("hard_correct_answers", sa.Integer, nullable=False, server_default="0"),
        sa.Column("current_streak", sa.Integer, nullable=False, server_default="0"),
        sa.Column("longest_streak", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_answered_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_xp", sa.Integer, nullable=False, server_default="0"),
        sa.Column("current_level", sa.Integer, nullable=False, server_default="1"),
        sa.Column("current_title", sa.String(64), nullable=False, server_default="Newbie"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_user_stats_xp", "user_stats", [sa.text("total_xp DESC")])


def downgrade() -> None:
    op.drop_table("user_stats")
    op.drop_table("question_attempts")
    op.drop_table("questions")
