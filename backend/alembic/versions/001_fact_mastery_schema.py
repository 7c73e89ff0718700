"""Fact Mastery Schema

Creates the tables for fact progression and daily goals:
- user_profiles: grade and focus track (written by the roster sync)
- track_progress: per (user, track) aggregates
- fact_progress: per (user, track, fact) mastery state with a version counter
- daily_goal_sets / daily_goals: per-day goal counters
- daily_goal_credits: ledger of facts already counted toward a goal

Revision ID: 001
Revises:
Create Date: 2024-05-01
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ===========================================
    # Fact progress
    # ===========================================

    op.create_table(
        "user_profiles",
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column("grade", sa.Integer(), nullable=True),
        sa.Column("focus_track", sa.String(32), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "track_progress",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("track_id", sa.String(32), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("last_updated", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("overall_cqpm", sa.Float(), server_default="0"),
        sa.Column("accuracy_rate", sa.Float(), server_default="0"),
        sa.UniqueConstraint("user_id", "track_id", name="uq_track_progress_user_track"),
    )
    op.create_index("ix_track_progress_user_id", "track_progress", ["user_id"])

    op.create_table(
        "fact_progress",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("track_id", sa.String(32), nullable=False),
        sa.Column("fact_id", sa.String(32), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("attempts", sa.Integer(), server_default="0"),
        sa.Column("correct", sa.Integer(), server_default="0"),
        sa.Column("time_spent_ms", sa.Integer(), server_default="0"),
        sa.Column(
            "today_stats",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("last_attempt_date", sa.Date(), nullable=True),
        sa.Column("status_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("accuracy_streak", sa.Integer(), nullable=True),
        sa.Column("retention_day", sa.Integer(), nullable=True),
        sa.Column("next_retention_date", sa.Date(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint(
            "user_id", "track_id", "fact_id", name="uq_fact_progress_user_track_fact"
        ),
    )
    op.create_index("ix_fact_progress_status", "fact_progress", ["status"])

    # ===========================================
    # Daily goals
    # ===========================================

    op.create_table(
        "daily_goal_sets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("track_id", sa.String(32), nullable=False),
        sa.Column("goal_date", sa.Date(), nullable=False),
        sa.Column("half_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("all_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint(
            "user_id", "track_id", "goal_date", name="uq_daily_goal_sets_user_track_date"
        ),
    )
    op.create_index("ix_daily_goal_sets_user_id", "daily_goal_sets", ["user_id"])

    op.create_table(
        "daily_goals",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "goal_set_id",
            sa.Integer(),
            sa.ForeignKey("daily_goal_sets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("goal_type", sa.String(20), nullable=False),
        sa.Column("total", sa.Integer(), nullable=False),
        sa.Column("completed", sa.Integer(), nullable=False, server_default="0"),
        sa.UniqueConstraint("goal_set_id", "goal_type", name="uq_daily_goals_set_type"),
        sa.CheckConstraint("completed >= 0", name="ck_daily_goals_completed_nonneg"),
        sa.CheckConstraint("completed <= total", name="ck_daily_goals_completed_le_total"),
    )

    op.create_table(
        "daily_goal_credits",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "goal_set_id",
            sa.Integer(),
            sa.ForeignKey("daily_goal_sets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("goal_type", sa.String(20), nullable=False),
        sa.Column("fact_id", sa.String(32), nullable=False),
        sa.Column("credited_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint(
            "goal_set_id", "goal_type", "fact_id", name="uq_daily_goal_credits_fact"
        ),
    )
    op.create_index(
        "ix_daily_goal_credits_goal_set_id", "daily_goal_credits", ["goal_set_id"]
    )


def downgrade() -> None:
    op.drop_index("ix_daily_goal_credits_goal_set_id", table_name="daily_goal_credits")
    op.drop_table("daily_goal_credits")
    op.drop_table("daily_goals")
    op.drop_index("ix_daily_goal_sets_user_id", table_name="daily_goal_sets")
    op.drop_table("daily_goal_sets")
    op.drop_index("ix_fact_progress_status", table_name="fact_progress")
    op.drop_table("fact_progress")
    op.drop_index("ix_track_progress_user_id", table_name="track_progress")
    op.drop_table("track_progress")
    op.drop_table("user_profiles")
