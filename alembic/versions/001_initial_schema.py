"""Initial schema with all tables.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

Creates the study plan schema:
- Tables: users, subjects, curriculum_items, user_goals, study_plans, plan_tasks
- Indexes: per-user lookups and the per-day task ordering index

Column types are portable (Uuid, JSON) so the same revision runs on
PostgreSQL and SQLite. Primary keys are generated application-side.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def upgrade() -> None:
    # ==========================================================================
    # USERS TABLE
    # ==========================================================================
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )

    # ==========================================================================
    # SUBJECTS TABLE
    # ==========================================================================
    op.create_table(
        "subjects",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("color", sa.String(7), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_subjects_user_name", "subjects", ["user_id", "name"])

    # ==========================================================================
    # CURRICULUM_ITEMS TABLE
    # ==========================================================================
    op.create_table(
        "curriculum_items",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("subject_id", sa.Uuid(), nullable=False),
        sa.Column("parent_id", sa.Uuid(), nullable=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("studied", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("reviewed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("solved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["subject_id"], ["subjects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["parent_id"], ["curriculum_items.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_curriculum_user_order", "curriculum_items", ["user_id", "order_index"])
    op.create_index("ix_curriculum_items_subject_id", "curriculum_items", ["subject_id"])

    # ==========================================================================
    # USER_GOALS TABLE
    # ==========================================================================
    op.create_table(
        "user_goals",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("target_date", sa.Date(), nullable=True),
        sa.Column("hours_per_day", sa.Float(), nullable=False, server_default="4"),
        sa.Column("subject_ids", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.CheckConstraint("hours_per_day > 0", name="valid_hours_per_day"),
    )
    op.create_index("idx_user_goals_user_active", "user_goals", ["user_id", "is_active"])

    # ==========================================================================
    # STUDY_PLANS TABLE
    # ==========================================================================
    op.create_table(
        "study_plans",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("goal_id", sa.Uuid(), nullable=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("mode", sa.String(20), nullable=False, server_default="manual"),
        sa.Column("ai_generated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("metadata_json", sa.JSON(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["goal_id"], ["user_goals.id"], ondelete="SET NULL"),
        sa.CheckConstraint("status IN ('active', 'abandoned', 'completed')", name="valid_plan_status"),
        sa.CheckConstraint("mode IN ('curriculum', 'description', 'manual')", name="valid_plan_mode"),
    )
    op.create_index("idx_study_plans_user_status", "study_plans", ["user_id", "status"])
    # At most one active plan per user
    op.create_index(
        "uq_study_plans_user_active",
        "study_plans",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
        sqlite_where=sa.text("status = 'active'"),
    )

    # ==========================================================================
    # PLAN_TASKS TABLE
    # ==========================================================================
    op.create_table(
        "plan_tasks",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("plan_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("subject_id", sa.Uuid(), nullable=True),
        sa.Column("subject_name", sa.String(255), nullable=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("scheduled_date", sa.Date(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="2"),
        sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_duration_minutes", sa.Integer(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["plan_id"], ["study_plans.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["subject_id"], ["subjects.id"], ondelete="SET NULL"),
        sa.CheckConstraint("duration_minutes > 0", name="valid_duration_minutes"),
        sa.CheckConstraint("status IN ('pending', 'completed', 'skipped')", name="valid_task_status"),
    )
    # Task order within a day; not unique because rescheduled tasks may collide
    op.create_index("idx_plan_tasks_plan_date", "plan_tasks", ["plan_id", "scheduled_date", "order_index"])
    op.create_index("idx_plan_tasks_user_status", "plan_tasks", ["user_id", "status"])


def downgrade() -> None:
    # Drop tables in reverse dependency order
    op.drop_table("plan_tasks")
    op.drop_table("study_plans")
    op.drop_table("user_goals")
    op.drop_table("curriculum_items")
    op.drop_table("subjects")
    op.drop_table("users")
