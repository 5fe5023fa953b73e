"""
SQLAlchemy 2.0 Models for the study plan engine.

Uses modern declarative syntax with Mapped[] type annotations.
All models use UUID primary keys and portable column types so the schema
runs on PostgreSQL in production and SQLite in tests.
"""

from datetime import date, datetime
from enum import Enum as PyEnum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studyplan.db.base import Base


# =============================================================================
# ENUMS
# =============================================================================


class PlanStatus(str, PyEnum):
    """Lifecycle status of a study plan."""

    ACTIVE = "active"
    ABANDONED = "abandoned"
    COMPLETED = "completed"


class GenerationMode(str, PyEnum):
    """How a plan's tasks were produced."""

    CURRICULUM = "curriculum"
    DESCRIPTION = "description"
    MANUAL = "manual"


class TaskStatus(str, PyEnum):
    """Progress status of a plan task."""

    PENDING = "pending"
    COMPLETED = "completed"
    SKIPPED = "skipped"


def _one_of(column: str, enum_cls: type[PyEnum], name: str) -> CheckConstraint:
    """CHECK constraint limiting a string column to the values of an enum."""
    values = ", ".join(f"'{member.value}'" for member in enum_cls)
    return CheckConstraint(f"{column} IN ({values})", name=name)


# =============================================================================
# MODELS
# =============================================================================


class User(Base):
    """Learner account. Owner of every other row."""

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid(), primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    subjects: Mapped[list["Subject"]] = relationship(
        "Subject", back_populates="user", cascade="all, delete-orphan"
    )
    goals: Mapped[list["Goal"]] = relationship(
        "Goal", back_populates="user", cascade="all, delete-orphan"
    )
    study_plans: Mapped[list["StudyPlan"]] = relationship(
        "StudyPlan", back_populates="user", cascade="all, delete-orphan"
    )


class Subject(Base):
    """A subject the learner studies (e.g. "Physics")."""

    __tablename__ = "subjects"
    __table_args__ = (
        Index("idx_subjects_user_name", "user_id", "name"),
    )

    id: Mapped[UUID] = mapped_column(Uuid(), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    color: Mapped[Optional[str]] = mapped_column(String(7), nullable=True)  # Hex color
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="subjects")
    curriculum_items: Mapped[list["CurriculumItem"]] = relationship(
        "CurriculumItem", back_populates="subject", cascade="all, delete-orphan"
    )


class CurriculumItem(Base):
    """
    Learning objective (parent_id is NULL) or a lesson under one.

    The three progress flags are independent, and an objective's flags do not
    roll up from its lessons.
    """

    __tablename__ = "curriculum_items"
    __table_args__ = (
        Index("idx_curriculum_user_order", "user_id", "order_index"),
    )

    id: Mapped[UUID] = mapped_column(Uuid(), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    subject_id: Mapped[UUID] = mapped_column(
        Uuid(), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    parent_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid(), ForeignKey("curriculum_items.id", ondelete="CASCADE"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    studied: Mapped[bool] = mapped_column(default=False, nullable=False)
    reviewed: Mapped[bool] = mapped_column(default=False, nullable=False)
    solved: Mapped[bool] = mapped_column(default=False, nullable=False)
    order_index: Mapped[int] = mapped_column(default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    subject: Mapped["Subject"] = relationship("Subject", back_populates="curriculum_items")


class Goal(Base):
    """
    Learner goal (usually an exam) driving plan generation.

    At most one goal per user has is_active set.
    subject_ids holds the scoped subject set as UUID strings; empty means all.
    """

    __tablename__ = "user_goals"
    __table_args__ = (
        Index("idx_user_goals_user_active", "user_id", "is_active"),
        CheckConstraint("hours_per_day > 0", name="valid_hours_per_day"),
    )

    id: Mapped[UUID] = mapped_column(Uuid(), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    target_date: Mapped[Optional[date]] = mapped_column(nullable=True)
    hours_per_day: Mapped[float] = mapped_column(nullable=False, default=4.0)
    subject_ids: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="goals")


class StudyPlan(Base):
    """
    Container for a learner's scheduled tasks.

    Only ONE active plan per user. Regenerating reuses the active plan and
    replaces its future pending tasks; history is never rewritten.
    """

    __tablename__ = "study_plans"
    __table_args__ = (
        Index("idx_study_plans_user_status", "user_id", "status"),
        # At most one active plan per user
        Index(
            "uq_study_plans_user_active",
            "user_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
        _one_of("status", PlanStatus, "valid_plan_status"),
        _one_of("mode", GenerationMode, "valid_plan_mode"),
    )

    id: Mapped[UUID] = mapped_column(Uuid(), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    goal_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid(), ForeignKey("user_goals.id", ondelete="SET NULL"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    start_date: Mapped[date] = mapped_column(nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=PlanStatus.ACTIVE.value)
    mode: Mapped[str] = mapped_column(String(20), nullable=False, default=GenerationMode.MANUAL.value)
    ai_generated: Mapped[bool] = mapped_column(default=False, nullable=False)
    metadata_json: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="study_plans")
    tasks: Mapped[list["PlanTask"]] = relationship(
        "PlanTask", back_populates="plan", cascade="all, delete-orphan"
    )


class PlanTask(Base):
    """
    One scheduled piece of study work.

    order_index orders tasks within (plan_id, scheduled_date). It is not a DB
    unique constraint because rescheduled tasks may land on an occupied index.
    """

    __tablename__ = "plan_tasks"
    __table_args__ = (
        Index("idx_plan_tasks_plan_date", "plan_id", "scheduled_date", "order_index"),
        Index("idx_plan_tasks_user_status", "user_id", "status"),
        CheckConstraint("duration_minutes > 0", name="valid_duration_minutes"),
        _one_of("status", TaskStatus, "valid_task_status"),
    )

    id: Mapped[UUID] = mapped_column(Uuid(), primary_key=True, default=uuid4)
    plan_id: Mapped[UUID] = mapped_column(
        Uuid(), ForeignKey("study_plans.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    subject_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid(), ForeignKey("subjects.id", ondelete="SET NULL"), nullable=True
    )
    subject_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    scheduled_date: Mapped[date] = mapped_column(nullable=False)
    duration_minutes: Mapped[int] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=TaskStatus.PENDING.value)
    priority: Mapped[int] = mapped_column(nullable=False, default=2)
    order_index: Mapped[int] = mapped_column(nullable=False, default=0)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    actual_duration_minutes: Mapped[Optional[int]] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    plan: Mapped["StudyPlan"] = relationship("StudyPlan", back_populates="tasks")
