"""Study plan schemas."""

import datetime as dt
from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import Field

from studyplan.schemas.base import BaseSchema
from studyplan.schemas.tasks import TaskRead
from studyplan.services.work_units import SubjectSessions

PlanStatusType = Literal["active", "abandoned", "completed"]
GenerationModeType = Literal["curriculum", "description", "manual"]


class StudyPlanRead(BaseSchema):
    """Schema for reading a study plan."""

    id: UUID
    user_id: UUID
    goal_id: UUID | None
    title: str
    start_date: date
    end_date: date | None
    status: PlanStatusType
    mode: GenerationModeType
    ai_generated: bool
    created_at: datetime


class TaskSummary(BaseSchema):
    """Compact task view used in status summaries."""

    id: UUID
    title: str
    status: str
    duration_minutes: int
    subject_name: str | None
    scheduled_date: date
    order_index: int


class DayPlanSummary(BaseSchema):
    """Per-date rollup of a plan's tasks."""

    date: dt.date
    label: str
    task_count: int
    completed_count: int
    total_minutes: int
    is_exam_day: bool
    is_past: bool


class PlanStatusRead(BaseSchema):
    """Progress of one plan against its goal's deadline."""

    plan_id: UUID
    goal_id: UUID | None
    exam_date: date | None
    days_left: int
    total_tasks: int
    completed_tasks: int
    overdue_tasks: int
    completion_pct: int = Field(..., ge=0, le=100)
    today_tasks: list[TaskSummary]
    day_plans: list[DayPlanSummary]
    status_message: str
    message_source: Literal["generated", "fallback"]


class PlanGenerationRead(BaseSchema):
    """Outcome of generating or regenerating a plan."""

    plan: StudyPlanRead
    tasks_created: int
    tasks_replaced: int
    units_dropped: int
    reused_plan: bool


class DescriptionPlanRequest(BaseSchema):
    """
    Build a plan from a description.

    Either ``description`` (parsed by the text generator) or an already
    structured ``subjects`` list must be given.
    """

    description: str | None = Field(None, max_length=4000)
    subjects: list[SubjectSessions] | None = None
    plan_title: str | None = Field(None, max_length=255)
    exam_date: date | None = None
    include_review: bool = False


class DescriptionPlanResult(BaseSchema):
    """Result of a description build. Failures are reported, not raised."""

    success: bool
    reply: str
    tasks_created: int = 0
    exam_date: date | None = None
    plan_id: UUID | None = None


class RescheduleResult(BaseSchema):
    moved: int


class CalendarDay(BaseSchema):
    """One calendar day, empty days included."""

    date: dt.date
    is_today: bool
    is_tomorrow: bool
    is_past: bool
    tasks: list[TaskRead]
    completed_count: int
    total_count: int


class CalendarRead(BaseSchema):
    title: str
    end_date: date
    days: list[CalendarDay]
    total_tasks: int
    completed_tasks: int
    days_with_tasks: int
