"""Plan task schemas."""

import datetime as dt
from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import Field

from studyplan.schemas.base import BaseSchema

TaskStatusType = Literal["pending", "completed", "skipped"]


class TaskRead(BaseSchema):
    """Schema for reading a plan task."""

    id: UUID
    plan_id: UUID
    subject_id: UUID | None
    subject_name: str | None
    title: str
    scheduled_date: date
    duration_minutes: int
    status: TaskStatusType
    priority: int
    order_index: int
    completed_at: datetime | None
    actual_duration_minutes: int | None


class TaskCreate(BaseSchema):
    """Schema for adding a task by hand."""

    title: str = Field(..., min_length=1, max_length=255)
    duration_minutes: int = Field(..., gt=0, le=24 * 60)
    scheduled_date: date | None = None
    subject_name: str | None = Field(None, max_length=255)
    subject_id: UUID | None = None
    priority: int = Field(1, ge=1, le=3)


class TaskComplete(BaseSchema):
    """Optional actual time spent when completing a task."""

    actual_duration_minutes: int | None = Field(None, gt=0, le=24 * 60)


class DayTasksRead(BaseSchema):
    """Tasks of the active plan on one date plus progress for that day."""

    date: dt.date
    plan_id: UUID | None
    tasks: list[TaskRead]
    completed_count: int
    total_count: int
    planned_minutes: int
    done_minutes: int
    progress_pct: int
