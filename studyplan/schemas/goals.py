"""Goal schemas."""

from datetime import date, datetime
from uuid import UUID

from pydantic import Field

from studyplan.schemas.base import BaseSchema


class GoalBase(BaseSchema):
    """Base goal schema.

    Title and hours are checked by the planning core so its messages reach
    the user unchanged.
    """

    title: str = Field("", max_length=255)
    description: str | None = None
    target_date: date | None = None
    hours_per_day: float = 4.0
    subject_ids: list[UUID] = Field(default_factory=list)


class GoalCreate(GoalBase):
    """Schema for creating a goal. The new goal becomes the active one."""


class GoalRead(GoalBase):
    """Schema for reading goal data."""

    id: UUID
    user_id: UUID
    is_active: bool
    created_at: datetime


class GoalUpdate(BaseSchema):
    """Schema for updating a goal. All fields optional."""

    title: str | None = Field(None, max_length=255)
    description: str | None = None
    target_date: date | None = None
    hours_per_day: float | None = None
    subject_ids: list[UUID] | None = None
