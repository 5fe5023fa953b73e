"""Subject and curriculum schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import Field

from studyplan.schemas.base import BaseSchema

ProgressFlagType = Literal["studied", "reviewed", "solved"]


class SubjectCreate(BaseSchema):
    """Schema for creating a subject. Colour defaults to a palette pick."""

    name: str = Field(..., min_length=1, max_length=255)
    color: str | None = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")


class SubjectRead(BaseSchema):
    """Schema for reading subject data."""

    id: UUID
    name: str
    color: str | None
    is_active: bool


class CurriculumItemCreate(BaseSchema):
    """Schema for adding a learning objective, or a lesson when parent_id is set."""

    subject_id: UUID
    title: str = Field(..., min_length=1, max_length=255)
    parent_id: UUID | None = None


class CurriculumItemRead(BaseSchema):
    """Schema for reading a curriculum item."""

    id: UUID
    subject_id: UUID
    parent_id: UUID | None
    title: str
    studied: bool
    reviewed: bool
    solved: bool
    order_index: int
    created_at: datetime


class ProgressUpdate(BaseSchema):
    """Set one progress flag on a curriculum item."""

    field: ProgressFlagType
    value: bool
