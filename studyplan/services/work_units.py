"""
Work unit generation.

A work unit is one schedulable action on one subject, not yet dated. Units
come from one of two sources, modelled as a tagged union on ``mode``:

- CurriculumSource: completion gaps of learning objectives. Each objective
  contributes its next missing step (study, then review, then solve). The
  queue is ordered by phase first, so everything gets studied before anything
  gets reviewed.
- DescriptionSource: per-subject session counts parsed from a free-text plan
  description. Per-subject queues are merged round-robin.
"""

import math
from collections.abc import Sequence
from enum import Enum
from itertools import zip_longest
from typing import Annotated, Literal, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from studyplan.services.curriculum import CurriculumIndex, ObjectiveSnapshot

T = TypeVar("T")


class UnitAction(str, Enum):
    """Kind of work a unit asks for."""

    STUDY = "study"
    REVIEW = "review"
    SOLVE = "solve"
    SESSION = "session"


# Curriculum-derived constants, keyed by action
ACTION_LABEL = {UnitAction.STUDY: "Study", UnitAction.REVIEW: "Review", UnitAction.SOLVE: "Solve"}
ACTION_MINUTES = {UnitAction.STUDY: 60, UnitAction.REVIEW: 45, UnitAction.SOLVE: 45}
ACTION_PRIORITY = {UnitAction.STUDY: 3, UnitAction.REVIEW: 2, UnitAction.SOLVE: 1}
ACTION_PHASE = {UnitAction.STUDY: 0, UnitAction.REVIEW: 1, UnitAction.SOLVE: 2}

REVIEW_DURATION_FACTOR = 0.6
WEAK_PRIORITY = 1
NORMAL_PRIORITY = 2


class WorkUnit(BaseModel):
    """An undated piece of study work."""

    model_config = ConfigDict(frozen=True)

    subject_id: UUID | None = None
    subject_name: str
    action: UnitAction
    title: str
    duration_minutes: int = Field(..., gt=0)
    priority: int


class SubjectSessions(BaseModel):
    """One subject of a description-derived plan."""

    name: str = Field(..., min_length=1, max_length=255)
    sessions: int = Field(..., ge=0, le=200)
    duration_minutes: int = Field(60, gt=0, le=600)
    is_weak: bool = False
    title_prefix: str | None = None
    subject_id: UUID | None = None

    @property
    def label(self) -> str:
        return self.title_prefix or self.name


class CurriculumSource(BaseModel):
    """Generate units from learning-objective completion gaps."""

    mode: Literal["curriculum"] = "curriculum"
    index: CurriculumIndex
    subject_scope: set[UUID] = set()


class DescriptionSource(BaseModel):
    """Generate units from per-subject session counts."""

    mode: Literal["description"] = "description"
    subjects: list[SubjectSessions]
    include_review: bool = False


WorkSource = Annotated[CurriculumSource | DescriptionSource, Field(discriminator="mode")]


def _objective_unit(lo: ObjectiveSnapshot, action: UnitAction) -> WorkUnit:
    return WorkUnit(
        subject_id=lo.subject_id,
        subject_name=lo.subject_name,
        action=action,
        title=f"{ACTION_LABEL[action]}: {lo.title}",
        duration_minutes=ACTION_MINUTES[action],
        priority=ACTION_PRIORITY[action],
    )


def next_action(lo: ObjectiveSnapshot) -> UnitAction | None:
    """The single outstanding step of an objective, or None when it is done."""
    if not lo.studied:
        return UnitAction.STUDY
    if not lo.reviewed:
        return UnitAction.REVIEW
    if not lo.solved:
        return UnitAction.SOLVE
    return None


def units_from_curriculum(source: CurriculumSource) -> list[WorkUnit]:
    """Phase-ordered units for every in-scope objective with work left."""
    units = []
    for lo in source.index.in_scope(source.subject_scope):
        action = next_action(lo)
        if action is not None:
            units.append(_objective_unit(lo, action))

    # Stable sort keeps curriculum order within a (phase, subject) group
    units.sort(key=lambda u: (ACTION_PHASE[u.action], u.subject_name.casefold()))
    return units


def subject_queue(subject: SubjectSessions, include_review: bool) -> list[WorkUnit]:
    """Sessions for one subject, followed by its review passes when requested."""
    priority = WEAK_PRIORITY if subject.is_weak else NORMAL_PRIORITY
    queue = [
        WorkUnit(
            subject_id=subject.subject_id,
            subject_name=subject.name,
            action=UnitAction.SESSION,
            title=f"{subject.label} — Session {n}",
            duration_minutes=subject.duration_minutes,
            priority=priority,
        )
        for n in range(1, subject.sessions + 1)
    ]

    if include_review and subject.is_weak:
        review_minutes = max(1, round(subject.duration_minutes * REVIEW_DURATION_FACTOR))
        review_count = max(1, math.floor(subject.sessions / 3))
        queue.extend(
            WorkUnit(
                subject_id=subject.subject_id,
                subject_name=subject.name,
                action=UnitAction.REVIEW,
                title=f"{subject.label} — Review {n}",
                duration_minutes=review_minutes,
                priority=priority,
            )
            for n in range(1, review_count + 1)
        )
    return queue


def interleave(queues: Sequence[Sequence[T]]) -> list[T]:
    """
    Round-robin merge: one item from the front of each non-empty queue, in
    queue order, until all are empty. Each queue's own order is preserved.
    """
    missing = object()
    merged = []
    for row in zip_longest(*queues, fillvalue=missing):
        merged.extend(item for item in row if item is not missing)
    return merged


def units_from_description(source: DescriptionSource) -> list[WorkUnit]:
    return interleave([subject_queue(s, source.include_review) for s in source.subjects])


def build_work_units(source: CurriculumSource | DescriptionSource) -> list[WorkUnit]:
    """Ordered work-unit queue for either source. May be empty."""
    if source.mode == "curriculum":
        return units_from_curriculum(source)
    return units_from_description(source)
