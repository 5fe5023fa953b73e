"""Pydantic schemas for API request/response validation."""

from studyplan.schemas.curriculum import (
    CurriculumItemCreate,
    CurriculumItemRead,
    ProgressUpdate,
    SubjectCreate,
    SubjectRead,
)
from studyplan.schemas.goals import GoalCreate, GoalRead, GoalUpdate
from studyplan.schemas.plans import (
    CalendarRead,
    DescriptionPlanRequest,
    DescriptionPlanResult,
    PlanGenerationRead,
    PlanStatusRead,
    RescheduleResult,
    StudyPlanRead,
)
from studyplan.schemas.tasks import DayTasksRead, TaskComplete, TaskCreate, TaskRead

__all__ = [
    # Subjects & curriculum
    "SubjectCreate",
    "SubjectRead",
    "CurriculumItemCreate",
    "CurriculumItemRead",
    "ProgressUpdate",
    # Goals
    "GoalCreate",
    "GoalRead",
    "GoalUpdate",
    # Plans
    "StudyPlanRead",
    "PlanGenerationRead",
    "PlanStatusRead",
    "DescriptionPlanRequest",
    "DescriptionPlanResult",
    "RescheduleResult",
    "CalendarRead",
    # Tasks
    "TaskCreate",
    "TaskRead",
    "TaskComplete",
    "DayTasksRead",
]
