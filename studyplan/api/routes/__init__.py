"""API routes package."""

from studyplan.api.routes import (
    curriculum,
    goals,
    study_plans,
    tasks,
)

__all__ = [
    "curriculum",
    "goals",
    "study_plans",
    "tasks",
]
