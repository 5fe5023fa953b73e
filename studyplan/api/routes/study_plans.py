"""Study plan routes: generation, status, calendar and rescheduling."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, status

from studyplan.api.deps import CurrentUser, DbSession, Store, TextGen
from studyplan.db.models import Goal
from studyplan.schemas.plans import (
    CalendarRead,
    DescriptionPlanRequest,
    DescriptionPlanResult,
    PlanGenerationRead,
    PlanStatusRead,
    RescheduleResult,
    StudyPlanRead,
)
from studyplan.schemas.tasks import DayTasksRead
from studyplan.services import lifecycle
from studyplan.services.rescheduler import reschedule_overdue_tasks
from studyplan.services.status import get_calendar, get_day_tasks, get_plan_status

router = APIRouter(prefix="/study-plans", tags=["study-plans"])


@router.get("/active", response_model=StudyPlanRead | None)
async def get_active_plan(current_user: CurrentUser, store: Store) -> StudyPlanRead | None:
    """Get the active plan, or null when there is none."""
    plan = await lifecycle.get_active_plan(store, current_user.id)
    if plan is None:
        return None
    return StudyPlanRead.model_validate(plan)


@router.post("/exam", response_model=PlanGenerationRead, status_code=status.HTTP_201_CREATED)
async def generate_exam_plan(
    current_user: CurrentUser,
    store: Store,
    db: DbSession,
    goal_id: UUID | None = None,
) -> PlanGenerationRead:
    """
    Generate (or regenerate) the exam plan from curriculum gaps.

    Uses the active goal unless goal_id is given. Completed, skipped and past
    tasks of a reused plan are kept.
    """
    goal = None
    if goal_id:
        goal = await store.get_owned(Goal, goal_id, current_user.id)
    async with lifecycle.serialized_generation(current_user.id):
        result = await lifecycle.generate_curriculum_plan(store, current_user.id, goal)
        await db.commit()
    return result


@router.post("/from-description", response_model=DescriptionPlanResult)
async def generate_plan_from_description(
    data: DescriptionPlanRequest,
    current_user: CurrentUser,
    store: Store,
    db: DbSession,
    generator: TextGen,
) -> DescriptionPlanResult:
    """
    Build a plan from a free-text description or an explicit subject list.

    Returns success=false with a reply when the description cannot be used.
    """
    async with lifecycle.serialized_generation(current_user.id):
        result = await lifecycle.build_plan_from_description(store, current_user.id, data, generator)
        await db.commit()
    return result


@router.post("/discard", status_code=status.HTTP_204_NO_CONTENT)
async def discard_plan(current_user: CurrentUser) -> None:
    """Forget the client's current plan view. Stored tasks are untouched."""
    lifecycle.discard_current_plan(current_user.id)


@router.get("/day", response_model=DayTasksRead)
async def get_day(
    current_user: CurrentUser,
    store: Store,
    day: date | None = None,
) -> DayTasksRead:
    """
    Tasks of the active plan on one day.

    Filters:
    - day: Defaults to today
    """
    return await get_day_tasks(store, current_user.id, day or date.today())


@router.get("/calendar", response_model=CalendarRead)
async def get_plan_calendar(current_user: CurrentUser, store: Store) -> CalendarRead:
    """Every day from today to the active goal's deadline."""
    return await get_calendar(store, current_user.id)


@router.get("/{plan_id}/status", response_model=PlanStatusRead)
async def get_status(
    plan_id: UUID,
    current_user: CurrentUser,
    store: Store,
    generator: TextGen,
) -> PlanStatusRead:
    """Progress figures, day timeline and a short status message."""
    return await get_plan_status(store, current_user.id, plan_id, generator=generator)


@router.post("/{plan_id}/reschedule-overdue", response_model=RescheduleResult)
async def reschedule_overdue(
    plan_id: UUID,
    current_user: CurrentUser,
    store: Store,
    db: DbSession,
) -> RescheduleResult:
    """Move pending tasks dated before today onto today."""
    moved = await reschedule_overdue_tasks(store, current_user.id, plan_id)
    await db.commit()
    return RescheduleResult(moved=moved)
