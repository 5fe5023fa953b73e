"""
Goal and study plan lifecycle.

Key rules:
1. One active goal and one active plan per user. Saving a goal deactivates
   the others; creating a plan abandons the previous active plan.
2. Regenerating reuses the active plan: its pending tasks from today onward
   are deleted and replaced. Completed and skipped tasks, and anything dated
   before today, are never touched.
3. Generation for one user is serialized with an in-process asyncio.Lock
   that callers hold through their commit (serialized_generation). Across
   processes a partial unique index allows one active plan per user, so a
   racing second writer fails with PersistenceError.
4. Nothing is committed here. Plan rows and task rows go out in the caller's
   transaction, so a failure leaves no half-written plan.
"""

import asyncio
import logging
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date, timedelta
from uuid import UUID

from studyplan.config import get_settings
from studyplan.db.models import Goal, GenerationMode, PlanStatus, PlanTask, StudyPlan, TaskStatus
from studyplan.db.store import RecordStore
from studyplan.errors import GenerationUnavailable, ValidationError
from studyplan.schemas.goals import GoalCreate, GoalUpdate
from studyplan.schemas.plans import (
    DescriptionPlanRequest,
    DescriptionPlanResult,
    PlanGenerationRead,
    StudyPlanRead,
)
from studyplan.services.allocator import (
    Allocation,
    CountBudget,
    MinuteBudget,
    allocate,
    study_days_before,
    tasks_per_day_for,
)
from studyplan.services.curriculum import load_curriculum_index
from studyplan.services.description_parser import (
    UNAVAILABLE_REPLY,
    ParsedPlanDescription,
    parse_plan_description,
)
from studyplan.services.subjects import find_or_create_subject, list_subjects
from studyplan.services.text_generation import TextGenerator
from studyplan.services.work_units import CurriculumSource, DescriptionSource, build_work_units

logger = logging.getLogger(__name__)
settings = get_settings()

# Entries disappear once no caller holds the lock
_generation_locks: weakref.WeakValueDictionary[UUID, asyncio.Lock] = weakref.WeakValueDictionary()


def generation_lock(user_id: UUID) -> asyncio.Lock:
    """Per-user lock serializing plan generation within this process."""
    lock = _generation_locks.get(user_id)
    if lock is None:
        lock = asyncio.Lock()
        _generation_locks[user_id] = lock
    return lock


@asynccontextmanager
async def serialized_generation(user_id: UUID) -> AsyncIterator[None]:
    """
    Hold the user's generation lock for a generate-then-commit sequence.

    The commit must happen inside the block, otherwise a second generation
    can read the plan table before the first one is visible.
    """
    async with generation_lock(user_id):
        yield


# =============================================================================
# GOALS
# =============================================================================


def validate_goal(
    title: str | None,
    target_date: date | None,
    hours_per_day: float | None,
    *,
    today: date,
    require_deadline: bool = False,
) -> None:
    """Reject a goal before anything is written."""
    if not title or not title.strip():
        raise ValidationError("A goal needs a title")
    if hours_per_day is None or hours_per_day <= 0:
        raise ValidationError("Hours per day must be greater than zero")
    if target_date is None:
        if require_deadline:
            raise ValidationError("An exam plan needs a deadline")
    elif target_date < today:
        raise ValidationError("The deadline is in the past")


async def list_goals(store: RecordStore, user_id: UUID) -> list[Goal]:
    return await store.find(Goal, Goal.user_id == user_id, order_by=(Goal.created_at.desc(),))


async def get_active_goal(store: RecordStore, user_id: UUID) -> Goal | None:
    return await store.find_one(
        Goal,
        Goal.user_id == user_id,
        Goal.is_active.is_(True),
        order_by=(Goal.created_at.desc(),),
    )


async def _deactivate_goals(store: RecordStore, user_id: UUID, keep_id: UUID | None = None) -> int:
    criteria = [Goal.user_id == user_id, Goal.is_active.is_(True)]
    if keep_id is not None:
        criteria.append(Goal.id != keep_id)
    return await store.update_by_filter(Goal, criteria, {"is_active": False})


async def save_goal(
    store: RecordStore,
    user_id: UUID,
    data: GoalCreate,
    *,
    existing_goal_id: UUID | None = None,
    today: date | None = None,
) -> Goal:
    """
    Create a goal (or overwrite ``existing_goal_id``) and make it the only
    active goal of the user.
    """
    today = today or date.today()
    validate_goal(data.title, data.target_date, data.hours_per_day, today=today)

    payload = {
        "title": data.title.strip(),
        "description": data.description,
        "target_date": data.target_date,
        "hours_per_day": data.hours_per_day,
        "subject_ids": [str(s) for s in data.subject_ids],
        "is_active": True,
    }

    if existing_goal_id is not None:
        goal = await store.get_owned(Goal, existing_goal_id, user_id)
        await _deactivate_goals(store, user_id, keep_id=goal.id)
        return await store.update_by_id(Goal, goal.id, payload)

    await _deactivate_goals(store, user_id)
    return await store.insert(Goal(user_id=user_id, **payload))


async def update_goal(
    store: RecordStore,
    user_id: UUID,
    goal_id: UUID,
    data: GoalUpdate,
    *,
    today: date | None = None,
) -> Goal:
    """Patch a goal in place. Its active flag is left as is."""
    today = today or date.today()
    goal = await store.get_owned(Goal, goal_id, user_id)
    patch = data.model_dump(exclude_unset=True)

    validate_goal(
        patch.get("title", goal.title),
        patch.get("target_date", goal.target_date),
        patch.get("hours_per_day", goal.hours_per_day),
        today=today,
    )
    if "subject_ids" in patch:
        patch["subject_ids"] = [str(s) for s in patch["subject_ids"] or []]
    return await store.update_by_id(Goal, goal.id, patch)


async def activate_goal(store: RecordStore, user_id: UUID, goal_id: UUID) -> Goal:
    goal = await store.get_owned(Goal, goal_id, user_id)
    await _deactivate_goals(store, user_id, keep_id=goal.id)
    return await store.update_by_id(Goal, goal.id, {"is_active": True})


async def delete_goal(store: RecordStore, user_id: UUID, goal_id: UUID) -> None:
    goal = await store.get_owned(Goal, goal_id, user_id)
    await store.delete(goal)


# =============================================================================
# PLANS
# =============================================================================


async def get_active_plan(store: RecordStore, user_id: UUID) -> StudyPlan | None:
    return await store.find_one(
        StudyPlan,
        StudyPlan.user_id == user_id,
        StudyPlan.status == PlanStatus.ACTIVE.value,
        order_by=(StudyPlan.created_at.desc(),),
    )


async def create_plan(
    store: RecordStore,
    user_id: UUID,
    *,
    title: str,
    mode: GenerationMode,
    start_date: date,
    end_date: date | None = None,
    goal_id: UUID | None = None,
    ai_generated: bool = False,
    metadata: dict | None = None,
) -> StudyPlan:
    """Create the user's active plan, abandoning any plan that was active."""
    abandoned = await store.update_by_filter(
        StudyPlan,
        [StudyPlan.user_id == user_id, StudyPlan.status == PlanStatus.ACTIVE.value],
        {"status": PlanStatus.ABANDONED.value},
    )
    if abandoned:
        logger.info("Abandoned %d active plan(s) for user %s", abandoned, user_id)

    return await store.insert(
        StudyPlan(
            user_id=user_id,
            goal_id=goal_id,
            title=title,
            start_date=start_date,
            end_date=end_date,
            status=PlanStatus.ACTIVE.value,
            mode=mode.value,
            ai_generated=ai_generated,
            metadata_json=metadata or {},
        )
    )


def discard_current_plan(user_id: UUID) -> None:
    """
    "Start over" request from a client.

    Plans are not cached server-side, so there is no reference to drop and
    no row is touched. The next generation call reuses or creates the active
    plan exactly as it would have anyway.
    """
    logger.info("User %s discarded their current plan view", user_id)


async def _reuse_or_create_plan(
    store: RecordStore,
    user_id: UUID,
    *,
    title: str,
    mode: GenerationMode,
    goal_id: UUID | None,
    first_day: date,
    end_date: date | None,
    metadata: dict,
    today: date,
) -> tuple[StudyPlan, int, bool]:
    """Returns (plan, replaced pending task count, whether the plan was reused)."""
    plan = await get_active_plan(store, user_id)
    if plan is None:
        plan = await create_plan(
            store,
            user_id,
            title=title,
            mode=mode,
            start_date=min(today, first_day),
            end_date=end_date,
            goal_id=goal_id,
            ai_generated=True,
            metadata=metadata,
        )
        return plan, 0, False

    replaced = await store.delete_by_filter(
        PlanTask,
        [
            PlanTask.plan_id == plan.id,
            PlanTask.status == TaskStatus.PENDING.value,
            PlanTask.scheduled_date >= today,
        ],
    )
    plan = await store.update_by_id(
        StudyPlan,
        plan.id,
        {
            "title": title,
            "mode": mode.value,
            "goal_id": goal_id,
            "start_date": min(plan.start_date, first_day),
            "end_date": end_date,
            "ai_generated": True,
            "metadata_json": metadata,
        },
    )
    return plan, replaced, True


async def _write_allocation(
    store: RecordStore,
    user_id: UUID,
    plan: StudyPlan,
    allocation: Allocation,
) -> int:
    """
    Insert allocated units as pending tasks.

    Tasks kept on an allocated date (completed or skipped history) keep their
    positions; new tasks are numbered after them.
    """
    dates = {a.scheduled_date for a in allocation.assignments}
    offsets: dict[date, int] = {}
    if dates:
        kept = await store.find(
            PlanTask,
            PlanTask.plan_id == plan.id,
            PlanTask.scheduled_date.in_(dates),
        )
        for task in kept:
            offsets[task.scheduled_date] = max(offsets.get(task.scheduled_date, 0), task.order_index + 1)

    rows = [
        PlanTask(
            plan_id=plan.id,
            user_id=user_id,
            subject_id=a.unit.subject_id,
            subject_name=a.unit.subject_name,
            title=a.unit.title,
            scheduled_date=a.scheduled_date,
            duration_minutes=a.unit.duration_minutes,
            status=TaskStatus.PENDING.value,
            priority=a.unit.priority,
            order_index=offsets.get(a.scheduled_date, 0) + a.order_index,
        )
        for a in allocation.assignments
    ]
    return await store.insert_many(rows)


async def generate_curriculum_plan(
    store: RecordStore,
    user_id: UUID,
    goal: Goal | None = None,
    *,
    today: date | None = None,
) -> PlanGenerationRead:
    """
    Exam plan from curriculum gaps under the goal's daily minute budget.

    Tasks start today; the deadline day itself stays free. Units that do not
    fit before the deadline are dropped and reported in ``units_dropped``.
    """
    today = today or date.today()

    if goal is None:
        goal = await get_active_goal(store, user_id)
    if goal is None:
        raise ValidationError("Set an active goal before generating a plan")
    validate_goal(goal.title, goal.target_date, goal.hours_per_day, today=today, require_deadline=True)

    index = await load_curriculum_index(store, user_id)
    units = build_work_units(
        CurriculumSource(index=index, subject_scope={UUID(s) for s in goal.subject_ids or []})
    )
    budget = MinuteBudget(
        daily_minutes=max(1, round(goal.hours_per_day * 60)),
        available_days=study_days_before(goal.target_date, today),
    )
    allocation = allocate(units, today, budget)

    plan, replaced, reused = await _reuse_or_create_plan(
        store,
        user_id,
        title=f"Exam Plan: {goal.title}",
        mode=GenerationMode.CURRICULUM,
        goal_id=goal.id,
        first_day=today,
        end_date=goal.target_date,
        metadata={
            "exam_date": goal.target_date.isoformat(),
            "hours_per_day": goal.hours_per_day,
        },
        today=today,
    )
    created = await _write_allocation(store, user_id, plan, allocation)

    logger.info(
        "Generated curriculum plan %s for user %s: %d task(s), %d replaced, %d dropped",
        plan.id, user_id, created, replaced, len(allocation.dropped),
    )
    return PlanGenerationRead(
        plan=StudyPlanRead.model_validate(plan),
        tasks_created=created,
        tasks_replaced=replaced,
        units_dropped=len(allocation.dropped),
        reused_plan=reused,
    )


async def generate_description_plan(
    store: RecordStore,
    user_id: UUID,
    parsed: ParsedPlanDescription,
    *,
    today: date | None = None,
) -> PlanGenerationRead:
    """
    Plan from per-subject session counts under a tasks-per-day budget.

    Saves a new active goal for the plan, matches or creates its subjects,
    interleaves subjects round-robin and schedules from tomorrow on. Nothing
    is dropped; the schedule may run past the exam date.
    """
    today = today or date.today()
    exam_date = parsed.exam_date or today + timedelta(days=settings.description_default_horizon_days)
    if exam_date < today:
        raise ValidationError("The deadline is in the past")
    if not parsed.subjects:
        raise ValidationError("A plan description needs at least one subject")

    subjects = []
    for entry in parsed.subjects:
        subject = await find_or_create_subject(store, user_id, entry.name)
        subjects.append(entry.model_copy(update={"subject_id": subject.id}))

    units = build_work_units(DescriptionSource(subjects=subjects, include_review=parsed.include_review))
    first_day = today + timedelta(days=1)
    per_day = tasks_per_day_for(len(units), max(1, (exam_date - first_day).days))
    allocation = allocate(units, first_day, CountBudget(tasks_per_day=per_day))

    goal = await save_goal(
        store,
        user_id,
        GoalCreate(
            title=parsed.plan_title,
            target_date=exam_date,
            hours_per_day=per_day * 1.5,
            subject_ids=[s.subject_id for s in subjects],
        ),
        today=today,
    )
    plan, replaced, reused = await _reuse_or_create_plan(
        store,
        user_id,
        title=parsed.plan_title,
        mode=GenerationMode.DESCRIPTION,
        goal_id=goal.id,
        first_day=first_day,
        end_date=exam_date,
        metadata={"exam_date": exam_date.isoformat(), "tasks_per_day": per_day},
        today=today,
    )
    created = await _write_allocation(store, user_id, plan, allocation)

    logger.info(
        "Generated description plan %s for user %s: %d task(s) at %d/day, %d replaced",
        plan.id, user_id, created, per_day, replaced,
    )
    return PlanGenerationRead(
        plan=StudyPlanRead.model_validate(plan),
        tasks_created=created,
        tasks_replaced=replaced,
        units_dropped=0,
        reused_plan=reused,
    )


async def build_plan_from_description(
    store: RecordStore,
    user_id: UUID,
    request: DescriptionPlanRequest,
    generator: TextGenerator,
    *,
    today: date | None = None,
) -> DescriptionPlanResult:
    """
    Description plan end to end: structure the request, then generate.

    A request with ``subjects`` skips the text generator. Generator outages and
    unusable answers come back as ``success=False`` with a reply for the user.
    """
    today = today or date.today()

    if request.subjects:
        parsed = ParsedPlanDescription(
            exam_date=request.exam_date,
            plan_title=request.plan_title or "Study Plan",
            subjects=request.subjects,
            include_review=request.include_review,
        )
    elif request.description and request.description.strip():
        existing = await list_subjects(store, user_id)
        goal = await get_active_goal(store, user_id)
        try:
            parsed = await parse_plan_description(
                generator,
                request.description,
                today=today,
                existing_subjects=[s.name for s in existing if s.is_active],
                current_goal=f"{goal.title} ({goal.target_date or 'no deadline'})" if goal else None,
            )
        except GenerationUnavailable as e:
            logger.warning("Plan description could not be parsed: %s", e.message)
            return DescriptionPlanResult(success=False, reply=UNAVAILABLE_REPLY)
        except ValidationError as e:
            return DescriptionPlanResult(success=False, reply=e.message)
    else:
        raise ValidationError("Describe the plan or list its subjects")

    outcome = await generate_description_plan(store, user_id, parsed, today=today)
    return DescriptionPlanResult(
        success=True,
        reply=parsed.reply or f"Your plan is ready with {outcome.tasks_created} sessions.",
        tasks_created=outcome.tasks_created,
        exam_date=outcome.plan.end_date,
        plan_id=outcome.plan.id,
    )
