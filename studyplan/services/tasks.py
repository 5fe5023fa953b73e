"""
Plan task status transitions and manual task edits.

State machine:

    pending   -> completed   (records completed_at and actual duration)
    completed -> pending     (reset; clears completed_at and actual duration)
    pending   -> skipped     (terminal)

Completed and skipped tasks are otherwise immutable.
"""

import logging
from datetime import date, datetime, timezone
from uuid import UUID

from studyplan.db.models import GenerationMode, PlanTask, TaskStatus
from studyplan.db.store import RecordStore
from studyplan.errors import InvalidTransition, ValidationError
from studyplan.schemas.tasks import TaskCreate
from studyplan.services.lifecycle import create_plan, get_active_plan

logger = logging.getLogger(__name__)

MANUAL_PLAN_TITLE = "Daily tasks"

ALLOWED_TRANSITIONS = {
    (TaskStatus.PENDING, TaskStatus.COMPLETED),
    (TaskStatus.COMPLETED, TaskStatus.PENDING),
    (TaskStatus.PENDING, TaskStatus.SKIPPED),
}


def check_transition(current: str, target: TaskStatus) -> None:
    """Raise InvalidTransition unless ``current -> target`` is allowed."""
    try:
        status = TaskStatus(current)
    except ValueError as e:
        raise InvalidTransition(f"Unknown task status: {current}") from e
    if (status, target) not in ALLOWED_TRANSITIONS:
        raise InvalidTransition(f"Cannot move a {current} task to {target.value}")


async def _transition(
    store: RecordStore,
    user_id: UUID,
    task_id: UUID,
    target: TaskStatus,
    patch: dict,
) -> PlanTask:
    task = await store.get_owned(PlanTask, task_id, user_id)
    check_transition(task.status, target)
    return await store.update_by_id(PlanTask, task.id, {"status": target.value, **patch})


async def complete_task(
    store: RecordStore,
    user_id: UUID,
    task_id: UUID,
    actual_minutes: int | None = None,
    *,
    now: datetime | None = None,
) -> PlanTask:
    """Mark a pending task done. Actual duration defaults to the scheduled one."""
    task = await store.get_owned(PlanTask, task_id, user_id)
    check_transition(task.status, TaskStatus.COMPLETED)
    return await store.update_by_id(
        PlanTask,
        task.id,
        {
            "status": TaskStatus.COMPLETED.value,
            "completed_at": now or datetime.now(timezone.utc),
            "actual_duration_minutes": actual_minutes or task.duration_minutes,
        },
    )


async def skip_task(store: RecordStore, user_id: UUID, task_id: UUID) -> PlanTask:
    return await _transition(store, user_id, task_id, TaskStatus.SKIPPED, {})


async def reset_task(store: RecordStore, user_id: UUID, task_id: UUID) -> PlanTask:
    """Undo a completion."""
    return await _transition(
        store,
        user_id,
        task_id,
        TaskStatus.PENDING,
        {"completed_at": None, "actual_duration_minutes": None},
    )


async def add_manual_task(
    store: RecordStore,
    user_id: UUID,
    data: TaskCreate,
    *,
    today: date | None = None,
) -> PlanTask:
    """
    Append a hand-written task after the last task of a day in the active plan.

    Without an active plan a manual plan starting on the task's date is
    created first.
    """
    day = data.scheduled_date or today or date.today()

    plan = await get_active_plan(store, user_id)
    if plan is None:
        plan = await create_plan(
            store,
            user_id,
            title=MANUAL_PLAN_TITLE,
            mode=GenerationMode.MANUAL,
            start_date=day,
        )
    elif day < plan.start_date:
        raise ValidationError(f"Tasks cannot be scheduled before the plan starts on {plan.start_date}")

    same_day = await store.find(
        PlanTask,
        PlanTask.plan_id == plan.id,
        PlanTask.scheduled_date == day,
    )
    return await store.insert(
        PlanTask(
            plan_id=plan.id,
            user_id=user_id,
            subject_id=data.subject_id,
            subject_name=data.subject_name,
            title=data.title,
            scheduled_date=day,
            duration_minutes=data.duration_minutes,
            status=TaskStatus.PENDING.value,
            priority=data.priority,
            order_index=max((t.order_index for t in same_day), default=-1) + 1,
        )
    )


async def delete_task(store: RecordStore, user_id: UUID, task_id: UUID) -> None:
    """Delete a pending task. Completed and skipped tasks are history and stay."""
    task = await store.get_owned(PlanTask, task_id, user_id)
    if task.status != TaskStatus.PENDING.value:
        raise InvalidTransition(f"Cannot delete a {task.status} task")
    await store.delete(task)

