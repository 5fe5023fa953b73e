"""Plan task routes: manual adds and status changes."""

from uuid import UUID

from fastapi import APIRouter, status

from studyplan.api.deps import CurrentUser, DbSession, Store
from studyplan.schemas.tasks import TaskComplete, TaskCreate, TaskRead
from studyplan.services import tasks

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.post("/", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(
    data: TaskCreate,
    current_user: CurrentUser,
    store: Store,
    db: DbSession,
) -> TaskRead:
    """Add a task to the end of a day in the active plan."""
    task = await tasks.add_manual_task(store, current_user.id, data)
    await db.commit()
    return TaskRead.model_validate(task)


@router.post("/{task_id}/complete", response_model=TaskRead)
async def complete_task(
    task_id: UUID,
    current_user: CurrentUser,
    store: Store,
    db: DbSession,
    data: TaskComplete | None = None,
) -> TaskRead:
    """Mark a pending task completed."""
    actual = data.actual_duration_minutes if data else None
    task = await tasks.complete_task(store, current_user.id, task_id, actual)
    await db.commit()
    return TaskRead.model_validate(task)


@router.post("/{task_id}/skip", response_model=TaskRead)
async def skip_task(
    task_id: UUID,
    current_user: CurrentUser,
    store: Store,
    db: DbSession,
) -> TaskRead:
    """Skip a pending task. Skipped tasks stay skipped."""
    task = await tasks.skip_task(store, current_user.id, task_id)
    await db.commit()
    return TaskRead.model_validate(task)


@router.post("/{task_id}/reset", response_model=TaskRead)
async def reset_task(
    task_id: UUID,
    current_user: CurrentUser,
    store: Store,
    db: DbSession,
) -> TaskRead:
    """Move a completed task back to pending."""
    task = await tasks.reset_task(store, current_user.id, task_id)
    await db.commit()
    return TaskRead.model_validate(task)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: UUID,
    current_user: CurrentUser,
    store: Store,
    db: DbSession,
) -> None:
    """Delete a pending task."""
    await tasks.delete_task(store, current_user.id, task_id)
    await db.commit()
