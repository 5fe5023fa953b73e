"""Goal routes. At most one goal per user is active."""

from uuid import UUID

from fastapi import APIRouter, status

from studyplan.api.deps import CurrentUser, DbSession, Store
from studyplan.schemas.goals import GoalCreate, GoalRead, GoalUpdate
from studyplan.services import lifecycle

router = APIRouter(prefix="/goals", tags=["goals"])


@router.get("/", response_model=list[GoalRead])
async def list_goals(current_user: CurrentUser, store: Store) -> list[GoalRead]:
    """List the current user's goals, newest first."""
    goals = await lifecycle.list_goals(store, current_user.id)
    return [GoalRead.model_validate(g) for g in goals]


@router.get("/active", response_model=GoalRead | None)
async def get_active_goal(current_user: CurrentUser, store: Store) -> GoalRead | None:
    """Get the active goal, or null when there is none."""
    goal = await lifecycle.get_active_goal(store, current_user.id)
    if goal is None:
        return None
    return GoalRead.model_validate(goal)


@router.post("/", response_model=GoalRead, status_code=status.HTTP_201_CREATED)
async def create_goal(
    data: GoalCreate,
    current_user: CurrentUser,
    store: Store,
    db: DbSession,
) -> GoalRead:
    """Create a goal and make it the only active one."""
    goal = await lifecycle.save_goal(store, current_user.id, data)
    await db.commit()
    return GoalRead.model_validate(goal)


@router.patch("/{goal_id}", response_model=GoalRead)
async def update_goal(
    goal_id: UUID,
    data: GoalUpdate,
    current_user: CurrentUser,
    store: Store,
    db: DbSession,
) -> GoalRead:
    """Update a goal."""
    goal = await lifecycle.update_goal(store, current_user.id, goal_id, data)
    await db.commit()
    return GoalRead.model_validate(goal)


@router.post("/{goal_id}/activate", response_model=GoalRead)
async def activate_goal(
    goal_id: UUID,
    current_user: CurrentUser,
    store: Store,
    db: DbSession,
) -> GoalRead:
    """Make a goal the active one, deactivating all others."""
    goal = await lifecycle.activate_goal(store, current_user.id, goal_id)
    await db.commit()
    return GoalRead.model_validate(goal)


@router.delete("/{goal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_goal(
    goal_id: UUID,
    current_user: CurrentUser,
    store: Store,
    db: DbSession,
) -> None:
    """Delete a goal. Plans that referenced it keep their tasks."""
    await lifecycle.delete_goal(store, current_user.id, goal_id)
    await db.commit()
