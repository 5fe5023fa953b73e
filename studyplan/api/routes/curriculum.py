"""Subject and curriculum routes."""

from uuid import UUID

from fastapi import APIRouter, status

from studyplan.api.deps import CurrentUser, DbSession, Store
from studyplan.db.models import CurriculumItem
from studyplan.schemas.curriculum import (
    CurriculumItemCreate,
    CurriculumItemRead,
    ProgressUpdate,
    SubjectCreate,
    SubjectRead,
)
from studyplan.services import curriculum, subjects

subjects_router = APIRouter(prefix="/subjects", tags=["subjects"])
router = APIRouter(prefix="/curriculum", tags=["curriculum"])


@subjects_router.get("/", response_model=list[SubjectRead])
async def list_subjects(current_user: CurrentUser, store: Store) -> list[SubjectRead]:
    """List the current user's subjects by name."""
    rows = await subjects.list_subjects(store, current_user.id)
    return [SubjectRead.model_validate(s) for s in rows]


@subjects_router.post("/", response_model=SubjectRead, status_code=status.HTTP_201_CREATED)
async def create_subject(
    data: SubjectCreate,
    current_user: CurrentUser,
    store: Store,
    db: DbSession,
) -> SubjectRead:
    """Create a subject."""
    subject = await subjects.create_subject(store, current_user.id, data.name, data.color)
    await db.commit()
    return SubjectRead.model_validate(subject)


@router.get("/", response_model=list[CurriculumItemRead])
async def list_curriculum(
    current_user: CurrentUser,
    store: Store,
    subject_id: UUID | None = None,
) -> list[CurriculumItemRead]:
    """
    List curriculum items in curriculum order.

    Filters:
    - subject_id: Only items of one subject
    """
    criteria = [CurriculumItem.user_id == current_user.id]
    if subject_id:
        criteria.append(CurriculumItem.subject_id == subject_id)
    items = await store.find(
        CurriculumItem,
        *criteria,
        order_by=(CurriculumItem.order_index, CurriculumItem.created_at),
    )
    return [CurriculumItemRead.model_validate(i) for i in items]


@router.post("/", response_model=CurriculumItemRead, status_code=status.HTTP_201_CREATED)
async def create_curriculum_item(
    data: CurriculumItemCreate,
    current_user: CurrentUser,
    store: Store,
    db: DbSession,
) -> CurriculumItemRead:
    """Add a learning objective, or a lesson under one."""
    item = await curriculum.add_curriculum_item(
        store, current_user.id, data.subject_id, data.title, data.parent_id
    )
    await db.commit()
    return CurriculumItemRead.model_validate(item)


@router.patch("/{item_id}/progress", response_model=CurriculumItemRead)
async def update_progress(
    item_id: UUID,
    data: ProgressUpdate,
    current_user: CurrentUser,
    store: Store,
    db: DbSession,
) -> CurriculumItemRead:
    """Set studied, reviewed or solved on one item."""
    item = await curriculum.set_progress_flag(store, current_user.id, item_id, data.field, data.value)
    await db.commit()
    return CurriculumItemRead.model_validate(item)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_curriculum_item(
    item_id: UUID,
    current_user: CurrentUser,
    store: Store,
    db: DbSession,
) -> None:
    """Delete an item and its lessons."""
    await curriculum.delete_curriculum_item(store, current_user.id, item_id)
    await db.commit()
