"""Curriculum snapshot and curriculum item management."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict

from studyplan.db.models import CurriculumItem, Subject
from studyplan.db.store import RecordStore
from studyplan.errors import ValidationError

PROGRESS_FLAGS = ("studied", "reviewed", "solved")


class ObjectiveSnapshot(BaseModel):
    """Read-only view of one top-level learning objective."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    subject_id: UUID
    subject_name: str
    title: str
    studied: bool = False
    reviewed: bool = False
    solved: bool = False


class CurriculumIndex(BaseModel):
    """Learning objectives of one user, in curriculum order."""

    model_config = ConfigDict(frozen=True)

    objectives: list[ObjectiveSnapshot] = []

    def in_scope(self, subject_ids: set[UUID]) -> list[ObjectiveSnapshot]:
        """Objectives belonging to ``subject_ids``; an empty set means every subject."""
        if not subject_ids:
            return list(self.objectives)
        return [lo for lo in self.objectives if lo.subject_id in subject_ids]


async def load_curriculum_index(store: RecordStore, user_id: UUID) -> CurriculumIndex:
    """
    Snapshot the user's top-level learning objectives.

    Lessons (rows with a parent) are excluded; only objectives carry the
    flags the planner reads. Objectives whose subject is missing are kept
    under the name "Unknown".
    """
    items = await store.find(
        CurriculumItem,
        CurriculumItem.user_id == user_id,
        CurriculumItem.parent_id.is_(None),
        order_by=(CurriculumItem.order_index, CurriculumItem.created_at),
    )
    subjects = await store.find(Subject, Subject.user_id == user_id)
    names = {s.id: s.name for s in subjects}

    return CurriculumIndex(
        objectives=[
            ObjectiveSnapshot(
                id=item.id,
                subject_id=item.subject_id,
                subject_name=names.get(item.subject_id, "Unknown"),
                title=item.title,
                studied=item.studied,
                reviewed=item.reviewed,
                solved=item.solved,
            )
            for item in items
        ]
    )


async def add_curriculum_item(
    store: RecordStore,
    user_id: UUID,
    subject_id: UUID,
    title: str,
    parent_id: UUID | None = None,
) -> CurriculumItem:
    """Append an objective (or a lesson under ``parent_id``) to a subject."""
    await store.get_owned(Subject, subject_id, user_id)
    if parent_id is not None:
        parent = await store.get_owned(CurriculumItem, parent_id, user_id)
        if parent.subject_id != subject_id:
            raise ValidationError("A lesson must belong to its objective's subject")

    siblings = await store.find(
        CurriculumItem,
        CurriculumItem.user_id == user_id,
        CurriculumItem.subject_id == subject_id,
    )
    return await store.insert(
        CurriculumItem(
            user_id=user_id,
            subject_id=subject_id,
            parent_id=parent_id,
            title=title,
            order_index=len(siblings),
        )
    )


async def set_progress_flag(
    store: RecordStore,
    user_id: UUID,
    item_id: UUID,
    flag: str,
    value: bool,
) -> CurriculumItem:
    """Set one of studied / reviewed / solved. Other flags are left alone."""
    if flag not in PROGRESS_FLAGS:
        raise ValidationError(f"Unknown progress flag: {flag}")
    item = await store.get_owned(CurriculumItem, item_id, user_id)
    return await store.update_by_id(CurriculumItem, item.id, {flag: value})


async def delete_curriculum_item(store: RecordStore, user_id: UUID, item_id: UUID) -> None:
    """Delete an item together with its lessons."""
    item = await store.get_owned(CurriculumItem, item_id, user_id)
    await store.delete_by_filter(CurriculumItem, [CurriculumItem.parent_id == item.id])
    await store.delete(item)
