"""Subject lookup and creation."""

import struct
from uuid import UUID

from sqlalchemy import func

from studyplan.db.models import Subject
from studyplan.db.store import RecordStore

PALETTE = [
    "#6366f1", "#10b981", "#f59e0b", "#3b82f6", "#ef4444",
    "#8b5cf6", "#ec4899", "#14b8a6", "#f97316", "#84cc16",
]


def _int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value >= 0x80000000 else value


def palette_color(name: str) -> str:
    """
    Deterministic palette colour for a subject name.

    Hashes UTF-16 code units with ``h = c + (h << 5) - h``, where only the
    shift wraps to 32 bits, so colours match those the web client assigns.
    """
    h = 0
    for (unit,) in struct.iter_unpack("<H", name.encode("utf-16-le")):
        h = unit + _int32(_int32(h) << 5) - h
    return PALETTE[abs(h) % len(PALETTE)]


async def list_subjects(store: RecordStore, user_id: UUID) -> list[Subject]:
    return await store.find(Subject, Subject.user_id == user_id, order_by=(Subject.name,))


async def create_subject(store: RecordStore, user_id: UUID, name: str, color: str | None = None) -> Subject:
    return await store.insert(
        Subject(user_id=user_id, name=name, color=color or palette_color(name), is_active=True)
    )


async def find_or_create_subject(store: RecordStore, user_id: UUID, name: str) -> Subject:
    """Match an existing subject by case-insensitive name, or create it."""
    existing = await store.find_one(
        Subject,
        Subject.user_id == user_id,
        func.lower(Subject.name) == name.strip().lower(),
        order_by=(Subject.created_at,),
    )
    if existing is not None:
        return existing
    return await create_subject(store, user_id, name.strip())
