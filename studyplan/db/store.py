"""
Record store used by the planning core.

A thin, user-agnostic layer over AsyncSession exposing the filtered
find / insert / update / delete operations the services need. Every
SQLAlchemyError is translated into PersistenceError; there is no retry here,
operations fail fast and the request's session is rolled back by get_db.

Writes are flushed, not committed. The caller owns the transaction, which is
what makes plan creation plus task insertion a single atomic unit.
"""

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studyplan.db.base import Base
from studyplan.errors import NotFound, PersistenceError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


@contextmanager
def _translate_errors(operation: str, table: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as e:
        logger.exception("Store %s on %s failed", operation, table)
        raise PersistenceError(f"Failed to {operation} {table}") from e


class RecordStore:
    """Filtered CRUD over mapped models, bound to one session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find(
        self,
        model: type[ModelT],
        *criteria: Any,
        order_by: Sequence[Any] = (),
        limit: int | None = None,
    ) -> list[ModelT]:
        """Return all rows of ``model`` matching every criterion, in order."""
        query = select(model).where(*criteria)
        if order_by:
            query = query.order_by(*order_by)
        if limit is not None:
            query = query.limit(limit)
        with _translate_errors("read", model.__tablename__):
            result = await self.db.execute(query)
            return list(result.scalars())

    async def find_one(
        self,
        model: type[ModelT],
        *criteria: Any,
        order_by: Sequence[Any] = (),
    ) -> ModelT | None:
        """Return the first matching row or None."""
        rows = await self.find(model, *criteria, order_by=order_by, limit=1)
        return rows[0] if rows else None

    async def get_owned(self, model: type[ModelT], resource_id: UUID, user_id: UUID) -> ModelT:
        """Fetch a user-owned row by ID, scoped at the SQL level."""
        row = await self.find_one(model, model.id == resource_id, model.user_id == user_id)
        if row is None:
            raise NotFound(f"{model.__name__} not found")
        return row

    async def insert(self, row: ModelT) -> ModelT:
        """Insert one row and return it with server defaults loaded."""
        with _translate_errors("insert into", row.__tablename__):
            self.db.add(row)
            await self.db.flush()
            await self.db.refresh(row)
        return row

    async def insert_many(self, rows: Sequence[Base]) -> int:
        """Bulk insert. Returns the number of rows written."""
        if not rows:
            return 0
        with _translate_errors("insert into", rows[0].__tablename__):
            self.db.add_all(rows)
            await self.db.flush()
        return len(rows)

    async def update_by_id(self, model: type[ModelT], resource_id: UUID, patch: dict[str, Any]) -> ModelT:
        """Apply a field patch to one row and return the updated row."""
        row = await self.find_one(model, model.id == resource_id)
        if row is None:
            raise NotFound(f"{model.__name__} not found")
        with _translate_errors("update", model.__tablename__):
            for key, value in patch.items():
                setattr(row, key, value)
            await self.db.flush()
            await self.db.refresh(row)
        return row

    async def update_by_filter(self, model: type[Base], criteria: Sequence[Any], patch: dict[str, Any]) -> int:
        """Apply a field patch to every matching row. Returns the row count."""
        stmt = update(model).where(*criteria).values(**patch)
        with _translate_errors("update", model.__tablename__):
            result = await self.db.execute(stmt)
            await self.db.flush()
        return result.rowcount

    async def delete_by_filter(self, model: type[Base], criteria: Sequence[Any]) -> int:
        """Delete every matching row. Returns the row count."""
        stmt = delete(model).where(*criteria)
        with _translate_errors("delete from", model.__tablename__):
            result = await self.db.execute(stmt)
            await self.db.flush()
        return result.rowcount

    async def delete(self, row: Base) -> None:
        with _translate_errors("delete from", row.__tablename__):
            await self.db.delete(row)
            await self.db.flush()
