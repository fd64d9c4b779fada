from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

from sqlalchemy import and_, delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import StoreError
from app.db.base import Base

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class RemoteStore:
    """Table-scoped CRUD over one database session.

    Filters are plain column-name mappings: ``eq`` for equality, ``in_`` for
    set membership. Any database failure is rolled back and re-raised as
    ``StoreError`` carrying the driver's message.

    The rollback expires every row the session handed out. Callers must
    copy what they need (ids, values) before a write that may fail, or
    re-select afterwards; touching an expired row triggers a lazy load,
    which the async session refuses.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    @staticmethod
    def _column(model: type[ModelT], name: str):
        try:
            return getattr(model, name)
        except AttributeError as exc:
            raise StoreError(f"Unknown column {model.__tablename__}.{name}") from exc

    def _where(
        self,
        model: type[ModelT],
        eq: Mapping[str, Any] | None,
        in_: Mapping[str, Iterable[Any]] | None,
    ) -> list:
        clauses = []
        for name, value in (eq or {}).items():
            col = self._column(model, name)
            clauses.append(col.is_(None) if value is None else col == value)
        for name, values in (in_ or {}).items():
            clauses.append(self._column(model, name).in_(list(values)))
        return clauses

    async def _fail(self, exc: SQLAlchemyError, action: str, model: type[ModelT]) -> StoreError:
        await self.db.rollback()
        message = str(getattr(exc, "orig", None) or exc)
        logger.warning("Store %s on %s failed: %s", action, model.__tablename__, message)
        return StoreError(message)

    async def select(
        self,
        model: type[ModelT],
        *,
        eq: Mapping[str, Any] | None = None,
        in_: Mapping[str, Iterable[Any]] | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[ModelT]:
        # An empty in-set matches nothing.
        if in_ is not None and any(not list(v) for v in in_.values()):
            return []
        # Bulk updates bypass the identity map.
        stmt = select(model).execution_options(populate_existing=True)
        clauses = self._where(model, eq, in_)
        if clauses:
            stmt = stmt.where(and_(*clauses))
        if order_by:
            col = self._column(model, order_by)
            stmt = stmt.order_by(col.desc() if descending else col.asc())
        try:
            return list((await self.db.execute(stmt)).scalars().all())
        except SQLAlchemyError as exc:
            raise await self._fail(exc, "select", model) from exc

    async def select_one(self, model: type[ModelT], *, eq: Mapping[str, Any]) -> ModelT | None:
        rows = await self.select(model, eq=eq)
        return rows[0] if rows else None

    async def count(self, model: type[ModelT], *, eq: Mapping[str, Any] | None = None) -> int:
        stmt = select(func.count()).select_from(model)
        clauses = self._where(model, eq, None)
        if clauses:
            stmt = stmt.where(and_(*clauses))
        try:
            return int((await self.db.execute(stmt)).scalar_one())
        except SQLAlchemyError as exc:
            raise await self._fail(exc, "count", model) from exc

    async def insert(self, model: type[ModelT], values: Mapping[str, Any]) -> ModelT:
        row = model(**dict(values))
        self.db.add(row)
        try:
            await self.db.commit()
            await self.db.refresh(row)
        except SQLAlchemyError as exc:
            raise await self._fail(exc, "insert", model) from exc
        return row

    async def update(self, model: type[ModelT], values: Mapping[str, Any], *, eq: Mapping[str, Any]) -> int:
        if not eq:
            raise StoreError("Refusing to update without a filter")
        stmt = (
            update(model)
            .where(and_(*self._where(model, eq, None)))
            .values(**dict(values))
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as exc:
            raise await self._fail(exc, "update", model) from exc
        return int(result.rowcount or 0)

    async def delete(self, model: type[ModelT], *, eq: Mapping[str, Any]) -> int:
        if not eq:
            raise StoreError("Refusing to delete without a filter")
        stmt = delete(model).where(and_(*self._where(model, eq, None))).execution_options(synchronize_session=False)
        try:
            result = await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as exc:
            raise await self._fail(exc, "delete", model) from exc
        return int(result.rowcount or 0)

    async def upsert(
        self,
        model: type[ModelT],
        values: Mapping[str, Any],
        *,
        conflict: tuple[str, ...],
    ) -> ModelT:
        key = {name: values[name] for name in conflict}
        existing = await self.select_one(model, eq=key)
        if existing is None:
            return await self.insert(model, values)

        for name, value in values.items():
            if name not in conflict:
                setattr(existing, name, value)
        try:
            await self.db.commit()
            await self.db.refresh(existing)
        except SQLAlchemyError as exc:
            raise await self._fail(exc, "upsert", model) from exc
        return existing
