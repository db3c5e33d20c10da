"""Document store backed by a single SQL table (SQLAlchemy async).

Each write runs in its own transaction and takes a row lock on the target
document (``SELECT ... FOR UPDATE`` on PostgreSQL). A per-process write lock
additionally serialises writers, which SQLite needs.

Reads push string equality, numeric lower bounds, ordering and limits into
SQL through JSON path expressions; other filters and predicates are applied
to the loaded rows.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

from pydantic_core import to_jsonable_python
from sqlalchemy import func, select, text, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from snx.db.models import Document
from snx.exceptions import DocumentNotFound, StoreUnavailable
from snx.store.base import (
    ArrayUnion,
    DocumentStore,
    GreaterThan,
    Increment,
    apply_updates,
    conditions_hold,
    get_path,
    matches,
)
from snx.store.collections import NUMERIC_FIELDS

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _jsonable_updates(updates: Mapping[str, Any]) -> dict[str, Any]:
    """Convert update values to JSON-compatible values, keeping sentinels."""
    converted: dict[str, Any] = {}
    for path, value in updates.items():
        if isinstance(value, Increment):
            converted[path] = value
        elif isinstance(value, ArrayUnion):
            converted[path] = ArrayUnion(*(to_jsonable_python(v) for v in value.values))
        else:
            converted[path] = to_jsonable_python(value)
    return converted


def _json_field(path: str) -> Any:
    return Document.data[tuple(path.split("."))]


def _order_expression(path: str) -> Any:
    field = _json_field(path)
    return field.as_float() if path in NUMERIC_FIELDS else field.as_string()


def _split_filters(filters: Mapping[str, Any] | None) -> tuple[list[Any], dict[str, Any]]:
    """Split filters into SQL conditions and the ones matched in Python.

    String equality and ``GreaterThan`` run in SQL. Anything else, including
    equality on None, is matched against the loaded documents.
    """
    conditions: list[Any] = []
    residual: dict[str, Any] = {}
    for path, expected in (filters or {}).items():
        if isinstance(expected, GreaterThan):
            conditions.append(_json_field(path).as_float() > expected.value)
        elif isinstance(expected, str):
            conditions.append(_json_field(path).as_string() == expected)
        else:
            residual[path] = expected
    return conditions, residual


class SqlDocumentStore(DocumentStore):
    """DocumentStore over the ``documents`` table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        timeout: float | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._timeout = timeout
        self._write_lock = asyncio.Lock()

    async def _call(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run an operation with the store timeout and error translation."""
        try:
            if self._timeout:
                return await asyncio.wait_for(operation(), self._timeout)
            return await operation()
        except asyncio.TimeoutError as exc:
            logger.warning("Document store call timed out after %ss", self._timeout)
            raise StoreUnavailable("Document store timed out") from exc
        except (OperationalError, InterfaceError, OSError) as exc:
            logger.warning("Document store unavailable: %s", exc)
            raise StoreUnavailable() from exc

    # --- Reads ---

    async def get_by_id(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        async def op() -> dict[str, Any] | None:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Document.data).where(
                        Document.collection == collection,
                        Document.id == doc_id,
                    )
                )
                data = result.scalar_one_or_none()
                return dict(data) if data is not None else None

        return await self._call(op)

    async def get_by_field(self, collection: str, field: str, value: Any) -> dict[str, Any] | None:
        found = await self.query(collection, filters={field: value}, limit=1)
        return found[0] if found else None

    async def query(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        predicate: Callable[[dict[str, Any]], bool] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        conditions, residual = _split_filters(filters)
        stmt = select(Document.data).where(Document.collection == collection, *conditions)
        if order_by is not None:
            key = _order_expression(order_by)
            stmt = stmt.order_by(key.is_(None), key.desc() if descending else key)
        stmt = stmt.order_by(Document.created_at, Document.id)
        in_sql_limit = limit is not None and predicate is None and not residual
        if in_sql_limit:
            stmt = stmt.limit(limit)

        async def op() -> list[dict[str, Any]]:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return [dict(d) for d in result.scalars().all()]

        documents = await self._call(op)
        if in_sql_limit:
            return documents
        selected = [
            d for d in documents
            if matches(d, residual) and (predicate is None or predicate(d))
        ]
        if limit is not None:
            selected = selected[:limit]
        return selected

    async def count(self, collection: str, filters: Mapping[str, Any] | None = None) -> int:
        conditions, residual = _split_filters(filters)
        if residual:
            return await super().count(collection, filters)

        async def op() -> int:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(func.count())
                    .select_from(Document)
                    .where(Document.collection == collection, *conditions)
                )
                return int(result.scalar_one())

        return await self._call(op)

    async def ping(self) -> None:
        async def op() -> None:
            async with self._session_factory() as session:
                await session.execute(text("SELECT 1"))

        await self._call(op)

    # --- Writes ---

    async def _locked_row(self, session: AsyncSession, collection: str, doc_id: str) -> Document | None:
        result = await session.execute(
            select(Document)
            .where(Document.collection == collection, Document.id == doc_id)
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def _write(self, session: AsyncSession, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        await session.execute(
            update(Document)
            .where(Document.collection == collection, Document.id == doc_id)
            .values(data=data, updated_at=func.now())
        )

    async def create_or_replace(self, collection: str, doc_id: str, document: Mapping[str, Any]) -> None:
        payload = to_jsonable_python(dict(document))

        async def op() -> None:
            async with self._write_lock, self._session_factory() as session, session.begin():
                row = await self._locked_row(session, collection, doc_id)
                if row is None:
                    session.add(Document(collection=collection, id=doc_id, data=payload))
                else:
                    await self._write(session, collection, doc_id, payload)

        await self._call(op)

    async def create_if_absent(self, collection: str, doc_id: str, document: Mapping[str, Any]) -> bool:
        payload = to_jsonable_python(dict(document))

        async def op() -> bool:
            async with self._write_lock:
                try:
                    async with self._session_factory() as session, session.begin():
                        session.add(Document(collection=collection, id=doc_id, data=payload))
                        await session.flush()
                except IntegrityError:
                    return False
                return True

        return await self._call(op)

    async def partial_update(self, collection: str, doc_id: str, updates: Mapping[str, Any]) -> None:
        converted = _jsonable_updates(updates)

        async def op() -> None:
            async with self._write_lock, self._session_factory() as session, session.begin():
                row = await self._locked_row(session, collection, doc_id)
                if row is None:
                    raise DocumentNotFound(f"{collection}/{doc_id} not found")
                await self._write(session, collection, doc_id, apply_updates(row.data, converted))

        await self._call(op)

    async def append_if_absent(
        self,
        collection: str,
        doc_id: str,
        path: str,
        value: Any,
        key: str | None = None,
        updates: Mapping[str, Any] | None = None,
    ) -> bool:
        item = to_jsonable_python(value)
        extra = _jsonable_updates(updates or {})

        async def op() -> bool:
            async with self._write_lock, self._session_factory() as session, session.begin():
                row = await self._locked_row(session, collection, doc_id)
                if row is None:
                    raise DocumentNotFound(f"{collection}/{doc_id} not found")
                current = list(get_path(row.data, path) or [])
                if key is None:
                    present = item in current
                else:
                    present = any(
                        isinstance(existing, dict) and existing.get(key) == item.get(key)
                        for existing in current
                    )
                if present:
                    return False
                changes = {path: [*current, item], **extra}
                await self._write(session, collection, doc_id, apply_updates(row.data, changes))
                return True

        return await self._call(op)

    async def update_if(
        self,
        collection: str,
        doc_id: str,
        conditions: Mapping[str, Any],
        updates: Mapping[str, Any],
    ) -> bool:
        converted = _jsonable_updates(updates)

        async def op() -> bool:
            async with self._write_lock, self._session_factory() as session, session.begin():
                row = await self._locked_row(session, collection, doc_id)
                if row is None:
                    raise DocumentNotFound(f"{collection}/{doc_id} not found")
                if not conditions_hold(row.data, conditions):
                    return False
                await self._write(session, collection, doc_id, apply_updates(row.data, converted))
                return True

        return await self._call(op)
