"""Document store contract.

The store exposes only single-document primitives: get by id, get by field,
create/replace, create-if-absent, partial field update (with atomic
increments and array unions), append-if-absent and conditional update. There are no
multi-document transactions; callers compose these calls.
"""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

_MISSING = object()


@dataclass(frozen=True)
class Increment:
    """Atomic numeric increment of a field."""

    amount: int | float = 1


@dataclass(frozen=True)
class ArrayUnion:
    """Append values to an array field, skipping values already present."""

    values: tuple[Any, ...]

    def __init__(self, *values: Any) -> None:
        object.__setattr__(self, "values", tuple(values))


@dataclass(frozen=True)
class GreaterThan:
    """Query filter matching numeric fields strictly above ``value``."""

    value: int | float


def get_path(document: Mapping[str, Any], path: str, default: Any = None) -> Any:
    """Read a dotted path (``profile.total_points``) from a document."""
    node: Any = document
    for part in path.split("."):
        if not isinstance(node, Mapping) or part not in node:
            return default
        node = node[part]
    return node


def apply_updates(document: Mapping[str, Any], updates: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``document`` with dotted-path ``updates`` applied.

    Intermediate maps are created as needed. ``Increment`` on a missing
    field starts from zero; ``ArrayUnion`` on a missing field starts from an
    empty list.
    """
    result = copy.deepcopy(dict(document))
    for path, value in updates.items():
        parts = path.split(".")
        node = result
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        leaf = parts[-1]

        if isinstance(value, Increment):
            current = node.get(leaf) or 0
            node[leaf] = current + value.amount
        elif isinstance(value, ArrayUnion):
            current = list(node.get(leaf) or [])
            for item in value.values:
                if item not in current:
                    current.append(item)
            node[leaf] = current
        else:
            node[leaf] = copy.deepcopy(value)
    return result


def _matches_one(document: Mapping[str, Any], path: str, expected: Any) -> bool:
    actual = get_path(document, path, _MISSING)
    if isinstance(expected, GreaterThan):
        return isinstance(actual, (int, float)) and not isinstance(actual, bool) and actual > expected.value
    return actual == expected


def matches(document: Mapping[str, Any], filters: Mapping[str, Any] | None) -> bool:
    """Match every dotted-path filter: equality, or ``GreaterThan``."""
    if not filters:
        return True
    return all(_matches_one(document, path, expected) for path, expected in filters.items())


def conditions_hold(document: Mapping[str, Any], conditions: Mapping[str, Any]) -> bool:
    """True if every dotted-path condition matches; None matches a missing field."""
    return all(get_path(document, path) == expected for path, expected in conditions.items())


class DocumentStore(ABC):
    """Abstract remote document store."""

    @abstractmethod
    async def get_by_id(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Fetch one document, or None."""
        ...

    @abstractmethod
    async def get_by_field(self, collection: str, field: str, value: Any) -> dict[str, Any] | None:
        """Fetch the first document whose dotted ``field`` equals ``value``."""
        ...

    @abstractmethod
    async def create_or_replace(self, collection: str, doc_id: str, document: Mapping[str, Any]) -> None:
        """Write a whole document, replacing any existing one."""
        ...

    @abstractmethod
    async def create_if_absent(self, collection: str, doc_id: str, document: Mapping[str, Any]) -> bool:
        """Create a document only if the id is free. Returns True if created."""
        ...

    @abstractmethod
    async def partial_update(self, collection: str, doc_id: str, updates: Mapping[str, Any]) -> None:
        """Apply field updates atomically to one document.

        Raises:
            DocumentNotFound: If the document does not exist.
        """
        ...

    @abstractmethod
    async def append_if_absent(
        self,
        collection: str,
        doc_id: str,
        path: str,
        value: Any,
        key: str | None = None,
        updates: Mapping[str, Any] | None = None,
    ) -> bool:
        """Atomically append ``value`` to the array at ``path`` unless present.

        Presence is decided by ``value[key]`` when ``key`` is given, otherwise
        by equality. When the append happens, ``updates`` are applied in the
        same write. Returns True if appended.
        """
        ...

    @abstractmethod
    async def update_if(
        self,
        collection: str,
        doc_id: str,
        conditions: Mapping[str, Any],
        updates: Mapping[str, Any],
    ) -> bool:
        """Apply ``updates`` only if every dotted-path condition holds.

        A condition value of None matches a missing field. Returns True if
        the update was applied.
        """
        ...

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        predicate: Callable[[dict[str, Any]], bool] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Return documents matching ``filters`` and ``predicate``.

        Documents missing the ``order_by`` field sort last in either direction.
        """
        ...

    async def count(self, collection: str, filters: Mapping[str, Any] | None = None) -> int:
        """Number of documents matching ``filters``."""
        return len(await self.query(collection, filters=filters))

    async def ping(self) -> None:
        """Check connectivity. Raises StoreUnavailable on failure."""
        return None

    async def close(self) -> None:
        return None
