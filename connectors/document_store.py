"""
Module: connectors.document_store

Document store interface used by the catalog, and an in-memory implementation
for tests and single-process demos. Filters are Mongo-style documents; the
in-memory store evaluates the operator subset the catalog emits.
"""

import asyncio
import copy
import logging
import re
from collections.abc import Sequence
from typing import Any, Protocol

from utils.ids import new_object_id

logger = logging.getLogger(__name__)

SortSpec = Sequence[tuple[str, int]]


class DocumentStore(Protocol):
    """Async CRUD over named collections of dict documents keyed by ``id``."""

    async def insert(self, collection: str, document: dict[str, Any]) -> dict[str, Any]: ...

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None: ...

    async def update(
        self, collection: str, doc_id: str, changes: dict[str, Any]
    ) -> dict[str, Any] | None: ...

    async def delete(self, collection: str, doc_id: str) -> dict[str, Any] | None: ...

    async def delete_many(self, collection: str, filter: dict[str, Any]) -> int: ...

    async def find(
        self,
        collection: str,
        filter: dict[str, Any] | None = None,
        *,
        sort: SortSpec | None = None,
        skip: int = 0,
        limit: int | None = None,
        projection: Sequence[str] | None = None,
    ) -> list[dict[str, Any]]: ...

    async def count(self, collection: str, filter: dict[str, Any] | None = None) -> int: ...

    async def close(self) -> None: ...


# --- Filter evaluation ---


def _compare(op: str, actual: Any, expected: Any) -> bool:
    if actual is None or expected is None:
        return False
    try:
        if op == "$gt":
            return actual > expected
        if op == "$gte":
            return actual >= expected
        if op == "$lt":
            return actual < expected
        return actual <= expected
    except TypeError:
        return False


def _regex_matches(actual: Any, pattern: str, options: str = "") -> bool:
    if not isinstance(actual, str):
        return False
    flags = re.IGNORECASE if "i" in options else 0
    return re.search(pattern, actual, flags) is not None


def _equals(actual: Any, expected: Any) -> bool:
    if isinstance(actual, list) and not isinstance(expected, list):
        return expected in actual
    return actual == expected


def _match_operators(actual: Any, conditions: dict[str, Any]) -> bool:
    for op, expected in conditions.items():
        if op == "$eq":
            ok = _equals(actual, expected)
        elif op == "$ne":
            ok = not _equals(actual, expected)
        elif op in ("$gt", "$gte", "$lt", "$lte"):
            ok = _compare(op, actual, expected)
        elif op == "$in":
            ok = any(_equals(actual, candidate) for candidate in expected)
        elif op == "$regex":
            ok = _regex_matches(actual, expected, conditions.get("$options", ""))
        elif op == "$options":
            continue
        elif op == "$elemMatch":
            ok = isinstance(actual, list) and any(
                isinstance(item, dict) and matches(item, expected) for item in actual
            )
        elif op == "$exists":
            ok = (actual is not None) == bool(expected)
        else:
            raise ValueError(f"Unsupported filter operator: {op}")
        if not ok:
            return False
    return True


def _is_operator_dict(value: Any) -> bool:
    return isinstance(value, dict) and bool(value) and all(key.startswith("$") for key in value)


def matches(document: dict[str, Any], filter: dict[str, Any] | None) -> bool:
    """Evaluate a Mongo-style filter against one document."""
    for key, condition in (filter or {}).items():
        if key == "$and":
            if not all(matches(document, sub) for sub in condition):
                return False
        elif key == "$or":
            if not any(matches(document, sub) for sub in condition):
                return False
        elif _is_operator_dict(condition):
            if not _match_operators(document.get(key), condition):
                return False
        elif not _equals(document.get(key), condition):
            return False
    return True


def _sort_key(field: str):
    def key(document: dict[str, Any]):
        value = document.get(field)
        return (value is None, value if value is not None else 0)

    return key


class InMemoryDocumentStore:
    """
    Dictionary-backed document store. Documents are deep-copied on the way in
    and out so callers never share state with the stored copy.
    """

    def __init__(self, latency: float = 0.0):
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self.latency = latency

    async def _tick(self) -> None:
        # Every operation yields to the loop, like a real network round trip.
        await asyncio.sleep(self.latency)

    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(name, {})

    async def insert(self, collection: str, document: dict[str, Any]) -> dict[str, Any]:
        await self._tick()
        stored = copy.deepcopy(document)
        stored["id"] = stored.get("id") or new_object_id()
        docs = self._collection(collection)
        if stored["id"] in docs:
            raise ValueError(f"Duplicate id {stored['id']} in {collection}")
        docs[stored["id"]] = stored
        logger.debug(f"Inserted {collection}/{stored['id']}")
        return copy.deepcopy(stored)

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        await self._tick()
        found = self._collection(collection).get(doc_id)
        return copy.deepcopy(found) if found is not None else None

    async def update(
        self, collection: str, doc_id: str, changes: dict[str, Any]
    ) -> dict[str, Any] | None:
        await self._tick()
        found = self._collection(collection).get(doc_id)
        if found is None:
            return None
        for key, value in changes.items():
            if key != "id":
                found[key] = copy.deepcopy(value)
        return copy.deepcopy(found)

    async def delete(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        await self._tick()
        return self._collection(collection).pop(doc_id, None)

    async def delete_many(self, collection: str, filter: dict[str, Any]) -> int:
        await self._tick()
        docs = self._collection(collection)
        doomed = [doc_id for doc_id, doc in docs.items() if matches(doc, filter)]
        for doc_id in doomed:
            del docs[doc_id]
        return len(doomed)

    async def find(
        self,
        collection: str,
        filter: dict[str, Any] | None = None,
        *,
        sort: SortSpec | None = None,
        skip: int = 0,
        limit: int | None = None,
        projection: Sequence[str] | None = None,
    ) -> list[dict[str, Any]]:
        await self._tick()
        results = [doc for doc in self._collection(collection).values() if matches(doc, filter)]
        # Stable sorts applied from the last key to the first give a multi-key order.
        for field, direction in reversed(list(sort or ())):
            results.sort(key=_sort_key(field), reverse=direction < 0)
        results = results[skip:]
        if limit is not None:
            results = results[:limit]
        if projection is not None:
            keep = set(projection) | {"id"}
            results = [{k: v for k, v in doc.items() if k in keep} for doc in results]
        return copy.deepcopy(results)

    async def count(self, collection: str, filter: dict[str, Any] | None = None) -> int:
        await self._tick()
        return sum(1 for doc in self._collection(collection).values() if matches(doc, filter))

    async def close(self) -> None:
        self._collections.clear()
