"""
Module: connectors.mongo_store

MongoDB-backed DocumentStore using pymongo's asyncio client. Documents keep
their identifier as a string ``id`` in the catalog and as an ObjectId ``_id``
in Mongo.
"""

import logging
from collections.abc import Sequence
from typing import Any

from bson import ObjectId
from pymongo import AsyncMongoClient, ReturnDocument
from pymongo.errors import ExecutionTimeout, NetworkTimeout, PyMongoError, WTimeoutError

from catalog.errors import StoreTimeout, StoreUnavailable
from utils.ids import is_object_id

logger = logging.getLogger(__name__)

_TIMEOUTS = (ExecutionTimeout, NetworkTimeout, WTimeoutError)


def _to_mongo(document: dict[str, Any]) -> dict[str, Any]:
    stored = dict(document)
    doc_id = stored.pop("id", None)
    stored["_id"] = ObjectId(doc_id) if doc_id else ObjectId()
    return stored


def _from_mongo(document: dict[str, Any] | None) -> dict[str, Any] | None:
    if document is None:
        return None
    out = dict(document)
    out["id"] = str(out.pop("_id"))
    return out


def _translate_filter(filter: dict[str, Any] | None) -> dict[str, Any]:
    """Rewrite ``id`` conditions into ``_id`` ObjectId conditions."""
    translated: dict[str, Any] = {}
    for key, condition in (filter or {}).items():
        if key in ("$and", "$or"):
            translated[key] = [_translate_filter(sub) for sub in condition]
        elif key == "id":
            translated["_id"] = ObjectId(condition) if is_object_id(condition) else condition
        else:
            translated[key] = condition
    return translated


class MongoDocumentStore:
    """
    DocumentStore over ``pymongo.AsyncMongoClient``.

    ``timeout`` is applied client-side to every operation; a timed-out call
    raises StoreTimeout, any other driver failure StoreUnavailable.
    """

    def __init__(self, uri: str, database: str, timeout: float = 5.0, client: Any = None):
        self.client = client or AsyncMongoClient(uri, timeoutMS=int(timeout * 1000))
        self.db = self.client[database]

    async def _run(self, operation: str, awaitable):
        try:
            return await awaitable
        except _TIMEOUTS as e:
            logger.error(f"Mongo {operation} timed out: {e}")
            raise StoreTimeout(f"Store operation {operation} timed out") from e
        except PyMongoError as e:
            logger.error(f"Mongo {operation} failed: {e}")
            raise StoreUnavailable(f"Store operation {operation} failed") from e

    async def ping(self) -> None:
        await self._run("ping", self.client.admin.command("ping"))

    async def insert(self, collection: str, document: dict[str, Any]) -> dict[str, Any]:
        stored = _to_mongo(document)
        await self._run(f"{collection}.insert", self.db[collection].insert_one(stored))
        return _from_mongo(stored)

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        found = await self._run(
            f"{collection}.get", self.db[collection].find_one({"_id": ObjectId(doc_id)})
        )
        return _from_mongo(found)

    async def update(
        self, collection: str, doc_id: str, changes: dict[str, Any]
    ) -> dict[str, Any] | None:
        changes = {k: v for k, v in changes.items() if k != "id"}
        updated = await self._run(
            f"{collection}.update",
            self.db[collection].find_one_and_update(
                {"_id": ObjectId(doc_id)},
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            ),
        )
        return _from_mongo(updated)

    async def delete(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        deleted = await self._run(
            f"{collection}.delete",
            self.db[collection].find_one_and_delete({"_id": ObjectId(doc_id)}),
        )
        return _from_mongo(deleted)

    async def delete_many(self, collection: str, filter: dict[str, Any]) -> int:
        result = await self._run(
            f"{collection}.delete_many", self.db[collection].delete_many(_translate_filter(filter))
        )
        return result.deleted_count

    async def find(
        self,
        collection: str,
        filter: dict[str, Any] | None = None,
        *,
        sort: Sequence[tuple[str, int]] | None = None,
        skip: int = 0,
        limit: int | None = None,
        projection: Sequence[str] | None = None,
    ) -> list[dict[str, Any]]:
        cursor = self.db[collection].find(
            _translate_filter(filter), projection=list(projection) if projection else None
        )
        if sort:
            cursor = cursor.sort([("_id" if key == "id" else key, direction) for key, direction in sort])
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        documents = await self._run(f"{collection}.find", cursor.to_list(length=None))
        return [_from_mongo(doc) for doc in documents]

    async def count(self, collection: str, filter: dict[str, Any] | None = None) -> int:
        return await self._run(
            f"{collection}.count", self.db[collection].count_documents(_translate_filter(filter))
        )

    async def close(self) -> None:
        await self.client.close()
