# datastore/access.py
"""
Document Access Layer.

Generic CRUD helpers over named collections. Domain services call these
with a collection name and a query; they never talk to pymongo directly.

Guarantees:
- insert_one / insert_many stamp createdAt and updatedAt with the call
  time, overwriting anything the caller put there.
- update_one / update_many / bulk_update always carry $set.updatedAt with
  the call time (see datastore.patch for the normalisation rules).
- find returns a materialised list, never a cursor.
- a query that matches nothing gives a zero count, not an exception.
- driver failures are logged with the collection name and re-raised as
  DataAccessError with an ErrorKind.
"""

from __future__ import annotations

import contextlib
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import UpdateMany, UpdateOne
from pymongo.database import Database

from .connection import DataStoreContext, get_default_context
from .errors import DRIVER_ERRORS, wrap
from .patch import CREATED_AT, SET, SET_ON_INSERT, UPDATED_AT, Patch, normalize_update

logger = logging.getLogger(__name__)

Query = Mapping[str, Any]
Update = Union[Patch, Mapping[str, Any]]
SortSpec = Sequence[Tuple[str, int]]

ACTIVE_FILTER = {"isActive": {"$ne": False}}


def utcnow() -> datetime:
    """Naive UTC now, truncated to the millisecond precision BSON keeps."""
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def active_only(query: Optional[Query] = None) -> Dict[str, Any]:
    """Add the soft-delete filter (isActive != false) to a query."""
    merged = dict(query or {})
    if "isActive" not in merged:
        merged.update(ACTIVE_FILTER)
    return merged


def as_object_id(value: Any) -> ObjectId:
    """Coerce a 24-hex string (or ObjectId) to ObjectId. Raises InvalidId otherwise."""
    if isinstance(value, ObjectId):
        return value
    if not isinstance(value, str) or value in ("", "undefined", "null"):
        raise InvalidId(f"{value!r} is not a valid id")
    return ObjectId(value)


class DocumentStore:
    """
    CRUD helpers bound to one database.

    Built either around an explicit database handle (tests inject one) or a
    DataStoreContext that connects on first use. With neither, the
    process-wide default context is used.
    """

    def __init__(self, database: Optional[Database] = None, context: Optional[DataStoreContext] = None):
        self._database = database
        self._context = context

    @property
    def database(self) -> Database:
        if self._database is not None:
            return self._database
        context = self._context or get_default_context()
        return context.connect()

    def collection(self, name: str):
        return self.database[name]

    @contextlib.contextmanager
    def _guard(self, collection: str, operation: str):
        try:
            yield
        except DRIVER_ERRORS as exc:
            logger.error("Error during %s on %s: %s", operation, collection, exc)
            raise wrap(exc, collection=collection, operation=operation) from exc

    # reads

    def find_one(self, collection: str, query: Query, projection: Optional[Mapping[str, Any]] = None) -> Optional[dict]:
        with self._guard(collection, "find_one"):
            return self.collection(collection).find_one(dict(query), projection)

    def find(
        self,
        collection: str,
        query: Optional[Query] = None,
        *,
        sort: Optional[SortSpec] = None,
        limit: int = 0,
        skip: int = 0,
        projection: Optional[Mapping[str, Any]] = None,
    ) -> List[dict]:
        with self._guard(collection, "find"):
            cursor = self.collection(collection).find(dict(query or {}), projection)
            if sort:
                cursor = cursor.sort(list(sort))
            if skip:
                cursor = cursor.skip(skip)
            if limit:
                cursor = cursor.limit(limit)
            return list(cursor)

    def count_documents(self, collection: str, query: Optional[Query] = None) -> int:
        with self._guard(collection, "count_documents"):
            return self.collection(collection).count_documents(dict(query or {}))

    def aggregate(self, collection: str, pipeline: Sequence[Mapping[str, Any]]) -> List[dict]:
        with self._guard(collection, "aggregate"):
            return list(self.collection(collection).aggregate(list(pipeline)))

    # writes

    @staticmethod
    def _stamped(document: Mapping[str, Any], now: datetime) -> Dict[str, Any]:
        stamped = dict(document)
        stamped[CREATED_AT] = now
        stamped[UPDATED_AT] = now
        return stamped

    def insert_one(self, collection: str, document: Mapping[str, Any]) -> Any:
        doc = self._stamped(document, utcnow())
        with self._guard(collection, "insert_one"):
            return self.collection(collection).insert_one(doc).inserted_id

    def insert_many(self, collection: str, documents: Iterable[Mapping[str, Any]]) -> List[Any]:
        now = utcnow()
        docs = [self._stamped(doc, now) for doc in documents]
        if not docs:
            return []
        with self._guard(collection, "insert_many"):
            return list(self.collection(collection).insert_many(docs).inserted_ids)

    def update_one(self, collection: str, query: Query, update: Update, *, upsert: bool = False) -> int:
        now = utcnow()
        final_update = normalize_update(update, now)
        if upsert:
            # an inserted document gets createdAt alongside the $set.updatedAt
            final_update[SET].pop(CREATED_AT, None)
            on_insert = dict(final_update.get(SET_ON_INSERT) or {})
            on_insert[CREATED_AT] = now
            final_update[SET_ON_INSERT] = on_insert
        with self._guard(collection, "update_one"):
            result = self.collection(collection).update_one(dict(query), final_update, upsert=upsert)
        return result.matched_count

    def update_many(self, collection: str, query: Query, update: Update) -> int:
        final_update = normalize_update(update, utcnow())
        with self._guard(collection, "update_many"):
            result = self.collection(collection).update_many(dict(query), final_update)
        return result.matched_count

    def bulk_update(self, collection: str, operations: Iterable[Tuple[Query, Update, bool]]) -> int:
        """
        Submit several updates in one ordered bulk write.

        ``operations`` holds ``(query, update, many)`` triples. Returns the
        total matched count. Every update gets the same updatedAt.
        """
        now = utcnow()
        requests = []
        for query, update, many in operations:
            op = UpdateMany if many else UpdateOne
            requests.append(op(dict(query), normalize_update(update, now)))
        if not requests:
            return 0
        with self._guard(collection, "bulk_update"):
            result = self.collection(collection).bulk_write(requests, ordered=True)
        return result.matched_count

    def soft_delete(self, collection: str, query: Query) -> int:
        """Mark a single document inactive. Returns the matched count."""
        return self.update_one(
            collection,
            query,
            Patch().set("isActive", False).set("deletedAt", utcnow()),
        )

    def delete_one(self, collection: str, query: Query) -> int:
        with self._guard(collection, "delete_one"):
            return self.collection(collection).delete_one(dict(query)).deleted_count

    def delete_many(self, collection: str, query: Query) -> int:
        with self._guard(collection, "delete_many"):
            return self.collection(collection).delete_many(dict(query)).deleted_count

    def create_index(self, collection: str, keys: Union[str, SortSpec], **options) -> str:
        with self._guard(collection, "create_index"):
            return self.collection(collection).create_index(keys if isinstance(keys, str) else list(keys), **options)


_default_store: Optional[DocumentStore] = None


def get_store() -> DocumentStore:
    """DocumentStore bound to the process-wide default connection."""
    global _default_store
    if _default_store is None:
        _default_store = DocumentStore()
    return _default_store

