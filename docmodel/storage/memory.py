"""
In-memory storage driver.

Keeps documents in per-collection dicts keyed by _id. Used for tests and
`memory://` URLs. Documents are deep-copied on the way in and out so
callers never share state with the store.
"""

from __future__ import annotations

import asyncio
import copy
import uuid
from typing import Any

from docmodel.errors import DuplicateKeyError, StorageError
from docmodel.storage.base import Collection, DocumentStorage
from docmodel.storage.matching import (
    apply_options,
    apply_update,
    index_name,
    index_values,
    matches,
    normalize_index_spec,
)
from docmodel.storage.models import DeleteResult, IndexInfo, InsertResult, UpdateResult

_ID_INDEX = IndexInfo(name="_id_", key={"_id": 1}, unique=True)


class MemoryCollection(Collection):
    """One named collection held in a dict."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.docs: dict[Any, dict[str, Any]] = {}
        self.indexes: dict[str, IndexInfo] = {}
        # (method, args) log of driver calls, in order.
        self.calls: list[tuple[str, tuple]] = []

    async def insert(self, doc: dict[str, Any]) -> InsertResult:
        self.calls.append(("insert", copy.deepcopy((doc,))))
        await asyncio.sleep(0)
        stored = copy.deepcopy(dict(doc))
        stored.setdefault("_id", str(uuid.uuid4()))
        if stored["_id"] in self.docs:
            raise DuplicateKeyError(f"duplicate key in {self.name}: _id={stored['_id']!r}")
        self._check_unique(stored)
        self.docs[stored["_id"]] = stored
        return InsertResult(inserted_id=stored["_id"])

    async def update(self, filter: dict[str, Any], update: dict[str, Any], multi: bool = False) -> UpdateResult:
        self.calls.append(("update", copy.deepcopy((filter, update))))
        await asyncio.sleep(0)
        matched = [doc for doc in self.docs.values() if matches(doc, filter)]
        if not multi:
            matched = matched[:1]

        modified = 0
        for doc in matched:
            new_doc = apply_update(doc, update)
            self._check_unique(new_doc)
            if new_doc != doc:
                modified += 1
            self.docs[doc["_id"]] = new_doc
        return UpdateResult(matched_count=len(matched), modified_count=modified)

    async def remove(self, filter: dict[str, Any]) -> DeleteResult:
        self.calls.append(("remove", copy.deepcopy((filter,))))
        await asyncio.sleep(0)
        doomed = [doc_id for doc_id, doc in self.docs.items() if matches(doc, filter)]
        for doc_id in doomed:
            del self.docs[doc_id]
        return DeleteResult(deleted_count=len(doomed))

    async def find(self, filter: dict[str, Any] | None = None, **options: Any) -> list[dict[str, Any]]:
        self.calls.append(("find", copy.deepcopy((filter,))))
        await asyncio.sleep(0)
        found = [doc for doc in self.docs.values() if matches(doc, filter)]
        return copy.deepcopy(apply_options(found, **options))

    async def find_one(self, filter: dict[str, Any] | None = None, **options: Any) -> dict[str, Any] | None:
        options["limit"] = 1
        docs = await self.find(filter, **options)
        return docs[0] if docs else None

    async def count(self, filter: dict[str, Any] | None = None) -> int:
        self.calls.append(("count", copy.deepcopy((filter,))))
        await asyncio.sleep(0)
        return sum(1 for doc in self.docs.values() if matches(doc, filter))

    async def create_index(self, spec: Any, unique: bool = False, name: str | None = None) -> str:
        key = normalize_index_spec(spec)
        name = name or index_name(key)
        existing = self.indexes.get(name)
        if existing is not None and (existing.key != key or existing.unique != unique):
            raise StorageError(f"index {name!r} already exists with different options")
        info = IndexInfo(name=name, key=key, unique=unique)
        if unique:
            self._check_unique_over(list(self.docs.values()), info)
        self.indexes[name] = info
        return name

    async def drop_index(self, name: str) -> None:
        if name not in self.indexes:
            raise StorageError(f"index not found: {name}")
        del self.indexes[name]

    async def list_indexes(self) -> list[IndexInfo]:
        return [_ID_INDEX, *self.indexes.values()]

    async def drop(self) -> None:
        self.docs.clear()
        self.indexes.clear()

    # --- internal helpers -------------------------------------------------

    def _check_unique(self, candidate: dict[str, Any]) -> None:
        others = [doc for doc_id, doc in self.docs.items() if doc_id != candidate["_id"]]
        for info in self.indexes.values():
            if info.unique:
                self._check_unique_over([*others, candidate], info)

    @staticmethod
    def _check_unique_over(docs: list[dict[str, Any]], info: IndexInfo) -> None:
        seen: set[str] = set()
        for doc in docs:
            marker = repr(index_values(doc, info.key))
            if marker in seen:
                raise DuplicateKeyError(f"duplicate key for index {info.name}: {marker}")
            seen.add(marker)


class MemoryStorage(DocumentStorage):
    """In-memory storage for testing."""

    def __init__(self) -> None:
        self.collections: dict[str, MemoryCollection] = {}
        self.closed = False

    def collection(self, name: str) -> MemoryCollection:
        if name not in self.collections:
            self.collections[name] = MemoryCollection(name)
        return self.collections[name]

    async def close(self) -> None:
        self.closed = True
