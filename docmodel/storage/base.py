"""
Storage protocol.

A DocumentStorage is a connection handle that hands out Collection objects
by name. Implement with Postgres for production, or in-memory for tests.
"""

from __future__ import annotations

from typing import Any

from docmodel.storage.models import DeleteResult, IndexInfo, InsertResult, UpdateResult


class Collection:
    """
    Abstract collection interface.

    Filters and update documents use the operator subset understood by
    docmodel.storage.matching.
    """

    name: str

    async def insert(self, doc: dict[str, Any]) -> InsertResult:
        """Store one document, assigning _id when absent."""
        raise NotImplementedError

    async def update(self, filter: dict[str, Any], update: dict[str, Any], multi: bool = False) -> UpdateResult:
        """Apply $set/$unset/$inc (or replace) on the first match, or all with multi=True."""
        raise NotImplementedError

    async def remove(self, filter: dict[str, Any]) -> DeleteResult:
        """Delete every matching document."""
        raise NotImplementedError

    async def find(self, filter: dict[str, Any] | None = None, **options: Any) -> list[dict[str, Any]]:
        """Matching documents. Options: sort, skip, limit, projection."""
        raise NotImplementedError

    async def find_one(self, filter: dict[str, Any] | None = None, **options: Any) -> dict[str, Any] | None:
        """First matching document or None."""
        raise NotImplementedError

    async def count(self, filter: dict[str, Any] | None = None) -> int:
        raise NotImplementedError

    async def create_index(self, spec: Any, unique: bool = False, name: str | None = None) -> str:
        """Create an index and return its name."""
        raise NotImplementedError

    async def drop_index(self, name: str) -> None:
        raise NotImplementedError

    async def list_indexes(self) -> list[IndexInfo]:
        raise NotImplementedError

    async def drop(self) -> None:
        """Delete the collection with all documents and indexes."""
        raise NotImplementedError


class DocumentStorage:
    """Abstract connection handle."""

    def collection(self, name: str) -> Collection:
        raise NotImplementedError

    async def close(self) -> None:
        raise NotImplementedError
