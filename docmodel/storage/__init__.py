"""
Storage drivers for docmodel.

All driver access goes through a DocumentStorage handle obtained from
open_storage(). Nothing outside this package talks to a backend directly.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlparse

from docmodel.errors import UnsupportedURLError
from docmodel.storage.base import Collection, DocumentStorage
from docmodel.storage.memory import MemoryCollection, MemoryStorage
from docmodel.storage.models import DeleteResult, IndexInfo, InsertResult, UpdateResult

MEMORY_SCHEMES = {"memory"}
POSTGRES_SCHEMES = {"postgres", "postgresql"}


async def open_storage(url: str, **options: Any) -> DocumentStorage:
    """Connect to the backend named by the URL scheme."""
    scheme = urlparse(url).scheme
    if scheme in MEMORY_SCHEMES:
        return MemoryStorage()
    if scheme in POSTGRES_SCHEMES:
        # asyncpg is only needed when a Postgres URL is used
        from docmodel.storage.postgres import PostgresStorage

        return await PostgresStorage.connect(url, **options)
    raise UnsupportedURLError(f"no storage driver for URL scheme {scheme!r}: {url}")


__all__ = [
    "open_storage",
    "Collection",
    "DocumentStorage",
    "MemoryCollection",
    "MemoryStorage",
    "DeleteResult",
    "IndexInfo",
    "InsertResult",
    "UpdateResult",
]
