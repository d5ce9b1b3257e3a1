"""
Postgres storage driver.

Implements the document storage protocol on asyncpg. Each collection is a
table of (id text primary key, doc jsonb) rows, created on first use.
Filters are evaluated with docmodel.storage.matching; lookups by _id are
pushed down to the primary key. Updates run read-modify-write inside a
transaction holding a row lock, so $inc is atomic per document.
"""

from __future__ import annotations

import json
import logging
import re
import uuid
from typing import Any

import asyncpg

from docmodel.config import settings
from docmodel.errors import DuplicateKeyError, StorageError, UsageError
from docmodel.storage.base import Collection, DocumentStorage
from docmodel.storage.matching import (
    apply_options,
    apply_update,
    index_name,
    matches,
    normalize_index_spec,
)
from docmodel.storage.models import DeleteResult, IndexInfo, InsertResult, UpdateResult

logger = logging.getLogger(__name__)

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")

_ID_INDEX = IndexInfo(name="_id_", key={"_id": 1}, unique=True)


def _identifier(value: str) -> str:
    if not IDENTIFIER_PATTERN.match(value):
        raise UsageError(f"invalid identifier: {value!r}")
    return value


def _path_literal(path: str) -> str:
    """'author.name' -> '{author,name}' after validating every segment."""
    return "{" + ",".join(_identifier(part) for part in path.split(".")) + "}"


def _pushdown_id(filter: dict[str, Any] | None) -> str | None:
    value = (filter or {}).get("_id")
    if isinstance(value, str | int) and not isinstance(value, bool):
        return str(value)
    return None


async def _init_connection(conn: asyncpg.Connection) -> None:
    """JSONB codec - decode to Python dict/list."""
    await conn.set_type_codec(
        "jsonb",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog",
    )


class PostgresCollection(Collection):
    """One collection backed by one table."""

    def __init__(self, storage: PostgresStorage, name: str) -> None:
        self.name = name
        self.storage = storage
        self.table = _identifier(f"{storage.table_prefix}{name}")
        self._ready = False

    async def insert(self, doc: dict[str, Any]) -> InsertResult:
        stored = dict(doc)
        stored.setdefault("_id", str(uuid.uuid4()))
        await self._ensure_table()
        try:
            async with self.storage.pool.acquire() as conn:
                await conn.execute(
                    f'INSERT INTO "{self.table}" (id, doc) VALUES ($1, $2)',
                    str(stored["_id"]),
                    stored,
                )
        except asyncpg.UniqueViolationError as e:
            raise DuplicateKeyError(str(e)) from e
        return InsertResult(inserted_id=stored["_id"])

    async def update(self, filter: dict[str, Any], update: dict[str, Any], multi: bool = False) -> UpdateResult:
        await self._ensure_table()
        matched = 0
        modified = 0
        try:
            async with self.storage.pool.acquire() as conn:
                async with conn.transaction():
                    rows = await self._select(conn, filter, lock=True)
                    for row in rows:
                        doc = row["doc"]
                        if not matches(doc, filter):
                            continue
                        matched += 1
                        new_doc = apply_update(doc, update)
                        if new_doc != doc:
                            modified += 1
                            await conn.execute(
                                f'UPDATE "{self.table}" SET doc = $2 WHERE id = $1',
                                row["id"],
                                new_doc,
                            )
                        if not multi:
                            break
        except asyncpg.UniqueViolationError as e:
            raise DuplicateKeyError(str(e)) from e
        return UpdateResult(matched_count=matched, modified_count=modified)

    async def remove(self, filter: dict[str, Any]) -> DeleteResult:
        await self._ensure_table()
        async with self.storage.pool.acquire() as conn:
            async with conn.transaction():
                rows = await self._select(conn, filter, lock=True)
                ids = [row["id"] for row in rows if matches(row["doc"], filter)]
                if ids:
                    await conn.execute(f'DELETE FROM "{self.table}" WHERE id = ANY($1::text[])', ids)
        return DeleteResult(deleted_count=len(ids))

    async def find(self, filter: dict[str, Any] | None = None, **options: Any) -> list[dict[str, Any]]:
        await self._ensure_table()
        async with self.storage.pool.acquire() as conn:
            rows = await self._select(conn, filter)
        docs = [row["doc"] for row in rows if matches(row["doc"], filter)]
        return apply_options(docs, **options)

    async def find_one(self, filter: dict[str, Any] | None = None, **options: Any) -> dict[str, Any] | None:
        options["limit"] = 1
        docs = await self.find(filter, **options)
        return docs[0] if docs else None

    async def count(self, filter: dict[str, Any] | None = None) -> int:
        return len(await self.find(filter))

    async def create_index(self, spec: Any, unique: bool = False, name: str | None = None) -> str:
        await self._ensure_table()
        key = normalize_index_spec(spec)
        name = _identifier(name or index_name(key))
        physical = _identifier(f"{self.table}__{name}")
        expressions = ", ".join(f"(doc #>> '{_path_literal(field)}')" for field in key)
        unique_sql = "UNIQUE " if unique else ""
        logger.debug("postgres: create index %s on %s", physical, self.table)
        try:
            async with self.storage.pool.acquire() as conn:
                async with conn.transaction():
                    await conn.execute(
                        f'CREATE {unique_sql}INDEX IF NOT EXISTS "{physical}" ON "{self.table}" ({expressions})'
                    )
                    await conn.execute(
                        f"""
                        INSERT INTO "{self.storage.index_table}" (collection, name, key, is_unique)
                        VALUES ($1, $2, $3, $4)
                        ON CONFLICT (collection, name)
                        DO UPDATE SET key = EXCLUDED.key, is_unique = EXCLUDED.is_unique
                        """,
                        self.name,
                        name,
                        key,
                        unique,
                    )
        except asyncpg.UniqueViolationError as e:
            raise DuplicateKeyError(str(e)) from e
        return name

    async def drop_index(self, name: str) -> None:
        await self._ensure_table()
        physical = _identifier(f"{self.table}__{_identifier(name)}")
        async with self.storage.pool.acquire() as conn:
            async with conn.transaction():
                deleted = await conn.fetchval(
                    f'DELETE FROM "{self.storage.index_table}" WHERE collection = $1 AND name = $2 RETURNING name',
                    self.name,
                    name,
                )
                if deleted is None:
                    raise StorageError(f"index not found: {name}")
                await conn.execute(f'DROP INDEX IF EXISTS "{physical}"')

    async def list_indexes(self) -> list[IndexInfo]:
        await self._ensure_table()
        async with self.storage.pool.acquire() as conn:
            rows = await conn.fetch(
                f'SELECT name, key, is_unique FROM "{self.storage.index_table}" WHERE collection = $1 ORDER BY name',
                self.name,
            )
        return [_ID_INDEX, *(IndexInfo(name=r["name"], key=r["key"], unique=r["is_unique"]) for r in rows)]

    async def drop(self) -> None:
        await self.storage.ensure_index_table()
        async with self.storage.pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(f'DROP TABLE IF EXISTS "{self.table}"')
                await conn.execute(
                    f'DELETE FROM "{self.storage.index_table}" WHERE collection = $1',
                    self.name,
                )
        self._ready = False

    # --- internal helpers -------------------------------------------------

    async def _ensure_table(self) -> None:
        if self._ready:
            return
        await self.storage.ensure_index_table()
        async with self.storage.pool.acquire() as conn:
            await conn.execute(f'CREATE TABLE IF NOT EXISTS "{self.table}" (id text PRIMARY KEY, doc jsonb NOT NULL)')
        logger.info("postgres: collection table ready %s", self.table)
        self._ready = True

    async def _select(self, conn: asyncpg.Connection, filter: dict[str, Any] | None, lock: bool = False) -> list:
        lock_sql = " FOR UPDATE" if lock else ""
        doc_id = _pushdown_id(filter)
        if doc_id is not None:
            return await conn.fetch(f'SELECT id, doc FROM "{self.table}" WHERE id = $1{lock_sql}', doc_id)
        return await conn.fetch(f'SELECT id, doc FROM "{self.table}" ORDER BY id{lock_sql}')


class PostgresStorage(DocumentStorage):
    """
    Postgres-based document storage.

    Uses one table per collection plus an index catalog table
    (<prefix>indexes) that remembers each index's key spec.
    """

    def __init__(self, pool: asyncpg.Pool, table_prefix: str | None = None) -> None:
        self.pool = pool
        self.table_prefix = settings.TABLE_PREFIX if table_prefix is None else table_prefix
        self.index_table = _identifier(f"{self.table_prefix}indexes")
        self._collections: dict[str, PostgresCollection] = {}
        self._index_table_ready = False

    @classmethod
    async def connect(cls, dsn: str, table_prefix: str | None = None, **pool_options: Any) -> PostgresStorage:
        """Create a connection pool for `dsn` and wrap it."""
        pool_options.setdefault("min_size", settings.POOL_MIN_SIZE)
        pool_options.setdefault("max_size", settings.POOL_MAX_SIZE)
        pool_options.setdefault("command_timeout", settings.COMMAND_TIMEOUT)
        pool = await asyncpg.create_pool(dsn=dsn, init=_init_connection, **pool_options)
        return cls(pool, table_prefix=table_prefix)

    def collection(self, name: str) -> PostgresCollection:
        if name not in self._collections:
            self._collections[name] = PostgresCollection(self, name)
        return self._collections[name]

    async def ensure_index_table(self) -> None:
        if self._index_table_ready:
            return
        async with self.pool.acquire() as conn:
            await conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS "{self.index_table}" (
                    collection text NOT NULL,
                    name text NOT NULL,
                    key jsonb NOT NULL,
                    is_unique boolean NOT NULL DEFAULT false,
                    PRIMARY KEY (collection, name)
                )
                """
            )
        self._index_table_ready = True

    async def close(self) -> None:
        """Close the connection pool."""
        await self.pool.close()
