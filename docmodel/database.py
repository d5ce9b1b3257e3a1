"""
Database — the connection provider models are registered against.

States: DISCONNECTED → CONNECTING → CONNECTED → (disconnect) DISCONNECTED.
Concurrent connect() calls share a single attempt.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from urllib.parse import urlparse

from docmodel.config import settings
from docmodel.errors import DatabaseStateError
from docmodel.storage import open_storage
from docmodel.storage.base import DocumentStorage

logger = logging.getLogger(__name__)

STATE_CONNECTED = "connected"
STATE_CONNECTING = "connecting"
STATE_DISCONNECTED = "disconnected"


class Database:
    """
    Owns one storage connection handle.

    Usage:
        db = Database("postgresql://localhost/app")
        await db.connect()
        db.register(Post, Comment)
    """

    def __init__(self, url: str | None = None, **options: Any) -> None:
        self.url = url or settings.DATABASE_URL
        self.options = options
        self.state = STATE_DISCONNECTED
        self._storage: DocumentStorage | None = None
        self._connecting: asyncio.Task | None = None

    async def connect(self) -> DocumentStorage:
        if self.state == STATE_CONNECTED and self._storage is not None:
            return self._storage
        if self._connecting is None:
            self.state = STATE_CONNECTING
            self._connecting = asyncio.ensure_future(self._open())
        try:
            return await asyncio.shield(self._connecting)
        finally:
            if self._connecting is not None and self._connecting.done():
                self._connecting = None

    async def connection(self) -> DocumentStorage:
        """The live storage handle. Waits for an in-flight connect()."""
        if self.state == STATE_CONNECTED and self._storage is not None:
            return self._storage
        if self.state == STATE_CONNECTING and self._connecting is not None:
            return await asyncio.shield(self._connecting)
        raise DatabaseStateError("Database is disconnected.")

    async def disconnect(self) -> None:
        if self.state == STATE_CONNECTING and self._connecting is not None:
            await asyncio.shield(self._connecting)
        if self._storage is None:
            logger.warning("database: disconnect requested but %s was never connected", _redacted(self.url))
            self.state = STATE_DISCONNECTED
            return
        await self._storage.close()
        self._storage = None
        self.state = STATE_DISCONNECTED
        logger.info("database: disconnected from %s", _redacted(self.url))

    def register(self, *models: type) -> None:
        """Bind model types so their class-level operations use this database."""
        for model in models:
            model.record_type.database = self

    # --- internal helpers -------------------------------------------------

    async def _open(self) -> DocumentStorage:
        try:
            storage = await open_storage(self.url, **self.options)
        except Exception:
            self.state = STATE_DISCONNECTED
            raise
        self._storage = storage
        self.state = STATE_CONNECTED
        logger.info("database: connected to %s", _redacted(self.url))
        return storage


def _redacted(url: str) -> str:
    """URL without credentials, for logs."""
    parsed = urlparse(url)
    host = parsed.hostname or ""
    port = f":{parsed.port}" if parsed.port else ""
    return f"{parsed.scheme}://{host}{port}{parsed.path}"
