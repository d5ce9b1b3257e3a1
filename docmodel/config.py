"""
docmodel configuration — all environment variables in one place.

Read from environment at import time. Explicit constructor arguments
(e.g. Database(url=...)) always take precedence over these values.
"""

from __future__ import annotations

import os


class Settings:
    """Library settings from environment variables."""

    # Storage
    DATABASE_URL: str = os.environ.get("DOCMODEL_DATABASE_URL", "memory://")

    # Postgres driver
    POOL_MIN_SIZE: int = int(os.environ.get("DOCMODEL_POOL_MIN_SIZE", "1"))
    POOL_MAX_SIZE: int = int(os.environ.get("DOCMODEL_POOL_MAX_SIZE", "10"))
    COMMAND_TIMEOUT: float = float(os.environ.get("DOCMODEL_COMMAND_TIMEOUT", "60"))
    TABLE_PREFIX: str = os.environ.get("DOCMODEL_TABLE_PREFIX", "docmodel_")


# Singleton instance
settings = Settings()
