"""
docmodel — document records with an action-dispatch core.

  Database   connection provider models are registered with
  Model      record facade (fields, hooks, persistence, queries)
  Query      chainable class-level query
"""

from docmodel.database import Database
from docmodel.errors import (
    DatabaseStateError,
    DocModelError,
    DuplicateKeyError,
    HookError,
    ImmutableFieldError,
    StorageError,
    UnregisteredTypeError,
    UnsupportedURLError,
    UsageError,
)
from docmodel.model import Model, Query, RecordType
from docmodel.store import Store

__version__ = "0.1.0"

__all__ = [
    "Database",
    "Model",
    "Query",
    "RecordType",
    "Store",
    "DocModelError",
    "UsageError",
    "HookError",
    "StorageError",
    "DuplicateKeyError",
    "ImmutableFieldError",
    "UnregisteredTypeError",
    "DatabaseStateError",
    "UnsupportedURLError",
]
