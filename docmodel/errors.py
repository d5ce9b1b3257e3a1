"""
docmodel errors.

Precondition failures are raised synchronously. Hook and storage failures
surface through the awaited operation that triggered them.
"""

from __future__ import annotations


class DocModelError(Exception):
    """Base error for the project."""


class UsageError(DocModelError, ValueError):
    """Caller violated a precondition (bad argument, record not saved yet)."""


class HookError(DocModelError):
    """A before/after hook handler failed. The original error is __cause__."""

    def __init__(self, place: str, event: str, message: str) -> None:
        super().__init__(f"{place}:{event} hook failed: {message}")
        self.place = place
        self.event = event


class StorageError(DocModelError):
    """Raised by storage drivers for persistence-level issues."""


class DuplicateKeyError(StorageError):
    """A unique index would be violated."""


class ImmutableFieldError(StorageError):
    """An update tried to change a document's _id."""


class UnregisteredTypeError(DocModelError):
    """Model type is not registered with a Database."""


class DatabaseStateError(DocModelError):
    """Database is not connected."""


class UnsupportedURLError(DocModelError):
    """No storage driver for the URL scheme."""
