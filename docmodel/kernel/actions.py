"""
docmodel Kernel — Action Vocabulary

Immutable, tagged descriptions of what a record store should do.
Middleware and reducers branch on the `type` tag; payloads are plain data.

Factory functions at the bottom are the public way to build actions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar

PREFIX = "@@docmodel"

# ---------------------------------------------------------------------------
# Type tags
# ---------------------------------------------------------------------------

INIT = f"{PREFIX}/INIT"
GET = f"{PREFIX}/GET"
SET = f"{PREFIX}/SET"
UNSET = f"{PREFIX}/UNSET"
REFRESH = f"{PREFIX}/REFRESH"
REFRESHED = f"{PREFIX}/REFRESHED"
SAVE = f"{PREFIX}/SAVE"
CREATE = f"{PREFIX}/CREATE"
CREATED = f"{PREFIX}/CREATED"
UPDATE = f"{PREFIX}/UPDATE"
UPDATED = f"{PREFIX}/UPDATED"
REMOVE = f"{PREFIX}/REMOVE"
REMOVED = f"{PREFIX}/REMOVED"
INCREMENT = f"{PREFIX}/INCREMENT"
CREATE_INDEX = f"{PREFIX}/CREATE_INDEX"
DROP_INDEX = f"{PREFIX}/DROP_INDEX"
LIST_INDEXES = f"{PREFIX}/LIST_INDEXES"
QUERY = f"{PREFIX}/QUERY"
CALL = f"{PREFIX}/CALL"

ACTION_TYPES: set[str] = {
    INIT,
    GET,
    SET,
    UNSET,
    REFRESH,
    REFRESHED,
    SAVE,
    CREATE,
    CREATED,
    UPDATE,
    UPDATED,
    REMOVE,
    REMOVED,
    INCREMENT,
    CREATE_INDEX,
    DROP_INDEX,
    LIST_INDEXES,
    QUERY,
    CALL,
}


# ---------------------------------------------------------------------------
# Action classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Init:
    type: ClassVar[str] = INIT


@dataclass(frozen=True)
class Get:
    key: str | None = None
    type: ClassVar[str] = GET


@dataclass(frozen=True)
class Set:
    fields: dict[str, Any] = field(default_factory=dict)
    type: ClassVar[str] = SET


@dataclass(frozen=True)
class Unset:
    keys: tuple[str, ...] = ()
    type: ClassVar[str] = UNSET


@dataclass(frozen=True)
class Refresh:
    type: ClassVar[str] = REFRESH


@dataclass(frozen=True)
class Refreshed:
    """Storage returned a fresh copy of the document (None if it is gone)."""

    fields: dict[str, Any] | None = None
    type: ClassVar[str] = REFRESHED


@dataclass(frozen=True)
class Save:
    fields: dict[str, Any] = field(default_factory=dict)
    type: ClassVar[str] = SAVE


@dataclass(frozen=True)
class Create:
    fields: dict[str, Any] = field(default_factory=dict)
    type: ClassVar[str] = CREATE


@dataclass(frozen=True)
class Created:
    id: Any = None
    type: ClassVar[str] = CREATED


@dataclass(frozen=True)
class Update:
    fields: dict[str, Any] = field(default_factory=dict)
    type: ClassVar[str] = UPDATE


@dataclass(frozen=True)
class Updated:
    fields: dict[str, Any] = field(default_factory=dict)
    type: ClassVar[str] = UPDATED


@dataclass(frozen=True)
class Remove:
    type: ClassVar[str] = REMOVE


@dataclass(frozen=True)
class Removed:
    type: ClassVar[str] = REMOVED


@dataclass(frozen=True)
class Increment:
    fields: dict[str, int | float] = field(default_factory=dict)
    type: ClassVar[str] = INCREMENT


@dataclass(frozen=True)
class CreateIndex:
    args: tuple[Any, ...] = ()
    options: dict[str, Any] = field(default_factory=dict)
    type: ClassVar[str] = CREATE_INDEX


@dataclass(frozen=True)
class DropIndex:
    args: tuple[Any, ...] = ()
    type: ClassVar[str] = DROP_INDEX


@dataclass(frozen=True)
class ListIndexes:
    args: tuple[Any, ...] = ()
    type: ClassVar[str] = LIST_INDEXES


@dataclass(frozen=True)
class Query:
    """
    Replay `calls` ([method, args] pairs) on a query builder, then run the
    terminal `method` (find, find_one, count, remove) against the collection.
    """

    method: str
    calls: tuple[tuple[str, tuple[Any, ...]], ...] = ()
    type: ClassVar[str] = QUERY


@dataclass(frozen=True)
class Call:
    """Invoke `method` on the record type's collection handle."""

    method: str
    args: tuple[Any, ...] = ()
    kwargs: dict[str, Any] = field(default_factory=dict)
    type: ClassVar[str] = CALL


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def get(key: str | None = None) -> Get:
    return Get(key=key)


def set_fields(fields: dict[str, Any]) -> Set:
    return Set(fields=fields)


def unset(keys: list[str] | tuple[str, ...]) -> Unset:
    return Unset(keys=tuple(keys))


def refresh() -> Refresh:
    return Refresh()


def create(fields: dict[str, Any]) -> Create:
    return Create(fields=fields)


def update(fields: dict[str, Any]) -> Update:
    return Update(fields=fields)


def save(fields: dict[str, Any]) -> Save:
    return Save(fields=fields)


def remove() -> Remove:
    return Remove()


def increment(fields: dict[str, int | float]) -> Increment:
    return Increment(fields=fields)


def create_index(*args: Any, **options: Any) -> CreateIndex:
    return CreateIndex(args=args, options=options)


def drop_index(*args: Any) -> DropIndex:
    return DropIndex(args=args)


def list_indexes(*args: Any) -> ListIndexes:
    return ListIndexes(args=args)


def query(method: str, calls: list | tuple = ()) -> Query:
    return Query(method=method, calls=tuple((name, tuple(args)) for name, args in calls))


def call(method: str, args: list | tuple = (), **kwargs: Any) -> Call:
    return Call(method=method, args=tuple(args), kwargs=kwargs)


def type_of(action: Any) -> str | None:
    """The action's tag, or None for objects that are not actions."""
    return getattr(action, "type", None)
