"""
docmodel Kernel — Query Builder

Fluent predicate builder that turns chained calls into a storage filter
plus find options. Model-level queries record their calls as
(method, args) pairs and the query middleware replays them here with
`QueryBuilder.replay(calls)`.

A later where(key, value) replaces the condition on that key, except that
two operator documents merge. An operator cannot be added on top of an
equality condition.

Terminal methods need a collection: builder.bind(collection).find().
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from docmodel.errors import UsageError

# Methods that may be replayed from a recorded call list.
CHAIN_METHODS: set[str] = {
    "where",
    "equals",
    "lt",
    "lte",
    "gt",
    "gte",
    "ne",
    "in_",
    "nin",
    "exists",
    "regex",
    "or_",
    "and_",
    "nor",
    "limit",
    "skip",
    "sort",
    "include",
    "exclude",
    "search",
}

TERMINAL_METHODS: set[str] = {"find", "find_one", "count", "remove"}

_OPERATORS = {
    "lt": "$lt",
    "lte": "$lte",
    "gt": "$gt",
    "gte": "$gte",
    "ne": "$ne",
    "in_": "$in",
    "nin": "$nin",
    "regex": "$regex",
}

_NOTHING: Any = object()


class QueryBuilder:
    def __init__(self) -> None:
        self.filter: dict[str, Any] = {}
        self.sort_spec: list[tuple[str, int]] = []
        self.limit_value: int | None = None
        self.skip_value: int | None = None
        self.projection: dict[str, int] = {}
        self._last_key: str | None = None
        self._collection: Any = None

    @classmethod
    def replay(cls, calls: list | tuple) -> QueryBuilder:
        builder = cls()
        for method, args in calls:
            if method not in CHAIN_METHODS:
                raise UsageError(f"unknown query method: {method!r}")
            getattr(builder, method)(*args)
        return builder

    # -- predicates --

    def where(self, key: str | Mapping[str, Any], value: Any = _NOTHING) -> QueryBuilder:
        if isinstance(key, Mapping):
            for k, v in key.items():
                self._condition(k, v)
            return self
        # the key stays current for following operators until the next where()
        self._last_key = key
        if value is not _NOTHING:
            self._condition(key, value)
        return self

    def equals(self, value: Any) -> QueryBuilder:
        self._condition(self._current_key("equals"), value)
        return self

    def lt(self, *args: Any) -> QueryBuilder:
        return self._operator("lt", args)

    def lte(self, *args: Any) -> QueryBuilder:
        return self._operator("lte", args)

    def gt(self, *args: Any) -> QueryBuilder:
        return self._operator("gt", args)

    def gte(self, *args: Any) -> QueryBuilder:
        return self._operator("gte", args)

    def ne(self, *args: Any) -> QueryBuilder:
        return self._operator("ne", args)

    def in_(self, *args: Any) -> QueryBuilder:
        return self._operator("in_", args)

    def nin(self, *args: Any) -> QueryBuilder:
        return self._operator("nin", args)

    def regex(self, *args: Any) -> QueryBuilder:
        return self._operator("regex", args)

    def exists(self, *args: Any) -> QueryBuilder:
        if args and isinstance(args[0], str):
            key = args[0]
            flag = args[1] if len(args) > 1 else True
        else:
            key = self._current_key("exists")
            flag = args[0] if args else True
        self._merge_operator(key, "$exists", bool(flag))
        return self

    def or_(self, *conditions: Any) -> QueryBuilder:
        return self._logical("$or", conditions)

    def and_(self, *conditions: Any) -> QueryBuilder:
        return self._logical("$and", conditions)

    def nor(self, *conditions: Any) -> QueryBuilder:
        return self._logical("$nor", conditions)

    def search(self, text: str) -> QueryBuilder:
        self.filter["$text"] = {"$search": text}
        return self

    # -- options --

    def limit(self, value: int) -> QueryBuilder:
        self.limit_value = value
        return self

    def skip(self, value: int) -> QueryBuilder:
        self.skip_value = value
        return self

    def sort(self, field: str | Mapping[str, Any] | list, direction: Any = "desc") -> QueryBuilder:
        if isinstance(field, Mapping):
            for k, v in field.items():
                self.sort(k, v)
            return self
        if isinstance(field, list | tuple):
            for f in field:
                self.sort(f, direction)
            return self
        self.sort_spec.append((field, _direction(direction)))
        return self

    def include(self, fields: str | list[str], value: int = 1) -> QueryBuilder:
        for f in [fields] if isinstance(fields, str) else fields:
            self.projection[f] = value
        return self

    def exclude(self, fields: str | list[str], value: int = 0) -> QueryBuilder:
        return self.include(fields, value)

    def options(self) -> dict[str, Any]:
        opts: dict[str, Any] = {}
        if self.sort_spec:
            opts["sort"] = list(self.sort_spec)
        if self.skip_value is not None:
            opts["skip"] = self.skip_value
        if self.limit_value is not None:
            opts["limit"] = self.limit_value
        if self.projection:
            opts["projection"] = dict(self.projection)
        return opts

    # -- terminals --

    def bind(self, collection: Any) -> QueryBuilder:
        self._collection = collection
        return self

    async def find(self) -> list[dict[str, Any]]:
        return await self._bound().find(self.filter, **self.options())

    async def find_one(self) -> dict[str, Any] | None:
        return await self._bound().find_one(self.filter, **self.options())

    async def count(self) -> int:
        return await self._bound().count(self.filter)

    async def remove(self) -> Any:
        return await self._bound().remove(self.filter)

    # --- internal helpers -------------------------------------------------

    def _bound(self) -> Any:
        if self._collection is None:
            raise UsageError("query is not bound to a collection")
        return self._collection

    def _current_key(self, method: str) -> str:
        if self._last_key is None:
            raise UsageError(f"{method}() needs a key or a preceding where(key)")
        return self._last_key

    def _condition(self, key: str, value: Any) -> None:
        current = self.filter.get(key)
        if _is_operator_doc(value) and _is_operator_doc(current):
            current.update(value)
            return
        self.filter[key] = dict(value) if isinstance(value, Mapping) else value

    def _operator(self, name: str, args: tuple) -> QueryBuilder:
        op = _OPERATORS[name]
        if len(args) == 2:
            self._merge_operator(args[0], op, args[1])
        elif len(args) == 1:
            self._merge_operator(self._current_key(name), op, args[0])
        else:
            raise UsageError(f"{name}() takes (key, value) or a value after where(key)")
        return self

    def _merge_operator(self, key: str, op: str, value: Any) -> None:
        if key not in self.filter:
            self.filter[key] = {op: value}
            return
        current = self.filter[key]
        if not _is_operator_doc(current):
            raise UsageError(f"{op} on {key!r} conflicts with the equality condition {current!r}")
        current[op] = value

    def _logical(self, op: str, conditions: tuple) -> QueryBuilder:
        if len(conditions) == 1 and isinstance(conditions[0], list | tuple):
            conditions = tuple(conditions[0])
        self.filter.setdefault(op, []).extend(dict(c) for c in conditions)
        return self


def _direction(direction: Any) -> int:
    if direction in (1, "asc", "ascending"):
        return 1
    if direction in (-1, "desc", "descending"):
        return -1
    raise UsageError(f"invalid sort direction: {direction!r}")


def _is_operator_doc(value: Any) -> bool:
    return isinstance(value, dict) and all(str(k).startswith("$") for k in value)
