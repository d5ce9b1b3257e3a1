"""
Model — the record facade.

Every Model subclass gets its own RecordType: the shared, per-class
registry of hooks, middleware plugins, reducer transforms, embedded
models and the database the class is registered with. Every instance
owns one Store; class-level queries and index operations use a fresh
Store with no record.

Usage:
    class Post(Model):
        collection = "posts"

    db.register(Post)
    post = await Post({"title": "Hello"}).save()
    posts = await Post.where("views").gt(10).sort("views").find()
"""

from __future__ import annotations

import asyncio
import copy
from collections.abc import Awaitable, Callable, Mapping
from types import MethodType
from typing import Any, ClassVar

from docmodel.errors import UnregisteredTypeError, UsageError
from docmodel.kernel import actions as A
from docmodel.kernel.hooks import Hooks
from docmodel.kernel.paths import MISSING, deep_merge, expand, flatten, get_path, has_path, same_value, set_path
from docmodel.kernel.serialize import serialize
from docmodel.kernel.types import DEFAULT_HOOK_PRIORITY, Embedded, Middleware, ReducerTransform
from docmodel.storage.base import Collection, DocumentStorage
from docmodel.store import Store

_NOTHING: Any = object()


def _to_records(model: type[Model], docs: list[dict[str, Any]]) -> list[Model]:
    """Type-level after:find hook: raw documents -> model instances."""
    return [model.hydrate(doc) for doc in docs]


# ---------------------------------------------------------------------------
# Record type descriptor
# ---------------------------------------------------------------------------


class RecordType:
    """
    Class-level registry shared by every instance of one Model subclass.
    A subclass starts from a copy of its parent's registry.
    """

    def __init__(self, model: type[Model], parent: RecordType | None = None) -> None:
        self.model = model
        self.parent = parent
        self._database: Any = None

        if parent is None:
            self.hooks = Hooks()
            self.hooks.after("find", _to_records, priority=0)
            self.middleware: list[Middleware] = []
            self.reducers: list[ReducerTransform] = []
            self.embedded: list[Embedded] = []
        else:
            self.hooks = parent.hooks.copy()
            self.middleware = list(parent.middleware)
            self.reducers = list(parent.reducers)
            self.embedded = list(parent.embedded)

    @property
    def database(self) -> Any:
        if self._database is not None:
            return self._database
        return self.parent.database if self.parent is not None else None

    @database.setter
    def database(self, value: Any) -> None:
        self._database = value

    @property
    def collection_name(self) -> str:
        return self.model.collection

    def connection(self) -> Awaitable[DocumentStorage]:
        database = self.database
        if database is None:
            raise UnregisteredTypeError(f"{self.model.__name__} is not registered with a database")
        return database.connection()

    async def get_collection(self) -> Collection:
        storage = await self.connection()
        return storage.collection(self.collection_name)


class hybridmethod:
    """Bind to the instance when accessed on one, to the class otherwise."""

    def __init__(self, func: Callable[..., Any]) -> None:
        self.func = func
        self.__doc__ = func.__doc__

    def __get__(self, obj: Any, objtype: type | None = None) -> Any:
        return MethodType(self.func, objtype if obj is None else obj)


def _hooks_for(target: Any) -> Hooks:
    return target.record_type.hooks if isinstance(target, type) else target.hooks


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------


class Model:
    collection: ClassVar[str] = "models"
    default_fields: ClassVar[dict[str, Any]] = {}
    record_type: ClassVar[RecordType]

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if "collection" not in cls.__dict__:
            cls.collection = f"{cls.__name__.lower()}s"
        cls.record_type = RecordType(cls, parent=getattr(cls, "record_type", None))

    def __init__(self, fields: Mapping[str, Any] | None = None) -> None:
        if fields is not None and not isinstance(fields, Mapping):
            raise UsageError(f"fields must be a mapping, got {type(fields).__name__}")
        self.hooks = Hooks()
        self.previous: dict[str, Any] = {}
        self.store = Store(self, type(self).record_type)

        initial = deep_merge(copy.deepcopy(self.default_fields), fields or {})
        if initial:
            self.store.dispatch(A.set_fields(initial))
        self.configure()

    def configure(self) -> None:
        """Per-instance setup. Override to register instance hooks."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.get()!r}>"

    # -- registration --

    @hybridmethod
    def before(target: Any, event: str, handler: Callable[..., Any] | str, priority: int = DEFAULT_HOOK_PRIORITY) -> None:
        """Register a before hook on the class (all records) or on one record."""
        _hooks_for(target).before(event, handler, priority)

    @hybridmethod
    def after(target: Any, event: str, handler: Callable[..., Any] | str, priority: int = DEFAULT_HOOK_PRIORITY) -> None:
        """Register an after hook on the class (all records) or on one record."""
        _hooks_for(target).after(event, handler, priority)

    @classmethod
    def use(cls, *middleware: Middleware) -> None:
        for plugin in middleware:
            if not callable(plugin):
                raise UsageError(f"middleware must be callable, got {type(plugin).__name__}")
            cls.record_type.middleware.append(plugin)

    @classmethod
    def add_reducer(cls, transform: ReducerTransform) -> None:
        if not callable(transform):
            raise UsageError(f"reducer transform must be callable, got {type(transform).__name__}")
        cls.record_type.reducers.append(transform)

    @classmethod
    def embeds(cls, key: str, model: type[Model]) -> None:
        if not callable(getattr(model, "hydrate", None)):
            raise UsageError(f"{model!r} cannot be embedded: it has no hydrate()")
        cls.record_type.embedded.append(Embedded(key=key, model=model))

    @classmethod
    def hydrate(cls, value: Any) -> Any:
        """A record of this type for `value`; records and None pass through."""
        if value is None or isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            return cls(value)
        raise UsageError(f"cannot build {cls.__name__} from {type(value).__name__}")

    # -- fields --

    def get(self, key: str | None = None) -> Any:
        if key is not None and not isinstance(key, str):
            raise UsageError(f"key must be a string, got {type(key).__name__}")
        return self.store.dispatch(A.get(key))

    def set(self, key: str | Mapping[str, Any], value: Any = _NOTHING) -> None:
        if isinstance(key, Mapping):
            if value is not _NOTHING:
                raise UsageError("set(mapping) takes no value")
            incoming = flatten(key)
        elif isinstance(key, str):
            if value is _NOTHING:
                raise UsageError("set(key, value) needs a value")
            incoming = flatten({key: value})
        else:
            raise UsageError(f"key must be a string or mapping, got {type(key).__name__}")

        fields = self.get()
        changes: dict[str, Any] = {}
        for path, new in incoming.items():
            old = get_path(fields, path, MISSING)
            if old is not MISSING and same_value(old, new):
                continue
            set_path(self.previous, path, None if old is MISSING else old)
            changes[path] = new
        if changes:
            self.store.dispatch(A.set_fields(expand(changes)))

    def unset(self, keys: str | list[str] | tuple[str, ...]) -> None:
        if isinstance(keys, str):
            keys = [keys]
        if not isinstance(keys, list | tuple) or not all(isinstance(k, str) for k in keys):
            raise UsageError("unset() takes a key or a list of keys")
        self.store.dispatch(A.unset(keys))

    def changed(self, key: str) -> bool:
        """Whether `key` was changed by set() since the record was built."""
        return has_path(self.previous, key) and not same_value(self.get(key), get_path(self.previous, key))

    def to_document(self) -> dict[str, Any]:
        return serialize(self.get())

    # -- persistence --

    async def save(self) -> Model:
        await self._persist(lambda: A.save(self.get()))
        return self

    async def create(self) -> Model:
        await self._persist(lambda: A.create(self.get()))
        return self

    async def update(self) -> Model:
        await self._persist(lambda: A.update(self.get()))
        return self

    def remove(self) -> Awaitable[Any]:
        self._require_id("remove")
        return self._persist(A.remove)

    def refresh(self) -> Awaitable[dict[str, Any]]:
        self._require_id("refresh")
        return self._persist(A.refresh)

    def increment(self, key: str | Mapping[str, Any], value: int | float = 1) -> Awaitable[dict[str, Any]]:
        self._require_id("increment")
        if isinstance(key, Mapping):
            deltas = dict(key)
        elif isinstance(key, str):
            deltas = {key: value}
        else:
            raise UsageError(f"key must be a string or mapping, got {type(key).__name__}")
        for path, delta in deltas.items():
            if not isinstance(delta, int | float) or isinstance(delta, bool):
                raise UsageError(f"cannot increment {path!r} by non-numeric {delta!r}")
        return self._persist(lambda: A.increment(deltas))

    async def _persist(self, make_action: Callable[[], Any]) -> Any:
        # one persisting operation per record at a time
        task = asyncio.current_task()
        if task is not None and self.store.lock_owner is task:
            raise UsageError(f"{type(self).__name__} is already being persisted by this task (called from a hook?)")
        async with self.store.lock:
            self.store.lock_owner = task
            try:
                return await self.store.dispatch(make_action())
            finally:
                self.store.lock_owner = None

    def _require_id(self, operation: str) -> None:
        if self.get("_id") is None:
            raise UsageError(f"cannot {operation} a record that has not been created")

    # -- class-level operations --

    @classmethod
    def connection(cls) -> Awaitable[DocumentStorage]:
        return cls.record_type.connection()

    @classmethod
    async def get_collection(cls) -> Collection:
        return await cls.record_type.get_collection()

    @classmethod
    def query(cls) -> Query:
        return Query(cls)

    @classmethod
    def where(cls, key: str | Mapping[str, Any], value: Any = _NOTHING) -> Query:
        return cls.query().where(key, value)

    @classmethod
    def exists(cls, *args: Any) -> Query:
        return cls.query().exists(*args)

    @classmethod
    def or_(cls, *conditions: Any) -> Query:
        return cls.query().or_(*conditions)

    @classmethod
    def and_(cls, *conditions: Any) -> Query:
        return cls.query().and_(*conditions)

    @classmethod
    def nor(cls, *conditions: Any) -> Query:
        return cls.query().nor(*conditions)

    @classmethod
    def limit(cls, value: int) -> Query:
        return cls.query().limit(value)

    @classmethod
    def skip(cls, value: int) -> Query:
        return cls.query().skip(value)

    @classmethod
    def sort(cls, field: Any, direction: Any = "desc") -> Query:
        return cls.query().sort(field, direction)

    @classmethod
    def include(cls, fields: str | list[str]) -> Query:
        return cls.query().include(fields)

    @classmethod
    def exclude(cls, fields: str | list[str]) -> Query:
        return cls.query().exclude(fields)

    @classmethod
    def search(cls, text: str) -> Query:
        return cls.query().search(text)

    @classmethod
    async def find(cls, conditions: Mapping[str, Any] | None = None) -> list[Model]:
        return await cls.query().find(conditions)

    @classmethod
    async def find_one(cls, conditions: Mapping[str, Any] | None = None) -> Model | None:
        return await cls.query().find_one(conditions)

    @classmethod
    async def find_by_id(cls, doc_id: Any) -> Model | None:
        return await cls.query().find_by_id(doc_id)

    @classmethod
    async def count(cls, conditions: Mapping[str, Any] | None = None) -> int:
        return await cls.query().count(conditions)

    @classmethod
    async def create_index(cls, *args: Any, **options: Any) -> str:
        return await Store(None, cls.record_type).dispatch(A.create_index(*args, **options))

    @classmethod
    async def drop_index(cls, *args: Any) -> None:
        return await Store(None, cls.record_type).dispatch(A.drop_index(*args))

    @classmethod
    async def list_indexes(cls, *args: Any) -> list[Any]:
        return await Store(None, cls.record_type).dispatch(A.list_indexes(*args))

    @classmethod
    async def drop(cls) -> None:
        """Drop the whole collection, documents and indexes."""
        return await Store(None, cls.record_type).dispatch(A.call("drop"))


Model.record_type = RecordType(Model)


# ---------------------------------------------------------------------------
# Query
# ---------------------------------------------------------------------------


class Query:
    """
    Chainable query over one model's collection.

    Chained calls are only recorded; a terminal (find, find_one, count,
    remove) dispatches them as one QUERY action. before:find hooks receive
    the Query and may add conditions; after:find hooks receive the results.
    """

    def __init__(self, model: type[Model]) -> None:
        self.model = model
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    def __repr__(self) -> str:
        return f"<Query {self.model.__name__} {self.calls!r}>"

    def _chain(self, method: str, *args: Any) -> Query:
        self.calls.append((method, args))
        return self

    def where(self, key: str | Mapping[str, Any], value: Any = _NOTHING) -> Query:
        if value is _NOTHING:
            return self._chain("where", key)
        return self._chain("where", key, value)

    def equals(self, value: Any) -> Query:
        return self._chain("equals", value)

    def lt(self, *args: Any) -> Query:
        return self._chain("lt", *args)

    def lte(self, *args: Any) -> Query:
        return self._chain("lte", *args)

    def gt(self, *args: Any) -> Query:
        return self._chain("gt", *args)

    def gte(self, *args: Any) -> Query:
        return self._chain("gte", *args)

    def ne(self, *args: Any) -> Query:
        return self._chain("ne", *args)

    def in_(self, *args: Any) -> Query:
        return self._chain("in_", *args)

    def nin(self, *args: Any) -> Query:
        return self._chain("nin", *args)

    def exists(self, *args: Any) -> Query:
        return self._chain("exists", *args)

    def regex(self, *args: Any) -> Query:
        return self._chain("regex", *args)

    def or_(self, *conditions: Any) -> Query:
        return self._chain("or_", *conditions)

    def and_(self, *conditions: Any) -> Query:
        return self._chain("and_", *conditions)

    def nor(self, *conditions: Any) -> Query:
        return self._chain("nor", *conditions)

    def limit(self, value: int) -> Query:
        return self._chain("limit", value)

    def skip(self, value: int) -> Query:
        return self._chain("skip", value)

    def sort(self, field: Any, direction: Any = "desc") -> Query:
        return self._chain("sort", field, direction)

    def include(self, fields: str | list[str]) -> Query:
        return self._chain("include", fields)

    def exclude(self, fields: str | list[str]) -> Query:
        return self._chain("exclude", fields)

    def search(self, text: str) -> Query:
        return self._chain("search", text)

    # -- terminals --
    # Each terminal works on a copy, so a Query can be run again unchanged.

    def _extended(self, conditions: Mapping[str, Any] | None) -> Query:
        query = Query(self.model)
        query.calls = list(self.calls)
        if conditions:
            query.where(dict(conditions))
        return query

    async def find(self, conditions: Mapping[str, Any] | None = None) -> list[Model]:
        query = self._extended(conditions)
        store = Store(None, self.model.record_type)
        await store.run_hooks("before", "find", (query,))
        docs = await store.dispatch(A.query("find", query.calls))
        records = await store.run_hooks("after", "find", (docs,))
        return docs if records is None else records

    async def find_one(self, conditions: Mapping[str, Any] | None = None) -> Model | None:
        query = self._extended(conditions)
        store = Store(None, self.model.record_type)
        await store.run_hooks("before", "find", (query,))
        doc = await store.dispatch(A.query("find_one", query.calls))
        docs = [] if doc is None else [doc]
        records = await store.run_hooks("after", "find", (docs,))
        records = docs if records is None else records
        return records[0] if records else None

    async def find_by_id(self, doc_id: Any) -> Model | None:
        return await self.find_one({"_id": doc_id})

    async def count(self, conditions: Mapping[str, Any] | None = None) -> int:
        query = self._extended(conditions)
        return await Store(None, self.model.record_type).dispatch(A.query("count", query.calls))

    async def remove(self, conditions: Mapping[str, Any] | None = None) -> Any:
        query = self._extended(conditions)
        return await Store(None, self.model.record_type).dispatch(A.query("remove", query.calls))
