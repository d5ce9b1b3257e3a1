"""
Persistence middleware.

Each handler owns one high-level action and turns it into CALL / QUERY
dispatches followed by a completion event for the reducers:

  increment  CALL update {$inc}        -> REFRESH
  refresh    QUERY find_one by _id     -> REFRESHED
  update     CALL update {$unset}?     -> CALL update {$set} -> UPDATED
  create     CALL insert               -> CREATED
  save       CREATE or UPDATE, depending on _id
  remove     CALL remove by _id        -> REMOVED

The lifecycle hooks for the operation run around the core effect. The
returned coroutine settles only after every nested dispatch has settled.
"""

from __future__ import annotations

from typing import Any

from docmodel.errors import UsageError
from docmodel.kernel import actions as A
from docmodel.kernel.paths import deep_merge
from docmodel.kernel.serialize import serialize
from docmodel.kernel.types import Handled, Outcome, PassThrough


def increment_middleware(store: Any, action: Any) -> Outcome:
    if A.type_of(action) != A.INCREMENT:
        return PassThrough(action)
    return Handled(_increment(store, action))


def refresh_middleware(store: Any, action: Any) -> Outcome:
    if A.type_of(action) != A.REFRESH:
        return PassThrough(action)
    return Handled(_refresh(store))


def update_middleware(store: Any, action: Any) -> Outcome:
    if A.type_of(action) != A.UPDATE:
        return PassThrough(action)
    return Handled(_update(store, action))


def create_middleware(store: Any, action: Any) -> Outcome:
    if A.type_of(action) != A.CREATE:
        return PassThrough(action)
    return Handled(_create(store, action))


def save_middleware(store: Any, action: Any) -> Outcome:
    if A.type_of(action) != A.SAVE:
        return PassThrough(action)
    return Handled(_save(store, action))


def remove_middleware(store: Any, action: Any) -> Outcome:
    if A.type_of(action) != A.REMOVE:
        return PassThrough(action)
    return Handled(_remove(store))


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


async def _increment(store: Any, action: A.Increment) -> dict[str, Any]:
    doc_id = _require_id(store, "increment")
    await store.run_hooks("before", "update")
    await store.dispatch(A.call("update", [{"_id": doc_id}, {"$inc": dict(action.fields)}]))
    # the new values come from storage, never from local arithmetic
    fields = await store.dispatch(A.refresh())
    await store.run_hooks("after", "update")
    return fields


async def _refresh(store: Any) -> dict[str, Any]:
    doc_id = _require_id(store, "refresh")
    doc = await store.dispatch(A.query("find_one", [("where", ({"_id": doc_id},))]))
    store.dispatch(A.Refreshed(fields=doc))
    return store.get_state()["fields"]


async def _update(store: Any, action: A.Update) -> A.Updated:
    await store.run_hooks("before", "update")
    doc_id = _require_id(store, "update")
    fields = _snapshot(store, action.fields)
    query = {"_id": doc_id}

    pending = store.get_state()["unset"]
    if pending:
        # must commit before the $set below is issued
        await store.dispatch(A.call("update", [query, {"$unset": {key: "" for key in pending}}]))
    await store.dispatch(A.call("update", [query, {"$set": fields}]))

    updated = store.dispatch(A.Updated(fields=fields))
    await store.run_hooks("after", "update")
    return updated


async def _create(store: Any, action: A.Create) -> Any:
    await store.run_hooks("before", "create")
    fields = _snapshot(store, action.fields)
    result = await store.dispatch(A.call("insert", [fields]))
    store.dispatch(A.Created(id=result.inserted_id))
    await store.run_hooks("after", "create")
    return result.inserted_id


async def _save(store: Any, action: A.Save) -> Any:
    await store.run_hooks("before", "save")
    fields = deep_merge(action.fields, store.get_state()["fields"])
    is_created = "_id" in store.get_state()["fields"]
    result = await store.dispatch(A.update(fields) if is_created else A.create(fields))
    await store.run_hooks("after", "save")
    return result


async def _remove(store: Any) -> Any:
    await store.run_hooks("before", "remove")
    doc_id = _require_id(store, "remove")
    result = await store.dispatch(A.call("remove", [{"_id": doc_id}]))
    store.dispatch(A.Removed())
    await store.run_hooks("after", "remove")
    return result


# --- internal helpers -----------------------------------------------------


def _require_id(store: Any, operation: str) -> Any:
    fields = store.get_state()["fields"]
    if "_id" not in fields:
        raise UsageError(f"cannot {operation} a record that has not been created")
    return fields["_id"]


def _snapshot(store: Any, fields: dict[str, Any]) -> dict[str, Any]:
    """
    Storage-ready copy of the record. Current state wins over the action
    payload so edits made by before hooks are persisted.
    """
    return serialize(deep_merge(fields, store.get_state()["fields"]))
