"""
Driver middleware: the only handlers that touch a storage collection.

CALL invokes one collection primitive. QUERY replays recorded builder
calls and runs a terminal method. The index actions redispatch to CALL.
"""

from __future__ import annotations

import logging
from typing import Any

from docmodel.errors import UsageError
from docmodel.kernel import actions as A
from docmodel.kernel.query import TERMINAL_METHODS, QueryBuilder
from docmodel.kernel.types import Handled, Outcome, PassThrough

logger = logging.getLogger(__name__)


def call_middleware(store: Any, action: Any) -> Outcome:
    if A.type_of(action) != A.CALL:
        return PassThrough(action)
    return Handled(_call(store, action))


def query_middleware(store: Any, action: Any) -> Outcome:
    if A.type_of(action) != A.QUERY:
        return PassThrough(action)
    return Handled(_query(store, action))


def create_index_middleware(store: Any, action: Any) -> Outcome:
    if A.type_of(action) != A.CREATE_INDEX:
        return PassThrough(action)
    return Handled(store.dispatch(A.call("create_index", action.args, **action.options)))


def drop_index_middleware(store: Any, action: Any) -> Outcome:
    if A.type_of(action) != A.DROP_INDEX:
        return PassThrough(action)
    return Handled(store.dispatch(A.call("drop_index", action.args)))


def list_indexes_middleware(store: Any, action: Any) -> Outcome:
    if A.type_of(action) != A.LIST_INDEXES:
        return PassThrough(action)
    return Handled(store.dispatch(A.call("list_indexes", action.args)))


async def _call(store: Any, action: A.Call) -> Any:
    collection = await store.record_type.get_collection()
    method = getattr(collection, action.method, None)
    if method is None:
        raise UsageError(f"collection has no method {action.method!r}")
    logger.debug("call: %s.%s", collection.name, action.method)
    return await method(*action.args, **action.kwargs)


async def _query(store: Any, action: A.Query) -> Any:
    if action.method not in TERMINAL_METHODS:
        raise UsageError(f"unknown query terminal: {action.method!r}")
    builder = QueryBuilder.replay(action.calls)
    collection = await store.record_type.get_collection()
    logger.debug("query: %s.%s %s", collection.name, action.method, builder.filter)
    return await getattr(builder.bind(collection), action.method)()
