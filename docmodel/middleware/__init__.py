"""
Built-in middleware.

A middleware is a plain function (store, action) -> Handled | PassThrough.
DEFAULT_MIDDLEWARE is the fixed order every Store runs after the record
type's own plugins.
"""

from docmodel.middleware.driver import (
    call_middleware,
    create_index_middleware,
    drop_index_middleware,
    list_indexes_middleware,
    query_middleware,
)
from docmodel.middleware.fields import get_middleware, set_middleware
from docmodel.middleware.persistence import (
    create_middleware,
    increment_middleware,
    refresh_middleware,
    remove_middleware,
    save_middleware,
    update_middleware,
)

DEFAULT_MIDDLEWARE = [
    increment_middleware,
    refresh_middleware,
    get_middleware,
    set_middleware,
    update_middleware,
    create_middleware,
    save_middleware,
    remove_middleware,
    call_middleware,
    query_middleware,
    create_index_middleware,
    drop_index_middleware,
    list_indexes_middleware,
]

__all__ = [
    "DEFAULT_MIDDLEWARE",
    "call_middleware",
    "create_index_middleware",
    "create_middleware",
    "drop_index_middleware",
    "get_middleware",
    "increment_middleware",
    "list_indexes_middleware",
    "query_middleware",
    "refresh_middleware",
    "remove_middleware",
    "save_middleware",
    "set_middleware",
    "update_middleware",
]
