"""
docmodel Kernel — Shared Types

Small data classes that bind the store, middleware and hooks together.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

# ---------------------------------------------------------------------------
# Hook events
# ---------------------------------------------------------------------------

HOOK_EVENTS: tuple[str, ...] = ("create", "update", "save", "remove", "find")
HOOK_PLACES: tuple[str, ...] = ("before", "after")
DEFAULT_HOOK_PRIORITY = 5


# ---------------------------------------------------------------------------
# Middleware outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Handled:
    """
    Middleware fully owns the action. `result` is returned from dispatch as-is:
    a plain value for synchronous actions, an awaitable for storage-bound ones.
    """

    result: Any = None


@dataclass(frozen=True)
class PassThrough:
    """Middleware declined (or rewrote) the action; the chain continues with `action`."""

    action: Any


Outcome = Handled | PassThrough

# (store, action) -> Handled | PassThrough
Middleware = Callable[[Any, Any], Outcome]

# reducer(state | None, action) -> state
Reducer = Callable[[Any, Any], Any]

# transform(reducer_map) -> reducer_map
ReducerTransform = Callable[[dict[str, Reducer]], dict[str, Reducer]]


# ---------------------------------------------------------------------------
# Hooks and embeds
# ---------------------------------------------------------------------------


@dataclass
class HookEntry:
    """A registered hook. `handler` is a callable or a method name on the context."""

    handler: Callable[..., Any] | str
    priority: int = DEFAULT_HOOK_PRIORITY


@dataclass(frozen=True)
class Embedded:
    """Values at dotted `key` are hydrated into instances of `model`."""

    key: str
    model: type
