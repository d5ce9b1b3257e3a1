"""
docmodel Kernel — Hooks

Priority-ordered before/after handlers per lifecycle event
(create, update, save, remove, find).

Lower priority runs first; equal priorities keep registration order.
A handler is either a callable, invoked as handler(context, *args), or a
method name resolved on the context at run time and invoked as
getattr(context, name)(*args). Either may be a coroutine function.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from typing import Any

from docmodel.errors import HookError, UsageError
from docmodel.kernel.types import DEFAULT_HOOK_PRIORITY, HOOK_EVENTS, HOOK_PLACES, HookEntry


class Hooks:
    """One before/after registry. Records and record types each own one."""

    def __init__(self) -> None:
        self.hooks: dict[str, dict[str, list[HookEntry]]] = {
            place: {event: [] for event in HOOK_EVENTS} for place in HOOK_PLACES
        }

    def before(
        self,
        event: str,
        handler: Callable[..., Any] | str,
        priority: int = DEFAULT_HOOK_PRIORITY,
    ) -> None:
        self._register("before", event, handler, priority)

    def after(
        self,
        event: str,
        handler: Callable[..., Any] | str,
        priority: int = DEFAULT_HOOK_PRIORITY,
    ) -> None:
        self._register("after", event, handler, priority)

    def entries(self, place: str, event: str) -> list[HookEntry]:
        """Registered entries in run order."""
        return sorted(self._bucket(place, event), key=lambda entry: entry.priority)

    def copy(self) -> Hooks:
        clone = Hooks()
        for place, events in self.hooks.items():
            for event, entries in events.items():
                clone.hooks[place][event] = list(entries)
        return clone

    async def run(self, place: str, event: str, args: tuple | list = (), context: Any = None) -> Any:
        """
        Run handlers sequentially. A handler's non-None return value replaces
        the arguments of the next handler; the last such value is returned.

        The first failing handler stops the phase: HookError is raised with
        the handler's exception chained.
        """
        args = tuple(args)
        result: Any = None
        for entry in self.entries(place, event):
            call_args = args if result is None else (result,)
            try:
                ret = _invoke(entry.handler, context, call_args)
                if inspect.isawaitable(ret):
                    ret = await ret
            except Exception as e:
                raise HookError(place, event, str(e) or type(e).__name__) from e
            if ret is not None:
                result = ret
        return result

    # --- internal helpers -------------------------------------------------

    def _register(self, place: str, event: str, handler: Callable[..., Any] | str, priority: int) -> None:
        if not (callable(handler) or isinstance(handler, str)):
            raise UsageError(f"hook handler must be callable or a method name, got {type(handler).__name__}")
        self._bucket(place, event).append(HookEntry(handler=handler, priority=priority))

    def _bucket(self, place: str, event: str) -> list[HookEntry]:
        if place not in self.hooks:
            raise UsageError(f"unknown hook place: {place!r}")
        if event not in self.hooks[place]:
            raise UsageError(f"unknown hook event: {event!r}. Valid events: {list(HOOK_EVENTS)}")
        return self.hooks[place][event]


def _invoke(handler: Callable[..., Any] | str, context: Any, args: tuple) -> Any:
    if isinstance(handler, str):
        return getattr(context, handler)(*args)
    return handler(context, *args)
