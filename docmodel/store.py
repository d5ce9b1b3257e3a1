"""
Store — one record's state plus the middleware chain that acts on it.

dispatch(action) walks the chain in order. The first middleware that
returns Handled owns the action and its result is returned as-is (a value,
or an awaitable for storage-bound actions). If every middleware passes,
the (possibly rewritten) action reaches the reducers and is returned.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from docmodel.kernel.reducer import apply_transforms, combine_reducers, default_reducers, initial_state
from docmodel.kernel.types import Handled, PassThrough
from docmodel.middleware import DEFAULT_MIDDLEWARE

if TYPE_CHECKING:
    from docmodel.model import Model, RecordType

logger = logging.getLogger(__name__)


class Store:
    def __init__(self, record: Model | None, record_type: RecordType) -> None:
        self.record = record
        self.record_type = record_type
        self._reducer = combine_reducers(apply_transforms(default_reducers(), record_type.reducers))
        self._state = initial_state(self._reducer)
        # plugins first so they can intercept before the built-ins
        self._middleware = [*record_type.middleware, *DEFAULT_MIDDLEWARE]
        # Held by the record facade around each persisting operation.
        self.lock = asyncio.Lock()
        self.lock_owner: asyncio.Task | None = None

    def get_state(self) -> dict[str, Any]:
        return self._state

    def dispatch(self, action: Any) -> Any:
        logger.debug("store: dispatch %s", getattr(action, "type", type(action).__name__))
        for middleware in self._middleware:
            outcome = middleware(self, action)
            if isinstance(outcome, Handled):
                return outcome.result
            if not isinstance(outcome, PassThrough):
                raise TypeError(f"middleware {middleware!r} returned {outcome!r}, expected Handled or PassThrough")
            action = outcome.action
        self._state = self._reducer(self._state, action)
        return action

    async def run_hooks(self, place: str, event: str, args: tuple | list = ()) -> Any:
        """
        Run the type-level and instance-level hooks for one phase.
        before: type then instance. after: instance then type.

        Return values are threaded within one layer only; every layer
        starts from `args`. The last layer's non-None result is returned.
        """
        layers = [(self.record_type.hooks, self.record_type.model if self.record is None else self.record)]
        if self.record is not None:
            layers.append((self.record.hooks, self.record))
        if place == "after":
            layers.reverse()

        result: Any = None
        for hooks, context in layers:
            ret = await hooks.run(place, event, args, context)
            if ret is not None:
                result = ret
        return result
