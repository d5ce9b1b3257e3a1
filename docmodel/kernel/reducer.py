"""
docmodel Kernel — Reducers

Pure functions: (state, action) → state
No side effects. No IO. The input state is never modified.

Two default reducers make up a record's state:
  fields  — the current (nested) field snapshot
  unset   — dotted keys waiting to be $unset on the next update

Unknown actions return the state unchanged.
"""

from __future__ import annotations

from typing import Any

from docmodel.kernel import actions as A
from docmodel.kernel.paths import deep_merge, without_path
from docmodel.kernel.types import Reducer, ReducerTransform

# ---------------------------------------------------------------------------
# Fields reducer
# ---------------------------------------------------------------------------


def _fields_set(state: dict, action: A.Set) -> dict:
    return deep_merge(state, action.fields)


def _fields_unset(state: dict, action: A.Unset) -> dict:
    new_state = dict(state)
    for key in action.keys:
        new_state = without_path(new_state, key)
    return new_state


def _fields_created(state: dict, action: A.Created) -> dict:
    return {**state, "_id": action.id}


def _fields_removed(state: dict, action: A.Removed) -> dict:
    return {k: v for k, v in state.items() if k != "_id"}


def _fields_refreshed(state: dict, action: A.Refreshed) -> dict:
    return dict(action.fields or {})


_FIELDS_HANDLERS = {
    A.SET: _fields_set,
    A.UNSET: _fields_unset,
    A.CREATED: _fields_created,
    A.REMOVED: _fields_removed,
    A.REFRESHED: _fields_refreshed,
}


def fields_reducer(state: dict[str, Any] | None, action: Any) -> dict[str, Any]:
    if state is None:
        state = {}
    handler = _FIELDS_HANDLERS.get(getattr(action, "type", None))
    if handler is None:
        return state
    return handler(state, action)


# ---------------------------------------------------------------------------
# Unset-tracker reducer
# ---------------------------------------------------------------------------


def unset_reducer(state: list[str] | None, action: Any) -> list[str]:
    if state is None:
        state = []
    action_type = getattr(action, "type", None)
    if action_type == A.UNSET:
        # list, not set: duplicates and call order are kept
        return [*state, *action.keys]
    if action_type == A.UPDATED:
        return []
    return state


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------


def default_reducers() -> dict[str, Reducer]:
    return {"unset": unset_reducer, "fields": fields_reducer}


def apply_transforms(reducers: dict[str, Reducer], transforms: list[ReducerTransform]) -> dict[str, Reducer]:
    """Wrap the reducer map with each transform, left to right."""
    for transform in transforms:
        reducers = transform(reducers)
    return reducers


def combine_reducers(reducers: dict[str, Reducer]) -> Reducer:
    """
    Combine a map of reducers into one reducer over a dict state.
    Each key's slice is reduced independently; the state dict is only
    rebuilt when some slice changed.
    """
    items = list(reducers.items())

    def combined(state: dict[str, Any] | None, action: Any) -> dict[str, Any]:
        state = state or {}
        next_state: dict[str, Any] = {}
        changed = False
        for key, reducer in items:
            previous = state.get(key)
            value = reducer(previous, action)
            next_state[key] = value
            changed = changed or value is not previous
        return next_state if changed or len(state) != len(next_state) else state

    return combined


def initial_state(reducer: Reducer) -> dict[str, Any]:
    return reducer(None, A.Init())
