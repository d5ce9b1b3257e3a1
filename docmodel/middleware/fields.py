"""
Field middleware: reading fields and hydrating embedded records on write.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from docmodel.kernel import actions as A
from docmodel.kernel.paths import MISSING, deep_merge, get_path, set_path
from docmodel.kernel.types import Handled, Outcome, PassThrough


def get_middleware(store: Any, action: Any) -> Outcome:
    """GET: the whole fields mapping (shallow copy) or one dotted value."""
    if A.type_of(action) != A.GET:
        return PassThrough(action)

    fields = store.get_state()["fields"]
    if action.key is None:
        return Handled(dict(fields))
    return Handled(get_path(fields, action.key))


def set_middleware(store: Any, action: Any) -> Outcome:
    """
    SET / REFRESHED: replace plain values at embedded keys with records of
    the declared nested type, then let the reducers apply the action.
    """
    action_type = A.type_of(action)
    if action_type not in (A.SET, A.REFRESHED):
        return PassThrough(action)

    embedded = store.record_type.embedded
    if not embedded or not action.fields:
        return PassThrough(action)

    fields = deep_merge({}, action.fields)
    for embed in embedded:
        value = get_path(fields, embed.key, MISSING)
        if value is MISSING:
            continue
        set_path(fields, embed.key, _hydrate(embed.model, value))
    return PassThrough(replace(action, fields=fields))


def _hydrate(model: Any, value: Any) -> Any:
    if isinstance(value, list):
        return [model.hydrate(item) for item in value]
    return model.hydrate(value)
