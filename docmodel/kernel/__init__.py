"""
docmodel Kernel — the pure engine.

  actions    — the closed vocabulary of tagged actions
  reducer    — (state, action) → state  (pure, deterministic)
  hooks      — priority-ordered before/after handlers
  query      — replayable query builder
  serialize  — live values → storage-ready documents
"""

from docmodel.kernel.hooks import Hooks
from docmodel.kernel.query import QueryBuilder
from docmodel.kernel.reducer import combine_reducers, default_reducers, fields_reducer, unset_reducer
from docmodel.kernel.serialize import serialize
from docmodel.kernel.types import Embedded, Handled, HookEntry, PassThrough

__all__ = [
    "Hooks",
    "QueryBuilder",
    "combine_reducers",
    "default_reducers",
    "fields_reducer",
    "unset_reducer",
    "serialize",
    "Embedded",
    "Handled",
    "HookEntry",
    "PassThrough",
]
