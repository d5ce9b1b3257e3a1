"""
Convert live field values into storage-ready documents.

Anything exposing a callable `to_document()` (records, embedded or not) is
replaced by its document. Lists and nested mappings are walked.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


def serialize(fields: Mapping[str, Any]) -> dict[str, Any]:
    return {key: serialize_value(value) for key, value in fields.items()}


def serialize_value(value: Any) -> Any:
    to_document = getattr(value, "to_document", None)
    if callable(to_document) and not isinstance(value, type):
        return to_document()
    if isinstance(value, Mapping):
        return serialize(value)
    if isinstance(value, list):
        return [serialize_value(item) for item in value]
    return value
