"""
Dotted-path helpers for nested field mappings.

"author.name" addresses fields["author"]["name"]. Only mappings are
descended; lists and record objects are leaves.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

MISSING: Any = object()


def split(path: str) -> list[str]:
    return path.split(".")


def flatten(obj: Mapping[str, Any] | None, prefix: str = "") -> dict[str, Any]:
    """
    {"a": {"b": 1}, "c": [1]} -> {"a.b": 1, "c": [1]}

    Empty nested mappings are kept as leaves so they are not silently dropped.
    """
    flat: dict[str, Any] = {}
    for key, value in (obj or {}).items():
        full = f"{prefix}{key}"
        if isinstance(value, Mapping) and value:
            flat.update(flatten(value, f"{full}."))
        else:
            flat[full] = value
    return flat


def expand(flat: Mapping[str, Any]) -> dict[str, Any]:
    """Inverse of flatten: {"a.b": 1} -> {"a": {"b": 1}}."""
    nested: dict[str, Any] = {}
    for key, value in flat.items():
        set_path(nested, key, value)
    return nested


def get_path(obj: Any, path: str, default: Any = None) -> Any:
    current = obj
    for part in split(path):
        if not isinstance(current, Mapping) or part not in current:
            return default
        current = current[part]
    return current


def has_path(obj: Any, path: str) -> bool:
    return get_path(obj, path, MISSING) is not MISSING


def set_path(obj: dict[str, Any], path: str, value: Any) -> None:
    """Set in place, creating (or replacing non-mapping) intermediates."""
    parts = split(path)
    current = obj
    for part in parts[:-1]:
        child = current.get(part)
        if not isinstance(child, dict):
            child = {}
            current[part] = child
        current = child
    current[parts[-1]] = value


def without_path(obj: Mapping[str, Any], path: str) -> dict[str, Any]:
    """
    Copy of obj with the dotted path deleted. Mappings along the path are
    copied, everything else is shared. Emptied parents stay in place.
    """
    result = dict(obj)
    parts = split(path)
    current = result
    for part in parts[:-1]:
        child = current.get(part)
        if not isinstance(child, Mapping):
            return result
        child = dict(child)
        current[part] = child
        current = child
    current.pop(parts[-1], None)
    return result


def deep_merge(base: Mapping[str, Any], incoming: Mapping[str, Any]) -> dict[str, Any]:
    """
    Merge incoming into a copy of base. Recurses only where both sides are
    mappings; scalars, lists and objects from incoming overwrite.
    """
    merged = dict(base)
    for key, value in incoming.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = deep_merge(current, value)
        elif isinstance(value, Mapping):
            merged[key] = deep_merge({}, value)
        else:
            merged[key] = value
    return merged


def same_value(a: Any, b: Any) -> bool:
    """Equal and of the same type, all the way down (1, 1.0 and True differ)."""
    if a is b:
        return True
    if type(a) is not type(b):
        return False
    if isinstance(a, Mapping):
        return a.keys() == b.keys() and all(same_value(a[k], b[k]) for k in a)
    if isinstance(a, list | tuple):
        return len(a) == len(b) and all(same_value(x, y) for x, y in zip(a, b))
    return a == b
