"""
Document matching and mutation shared by the storage drivers.

Filters:  equality, $eq $ne $lt $lte $gt $gte $in $nin $exists $regex
          $elemMatch, $and $or $nor, $text
Updates:  $set $unset $inc, or a plain replacement document
Options:  sort, skip, limit, projection
"""

from __future__ import annotations

import copy
import re
from collections.abc import Mapping
from typing import Any

from docmodel.errors import ImmutableFieldError, StorageError
from docmodel.kernel.paths import get_path, set_path, split, without_path

_MISSING: Any = object()

# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


def matches(doc: Mapping[str, Any], filter: Mapping[str, Any] | None) -> bool:
    for key, cond in (filter or {}).items():
        if key == "$and":
            if not all(matches(doc, sub) for sub in cond):
                return False
        elif key == "$or":
            if not any(matches(doc, sub) for sub in cond):
                return False
        elif key == "$nor":
            if any(matches(doc, sub) for sub in cond):
                return False
        elif key == "$text":
            if not _text_matches(doc, cond.get("$search", "")):
                return False
        elif key.startswith("$"):
            raise StorageError(f"unsupported query operator: {key}")
        elif not _field_matches(_values(doc, split(key)), cond):
            return False
    return True


def _values(obj: Any, parts: list[str]) -> list[Any]:
    """All values reachable at the path, walking through arrays."""
    if not parts:
        return [obj]
    if isinstance(obj, Mapping):
        if parts[0] not in obj:
            return []
        return _values(obj[parts[0]], parts[1:])
    if isinstance(obj, list):
        if parts[0].isdigit():
            index = int(parts[0])
            return _values(obj[index], parts[1:]) if index < len(obj) else []
        found: list[Any] = []
        for item in obj:
            if isinstance(item, Mapping):
                found.extend(_values(item, parts))
        return found
    return []


def _is_operator_doc(cond: Any) -> bool:
    return isinstance(cond, Mapping) and bool(cond) and all(str(k).startswith("$") for k in cond)


def _field_matches(values: list[Any], cond: Any) -> bool:
    if not _is_operator_doc(cond):
        if isinstance(cond, re.Pattern):
            return _any_candidate(values, lambda v: isinstance(v, str) and cond.search(v) is not None)
        return _equals(values, cond)

    for op, arg in cond.items():
        if op == "$eq":
            ok = _equals(values, arg)
        elif op == "$ne":
            ok = not _equals(values, arg)
        elif op in ("$lt", "$lte", "$gt", "$gte"):
            ok = _any_candidate(values, lambda v, op=op, arg=arg: _compare(v, op, arg))
        elif op == "$in":
            ok = any(_equals(values, item) for item in arg)
        elif op == "$nin":
            ok = not any(_equals(values, item) for item in arg)
        elif op == "$exists":
            ok = bool(values) == bool(arg)
        elif op == "$regex":
            pattern = arg if isinstance(arg, re.Pattern) else re.compile(arg, _regex_flags(cond.get("$options", "")))
            ok = _any_candidate(values, lambda v, p=pattern: isinstance(v, str) and p.search(v) is not None)
        elif op == "$options":
            ok = True
        elif op == "$elemMatch":
            ok = any(isinstance(v, list) and any(_element_matches(item, arg) for item in v) for v in values)
        else:
            raise StorageError(f"unsupported query operator: {op}")
        if not ok:
            return False
    return True


def _element_matches(item: Any, cond: Mapping[str, Any]) -> bool:
    if _is_operator_doc(cond):
        return _field_matches([item], cond)
    return isinstance(item, Mapping) and matches(item, cond)


def _candidates(values: list[Any]) -> list[Any]:
    """Values plus the elements of any array values."""
    out: list[Any] = []
    for value in values:
        out.append(value)
        if isinstance(value, list):
            out.extend(value)
    return out


def _any_candidate(values: list[Any], predicate: Any) -> bool:
    return any(predicate(v) for v in _candidates(values))


def _equals(values: list[Any], target: Any) -> bool:
    if not values:
        return target is None
    return any(v == target for v in _candidates(values))


def _compare(value: Any, op: str, arg: Any) -> bool:
    if value is None or isinstance(value, list):
        return False
    try:
        if op == "$lt":
            return value < arg
        if op == "$lte":
            return value <= arg
        if op == "$gt":
            return value > arg
        return value >= arg
    except TypeError:
        return False


def _regex_flags(options: str) -> int:
    flags = 0
    if "i" in options:
        flags |= re.IGNORECASE
    if "m" in options:
        flags |= re.MULTILINE
    if "s" in options:
        flags |= re.DOTALL
    return flags


def _text_matches(doc: Any, search: str) -> bool:
    words = [w.lower() for w in search.split() if w]
    if not words:
        return False
    haystack = " ".join(_strings(doc)).lower()
    return any(word in haystack for word in words)


def _strings(obj: Any) -> list[str]:
    if isinstance(obj, str):
        return [obj]
    if isinstance(obj, Mapping):
        return [s for value in obj.values() for s in _strings(value)]
    if isinstance(obj, list):
        return [s for value in obj for s in _strings(value)]
    return []


# ---------------------------------------------------------------------------
# Updates
# ---------------------------------------------------------------------------


def apply_update(doc: Mapping[str, Any], update: Mapping[str, Any]) -> dict[str, Any]:
    """Return the updated copy of doc. The input is not modified."""
    doc_id = doc.get("_id")

    if not any(str(k).startswith("$") for k in update):
        replacement = copy.deepcopy(dict(update))
        if replacement.get("_id", doc_id) != doc_id:
            raise ImmutableFieldError("_id cannot be changed")
        replacement["_id"] = doc_id
        return replacement

    new_doc = copy.deepcopy(dict(doc))
    for op, fields in update.items():
        if op == "$set":
            for path, value in fields.items():
                if path == "_id":
                    if value != doc_id:
                        raise ImmutableFieldError("_id cannot be changed")
                    continue
                set_path(new_doc, path, copy.deepcopy(value))
        elif op == "$unset":
            for path in fields:
                if path == "_id":
                    raise ImmutableFieldError("_id cannot be unset")
                new_doc = without_path(new_doc, path)
        elif op == "$inc":
            for path, delta in fields.items():
                current = get_path(new_doc, path, 0)
                if not _is_number(current) or not _is_number(delta):
                    raise StorageError(f"cannot apply $inc to non-numeric field {path!r}")
                set_path(new_doc, path, current + delta)
        else:
            raise StorageError(f"unsupported update operator: {op}")
    return new_doc


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


def apply_options(
    docs: list[dict[str, Any]],
    sort: list[tuple[str, int]] | None = None,
    skip: int | None = None,
    limit: int | None = None,
    projection: Mapping[str, int] | None = None,
) -> list[dict[str, Any]]:
    result = list(docs)
    for field, direction in reversed(sort or []):
        result.sort(key=lambda d, f=field: _sort_key(get_path(d, f)), reverse=direction < 0)
    if skip:
        result = result[skip:]
    if limit:
        result = result[:limit]
    if projection:
        result = [project(d, projection) for d in result]
    return result


def _sort_key(value: Any) -> tuple:
    if value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (4, value)
    if isinstance(value, int | float):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    return (3, str(value))


def project(doc: Mapping[str, Any], projection: Mapping[str, int]) -> dict[str, Any]:
    include = {k for k, v in projection.items() if v and k != "_id"}
    if include:
        out: dict[str, Any] = {}
        if projection.get("_id", 1) and "_id" in doc:
            out["_id"] = doc["_id"]
        for path in include:
            value = get_path(doc, path, _MISSING)
            if value is not _MISSING:
                set_path(out, path, value)
        return out
    out = dict(doc)
    for path, flag in projection.items():
        if not flag:
            out = without_path(out, path)
    return out


# ---------------------------------------------------------------------------
# Index specs
# ---------------------------------------------------------------------------


def normalize_index_spec(spec: Any) -> dict[str, int]:
    """"title" | ["a", "b"] | [("a", -1)] | {"a": 1} -> {"a": 1, ...}"""
    if isinstance(spec, str):
        return {spec: 1}
    if isinstance(spec, Mapping):
        return {str(k): int(v) for k, v in spec.items()}
    if isinstance(spec, list | tuple):
        key: dict[str, int] = {}
        for item in spec:
            if isinstance(item, str):
                key[item] = 1
            else:
                field, direction = item
                key[field] = int(direction)
        return key
    raise StorageError(f"invalid index spec: {spec!r}")


def index_name(key: Mapping[str, int]) -> str:
    return "_".join(f"{field}_{direction}" for field, direction in key.items())


def index_values(doc: Mapping[str, Any], key: Mapping[str, int]) -> tuple:
    return tuple(get_path(doc, field) for field in key)
