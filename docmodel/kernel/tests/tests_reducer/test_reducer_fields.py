"""
docmodel Reducer -- Fields Tests

The fields reducer holds the record's current snapshot.

Covers:
  - SET deep-merges nested mappings, overwrites scalars and lists
  - A sequence of SETs equals the deep-merge of all payloads in order
  - SET twice with the same payload is idempotent
  - UNSET removes dotted paths and leaves emptied parents in place
  - CREATED / REMOVED add and strip _id
  - REFRESHED replaces the whole snapshot
  - Unknown actions return the same state object
  - The input state is never modified
"""

import copy
from dataclasses import dataclass
from typing import ClassVar

from docmodel.kernel import actions as A
from docmodel.kernel.paths import deep_merge
from docmodel.kernel.reducer import fields_reducer

# ============================================================================
# Helpers
# ============================================================================


@dataclass(frozen=True)
class Unknown:
    type: ClassVar[str] = "test/UNKNOWN"


def reduce_all(state, actions):
    for action in actions:
        state = fields_reducer(state, action)
    return state


# ============================================================================
# 1. Initial state
# ============================================================================


class TestInitialState:
    def test_none_becomes_empty_mapping(self):
        assert fields_reducer(None, A.Init()) == {}


# ============================================================================
# 2. SET
# ============================================================================


class TestSet:
    def test_set_adds_fields(self):
        state = fields_reducer({}, A.set_fields({"title": "x"}))
        assert state == {"title": "x"}

    def test_set_merges_nested_mappings(self):
        state = {"author": {"name": "Ann", "email": "ann@example.com"}}
        state = fields_reducer(state, A.set_fields({"author": {"name": "Bob"}}))
        assert state == {"author": {"name": "Bob", "email": "ann@example.com"}}

    def test_set_overwrites_lists(self):
        state = {"tags": ["a", "b"]}
        state = fields_reducer(state, A.set_fields({"tags": ["c"]}))
        assert state == {"tags": ["c"]}

    def test_set_overwrites_mapping_with_scalar(self):
        state = {"author": {"name": "Ann"}}
        state = fields_reducer(state, A.set_fields({"author": "anonymous"}))
        assert state == {"author": "anonymous"}

    def test_sequence_equals_deep_merge_in_order(self):
        payloads = [
            {"a": 1, "nested": {"x": 1}},
            {"nested": {"y": 2}, "list": [1]},
            {"a": 3, "list": [2, 3], "nested": {"x": 9}},
        ]
        expected = {}
        for payload in payloads:
            expected = deep_merge(expected, payload)

        state = reduce_all({}, [A.set_fields(p) for p in payloads])
        assert state == expected
        assert state == {"a": 3, "nested": {"x": 9, "y": 2}, "list": [2, 3]}

    def test_set_twice_is_idempotent(self):
        once = fields_reducer({}, A.set_fields({"a": 1}))
        twice = fields_reducer(once, A.set_fields({"a": 1}))
        assert once["a"] == twice["a"] == 1
        assert once == twice

    def test_set_does_not_modify_input(self):
        state = {"author": {"name": "Ann"}}
        before = copy.deepcopy(state)
        fields_reducer(state, A.set_fields({"author": {"name": "Bob"}}))
        assert state == before


# ============================================================================
# 3. UNSET
# ============================================================================


class TestUnset:
    def test_unset_removes_top_level_key(self):
        state = fields_reducer({"a": 1, "b": 2}, A.unset(["a"]))
        assert state == {"b": 2}

    def test_unset_removes_dotted_path(self):
        state = {"author": {"name": "Ann", "email": "ann@example.com"}}
        state = fields_reducer(state, A.unset(["author.email"]))
        assert state == {"author": {"name": "Ann"}}

    def test_unset_leaves_empty_parent(self):
        state = fields_reducer({"author": {"name": "Ann"}}, A.unset(["author.name"]))
        assert state == {"author": {}}

    def test_unset_missing_key_is_noop(self):
        state = fields_reducer({"a": 1}, A.unset(["missing", "a.b"]))
        assert state == {"a": 1}

    def test_unset_does_not_modify_input(self):
        state = {"author": {"name": "Ann"}}
        fields_reducer(state, A.unset(["author.name"]))
        assert state == {"author": {"name": "Ann"}}


# ============================================================================
# 4. Completion events
# ============================================================================


class TestCompletionEvents:
    def test_created_assigns_id(self):
        state = fields_reducer({"title": "x"}, A.Created(id="abc"))
        assert state == {"title": "x", "_id": "abc"}

    def test_removed_strips_id(self):
        state = fields_reducer({"_id": "abc", "title": "x"}, A.Removed())
        assert state == {"title": "x"}

    def test_refreshed_replaces_state(self):
        state = {"_id": "abc", "title": "local edit", "draft": True}
        state = fields_reducer(state, A.Refreshed(fields={"_id": "abc", "title": "stored"}))
        assert state == {"_id": "abc", "title": "stored"}

    def test_refreshed_with_missing_document_empties_state(self):
        state = fields_reducer({"_id": "abc"}, A.Refreshed(fields=None))
        assert state == {}

    def test_updated_is_identity(self):
        state = {"_id": "abc"}
        assert fields_reducer(state, A.Updated(fields={"_id": "abc"})) is state


# ============================================================================
# 5. Unknown actions
# ============================================================================


class TestUnknownActions:
    def test_unknown_action_returns_same_object(self):
        state = {"a": 1}
        assert fields_reducer(state, Unknown()) is state

    def test_non_action_returns_same_object(self):
        state = {"a": 1}
        assert fields_reducer(state, object()) is state
