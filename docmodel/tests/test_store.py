"""
docmodel Store -- Dispatch, Plugins, Custom Reducers, Hook Layers

Covers:
  - Default state shape
  - Actions reaching the reducers are returned from dispatch
  - Plugin middleware runs before the built-ins
  - A middleware returning something else is a programming error
  - Custom reducer transforms and custom actions
  - run_hooks: type-level then instance-level before, reverse after
  - Stores are never shared between records
"""

import asyncio
from dataclasses import dataclass
from typing import ClassVar

import pytest

from docmodel import Model, Store
from docmodel.kernel import actions as A
from docmodel.kernel.types import Handled, PassThrough

# ============================================================================
# Helpers
# ============================================================================


@dataclass(frozen=True)
class Publish:
    type: ClassVar[str] = "blog/PUBLISH"


def published_reducer(reducers):
    def published(state, action):
        if state is None:
            return False
        return True if action.type == Publish.type else state

    return {**reducers, "published": published}


# ============================================================================
# 1. Dispatch
# ============================================================================


class TestDispatch:
    def test_default_state(self, Post):
        assert Post().store.get_state() == {"fields": {}, "unset": []}

    def test_set_reaches_reducers(self, Post):
        store = Post().store
        action = A.set_fields({"title": "x"})

        assert store.dispatch(action) == action
        assert store.get_state()["fields"] == {"title": "x"}

    def test_get_returns_shallow_copy(self, Post):
        store = Post({"title": "x"}).store
        fields = store.dispatch(A.get())
        fields["title"] = "changed"
        assert store.dispatch(A.get("title")) == "x"

    def test_get_dotted_key(self, Post):
        store = Post({"author": {"name": "Ann"}}).store
        assert store.dispatch(A.get("author.name")) == "Ann"
        assert store.dispatch(A.get("author.email")) is None

    def test_storage_actions_return_awaitables(self, Post):
        store = Post().store
        result = store.dispatch(A.call("count"))
        assert asyncio.iscoroutine(result)
        result.close()

    def test_invalid_middleware_outcome(self, Post):
        Post.use(lambda store, action: None)
        with pytest.raises(TypeError):
            Post().store.dispatch(A.get())


# ============================================================================
# 2. Plugins
# ============================================================================


class TestPlugins:
    def test_plugin_runs_before_builtins(self, Post):
        seen = []

        def spy(store, action):
            seen.append(action.type)
            return PassThrough(action)

        Post.use(spy)
        Post().get("title")

        assert seen == [A.GET]

    def test_plugin_can_handle_action(self, Post):
        def constant_get(store, action):
            if action.type == A.GET:
                return Handled("intercepted")
            return PassThrough(action)

        Post.use(constant_get)
        assert Post({"title": "x"}).get("title") == "intercepted"

    def test_plugin_can_rewrite_action(self, Post):
        def uppercase_titles(store, action):
            if action.type == A.SET and "title" in action.fields:
                return PassThrough(A.set_fields({**action.fields, "title": action.fields["title"].upper()}))
            return PassThrough(action)

        Post.use(uppercase_titles)
        post = Post()
        post.set("title", "hello")
        assert post.get("title") == "HELLO"

    def test_plugins_are_per_class(self, Post, Comment):
        Post.use(lambda store, action: Handled("post"))
        assert Comment({"a": 1}).get("a") == 1

    def test_store_exposes_record_and_type(self, Post):
        captured = []

        def capture(store, action):
            captured.append((store.record, store.record_type))
            return PassThrough(action)

        Post.use(capture)
        post = Post()
        post.get()

        assert captured[-1] == (post, Post.record_type)


# ============================================================================
# 3. Custom reducers
# ============================================================================


class TestCustomReducers:
    def test_custom_reducer_adds_state(self, Post):
        Post.add_reducer(published_reducer)
        post = Post()
        assert post.store.get_state()["published"] is False

        post.store.dispatch(Publish())

        assert post.store.get_state()["published"] is True
        assert post.store.get_state()["fields"] == {}

    def test_custom_action_is_returned(self, Post):
        action = Publish()
        assert Post().store.dispatch(action) is action


# ============================================================================
# 4. Hook layers
# ============================================================================


class TestRunHooks:
    @pytest.mark.asyncio
    async def test_layer_order(self, Post):
        calls = []
        Post.before("save", lambda record: calls.append("type-before"))
        Post.after("save", lambda record: calls.append("type-after"))
        post = Post()
        post.before("save", lambda record: calls.append("instance-before"))
        post.after("save", lambda record: calls.append("instance-after"))

        await post.store.run_hooks("before", "save")
        await post.store.run_hooks("after", "save")

        assert calls == ["type-before", "instance-before", "instance-after", "type-after"]

    @pytest.mark.asyncio
    async def test_class_store_uses_model_as_context(self, Post):
        seen = []
        Post.before("find", lambda context, query: seen.append(context))

        await Store(None, Post.record_type).run_hooks("before", "find", (None,))

        assert seen == [Post]

    @pytest.mark.asyncio
    async def test_each_layer_gets_original_args(self, Post):
        seen = []
        Post.after("update", lambda record, fields: {"replaced": True})
        post = Post()
        post.after("update", lambda record, fields: seen.append(fields))

        result = await post.store.run_hooks("after", "update", ({"a": 1},))

        assert seen == [{"a": 1}]
        assert result == {"replaced": True}

    @pytest.mark.asyncio
    async def test_instance_hooks_stay_on_instance(self, Post):
        calls = []
        first = Post()
        first.before("save", lambda record: calls.append("first"))

        await Post().store.run_hooks("before", "save")

        assert calls == []


# ============================================================================
# 5. Isolation
# ============================================================================


class TestIsolation:
    def test_every_record_owns_a_store(self, Post):
        a, b = Post({"n": 1}), Post({"n": 2})
        assert a.store is not b.store
        assert a.get("n") == 1
        assert b.get("n") == 2
