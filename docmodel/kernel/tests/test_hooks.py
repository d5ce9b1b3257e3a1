"""
docmodel Hooks -- Ordering, Calling Conventions, Failure

Covers:
  - Ascending priority, registration order among equal priorities
  - Default priority 5
  - Method-name handlers resolve on the context at run time
  - Free functions receive the context first
  - Coroutine handlers are awaited
  - Return values thread into the next handler
  - A failing handler stops the phase with HookError
  - Unknown events and non-callable handlers raise UsageError
"""

import pytest

from docmodel.errors import HookError, UsageError
from docmodel.kernel.hooks import Hooks

# ============================================================================
# Helpers
# ============================================================================


class Recorder:
    def __init__(self):
        self.calls = []

    def mark(self, *args):
        self.calls.append(("mark", args))

    async def mark_async(self):
        self.calls.append(("mark_async", ()))


def recording(calls, label):
    def handler(context, *args):
        calls.append(label)

    return handler


# ============================================================================
# 1. Ordering
# ============================================================================


class TestOrdering:
    @pytest.mark.asyncio
    async def test_priorities_5_1_5(self):
        calls = []
        hooks = Hooks()
        hooks.before("save", recording(calls, "first-5"), priority=5)
        hooks.before("save", recording(calls, "only-1"), priority=1)
        hooks.before("save", recording(calls, "second-5"), priority=5)

        await hooks.run("before", "save", context=None)

        assert calls == ["only-1", "first-5", "second-5"]

    def test_default_priority_is_5(self):
        hooks = Hooks()
        hooks.after("create", recording([], "x"))
        assert [entry.priority for entry in hooks.entries("after", "create")] == [5]

    @pytest.mark.asyncio
    async def test_places_are_independent(self):
        calls = []
        hooks = Hooks()
        hooks.before("remove", recording(calls, "before"))
        hooks.after("remove", recording(calls, "after"))

        await hooks.run("after", "remove")

        assert calls == ["after"]

    def test_copy_is_independent(self):
        hooks = Hooks()
        hooks.before("save", recording([], "a"))
        clone = hooks.copy()
        clone.before("save", recording([], "b"))
        assert len(hooks.entries("before", "save")) == 1
        assert len(clone.entries("before", "save")) == 2


# ============================================================================
# 2. Calling conventions
# ============================================================================


class TestCallingConventions:
    @pytest.mark.asyncio
    async def test_method_name_resolves_on_context(self):
        record = Recorder()
        hooks = Hooks()
        hooks.before("update", "mark")

        await hooks.run("before", "update", args=(1, 2), context=record)

        assert record.calls == [("mark", (1, 2))]

    @pytest.mark.asyncio
    async def test_free_function_receives_context(self):
        seen = []
        record = Recorder()
        hooks = Hooks()
        hooks.before("create", lambda context, *args: seen.append((context, args)))

        await hooks.run("before", "create", args=("x",), context=record)

        assert seen == [(record, ("x",))]

    @pytest.mark.asyncio
    async def test_coroutine_handlers_are_awaited(self):
        record = Recorder()
        hooks = Hooks()
        hooks.after("save", "mark_async")

        await hooks.run("after", "save", context=record)

        assert record.calls == [("mark_async", ())]

    @pytest.mark.asyncio
    async def test_return_value_threads_to_next_handler(self):
        hooks = Hooks()
        hooks.after("find", lambda context, docs: [d * 2 for d in docs], priority=0)
        hooks.after("find", lambda context, docs: [d + 1 for d in docs])

        result = await hooks.run("after", "find", args=([1, 2],))

        assert result == [3, 5]

    @pytest.mark.asyncio
    async def test_none_return_keeps_original_args(self):
        seen = []
        hooks = Hooks()
        hooks.after("find", lambda context, docs: None)
        hooks.after("find", lambda context, docs: seen.append(docs))

        result = await hooks.run("after", "find", args=([1],))

        assert seen == [[1]]
        assert result is None


# ============================================================================
# 3. Failures
# ============================================================================


class TestFailures:
    @pytest.mark.asyncio
    async def test_failure_stops_phase(self):
        calls = []

        def boom(context):
            raise RuntimeError("nope")

        hooks = Hooks()
        hooks.before("save", recording(calls, "a"), priority=1)
        hooks.before("save", boom, priority=2)
        hooks.before("save", recording(calls, "c"), priority=3)

        with pytest.raises(HookError) as exc_info:
            await hooks.run("before", "save")

        assert calls == ["a"]
        assert exc_info.value.place == "before"
        assert exc_info.value.event == "save"
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert "nope" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_async_failure(self):
        async def boom(context):
            raise ValueError("bad")

        hooks = Hooks()
        hooks.after("remove", boom)

        with pytest.raises(HookError):
            await hooks.run("after", "remove")

    def test_unknown_event(self):
        with pytest.raises(UsageError):
            Hooks().before("publish", recording([], "x"))

    def test_non_callable_handler(self):
        with pytest.raises(UsageError):
            Hooks().before("save", 42)
