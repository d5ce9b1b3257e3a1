"""
Pytest configuration and fixtures for docmodel tests.

Every test gets a fresh in-memory database and fresh model classes, so
class-level hooks and registrations never leak between tests.
"""

from __future__ import annotations

import pytest
import pytest_asyncio

from docmodel import Database, Model
from docmodel.kernel import actions as A


@pytest_asyncio.fixture
async def database():
    """A connected in-memory database."""
    db = Database("memory://")
    await db.connect()
    yield db
    await db.disconnect()


@pytest.fixture
def Post(database):
    class Post(Model):
        pass

    database.register(Post)
    return Post


@pytest.fixture
def Comment(database):
    class Comment(Model):
        pass

    database.register(Comment)
    return Comment


@pytest_asyncio.fixture
async def posts(database, Post):
    """The raw in-memory collection behind Post, for inspecting driver calls."""
    storage = await database.connection()
    return storage.collection(Post.collection)


# ============================================================================
# Fake store for middleware unit tests
# ============================================================================

# Completion events are applied synchronously by a real store.
_SYNC_TYPES = {A.GET, A.SET, A.UNSET, A.CREATED, A.UPDATED, A.REMOVED, A.REFRESHED}


class FakeStore:
    """
    Records every nested dispatch. Storage-bound actions resolve to
    `results[method or tag]`; `fail` decides which of them raise.
    """

    def __init__(self, fields=None, unset=None, results=None, fail=None, record_type=None):
        self.state = {"fields": dict(fields or {}), "unset": list(unset or [])}
        self.results = results or {}
        self.fail = fail or (lambda action: None)
        self.record_type = record_type
        self.dispatched = []
        self.hook_runs = []

    def get_state(self):
        return self.state

    def dispatch(self, action):
        self.dispatched.append(action)
        if action.type in _SYNC_TYPES:
            return action
        return self._resolve(action)

    async def _resolve(self, action):
        error = self.fail(action)
        if error is not None:
            raise error
        return self.results.get(getattr(action, "method", action.type))

    async def run_hooks(self, place, event, args=()):
        self.hook_runs.append((place, event))


@pytest.fixture
def fake_store():
    return FakeStore
