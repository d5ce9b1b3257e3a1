"""
Kernel test configuration.

Kernel tests are pure: no storage, no event loop fixtures beyond what
pytest-asyncio provides for the async hook tests.
"""

import pytest

from docmodel.kernel.reducer import combine_reducers, default_reducers, initial_state


@pytest.fixture
def reducer():
    """The default combined reducer (fields + unset tracker)."""
    return combine_reducers(default_reducers())


@pytest.fixture
def state(reducer):
    return initial_state(reducer)
