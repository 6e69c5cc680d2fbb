import os

# Keep test runs away from Langfuse and the real database
os.environ.setdefault("LANGFUSE_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest

from core.models import SessionCategory
from storage import SessionStore
from tests.helpers import build_sample_registry


@pytest.fixture
def store():
    """Fresh in-memory session store."""
    return SessionStore("sqlite://")


@pytest.fixture
def session(store):
    """An academic session seeded with the greeting."""
    return store.create(SessionCategory.ACADEMIC)


@pytest.fixture
def handler_calls():
    return []


@pytest.fixture
def sample_registry(handler_calls):
    return build_sample_registry(handler_calls)
