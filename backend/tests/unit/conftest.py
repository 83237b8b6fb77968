"""Unit test conftest for setting up test environment."""

import os

# Set environment before importing any indexsync modules (settings are read at import)
os.environ.setdefault("LOCAL_DEVELOPMENT", "true")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("ELASTICSEARCH_URL", "http://localhost:9200")
os.environ.setdefault("ELASTICSEARCH_MAX_RETRIES", "2")

from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from indexsync.platform.persisters._base import ObjectPersister  # noqa: E402
from tests.unit.models import Article, Base  # noqa: E402


@pytest.fixture
def engine():
    """Create an in-memory SQLite engine with the test schema."""
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    """Create a session that keeps attributes loaded across commits."""
    with Session(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def mock_persister():
    """Create a mock persister that handles Article instances."""
    persister = MagicMock(spec=ObjectPersister)
    persister.handles_object.side_effect = lambda obj: isinstance(obj, Article)
    return persister
