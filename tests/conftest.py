"""Pytest configuration and shared fixtures."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from context_retrieval.config import Settings
from context_retrieval.recent_edits import RecentEditCache
from tests.helpers import FakeWorkspace, LineChunker


@pytest.fixture
def settings() -> Settings:
    """Settings with small budgets and no .env file."""
    return Settings(_env_file=None, n_retrieve=5, n_final=3)


@pytest.fixture
def mock_lexical_index() -> MagicMock:
    """Create a mock full-text index."""
    index = MagicMock()
    index.search = AsyncMock(return_value=[])
    return index


@pytest.fixture
def mock_vector_index() -> MagicMock:
    """Create a mock vector index."""
    index = MagicMock()
    index.search = AsyncMock(return_value=[])
    return index


@pytest.fixture
def chunker() -> LineChunker:
    return LineChunker()


@pytest.fixture
def workspace() -> FakeWorkspace:
    return FakeWorkspace()


@pytest.fixture
def recent_edits() -> RecentEditCache:
    return RecentEditCache(capacity=10)
