"""Tests for the Qdrant client wrapper and vector index adapter."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from qdrant_client.http import models

from context_retrieval.clients.qdrant import QdrantClientWrapper, QdrantVectorIndex
from context_retrieval.config import Settings
from context_retrieval.types import ScopeTag

SCOPES = [
    ScopeTag(branch="main", directory="/repo"),
    ScopeTag(branch="feature", directory="/repo"),
]


def make_point(point_id: int, score: float, **payload) -> models.ScoredPoint:
    return models.ScoredPoint(id=point_id, version=1, score=score, payload=payload)


class TestQdrantClientWrapper:
    """Tests for QdrantClientWrapper."""

    @pytest.fixture
    def settings(self) -> Settings:
        """Create test settings."""
        return Settings(
            _env_file=None,
            qdrant_url="http://localhost:6333",
            qdrant_collection="test_chunks",
            qdrant_timeout=10.0,
            qdrant_prefer_grpc=False,
            qdrant_grpc_port=None,
        )

    @pytest.fixture
    def mock_async_client(self):
        """Create mock AsyncQdrantClient."""
        with patch("context_retrieval.clients.qdrant.AsyncQdrantClient") as mock_cls:
            mock_client = AsyncMock()
            mock_cls.return_value = mock_client
            yield mock_cls, mock_client

    def test_client_before_connect_raises(self, settings: Settings) -> None:
        wrapper = QdrantClientWrapper(settings)

        with pytest.raises(RuntimeError, match="not connected"):
            _ = wrapper.client

    @pytest.mark.asyncio
    async def test_connect_and_close(self, settings: Settings, mock_async_client) -> None:
        mock_cls, mock_client = mock_async_client

        async with QdrantClientWrapper(settings) as wrapper:
            assert wrapper.client is mock_client
            assert wrapper.collection_name == "test_chunks"

        mock_client.get_collection.assert_awaited_once_with(collection_name="test_chunks")
        mock_client.close.assert_awaited_once()
        assert "grpc_port" not in mock_cls.call_args.kwargs

    @pytest.mark.asyncio
    async def test_connect_with_grpc_port(self, settings: Settings, mock_async_client) -> None:
        mock_cls, _ = mock_async_client
        grpc_settings = settings.model_copy(
            update={"qdrant_prefer_grpc": True, "qdrant_grpc_port": 6334}
        )

        await QdrantClientWrapper(grpc_settings).connect()

        assert mock_cls.call_args.kwargs["grpc_port"] == 6334

    @pytest.mark.asyncio
    async def test_missing_collection_is_not_fatal(
        self, settings: Settings, mock_async_client
    ) -> None:
        _, mock_client = mock_async_client
        mock_client.get_collection = AsyncMock(side_effect=Exception("not found"))

        wrapper = QdrantClientWrapper(settings)
        await wrapper.connect()

        assert wrapper.client is mock_client


class TestQdrantVectorIndex:
    """Tests for QdrantVectorIndex."""

    @pytest.fixture
    def qdrant(self) -> MagicMock:
        """Create a connected wrapper mock."""
        wrapper = MagicMock()
        wrapper.collection_name = "code_chunks"
        wrapper.client.query_points = AsyncMock(return_value=MagicMock(points=[]))
        return wrapper

    @pytest.fixture
    def embedder(self) -> MagicMock:
        embedder = MagicMock()
        embedder.embed = AsyncMock(return_value=[0.1, 0.2, 0.3])
        return embedder

    @pytest.mark.asyncio
    async def test_search_builds_scope_filter(
        self, qdrant: MagicMock, embedder: MagicMock
    ) -> None:
        qdrant.client.query_points.return_value = MagicMock(
            points=[
                make_point(
                    1,
                    0.92,
                    filepath="/repo/src/retry.py",
                    content="def retry(): ...",
                    digest="abc123",
                    start_line=10,
                    end_line=24,
                    index=2,
                    tags=["/repo::main"],
                )
            ]
        )
        index = QdrantVectorIndex(qdrant, embedder, vector_name="dense")

        chunks = await index.search("retry backoff", SCOPES, None, limit=5)

        embedder.embed.assert_awaited_once_with("retry backoff", is_query=True)
        kwargs = qdrant.client.query_points.await_args.kwargs
        assert kwargs["collection_name"] == "code_chunks"
        assert kwargs["query"] == [0.1, 0.2, 0.3]
        assert kwargs["using"] == "dense"
        assert kwargs["limit"] == 5
        assert kwargs["query_filter"] == models.Filter(
            should=[
                models.FieldCondition(key="tags", match=models.MatchValue(value="/repo::main")),
                models.FieldCondition(key="tags", match=models.MatchValue(value="/repo::feature")),
            ]
        )

        assert len(chunks) == 1
        chunk = chunks[0]
        assert chunk.filepath == "/repo/src/retry.py"
        assert chunk.digest == "abc123"
        assert (chunk.start_line, chunk.end_line, chunk.index) == (10, 24, 2)
        assert chunk.metadata["score"] == 0.92

    @pytest.mark.asyncio
    async def test_no_tags_means_no_filter(self, qdrant: MagicMock, embedder: MagicMock) -> None:
        await QdrantVectorIndex(qdrant, embedder).search("query", [], None, limit=3)

        assert qdrant.client.query_points.await_args.kwargs["query_filter"] is None

    @pytest.mark.asyncio
    async def test_directory_filter_oversamples_and_filters(
        self, qdrant: MagicMock, embedder: MagicMock
    ) -> None:
        qdrant.client.query_points.return_value = MagicMock(
            points=[
                make_point(1, 0.9, filepath="/repo/docs/a.md", content="a"),
                make_point(2, 0.8, filepath="/repo/src/b.py", content="b"),
                make_point(3, 0.7, filepath="/repo/src/c.py", content="c"),
                make_point(4, 0.6, filepath="/repo/src/d.py", content="d"),
            ]
        )

        chunks = await QdrantVectorIndex(qdrant, embedder).search(
            "query", SCOPES, "/repo/src", limit=2
        )

        assert qdrant.client.query_points.await_args.kwargs["limit"] == 4
        assert [c.filepath for c in chunks] == ["/repo/src/b.py", "/repo/src/c.py"]

    @pytest.mark.asyncio
    async def test_points_without_filepath_are_skipped(
        self, qdrant: MagicMock, embedder: MagicMock
    ) -> None:
        qdrant.client.query_points.return_value = MagicMock(
            points=[
                make_point(1, 0.9, content="orphan"),
                make_point(2, 0.8, filepath="b.py", content="b", start_line=3),
            ]
        )

        chunks = await QdrantVectorIndex(qdrant, embedder).search("query", SCOPES, None, limit=5)

        assert len(chunks) == 1
        assert chunks[0].digest == "b.py"
        assert (chunks[0].start_line, chunks[0].end_line) == (3, 3)

    @pytest.mark.asyncio
    async def test_blank_query_skips_embedding(
        self, qdrant: MagicMock, embedder: MagicMock
    ) -> None:
        chunks = await QdrantVectorIndex(qdrant, embedder).search("  ", SCOPES, None, limit=5)

        assert chunks == []
        embedder.embed.assert_not_awaited()
        qdrant.client.query_points.assert_not_awaited()
