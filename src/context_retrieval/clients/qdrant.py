"""Async Qdrant client wrapper and vector index adapter."""

import logging
from collections.abc import Sequence
from typing import Any

from qdrant_client import AsyncQdrantClient
from qdrant_client.http import models

from context_retrieval.config import Settings
from context_retrieval.protocols import QueryEmbedder
from context_retrieval.types import Chunk, ScopeTag

logger = logging.getLogger(__name__)

# Oversampling factor applied when results are post-filtered by directory
DIRECTORY_OVERSAMPLE = 2


class QdrantClientWrapper:
    """Wrapper around AsyncQdrantClient with lifecycle management.

    Provides async context manager interface for proper resource cleanup.
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize the Qdrant client wrapper.

        Args:
            settings: Settings containing Qdrant configuration.
        """
        self.settings = settings
        self._client: AsyncQdrantClient | None = None
        self._collection_name = settings.qdrant_collection

    async def connect(self) -> None:
        """Establish connection to Qdrant server."""
        logger.info(
            f"Connecting to Qdrant at {self.settings.qdrant_url} "
            f"(collection: {self._collection_name})"
        )

        client_kwargs: dict[str, Any] = {
            "url": self.settings.qdrant_url,
            "timeout": self.settings.qdrant_timeout,
            "prefer_grpc": self.settings.qdrant_prefer_grpc,
        }
        if self.settings.qdrant_grpc_port is not None:
            client_kwargs["grpc_port"] = self.settings.qdrant_grpc_port

        self._client = AsyncQdrantClient(**client_kwargs)

        try:
            await self._client.get_collection(collection_name=self._collection_name)
            logger.info(f"Successfully connected to Qdrant collection: {self._collection_name}")
        except Exception as e:
            logger.warning(
                f"Could not verify collection '{self._collection_name}': {e}. "
                "Collection may not exist yet."
            )

    async def close(self) -> None:
        """Close the Qdrant client connection."""
        if self._client is not None:
            logger.info("Closing Qdrant client connection")
            await self._client.close()
            self._client = None

    @property
    def client(self) -> AsyncQdrantClient:
        """Get the underlying AsyncQdrantClient instance.

        Raises:
            RuntimeError: If client is not connected.
        """
        if self._client is None:
            raise RuntimeError("Qdrant client not connected. Call connect() first.")
        return self._client

    @property
    def collection_name(self) -> str:
        return self._collection_name

    async def __aenter__(self) -> "QdrantClientWrapper":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


class QdrantVectorIndex:
    """Vector index backed by a Qdrant collection of code chunks.

    Points carry the chunk in their payload: ``filepath``, ``content``,
    ``digest``, ``start_line``, ``end_line``, ``index`` and ``tags`` (the
    scope keys, ``"{directory}::{branch}"``, the chunk is visible under).

    Attributes:
        qdrant: Connected Qdrant client wrapper.
        embedder: Query embedder producing the search vector.
        vector_name: Named vector to search, or None for the default vector.
    """

    def __init__(
        self,
        qdrant: QdrantClientWrapper,
        embedder: QueryEmbedder,
        vector_name: str | None = None,
    ) -> None:
        self.qdrant = qdrant
        self.embedder = embedder
        self.vector_name = vector_name

    async def search(
        self,
        query_text: str,
        tags: Sequence[ScopeTag],
        directory: str | None,
        limit: int,
    ) -> list[Chunk]:
        """Return up to ``limit`` chunks by descending similarity to ``query_text``.

        Args:
            query_text: Raw query text, embedded as a query.
            tags: Scope tags; a point matches if it carries any of them.
            directory: Optional filepath prefix.
            limit: Maximum number of chunks returned.
        """
        if limit <= 0 or not query_text.strip():
            return []

        vector = await self.embedder.embed(query_text, is_query=True)
        fetch_limit = limit * DIRECTORY_OVERSAMPLE if directory else limit

        response = await self.qdrant.client.query_points(
            collection_name=self.qdrant.collection_name,
            query=vector,
            using=self.vector_name,
            query_filter=self._build_filter(tags),
            limit=fetch_limit,
            with_payload=True,
        )

        chunks = []
        for point in response.points:
            chunk = self._to_chunk(point)
            if chunk is None:
                continue
            if directory and not chunk.filepath.startswith(directory):
                continue
            chunks.append(chunk)

        logger.debug(
            f"Qdrant returned {len(response.points)} points, kept {len(chunks[:limit])} chunks"
        )
        return chunks[:limit]

    def _build_filter(self, tags: Sequence[ScopeTag]) -> models.Filter | None:
        if not tags:
            return None
        return models.Filter(
            should=[
                models.FieldCondition(key="tags", match=models.MatchValue(value=tag.key))
                for tag in tags
            ]
        )

    def _to_chunk(self, point: models.ScoredPoint) -> Chunk | None:
        payload = point.payload or {}
        filepath = payload.get("filepath")
        if not filepath:
            logger.warning(f"Skipping point {point.id} without filepath payload")
            return None

        return Chunk(
            filepath=filepath,
            content=str(payload.get("content", "")),
            digest=payload.get("digest") or filepath,
            start_line=int(payload.get("start_line", 0)),
            end_line=int(payload.get("end_line", payload.get("start_line", 0))),
            index=int(payload.get("index", 0)),
            metadata={"score": point.score, "point_id": str(point.id)},
        )
