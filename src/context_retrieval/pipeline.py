"""Retrieval pipeline orchestration.

Coordinates one retrieval run:
Query → (lexical | vector | recency, concurrently) → Fusion → Dedupe → Rerank

Fusion order is recency, then lexical, then vector; deduplication keeps the
earliest-seen chunk, so that order decides which source wins an overlap.
An optional second round expands the best ranked chunks with vector lookups
keyed on their own content and reranks again.
"""

import asyncio
import uuid
from collections.abc import Sequence
from typing import Any

from context_retrieval.clients.huggingface import build_relevance_model
from context_retrieval.config import Settings, get_settings
from context_retrieval.dedupe import deduplicate_chunks
from context_retrieval.errors import RetrievalError, RetrievalTimeoutError
from context_retrieval.protocols import (
    Chunker,
    LexicalIndex,
    RelevanceModel,
    VectorIndex,
    Workspace,
)
from context_retrieval.recent_edits import RecentEditCache
from context_retrieval.reranking import ChunkReranker
from context_retrieval.retrievers import SourceRetrievers
from context_retrieval.types import Chunk, PipelineState, RetrievalRequest, ScopeTag
from context_retrieval.utils.logging import configure_logging_from_settings, get_logger

logger = get_logger(__name__)


class RetrievalPipeline:
    """Fuses lexical, vector and recency retrieval and reranks the result.

    Attributes:
        settings: Retrieval settings (budgets, gates, deadline).
        recent_edits: Recently edited files shared with the host.
        retrievers: The three source retrievers.
        reranker: Relevance reranker; raises if no model is configured.
    """

    def __init__(
        self,
        lexical_index: LexicalIndex,
        vector_index: VectorIndex,
        chunker: Chunker,
        workspace: Workspace,
        relevance_model: RelevanceModel | None = None,
        recent_edits: RecentEditCache | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            lexical_index: Full-text index.
            vector_index: Embedding index.
            chunker: Document chunker for recency results.
            workspace: File access and open-file listing.
            relevance_model: Relevance model. ``run`` fails without one.
            recent_edits: Recently edited files. A private cache is created if None.
            settings: Retrieval settings. Uses get_settings() if None.
        """
        self.settings = settings or get_settings()
        self.recent_edits = (
            recent_edits
            if recent_edits is not None
            else RecentEditCache(self.settings.recent_edits_capacity)
        )
        self.retrievers = SourceRetrievers(
            lexical_index=lexical_index,
            vector_index=vector_index,
            chunker=chunker,
            workspace=workspace,
            recent_edits=self.recent_edits,
            max_chunk_size=self.settings.max_chunk_size,
        )
        self.reranker = ChunkReranker(
            relevance_model,
            threshold_enabled=self.settings.rerank_threshold_enabled,
            threshold=self.settings.rerank_threshold,
        )

    @classmethod
    def from_settings(
        cls,
        lexical_index: LexicalIndex,
        vector_index: VectorIndex,
        chunker: Chunker,
        workspace: Workspace,
        recent_edits: RecentEditCache | None = None,
        settings: Settings | None = None,
        configure_logs: bool = False,
    ) -> "RetrievalPipeline":
        """Build a pipeline whose relevance model comes from ``reranker_backend``.

        With ``configure_logs`` the process-wide logging is also set up from
        ``log_level`` and ``log_json``.
        """
        settings = settings or get_settings()
        if configure_logs:
            configure_logging_from_settings(settings)
        return cls(
            lexical_index=lexical_index,
            vector_index=vector_index,
            chunker=chunker,
            workspace=workspace,
            relevance_model=build_relevance_model(settings),
            recent_edits=recent_edits,
            settings=settings,
        )

    async def run(
        self,
        query: str,
        tags: Sequence[ScopeTag],
        filter_directory: str | None = None,
        *,
        timeout: float | None = None,
    ) -> list[Chunk]:
        """Retrieve the chunks most relevant to ``query`` within ``tags``.

        Args:
            query: Raw query text.
            tags: Scope tags the retrieval is restricted to.
            filter_directory: Optional directory prefix filter.
            timeout: Deadline in seconds. Defaults to the configured
                retrieval timeout; None there means no deadline.

        Returns:
            At most ``n_final`` chunks in ascending relevance order.

        Raises:
            RerankerNotConfiguredError: If no relevance model is configured.
            RelevanceModelError: If the relevance model output is unusable.
            RetrievalTimeoutError: If the deadline expires.
        """
        request = RetrievalRequest(
            query=query,
            tags=tuple(tags),
            filter_directory=filter_directory,
            n=self.settings.n_retrieve,
        )
        deadline = timeout if timeout is not None else self.settings.retrieval_timeout_seconds

        if deadline is None:
            return await self._run(request)

        scope = asyncio.timeout(deadline)
        try:
            async with scope:
                return await self._run(request)
        except TimeoutError:
            # A collaborator's own TimeoutError is not a deadline expiry
            if not scope.expired():
                raise
            logger.warning("retrieval_timeout", timeout_s=deadline)
            raise RetrievalTimeoutError(deadline) from None

    async def retrieve_candidates(self, request: RetrievalRequest) -> list[Chunk]:
        """Fan out to all retrievers and return the fused, deduplicated candidates."""
        return deduplicate_chunks(await self._retrieve_fused(request, logger))

    async def _run(self, request: RetrievalRequest) -> list[Chunk]:
        log = logger.bind(run_id=uuid.uuid4().hex[:12])
        self._advance(log, PipelineState.IDLE, n_retrieve=request.n)

        self._advance(log, PipelineState.RETRIEVING)
        fused = await self._retrieve_fused(request, log)

        self._advance(log, PipelineState.DEDUPLICATING)
        candidates = deduplicate_chunks(fused)
        log.debug("deduplicated", fused=len(fused), candidates=len(candidates))

        self._advance(log, PipelineState.RERANKING)
        try:
            results = await self.reranker.rerank(request.query, candidates, self.settings.n_final)
            if self.settings.expand_with_embeddings and results:
                results = await self._expand_and_rerank(request, results, log)
        except RetrievalError as e:
            self._advance(log, PipelineState.FAILED, error=str(e))
            raise

        state = self._advance(log, PipelineState.DONE)
        log.info(
            "retrieval_complete",
            state=state.value,
            candidates=len(candidates),
            returned=len(results),
        )
        return results

    async def _retrieve_fused(self, request: RetrievalRequest, log: Any) -> list[Chunk]:
        recent, lexical, vector = await asyncio.gather(
            self.retrievers.retrieve_recent(request),
            self.retrievers.retrieve_lexical(request),
            self.retrievers.retrieve_vector(request),
        )

        fused: list[Chunk] = []
        for outcome in (recent, lexical, vector):
            if not outcome.ok:
                log.warning("retriever_degraded", source=outcome.source, error=str(outcome.error))
            fused.extend(outcome.unwrap_or_empty())

        log.debug(
            "retrieved",
            recency=len(recent.chunks),
            lexical=len(lexical.chunks),
            vector=len(vector.chunks),
        )
        return fused

    async def _expand_and_rerank(
        self, request: RetrievalRequest, ranked: list[Chunk], log: Any
    ) -> list[Chunk]:
        # Ascending order: the best chunks are at the end
        seeds = ranked[-self.settings.n_results_to_expand :]
        outcomes = await asyncio.gather(
            *(
                self.retrievers.retrieve_vector(
                    request.with_query(chunk.content, n=self.settings.n_embeddings_expand_to)
                )
                for chunk in seeds
            )
        )
        expanded = [chunk for outcome in outcomes for chunk in outcome.unwrap_or_empty()]

        candidates = deduplicate_chunks([*ranked, *expanded])
        log.debug("expanded", seeds=len(seeds), expanded=len(expanded), candidates=len(candidates))
        return await self.reranker.rerank(request.query, candidates, self.settings.n_final)

    @staticmethod
    def _advance(log: Any, state: PipelineState, **fields: Any) -> PipelineState:
        log.debug("pipeline_state", state=state.value, **fields)
        return state
