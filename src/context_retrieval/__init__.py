"""Retrieval fusion and reranking for code context.

Combines lexical search, vector similarity and recently edited files into a
small, ranked set of code chunks for a query:
- Concurrent fan-out to the three sources with degrade-and-continue on failure
- Overlap-aware deduplication that keeps the highest-priority source
- Budgeted reranking with an external relevance model
- Optional expansion round around the best chunks

Example usage:
    >>> from context_retrieval import RetrievalPipeline, ScopeTag
    >>> pipeline = RetrievalPipeline(
    ...     lexical_index=fts,
    ...     vector_index=vectors,
    ...     chunker=chunker,
    ...     workspace=workspace,
    ...     relevance_model=model,
    ... )
    >>> chunks = await pipeline.run("where are retries configured?", [ScopeTag(branch="main", directory="/repo")])
"""

from context_retrieval.config import Settings, get_settings
from context_retrieval.dedupe import deduplicate_chunks
from context_retrieval.errors import (
    RelevanceModelError,
    RerankerNotConfiguredError,
    RetrievalError,
    RetrievalTimeoutError,
)
from context_retrieval.pipeline import RetrievalPipeline
from context_retrieval.protocols import (
    Chunker,
    LexicalIndex,
    QueryEmbedder,
    RelevanceModel,
    VectorIndex,
    Workspace,
)
from context_retrieval.query import build_lexical_query, normalize_query
from context_retrieval.recent_edits import RecentEditCache
from context_retrieval.reranking import ChunkReranker
from context_retrieval.retrievers import SourceRetrievers
from context_retrieval.types import (
    Chunk,
    PipelineState,
    RetrievalOutcome,
    RetrievalRequest,
    ScopeTag,
    ScoredCandidate,
)
from context_retrieval.workspace import LocalWorkspace

__all__ = [
    # Pipeline
    "RetrievalPipeline",
    "SourceRetrievers",
    "ChunkReranker",
    "RecentEditCache",
    "LocalWorkspace",
    "deduplicate_chunks",
    "normalize_query",
    "build_lexical_query",
    # Types
    "Chunk",
    "ScopeTag",
    "RetrievalRequest",
    "RetrievalOutcome",
    "ScoredCandidate",
    "PipelineState",
    # Collaborators
    "LexicalIndex",
    "VectorIndex",
    "Chunker",
    "Workspace",
    "RelevanceModel",
    "QueryEmbedder",
    # Errors
    "RetrievalError",
    "RerankerNotConfiguredError",
    "RelevanceModelError",
    "RetrievalTimeoutError",
    # Config
    "Settings",
    "get_settings",
]
