"""Core types for the retrieval pipeline.

This module defines the data structures passed between the retrievers,
the deduplicator, the reranker and the orchestrator.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PipelineState(str, Enum):
    """Lifecycle of a single pipeline run.

    Attributes:
        IDLE: Run accepted, nothing issued yet.
        RETRIEVING: Source retrievers in flight.
        DEDUPLICATING: Fused candidates being collapsed.
        RERANKING: Relevance model scoring candidates.
        DONE: Result produced.
        FAILED: Reranking aborted the run.
    """

    IDLE = "idle"
    RETRIEVING = "retrieving"
    DEDUPLICATING = "deduplicating"
    RERANKING = "reranking"
    DONE = "done"
    FAILED = "failed"


class Chunk(BaseModel):
    """A contiguous span of text extracted from one file.

    Attributes:
        filepath: Identifier of the source file.
        content: Text of the span.
        digest: Stable identity of the source document, typically the filepath.
        start_line: First line of the span (inclusive).
        end_line: Last line of the span (inclusive).
        index: Position of the chunk within its document.
        metadata: Extra collaborator-specific fields.
    """

    model_config = ConfigDict(frozen=True)

    filepath: str = Field(description="Source file identifier")
    content: str = Field(description="Chunk text")
    digest: str = Field(description="Stable identity of the source document")
    start_line: int = Field(ge=0, description="First line of the span (inclusive)")
    end_line: int = Field(ge=0, description="Last line of the span (inclusive)")
    index: int = Field(default=0, ge=0, description="Position of the chunk within its document")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Extra fields")

    @model_validator(mode="after")
    def check_span(self) -> "Chunk":
        if self.end_line < self.start_line:
            raise ValueError(
                f"end_line ({self.end_line}) must not precede start_line ({self.start_line})"
            )
        return self

    def overlaps(self, other: "Chunk") -> bool:
        """Whether both chunks belong to the same document and their spans intersect."""
        return (
            self.digest == other.digest
            and self.start_line <= other.end_line
            and other.start_line <= self.end_line
        )


class ScopeTag(BaseModel):
    """A (branch, directory) pair restricting which workspace snapshot is searched.

    Attributes:
        branch: Repository branch name.
        directory: Workspace directory the branch is checked out in.
    """

    model_config = ConfigDict(frozen=True)

    branch: str = Field(description="Repository branch")
    directory: str = Field(description="Workspace directory")

    @property
    def key(self) -> str:
        """Tag rendered the way index payloads store it."""
        return f"{self.directory}::{self.branch}"


class RetrievalRequest(BaseModel):
    """Arguments of one retrieval call.

    Attributes:
        query: Query text.
        tags: Scope tags the retrieval is restricted to.
        filter_directory: Optional directory prefix filter.
        n: Requested result count per retriever.
    """

    model_config = ConfigDict(frozen=True)

    query: str = Field(description="Query text")
    tags: tuple[ScopeTag, ...] = Field(default=(), description="Scope tags")
    filter_directory: str | None = Field(default=None, description="Directory prefix filter")
    n: int = Field(default=50, ge=0, description="Requested result count")

    def with_query(self, query: str, n: int | None = None) -> "RetrievalRequest":
        """Derive a request around different query text (e.g. a chunk's content)."""
        update: dict[str, Any] = {"query": query}
        if n is not None:
            update["n"] = n
        return self.model_copy(update=update)


@dataclass(frozen=True)
class ScoredCandidate:
    """A chunk paired with its relevance score for one rerank call.

    Attributes:
        chunk: The candidate chunk.
        score: Relevance score (higher is better).
        position: Index of the chunk in the rerank input.
    """

    chunk: Chunk
    score: float
    position: int


@dataclass(frozen=True)
class RetrievalOutcome:
    """Result of a single source retriever: chunks, or the error that replaced them."""

    source: str
    chunks: tuple[Chunk, ...] = ()
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap_or_empty(self) -> list[Chunk]:
        return list(self.chunks) if self.error is None else []
