"""Interfaces of the collaborators the pipeline consumes.

The lexical index, vector index, chunker, workspace and relevance model are
owned elsewhere; the pipeline only depends on these structural contracts.
"""

from collections.abc import AsyncIterator, Sequence
from typing import Protocol, runtime_checkable

from context_retrieval.types import Chunk, ScopeTag


@runtime_checkable
class LexicalIndex(Protocol):
    """Full-text index matching disjunctive term queries."""

    async def search(
        self,
        query: str,
        tags: Sequence[ScopeTag],
        directory: str | None,
        limit: int,
    ) -> list[Chunk]: ...


@runtime_checkable
class VectorIndex(Protocol):
    """Embedding index returning chunks by descending similarity."""

    async def search(
        self,
        query_text: str,
        tags: Sequence[ScopeTag],
        directory: str | None,
        limit: int,
    ) -> list[Chunk]: ...


@runtime_checkable
class Chunker(Protocol):
    """Splits a document into chunks in document order."""

    def split(
        self,
        filepath: str,
        contents: str,
        max_chunk_size: int,
        digest: str,
    ) -> AsyncIterator[Chunk]: ...


@runtime_checkable
class Workspace(Protocol):
    """File access and editor state of the host."""

    async def read_file(self, path: str) -> str: ...

    async def list_open_files(self) -> list[str]: ...


@runtime_checkable
class RelevanceModel(Protocol):
    """Scores chunks against a query, one score per chunk in input order."""

    async def score(self, query: str, chunks: Sequence[Chunk]) -> list[float]: ...


@runtime_checkable
class QueryEmbedder(Protocol):
    """Turns query text into a dense vector."""

    async def embed(self, text: str, is_query: bool = True) -> list[float]: ...
