"""Source retrievers feeding the fusion pipeline.

Three independent read-only lookups:
- Lexical: trigram disjunction against the full-text index
- Vector: raw query text against the embedding index
- Recency: recently edited files, padded with open files, split into chunks

Each lookup returns a RetrievalOutcome. A failing collaborator produces an
outcome carrying the error, which the orchestrator turns into no results.
"""

import asyncio
import logging

from context_retrieval.protocols import Chunker, LexicalIndex, VectorIndex, Workspace
from context_retrieval.query import build_lexical_query, normalize_query
from context_retrieval.recent_edits import RecentEditCache
from context_retrieval.types import Chunk, RetrievalOutcome, RetrievalRequest

logger = logging.getLogger(__name__)

LEXICAL_SOURCE = "lexical"
VECTOR_SOURCE = "vector"
RECENCY_SOURCE = "recency"


class SourceRetrievers:
    """Lexical, vector and recency lookups over injected collaborators.

    Attributes:
        lexical_index: Full-text index.
        vector_index: Embedding index.
        chunker: Document chunker used for recency results.
        workspace: File access and open-file listing.
        recent_edits: Recently edited files, read-only here.
        max_chunk_size: Bound passed to the chunker.
    """

    def __init__(
        self,
        lexical_index: LexicalIndex,
        vector_index: VectorIndex,
        chunker: Chunker,
        workspace: Workspace,
        recent_edits: RecentEditCache,
        max_chunk_size: int,
    ) -> None:
        self.lexical_index = lexical_index
        self.vector_index = vector_index
        self.chunker = chunker
        self.workspace = workspace
        self.recent_edits = recent_edits
        self.max_chunk_size = max_chunk_size

    async def retrieve_lexical(self, request: RetrievalRequest) -> RetrievalOutcome:
        """Search the full-text index with the query's trigram disjunction.

        Args:
            request: Retrieval request; ``n`` caps the result count.

        Returns:
            Outcome with up to ``n`` chunks. Empty when the query has no
            lexical signal, error branch when the index call fails.
        """
        if not request.query.strip():
            return RetrievalOutcome(source=LEXICAL_SOURCE)

        try:
            trigrams = normalize_query(request.query)
            if not trigrams:
                logger.debug("Query has no lexical terms, skipping full-text search")
                return RetrievalOutcome(source=LEXICAL_SOURCE)

            chunks = await self.lexical_index.search(
                query=build_lexical_query(trigrams),
                tags=request.tags,
                directory=request.filter_directory,
                limit=request.n,
            )
        except Exception as e:
            logger.warning(f"Error retrieving from full-text index: {e}")
            return RetrievalOutcome(source=LEXICAL_SOURCE, error=e)

        return RetrievalOutcome(source=LEXICAL_SOURCE, chunks=tuple(chunks[: request.n]))

    async def retrieve_vector(self, request: RetrievalRequest) -> RetrievalOutcome:
        """Search the embedding index with the raw query text.

        Args:
            request: Retrieval request; ``n`` caps the result count.

        Returns:
            Outcome with up to ``n`` chunks in the index's similarity order.
        """
        try:
            chunks = await self.vector_index.search(
                query_text=request.query,
                tags=request.tags,
                directory=request.filter_directory,
                limit=request.n,
            )
        except Exception as e:
            logger.warning(f"Error retrieving from vector index: {e}")
            return RetrievalOutcome(source=VECTOR_SOURCE, error=e)

        return RetrievalOutcome(source=VECTOR_SOURCE, chunks=tuple(chunks[: request.n]))

    async def recent_filepaths(self, n: int) -> list[str]:
        """Up to ``n`` recently edited files, padded with open files.

        After an editor reload there are no recorded edits yet, but the open
        tabs still show what the user was working on.
        """
        if n <= 0:
            return []

        filepaths = self.recent_edits.keys(limit=n)
        if len(filepaths) < n:
            open_files = await self.workspace.list_open_files()
            for filepath in open_files:
                if len(filepaths) >= n:
                    break
                if filepath not in filepaths:
                    filepaths.append(filepath)

        return filepaths

    async def retrieve_recent(self, request: RetrievalRequest) -> RetrievalOutcome:
        """Chunk the recently edited and open files.

        No relevance filtering is applied; the query text is ignored.

        Args:
            request: Retrieval request; ``n`` caps the number of files.

        Returns:
            Outcome with the chunks of each file, files in recency order and
            chunks in document order.
        """
        try:
            filepaths = await self.recent_filepaths(request.n)
        except Exception as e:
            logger.warning(f"Error listing recently edited files: {e}")
            return RetrievalOutcome(source=RECENCY_SOURCE, error=e)

        per_file = await asyncio.gather(*(self._chunk_file(path) for path in filepaths))

        chunks = [chunk for file_chunks in per_file for chunk in file_chunks]
        logger.debug(f"Chunked {len(filepaths)} recent files into {len(chunks)} chunks")
        return RetrievalOutcome(source=RECENCY_SOURCE, chunks=tuple(chunks))

    async def _chunk_file(self, filepath: str) -> list[Chunk]:
        try:
            contents = await self.workspace.read_file(filepath)
            return [
                chunk
                async for chunk in self.chunker.split(
                    filepath=filepath,
                    contents=contents,
                    max_chunk_size=self.max_chunk_size,
                    digest=filepath,
                )
            ]
        except Exception as e:
            logger.warning(f"Skipping recent file {filepath}: {e}")
            return []
