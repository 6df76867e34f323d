"""Relevance reranking of fused candidates under an output budget.

Scores every candidate with the relevance model in a single call, optionally
drops low scorers, and keeps the ``budget`` best candidates. The kept
candidates are returned in ascending score order: the best chunk is last.
"""

import logging
import math
from collections.abc import Sequence

from context_retrieval.errors import RelevanceModelError, RerankerNotConfiguredError
from context_retrieval.protocols import RelevanceModel
from context_retrieval.types import Chunk, ScoredCandidate

logger = logging.getLogger(__name__)


class ChunkReranker:
    """Adapter between the pipeline and an external relevance model.

    Attributes:
        relevance_model: Model producing one score per chunk, or None when
            reranking is not configured.
        threshold_enabled: Whether candidates below ``threshold`` are discarded.
        threshold: Minimum score kept when the gate is enabled.
    """

    def __init__(
        self,
        relevance_model: RelevanceModel | None,
        threshold_enabled: bool = False,
        threshold: float = 0.3,
    ) -> None:
        self.relevance_model = relevance_model
        self.threshold_enabled = threshold_enabled
        self.threshold = threshold

    @property
    def configured(self) -> bool:
        return self.relevance_model is not None

    async def score(self, query: str, chunks: Sequence[Chunk]) -> list[ScoredCandidate]:
        """Score chunks against the query. NaN scores are mapped to -inf.

        Raises:
            RerankerNotConfiguredError: If no relevance model is configured.
            RelevanceModelError: If the model does not return one score per chunk.
        """
        if self.relevance_model is None:
            raise RerankerNotConfiguredError()

        if not chunks:
            return []

        scores = await self.relevance_model.score(query, chunks)
        if len(scores) != len(chunks):
            raise RelevanceModelError(
                f"Relevance model returned {len(scores)} scores for {len(chunks)} chunks",
                expected=len(chunks),
                received=len(scores),
            )

        candidates = []
        for position, (chunk, score) in enumerate(zip(chunks, scores, strict=True)):
            value = float(score)
            if math.isnan(value):
                logger.warning(f"Relevance model returned NaN for {chunk.filepath}, ranked last")
                value = -math.inf
            candidates.append(ScoredCandidate(chunk=chunk, score=value, position=position))
        return candidates

    async def rerank(self, query: str, chunks: Sequence[Chunk], budget: int) -> list[Chunk]:
        """Keep the ``budget`` most relevant chunks, ascending by score.

        Among equal scores the earlier input chunk is preferred when the
        budget cuts through a tie, and is placed first in the output.

        Args:
            query: Query text the chunks are scored against.
            chunks: Deduplicated candidates in fusion order.
            budget: Maximum number of chunks returned.

        Returns:
            At most ``budget`` chunks sorted by ascending relevance score.

        Raises:
            RerankerNotConfiguredError: If no relevance model is configured.
            RelevanceModelError: If the model's scores do not match the input.
        """
        if self.relevance_model is None:
            raise RerankerNotConfiguredError()
        if budget <= 0:
            return []

        candidates = await self.score(query, chunks)
        if not candidates:
            return []

        if self.threshold_enabled:
            before = len(candidates)
            candidates = [c for c in candidates if c.score >= self.threshold]
            logger.debug(
                f"Rerank threshold {self.threshold} kept {len(candidates)}/{before} candidates"
            )

        best = sorted(candidates, key=lambda c: (-c.score, c.position))[:budget]
        ranked = sorted(best, key=lambda c: (c.score, c.position))

        logger.debug(f"Reranked {len(chunks)} candidates down to {len(ranked)} (budget={budget})")
        return [c.chunk for c in ranked]
