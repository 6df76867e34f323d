"""Collapsing of fused retrieval results that cover the same code."""

from collections.abc import Iterable

from context_retrieval.types import Chunk


def deduplicate_chunks(chunks: Iterable[Chunk]) -> list[Chunk]:
    """Drop chunks that overlap an earlier chunk of the same document.

    Two chunks are duplicates when their digests match and their inclusive
    line spans intersect. The earliest-seen chunk is kept, so the caller's
    input order decides which source wins.

    Args:
        chunks: Candidate chunks in priority order.

    Returns:
        Chunks with no two sharing a digest and an intersecting span, in
        input order.
    """
    kept: list[Chunk] = []
    kept_by_digest: dict[str, list[Chunk]] = {}

    for chunk in chunks:
        same_document = kept_by_digest.setdefault(chunk.digest, [])
        if any(chunk.overlaps(existing) for existing in same_document):
            continue
        same_document.append(chunk)
        kept.append(chunk)

    return kept
