"""Fakes and builders shared by the test modules."""

from collections.abc import AsyncIterator, Sequence

from context_retrieval.types import Chunk, ScopeTag

SCOPE = [ScopeTag(branch="main", directory="/repo")]


def make_chunk(
    filepath: str,
    start_line: int = 0,
    end_line: int | None = None,
    content: str | None = None,
    digest: str | None = None,
    index: int = 0,
) -> Chunk:
    """Build a chunk whose digest defaults to its filepath."""
    end = start_line if end_line is None else end_line
    return Chunk(
        filepath=filepath,
        content=content if content is not None else f"{filepath}:{start_line}-{end}",
        digest=digest or filepath,
        start_line=start_line,
        end_line=end,
        index=index,
    )


class LineChunker:
    """Chunker splitting documents every ``lines_per_chunk`` lines."""

    def __init__(self, lines_per_chunk: int = 2) -> None:
        self.lines_per_chunk = lines_per_chunk
        self.calls: list[tuple[str, int, str]] = []

    async def split(
        self,
        filepath: str,
        contents: str,
        max_chunk_size: int,
        digest: str,
    ) -> AsyncIterator[Chunk]:
        self.calls.append((filepath, max_chunk_size, digest))
        lines = contents.splitlines()
        for index, start in enumerate(range(0, len(lines), self.lines_per_chunk)):
            end = min(start + self.lines_per_chunk, len(lines)) - 1
            yield Chunk(
                filepath=filepath,
                content="\n".join(lines[start : end + 1]),
                digest=digest,
                start_line=start,
                end_line=end,
                index=index,
            )


class FakeWorkspace:
    """In-memory workspace."""

    def __init__(self, files: dict[str, str] | None = None, open_files: list[str] | None = None):
        self.files = files or {}
        self.open_files = open_files or []
        self.reads: list[str] = []

    async def read_file(self, path: str) -> str:
        self.reads.append(path)
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]

    async def list_open_files(self) -> list[str]:
        return list(self.open_files)


class ContentScoredModel:
    """Relevance model scoring chunks by a content lookup table."""

    def __init__(self, scores: dict[str, float] | None = None, default: float = 0.0) -> None:
        self.scores = scores or {}
        self.default = default
        self.calls: list[tuple[str, list[Chunk]]] = []

    async def score(self, query: str, chunks: Sequence[Chunk]) -> list[float]:
        self.calls.append((query, list(chunks)))
        return [self.scores.get(chunk.content, self.default) for chunk in chunks]

