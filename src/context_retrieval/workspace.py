"""Local-filesystem workspace access."""

import asyncio
import logging
from collections.abc import Callable, Iterable
from pathlib import Path

logger = logging.getLogger(__name__)


class LocalWorkspace:
    """Workspace reading files from disk.

    The editor owns the list of open files; it is supplied either as a fixed
    list or as a callable consulted on every lookup.

    Attributes:
        root: Directory relative paths are resolved against.
        encoding: Text encoding used to read files.
    """

    def __init__(
        self,
        root: str | Path = ".",
        open_files: Iterable[str] | Callable[[], Iterable[str]] = (),
        encoding: str = "utf-8",
    ) -> None:
        self.root = Path(root)
        self.encoding = encoding
        self._open_files = open_files if callable(open_files) else list(open_files)

    def _resolve(self, path: str) -> Path:
        candidate = Path(path)
        return candidate if candidate.is_absolute() else self.root / candidate

    async def read_file(self, path: str) -> str:
        """Read a file as text without blocking the event loop.

        Raises:
            OSError: If the file cannot be read.
        """
        resolved = self._resolve(path)
        return await asyncio.to_thread(resolved.read_text, encoding=self.encoding, errors="replace")

    async def list_open_files(self) -> list[str]:
        """Open files in editor order, most relevant tab first."""
        if callable(self._open_files):
            return list(self._open_files())
        return list(self._open_files)
