"""Read large files in bounded, line-aligned parts through the backend.

Part ``n`` nominally covers bytes ``[(n-1)*part_size, n*part_size)``.  Parts
after the first are nudged so they neither start nor (when possible) end in the
middle of a line:

* the start moves forward to just after the last newline found in the
  ``max_backtrack`` bytes before the nominal start;
* a full-length part is extended up to and including the first newline found
  in the ``max_backtrack`` bytes after it.

Each part is computed independently, so consecutive parts may overlap by a
line or a few bytes.  A part whose start was pulled back also ends earlier,
which can leave bytes between it and the next part that neither returns.
Callers reassembling a file must tolerate both; no exact partition is promised.
"""

from __future__ import annotations

import logging

from sandbox_fs.application.ports import Backend
from sandbox_fs.config.constants import MAX_BACKTRACK, PART_SIZE
from sandbox_fs.domain import PartOutOfRange, ResolvedPath

logger = logging.getLogger(__name__)


class ChunkedRangeReader:
    def __init__(
        self,
        backend: Backend,
        *,
        part_size: int = PART_SIZE,
        max_backtrack: int = MAX_BACKTRACK,
    ) -> None:
        self._backend = backend
        self.part_size = part_size
        self.max_backtrack = max_backtrack

    async def read_part(self, path: ResolvedPath, part_number: int) -> str:
        """Return part ``part_number`` (1-based) of ``path`` as text.

        Raises ``PartOutOfRange`` carrying the file size when the part would
        start at or beyond end-of-file.
        """
        if part_number < 1:
            raise ValueError(f"part_number must be >= 1, got {part_number}")

        size = await self._backend.size(path)
        theoretical_start = (part_number - 1) * self.part_size
        if theoretical_start >= size:
            raise PartOutOfRange(size, part_number)

        if part_number == 1:
            data = await self._backend.read_range(path, 0, self.part_size)
            return _decode(data)

        actual_start = await self._line_start(path, theoretical_start)
        data = await self._backend.read_range(path, actual_start, self.part_size)

        if len(data) == self.part_size:
            data += await self._line_tail(path, actual_start + self.part_size, size)

        logger.debug(
            "read_part: %s part %d start=%d (nominal %d) len=%d size=%d",
            path, part_number, actual_start, theoretical_start, len(data), size,
        )
        return _decode(data)

    async def _line_start(self, path: ResolvedPath, theoretical_start: int) -> int:
        search_start = max(0, theoretical_start - self.max_backtrack)
        search_length = theoretical_start - search_start
        if search_length <= 0:
            return theoretical_start
        window = await self._backend.read_range(path, search_start, search_length)
        idx = window.rfind(b"\n")
        if idx == -1:
            return theoretical_start
        return search_start + idx + 1

    async def _line_tail(self, path: ResolvedPath, end: int, size: int) -> bytes:
        if end >= size:
            return b""
        remaining = min(self.max_backtrack, size - end)
        if remaining <= 0:
            return b""
        window = await self._backend.read_range(path, end, remaining)
        idx = window.find(b"\n")
        if idx == -1:
            return b""
        return window[: idx + 1]


def _decode(data: bytes) -> str:
    # Part boundaries are byte offsets and may split a multi-byte character.
    return data.decode("utf-8", errors="replace")
