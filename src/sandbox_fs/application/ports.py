"""Ports (abstract interfaces) used by the application layer.

Each port is a ``Protocol`` so the application depends only on the *shape* of the
collaborator, not on a concrete implementation.  ``ShellBackend`` satisfies these
shapes for a real shell; the tests use an in-memory fake.  The application never
imports from infrastructure.
"""

from __future__ import annotations

from typing import List, Protocol, Sequence

from sandbox_fs.domain import DirEntry, FileInfo


class Backend(Protocol):
    """Command-execution capability: the only way the core reaches the target filesystem.

    Every method fails with ``BackendFailure`` carrying the backend's diagnostic
    text when the underlying command exits non-zero.
    """

    async def run(self, command: str) -> str:
        """Run a shell command and return its stdout."""
        ...

    async def realpath(self, path: str) -> str:
        """Canonical, symlink-resolved form of ``path``. Fails if ``path`` does not exist."""
        ...

    async def exists(self, path: str) -> bool:
        """True if ``path`` names an entry, including a dangling symlink."""
        ...

    async def size(self, path: str) -> int: ...

    async def read_range(self, path: str, start: int, length: int) -> bytes:
        """Up to ``length`` bytes starting at byte offset ``start`` (0-based)."""
        ...

    async def read_all(self, path: str) -> bytes: ...

    async def write_all(self, path: str, data: bytes) -> None:
        """Replace the file's content. Implementations must not leave it half-written."""
        ...


class FileSystemBackend(Backend, Protocol):
    """Backend plus the one-shot operations behind the outer file tools."""

    async def home(self) -> str:
        """The backend's home directory, substituted for ``~``."""
        ...

    async def stat(self, path: str) -> FileInfo: ...

    async def list_dir(self, path: str) -> List[DirEntry]: ...

    async def make_dirs(self, path: str) -> None: ...

    async def move(self, source: str, destination: str) -> None:
        """Rename ``source`` to ``destination``; fails if the destination exists."""
        ...

    async def find_files(self, root: str) -> Sequence[str]:
        """Absolute paths of all regular files beneath ``root``."""
        ...
