"""Domain models: SandboxRoots, ResolvedPath, edits, file metadata. Pure data, no I/O."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from .paths import expand_home, is_within, make_absolute


class ResolvedPath(str):
    """A canonical absolute path proven to lie inside the sandbox.

    Only ``SandboxPathResolver`` constructs these; everything downstream of the
    resolver takes a ``ResolvedPath`` so an unchecked string cannot slip through.
    """
    __slots__ = ()


@dataclass(frozen=True)
class SandboxRoots:
    """Directories the core may operate within. Fixed at startup, read-only afterwards."""
    directories: Tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.directories:
            raise ValueError("SandboxRoots must contain at least one directory")

    @classmethod
    def from_directories(cls, directories: Iterable[str], *, home: str, cwd: str) -> "SandboxRoots":
        """Expand ``~``, absolutise against ``cwd`` and normalize each entry; duplicates are dropped."""
        seen: List[str] = []
        for d in directories:
            p = make_absolute(expand_home(d, home), cwd)
            if p not in seen:
                seen.append(p)
        return cls(directories=tuple(seen))

    def contains(self, path: str) -> bool:
        return any(is_within(path, root) for root in self.directories)

    def __iter__(self):
        return iter(self.directories)

    def __len__(self) -> int:
        return len(self.directories)


@dataclass(frozen=True)
class EditOperation:
    """Replace ``old_text`` with ``new_text``. Edits in a list apply in order."""
    old_text: str
    new_text: str


@dataclass(frozen=True)
class EditOutcome:
    """Result of one edit_file call. Nothing here outlives the call."""
    final_content: str
    diff: str
    applied: bool


@dataclass(frozen=True)
class FileInfo:
    size: int
    created: datetime
    modified: datetime
    accessed: datetime
    is_directory: bool
    is_file: bool
    permissions: str


@dataclass(frozen=True)
class DirEntry:
    name: str
    is_directory: bool


@dataclass
class TreeEntry:
    """One node of directory_tree output. Directories always carry a (possibly empty) children list."""
    name: str
    type: str  # "file" | "directory"
    children: Optional[List["TreeEntry"]] = None

    def to_dict(self) -> dict:
        d: dict = {"name": self.name, "type": self.type}
        if self.children is not None:
            d["children"] = [c.to_dict() for c in self.children]
        return d


@dataclass(frozen=True)
class Distribution:
    """A WSL distribution as listed by ``wsl --list --verbose``."""
    name: str
    state: str
    version: str
    is_default: bool = field(default=False)
