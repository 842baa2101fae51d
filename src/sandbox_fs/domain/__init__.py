"""Domain layer: value objects, errors, pure path and edit logic. No I/O."""

from .errors import (
    AccessDenied,
    BackendFailure,
    ConfigError,
    NoMatch,
    ParentMissing,
    PartOutOfRange,
    SandboxFsError,
)
from .models import (
    DirEntry,
    Distribution,
    EditOperation,
    EditOutcome,
    FileInfo,
    ResolvedPath,
    SandboxRoots,
    TreeEntry,
)

__all__ = [
    "AccessDenied",
    "BackendFailure",
    "ConfigError",
    "NoMatch",
    "ParentMissing",
    "PartOutOfRange",
    "SandboxFsError",
    "DirEntry",
    "Distribution",
    "EditOperation",
    "EditOutcome",
    "FileInfo",
    "ResolvedPath",
    "SandboxRoots",
    "TreeEntry",
]
