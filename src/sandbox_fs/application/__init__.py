"""Application layer: the sandboxed mutation core and the file tools built on it."""

from .chunked_reader import ChunkedRangeReader
from .file_tools import FileTools, build_file_tools
from .patch_engine import FuzzyPatchEngine, fence_diff, unified_diff
from .ports import Backend, FileSystemBackend
from .resolver import SandboxPathResolver

__all__ = [
    "Backend",
    "ChunkedRangeReader",
    "FileSystemBackend",
    "FileTools",
    "FuzzyPatchEngine",
    "SandboxPathResolver",
    "build_file_tools",
    "fence_diff",
    "unified_diff",
]
