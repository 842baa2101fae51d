"""File tools: the operations exposed to agents, each gated by the sandbox resolver.

Every method resolves its path argument(s) through ``SandboxPathResolver``
before touching the backend, and returns plain text.  Errors propagate as
``SandboxFsError`` (or ``ValueError`` for bad arguments); the interface layer
turns them into error responses.  ``read_multiple_files`` is the exception: it
reports failures inline per file.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import re
from typing import List, Sequence

from sandbox_fs.application.chunked_reader import ChunkedRangeReader
from sandbox_fs.application.patch_engine import FuzzyPatchEngine
from sandbox_fs.application.ports import FileSystemBackend
from sandbox_fs.application.resolver import SandboxPathResolver
from sandbox_fs.config import SandboxFsConfig
from sandbox_fs.config.constants import MULTI_FILE_SEPARATOR
from sandbox_fs.domain import (
    AccessDenied,
    BackendFailure,
    ConfigError,
    EditOperation,
    ParentMissing,
    ResolvedPath,
    SandboxFsError,
    SandboxRoots,
    TreeEntry,
)
from sandbox_fs.domain.paths import join, parent_of

logger = logging.getLogger(__name__)


class FileTools:
    def __init__(
        self,
        resolver: SandboxPathResolver,
        reader: ChunkedRangeReader,
        engine: FuzzyPatchEngine,
        backend: FileSystemBackend,
    ) -> None:
        self.resolver = resolver
        self.reader = reader
        self.engine = engine
        self.backend = backend

    @property
    def roots(self) -> SandboxRoots:
        return self.resolver.roots

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    async def read_file(self, path: str) -> str:
        valid = await self.resolver.resolve(path)
        data = await self.backend.read_all(valid)
        return data.decode("utf-8", errors="replace")

    async def read_file_by_parts(self, path: str, part_number: int) -> str:
        valid = await self.resolver.resolve(path)
        return await self.reader.read_part(valid, part_number)

    async def read_multiple_files(self, paths: Sequence[str]) -> str:
        """Read ``paths`` concurrently. One file failing does not stop the others."""

        async def _read_one(p: str) -> str:
            try:
                return f"{p}:\n{await self.read_file(p)}\n"
            except (SandboxFsError, ValueError) as e:
                logger.info("read_multiple_files: %s failed: %s", p, e)
                return f"{p}: Error - {e}"

        results = await asyncio.gather(*(_read_one(p) for p in paths))
        return MULTI_FILE_SEPARATOR.join(results)

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    async def write_file(self, path: str, content: str) -> str:
        valid = await self.resolver.resolve(path)
        await self.backend.write_all(valid, content.encode("utf-8"))
        return f"Successfully wrote to {path}"

    async def edit_file(self, path: str, edits: Sequence[EditOperation], dry_run: bool = False) -> str:
        valid = await self.resolver.resolve(path)
        return await self.engine.apply_edits(valid, edits, dry_run=dry_run)

    async def create_directory(self, path: str) -> str:
        target = await self._resolve_for_mkdir(path)
        await self.backend.make_dirs(target)
        return f"Successfully created directory {path}"

    async def move_file(self, source: str, destination: str) -> str:
        valid_source = await self.resolver.resolve(source)
        valid_destination = await self.resolver.resolve(destination)
        await self.backend.move(valid_source, valid_destination)
        return f"Successfully moved {source} to {destination}"

    async def _resolve_for_mkdir(self, path: str) -> ResolvedPath:
        """Like ``resolve`` but accepts missing intermediate directories.

        Walks up to the nearest ancestor the resolver accepts and re-attaches
        the missing segments to that ancestor's real path.
        """
        try:
            return await self.resolver.resolve(path)
        except ParentMissing as missing:
            absolute = self.resolver.absolute(path)
            ancestor = parent_of(parent_of(absolute))
            while True:
                try:
                    real_ancestor = await self.resolver.resolve(ancestor)
                except ParentMissing:
                    if ancestor == "/":
                        raise missing
                    ancestor = parent_of(ancestor)
                    continue
                except AccessDenied:
                    raise missing
                rest = absolute[len(ancestor):] if ancestor != "/" else absolute
                return ResolvedPath(join(real_ancestor, rest))

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    async def list_directory(self, path: str) -> str:
        valid = await self.resolver.resolve(path)
        entries = await self.backend.list_dir(valid)
        return "\n".join(f"{'[DIR]' if e.is_directory else '[FILE]'} {e.name}" for e in entries)

    async def directory_tree(self, path: str) -> str:
        tree = await self._build_tree(path)
        return json.dumps([t.to_dict() for t in tree], indent=2)

    async def _build_tree(self, path: str) -> List[TreeEntry]:
        # Each level is resolved again so a symlinked subdirectory cannot lead out.
        valid = await self.resolver.resolve(path)
        result: List[TreeEntry] = []
        for entry in await self.backend.list_dir(valid):
            if entry.is_directory:
                children = await self._build_tree(join(valid, entry.name))
                result.append(TreeEntry(name=entry.name, type="directory", children=children))
            else:
                result.append(TreeEntry(name=entry.name, type="file"))
        return result

    async def search_files(self, path: str, pattern: str, exclude_patterns: Sequence[str] = ()) -> str:
        """Files under ``path`` whose full path matches the regex ``pattern`` (case-insensitive).

        ``exclude_patterns`` are globs where ``*`` matches any run of characters
        anywhere in the path.  An invalid ``pattern`` raises ``ValueError``.
        """
        valid = await self.resolver.resolve(path)
        try:
            needle = re.compile(pattern, re.IGNORECASE)
        except re.error as e:
            raise ValueError(f"Invalid search pattern {pattern!r}: {e}") from e
        excludes = [re.compile(re.escape(ex).replace(r"\*", ".*")) for ex in exclude_patterns]
        matches = [
            f
            for f in await self.backend.find_files(valid)
            if needle.search(f) and not any(ex.search(f) for ex in excludes)
        ]
        return "\n".join(matches) if matches else "No matches found"

    async def get_file_info(self, path: str) -> str:
        valid = await self.resolver.resolve(path)
        info = await self.backend.stat(valid)
        fields = {
            "size": info.size,
            "created": info.created.isoformat(),
            "modified": info.modified.isoformat(),
            "accessed": info.accessed.isoformat(),
            "is_directory": info.is_directory,
            "is_file": info.is_file,
            "permissions": info.permissions,
        }
        return "\n".join(f"{k}: {v}" for k, v in fields.items())

    def list_allowed_directories(self) -> str:
        return "Allowed directories:\n" + "\n".join(self.roots)


async def build_file_tools(config: SandboxFsConfig, backend: FileSystemBackend) -> FileTools:
    """Wire the resolver, reader and patch engine for ``config`` once at startup.

    Queries the backend's home directory (unless configured) and checks that
    every sandbox root exists and is a directory.
    """
    try:
        directories = config.require_directories().allowed_directories
    except ValueError as e:
        raise ConfigError(str(e)) from e

    home = config.home_directory or await backend.home()
    roots = SandboxRoots.from_directories(directories, home=home, cwd=os.getcwd())
    for root in roots:
        try:
            info = await backend.stat(root)
        except BackendFailure as e:
            raise ConfigError(f"Error accessing directory {root}: {e.diagnostic}") from e
        if not info.is_directory:
            raise ConfigError(f"{root} is not a directory")

    logger.info("sandbox roots: %s", ", ".join(roots))
    resolver = SandboxPathResolver(roots, backend, home=home)
    reader = ChunkedRangeReader(backend, part_size=config.part_size, max_backtrack=config.max_backtrack)
    return FileTools(resolver, reader, FuzzyPatchEngine(backend), backend)
