"""Sandbox path resolution: turn a caller-supplied path into a verified in-bounds ResolvedPath.

Two checks run for every path:

1. a lexical check on the normalized absolute path, before any I/O;
2. a check on the symlink-resolved real path reported by the backend, so a
   link inside the sandbox cannot be used to reach a target outside it.

A path that does not exist yet (a file about to be written) cannot be
realpath'd; its *parent* is resolved and checked instead.  When realpath fails
on something that does exist (a dangling link, a timeout), the failure
propagates.
"""

from __future__ import annotations

import logging
import os

from sandbox_fs.application.ports import Backend
from sandbox_fs.domain import AccessDenied, BackendFailure, ParentMissing, ResolvedPath, SandboxRoots
from sandbox_fs.domain.paths import expand_home, make_absolute, normalize_path, parent_of

logger = logging.getLogger(__name__)


class SandboxPathResolver:
    """Resolve paths against a fixed set of sandbox roots.

    ``home`` is the backend's home directory, substituted for a leading ``~``.
    ``cwd`` anchors relative paths; it defaults to this process's working
    directory, matching how the roots themselves were absolutised.
    """

    def __init__(
        self,
        roots: SandboxRoots,
        backend: Backend,
        *,
        home: str,
        cwd: str | None = None,
    ) -> None:
        self._roots = roots
        self._backend = backend
        self._home = home
        self._cwd = cwd if cwd is not None else os.getcwd()

    @property
    def roots(self) -> SandboxRoots:
        return self._roots

    def absolute(self, raw_path: str) -> str:
        """Home-expanded, absolute, lexically normalized form of ``raw_path``. No I/O."""
        return make_absolute(expand_home(raw_path, self._home), self._cwd)

    async def resolve(self, raw_path: str) -> ResolvedPath:
        absolute = self.absolute(raw_path)

        if not self._roots.contains(absolute):
            logger.warning("resolve: %r outside sandbox roots", absolute)
            raise AccessDenied(
                absolute,
                f"path outside allowed directories ({', '.join(self._roots)})",
            )

        try:
            real = normalize_path(await self._backend.realpath(absolute))
        except BackendFailure:
            # Only an absent target may fall back; a link that failed to resolve must not.
            if await self._backend.exists(absolute):
                logger.warning("resolve: %r exists but could not be resolved", absolute)
                raise
            logger.debug("resolve: %r does not exist yet, checking parent", absolute)
            return await self._resolve_new_file(absolute)

        if not self._roots.contains(real):
            logger.warning("resolve: %r is a link to %r outside sandbox roots", absolute, real)
            raise AccessDenied(absolute, f"symlink target outside allowed directories ({real})")

        logger.debug("resolve: %r -> %r", raw_path, real)
        return ResolvedPath(real)

    async def _resolve_new_file(self, absolute: str) -> ResolvedPath:
        parent = parent_of(absolute)
        try:
            real_parent = normalize_path(await self._backend.realpath(parent))
        except BackendFailure as e:
            raise ParentMissing(absolute, parent) from e
        if not self._roots.contains(real_parent):
            logger.warning("resolve: parent of %r resolves to %r outside sandbox roots", absolute, real_parent)
            raise ParentMissing(absolute, parent)
        return ResolvedPath(absolute)
