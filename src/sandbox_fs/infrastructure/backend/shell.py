"""Backend that reaches the target filesystem by composing shell commands.

Every capability becomes one ``<shell> -c '<command>'`` invocation, optionally
behind a prefix such as ``wsl -d Ubuntu``.  Arguments are quoted with
``shlex.quote``; nothing caller-supplied is interpolated unquoted.
"""

from __future__ import annotations

import asyncio
import base64
import logging
import shlex
from datetime import datetime, timezone
from typing import List, Optional, Sequence
from uuid import uuid4

from sandbox_fs.config.constants import TEMP_FILE_MARKER, WRITE_CHUNK_SIZE
from sandbox_fs.domain import BackendFailure, DirEntry, FileInfo
from sandbox_fs.domain.paths import join, parent_of

logger = logging.getLogger(__name__)


def _q(s: str) -> str:
    return shlex.quote(s)


class ShellBackend:
    """Run backend capabilities through ``asyncio`` subprocesses.

    ``prefix`` is prepended to every argv (empty for a local shell).
    ``timeout_s`` bounds each command; ``None`` waits indefinitely.
    """

    def __init__(
        self,
        prefix: Sequence[str] = (),
        *,
        shell: str = "sh",
        timeout_s: Optional[float] = None,
        write_chunk_size: int = WRITE_CHUNK_SIZE,
    ) -> None:
        # Each chunk is decoded on its own, so it must hold whole base64 quanta.
        if write_chunk_size <= 0 or write_chunk_size % 4:
            raise ValueError(f"write_chunk_size must be a positive multiple of 4, got {write_chunk_size}")
        self.prefix = tuple(prefix)
        self.shell = shell
        self.timeout_s = timeout_s
        self.write_chunk_size = write_chunk_size

    # ------------------------------------------------------------------
    # Command execution
    # ------------------------------------------------------------------

    def argv(self, command: str) -> List[str]:
        return [*self.prefix, self.shell, "-c", command]

    async def exec_bytes(self, command: str) -> bytes:
        """Run ``command`` and return raw stdout; raise ``BackendFailure`` on non-zero exit."""
        argv = self.argv(command)
        logger.debug("exec: %s", command)
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise BackendFailure(command, f"cannot start {argv[0]}: {e}") from e
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout_s)
        except asyncio.TimeoutError as e:
            proc.kill()
            await proc.wait()
            raise BackendFailure(command, f"timed out after {self.timeout_s}s") from e
        if proc.returncode != 0:
            diagnostic = stderr.decode("utf-8", errors="replace").strip()
            logger.debug("exec failed (%s): %s", proc.returncode, diagnostic)
            raise BackendFailure(command, diagnostic, proc.returncode)
        return stdout

    async def run(self, command: str) -> str:
        return (await self.exec_bytes(command)).decode("utf-8", errors="replace")

    # ------------------------------------------------------------------
    # Core capabilities
    # ------------------------------------------------------------------

    async def realpath(self, path: str) -> str:
        return (await self.run(f"realpath -e -- {_q(path)}")).strip()

    async def exists(self, path: str) -> bool:
        p = _q(path)
        out = await self.run(f"if [ -e {p} ] || [ -L {p} ]; then echo 1; else echo 0; fi")
        return out.strip() == "1"

    async def size(self, path: str) -> int:
        out = (await self.run(f"wc -c < {_q(path)}")).strip()
        try:
            return int(out)
        except ValueError as e:
            raise BackendFailure(f"wc -c {path}", f"unexpected size output: {out!r}") from e

    async def read_range(self, path: str, start: int, length: int) -> bytes:
        if length <= 0:
            return b""
        return await self.exec_bytes(f"tail -c +{start + 1} -- {_q(path)} | head -c {length}")

    async def read_all(self, path: str) -> bytes:
        return await self.exec_bytes(f"cat -- {_q(path)}")

    async def write_all(self, path: str, data: bytes) -> None:
        """Write ``data`` to a temp file beside ``path`` and rename it into place.

        The content travels base64-encoded in bounded chunks so no command line
        grows past the platform limit.  An existing target's permission bits
        carry over to the replacement.  On any failure the temp file is removed
        and the target is left as it was.
        """
        name = path.rsplit("/", 1)[-1]
        tmp = join(parent_of(path), f".{name}{TEMP_FILE_MARKER}{uuid4().hex[:12]}")
        encoded = base64.b64encode(data).decode("ascii")
        try:
            await self.run(f": > {_q(tmp)}")
            for i in range(0, len(encoded), self.write_chunk_size):
                chunk = encoded[i:i + self.write_chunk_size]
                await self.run(f"printf %s {_q(chunk)} | base64 -d >> {_q(tmp)}")
            # The temp file was created with umask permissions; keep the target's mode.
            await self.run(
                f"if [ -e {_q(path)} ]; then chmod --reference={_q(path)} -- {_q(tmp)}; fi"
                f" && mv -f -- {_q(tmp)} {_q(path)}"
            )
        except BackendFailure:
            try:
                await self.run(f"rm -f -- {_q(tmp)}")
            except BackendFailure as cleanup:
                logger.warning("write_all: could not remove temp file %s: %s", tmp, cleanup)
            raise

    # ------------------------------------------------------------------
    # Supplementary operations
    # ------------------------------------------------------------------

    async def home(self) -> str:
        return (await self.run('printf %s "$HOME"')).strip()

    async def stat(self, path: str) -> FileInfo:
        out = (await self.run(f"stat -c '%s %W %Y %X %a %F' -- {_q(path)}")).strip()
        parts = out.split(" ", 5)
        if len(parts) != 6:
            raise BackendFailure(f"stat {path}", f"unexpected stat output: {out!r}")
        size, birth, mtime, atime, mode, kind = parts
        return FileInfo(
            size=int(size),
            created=_ts(birth),
            modified=_ts(mtime),
            accessed=_ts(atime),
            is_directory="directory" in kind,
            is_file="regular" in kind,
            permissions=mode[-3:],
        )

    async def list_dir(self, path: str) -> List[DirEntry]:
        out = await self.run(f"find {_q(path)} -mindepth 1 -maxdepth 1 -printf '%y\\t%f\\n'")
        entries = []
        for line in out.splitlines():
            if not line:
                continue
            kind, _, name = line.partition("\t")
            entries.append(DirEntry(name=name, is_directory=kind == "d"))
        return sorted(entries, key=lambda e: e.name)

    async def make_dirs(self, path: str) -> None:
        await self.run(f"mkdir -p -- {_q(path)}")

    async def move(self, source: str, destination: str) -> None:
        dst = _q(destination)
        await self.run(
            f"if [ -e {dst} ]; then echo 'Destination already exists: '{dst} >&2; exit 1; fi; "
            f"mv -- {_q(source)} {dst}"
        )

    async def find_files(self, root: str) -> List[str]:
        out = await self.run(f"find {_q(root)} -type f")
        return [line for line in out.splitlines() if line]


def _ts(value: str) -> datetime:
    # %W prints 0 (or '-') when the filesystem does not record birth time.
    try:
        seconds = int(value)
    except ValueError:
        seconds = 0
    return datetime.fromtimestamp(seconds, tz=timezone.utc)
