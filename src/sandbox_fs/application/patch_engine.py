"""Apply ordered text edits to a file and report them as a unified diff.

The file is fetched once through the backend, edited in memory with
``sandbox_fs.domain.fuzzy`` and, unless this is a dry run, written back in one
``write_all`` call.  ``write_all`` replaces the file via a temp file and a
rename, so a failed write leaves the original untouched.

There is no locking: two concurrent edit calls on the same path race at the
filesystem level and the last writer wins.
"""

from __future__ import annotations

import difflib
import logging
import re
from typing import List, Sequence

from sandbox_fs.application.ports import Backend
from sandbox_fs.domain import EditOperation, EditOutcome, ResolvedPath
from sandbox_fs.domain.fuzzy import apply_edits, normalize_line_endings

logger = logging.getLogger(__name__)

_BACKTICK_RUN_RE = re.compile(r"`+")
_NO_NEWLINE_MARKER = "\\ No newline at end of file\n"


def _split_keepends(text: str) -> List[str]:
    # str.splitlines() also splits on form feeds and unicode separators; only \n counts here.
    if not text:
        return []
    lines = [line + "\n" for line in text.split("\n")]
    if text.endswith("\n"):
        lines.pop()
    else:
        lines[-1] = lines[-1][:-1]
    return lines


def unified_diff(original: str, modified: str, path: str = "file") -> str:
    """Line-context diff of two texts, labelled ``original`` / ``modified``."""
    a = _split_keepends(normalize_line_endings(original))
    b = _split_keepends(normalize_line_endings(modified))
    body = list(
        difflib.unified_diff(
            a, b, fromfile=path, tofile=path, fromfiledate="original", tofiledate="modified", n=4
        )
    )
    if not body:
        body = [f"--- {path}\toriginal\n", f"+++ {path}\tmodified\n"]

    out = [f"Index: {path}\n", "=" * 67 + "\n"]
    for line in body:
        if line.endswith("\n"):
            out.append(line)
        else:
            out.append(line + "\n")
            out.append(_NO_NEWLINE_MARKER)
    return "".join(out)


def fence_diff(diff: str) -> str:
    """Wrap ``diff`` in a ```diff block whose fence is longer than any backtick run inside it."""
    longest = max((len(m) for m in _BACKTICK_RUN_RE.findall(diff)), default=0)
    fence = "`" * max(3, longest + 1)
    return f"{fence}diff\n{diff}{fence}\n\n"


class FuzzyPatchEngine:
    def __init__(self, backend: Backend) -> None:
        self._backend = backend

    async def edit(
        self,
        path: ResolvedPath,
        edits: Sequence[EditOperation],
        *,
        dry_run: bool = False,
    ) -> EditOutcome:
        """Apply ``edits`` in order; persist unless ``dry_run``.

        Raises ``NoMatch`` for the first edit that cannot be placed.  Nothing is
        written in that case.
        """
        raw = await self._backend.read_all(path)
        try:
            original = normalize_line_endings(raw.decode("utf-8"))
        except UnicodeDecodeError as e:
            raise ValueError(f"{path} is not a UTF-8 text file") from e

        modified = apply_edits(original, edits)
        diff = unified_diff(original, modified, path)

        if not dry_run:
            await self._backend.write_all(path, modified.encode("utf-8"))
        logger.info(
            "edit: %s, %d edit(s), %s",
            path, len(edits), "dry run" if dry_run else f"wrote {len(modified)} chars",
        )
        return EditOutcome(final_content=modified, diff=diff, applied=not dry_run)

    async def apply_edits(
        self,
        path: ResolvedPath,
        edits: Sequence[EditOperation],
        dry_run: bool = False,
    ) -> str:
        """Apply ``edits`` and return the diff, fenced for inclusion in a text response."""
        outcome = await self.edit(path, edits, dry_run=dry_run)
        return fence_diff(outcome.diff)
