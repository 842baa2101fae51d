"""Text edit matching: exact replacement with a whitespace-tolerant line-block fallback.

Pure functions over strings and line lists, no I/O.  ``FuzzyPatchEngine`` reads
and writes the file; everything about *where* an edit lands lives here.
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence

from .errors import NoMatch
from .models import EditOperation

_LEADING_WS_RE = re.compile(r"^\s*")


def normalize_line_endings(text: str) -> str:
    return text.replace("\r\n", "\n")


def leading_whitespace(line: str) -> str:
    return _LEADING_WS_RE.match(line).group(0)


def find_fuzzy_block(content_lines: Sequence[str], old_lines: Sequence[str]) -> Optional[int]:
    """Index of the first window of ``content_lines`` matching ``old_lines`` line by line.

    Lines are compared after stripping leading and trailing whitespace; inner
    characters must be identical.  The scan is top to bottom and the first
    matching window wins.
    """
    height = len(old_lines)
    if height == 0 or height > len(content_lines):
        return None
    stripped_old = [line.strip() for line in old_lines]
    for i in range(len(content_lines) - height + 1):
        if all(content_lines[i + j].strip() == stripped_old[j] for j in range(height)):
            return i
    return None


def reindent_block(
    new_lines: Sequence[str],
    old_lines: Sequence[str],
    original_indent: str,
) -> List[str]:
    """Re-indent replacement lines so they sit where the matched block was.

    The first line takes the matched block's indentation.  A later line keeps
    its offset relative to the corresponding old line when both carry leading
    whitespace: the width difference (never negative) is added, as spaces, on
    top of the block indentation.  Any other line is emitted unchanged.
    """
    out: List[str] = []
    for j, line in enumerate(new_lines):
        if j == 0:
            out.append(original_indent + line.lstrip())
            continue
        old_indent = leading_whitespace(old_lines[j]) if j < len(old_lines) else ""
        new_indent = leading_whitespace(line)
        if old_indent and new_indent:
            delta = max(0, len(new_indent) - len(old_indent))
            out.append(original_indent + " " * delta + line.lstrip())
        else:
            out.append(line)
    return out


def apply_edit(content: str, edit: EditOperation) -> str:
    """Apply one edit to ``content`` (already LF-normalized); raise ``NoMatch`` if it cannot be placed."""
    old = normalize_line_endings(edit.old_text)
    new = normalize_line_endings(edit.new_text)

    if old in content:
        return content.replace(old, new, 1)

    old_lines = old.split("\n")
    content_lines = content.split("\n")
    start = find_fuzzy_block(content_lines, old_lines)
    if start is None:
        raise NoMatch(edit.old_text)

    original_indent = leading_whitespace(content_lines[start])
    replacement = reindent_block(new.split("\n"), old_lines, original_indent)
    content_lines[start:start + len(old_lines)] = replacement
    return "\n".join(content_lines)


def apply_edits(content: str, edits: Sequence[EditOperation]) -> str:
    """Apply ``edits`` in order, each against the output of the previous one."""
    for edit in edits:
        content = apply_edit(content, edit)
    return content
