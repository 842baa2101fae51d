"""Lexical path handling for the target (POSIX) filesystem. Pure string work, no I/O.

The target filesystem is only reachable through backend commands, so these
helpers never touch ``os.path`` or ``pathlib``: the host running this process
may be Windows while the target is Linux.
"""

from __future__ import annotations

from typing import List


def normalize_path(p: str) -> str:
    """Canonicalize ``p`` lexically.

    Backslashes become ``/``, repeated slashes collapse, ``.`` segments drop and
    ``..`` pops the previous segment.  A ``..`` with nothing to pop is kept, so
    ``/a/../../b`` becomes ``/../b`` rather than silently climbing to ``/b``.
    Trailing slashes are dropped; an empty result is ``.``.
    """
    p = p.replace("\\", "/")
    result: List[str] = []
    for part in p.split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            if result and result[-1] != "..":
                result.pop()
            else:
                result.append("..")
        else:
            result.append(part)
    normalized = "/".join(result)
    if p.startswith("/"):
        return "/" + normalized
    return normalized or "."


def expand_home(p: str, home: str) -> str:
    if p == "~" or p.startswith("~/"):
        return home + p[1:]
    return p


def is_absolute(p: str) -> bool:
    return p.replace("\\", "/").startswith("/")


def make_absolute(p: str, cwd: str) -> str:
    """Normalize ``p``, joining it onto ``cwd`` first when relative."""
    if is_absolute(p):
        return normalize_path(p)
    return normalize_path(cwd.replace("\\", "/") + "/" + p)


def parent_of(p: str) -> str:
    normalized = normalize_path(p)
    if normalized == "/":
        return "/"
    idx = normalized.rfind("/")
    if idx == -1:
        return "."
    if idx == 0:
        return "/"
    return normalized[:idx]


def join(*parts: str) -> str:
    return normalize_path("/".join(parts))


def split_segments(p: str) -> List[str]:
    return [s for s in normalize_path(p).split("/") if s and s != "."]


def is_within(path: str, root: str) -> bool:
    """True when ``path`` equals ``root`` or lies beneath it.

    Compares whole segments: root ``/data/app`` admits ``/data/app/x`` but not
    ``/data/app2/x``, which a plain ``startswith`` would let through.
    """
    if is_absolute(path) != is_absolute(root):
        return False
    root_parts = split_segments(root)
    path_parts = split_segments(path)
    if len(path_parts) < len(root_parts):
        return False
    return path_parts[: len(root_parts)] == root_parts
