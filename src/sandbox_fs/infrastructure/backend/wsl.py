"""WSL distribution discovery and selection.

Runs on the Windows host: ``wsl --list --verbose`` prints a table (UTF-16LE on
most builds) whose default row is marked with ``*``.  The chosen distribution
becomes a fixed command prefix for ``ShellBackend``; nothing here is consulted
again after startup.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence

from sandbox_fs.domain import BackendFailure, ConfigError, Distribution

logger = logging.getLogger(__name__)

WSL_EXE = "wsl"


def decode_wsl_output(raw: bytes) -> str:
    """Decode wsl.exe output, which is UTF-16LE unless WSL_UTF8=1 is set."""
    if b"\x00" in raw:
        text = raw.decode("utf-16-le", errors="replace")
    else:
        text = raw.decode("utf-8", errors="replace")
    return text.lstrip("\ufeff").replace("\r", "")


def parse_distributions(text: str) -> List[Distribution]:
    """Parse the ``wsl --list --verbose`` table (header line first)."""
    distributions: List[Distribution] = []
    for line in text.strip().split("\n")[1:]:
        line = line.strip()
        if not line:
            continue
        is_default = line.startswith("*")
        parts = line.lstrip("*").split()
        if len(parts) < 3:
            logger.debug("parse_distributions: skipping %r", line)
            continue
        distributions.append(
            Distribution(name=parts[0], state=parts[1], version=parts[2], is_default=is_default)
        )
    return distributions


async def list_distributions(wsl_exe: str = WSL_EXE) -> List[Distribution]:
    command = f"{wsl_exe} --list --verbose"
    try:
        proc = await asyncio.create_subprocess_exec(
            wsl_exe, "--list", "--verbose",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise BackendFailure(command, f"cannot start {wsl_exe}: {e}") from e
    stdout, stderr = await proc.communicate()
    if proc.returncode != 0:
        raise BackendFailure(command, decode_wsl_output(stderr).strip(), proc.returncode)
    return parse_distributions(decode_wsl_output(stdout))


def select_distribution(requested: Optional[str], distributions: Sequence[Distribution]) -> Distribution:
    """Pick ``requested`` (case-insensitive), else the default, else the first listed."""
    if not distributions:
        raise ConfigError("No WSL distribution was found on this system.")
    if requested:
        for d in distributions:
            if d.name.lower() == requested.lower():
                return d
        available = ", ".join(d.name for d in distributions)
        raise ConfigError(f"WSL distribution '{requested}' does not exist. Available: {available}")
    for d in distributions:
        if d.is_default:
            return d
    return distributions[0]


def wsl_prefix(distro: str, wsl_exe: str = WSL_EXE) -> List[str]:
    # --exec skips the distribution's login shell, so our argv reaches sh intact.
    return [wsl_exe, "-d", distro, "--exec"]


def format_distributions(distributions: Sequence[Distribution], active: Optional[str]) -> str:
    lines = []
    for d in distributions:
        if active and d.name.lower() == active.lower():
            marker = " (ACTIVE)"
        elif d.is_default:
            marker = " (DEFAULT)"
        else:
            marker = ""
        lines.append(f"{d.name}{marker} - State: {d.state}, Version: {d.version}")
    return "Available WSL Distributions:\n" + "\n".join(lines) + f"\n\nCurrently using: {active}"
