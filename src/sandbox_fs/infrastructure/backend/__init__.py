"""Backend adapters: how commands reach the target filesystem."""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from sandbox_fs.config import BackendConfig
from sandbox_fs.domain import Distribution

from .shell import ShellBackend
from .wsl import list_distributions, select_distribution, wsl_prefix

logger = logging.getLogger(__name__)


async def build_backend(config: BackendConfig) -> Tuple[ShellBackend, Optional[Distribution]]:
    """Construct the backend for ``config``; for WSL also return the selected distribution."""
    if config.kind == "wsl":
        distro = select_distribution(config.distro, await list_distributions())
        logger.info("using WSL distribution: %s", distro.name)
        return ShellBackend(wsl_prefix(distro.name), shell=config.shell, timeout_s=config.timeout_s), distro
    return ShellBackend(shell=config.shell, timeout_s=config.timeout_s), None


__all__ = ["ShellBackend", "build_backend", "list_distributions", "select_distribution", "wsl_prefix"]
