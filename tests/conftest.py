"""Pytest fixtures and helpers for sandbox-fs tests."""
from __future__ import annotations

import pytest

from fake_backend import InMemoryBackend
from sandbox_fs.application import ChunkedRangeReader, FileTools, FuzzyPatchEngine, SandboxPathResolver
from sandbox_fs.domain import SandboxRoots

HOME = "/home/agent"


@pytest.fixture(autouse=True)
def _reset_config_cache():
    """Start and end every test with no memoised config and no cached environment."""
    from sandbox_fs.config import loader as config_loader
    config_loader.load_config.cache_clear()
    config_loader._env = None
    yield
    config_loader.load_config.cache_clear()
    config_loader._env = None


def make_tools(backend: InMemoryBackend, *roots: str, part_size: int = 95_000, max_backtrack: int = 300) -> FileTools:
    """FileTools over ``backend`` with ``roots`` as sandbox roots and cwd ``/data/app``."""
    sandbox = SandboxRoots.from_directories(roots or ("/data/app",), home=HOME, cwd="/data/app")
    resolver = SandboxPathResolver(sandbox, backend, home=HOME, cwd="/data/app")
    reader = ChunkedRangeReader(backend, part_size=part_size, max_backtrack=max_backtrack)
    return FileTools(resolver, reader, FuzzyPatchEngine(backend), backend)


@pytest.fixture
def backend() -> InMemoryBackend:
    """A small tree: /data/app (the sandbox), a sibling /data/app2 and an outside /etc."""
    return InMemoryBackend(
        files={
            "/data/app/README.md": "hello\n",
            "/data/app/src/main.py": "def main():\n    return 1\n",
            "/data/app2/x": "not yours\n",
            "/etc/passwd": "root:x:0:0\n",
        },
        dirs=["/home/agent"],
    )


@pytest.fixture
def tools(backend: InMemoryBackend) -> FileTools:
    return make_tools(backend, "/data/app")
