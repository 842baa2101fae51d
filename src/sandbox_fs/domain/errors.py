"""Domain and application errors."""

from __future__ import annotations

from typing import Optional


class SandboxFsError(Exception):
    """Base for sandbox-fs errors."""
    pass


class ConfigError(SandboxFsError):
    """Startup configuration is unusable (no roots, unknown distribution, ...)."""
    pass


class AccessDenied(SandboxFsError):
    """Path, or the target of a symlink on it, lies outside every sandbox root."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Access denied - {reason}: {path}")


class ParentMissing(SandboxFsError):
    """Target does not exist and its parent cannot be resolved inside the sandbox."""

    def __init__(self, path: str, parent: str) -> None:
        self.path = path
        self.parent = parent
        super().__init__(f"Parent directory does not exist: {parent}")


class PartOutOfRange(SandboxFsError):
    """Requested part starts at or past end-of-file. ``actual_size`` tells the caller where to stop."""

    def __init__(self, actual_size: int, part_number: int) -> None:
        self.actual_size = actual_size
        self.part_number = part_number
        super().__init__(
            f"File has only {actual_size:,} characters. Part {part_number} does not exist."
        )


class NoMatch(SandboxFsError):
    """An edit's old text was found neither verbatim nor as a whitespace-tolerant line block."""

    def __init__(self, old_text: str) -> None:
        self.old_text = old_text
        super().__init__(f"Could not find exact match for edit:\n{old_text}")


class BackendFailure(SandboxFsError):
    """The backend command failed; carries its diagnostic text unchanged."""

    def __init__(self, command: str, diagnostic: str, returncode: Optional[int] = None) -> None:
        self.command = command
        self.diagnostic = diagnostic
        self.returncode = returncode
        super().__init__(f"Backend command failed: {diagnostic}" if diagnostic else f"Backend command failed: {command}")
