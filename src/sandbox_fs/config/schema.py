"""Configuration schema. Defaults run commands through a local ``sh``; set backend.kind='wsl' for WSL."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .constants import BACKEND_DEFAULT_TIMEOUT_S, MAX_BACKTRACK, PART_SIZE


class BackendConfig(BaseModel):
    """How commands reach the target filesystem."""
    kind: Literal["local", "wsl"] = Field(
        "local",
        description=(
            "'local' (default): run commands with the local shell. "
            "'wsl': run commands inside a WSL distribution via wsl.exe."
        ),
    )
    distro: Optional[str] = Field(
        None,
        description="WSL distribution name. Empty means the default distribution (or the first one listed).",
    )
    shell: str = Field("sh", description="Shell used to interpret composed commands (invoked as '<shell> -c').")
    timeout_s: Optional[float] = Field(
        BACKEND_DEFAULT_TIMEOUT_S,
        description="Per-command timeout in seconds. None waits indefinitely.",
    )


class SandboxFsConfig(BaseModel):
    """Root config: sandbox roots and backend."""
    allowed_directories: List[str] = Field(default_factory=list)
    backend: BackendConfig = Field(default_factory=BackendConfig)
    home_directory: Optional[str] = Field(
        None,
        description="Value substituted for '~'. When unset the backend's $HOME is queried once at startup.",
    )
    part_size: int = Field(PART_SIZE, gt=0)
    max_backtrack: int = Field(MAX_BACKTRACK, ge=0)

    @field_validator("allowed_directories")
    @classmethod
    def _strip_blank(cls, value: List[str]) -> List[str]:
        return [d.strip() for d in value if d and d.strip()]

    @model_validator(mode="after")
    def _backtrack_below_part(self) -> "SandboxFsConfig":
        """A backtrack window as large as a part would let a part start before the previous one."""
        if self.max_backtrack >= self.part_size:
            raise ValueError(
                f"max_backtrack ({self.max_backtrack}) must be smaller than part_size ({self.part_size})"
            )
        return self

    def require_directories(self) -> "SandboxFsConfig":
        """Return self, or raise ValueError when no sandbox root is configured.

        Not a model validator: the CLI fills allowed_directories from argv after
        the config file is loaded.
        """
        if not self.allowed_directories:
            raise ValueError(
                "allowed_directories must not be empty: pass at least one directory "
                "on the command line or in the config file."
            )
        return self


DEFAULT_CONFIG = SandboxFsConfig()
