"""Config file discovery.

``SANDBOX_FS_CONFIG_PATH`` names a JSON file matching ``SandboxFsConfig``.  When
the variable is unset, or names a file that does not exist, the defaults apply
and the CLI supplies the sandbox roots.  The result is memoised; tests call
``load_config.cache_clear()`` after changing the environment.
"""

from __future__ import annotations

import functools
import json
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from .schema import DEFAULT_CONFIG, SandboxFsConfig


class _Env(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SANDBOX_FS_", extra="ignore")
    config_path: Optional[str] = None


_env: Optional[_Env] = None


def _get_env() -> _Env:
    global _env
    if _env is None:
        _env = _Env()
    return _env


def _migrate_legacy_keys(data: Dict[str, Any]) -> Dict[str, Any]:
    # Older launch configs put the WSL distribution at the top level.
    if "distro" in data:
        backend = dict(data.get("backend") or {})
        backend.setdefault("kind", "wsl")
        backend.setdefault("distro", data.pop("distro"))
        data["backend"] = backend
    return data


@functools.lru_cache(maxsize=1)
def load_config() -> SandboxFsConfig:
    """The process-wide config: the file named by SANDBOX_FS_CONFIG_PATH, else DEFAULT_CONFIG.

    Raises ``pydantic.ValidationError`` when the file exists but does not validate.
    """
    raw_path = (_get_env().config_path or "").strip()
    if not raw_path:
        return DEFAULT_CONFIG
    config_file = Path(raw_path).expanduser()
    if not config_file.is_file():
        return DEFAULT_CONFIG
    data = json.loads(config_file.read_text(encoding="utf-8"))
    return SandboxFsConfig.model_validate(_migrate_legacy_keys(data))
