"""Process-level configuration.

Settings come from a YAML, JSON or TOML file and are then overridden by
RELOCK_* environment variables. The result is passed explicitly to the
components that need it; nothing here is a module-level singleton.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import yaml

from constants import Constants

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass
class GlobalConfig:
    """Settings shared by every request in a process."""

    expose_all_env: bool = False
    cache_dir: str = Constants.DEFAULT_CACHE_DIR
    local_dir: str = "."
    exec_timeout: Optional[float] = Constants.EXEC_TIMEOUT_SEC
    keep_cache: bool = False
    constraints: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GlobalConfig":
        config = cls()
        if "expose_all_env" in data:
            config.expose_all_env = bool(data["expose_all_env"])
        if data.get("cache_dir"):
            config.cache_dir = os.path.expanduser(str(data["cache_dir"]))
        if data.get("local_dir"):
            config.local_dir = os.path.expanduser(str(data["local_dir"]))
        if "exec_timeout" in data:
            timeout = data["exec_timeout"]
            config.exec_timeout = float(timeout) if timeout is not None else None
        if "keep_cache" in data:
            config.keep_cache = bool(data["keep_cache"])
        constraints = data.get("constraints")
        if isinstance(constraints, dict):
            config.constraints = {str(k): str(v) for k, v in constraints.items()}
        return config


def _default_config_paths() -> list[str]:
    xdg = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    paths = [os.path.join(os.getcwd(), name) for name in Constants.CONFIG_FILE_NAMES]
    paths += [os.path.join(xdg, "relock", name) for name in Constants.CONFIG_FILE_NAMES]
    return paths


def _read_config_file(path: str) -> Dict[str, Any]:
    lower = path.lower()
    if lower.endswith(".toml"):
        try:
            import tomllib as toml  # type: ignore
        except Exception:  # pylint: disable=broad-exception-caught
            import tomli as toml  # type: ignore
        with open(path, "rb") as fh:
            data = toml.load(fh) or {}
        # pyproject.toml keeps settings under [tool.relock]
        if os.path.basename(lower) == "pyproject.toml":
            data = data.get("tool", {}).get("relock", {})
    else:
        with open(path, "r", encoding="utf-8") as fh:
            if lower.endswith(".json"):
                data = json.load(fh) or {}
            else:
                data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration in {path} must be a mapping")
    return data


def _apply_env_overrides(config: GlobalConfig) -> None:
    expose = os.environ.get(Constants.ENV_EXPOSE_ALL_ENV)
    if expose is not None:
        config.expose_all_env = expose.strip().lower() in _TRUE_VALUES
    cache_dir = os.environ.get(Constants.ENV_CACHE_DIR)
    if cache_dir:
        config.cache_dir = cache_dir
    local_dir = os.environ.get(Constants.ENV_LOCAL_DIR)
    if local_dir:
        config.local_dir = local_dir


def load_config(path: Optional[str] = None) -> GlobalConfig:
    """Load configuration from ``path`` or the first default location found.

    Raises:
        FileNotFoundError: ``path`` was given but does not exist.
        ValueError: The file does not contain a mapping.
    """
    data: Dict[str, Any] = {}
    if path:
        data = _read_config_file(path)
        logger.debug("Loaded configuration from %s", path)
    else:
        for candidate in _default_config_paths():
            if os.path.isfile(candidate):
                data = _read_config_file(candidate)
                logger.debug("Loaded configuration from %s", candidate)
                break
    config = GlobalConfig.from_dict(data)
    _apply_env_overrides(config)
    return config
