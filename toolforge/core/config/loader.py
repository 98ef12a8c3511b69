"""
Configuration loader — reads toolforge.yml into a ToolforgeConfig.

The file is optional. When present it is found by walking up from the
working directory, so commands run from any subdirectory of the
workspace pick it up.

Precedence (highest first):
    CLI flags  >  TOOLFORGE_* environment variables  >  toolforge.yml  >  defaults
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

import yaml

from toolforge.core.errors import ConfigError
from toolforge.core.models.config import ToolforgeConfig

logger = logging.getLogger(__name__)

CONFIG_FILE = "toolforge.yml"

# env var → (section, key); section None = top level
ENV_OVERRIDES: dict[str, tuple[str | None, str]] = {
    "TOOLFORGE_API_URL": ("registry", "api_url"),
    "TOOLFORGE_ADMIN_EMAIL": ("registry", "admin_email"),
    "TOOLFORGE_ADMIN_PASSWORD": ("registry", "admin_password"),
    "TOOLFORGE_CACHE_FILE": (None, "cache_file"),
    "TOOLFORGE_WORKSPACE_ROOT": (None, "workspace_root"),
}


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for toolforge.yml from ``start_dir`` (default: cwd) upward."""
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def load_config(
    path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> ToolforgeConfig:
    """Load configuration from file and environment.

    Args:
        path: Explicit config path. If None, searches upward; a missing
            file is not an error.
        env: Environment mapping (default: ``os.environ``).

    Raises:
        ConfigError: if an explicit path is missing, or the file is invalid.
    """
    env = os.environ if env is None else env
    data: dict = {}

    if path is not None and not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    source = path or find_config_file()
    if source is not None:
        data = _read_yaml(source)
        logger.debug("Loaded config from %s", source)

    for var, (section, key) in ENV_OVERRIDES.items():
        value = env.get(var)
        if not value:
            continue
        target = data.setdefault(section, {}) if section else data
        if not isinstance(target, dict):
            raise ConfigError(f"Section '{section}' in {source} must be a mapping")
        target[key] = value

    try:
        config = ToolforgeConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid toolforge configuration: {e}") from e

    config.source = source.resolve() if source else None
    return config


def _read_yaml(path: Path) -> dict:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # Accept everything nested under a top-level "toolforge" key as well
    if "toolforge" in data:
        data = data["toolforge"] or {}
        if not isinstance(data, dict):
            raise ConfigError(f"'toolforge' in {path} must be a mapping, got {type(data).__name__}")
    return dict(data)
