"""
Configuration loader — reads chocomaint.json (or .yml) into settings.

Every key is optional: whatever is missing falls back to the defaults
on ``MaintenanceConfig``. A missing file means "all defaults"; a file
that exists but can't be parsed or validated is a ConfigError.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from chocomaint.core.errors import ConfigError
from chocomaint.core.models.settings import MaintenanceConfig, default_data_dir

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "CHOCOMAINT_CONFIG"
CONFIG_FILENAMES = ("chocomaint.json", "chocomaint.yml", "chocomaint.yaml")

__all__ = ["CONFIG_ENV_VAR", "ConfigError", "find_config_file", "load_config"]


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Locate the settings file.

    Search order: ``$CHOCOMAINT_CONFIG``, then the known filenames in
    ``start_dir`` (default: cwd), then in the data directory.

    Returns:
        Path to the settings file, or None if there isn't one.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()

    for directory in ((start_dir or Path.cwd()), default_data_dir()):
        for name in CONFIG_FILENAMES:
            candidate = directory / name
            if candidate.is_file():
                return candidate

    return None


def _parse(path: Path, raw: str) -> object:
    suffix = path.suffix.lower()
    if suffix in {".yml", ".yaml"}:
        try:
            return yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e


def load_config(path: Path | None = None) -> MaintenanceConfig:
    """Load and validate settings.

    Args:
        path: Explicit settings file. If None, ``find_config_file()``.

    Returns:
        MaintenanceConfig with defaults for every missing key.

    Raises:
        ConfigError: If an existing file is unreadable or invalid, or an
            explicit path doesn't exist.
    """
    explicit = path is not None
    if path is None:
        path = find_config_file()

    if path is None:
        logger.info("No settings file found — using defaults")
        return MaintenanceConfig()

    if not path.is_file():
        if explicit or os.environ.get(CONFIG_ENV_VAR):
            raise ConfigError(f"Config file not found: {path}")
        return MaintenanceConfig()

    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8-sig")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    data = _parse(path, raw) if raw.strip() else {}
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping in {path}, got {type(data).__name__}")

    try:
        config = MaintenanceConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings in {path}: {e}") from e

    logger.info("Loaded settings from %s", path)
    return config
