"""Configuration loading utilities."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from pydantic import ValidationError

from ..constants import CONFIG_FILE_ENV, DEFAULT_CONFIG_FILE
from ..errors import ConfigError
from .model import ClientConfig


def resolve_config_path(path: str | os.PathLike[str] | None = None) -> Path:
    """Explicit path, else ``$IRCCLIENT_CONF_FILE``, else ``ircclient.conf``."""
    if path is not None:
        return Path(path)
    return Path(os.environ.get(CONFIG_FILE_ENV, DEFAULT_CONFIG_FILE))


def load_config(path: str | os.PathLike[str] | None = None) -> ClientConfig:
    """Load and validate the JSON client configuration.

    Raises:
        ConfigError: The file is missing, is not valid JSON or does not
            describe a valid ``ClientConfig``.
    """
    config_path = resolve_config_path(path)
    try:
        with config_path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(
            f"Configuration file not found: {config_path}",
            data={"path": str(config_path)},
        ) from e
    except (OSError, ValueError) as e:
        raise ConfigError(
            f"Could not read configuration file {config_path}: {e}",
            data={"path": str(config_path)},
        ) from e
    if not isinstance(raw, dict):
        raise ConfigError(
            "Configuration root must be a JSON object", data={"path": str(config_path)}
        )
    try:
        config = ClientConfig.from_dict(raw)
    except ValidationError as e:
        raise ConfigError(
            f"Invalid configuration in {config_path}: {e.error_count()} error(s)",
            data={"path": str(config_path), "errors": e.errors(include_url=False)},
        ) from e
    logging.info(f"✅ Configuration loaded host={config.host} port={config.port}")
    return config


def save_config(config: ClientConfig, path: str | os.PathLike[str] | None = None) -> Path:
    """Write ``config`` as JSON, replacing the file atomically."""
    config_path = resolve_config_path(path)
    tmp_path = config_path.with_suffix(config_path.suffix + ".tmp")
    try:
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(config.to_dict(), f, indent=2)
        os.replace(tmp_path, config_path)
    except OSError as e:
        raise ConfigError(
            f"Could not write configuration file {config_path}: {e}",
            data={"path": str(config_path)},
        ) from e
    return config_path
