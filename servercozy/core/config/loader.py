"""
Configuration loader — reads the optional YAML config into RunOptions.

Lookup order for the file:
    --config PATH  >  SERVERCOZY_CONFIG  >  ~/.config/servercozy/config.yml

A missing default file is fine (defaults apply).  A file that was named
explicitly must exist.  CLI flags are applied on top by the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from servercozy.core.errors import ServerCozyError
from servercozy.core.models.options import RunOptions

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "SERVERCOZY_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.config/servercozy/config.yml")


class ConfigError(ServerCozyError):
    """Raised when the configuration file is invalid or missing."""


def find_config_file(
    explicit: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> tuple[Path | None, bool]:
    """Locate the config file.

    Returns:
        ``(path, required)``.  ``required`` is True when the path was
        named explicitly (flag or env var) and so must exist.
    """
    if explicit is not None:
        return Path(explicit).expanduser(), True
    env_path = (environ or {}).get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser(), True
    default = DEFAULT_CONFIG_PATH.expanduser()
    return (default, False) if default.is_file() else (None, False)


def load_options(
    path: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> RunOptions:
    """Load RunOptions from YAML, then apply ``overrides``.

    Args:
        path: Explicit config path (``--config``).
        environ: Environment used for ``SERVERCOZY_CONFIG``.
        overrides: Values that win over the file (CLI flags).

    Raises:
        ConfigError: If the file is missing, unreadable or invalid.
    """
    config_path, required = find_config_file(path, environ)
    data: dict[str, Any] = {}

    if config_path is not None:
        if not config_path.is_file():
            if required:
                raise ConfigError(f"Config file not found: {config_path}")
        else:
            data = _read_yaml(config_path)

    data.update(overrides or {})
    try:
        options = RunOptions.model_validate(data)
    except ValidationError as e:
        where = f" in {config_path}" if config_path else ""
        raise ConfigError(f"Invalid configuration{where}: {e}") from e

    logger.debug("Run options: %s", options.model_dump())
    return options


def _read_yaml(path: Path) -> dict[str, Any]:
    logger.debug("Loading config from %s", path)
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

    # The file may wrap everything under a "servercozy" key or be flat
    if "servercozy" in data and isinstance(data["servercozy"], dict):
        data = data["servercozy"]
    return dict(data)
