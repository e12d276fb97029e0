# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Config loader: YAML on disk to a validated, frozen QadrelConfig.

Read, parse, validate, return. Any failure stops the run with a clear error
before a single artifact is touched.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from qadrel.config.exceptions import ConfigLoadError, ConfigValidationError
from qadrel.config.schema import QadrelConfig


def _read_yaml_file(config_path: Path) -> dict[str, Any]:
    """
    Read a YAML file and return the parsed mapping.

    An empty file is treated as an empty mapping, so every section falls back
    to its defaults.

    Raises:
        ConfigLoadError: If the file is missing, unreadable, not YAML, or not a mapping.
    """
    if not config_path.exists():
        raise ConfigLoadError(f"Config file not found: {config_path}")

    if not config_path.is_file():
        raise ConfigLoadError(f"Config path is not a file: {config_path}")

    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except OSError as err:
        raise ConfigLoadError(f"Cannot read config file {config_path}: {err}") from err

    try:
        parsed = yaml.safe_load(raw_text)
    except yaml.YAMLError as err:
        raise ConfigLoadError(f"Invalid YAML in {config_path}: {err}") from err

    if parsed is None:
        return {}

    if not isinstance(parsed, dict):
        raise ConfigLoadError(
            f"Config file must contain a YAML mapping (dict), got {type(parsed).__name__}"
        )

    return parsed


def load_config(config_path: Path) -> QadrelConfig:
    """
    Load and validate a config file.

    Args:
        config_path: Path to a YAML config file.

    Returns:
        A frozen QadrelConfig.

    Raises:
        ConfigLoadError: File I/O or YAML parse failures.
        ConfigValidationError: Schema violations.
    """
    raw_data = _read_yaml_file(config_path)

    try:
        return QadrelConfig.model_validate(raw_data)
    except ValidationError as err:
        raise ConfigValidationError(
            f"Config validation failed for {config_path}:\n{err}"
        ) from err


def default_config() -> QadrelConfig:
    """The configuration used when no --config is given."""
    return QadrelConfig()
