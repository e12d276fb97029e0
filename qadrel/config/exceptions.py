# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Configuration errors.

Kept apart from the loader so the CLI can catch them without importing
pydantic or yaml.
"""


class ConfigError(Exception):
    """Base for all configuration errors."""


class ConfigLoadError(ConfigError):
    """The config file could not be read or is not a YAML mapping."""


class ConfigValidationError(ConfigError):
    """
    The YAML parsed but does not match the schema: unknown keys, wrong types,
    or values out of range.
    """
