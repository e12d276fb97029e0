# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Type-safe configuration schemas for qadrel.

Every pipeline stage gets its own frozen pydantic model. All sections have
defaults that reproduce the release layout of the QEMU anti-detection
repository, so running without a config file is the normal case. A YAML
file only needs to list the keys it overrides.

The models use pydantic v2's ConfigDict with:
  - frozen=True: immutability after construction
  - extra="forbid": unknown fields cause immediate failure
  - validate_default=True: even defaults get type-checked
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_MODEL_CONFIG = ConfigDict(frozen=True, extra="forbid", validate_default=True)


class GlobalConfig(BaseModel):
    """Cross-cutting settings: identity and logging."""

    model_config = _MODEL_CONFIG

    config_version: str = Field(
        default="1.0.0", description="Schema version for compatibility tracking"
    )
    project_name: str = Field(
        default="qemu-anti-detection", description="Human-readable project identifier"
    )
    log_level: str = Field(
        default="INFO",
        description="One of DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional path for file-based log output, relative to the working directory",
    )

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        upper = value.upper()
        if upper not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return upper


class ValidationConfig(BaseModel):
    """
    What the validator looks at. Patterns are shell globs matched against
    file names; required_files are paths relative to the working directory.
    """

    model_config = _MODEL_CONFIG

    patch_pattern: str = Field(default="*.patch", description="Root-level patch files")
    versioned_patch_pattern: str = Field(
        default="qemu-*.patch",
        description="Patches whose file name carries a QEMU version",
    )
    config_directory: str = Field(default="configs", description="Directory of XML configs")
    xml_pattern: str = Field(default="*.xml", description="XML files inside config_directory")
    required_files: list[str] = Field(
        default_factory=lambda: ["README.md", "configs/samuil1337.xml"],
        description="Files that must exist, checked in this order",
    )
    patch_checker: Literal["syntax", "dry-run"] = Field(
        default="dry-run",
        description="'dry-run' applies each patch with patch(1) --dry-run, 'syntax' parses unified diffs in-process",
    )
    excluded_directories: list[str] = Field(
        default_factory=lambda: [".git"],
        description="Directories never entered while enumerating artifacts",
    )


class ChecksumConfig(BaseModel):
    """Checksum manifest settings."""

    model_config = _MODEL_CONFIG

    extensions: list[str] = Field(
        default_factory=lambda: [".patch", ".xml", ".rom", ".dat"],
        description="Files with these extensions are hashed, anywhere in the tree",
    )
    manifest_name: str = Field(default="checksums.txt", description="Manifest file name")
    sort_entries: bool = Field(
        default=True,
        description="Sort entries by path; false keeps filesystem traversal order",
    )

    @field_validator("extensions")
    @classmethod
    def _dotted(cls, value: list[str]) -> list[str]:
        return [ext if ext.startswith(".") else f".{ext}" for ext in value]


class PackagingConfig(BaseModel):
    """Release bundle layout and naming."""

    model_config = _MODEL_CONFIG

    archive_prefix: str = Field(
        default="qemu-anti-detection",
        description="Archive is <prefix>-release.tar.gz or <prefix>-<tag>.tar.gz",
    )
    readme: str = Field(default="README.md", description="README copied into the bundle")
    optional_patterns: list[str] = Field(
        default_factory=lambda: ["*.patch", "*.rom", "*.dat"],
        description="Root-level files bundled when present",
    )
    notes_file: str = Field(default="RELEASE_NOTES.md", description="Rendered release notes")
    notes_title: str = Field(
        default="QEMU Anti-Detection Release", description="Heading of the release notes"
    )
    output_directory: str = Field(
        default=".",
        description="Where the archive and notes are written, relative to the working directory",
    )


class PublishingConfig(BaseModel):
    """Inputs handed to the external publishers."""

    model_config = _MODEL_CONFIG

    main_branch: str = Field(default="main", description="Branch that triggers semantic-release")
    tag_prefix: str = Field(default="v", description="Tags starting with this trigger a tagged release")
    changelog_file: str = Field(default="CHANGELOG.md", description="Maintained by semantic-release")
    release_config_file: str = Field(
        default=".releaserc.json", description="semantic-release configuration output"
    )
    token_env: str = Field(
        default="GITHUB_TOKEN", description="Environment variable holding the repository-write token"
    )
    archive_label: str = Field(default="QEMU Anti-Detection Package")
    checksums_label: str = Field(default="File Checksums")


class QadrelConfig(BaseModel):
    """
    Top-level config container. Every section is optional in YAML and falls
    back to its defaults.
    """

    model_config = ConfigDict(
        frozen=True, extra="forbid", validate_default=True, populate_by_name=True
    )

    global_config: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    checksums: ChecksumConfig = Field(default_factory=ChecksumConfig)
    packaging: PackagingConfig = Field(default_factory=PackagingConfig)
    publishing: PublishingConfig = Field(default_factory=PublishingConfig)
