# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Pre-packaging validation of the working directory.

Four checks, run in this order by run_validation:

  1. validate_patches      advisory: a bad patch is a WARNING, never a failure
  2. validate_xml          fatal: stops at the first malformed config
  3. check_required_files  fatal: stops at the first missing file
  4. list_patch_versions   informational only

A glob that matches nothing is not an error; the check simply has nothing
to do. Every file is checked independently, so enumeration order only
affects which fatal error is reported first.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from typing import Iterable

from qadrel.logging.logger import get_logger
from qadrel.release.discovery.source import ArtifactSource, match_in_directory, match_root
from qadrel.release.exceptions import ValidationFailure
from qadrel.release.validation.checkers import CheckOutcome, PatchChecker, WellFormednessChecker

_logger: logging.Logger = get_logger(__name__)

_VERSION_TOKEN = re.compile(r"[0-9]+\.[0-9]+\.[0-9]+")
UNKNOWN_VERSION = "unknown"


class FileStatus(str, Enum):
    WELL_FORMED = "well-formed"
    MALFORMED = "malformed"
    MISSING = "missing"


@dataclass(frozen=True)
class FileCheck:
    """Outcome for one file."""

    path: str
    status: FileStatus
    reason: str = ""


@dataclass(frozen=True)
class PatchVersion:
    path: str
    version: str


@dataclass(frozen=True)
class ValidationReport:
    """Everything the validator learned about one working directory."""

    patch_checks: list[FileCheck] = field(default_factory=list)
    xml_checks: list[FileCheck] = field(default_factory=list)
    required_checks: list[FileCheck] = field(default_factory=list)
    patch_versions: list[PatchVersion] = field(default_factory=list)

    @property
    def advisories(self) -> list[FileCheck]:
        return [c for c in self.patch_checks if c.status is not FileStatus.WELL_FORMED]


def validate_patches(
    source: ArtifactSource,
    checker: PatchChecker,
    pattern: str = "*.patch",
) -> list[FileCheck]:
    """
    Run every root-level patch through the checker.

    Never raises for a bad or unreadable patch. The patches target a QEMU
    tree that is not present, so this only catches files that aren't
    patches at all.
    """
    results: list[FileCheck] = []
    for artifact in match_root(source, pattern):
        _logger.debug("Checking patch", extra={"file": artifact.path})
        try:
            data = source.read_bytes(artifact.path)
        except OSError as err:
            outcome = CheckOutcome(ok=False, reason=f"unreadable: {err}")
        else:
            outcome = checker.check(artifact.path, data)
        if outcome.ok:
            results.append(FileCheck(artifact.path, FileStatus.WELL_FORMED))
            _logger.info("Patch structure looks valid", extra={"file": artifact.path})
        else:
            results.append(FileCheck(artifact.path, FileStatus.MALFORMED, outcome.reason))
            _logger.warning(
                "Patch may have issues",
                extra={"file": artifact.path, "reason": outcome.reason},
            )
    return results


def validate_xml(
    source: ArtifactSource,
    checker: WellFormednessChecker,
    directory: str = "configs",
    pattern: str = "*.xml",
) -> list[FileCheck]:
    """
    Check every XML config for well-formedness.

    Returns the checks for all files when every one is well-formed.

    Raises:
        ValidationFailure: On the first malformed file. Later files are not examined.
    """
    results: list[FileCheck] = []
    for artifact in match_in_directory(source, directory, pattern):
        outcome = checker.check(source.read_bytes(artifact.path))
        if not outcome.ok:
            _logger.error(
                "XML validation failed",
                extra={"file": artifact.path, "reason": outcome.reason},
            )
            raise ValidationFailure(artifact.path, outcome.reason, FileStatus.MALFORMED)
        results.append(FileCheck(artifact.path, FileStatus.WELL_FORMED))
        _logger.info("XML is well-formed", extra={"file": artifact.path})
    return results


def check_required_files(source: ArtifactSource, required: Iterable[str]) -> list[FileCheck]:
    """
    Confirm each required path exists, in the order given.

    Raises:
        ValidationFailure: On the first missing file.
    """
    results: list[FileCheck] = []
    for path in required:
        if not source.is_file(path):
            _logger.error("Required file missing", extra={"file": path})
            raise ValidationFailure(path, "required file missing", FileStatus.MISSING)
        results.append(FileCheck(path, FileStatus.WELL_FORMED))
        _logger.info("Found required file", extra={"file": path})
    return results


def extract_version(filename: str) -> str:
    """First dotted triple in the file name, or 'unknown'."""
    match = _VERSION_TOKEN.search(PurePosixPath(filename).name)
    return match.group(0) if match else UNKNOWN_VERSION


def list_patch_versions(source: ArtifactSource, pattern: str = "qemu-*.patch") -> list[PatchVersion]:
    """Report the QEMU version each patch targets. Purely informational."""
    versions = [
        PatchVersion(path=artifact.path, version=extract_version(artifact.path))
        for artifact in match_root(source, pattern)
    ]

    if not versions:
        _logger.info("No QEMU patches found")
        return versions

    for entry in versions:
        _logger.info("Found QEMU patch", extra={"file": entry.path, "version": entry.version})
    return versions


def run_validation(
    source: ArtifactSource,
    patch_checker: PatchChecker,
    xml_checker: WellFormednessChecker,
    *,
    patch_pattern: str = "*.patch",
    config_directory: str = "configs",
    xml_pattern: str = "*.xml",
    required_files: Iterable[str] = ("README.md", "configs/samuil1337.xml"),
    versioned_patch_pattern: str = "qemu-*.patch",
) -> ValidationReport:
    """
    Run all four checks in order.

    Raises:
        ValidationFailure: From validate_xml or check_required_files.
    """
    _logger.info("Starting validation", extra={"source": source.describe()})

    patch_checks = validate_patches(source, patch_checker, patch_pattern)
    xml_checks = validate_xml(source, xml_checker, config_directory, xml_pattern)
    required_checks = check_required_files(source, required_files)
    patch_versions = list_patch_versions(source, versioned_patch_pattern)

    report = ValidationReport(
        patch_checks=patch_checks,
        xml_checks=xml_checks,
        required_checks=required_checks,
        patch_versions=patch_versions,
    )
    _logger.info(
        "Validation passed",
        extra={
            "patches": len(patch_checks),
            "patch_warnings": len(report.advisories),
            "xml_files": len(xml_checks),
            "required_files": len(required_checks),
        },
    )
    return report
