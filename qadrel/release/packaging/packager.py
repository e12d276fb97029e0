# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Release packager: stages validated inputs, compresses them into a tar.gz
and renders the release notes.

Bundle layout (relative member names, never absolute):

    configs/...            the whole config directory, recursively
    *.patch *.rom *.dat    root-level artifacts, whichever exist
    README.md
    checksums.txt

The config directory, README and manifest are mandatory. Any of them
missing raises PackagingError before an archive exists, so a partial bundle
can never reach a publisher. Patches, ROMs and data blobs are optional; a
configs-only release is legitimate.

Nothing is added that isn't already in the working directory.
"""

import fnmatch
import io
import logging
import shutil
import tarfile
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from qadrel.config.schema import PackagingConfig
from qadrel.logging.logger import get_logger
from qadrel.release.exceptions import PackagingError
from qadrel.utils.filesystem import atomic_write, atomic_write_bytes
from qadrel.utils.paths import is_safe_relative

_logger: logging.Logger = get_logger(__name__)


@dataclass(frozen=True)
class PackageResult:
    """In-memory bundle plus notes. Nothing is on disk until write_package."""

    archive_name: str
    archive_bytes: bytes
    notes: str
    staged_files: list[str]


@dataclass(frozen=True)
class WrittenPackage:
    archive_path: Path
    notes_path: Path
    size_bytes: int


def _stage_inputs(
    workdir: Path,
    staging: Path,
    config_directory: str,
    readme: str,
    manifest_path: Path,
    optional_patterns: Iterable[str],
) -> None:
    configs_src = workdir / config_directory
    if not configs_src.is_dir():
        raise PackagingError(f"Config directory missing: {config_directory}")
    readme_src = workdir / readme
    if not readme_src.is_file():
        raise PackagingError(f"README missing: {readme}")
    if not manifest_path.is_file():
        raise PackagingError(f"Checksum manifest missing: {manifest_path}")

    shutil.copytree(configs_src, staging / config_directory)

    root_files = sorted(p for p in workdir.iterdir() if p.is_file())
    for pattern in optional_patterns:
        matched = [p for p in root_files if fnmatch.fnmatchcase(p.name, pattern)]
        if not matched:
            _logger.debug("No optional files matched", extra={"pattern": pattern})
        for src in matched:
            shutil.copy2(src, staging / src.name)

    shutil.copy2(readme_src, staging / Path(readme).name)
    shutil.copy2(manifest_path, staging / manifest_path.name)


def _list_staged(staging: Path) -> list[str]:
    return sorted(
        p.relative_to(staging).as_posix() for p in staging.rglob("*") if p.is_file()
    )


def build_archive(staging: Path) -> bytes:
    """
    gzip-compressed tar of everything under staging.

    Top-level entries are added in sorted order; tarfile recurses into
    directories in sorted order too.
    """
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for entry in sorted(staging.iterdir()):
            tar.add(str(entry), arcname=entry.name)
    return buffer.getvalue()


def render_release_notes(
    staged_files: Iterable[str],
    manifest_text: str,
    title: str = "QEMU Anti-Detection Release",
) -> str:
    """
    Markdown release notes: title, sorted file list, manifest verbatim in a
    code fence.
    """
    lines = [f"## {title}", "", "### Included Files:", ""]
    lines.extend(f"- `{path}`" for path in sorted(staged_files))
    lines.extend(["", "### Checksums:", "```"])
    body = "\n".join(lines) + "\n" + manifest_text
    if manifest_text and not manifest_text.endswith("\n"):
        body += "\n"
    return body + "```\n"


def package_release(
    workdir: Path,
    manifest_path: Path,
    archive_name: str,
    settings: PackagingConfig,
    config_directory: str = "configs",
) -> PackageResult:
    """
    Stage, archive and describe a release.

    Args:
        workdir: Validated working directory.
        manifest_path: checksums.txt produced for this run.
        archive_name: File name the archive will be published under.
        settings: Packaging section of the config.
        config_directory: Directory copied recursively into the bundle.

    Returns:
        PackageResult holding the archive bytes and the notes text.

    Raises:
        PackagingError: If a mandatory input is missing.
    """
    _logger.info("Creating release package", extra={"archive": archive_name})

    with tempfile.TemporaryDirectory(prefix="qadrel-release-assets-") as tmp:
        staging = Path(tmp)
        _stage_inputs(
            workdir=workdir,
            staging=staging,
            config_directory=config_directory,
            readme=settings.readme,
            manifest_path=manifest_path,
            optional_patterns=settings.optional_patterns,
        )
        staged = _list_staged(staging)
        archive_bytes = build_archive(staging)

    notes = render_release_notes(
        staged,
        manifest_path.read_text(encoding="utf-8"),
        title=settings.notes_title,
    )

    _logger.info(
        "Release package created",
        extra={
            "archive": archive_name,
            "file_count": len(staged),
            "size_bytes": len(archive_bytes),
        },
    )
    return PackageResult(
        archive_name=archive_name,
        archive_bytes=archive_bytes,
        notes=notes,
        staged_files=staged,
    )


def write_package(result: PackageResult, output_dir: Path, notes_name: str = "RELEASE_NOTES.md") -> WrittenPackage:
    """Write the archive and the notes atomically into output_dir."""
    archive_path = output_dir / result.archive_name
    notes_path = output_dir / notes_name
    atomic_write_bytes(archive_path, result.archive_bytes)
    atomic_write(notes_path, result.notes)
    _logger.info(
        "Release package written",
        extra={"archive": str(archive_path), "notes": str(notes_path)},
    )
    return WrittenPackage(
        archive_path=archive_path,
        notes_path=notes_path,
        size_bytes=len(result.archive_bytes),
    )


def list_archive_files(archive: bytes | Path) -> list[str]:
    """Regular-file member names of a tar.gz, sorted."""
    if isinstance(archive, Path):
        tar = tarfile.open(str(archive), mode="r:gz")
    else:
        tar = tarfile.open(fileobj=io.BytesIO(archive), mode="r:gz")
    with tar:
        return sorted(member.name for member in tar.getmembers() if member.isfile())


def verify_bundle(archive: bytes | Path, expected_files: Iterable[str]) -> list[str]:
    """
    Confirm the archive holds exactly the expected files, all with safe
    relative names.

    Returns:
        The archive's file list.

    Raises:
        PackagingError: On unsafe member names, extra files or missing files.
    """
    members = list_archive_files(archive)

    unsafe = [name for name in members if not is_safe_relative(name)]
    if unsafe:
        raise PackagingError(f"Archive contains unsafe member names: {', '.join(unsafe)}")

    expected = set(expected_files)
    actual = set(members)
    extra = sorted(actual - expected)
    missing = sorted(expected - actual)
    if extra or missing:
        _logger.error(
            "Bundle contents mismatch",
            extra={"extra": extra, "missing": missing},
        )
        raise PackagingError(
            f"Archive contents differ from staged files (extra: {extra}, missing: {missing})"
        )

    _logger.info("Bundle verified", extra={"file_count": len(members)})
    return members


def extract_archive(archive_path: Path, destination: Path) -> list[str]:
    """
    Unpack a bundle into destination and return its file list.

    Raises:
        PackagingError: If any member name is absolute or climbs out of destination.
    """
    members = list_archive_files(archive_path)
    unsafe = [name for name in members if not is_safe_relative(name)]
    if unsafe:
        raise PackagingError(f"Archive contains unsafe member names: {', '.join(unsafe)}")
    with tarfile.open(str(archive_path), mode="r:gz") as tar:
        tar.extractall(str(destination), filter="data")
    return members
