# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Checksum manifest generation, parsing and verification.

Manifest format (checksums.txt), identical to GNU sha256sum output so that
`sha256sum -c checksums.txt` works on a checkout or an unpacked bundle:

    <sha256hex>  <relative/path>
    <sha256hex>  <relative/path>

One line per file whose extension is tracked (.patch, .xml, .rom, .dat by
default). Nothing else is hashed, so README.md and the manifest itself never
appear. Digests are computed from scratch every run.

Entries are sorted by path unless sort_entries is turned off, in which case
they follow the source's traversal order and only the set of entries is
stable between runs.
"""

import logging
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from qadrel.logging.logger import get_logger
from qadrel.release.discovery.source import ArtifactSource, match_extensions
from qadrel.release.exceptions import ManifestFormatError
from qadrel.utils.filesystem import atomic_write
from qadrel.utils.hashing import compute_sha256, compute_sha256_bytes, is_sha256_hex

_logger: logging.Logger = get_logger(__name__)

DEFAULT_EXTENSIONS: tuple[str, ...] = (".patch", ".xml", ".rom", ".dat")
_SEPARATOR = "  "


class ContentHasher(ABC):
    """Turns file content into a hex digest."""

    @abstractmethod
    def digest(self, data: bytes) -> str:
        ...


class Sha256Hasher(ContentHasher):
    def digest(self, data: bytes) -> str:
        return compute_sha256_bytes(data)


@dataclass(frozen=True)
class ChecksumEntry:
    path: str
    digest: str

    def render(self) -> str:
        return f"{self.digest}{_SEPARATOR}{self.path}"


@dataclass(frozen=True)
class ChecksumManifest:
    """Ordered checksum entries for one run."""

    entries: tuple[ChecksumEntry, ...] = ()

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def paths(self) -> list[str]:
        return [entry.path for entry in self.entries]

    def as_set(self) -> frozenset[tuple[str, str]]:
        """Order-insensitive view used to compare manifests across runs."""
        return frozenset((entry.path, entry.digest) for entry in self.entries)

    def render(self) -> str:
        if not self.entries:
            return ""
        return "\n".join(entry.render() for entry in self.entries) + "\n"


@dataclass(frozen=True)
class ChecksumVerification:
    """Outcome of checking files on disk against a manifest."""

    is_valid: bool
    checked_count: int
    mismatches: list[str] = field(default_factory=list)
    missing_files: list[str] = field(default_factory=list)


def generate_checksums(
    source: ArtifactSource,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    hasher: ContentHasher | None = None,
    sort_entries: bool = True,
) -> ChecksumManifest:
    """
    Hash every tracked artifact in the source.

    Args:
        source: Working directory view.
        extensions: Extensions to include, with leading dots.
        hasher: Digest implementation; SHA-256 when omitted.
        sort_entries: Sort by path instead of keeping traversal order.

    Returns:
        A manifest with exactly one entry per matching file.
    """
    hasher = hasher or Sha256Hasher()

    entries: list[ChecksumEntry] = []
    by_class: Counter[str] = Counter()
    for artifact in match_extensions(source, extensions):
        by_class[artifact.artifact_class.name if artifact.artifact_class else "OTHER"] += 1
        digest = hasher.digest(source.read_bytes(artifact.path))
        entries.append(ChecksumEntry(path=artifact.path, digest=digest))
        _logger.debug(
            "Computed checksum",
            extra={"file": artifact.path, "sha256": digest[:16] + "..."},
        )

    if sort_entries:
        entries.sort(key=lambda entry: entry.path)

    manifest = ChecksumManifest(entries=tuple(entries))
    _logger.info(
        "Checksums generated",
        extra={"file_count": len(manifest), "by_class": dict(by_class), "sorted": sort_entries},
    )
    return manifest


def write_checksum_file(path: Path, manifest: ChecksumManifest) -> Path:
    """Write the manifest atomically and return its path."""
    atomic_write(path, manifest.render())
    _logger.info("Checksum file written", extra={"path": str(path), "entries": len(manifest)})
    return path


def parse_manifest(content: str) -> ChecksumManifest:
    """
    Parse manifest text. Blank lines are skipped; order is preserved.

    Raises:
        ManifestFormatError: On a line that isn't '<sha256>  <path>'.
    """
    entries: list[ChecksumEntry] = []
    for line_num, raw_line in enumerate(content.splitlines(), start=1):
        line = raw_line.rstrip("\r")
        if not line.strip():
            continue
        parts = line.split(_SEPARATOR, maxsplit=1)
        if len(parts) != 2 or not parts[1]:
            raise ManifestFormatError(
                f"Invalid checksum format at line {line_num}: expected "
                f"'<sha256>  <path>', got: {line!r}"
            )
        digest, path = parts
        if not is_sha256_hex(digest):
            raise ManifestFormatError(
                f"Invalid SHA256 digest at line {line_num}: {digest!r}"
            )
        entries.append(ChecksumEntry(path=path, digest=digest.lower()))
    return ChecksumManifest(entries=tuple(entries))


def parse_checksum_file(path: Path) -> ChecksumManifest:
    """
    Read and parse a manifest file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ManifestFormatError: If a line is malformed.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Checksum file not found: {path}")
    return parse_manifest(path.read_text(encoding="utf-8"))


def verify_checksums(root: Path, manifest: ChecksumManifest) -> ChecksumVerification:
    """
    Re-hash every file listed in the manifest relative to root.

    Reports all mismatches and missing files rather than stopping at the
    first.
    """
    mismatches: list[str] = []
    missing_files: list[str] = []
    checked = 0

    for entry in manifest:
        file_path = root / entry.path
        if not file_path.is_file():
            missing_files.append(entry.path)
            _logger.error("File missing during verification", extra={"file": entry.path})
            continue

        actual = compute_sha256(file_path)
        checked += 1
        if actual != entry.digest:
            mismatches.append(entry.path)
            _logger.error(
                "Checksum mismatch",
                extra={
                    "file": entry.path,
                    "expected": entry.digest[:16] + "...",
                    "actual": actual[:16] + "...",
                },
            )

    is_valid = not mismatches and not missing_files
    if is_valid:
        _logger.info("All checksums verified", extra={"checked_count": checked})
    else:
        _logger.error(
            "Checksum verification failed",
            extra={"mismatches": len(mismatches), "missing": len(missing_files)},
        )

    return ChecksumVerification(
        is_valid=is_valid,
        checked_count=checked,
        mismatches=mismatches,
        missing_files=missing_files,
    )
