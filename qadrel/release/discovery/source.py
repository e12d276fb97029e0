# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Artifact enumeration.

Validation and hashing never touch the filesystem directly. They work on an
ArtifactSource, which lists files as relative POSIX paths and hands out their
bytes. LocalSource backs it with a real directory; tests substitute an
in-memory listing.

Ordering rules:
  - match_root and match_in_directory sort lexicographically, the same order
    a shell glob expands in.
  - match_extensions keeps the source's traversal order. For LocalSource that
    is whatever os.walk yields, which is not guaranteed to be sorted.

Extensions and globs are case-sensitive: NOTES.XML is not an XML config.
"""

import fnmatch
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Iterable, Optional


class ArtifactClass(str, Enum):
    """The four file classes the pipeline tracks, keyed by extension."""

    PATCH = ".patch"
    XML_CONFIG = ".xml"
    ROM_IMAGE = ".rom"
    DATA_BLOB = ".dat"


@dataclass(frozen=True)
class ArtifactFile:
    """One enumerated file. Path is relative to the source root."""

    path: str
    artifact_class: Optional[ArtifactClass]


def classify(path: str) -> Optional[ArtifactClass]:
    """Map a path to its artifact class, or None for anything else."""
    suffix = PurePosixPath(path).suffix
    for artifact_class in ArtifactClass:
        if artifact_class.value == suffix:
            return artifact_class
    return None


class ArtifactSource(ABC):
    """Read-only view of a working directory."""

    @abstractmethod
    def list_files(self) -> list[str]:
        """Every regular file, recursively, as relative POSIX paths in traversal order."""

    @abstractmethod
    def read_bytes(self, path: str) -> bytes:
        """Content of one file. Raises FileNotFoundError when absent."""

    @abstractmethod
    def is_file(self, path: str) -> bool:
        """Whether path names an existing regular file."""

    def describe(self) -> str:
        return type(self).__name__


class LocalSource(ArtifactSource):
    """ArtifactSource over a directory on disk."""

    def __init__(self, root: Path, excluded_directories: Iterable[str] = (".git",)) -> None:
        self.root = root
        self._excluded = frozenset(excluded_directories)

    def list_files(self) -> list[str]:
        if not self.root.is_dir():
            raise FileNotFoundError(f"Working directory not found: {self.root}")

        files: list[str] = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            # Pruning in place stops os.walk from descending.
            dirnames[:] = [d for d in dirnames if d not in self._excluded]
            rel_dir = Path(dirpath).relative_to(self.root)
            for filename in filenames:
                # Regular files only; dangling symlinks and sockets are skipped.
                if not os.path.isfile(os.path.join(dirpath, filename)):
                    continue
                files.append((rel_dir / filename).as_posix())
        return files

    def read_bytes(self, path: str) -> bytes:
        return (self.root / path).read_bytes()

    def is_file(self, path: str) -> bool:
        return (self.root / path).is_file()

    def describe(self) -> str:
        return str(self.root)


def _is_root_level(path: str) -> bool:
    return "/" not in path


def match_root(source: ArtifactSource, pattern: str) -> list[ArtifactFile]:
    """Root-level files whose name matches pattern, sorted."""
    names = [p for p in source.list_files() if _is_root_level(p) and fnmatch.fnmatchcase(p, pattern)]
    return [ArtifactFile(path=p, artifact_class=classify(p)) for p in sorted(names)]


def match_in_directory(source: ArtifactSource, directory: str, pattern: str) -> list[ArtifactFile]:
    """Files directly inside directory (not below it) whose name matches pattern, sorted."""
    prefix = directory.strip("/") + "/"
    matches: list[str] = []
    for path in source.list_files():
        if not path.startswith(prefix):
            continue
        remainder = path[len(prefix):]
        if "/" in remainder:
            continue
        if fnmatch.fnmatchcase(remainder, pattern):
            matches.append(path)
    return [ArtifactFile(path=p, artifact_class=classify(p)) for p in sorted(matches)]


def match_extensions(source: ArtifactSource, extensions: Iterable[str]) -> list[ArtifactFile]:
    """Every file anywhere in the tree whose extension is listed, in traversal order."""
    wanted = frozenset(extensions)
    matches: list[ArtifactFile] = []
    for path in source.list_files():
        if PurePosixPath(path).suffix in wanted:
            matches.append(ArtifactFile(path=path, artifact_class=classify(path)))
    return matches
