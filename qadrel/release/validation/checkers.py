# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Structural checkers for individual artifacts.

A checker looks at one file's bytes and returns a CheckOutcome. Checkers
never raise for bad input: deciding whether a bad file is fatal is the
validator's job, not theirs.

  XmlWellFormednessChecker  parse with ElementTree, nothing more (no schema)
  UnifiedDiffChecker        parse a unified diff and check hunk line counts
  DryRunPatchChecker        run `patch --dry-run -p1` in the working directory
"""

import re
import shutil
import subprocess
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class CheckOutcome:
    ok: bool
    reason: str = ""


class WellFormednessChecker(ABC):
    """Decides whether a blob is structurally sound."""

    @abstractmethod
    def check(self, data: bytes) -> CheckOutcome:
        ...

    def __call__(self, data: bytes) -> bool:
        return self.check(data).ok


class XmlWellFormednessChecker(WellFormednessChecker):
    """Well-formedness only, the equivalent of `xmllint --noout`."""

    def check(self, data: bytes) -> CheckOutcome:
        try:
            ET.fromstring(data)
        except ET.ParseError as err:
            return CheckOutcome(ok=False, reason=f"XML syntax error: {err}")
        except (LookupError, ValueError) as err:
            # Undeclared or unsupported encoding in the XML declaration.
            return CheckOutcome(ok=False, reason=f"XML encoding error: {err}")
        return CheckOutcome(ok=True)


class PatchChecker(ABC):
    """Looks at one patch file. `name` is its path relative to the working directory."""

    @abstractmethod
    def check(self, name: str, data: bytes) -> CheckOutcome:
        ...


_HUNK_HEADER = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")


class UnifiedDiffChecker(PatchChecker):
    """
    In-process syntax check for unified diffs.

    A patch passes when it contains at least one file section and every hunk
    body has exactly the number of old/new lines its header promises. Git
    sections without hunks (binary, rename, mode change) count as file
    sections. Leading commit-message text, as produced by git format-patch,
    is ignored.
    """

    def check(self, name: str, data: bytes) -> CheckOutcome:
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError:
            text = data.decode("latin-1")

        lines = text.splitlines()
        file_sections = 0
        i = 0
        while i < len(lines):
            line = lines[i]

            if line.startswith("diff --git ") or line.startswith("GIT binary patch"):
                file_sections += 1
                i += 1
                continue

            if line.startswith("--- ") and i + 1 < len(lines) and lines[i + 1].startswith("+++ "):
                file_sections += 1
                i += 2
                continue

            match = _HUNK_HEADER.match(line)
            if match:
                if file_sections == 0:
                    return CheckOutcome(ok=False, reason=f"line {i + 1}: hunk before any file header")
                old_count = int(match.group(2)) if match.group(2) is not None else 1
                new_count = int(match.group(4)) if match.group(4) is not None else 1
                i += 1
                i, error = self._consume_hunk(lines, i, old_count, new_count)
                if error:
                    return CheckOutcome(ok=False, reason=error)
                continue

            i += 1

        if file_sections == 0:
            return CheckOutcome(ok=False, reason="no file headers found")
        return CheckOutcome(ok=True)

    @staticmethod
    def _consume_hunk(
        lines: list[str], start: int, old_count: int, new_count: int
    ) -> tuple[int, Optional[str]]:
        i = start
        old_seen = new_seen = 0
        while i < len(lines) and (old_seen < old_count or new_seen < new_count):
            line = lines[i]
            if line.startswith("\\"):
                # "\ No newline at end of file"
                i += 1
                continue
            marker = line[:1]
            if marker == " " or line == "":
                old_seen += 1
                new_seen += 1
            elif marker == "-":
                old_seen += 1
            elif marker == "+":
                new_seen += 1
            else:
                break
            i += 1

        while i < len(lines) and lines[i].startswith("\\"):
            i += 1

        if old_seen != old_count or new_seen != new_count:
            return i, (
                f"line {start}: hunk expects -{old_count}/+{new_count} lines, "
                f"found -{old_seen}/+{new_seen}"
            )
        return i, None


class DryRunPatchChecker(PatchChecker):
    """
    Ask patch(1) whether the file applies. The QEMU tree isn't checked out,
    so failure is expected for real patches; the check only surfaces output
    that patch can't even parse.
    """

    def __init__(self, workdir: Path, patch_binary: str = "patch", timeout: float = 30.0) -> None:
        self.workdir = workdir
        self.patch_binary = patch_binary
        self.timeout = timeout

    def check(self, name: str, data: bytes) -> CheckOutcome:
        if shutil.which(self.patch_binary) is None:
            return CheckOutcome(ok=False, reason=f"{self.patch_binary} executable not found")

        try:
            result = subprocess.run(
                [self.patch_binary, "--dry-run", "--batch", "-p1"],
                input=data,
                cwd=str(self.workdir),
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            return CheckOutcome(ok=False, reason=f"patch --dry-run timed out after {self.timeout}s")

        if result.returncode != 0:
            detail = result.stdout.decode("utf-8", "replace").strip().splitlines()
            tail = detail[-1] if detail else f"exit status {result.returncode}"
            return CheckOutcome(ok=False, reason=f"patch --dry-run failed: {tail}")
        return CheckOutcome(ok=True)


def build_patch_checker(kind: str, workdir: Path) -> PatchChecker:
    """Checker for the `validation.patch_checker` config value."""
    if kind == "syntax":
        return UnifiedDiffChecker()
    if kind == "dry-run":
        return DryRunPatchChecker(workdir)
    raise ValueError(f"Unknown patch checker '{kind}'. Expected 'syntax' or 'dry-run'.")
