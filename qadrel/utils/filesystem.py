# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Atomic file writes.

Release outputs (archive, manifest, notes) are written to a temp file in the
target directory and renamed into place. A run aborted mid-write leaves a
stray temp file, never a truncated archive that a publisher could pick up.
"""

import tempfile
from pathlib import Path

_TEMP_PREFIX = ".qadrel_tmp_"


def atomic_write(target_path: Path, content: str, encoding: str = "utf-8") -> None:
    """
    Write text to target_path atomically.

    Raises:
        OSError: If the write or rename fails.
    """
    atomic_write_bytes(target_path, content.encode(encoding))


def atomic_write_bytes(target_path: Path, data: bytes) -> None:
    """
    Write bytes to target_path atomically.

    The temp file lives in the same directory as the target so the final
    rename never crosses a filesystem boundary.

    Raises:
        OSError: If the write or rename fails.
    """
    target_path.parent.mkdir(parents=True, exist_ok=True)

    temp_fd = tempfile.NamedTemporaryFile(
        mode="wb",
        dir=str(target_path.parent),
        prefix=_TEMP_PREFIX,
        suffix=".tmp",
        delete=False,
    )
    temp_path = Path(temp_fd.name)

    try:
        temp_fd.write(data)
        temp_fd.flush()
        temp_fd.close()
        temp_path.replace(target_path)
    except BaseException:
        temp_fd.close()
        if temp_path.exists():
            temp_path.unlink()
        raise


def append_line(target_path: Path, line: str, encoding: str = "utf-8") -> None:
    """Append one line to a file, creating it if needed. Used for $GITHUB_OUTPUT."""
    target_path.parent.mkdir(parents=True, exist_ok=True)
    with open(target_path, "a", encoding=encoding) as f:
        f.write(line.rstrip("\n") + "\n")
