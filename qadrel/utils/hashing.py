# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
SHA-256 helpers.

The release manifest is sha256sum-compatible, so this is the only digest
algorithm qadrel ever produces.
"""

import hashlib
from pathlib import Path

HASH_HEX_LENGTH = 64
HASH_BUFFER_SIZE = 65536  # 64 KiB


def compute_sha256(file_path: Path) -> str:
    """
    Hex SHA-256 of a file, read in 64 KiB chunks.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        OSError: If the file can't be read.
    """
    hasher = hashlib.sha256()
    with open(file_path, "rb") as f:
        while True:
            chunk = f.read(HASH_BUFFER_SIZE)
            if not chunk:
                break
            hasher.update(chunk)
    return hasher.hexdigest()


def compute_sha256_bytes(data: bytes) -> str:
    """Hex SHA-256 of an in-memory blob."""
    return hashlib.sha256(data).hexdigest()


def is_sha256_hex(value: str) -> bool:
    """True for a 64-character lowercase or uppercase hex string."""
    if len(value) != HASH_HEX_LENGTH:
        return False
    try:
        int(value, 16)
    except ValueError:
        return False
    return True
