# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Path helpers.

Everything that ends up in a manifest or an archive is a POSIX path relative
to the working directory.
"""

from pathlib import PurePosixPath


def is_safe_relative(name: str) -> bool:
    """
    True when name is relative and never climbs out of its root.

    Archive member names and manifest paths must pass this check. Absolute
    paths and any '..' component are rejected.
    """
    if not name or name.startswith("/") or name.startswith("\\"):
        return False
    pure = PurePosixPath(name)
    if pure.is_absolute():
        return False
    return ".." not in pure.parts
