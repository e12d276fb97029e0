# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Release pipeline errors.

Advisory problems (a patch that won't dry-run, a patch without a version in
its name) are logged and never raised. Everything here is fatal: the CLI
catches it at the command boundary and exits non-zero.
"""


class ReleaseError(Exception):
    """Base for all fatal release pipeline errors."""


class ValidationFailure(ReleaseError):
    """
    A required file is missing or an XML config is malformed.

    status carries the file's validation status ("missing" or "malformed").
    """

    def __init__(self, path: str, reason: str, status: str = "malformed") -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason
        self.status = status


class PackagingError(ReleaseError):
    """A mandatory bundle input is absent or the produced archive is wrong."""


class ManifestFormatError(ReleaseError):
    """A checksum manifest line is not '<sha256>  <path>'."""
