# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
CLI entrypoint for qadrel.

Every operation is a subcommand of `qadrel`. Global options (--config,
--log-level, --dry-run, --workdir) are shared through a parent parser.

Usage:
    qadrel validate
    qadrel checksums --workdir path/to/checkout
    qadrel release --ref refs/tags/v2.3.1 --event-name push
    qadrel verify --manifest checksums.txt
"""

import argparse
import sys
from typing import Optional, Sequence

from qadrel.cli.commands import (
    handle_checksums,
    handle_info,
    handle_package,
    handle_release,
    handle_validate,
    handle_verify,
)
from qadrel.cli.exit_codes import USER_ERROR


def _build_global_parser() -> argparse.ArgumentParser:
    """Parent parser with the options every subcommand inherits."""
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to YAML configuration file.",
    )
    parent.add_argument(
        "--log-level",
        type=str,
        default=None,
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity (overrides global.log_level from the config).",
    )
    parent.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        dest="dry_run",
        help="Run checks without writing any output files.",
    )
    parent.add_argument(
        "--workdir",
        type=str,
        default=".",
        help="Working directory holding the release artifacts.",
    )
    return parent


def _add_trigger_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--ref",
        type=str,
        default=None,
        help="Git ref of the triggering event (default: $GITHUB_REF).",
    )
    parser.add_argument(
        "--event-name",
        type=str,
        default=None,
        dest="event_name",
        help="CI event type, e.g. push or pull_request (default: $GITHUB_EVENT_NAME).",
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        dest="output_dir",
        help="Directory for the archive and release notes.",
    )


def _register_subcommands(
    subparsers: argparse._SubParsersAction,  # type: ignore[type-arg]
    parent: argparse.ArgumentParser,
) -> None:
    commands = [
        ("validate", "Validate patches, XML configs and required files.", handle_validate),
        ("checksums", "Write the SHA-256 manifest of all artifacts.", handle_checksums),
        ("package", "Build the release archive and release notes.", handle_package),
        ("release", "Validate, checksum, package and prepare publishing.", handle_release),
        ("verify", "Check files against a checksum manifest.", handle_verify),
        ("info", "Display version and effective configuration.", handle_info),
    ]

    for name, help_text, handler in commands:
        parser = subparsers.add_parser(name, parents=[parent], help=help_text)
        parser.set_defaults(func=handler)

    _add_trigger_options(subparsers.choices["package"])
    _add_trigger_options(subparsers.choices["release"])
    subparsers.choices["release"].add_argument(
        "--reuse-manifest",
        action="store_true",
        default=False,
        dest="reuse_manifest",
        help="Package the existing checksums.txt instead of regenerating it.",
    )

    verify_parser = subparsers.choices["verify"]
    verify_parser.add_argument(
        "--manifest",
        type=str,
        default=None,
        help="Manifest to check (default: <workdir>/checksums.txt).",
    )
    verify_parser.add_argument(
        "--archive",
        type=str,
        default=None,
        help="Also confirm this archive holds exactly the expected bundle files.",
    )


def build_parser() -> argparse.ArgumentParser:
    parent = _build_global_parser()
    root_parser = argparse.ArgumentParser(
        prog="qadrel",
        description="qadrel: validate, checksum and package QEMU anti-detection releases.",
        parents=[parent],
    )
    subparsers = root_parser.add_subparsers(dest="command")
    _register_subcommands(subparsers, parent)
    return root_parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """
    Parse arguments, dispatch to the handler, exit with its code.

    No subcommand prints help and exits with USER_ERROR.
    """
    root_parser = build_parser()
    args = root_parser.parse_args(argv)

    if getattr(args, "func", None) is None:
        root_parser.print_help()
        sys.exit(USER_ERROR)

    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
