# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Subcommand handlers for the qadrel CLI.

Each handler loads the config, runs one stage (or the whole pipeline), and
turns the outcome into an exit code. Fatal release errors are caught here
and nowhere else; the log line names the file and the reason.

No print() calls except where a command's output is the point (`info`).
"""

import argparse
import json
import logging
import os
import sys
import tempfile
from pathlib import Path
from typing import Optional

from qadrel import __version__
from qadrel.cli.exit_codes import CONFIG_ERROR, RUNTIME_ERROR, SUCCESS, USER_ERROR, VALIDATION_ERROR
from qadrel.config.exceptions import ConfigError
from qadrel.config.loader import default_config, load_config
from qadrel.config.schema import QadrelConfig
from qadrel.logging.logger import configure_package_logging, get_logger
from qadrel.release.checksums.integrity import (
    ChecksumManifest,
    parse_checksum_file,
    verify_checksums,
    write_checksum_file,
)
from qadrel.release.exceptions import ManifestFormatError, PackagingError, ValidationFailure
from qadrel.release.packaging.packager import extract_archive, package_release, verify_bundle, write_package
from qadrel.release.pipeline import checksum_workdir, make_source, run_release, validate_workdir
from qadrel.release.publishing.trigger import (
    ReleaseTrigger,
    archive_name_for,
    resolve_trigger,
    trigger_from_environment,
)


def _load_and_bootstrap(
    args: argparse.Namespace,
    command_name: str,
) -> tuple[int, Optional[QadrelConfig], logging.Logger]:
    """
    Shared setup: load config, apply log level and log file.

    Returns (exit_code, config, logger). A non-SUCCESS exit code means the
    caller should return it immediately.
    """
    logger = get_logger(f"qadrel.cli.{command_name}", log_level=args.log_level or "INFO")

    if args.config is not None:
        try:
            config = load_config(Path(args.config))
        except ConfigError as err:
            logger.error(
                "Configuration error",
                extra={"command": command_name, "error": str(err)},
            )
            return CONFIG_ERROR, None, logger
    else:
        config = default_config()
        logger.debug("No config provided, running with defaults", extra={"command": command_name})

    workdir = Path(args.workdir)
    if not workdir.is_dir():
        logger.error("Working directory not found", extra={"workdir": str(workdir)})
        return USER_ERROR, None, logger

    log_level = args.log_level or config.global_config.log_level
    log_file = None
    if config.global_config.log_file is not None:
        log_file = workdir / config.global_config.log_file
    configure_package_logging(log_level, log_file)

    return SUCCESS, config, logger


def _resolve_cli_trigger(args: argparse.Namespace, config: QadrelConfig) -> Optional[ReleaseTrigger]:
    """--ref/--event-name win over the GitHub environment."""
    publishing = config.publishing
    if args.ref is None and args.event_name is None:
        return trigger_from_environment(
            os.environ, main_branch=publishing.main_branch, tag_prefix=publishing.tag_prefix
        )
    return resolve_trigger(
        event_name=args.event_name or os.environ.get("GITHUB_EVENT_NAME", "push"),
        ref=args.ref or os.environ.get("GITHUB_REF", ""),
        main_branch=publishing.main_branch,
        tag_prefix=publishing.tag_prefix,
    )


def _report_failure(logger: logging.Logger, command: str, err: Exception) -> int:
    if isinstance(err, ValidationFailure):
        logger.error(
            f"{command} failed",
            extra={"file": err.path, "status": err.status, "reason": err.reason},
        )
        return VALIDATION_ERROR
    if isinstance(err, (PackagingError, ManifestFormatError, FileNotFoundError)):
        logger.error(f"{command} failed", extra={"error": str(err)})
        return VALIDATION_ERROR
    logger.error(f"{command} failed", extra={"error": str(err)}, exc_info=True)
    return RUNTIME_ERROR


def handle_validate(args: argparse.Namespace) -> int:
    """Run the validator over the working directory."""
    exit_code, config, logger = _load_and_bootstrap(args, "validate")
    if exit_code != SUCCESS or config is None:
        return exit_code

    workdir = Path(args.workdir)
    try:
        report = validate_workdir(make_source(workdir, config), workdir, config)
    except Exception as err:
        return _report_failure(logger, "Validation", err)

    logger.info(
        "Validation complete",
        extra={
            "patch_warnings": len(report.advisories),
            "patch_versions": {v.path: v.version for v in report.patch_versions},
        },
    )
    return SUCCESS


def handle_checksums(args: argparse.Namespace) -> int:
    """Write checksums.txt for the working directory."""
    exit_code, config, logger = _load_and_bootstrap(args, "checksums")
    if exit_code != SUCCESS or config is None:
        return exit_code

    workdir = Path(args.workdir)
    try:
        manifest = checksum_workdir(make_source(workdir, config), config)
        for entry in manifest:
            logger.info("Checksum", extra={"file": entry.path, "sha256": entry.digest})

        if args.dry_run:
            logger.info("Dry run: checksum file not written", extra={"entries": len(manifest)})
            return SUCCESS

        write_checksum_file(workdir / config.checksums.manifest_name, manifest)
    except Exception as err:
        return _report_failure(logger, "Checksum generation", err)

    return SUCCESS


def handle_package(args: argparse.Namespace) -> int:
    """Build the archive and notes from an existing checksums.txt."""
    exit_code, config, logger = _load_and_bootstrap(args, "package")
    if exit_code != SUCCESS or config is None:
        return exit_code

    workdir = Path(args.workdir)
    trigger = _resolve_cli_trigger(args, config)
    if trigger is None:
        logger.error(
            "No release trigger: pass --ref refs/heads/<main> or refs/tags/<tag>",
            extra={"ref": args.ref, "event_name": args.event_name},
        )
        return USER_ERROR

    archive_name = archive_name_for(trigger, config.packaging.archive_prefix)
    if args.dry_run:
        logger.info("Dry run: would package release", extra={"archive": archive_name})
        return SUCCESS

    output_dir = Path(args.output_dir) if args.output_dir else workdir / config.packaging.output_directory
    try:
        result = package_release(
            workdir,
            workdir / config.checksums.manifest_name,
            archive_name,
            config.packaging,
            config_directory=config.validation.config_directory,
        )
        verify_bundle(result.archive_bytes, result.staged_files)
        write_package(result, output_dir, config.packaging.notes_file)
    except Exception as err:
        return _report_failure(logger, "Packaging", err)

    return SUCCESS


def handle_release(args: argparse.Namespace) -> int:
    """Full pipeline: validate, checksum, package, hand off to the publisher."""
    exit_code, config, logger = _load_and_bootstrap(args, "release")
    if exit_code != SUCCESS or config is None:
        return exit_code

    workdir = Path(args.workdir)
    trigger = _resolve_cli_trigger(args, config)
    logger.info(
        "Starting release run",
        extra={
            "workdir": str(workdir),
            "trigger": type(trigger).__name__ if trigger is not None else "none",
            "dry_run": args.dry_run,
        },
    )

    try:
        run = run_release(
            workdir,
            config,
            trigger,
            output_dir=Path(args.output_dir) if args.output_dir else None,
            dry_run=args.dry_run,
            reuse_manifest=args.reuse_manifest,
        )
    except Exception as err:
        return _report_failure(logger, "Release", err)

    logger.info(
        "Release run complete",
        extra={
            "checksums": len(run.manifest),
            "variant": run.plan.variant if run.plan is not None else None,
        },
    )
    return SUCCESS


def handle_verify(args: argparse.Namespace) -> int:
    """Check files against a checksum manifest, and optionally an archive's contents."""
    exit_code, config, logger = _load_and_bootstrap(args, "verify")
    if exit_code != SUCCESS or config is None:
        return exit_code

    workdir = Path(args.workdir)
    manifest_path = Path(args.manifest) if args.manifest else workdir / config.checksums.manifest_name

    try:
        manifest = parse_checksum_file(manifest_path)
        result = verify_checksums(workdir, manifest)
        if not result.is_valid:
            logger.error(
                "Checksum verification failed",
                extra={"mismatches": result.mismatches, "missing": result.missing_files},
            )
            return VALIDATION_ERROR

        if args.archive:
            with tempfile.TemporaryDirectory(prefix="qadrel-verify-") as tmp:
                unpacked = Path(tmp)
                members = set(extract_archive(Path(args.archive), unpacked))
                required = {Path(config.packaging.readme).name, config.checksums.manifest_name}
                absent = sorted(required - members)
                if absent:
                    raise PackagingError(f"Archive is missing mandatory files: {', '.join(absent)}")
                bundled = ChecksumManifest(
                    entries=tuple(entry for entry in manifest if entry.path in members)
                )
                archive_result = verify_checksums(unpacked, bundled)
            if not archive_result.is_valid:
                logger.error(
                    "Archive contents do not match the manifest",
                    extra={"archive": args.archive, "mismatches": archive_result.mismatches},
                )
                return VALIDATION_ERROR
    except Exception as err:
        return _report_failure(logger, "Verification", err)

    logger.info("Verification passed", extra={"checked": result.checked_count})
    return SUCCESS


def handle_info(args: argparse.Namespace) -> int:
    """Print the version and the effective configuration as JSON."""
    exit_code, config, logger = _load_and_bootstrap(args, "info")
    if exit_code != SUCCESS or config is None:
        return exit_code

    payload = {
        "qadrel_version": __version__,
        "python_version": sys.version.split()[0],
        "config": config.model_dump(by_alias=True),
    }
    sys.stdout.write(json.dumps(payload, indent=2) + "\n")
    sys.stdout.flush()
    return SUCCESS
