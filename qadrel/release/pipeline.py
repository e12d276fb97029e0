# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
End-to-end release run.

    validate -> checksums -> [trigger?] -> package -> verify bundle -> publish plan

Stages run strictly in order. A fatal error in any stage propagates out of
run_release before the next stage starts: a malformed XML config means no
checksums.txt, a missing README means no archive. When the event is not a
release trigger the run stops after checksums, which is the CI-only path.

With dry_run nothing is written; validation and hashing still happen so the
run still fails on bad inputs. With reuse_manifest the checksums.txt handed
over by the CI job is packaged as-is; it is never regenerated.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from qadrel.config.schema import QadrelConfig
from qadrel.logging.logger import get_logger
from qadrel.release.checksums.integrity import (
    ChecksumManifest,
    generate_checksums,
    parse_checksum_file,
    write_checksum_file,
)
from qadrel.release.discovery.source import ArtifactSource, LocalSource
from qadrel.release.packaging.packager import (
    PackageResult,
    WrittenPackage,
    package_release,
    verify_bundle,
    write_package,
)
from qadrel.release.publishing.plan import (
    PublishPlan,
    build_publish_plan,
    check_publish_token,
    write_github_outputs,
    write_semantic_release_config,
)
from qadrel.release.publishing.trigger import BranchRelease, ReleaseTrigger, archive_name_for
from qadrel.release.validation.checkers import XmlWellFormednessChecker, build_patch_checker
from qadrel.release.validation.validator import ValidationReport, run_validation

_logger: logging.Logger = get_logger(__name__)


@dataclass(frozen=True)
class ReleaseRun:
    """What a run produced. Fields after manifest stay None on the CI-only path."""

    validation: ValidationReport
    manifest: ChecksumManifest
    manifest_path: Path
    trigger: Optional[ReleaseTrigger] = None
    package: Optional[PackageResult] = None
    written: Optional[WrittenPackage] = None
    plan: Optional[PublishPlan] = None


def make_source(workdir: Path, config: QadrelConfig) -> LocalSource:
    return LocalSource(workdir, excluded_directories=config.validation.excluded_directories)


def validate_workdir(
    source: ArtifactSource, workdir: Path, config: QadrelConfig
) -> ValidationReport:
    """Run the validator with checkers chosen by config."""
    settings = config.validation
    return run_validation(
        source,
        patch_checker=build_patch_checker(settings.patch_checker, workdir),
        xml_checker=XmlWellFormednessChecker(),
        patch_pattern=settings.patch_pattern,
        config_directory=settings.config_directory,
        xml_pattern=settings.xml_pattern,
        required_files=settings.required_files,
        versioned_patch_pattern=settings.versioned_patch_pattern,
    )


def checksum_workdir(source: ArtifactSource, config: QadrelConfig) -> ChecksumManifest:
    return generate_checksums(
        source,
        extensions=config.checksums.extensions,
        sort_entries=config.checksums.sort_entries,
    )


def run_release(
    workdir: Path,
    config: QadrelConfig,
    trigger: Optional[ReleaseTrigger],
    output_dir: Optional[Path] = None,
    dry_run: bool = False,
    env: Optional[Mapping[str, str]] = None,
    reuse_manifest: bool = False,
) -> ReleaseRun:
    """
    Run every stage for one working directory.

    Args:
        workdir: Repository checkout to release from.
        config: Validated configuration.
        trigger: Resolved release trigger, or None for a CI-only run.
        output_dir: Where the archive, notes and .releaserc.json go.
            Defaults to packaging.output_directory under workdir.
        dry_run: Validate and hash, but write nothing.
        env: Environment for token and $GITHUB_OUTPUT lookup; os.environ by default.
        reuse_manifest: Package the checksums.txt already in workdir (handed over
            from an earlier CI job) instead of generating a new one.

    Raises:
        ValidationFailure: Malformed XML config or missing required file.
        PackagingError: Missing bundle input or a bundle that fails verification.
        FileNotFoundError: reuse_manifest is set and checksums.txt is absent.
    """
    env = os.environ if env is None else env
    output_dir = output_dir or (workdir / config.packaging.output_directory)
    source = make_source(workdir, config)

    report = validate_workdir(source, workdir, config)

    manifest_path = workdir / config.checksums.manifest_name
    if reuse_manifest:
        manifest = parse_checksum_file(manifest_path)
        _logger.info(
            "Reusing existing checksum file",
            extra={"path": str(manifest_path), "entries": len(manifest)},
        )
    elif dry_run:
        manifest = checksum_workdir(source, config)
        _logger.info("Dry run: checksum file not written", extra={"entries": len(manifest)})
    else:
        manifest = checksum_workdir(source, config)
        write_checksum_file(manifest_path, manifest)

    if trigger is None:
        _logger.info("No release trigger for this event; stopping after checksums")
        return ReleaseRun(validation=report, manifest=manifest, manifest_path=manifest_path)

    archive_name = archive_name_for(trigger, config.packaging.archive_prefix)
    plan = build_publish_plan(
        trigger,
        archive_name=archive_name,
        checksums_name=config.checksums.manifest_name,
        settings=config.publishing,
        archive_prefix=config.packaging.archive_prefix,
    )

    if dry_run:
        _logger.info(
            "Dry run: would package release",
            extra={"archive": archive_name, "variant": plan.variant},
        )
        return ReleaseRun(
            validation=report,
            manifest=manifest,
            manifest_path=manifest_path,
            trigger=trigger,
            plan=plan,
        )

    result = package_release(
        workdir,
        manifest_path,
        archive_name,
        config.packaging,
        config_directory=config.validation.config_directory,
    )
    verify_bundle(result.archive_bytes, result.staged_files)
    written = write_package(result, output_dir, config.packaging.notes_file)

    if isinstance(trigger, BranchRelease):
        write_semantic_release_config(plan, output_dir / config.publishing.release_config_file)

    github_output = env.get("GITHUB_OUTPUT")
    if github_output:
        write_github_outputs(plan, Path(github_output))

    check_publish_token(env, config.publishing.token_env)

    _logger.info(
        "Release ready for publishing",
        extra={
            "variant": plan.variant,
            "archive": str(written.archive_path),
            "size_bytes": written.size_bytes,
        },
    )
    return ReleaseRun(
        validation=report,
        manifest=manifest,
        manifest_path=manifest_path,
        trigger=trigger,
        package=result,
        written=written,
        plan=plan,
    )
