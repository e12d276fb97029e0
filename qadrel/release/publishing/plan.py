# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Publisher hand-off.

qadrel does not publish anything itself. It produces the archive and the
checksum manifest, then describes what the external publisher should do
with them:

  BranchRelease -> .releaserc.json for semantic-release. semantic-release
                   picks the version from commit history, renames the
                   assets with it, appends to CHANGELOG.md and commits that.
  TagRelease    -> inputs for the tag-release action: attach the archive and
                   checksums.txt, let GitHub generate the notes, never a
                   draft, never a prerelease.

Both variants need a repository-write token (GITHUB_TOKEN by default). Its
absence is only warned about here; the publisher is what fails.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

from qadrel.config.schema import PublishingConfig
from qadrel.logging.logger import get_logger
from qadrel.release.publishing.trigger import BranchRelease, ReleaseTrigger, TagRelease
from qadrel.utils.filesystem import append_line, atomic_write

_logger: logging.Logger = get_logger(__name__)


@dataclass(frozen=True)
class ReleaseAsset:
    path: str
    name: str
    label: str


@dataclass(frozen=True)
class PublishPlan:
    """What the selected publisher receives."""

    variant: str
    archive_name: str
    checksums_name: str
    assets: list[ReleaseAsset]
    version: Optional[str]
    draft: bool = False
    prerelease: bool = False
    generate_release_notes: bool = False
    release_config: dict[str, Any] = field(default_factory=dict)


def semantic_release_config(
    archive_name: str,
    checksums_name: str,
    settings: PublishingConfig,
    archive_prefix: str = "qemu-anti-detection",
) -> dict[str, Any]:
    """
    semantic-release configuration for the main-branch path.

    ${nextRelease.*} placeholders are expanded by semantic-release, not here.
    """
    checksums_stem = Path(checksums_name).stem
    checksums_suffix = Path(checksums_name).suffix
    return {
        "branches": [settings.main_branch],
        "plugins": [
            "@semantic-release/commit-analyzer",
            "@semantic-release/release-notes-generator",
            ["@semantic-release/changelog", {"changelogFile": settings.changelog_file}],
            [
                "@semantic-release/github",
                {
                    "assets": [
                        {
                            "path": archive_name,
                            "name": f"{archive_prefix}-${{nextRelease.version}}.tar.gz",
                            "label": settings.archive_label,
                        },
                        {
                            "path": checksums_name,
                            "name": f"{checksums_stem}-${{nextRelease.version}}{checksums_suffix}",
                            "label": settings.checksums_label,
                        },
                    ]
                },
            ],
            [
                "@semantic-release/git",
                {
                    "assets": [settings.changelog_file],
                    "message": (
                        "chore(release): ${nextRelease.version} [skip ci]\n\n${nextRelease.notes}"
                    ),
                },
            ],
        ],
    }


def build_publish_plan(
    trigger: ReleaseTrigger,
    archive_name: str,
    checksums_name: str,
    settings: PublishingConfig,
    archive_prefix: str = "qemu-anti-detection",
) -> PublishPlan:
    """Describe the publisher run for a resolved trigger."""
    if isinstance(trigger, TagRelease):
        plan = PublishPlan(
            variant=trigger.kind,
            archive_name=archive_name,
            checksums_name=checksums_name,
            assets=[
                ReleaseAsset(path=archive_name, name=archive_name, label=settings.archive_label),
                ReleaseAsset(path=checksums_name, name=checksums_name, label=settings.checksums_label),
            ],
            version=trigger.version,
            draft=False,
            prerelease=False,
            generate_release_notes=True,
        )
    elif isinstance(trigger, BranchRelease):
        config = semantic_release_config(archive_name, checksums_name, settings, archive_prefix)
        plan = PublishPlan(
            variant=trigger.kind,
            archive_name=archive_name,
            checksums_name=checksums_name,
            assets=[
                ReleaseAsset(path=asset["path"], name=asset["name"], label=asset["label"])
                for asset in config["plugins"][3][1]["assets"]
            ],
            version=None,
            release_config=config,
        )
    else:
        raise TypeError(f"Unsupported release trigger: {trigger!r}")

    _logger.info(
        "Publish plan ready",
        extra={"variant": plan.variant, "archive": archive_name, "version": plan.version},
    )
    return plan


def write_semantic_release_config(plan: PublishPlan, path: Path) -> Path:
    """Write .releaserc.json. Only meaningful for the semantic-release variant."""
    if not plan.release_config:
        raise ValueError(f"Publish plan '{plan.variant}' has no semantic-release configuration")
    atomic_write(path, json.dumps(plan.release_config, indent=2) + "\n")
    _logger.info("semantic-release config written", extra={"path": str(path)})
    return path


def github_outputs(plan: PublishPlan) -> dict[str, str]:
    """Step outputs later workflow steps read via steps.<id>.outputs.*."""
    return {
        "variant": plan.variant,
        "archive": plan.archive_name,
        "checksums": plan.checksums_name,
        "version": plan.version or "",
        "draft": str(plan.draft).lower(),
        "prerelease": str(plan.prerelease).lower(),
        "generate_release_notes": str(plan.generate_release_notes).lower(),
    }


def write_github_outputs(plan: PublishPlan, output_path: Path) -> None:
    """Append key=value lines to the $GITHUB_OUTPUT file."""
    for key, value in github_outputs(plan).items():
        append_line(output_path, f"{key}={value}")
    _logger.debug("GitHub outputs written", extra={"path": str(output_path)})


def check_publish_token(env: Mapping[str, str], token_env: str = "GITHUB_TOKEN") -> bool:
    """True when the publishing token is present; warns otherwise."""
    if env.get(token_env):
        return True
    _logger.warning(
        "Publishing token not set; the publisher step will fail",
        extra={"env": token_env},
    )
    return False
