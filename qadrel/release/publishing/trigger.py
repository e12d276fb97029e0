# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Release trigger resolution.

Which publisher runs is decided once, from the CI event, before anything is
packaged:

  push to refs/heads/<main>     -> BranchRelease  (semantic-release)
  refs/tags/<prefix>*           -> TagRelease     (tagged GitHub release)
  anything else                 -> None           (CI only, nothing published)

A ref is either a branch or a tag, so at most one variant can match.
"""

from dataclasses import dataclass
from typing import Mapping, Optional, Union

BRANCH_REF_PREFIX = "refs/heads/"
TAG_REF_PREFIX = "refs/tags/"


@dataclass(frozen=True)
class BranchRelease:
    """Push to the main branch; the version comes from commit history."""

    branch: str
    kind: str = "semantic-release"


@dataclass(frozen=True)
class TagRelease:
    """Push of a version tag; the tag is the version."""

    tag: str
    kind: str = "tagged-release"

    @property
    def version(self) -> str:
        return self.tag


ReleaseTrigger = Union[BranchRelease, TagRelease]


def resolve_trigger(
    event_name: str,
    ref: str,
    main_branch: str = "main",
    tag_prefix: str = "v",
) -> Optional[ReleaseTrigger]:
    """
    Map event metadata to a release variant.

    Args:
        event_name: CI event type, e.g. "push" or "pull_request".
        ref: Full git ref, e.g. "refs/heads/main" or "refs/tags/v2.3.1".
        main_branch: Branch whose pushes go through semantic-release.
        tag_prefix: Prefix a tag needs to trigger a tagged release.

    Returns:
        BranchRelease, TagRelease, or None when nothing should be published.
    """
    if ref.startswith(TAG_REF_PREFIX):
        tag = ref[len(TAG_REF_PREFIX):]
        if tag and tag.startswith(tag_prefix):
            return TagRelease(tag=tag)
        return None

    if ref.startswith(BRANCH_REF_PREFIX):
        branch = ref[len(BRANCH_REF_PREFIX):]
        if event_name == "push" and branch == main_branch:
            return BranchRelease(branch=branch)

    return None


def trigger_from_environment(
    env: Mapping[str, str],
    main_branch: str = "main",
    tag_prefix: str = "v",
) -> Optional[ReleaseTrigger]:
    """Resolve the trigger from GITHUB_EVENT_NAME and GITHUB_REF."""
    return resolve_trigger(
        event_name=env.get("GITHUB_EVENT_NAME", ""),
        ref=env.get("GITHUB_REF", ""),
        main_branch=main_branch,
        tag_prefix=tag_prefix,
    )


def archive_name_for(trigger: ReleaseTrigger, prefix: str = "qemu-anti-detection") -> str:
    """Bundle file name for a trigger."""
    if isinstance(trigger, TagRelease):
        return f"{prefix}-{trigger.tag}.tar.gz"
    return f"{prefix}-release.tar.gz"
