# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
End-to-end tests for run_release against real working directories.
"""

import json
import os
from pathlib import Path

import pytest

from qadrel.config.schema import QadrelConfig
from qadrel.release.checksums.integrity import parse_checksum_file
from qadrel.release.exceptions import PackagingError, ValidationFailure
from qadrel.release.packaging.packager import list_archive_files
from qadrel.release.pipeline import run_release
from qadrel.release.publishing.trigger import BranchRelease, TagRelease


@pytest.fixture()
def config() -> QadrelConfig:
    return QadrelConfig.model_validate({"validation": {"patch_checker": "syntax"}})


def test_ci_only_run_stops_after_checksums(release_workdir: Path, config: QadrelConfig) -> None:
    run = run_release(release_workdir, config, trigger=None, env={})

    assert run.package is None
    assert run.plan is None
    assert len(run.manifest) == 2
    assert parse_checksum_file(release_workdir / "checksums.txt") == run.manifest
    assert not list(release_workdir.glob("*.tar.gz"))


def test_tagged_release(release_workdir: Path, config: QadrelConfig, tmp_path: Path) -> None:
    output_file = tmp_path / "github_output"
    run = run_release(
        release_workdir,
        config,
        trigger=TagRelease(tag="v2.3.1"),
        env={"GITHUB_OUTPUT": str(output_file), "GITHUB_TOKEN": "t"},
    )

    archive = release_workdir / "qemu-anti-detection-v2.3.1.tar.gz"
    assert run.written is not None
    assert run.written.archive_path == archive
    assert set(list_archive_files(archive)) == {
        "configs/samuil1337.xml",
        "qemu-8.1.0.patch",
        "README.md",
        "checksums.txt",
    }
    assert (release_workdir / "RELEASE_NOTES.md").read_text() == run.package.notes
    assert not (release_workdir / ".releaserc.json").exists()
    assert "archive=qemu-anti-detection-v2.3.1.tar.gz" in output_file.read_text().splitlines()


def test_branch_release_writes_releaserc(release_workdir: Path, config: QadrelConfig, tmp_path: Path) -> None:
    out = tmp_path / "dist"
    run = run_release(release_workdir, config, trigger=BranchRelease(branch="main"), output_dir=out, env={})

    assert run.plan is not None and run.plan.variant == "semantic-release"
    assert (out / "qemu-anti-detection-release.tar.gz").is_file()
    releaserc = json.loads((out / ".releaserc.json").read_text())
    assert releaserc["branches"] == ["main"]


def test_malformed_xml_stops_before_checksums(release_workdir: Path, config: QadrelConfig, broken_xml: bytes) -> None:
    (release_workdir / "configs" / "bad.xml").write_bytes(broken_xml)

    with pytest.raises(ValidationFailure) as excinfo:
        run_release(release_workdir, config, trigger=TagRelease(tag="v1.0.0"), env={})

    assert excinfo.value.path == "configs/bad.xml"
    assert not (release_workdir / "checksums.txt").exists()
    assert not list(release_workdir.glob("*.tar.gz"))


def test_missing_readme_fails_validation(release_workdir: Path, config: QadrelConfig) -> None:
    (release_workdir / "README.md").unlink()
    with pytest.raises(ValidationFailure, match="README.md"):
        run_release(release_workdir, config, trigger=TagRelease(tag="v1.0.0"), env={})


def test_missing_readme_in_packaging_only(release_workdir: Path) -> None:
    """With README dropped from required_files, the packager still refuses."""
    (release_workdir / "README.md").unlink()
    config = QadrelConfig.model_validate({"validation": {"required_files": []}})
    with pytest.raises(PackagingError):
        run_release(release_workdir, config, trigger=TagRelease(tag="v1.0.0"), env={})
    assert not list(release_workdir.glob("*.tar.gz"))


def test_dry_run_writes_nothing(release_workdir: Path, config: QadrelConfig) -> None:
    before = sorted(p.name for p in release_workdir.iterdir())
    run = run_release(release_workdir, config, trigger=TagRelease(tag="v2.3.1"), dry_run=True, env={})

    assert run.plan is not None
    assert run.plan.archive_name == "qemu-anti-detection-v2.3.1.tar.gz"
    assert run.package is None
    assert sorted(p.name for p in release_workdir.iterdir()) == before


def test_bad_patch_is_not_fatal(release_workdir: Path, config: QadrelConfig) -> None:
    (release_workdir / "broken.patch").write_text("this is not a diff\n")
    run = run_release(release_workdir, config, trigger=None, env={})
    assert [c.path for c in run.validation.advisories] == ["broken.patch"]
    assert "broken.patch" in run.manifest.paths()


def test_dangling_symlink_is_ignored(release_workdir: Path, config: QadrelConfig) -> None:
    os.symlink(release_workdir / "gone.patch", release_workdir / "link.patch")
    run = run_release(release_workdir, config, trigger=None, env={})
    assert run.validation.advisories == []
    assert "link.patch" not in run.manifest.paths()


def test_reuse_manifest_packages_existing_file(release_workdir: Path, config: QadrelConfig) -> None:
    run_release(release_workdir, config, trigger=None, env={})
    manifest_path = release_workdir / "checksums.txt"
    original = manifest_path.read_bytes()

    # Content drift after the ci job must not change what gets shipped.
    (release_workdir / "qemu-8.1.0.patch").write_text("rebuilt\n")
    run = run_release(
        release_workdir, config, trigger=TagRelease(tag="v2.3.1"), env={}, reuse_manifest=True
    )

    assert manifest_path.read_bytes() == original
    assert run.manifest == parse_checksum_file(manifest_path)
    archive = release_workdir / "qemu-anti-detection-v2.3.1.tar.gz"
    assert "checksums.txt" in list_archive_files(archive)


def test_reuse_manifest_requires_existing_file(release_workdir: Path, config: QadrelConfig) -> None:
    with pytest.raises(FileNotFoundError):
        run_release(release_workdir, config, trigger=TagRelease(tag="v1.0.0"), env={}, reuse_manifest=True)
    assert not list(release_workdir.glob("*.tar.gz"))
