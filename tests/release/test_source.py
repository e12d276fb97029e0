# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for artifact enumeration: LocalSource and the glob helpers.
"""

import os
from pathlib import Path

import pytest

from qadrel.release.discovery.source import (
    ArtifactClass,
    LocalSource,
    classify,
    match_extensions,
    match_in_directory,
    match_root,
)


class TestLocalSource:
    def test_lists_relative_posix_paths(self, release_workdir: Path) -> None:
        files = set(LocalSource(release_workdir).list_files())
        assert files == {"README.md", "qemu-8.1.0.patch", "configs/samuil1337.xml"}

    def test_skips_git_directory(self, release_workdir: Path) -> None:
        (release_workdir / ".git" / "objects").mkdir(parents=True)
        (release_workdir / ".git" / "objects" / "stale.patch").write_text("x")
        files = LocalSource(release_workdir).list_files()
        assert not any(path.startswith(".git/") for path in files)

    def test_custom_exclusions(self, release_workdir: Path) -> None:
        (release_workdir / "build").mkdir()
        (release_workdir / "build" / "out.rom").write_bytes(b"\x00")
        files = LocalSource(release_workdir, excluded_directories=("build",)).list_files()
        assert "build/out.rom" not in files

    def test_missing_root_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            LocalSource(tmp_path / "nope").list_files()

    def test_skips_dangling_symlink(self, release_workdir: Path) -> None:
        os.symlink(release_workdir / "gone.patch", release_workdir / "link.patch")
        files = LocalSource(release_workdir).list_files()
        assert "link.patch" not in files
        assert "qemu-8.1.0.patch" in files

    def test_read_and_is_file(self, release_workdir: Path) -> None:
        source = LocalSource(release_workdir)
        assert source.is_file("README.md")
        assert not source.is_file("configs")
        assert source.read_bytes("README.md").startswith(b"# QEMU")


class TestMatching:
    def test_match_root_is_sorted_and_root_only(self, make_source) -> None:
        source = make_source({
            "qemu-9.0.0.patch": b"",
            "nested/qemu-7.0.0.patch": b"",
            "qemu-8.1.0.patch": b"",
        })
        assert [a.path for a in match_root(source, "*.patch")] == [
            "qemu-8.1.0.patch",
            "qemu-9.0.0.patch",
        ]

    def test_match_in_directory_is_not_recursive(self, make_source) -> None:
        source = make_source({
            "configs/b.xml": b"",
            "configs/old/c.xml": b"",
            "configs/a.xml": b"",
            "other.xml": b"",
        })
        assert [a.path for a in match_in_directory(source, "configs", "*.xml")] == [
            "configs/a.xml",
            "configs/b.xml",
        ]

    def test_empty_glob_is_empty_list(self, make_source) -> None:
        source = make_source({"README.md": b""})
        assert match_root(source, "*.patch") == []
        assert match_in_directory(source, "configs", "*.xml") == []

    def test_match_extensions_keeps_traversal_order(self, make_source) -> None:
        source = make_source({
            "z.dat": b"",
            "configs/a.xml": b"",
            "README.md": b"",
            "deep/dir/bios.rom": b"",
        })
        matched = match_extensions(source, (".dat", ".xml", ".rom"))
        assert [a.path for a in matched] == ["z.dat", "configs/a.xml", "deep/dir/bios.rom"]
        assert [a.artifact_class for a in matched] == [
            ArtifactClass.DATA_BLOB,
            ArtifactClass.XML_CONFIG,
            ArtifactClass.ROM_IMAGE,
        ]

    def test_extensions_are_case_sensitive(self, make_source) -> None:
        source = make_source({
            "NOTES.XML": b"",
            "OLD.PATCH": b"",
            "bios.ROM": b"",
            "configs/a.xml": b"",
        })
        matched = match_extensions(source, (".patch", ".xml", ".rom"))
        assert [a.path for a in matched] == ["configs/a.xml"]

    def test_globs_are_case_sensitive(self, make_source) -> None:
        source = make_source({"OLD.PATCH": b"", "configs/NOTES.XML": b"", "qemu-8.1.0.patch": b""})
        assert [a.path for a in match_root(source, "*.patch")] == ["qemu-8.1.0.patch"]
        assert match_in_directory(source, "configs", "*.xml") == []


@pytest.mark.parametrize(
    "path, expected",
    [
        ("qemu-8.1.0.patch", ArtifactClass.PATCH),
        ("configs/samuil1337.xml", ArtifactClass.XML_CONFIG),
        ("bios.rom", ArtifactClass.ROM_IMAGE),
        ("acpi/table.dat", ArtifactClass.DATA_BLOB),
        ("README.md", None),
        ("NOTES.XML", None),
    ],
)
def test_classify(path: str, expected) -> None:
    assert classify(path) is expected
