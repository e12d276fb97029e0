# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for checksum manifest generation, parsing and verification.
"""

from pathlib import Path

import pytest

from qadrel.release.checksums.integrity import (
    ChecksumEntry,
    ChecksumManifest,
    ContentHasher,
    generate_checksums,
    parse_checksum_file,
    parse_manifest,
    verify_checksums,
    write_checksum_file,
)
from qadrel.release.discovery.source import LocalSource
from qadrel.release.exceptions import ManifestFormatError
from qadrel.utils.hashing import compute_sha256, compute_sha256_bytes


class LengthHasher(ContentHasher):
    """Deterministic stand-in digest: the content length, zero-padded."""

    def digest(self, data: bytes) -> str:
        return f"{len(data):064x}"


def test_one_entry_per_tracked_file(make_source, scenario_files) -> None:
    """README.md is never hashed; the patch and the config are."""
    manifest = generate_checksums(make_source(scenario_files))
    assert manifest.paths() == ["configs/samuil1337.xml", "qemu-8.1.0.patch"]
    assert len(manifest) == 2


def test_digest_is_sha256_of_content(make_source, scenario_files) -> None:
    manifest = generate_checksums(make_source(scenario_files))
    for entry in manifest:
        assert entry.digest == compute_sha256_bytes(scenario_files[entry.path])


def test_nested_files_and_all_classes(make_source) -> None:
    source = make_source({
        "bios.rom": b"\x55\xaa",
        "acpi/dsdt.dat": b"\x01",
        "configs/legacy/old.xml": b"<a/>",
        "notes.txt": b"skip",
    })
    manifest = generate_checksums(source)
    assert set(manifest.paths()) == {"bios.rom", "acpi/dsdt.dat", "configs/legacy/old.xml"}


def test_sorted_and_traversal_order(make_source) -> None:
    files = {"z.patch": b"z", "a.xml": b"<a/>", "m.dat": b"m"}
    sorted_manifest = generate_checksums(make_source(files))
    walk_manifest = generate_checksums(make_source(files), sort_entries=False)

    assert sorted_manifest.paths() == ["a.xml", "m.dat", "z.patch"]
    assert walk_manifest.paths() == ["z.patch", "a.xml", "m.dat"]
    assert sorted_manifest.as_set() == walk_manifest.as_set()


def test_uppercase_extensions_are_not_hashed(release_workdir: Path) -> None:
    (release_workdir / "NOTES.XML").write_text("<not-a-config/>")
    (release_workdir / "OLD.PATCH").write_text("stale\n")
    manifest = generate_checksums(LocalSource(release_workdir))
    assert manifest.paths() == ["configs/samuil1337.xml", "qemu-8.1.0.patch"]


def test_repeated_runs_give_identical_sets(release_workdir: Path) -> None:
    source = LocalSource(release_workdir)
    first = generate_checksums(source, sort_entries=False)
    second = generate_checksums(source, sort_entries=False)
    assert first.as_set() == second.as_set()


def test_custom_hasher(make_source) -> None:
    manifest = generate_checksums(make_source({"a.patch": b"12345"}), hasher=LengthHasher())
    assert manifest.entries[0].digest == f"{5:064x}"


def test_empty_manifest_renders_empty(make_source) -> None:
    manifest = generate_checksums(make_source({"README.md": b"x"}))
    assert len(manifest) == 0
    assert manifest.render() == ""


def test_render_is_sha256sum_format() -> None:
    digest = "ab" * 32
    manifest = ChecksumManifest(entries=(ChecksumEntry("configs/samuil1337.xml", digest),))
    assert manifest.render() == f"{digest}  configs/samuil1337.xml\n"


def test_written_file_parses_back(release_workdir: Path) -> None:
    manifest = generate_checksums(LocalSource(release_workdir))
    path = write_checksum_file(release_workdir / "checksums.txt", manifest)
    assert parse_checksum_file(path) == manifest


class TestParseManifest:
    def test_blank_lines_skipped_and_digest_lowercased(self) -> None:
        text = "\n" + "AB" * 32 + "  qemu-8.1.0.patch\n\n"
        manifest = parse_manifest(text)
        assert manifest.entries == (ChecksumEntry("qemu-8.1.0.patch", "ab" * 32),)

    def test_single_space_separator_rejected(self) -> None:
        with pytest.raises(ManifestFormatError, match="line 1"):
            parse_manifest("ab" * 32 + " file.xml\n")

    def test_bad_digest_rejected(self) -> None:
        with pytest.raises(ManifestFormatError, match="Invalid SHA256 digest"):
            parse_manifest("xyz  file.xml\n")

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            parse_checksum_file(tmp_path / "checksums.txt")


class TestVerifyChecksums:
    def test_success(self, release_workdir: Path) -> None:
        manifest = generate_checksums(LocalSource(release_workdir))
        result = verify_checksums(release_workdir, manifest)
        assert result.is_valid
        assert result.checked_count == 2
        assert not result.mismatches
        assert not result.missing_files

    def test_corruption_detected(self, release_workdir: Path) -> None:
        manifest = generate_checksums(LocalSource(release_workdir))
        (release_workdir / "qemu-8.1.0.patch").write_text("tampered\n")

        result = verify_checksums(release_workdir, manifest)
        assert not result.is_valid
        assert result.mismatches == ["qemu-8.1.0.patch"]

    def test_missing_file_reported(self, release_workdir: Path) -> None:
        manifest = generate_checksums(LocalSource(release_workdir))
        (release_workdir / "configs" / "samuil1337.xml").unlink()

        result = verify_checksums(release_workdir, manifest)
        assert not result.is_valid
        assert result.missing_files == ["configs/samuil1337.xml"]
        assert result.checked_count == 1

    def test_matches_file_hash(self, release_workdir: Path) -> None:
        manifest = generate_checksums(LocalSource(release_workdir))
        by_path = {entry.path: entry.digest for entry in manifest}
        assert by_path["qemu-8.1.0.patch"] == compute_sha256(release_workdir / "qemu-8.1.0.patch")
