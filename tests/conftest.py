# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Shared pytest fixtures for qadrel tests.

Two kinds of working directory are provided: an in-memory ArtifactSource for
the pure validation and hashing functions, and a real directory on disk
(scenario A: one valid XML config, a README and one QEMU patch) for the
packager, the pipeline and the CLI.
"""

import textwrap
from pathlib import Path
from typing import Callable

import pytest

from qadrel.release.discovery.source import ArtifactSource

VALID_XML = b'<domain type="kvm"><name>win10</name><os><smbios mode="host"/></os></domain>\n'
BROKEN_XML = b'<domain type="kvm"><name>win10</name>\n'

VALID_PATCH = textwrap.dedent("""\
    diff --git a/hw/i386/pc.c b/hw/i386/pc.c
    index 1111111..2222222 100644
    --- a/hw/i386/pc.c
    +++ b/hw/i386/pc.c
    @@ -1,3 +1,3 @@
     #include "qemu/osdep.h"
    -#define SMBIOS_VENDOR "QEMU"
    +#define SMBIOS_VENDOR "ASUS"
     int unused;
""").encode("utf-8")


class MemorySource(ArtifactSource):
    """ArtifactSource over a dict; list order is the dict's insertion order."""

    def __init__(self, files: dict[str, bytes]) -> None:
        self.files = dict(files)
        self.reads: list[str] = []

    def list_files(self) -> list[str]:
        return list(self.files)

    def read_bytes(self, path: str) -> bytes:
        if path not in self.files:
            raise FileNotFoundError(path)
        self.reads.append(path)
        return self.files[path]

    def is_file(self, path: str) -> bool:
        return path in self.files


@pytest.fixture()
def make_source() -> Callable[[dict[str, bytes]], MemorySource]:
    return MemorySource


@pytest.fixture()
def scenario_files() -> dict[str, bytes]:
    """Scenario A as a virtual listing."""
    return {
        "README.md": b"# QEMU anti-detection\n",
        "qemu-8.1.0.patch": VALID_PATCH,
        "configs/samuil1337.xml": VALID_XML,
    }


@pytest.fixture()
def release_workdir(tmp_path: Path) -> Path:
    """Scenario A on disk."""
    workdir = tmp_path / "checkout"
    (workdir / "configs").mkdir(parents=True)
    (workdir / "configs" / "samuil1337.xml").write_bytes(VALID_XML)
    (workdir / "README.md").write_text("# QEMU anti-detection\n", encoding="utf-8")
    (workdir / "qemu-8.1.0.patch").write_bytes(VALID_PATCH)
    return workdir


@pytest.fixture()
def tmp_config_file(tmp_path: Path) -> Path:
    """A small valid config overriding a few defaults."""
    config_content = textwrap.dedent("""\
        global:
          config_version: "1.0.0"
          project_name: "qadrel-test"
          log_level: "DEBUG"
        checksums:
          sort_entries: false
    """)
    config_file = tmp_path / "test_config.yaml"
    config_file.write_text(config_content, encoding="utf-8")
    return config_file


@pytest.fixture()
def invalid_config_file(tmp_path: Path) -> Path:
    """Valid YAML, but an unknown key in the validation section."""
    config_content = textwrap.dedent("""\
        validation:
          required_files: ["README.md"]
          schema_file: "libvirt.rng"
    """)
    config_file = tmp_path / "invalid_config.yaml"
    config_file.write_text(config_content, encoding="utf-8")
    return config_file


@pytest.fixture()
def broken_yaml_file(tmp_path: Path) -> Path:
    config_file = tmp_path / "broken.yaml"
    config_file.write_text("{{not: yaml: at: all:::", encoding="utf-8")
    return config_file


@pytest.fixture()
def valid_xml() -> bytes:
    return VALID_XML


@pytest.fixture()
def broken_xml() -> bytes:
    return BROKEN_XML


@pytest.fixture()
def valid_patch() -> bytes:
    return VALID_PATCH
