# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Release subsystem for qadrel.

Validation, checksum generation, packaging and publisher hand-off for a
directory of QEMU patches, libvirt XML configs, ROM images and data blobs.
Stages run in a fixed order and any fatal failure stops the run before a
bundle exists.
"""
