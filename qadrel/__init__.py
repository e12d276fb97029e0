# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
qadrel: validation, checksumming and packaging for QEMU anti-detection releases.
"""

__version__ = "0.1.0"
