"""
L3 Detection — Host platform probe.

Read-only: names the running OS / architecture / libc as a target
triple.
"""

from __future__ import annotations

import glob
import os
import platform
import sys

from frate.core.services.tool_install.domain.platform_match import target_triple


def detect_libc() -> str:
    """Return ``musl`` on musl-based Linux (Alpine), else ``gnu``."""
    libc, _version = platform.libc_ver()
    if libc == "glibc":
        return "gnu"
    if glob.glob("/lib/ld-musl-*.so.1"):
        return "musl"
    return "gnu"


def current_platform() -> str:
    """Target triple of the running interpreter.

    ``FRATE_PLATFORM`` overrides detection.
    """
    override = os.environ.get("FRATE_PLATFORM")
    if override:
        return override
    libc = detect_libc() if sys.platform.startswith("linux") else "gnu"
    return target_triple(platform.system(), platform.machine(), libc)
