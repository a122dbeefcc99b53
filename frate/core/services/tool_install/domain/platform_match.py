"""
L1 Domain — Platform identity and asset selection.

The registry publishes one asset per Rust-style target triple
(``x86_64-unknown-linux-gnu``).  This module builds those triples
and picks the asset of a version that fits a platform.
"""

from __future__ import annotations

import logging

from frate.core.errors import NoCompatibleAsset
from frate.core.models.registry import PlatformAsset, ToolVersion

logger = logging.getLogger(__name__)

# Architecture name normalization (uname / Windows / macOS spellings).
_ARCH_MAP: dict[str, str] = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "AMD64": "x86_64",
    "aarch64": "aarch64",
    "arm64": "aarch64",
    "ARM64": "aarch64",
    "armv7l": "armv7",
    "i386": "i686",
    "i686": "i686",
    "x86": "i686",
}

_LIBC_SWAP = (("-gnu", "-musl"), ("-musl", "-gnu"))


def normalize_arch(machine: str) -> str:
    return _ARCH_MAP.get(machine, _ARCH_MAP.get(machine.lower(), machine.lower()))


def target_triple(system: str, machine: str, libc: str = "gnu") -> str:
    """Build the target triple for an OS / architecture pair.

    Args:
        system: ``platform.system()`` style name (Linux, Darwin, Windows).
        machine: ``platform.machine()`` style name.
        libc: ``gnu`` or ``musl`` (Linux only).
    """
    arch = normalize_arch(machine)
    system = system.lower()

    if system == "linux":
        abi = "gnueabihf" if arch == "armv7" and libc == "gnu" else libc
        return f"{arch}-unknown-linux-{abi}"
    if system == "darwin":
        return f"{arch}-apple-darwin"
    if system == "windows":
        return f"{arch}-pc-windows-msvc"
    return f"{arch}-unknown-{system}"


def candidate_platforms(platform: str) -> list[str]:
    """Platforms acceptable for ``platform``, best first.

    A Linux triple falls back to the same triple with the other libc.
    """
    candidates = [platform]
    for old, new in _LIBC_SWAP:
        if platform.endswith(old):
            candidates.append(platform[: -len(old)] + new)
            break
    return candidates


def select_asset(tool: str, version: ToolVersion, platform: str) -> PlatformAsset:
    """Pick the asset of ``version`` for ``platform``.

    Raises:
        NoCompatibleAsset: If no acceptable platform is published.
    """
    by_platform = {a.platform: a for a in version.platform_assets}
    for candidate in candidate_platforms(platform):
        asset = by_platform.get(candidate)
        if asset is not None:
            if candidate != platform:
                logger.info(
                    "%s %s: no %s asset, using %s", tool, version.version, platform, candidate,
                )
            return asset
    raise NoCompatibleAsset(tool, version.version, platform, sorted(by_platform))
