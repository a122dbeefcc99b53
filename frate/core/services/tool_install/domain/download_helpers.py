"""
L1 Domain — Download helpers (pure).

Archive format selection, checksum string parsing, and size
formatting.  No I/O.

Note: computing a file digest reads the file, so it lives in L4
(``execution/download.py``).
"""

from __future__ import annotations

import enum
from urllib.parse import unquote, urlparse

from frate.core.errors import UnsupportedArchiveFormat

DEFAULT_CHECKSUM_ALGO = "sha256"
SUPPORTED_CHECKSUM_ALGOS = ("sha256", "sha512", "sha1", "md5")


class ArchiveFormat(enum.Enum):
    """The closed set of archive formats an asset can use."""

    ZIP = "zip"
    TAR_GZ = "tar.gz"

    @property
    def suffixes(self) -> tuple[str, ...]:
        return _FORMAT_SUFFIXES[self]


_FORMAT_SUFFIXES: dict[ArchiveFormat, tuple[str, ...]] = {
    ArchiveFormat.ZIP: (".zip",),
    ArchiveFormat.TAR_GZ: (".tar.gz", ".tgz"),
}


def archive_filename(url: str) -> str:
    """Last path component of a download URL (query string dropped)."""
    path = unquote(urlparse(url).path)
    name = path.rstrip("/").rsplit("/", 1)[-1]
    return name or "download"


def archive_format_for(url_or_name: str) -> ArchiveFormat:
    """Select the archive format from the asset's file extension.

    Raises:
        UnsupportedArchiveFormat: For anything but zip / tar.gz / tgz.
    """
    name = archive_filename(url_or_name).lower()
    for fmt, suffixes in _FORMAT_SUFFIXES.items():
        if name.endswith(suffixes):
            return fmt
    raise UnsupportedArchiveFormat(archive_filename(url_or_name))


def parse_checksum(checksum: str) -> tuple[str, str]:
    """Split ``algo:hex`` (or a bare sha256 hex) into ``(algo, hex)``.

    Raises:
        ValueError: For an unknown algorithm or empty digest.
    """
    text = checksum.strip()
    if ":" in text:
        algo, digest = text.split(":", 1)
        algo = algo.strip().lower()
    else:
        algo, digest = DEFAULT_CHECKSUM_ALGO, text
    digest = digest.strip().lower()
    if algo not in SUPPORTED_CHECKSUM_ALGOS:
        raise ValueError(f"Unsupported checksum algorithm: {algo}")
    if not digest:
        raise ValueError(f"Empty checksum: {checksum!r}")
    return algo, digest


def _fmt_size(n: int | float) -> str:
    """Format byte count to human-readable string."""
    for unit in ("B", "KB", "MB", "GB"):
        if n < 1024:
            return f"{n:.1f} {unit}"
        n /= 1024
    return f"{n:.1f} TB"
