"""
L4 Execution — Download and checksum verification.

An archive is trusted only after its digest matches the locked
checksum.  Downloads land in the system temp directory first, so a
failed or corrupt download never touches the cache root.  No retries
happen here; ``FetchError`` is for the caller to retry.
"""

from __future__ import annotations

import hashlib
import http.client
import logging
import os
import tempfile
import urllib.error
import urllib.request
from dataclasses import dataclass
from pathlib import Path

from frate import __version__
from frate.core.errors import FetchError, IntegrityError
from frate.core.models.lockfile import LockedEntry
from frate.core.services.tool_install.domain.download_helpers import (
    ArchiveFormat,
    _fmt_size,
    archive_filename,
    archive_format_for,
    parse_checksum,
)
from frate.core.services.tool_install.execution.cache_manager import CacheManager

logger = logging.getLogger(__name__)

_CHUNK = 64 * 1024


@dataclass
class VerifiedArchive:
    """A downloaded archive whose checksum has been checked."""

    path: Path
    format: ArchiveFormat
    digest: str
    size_bytes: int
    from_cache: bool = False


def compute_digest(path: Path, algo: str = "sha256") -> str:
    """Hex digest of a file."""
    h = hashlib.new(algo)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK), b""):
            h.update(chunk)
    return h.hexdigest()


def verify_checksum(path: Path, checksum: str, *, url: str = "") -> str:
    """Check ``path`` against ``checksum`` (``algo:hex`` or bare sha256).

    Returns:
        The actual hex digest.

    Raises:
        IntegrityError: On mismatch or an unusable checksum string.
    """
    try:
        algo, expected = parse_checksum(checksum)
    except ValueError as e:
        raise IntegrityError(url or str(path), checksum, f"<unusable checksum: {e}>") from e

    actual = compute_digest(path, algo)
    if actual != expected:
        raise IntegrityError(url or str(path), f"{algo}:{expected}", f"{algo}:{actual}")
    return actual


def download_file(url: str, dest: Path, *, timeout: float = 30.0) -> int:
    """Stream ``url`` into ``dest``.

    Returns:
        Number of bytes written.

    Raises:
        FetchError: On any network or HTTP failure, including a body
            shorter than the advertised Content-Length.
    """
    request = urllib.request.Request(url, headers={"User-Agent": f"frate/{__version__}"})
    size = 0
    expected: int | None = None
    try:
        with urllib.request.urlopen(request, timeout=timeout) as resp, open(dest, "wb") as f:
            length = (resp.headers.get("Content-Length") or "").strip()
            if length.isdigit():
                expected = int(length)
            for chunk in iter(lambda: resp.read(_CHUNK), b""):
                f.write(chunk)
                size += len(chunk)
    except urllib.error.HTTPError as e:
        raise FetchError(url, f"HTTP {e.code} {e.reason}") from e
    except urllib.error.URLError as e:
        raise FetchError(url, e.reason) from e
    except (http.client.HTTPException, OSError, ValueError) as e:
        raise FetchError(url, e) from e

    if expected is not None and size < expected:
        raise FetchError(url, f"incomplete download: got {size} of {expected} bytes")
    return size


def fetch_and_verify(
    entry: LockedEntry,
    cache: CacheManager,
    *,
    timeout: float = 30.0,
) -> VerifiedArchive:
    """Get the verified archive for a locked entry.

    A previously downloaded archive is reused if it still verifies; a
    cached copy that does not is discarded and downloaded again.  A
    fresh download that fails verification is fatal.

    Raises:
        UnsupportedArchiveFormat: Asset is not zip / tar.gz.
        FetchError: Download failed.
        IntegrityError: Downloaded bytes do not match the checksum.
        CacheIOError: The verified archive could not be stored.
    """
    url = entry.download_url
    fmt = archive_format_for(url)
    filename = archive_filename(url)

    cached = cache.cached_archive(entry.name, entry.resolved_version, filename)
    if cached is not None:
        try:
            digest = verify_checksum(cached, entry.checksum, url=str(cached))
        except IntegrityError as e:
            logger.warning("Discarding cached archive %s: %s", cached, e)
            cache.discard_archive(cached)
        else:
            logger.info("Using cached archive %s", cached)
            return VerifiedArchive(cached, fmt, digest, cached.stat().st_size, from_cache=True)

    fd, tmp_name = tempfile.mkstemp(prefix="frate-download-", suffix=f"-{filename}")
    os.close(fd)
    tmp = Path(tmp_name)
    try:
        logger.info("Downloading %s", url)
        size = download_file(url, tmp, timeout=timeout)
        digest = verify_checksum(tmp, entry.checksum, url=url)
        logger.debug("Verified %s (%s)", filename, _fmt_size(size))
        stored = cache.store_archive(entry.name, entry.resolved_version, tmp, filename)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise

    return VerifiedArchive(stored, fmt, digest, size)
