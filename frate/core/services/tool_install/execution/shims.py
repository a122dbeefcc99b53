"""
L4 Execution — Shim scripts in ``<cache>/bin``.

A shim is a tiny launcher named after the tool.  It locates the cache
root relative to its own location at run time, then execs the pinned
binary with the caller's arguments, so the exit status is the tool's.

POSIX shims are ``/bin/sh`` scripts; on Windows a ``.cmd`` file is
written instead.  Every shim carries a marker line naming the tool
and version it launches.
"""

from __future__ import annotations

import logging
import os
import re
import shlex
import sys
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from frate.core.errors import ShimGenerationError
from frate.core.models.cache import CacheEntry
from frate.core.services.tool_install.execution.cache_manager import FILES_DIR, CachePaths

logger = logging.getLogger(__name__)

SHIM_MARKER = "frate-shim:"

_MARKER_RE = re.compile(rf"{re.escape(SHIM_MARKER)}\s+(\S+)\s+(\S+)")

# bin/ is shared by every tool; concurrent installs take turns
_BIN_LOCK = threading.Lock()


@dataclass
class ShimInfo:
    """An existing shim, as read back from disk."""

    name: str
    version: str
    path: Path


def _is_windows(windows: bool | None) -> bool:
    return sys.platform == "win32" if windows is None else windows


def shim_path(paths: CachePaths, name: str, *, windows: bool | None = None) -> Path:
    filename = f"{name}.cmd" if _is_windows(windows) else name
    return paths.bin_dir / filename


def target_relpath(entry: CacheEntry) -> PurePosixPath:
    """Binary location relative to the cache root.

    Raises:
        ShimGenerationError: If the binary path would leave the entry.
    """
    binary = PurePosixPath(entry.binary)
    if binary.is_absolute() or ".." in binary.parts or not binary.parts:
        raise ShimGenerationError(
            f"Binary path {entry.binary!r} of '{entry.name}' is outside its cache entry"
        )
    return PurePosixPath("tools", entry.name, entry.version, FILES_DIR, *binary.parts)


def render_shim(entry: CacheEntry, *, windows: bool | None = None) -> str:
    """Shim script text for ``entry``."""
    rel = target_relpath(entry)
    marker = f"{SHIM_MARKER} {entry.name} {entry.version}"

    if _is_windows(windows):
        win_rel = str(rel).replace("/", "\\")
        return (
            "@echo off\r\n"
            f"rem {marker}\r\n"
            f'"%~dp0..\\{win_rel}" %*\r\n'
            "exit /b %ERRORLEVEL%\r\n"
        )

    return (
        "#!/bin/sh\n"
        f"# {marker}\n"
        "# Generated by frate; re-run 'frate install' to update.\n"
        'FRATE_ROOT=$(CDPATH= cd -- "$(dirname -- "$0")/.." && pwd) || exit 127\n'
        f'exec "$FRATE_ROOT"/{shlex.quote(str(rel))} "$@"\n'
    )


def create_shim(
    paths: CachePaths,
    entry: CacheEntry,
    *,
    windows: bool | None = None,
) -> Path:
    """Write (or replace) the shim for ``entry``.

    Raises:
        ShimGenerationError: If the binary is missing, lies outside the
            cache root, or the shim cannot be written.
    """
    rel = target_relpath(entry)
    binary = paths.root.joinpath(*rel.parts)
    try:
        binary.resolve().relative_to(paths.root.resolve())
    except ValueError:
        raise ShimGenerationError(
            f"Binary of '{entry.name}' resolves outside the cache root: {binary}"
        ) from None
    if not binary.is_file():
        raise ShimGenerationError(f"Binary of '{entry.name}' {entry.version} is missing: {binary}")

    content = render_shim(entry, windows=windows)
    dest = shim_path(paths, entry.name, windows=windows)

    with _BIN_LOCK:
        try:
            paths.bin_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=paths.bin_dir, prefix=f".{entry.name}-")
            tmp = Path(tmp_path)
            try:
                with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                    f.write(content)
                os.chmod(tmp, 0o755)
                os.replace(tmp, dest)
            except BaseException:
                tmp.unlink(missing_ok=True)
                raise
        except OSError as e:
            raise ShimGenerationError(f"Cannot write shim {dest}: {e}") from e

    logger.info("Shim %s → %s %s", dest.name, entry.name, entry.version)
    return dest


def read_shim(paths: CachePaths, name: str, *, windows: bool | None = None) -> ShimInfo | None:
    """Parse an existing shim's marker.  None if absent or foreign."""
    path = shim_path(paths, name, windows=windows)
    if not path.is_file():
        return None
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None
    m = _MARKER_RE.search(text)
    if not m:
        return None
    return ShimInfo(name=m.group(1), version=m.group(2), path=path)


def is_shim_current(paths: CachePaths, entry: CacheEntry, *, windows: bool | None = None) -> bool:
    """Whether the shim on disk is exactly what ``entry`` would produce."""
    path = shim_path(paths, entry.name, windows=windows)
    try:
        return path.read_bytes().decode("utf-8") == render_shim(entry, windows=windows)
    except (OSError, UnicodeDecodeError, ShimGenerationError):
        return False


def remove_shim(paths: CachePaths, name: str, *, windows: bool | None = None) -> bool:
    """Delete a tool's shim.  Returns whether one existed."""
    path = shim_path(paths, name, windows=windows)
    with _BIN_LOCK:
        if not path.exists() and not path.is_symlink():
            return False
        try:
            path.unlink()
        except OSError as e:
            raise ShimGenerationError(f"Cannot remove shim {path}: {e}") from e
    logger.info("Removed shim %s", path.name)
    return True


def list_shims(paths: CachePaths) -> list[ShimInfo]:
    """All frate shims currently in ``bin/``."""
    if not paths.bin_dir.is_dir():
        return []
    windows = sys.platform == "win32"
    shims: list[ShimInfo] = []
    for p in sorted(paths.bin_dir.iterdir()):
        if p.name.startswith("."):
            continue
        name = p.stem if windows and p.suffix.lower() == ".cmd" else p.name
        info = read_shim(paths, name)
        if info is not None:
            shims.append(info)
    return shims
