"""
L4 Execution — Install, uninstall, and clean one tool.

Each operation works on a single tool and returns a ``ToolOutcome``.
Failures propagate as ``FrateError`` subclasses; aggregation over many
tools is the orchestrator's job.

Install pipeline for a locked entry::

    cached & consistent?  → skipped (shim repaired if it drifted)
    fetch_and_verify      → verified archive (archives/ cache)
    extract_archive       → tmp/<staging>/files
    detect_binary         → primary executable
    commit_entry          → tools/<name>/<version>  (atomic rename)
    create_shim           → bin/<name>
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from frate.core.errors import NotFound, ShimGenerationError
from frate.core.models.cache import CacheEntry
from frate.core.models.lockfile import LockedEntry
from frate.core.models.report import ToolOutcome
from frate.core.services.tool_install.detection.executables import detect_binary
from frate.core.services.tool_install.execution import shims
from frate.core.services.tool_install.execution.cache_manager import FILES_DIR, CacheManager
from frate.core.services.tool_install.execution.download import fetch_and_verify
from frate.core.services.tool_install.execution.extract import extract_archive

logger = logging.getLogger(__name__)


def installed_entry(cache: CacheManager, name: str, version: str) -> CacheEntry | None:
    """The cache entry for ``name`` at ``version`` if it is usable."""
    entry = cache.get_entry(name, version)
    if entry is None or not cache.is_complete(entry):
        return None
    return entry


def _make_executable(path: Path) -> None:
    if sys.platform == "win32":
        return
    mode = path.stat().st_mode
    if not mode & 0o111:
        os.chmod(path, mode | 0o755)


def install_tool(
    locked: LockedEntry,
    cache: CacheManager,
    *,
    timeout: float = 30.0,
) -> ToolOutcome:
    """Make ``locked`` available through a shim.

    Idempotent: a consistent cache entry with a current shim is left
    alone.

    Raises:
        FetchError, IntegrityError, UnsupportedArchiveFormat,
        UnsafeArchiveEntry, CacheIOError, ShimGenerationError.
    """
    name, version = locked.name, locked.resolved_version

    existing = installed_entry(cache, name, version)
    if existing is not None:
        if shims.is_shim_current(cache.paths, existing):
            logger.debug("%s %s already installed", name, version)
            return ToolOutcome(name, "skipped", version, "already installed")
        shims.create_shim(cache.paths, existing)
        return ToolOutcome(name, "installed", version, "shim updated")

    archive = fetch_and_verify(locked, cache, timeout=timeout)

    staging = cache.new_staging_dir(f"{name}-{version}")
    try:
        files_dir = staging / FILES_DIR
        extract_archive(archive.path, archive.format, files_dir)

        choice = detect_binary(files_dir, name)
        if choice is None:
            raise ShimGenerationError(
                f"No executable found in {archive.path.name} for '{name}' {version}"
            )
        _make_executable(files_dir / choice.binary)

        entry = CacheEntry(
            name=name,
            version=version,
            url=locked.download_url,
            checksum=locked.checksum,
            platform=locked.platform,
            binary=choice.binary,
            candidates=choice.candidates,
            ambiguous=choice.ambiguous,
        )
        cache.commit_entry(staging, entry)
    finally:
        cache.discard(staging)

    try:
        shims.create_shim(cache.paths, entry)
    except ShimGenerationError:
        # An entry without its shim is not installed
        cache.remove_entry(name, version)
        raise

    logger.info("Installed %s %s (%s)", name, version, entry.binary)
    return ToolOutcome(name, "installed", version)


def uninstall_tool(name: str, cache: CacheManager) -> ToolOutcome:
    """Remove a tool's shim and every cached version.

    Downloaded archives stay so a reinstall needs no network.
    Uninstalling a tool that is not installed is a no-op.
    """
    removed_shim = shims.remove_shim(cache.paths, name)
    versions = cache.remove_tool(name)
    if not removed_shim and not versions:
        return ToolOutcome(name, "skipped", message="not installed")
    return ToolOutcome(name, "removed", ", ".join(versions) or None)


def clean_tool(name: str, cache: CacheManager) -> ToolOutcome:
    """Like ``uninstall_tool``, and also drop the tool's archives."""
    outcome = uninstall_tool(name, cache)
    archives = cache.remove_archives(name)
    if outcome.status == "skipped" and archives:
        return ToolOutcome(name, "removed", message=f"{archives} cached archive(s)")
    return outcome


def locate_binary(cache: CacheManager, name: str, version: str | None = None) -> Path:
    """Path of the installed binary for ``name``.

    Without ``version`` the version named by the current shim wins.

    Raises:
        NotFound: If the tool is not installed.
    """
    if version is None:
        info = shims.read_shim(cache.paths, name)
        if info is None:
            raise NotFound(name, "cache", f"'{name}' is not installed")
        version = info.version
    entry = installed_entry(cache, name, version)
    if entry is None:
        raise NotFound(name, "cache", f"'{name}' {version} is not installed")
    return cache.binary_path(entry)
