"""
L5 Orchestration — The frate command surface.

These functions tie everything together: load the project, resolve
and lock, install from the lockfile, remove, locate, and run tools.
Operations over "all tools" catch ``FrateError`` per tool and report
each outcome; operations on one named tool let the error propagate.
"""

from __future__ import annotations

import concurrent.futures
import logging
import subprocess
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from frate.core.config.loader import (
    find_manifest_file,
    init_manifest,
    load_manifest,
    lockfile_path_for,
    save_manifest,
)
from frate.core.config.settings import Settings, load_settings
from frate.core.errors import FrateError, ManifestParseError, NotFound
from frate.core.models.lockfile import LockedEntry, Lockfile
from frate.core.models.manifest import Manifest
from frate.core.models.registry import ToolRecord
from frate.core.models.report import Report, ToolOutcome
from frate.core.persistence.lock_file import load_lockfile, save_lockfile
from frate.core.services.tool_install.detection.host_platform import current_platform
from frate.core.services.tool_install.domain.version_constraint import validate_requirement
from frate.core.services.tool_install.execution import shims
from frate.core.services.tool_install.execution.cache_manager import CacheManager, CachePaths
from frate.core.services.tool_install.execution.tool_management import (
    clean_tool,
    install_tool,
    locate_binary,
    uninstall_tool,
)
from frate.core.services.tool_install.registry.client import RegistryClient
from frate.core.services.tool_install.resolver.lock_sync import diff_lockfiles, sync_lockfile

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, str], None]


# ── Session ─────────────────────────────────────────────────────


@dataclass
class Session:
    """Everything one command needs: settings, cache, registry, platform."""

    settings: Settings
    cache: CacheManager
    registry: RegistryClient
    platform: str


def open_session(settings: Settings | None = None) -> Session:
    """Build a session from settings (loaded from the environment if omitted)."""
    settings = settings or load_settings()
    cache = CacheManager(CachePaths(settings.cache_root))
    registry = RegistryClient(settings.registry_url, timeout=settings.timeout)
    platform = settings.platform or current_platform()
    logger.debug("Session: cache=%s platform=%s", settings.cache_root, platform)
    return Session(settings=settings, cache=cache, registry=registry, platform=platform)


@dataclass
class Project:
    """A project's manifest and lockfile locations."""

    manifest_path: Path

    @property
    def lockfile_path(self) -> Path:
        return lockfile_path_for(self.manifest_path)

    @property
    def root(self) -> Path:
        return self.manifest_path.parent

    def manifest(self) -> Manifest:
        return load_manifest(self.manifest_path)

    def lockfile(self) -> Lockfile | None:
        return load_lockfile(self.lockfile_path)


def find_project(start_dir: Path | None = None) -> Project:
    """Locate the enclosing project.

    Raises:
        ManifestParseError: If no manifest is found.
    """
    path = find_manifest_file(start_dir)
    if path is None:
        raise ManifestParseError("No frate.yml found. Run 'frate init' to create one.")
    return Project(path)


def init_project(project_dir: Path, name: str | None = None) -> Project:
    """Create a default manifest in ``project_dir``."""
    return Project(init_manifest(project_dir, name))


# ── Resolve & lock ──────────────────────────────────────────────


@dataclass
class SyncResult:
    """Outcome of a lockfile sync."""

    lockfile: Lockfile
    path: Path
    changes: dict[str, list[str]] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return any(self.changes.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "lockfile": str(self.path),
            "changes": self.changes,
            "tools": {
                e.name: {"version": e.resolved_version, "platform": e.platform}
                for e in self.lockfile.entries()
            },
        }


def _lock(
    session: Session,
    manifest: Manifest,
    lockfile_path: Path,
    *,
    refresh: bool = False,
) -> SyncResult:
    previous = load_lockfile(lockfile_path)
    new = sync_lockfile(manifest, previous, session.registry, session.platform, refresh=refresh)
    save_lockfile(new, lockfile_path)
    changes = diff_lockfiles(previous, new)
    logger.info(
        "Lockfile %s: %d added, %d removed, %d changed",
        lockfile_path, len(changes["added"]), len(changes["removed"]), len(changes["changed"]),
    )
    return SyncResult(lockfile=new, path=lockfile_path, changes=changes)


def resolve_and_lock(session: Session, project: Project, *, refresh: bool = False) -> SyncResult:
    """Bring the project's lockfile in line with its manifest.

    Nothing is written unless every tool resolves.
    """
    return _lock(session, project.manifest(), project.lockfile_path, refresh=refresh)


def parse_tool_spec(spec: str) -> tuple[str, str]:
    """Split ``name@requirement`` (requirement defaults to ``*``).

    Raises:
        ManifestParseError: Empty name or invalid requirement.
    """
    name, _, requirement = spec.partition("@")
    name, requirement = name.strip(), requirement.strip() or "*"
    if not name:
        raise ManifestParseError(f"Invalid tool spec {spec!r}: missing name")
    error = validate_requirement(requirement)
    if error:
        raise ManifestParseError(f"Invalid requirement for '{name}': {error}")
    return name, requirement


def add_tool(session: Session, project: Project, spec: str) -> SyncResult:
    """Declare a tool and lock it.  The manifest is saved only if locking succeeds."""
    name, requirement = parse_tool_spec(spec)
    manifest = project.manifest()
    manifest.add(name, requirement)
    result = _lock(session, manifest, project.lockfile_path)
    save_manifest(manifest, project.manifest_path)
    logger.info("Added %s %s", name, requirement)
    return result


def remove_tool(session: Session, project: Project, name: str) -> SyncResult:
    """Drop a declared tool and re-sync.

    Raises:
        NotFound: If the manifest does not declare ``name``.
    """
    manifest = project.manifest()
    if not manifest.remove(name):
        raise NotFound(name, "manifest")
    result = _lock(session, manifest, project.lockfile_path)
    save_manifest(manifest, project.manifest_path)
    logger.info("Removed %s from %s", name, project.manifest_path)
    return result


def require_lockfile(project: Project) -> Lockfile:
    """The project's lockfile.

    Raises:
        NotFound: If there is none.
    """
    lockfile = project.lockfile()
    if lockfile is None:
        raise NotFound(
            project.lockfile_path.name, "lockfile",
            f"No usable {project.lockfile_path.name} in {project.root}. Run 'frate sync' first.",
        )
    return lockfile


# ── Install / uninstall / clean ─────────────────────────────────


def _failed(name: str, version: str | None, error: FrateError) -> ToolOutcome:
    logger.error("%s: %s", name, error)
    return ToolOutcome(name, "failed", version, str(error), error.kind)


def install(
    session: Session,
    lockfile: Lockfile,
    tool: str | None = None,
    *,
    jobs: int = 1,
    on_progress: ProgressCallback | None = None,
) -> Report:
    """Install one locked tool, or every tool in the lockfile.

    Args:
        session: Cache and network settings.
        lockfile: Source of truth for versions and assets.
        tool: A single tool name, or None for all.
        jobs: Parallel installs when greater than 1.
        on_progress: Optional ``(tool, status)`` callback.

    Raises:
        NotFound: ``tool`` is not in the lockfile.
        FrateError: Any failure installing the named ``tool``.
    """
    report = Report("install")
    timeout = session.settings.timeout

    if tool is not None:
        entry = lockfile.get(tool)
        if entry is None:
            raise NotFound(tool, "lockfile")
        report.add(install_tool(entry, session.cache, timeout=timeout))
        return report

    entries = lockfile.entries()

    def _install_one(entry: LockedEntry) -> ToolOutcome:
        if on_progress:
            on_progress(entry.name, "started")
        try:
            outcome = install_tool(entry, session.cache, timeout=timeout)
        except FrateError as e:
            outcome = _failed(entry.name, entry.resolved_version, e)
        if on_progress:
            on_progress(entry.name, outcome.status)
        return outcome

    if jobs > 1 and len(entries) > 1:
        outcomes: dict[str, ToolOutcome] = {}
        with concurrent.futures.ThreadPoolExecutor(max_workers=jobs) as pool:
            futures = {pool.submit(_install_one, e): e.name for e in entries}
            for future in concurrent.futures.as_completed(futures):
                outcomes[futures[future]] = future.result()
        for entry in entries:
            report.add(outcomes[entry.name])
    else:
        for entry in entries:
            report.add(_install_one(entry))

    logger.info(
        "Install: %d installed, %d skipped, %d failed",
        report.installed, report.skipped, report.failed,
    )
    return report


def _known_tools(cache: CacheManager) -> list[str]:
    names = set(cache.installed_tools())
    names.update(info.name for info in shims.list_shims(cache.paths))
    return sorted(names)


def _over_tools(
    operation: str,
    action: Callable[[str, CacheManager], ToolOutcome],
    cache: CacheManager,
    tool: str | None,
) -> Report:
    report = Report(operation)
    if tool is not None:
        report.add(action(tool, cache))
        return report
    for name in _known_tools(cache):
        try:
            report.add(action(name, cache))
        except FrateError as e:
            report.add(_failed(name, None, e))
    return report


def uninstall(session: Session, tool: str | None = None) -> Report:
    """Remove one tool (or every installed tool) from the cache.

    Downloaded archives are kept.
    """
    return _over_tools("uninstall", uninstall_tool, session.cache, tool)


def clean(session: Session, tool: str | None = None) -> Report:
    """Like ``uninstall`` plus archives; with no tool, also empties staging."""
    report = _over_tools("clean", clean_tool, session.cache, tool)
    if tool is None:
        session.cache.remove_archives()
        session.cache.purge_staging()
    return report


# ── Locate / run / search ───────────────────────────────────────


@dataclass
class Location:
    """Where an installed tool lives.

    ``ambiguous`` is set when several executables in the archive ranked
    equally; ``candidates`` then lists every executable seen, best first.
    """

    name: str
    version: str
    binary: Path
    shim: Path
    ambiguous: bool = False
    candidates: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "binary": str(self.binary),
            "shim": str(self.shim),
            "ambiguous": self.ambiguous,
            "candidates": list(self.candidates),
        }


def locate(session: Session, tool: str) -> Location:
    """Binary and shim of an installed tool.

    Raises:
        NotFound: The tool is not installed.
    """
    info = shims.read_shim(session.cache.paths, tool)
    if info is None:
        raise NotFound(tool, "cache", f"'{tool}' is not installed")
    binary = locate_binary(session.cache, tool, info.version)
    entry = session.cache.get_entry(tool, info.version)
    return Location(
        name=tool,
        version=info.version,
        binary=binary,
        shim=info.path,
        ambiguous=bool(entry and entry.ambiguous),
        candidates=list(entry.candidates) if entry else [],
    )


def run_tool(session: Session, tool: str, args: list[str] | tuple[str, ...] = ()) -> int:
    """Run an installed tool; returns its exit code."""
    location = locate(session, tool)
    cmd = [str(location.binary), *args]
    logger.debug("Running %s", cmd)
    try:
        return subprocess.run(cmd, check=False).returncode
    except OSError as e:
        raise NotFound(tool, "cache", f"Cannot execute {location.binary}: {e}") from e


def search(session: Session, tool: str) -> ToolRecord:
    """The registry record for ``tool``.

    Raises:
        RegistryUnavailable, ToolNotInRegistry.
    """
    return session.registry.get_tool(tool)


def search_similar(session: Session, query: str) -> list[ToolRecord]:
    """Registry records whose name contains ``query``."""
    return session.registry.search(query)


def cache_status(session: Session) -> dict[str, Any]:
    """Installed tools, versions, and disk usage of the cache."""
    status = session.cache.status()
    status["shims"] = {info.name: info.version for info in shims.list_shims(session.cache.paths)}
    return status
