"""
Status use case — what the project declares, locks, and has installed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from frate.core.config.loader import find_manifest_file, load_manifest, lockfile_path_for
from frate.core.errors import FrateError
from frate.core.persistence.lock_file import load_lockfile
from frate.core.services.tool_install.execution import shims
from frate.core.services.tool_install.execution.cache_manager import CacheManager


@dataclass
class ToolStatus:
    """One declared tool."""

    name: str
    requirement: str
    locked_version: str | None = None
    installed: bool = False
    active_version: str | None = None
    installed_versions: list[str] = field(default_factory=list)

    @property
    def locked(self) -> bool:
        return self.locked_version is not None

    @property
    def up_to_date(self) -> bool:
        """Installed and the shim points at the locked version."""
        return self.locked and self.active_version == self.locked_version

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "requirement": self.requirement,
            "locked_version": self.locked_version,
            "installed": self.installed,
            "active_version": self.active_version,
            "installed_versions": self.installed_versions,
        }


@dataclass
class ToolsResult:
    """Aggregated per-tool status for a project."""

    project_name: str = ""
    manifest_path: Path | None = None
    has_lockfile: bool = False
    tools: list[ToolStatus] = field(default_factory=list)
    error: str | None = None

    @property
    def installed_count(self) -> int:
        return sum(1 for t in self.tools if t.installed)

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        if self.error:
            return {"error": self.error}
        return {
            "project": self.project_name,
            "manifest": str(self.manifest_path) if self.manifest_path else None,
            "lockfile": self.has_lockfile,
            "tools": [t.to_dict() for t in self.tools],
        }


def list_tools(cache: CacheManager, manifest_path: Path | None = None) -> ToolsResult:
    """Cross-reference manifest, lockfile, and cache.

    Args:
        cache: The cache to inspect.
        manifest_path: Explicit frate.yml (default: search upward).

    Returns:
        ToolsResult; ``error`` is set instead of raising.
    """
    result = ToolsResult()

    try:
        if manifest_path is None:
            manifest_path = find_manifest_file()
        if manifest_path is None:
            result.error = "No frate.yml found. Run 'frate init' to create one."
            return result
        manifest = load_manifest(manifest_path)
    except FrateError as e:
        result.error = str(e)
        return result

    result.project_name = manifest.project.name
    result.manifest_path = manifest_path

    lockfile = load_lockfile(lockfile_path_for(manifest_path))
    result.has_lockfile = lockfile is not None

    for name, requirement in manifest.dependencies.items():
        status = ToolStatus(name=name, requirement=requirement)
        if lockfile is not None:
            entry = lockfile.get(name)
            status.locked_version = entry.resolved_version if entry else None
        try:
            status.installed_versions = cache.list_versions(name)
        except FrateError:
            status.installed_versions = []
        shim = shims.read_shim(cache.paths, name)
        if shim is not None and shim.version in status.installed_versions:
            status.installed = True
            status.active_version = shim.version
        result.tools.append(status)

    return result
