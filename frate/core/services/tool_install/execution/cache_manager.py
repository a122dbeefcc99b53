"""
L4 Execution — Cache root layout and mutation.

Owns everything under the user-level cache root::

    <root>/tools/<name>/<version>/entry.json   install metadata
    <root>/tools/<name>/<version>/files/...    extracted archive
    <root>/archives/<name>/<version>/<file>    verified downloads
    <root>/bin/                                shims (see shims.py)
    <root>/tmp/                                staging area

Entries appear and disappear by directory rename, so a reader never
sees a half-built or half-deleted entry.
"""

from __future__ import annotations

import json
import logging
import os
import re
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from frate.core.errors import CacheIOError
from frate.core.models.cache import CacheEntry
from frate.core.services.tool_install.domain.download_helpers import _fmt_size

logger = logging.getLogger(__name__)

ENTRY_FILE = "entry.json"
FILES_DIR = "files"

_SAFE_COMPONENT = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._+-]*$")


def _safe_component(value: str, what: str) -> str:
    """Reject names that could not be a single directory name."""
    if not _SAFE_COMPONENT.match(value) or value in (".", ".."):
        raise CacheIOError(f"Invalid {what} for the cache: {value!r}")
    return value


@dataclass(frozen=True)
class CachePaths:
    """Handle on one cache root.  Pass it around; never read it globally."""

    root: Path

    @property
    def tools_dir(self) -> Path:
        return self.root / "tools"

    @property
    def bin_dir(self) -> Path:
        return self.root / "bin"

    @property
    def archives_dir(self) -> Path:
        return self.root / "archives"

    @property
    def tmp_dir(self) -> Path:
        return self.root / "tmp"

    def tool_dir(self, name: str) -> Path:
        return self.tools_dir / _safe_component(name, "tool name")

    def entry_dir(self, name: str, version: str) -> Path:
        return self.tool_dir(name) / _safe_component(version, "version")

    def files_dir(self, name: str, version: str) -> Path:
        return self.entry_dir(name, version) / FILES_DIR

    def archive_dir(self, name: str, version: str) -> Path:
        return (
            self.archives_dir
            / _safe_component(name, "tool name")
            / _safe_component(version, "version")
        )

    def ensure(self) -> None:
        """Create the top-level layout."""
        try:
            for d in (self.tools_dir, self.bin_dir, self.archives_dir, self.tmp_dir):
                d.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheIOError(f"Cannot create cache root {self.root}: {e}") from e


def _dir_size(path: Path) -> int:
    total = 0
    for p in path.rglob("*"):
        try:
            if p.is_file() and not p.is_symlink():
                total += p.stat().st_size
        except OSError:
            continue
    return total


class CacheManager:
    """Creates, enumerates, and deletes cache entries and archives."""

    def __init__(self, paths: CachePaths):
        self.paths = paths

    # ── Staging ─────────────────────────────────────────────────

    def new_staging_dir(self, label: str) -> Path:
        """A fresh private directory on the cache's filesystem."""
        self.paths.ensure()
        try:
            return Path(tempfile.mkdtemp(prefix=f"{label}-", dir=self.paths.tmp_dir))
        except OSError as e:
            raise CacheIOError(f"Cannot create staging directory: {e}") from e

    def discard(self, path: Path) -> None:
        """Delete a staging path if it still exists."""
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path, ignore_errors=True)
        elif path.exists() or path.is_symlink():
            path.unlink(missing_ok=True)

    def _remove_dir(self, path: Path) -> None:
        """Rename ``path`` into tmp, then delete it."""
        if not path.exists():
            return
        self.paths.tmp_dir.mkdir(parents=True, exist_ok=True)
        trash = Path(tempfile.mkdtemp(prefix="trash-", dir=self.paths.tmp_dir))
        try:
            os.replace(path, trash / path.name)
        except OSError as e:
            shutil.rmtree(trash, ignore_errors=True)
            raise CacheIOError(f"Cannot remove {path}: {e}") from e
        shutil.rmtree(trash, ignore_errors=True)

    # ── Entries ─────────────────────────────────────────────────

    def get_entry(self, name: str, version: str) -> CacheEntry | None:
        """Read an entry's metadata.  None if absent or unreadable."""
        meta = self.paths.entry_dir(name, version) / ENTRY_FILE
        if not meta.is_file():
            return None
        try:
            return CacheEntry.model_validate(json.loads(meta.read_text(encoding="utf-8")))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning("Unreadable cache entry %s: %s", meta, e)
            return None

    def binary_path(self, entry: CacheEntry) -> Path:
        return self.paths.files_dir(entry.name, entry.version) / entry.binary

    def is_complete(self, entry: CacheEntry) -> bool:
        """Whether the entry's primary binary is present."""
        return self.binary_path(entry).is_file()

    def commit_entry(self, staging: Path, entry: CacheEntry) -> Path:
        """Publish a staged entry under ``tools/<name>/<version>``.

        ``staging`` must already hold the extracted ``files/`` tree.
        An existing entry for the same version is replaced.
        """
        final = self.paths.entry_dir(entry.name, entry.version)
        try:
            (staging / ENTRY_FILE).write_text(
                json.dumps(entry.model_dump(mode="json"), indent=2) + "\n",
                encoding="utf-8",
            )
            final.parent.mkdir(parents=True, exist_ok=True)
            if final.exists():
                logger.info("Replacing cache entry %s %s", entry.name, entry.version)
                self._remove_dir(final)
            os.replace(staging, final)
        except OSError as e:
            raise CacheIOError(f"Cannot commit cache entry {final}: {e}") from e
        logger.debug("Committed cache entry %s", final)
        return final

    def list_versions(self, name: str) -> list[str]:
        """Installed versions of a tool (directories with metadata)."""
        tool_dir = self.paths.tool_dir(name)
        if not tool_dir.is_dir():
            return []
        return sorted(
            d.name for d in tool_dir.iterdir()
            if d.is_dir() and (d / ENTRY_FILE).is_file()
        )

    def installed_tools(self) -> list[str]:
        """Tool names that have a directory under ``tools/``."""
        if not self.paths.tools_dir.is_dir():
            return []
        return sorted(d.name for d in self.paths.tools_dir.iterdir() if d.is_dir())

    def list_entries(self, name: str | None = None) -> list[CacheEntry]:
        names = [name] if name else self.installed_tools()
        entries: list[CacheEntry] = []
        for n in names:
            for version in self.list_versions(n):
                entry = self.get_entry(n, version)
                if entry is not None:
                    entries.append(entry)
        return entries

    def remove_entry(self, name: str, version: str) -> bool:
        """Delete one version.  Drops the tool directory when it empties."""
        entry_dir = self.paths.entry_dir(name, version)
        if not entry_dir.exists():
            return False
        self._remove_dir(entry_dir)
        tool_dir = self.paths.tool_dir(name)
        try:
            tool_dir.rmdir()
        except OSError:
            pass  # other versions remain
        logger.info("Removed cache entry %s %s", name, version)
        return True

    def remove_tool(self, name: str) -> list[str]:
        """Delete every cached version of a tool.  Returns the versions."""
        tool_dir = self.paths.tool_dir(name)
        if not tool_dir.exists():
            return []
        versions = self.list_versions(name)
        self._remove_dir(tool_dir)
        logger.info("Removed %s from cache (%s)", name, ", ".join(versions) or "no versions")
        return versions

    # ── Archives ────────────────────────────────────────────────

    def cached_archive(self, name: str, version: str, filename: str) -> Path | None:
        path = self.paths.archive_dir(name, version) / filename
        return path if path.is_file() else None

    def store_archive(self, name: str, version: str, source: Path, filename: str) -> Path:
        """Move a verified download into the archive cache."""
        dest_dir = self.paths.archive_dir(name, version)
        dest = dest_dir / filename
        try:
            dest_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=".incoming-", dir=dest_dir)
            os.close(fd)
            shutil.move(str(source), tmp_path)
            os.replace(tmp_path, dest)
        except OSError as e:
            raise CacheIOError(f"Cannot store archive {dest}: {e}") from e
        logger.debug("Cached archive %s", dest)
        return dest

    def discard_archive(self, path: Path) -> None:
        path.unlink(missing_ok=True)

    def remove_archives(self, name: str | None = None) -> int:
        """Delete cached archives of one tool (or all).  Returns file count."""
        target = (
            self.paths.archives_dir / _safe_component(name, "tool name")
            if name else self.paths.archives_dir
        )
        if not target.exists():
            return 0
        count = sum(1 for p in target.rglob("*") if p.is_file())
        self._remove_dir(target)
        logger.info("Removed %d cached archive(s) for %s", count, name or "all tools")
        return count

    def purge_staging(self) -> None:
        """Empty the staging area (leftovers of interrupted runs)."""
        if self.paths.tmp_dir.exists():
            shutil.rmtree(self.paths.tmp_dir, ignore_errors=True)

    # ── Reporting ───────────────────────────────────────────────

    def status(self) -> dict[str, Any]:
        """Summary of installed tools and disk usage.

        Returns::

            {
                "cache_root": "/home/user/.cache/frate",
                "tools": {"just": {"versions": ["1.42.1"], "size": "5.1 MB"}},
                "archives_size": "2.0 MB",
                "total_size": "7.1 MB",
            }
        """
        tools: dict[str, dict[str, Any]] = {}
        total = 0
        for name in self.installed_tools():
            size = _dir_size(self.paths.tool_dir(name))
            total += size
            tools[name] = {
                "versions": self.list_versions(name),
                "size_bytes": size,
                "size": _fmt_size(size),
            }

        archives = _dir_size(self.paths.archives_dir) if self.paths.archives_dir.exists() else 0
        total += archives
        return {
            "cache_root": str(self.paths.root),
            "tools": tools,
            "archives_size": _fmt_size(archives),
            "total_size": _fmt_size(total),
            "total_size_bytes": total,
        }
