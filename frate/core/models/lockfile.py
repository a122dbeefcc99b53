"""
Lockfile model — every declared tool pinned to one concrete artifact.

Written wholly by the lock synchronizer and read by the installer.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

LOCKFILE_SCHEMA_VERSION = 1


class LockedEntry(BaseModel):
    """A tool pinned to a resolved version and a platform asset."""

    name: str
    resolved_version: str
    download_url: str
    checksum: str
    platform: str


class Lockfile(BaseModel):
    """Tool name → locked entry."""

    version: int = LOCKFILE_SCHEMA_VERSION
    tools: dict[str, LockedEntry] = Field(default_factory=dict)

    def get(self, name: str) -> LockedEntry | None:
        return self.tools.get(name)

    def entries(self) -> list[LockedEntry]:
        """Locked entries ordered by tool name."""
        return [self.tools[name] for name in sorted(self.tools)]
