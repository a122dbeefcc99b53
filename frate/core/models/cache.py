"""
Cache entry model — metadata stored next to an extracted install.

Paths are kept relative to the entry so the cache root can move.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class CacheEntry(BaseModel):
    """One tool at one version, extracted under the cache root."""

    name: str
    version: str
    url: str = ""
    checksum: str = ""
    platform: str = ""

    # Primary executable, POSIX-style path relative to the entry's files/ dir
    binary: str
    # Every executable seen, best match first
    candidates: list[str] = Field(default_factory=list)
    # True when more than one candidate ranked equally well
    ambiguous: bool = False

    installed_at: str = Field(default_factory=_now_iso)
