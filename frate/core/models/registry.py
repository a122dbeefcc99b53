"""
Registry models — tool records published by the external registry.

These live in memory for one command only.  Unknown fields in the
registry document are ignored so newer registries stay readable.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class PlatformAsset(BaseModel):
    """One downloadable archive for one platform."""

    platform: str
    url: str
    checksum: str


class ToolVersion(BaseModel):
    """A published version and the assets it ships."""

    version: str
    platform_assets: list[PlatformAsset] = Field(default_factory=list)

    def platforms(self) -> list[str]:
        return [a.platform for a in self.platform_assets]


class ToolRecord(BaseModel):
    """A tool as listed in the registry."""

    name: str
    description: str = ""
    repo: str = ""
    homepage: str = ""
    versions: list[ToolVersion] = Field(default_factory=list)

    def version_strings(self) -> list[str]:
        """Published versions in registry order."""
        return [v.version for v in self.versions]

    def get_version(self, version: str) -> ToolVersion | None:
        for v in self.versions:
            if v.version == version:
                return v
        return None
