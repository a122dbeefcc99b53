"""
Manifest model — the tools a project declares.

Loaded from frate.yml.  Pure data: the loader owns the file I/O.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

DEFAULT_PROJECT_VERSION = "0.1.0"


class ProjectInfo(BaseModel):
    """Project identity section of the manifest."""

    name: str
    version: str = DEFAULT_PROJECT_VERSION


class Manifest(BaseModel):
    """Declared tool dependencies: tool name → version requirement.

    Insertion order is kept so an untouched manifest saves back the
    way it was written.
    """

    project: ProjectInfo
    dependencies: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def default(cls, name: str) -> Manifest:
        """A fresh manifest for a project with no dependencies."""
        return cls(project=ProjectInfo(name=name))

    def add(self, name: str, requirement: str) -> None:
        """Declare (or re-declare) a tool requirement."""
        self.dependencies[name] = requirement

    def remove(self, name: str) -> bool:
        """Drop a tool.  Returns False if it was not declared."""
        return self.dependencies.pop(name, None) is not None

