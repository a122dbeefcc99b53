"""
Domain models — Pydantic types for frate.

All models are re-exported here for convenient access:

    from frate.core.models import Manifest, Lockfile, ToolRecord, CacheEntry, Report
"""

from frate.core.models.cache import CacheEntry
from frate.core.models.lockfile import LOCKFILE_SCHEMA_VERSION, LockedEntry, Lockfile
from frate.core.models.manifest import Manifest, ProjectInfo
from frate.core.models.registry import PlatformAsset, ToolRecord, ToolVersion
from frate.core.models.report import Report, ToolOutcome

__all__ = [
    # cache.py
    "CacheEntry",
    # lockfile.py
    "LOCKFILE_SCHEMA_VERSION",
    "LockedEntry",
    "Lockfile",
    # manifest.py
    "Manifest",
    "PlatformAsset",
    "ProjectInfo",
    # report.py
    "Report",
    # registry.py
    "ToolOutcome",
    "ToolRecord",
    "ToolVersion",
]
