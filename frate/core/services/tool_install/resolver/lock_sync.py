"""
L2 Resolver — Reconcile the manifest with the lockfile.

Entries that still satisfy their requirement on this platform are kept
as they are; only new or stale entries go through the resolver.
Entries no longer declared are dropped.  The result is a new
``Lockfile``; writing it is the persistence layer's job.
"""

from __future__ import annotations

import logging
from typing import Protocol

from frate.core.errors import NoMatchingVersion
from frate.core.models.lockfile import LockedEntry, Lockfile
from frate.core.models.manifest import Manifest
from frate.core.models.registry import ToolRecord, ToolVersion
from frate.core.services.tool_install.domain.platform_match import (
    candidate_platforms,
    select_asset,
)
from frate.core.services.tool_install.domain.version_constraint import (
    VersionReq,
    try_parse_version,
)
from frate.core.services.tool_install.resolver.version_resolution import (
    parse_requirement,
    resolve_version,
)

logger = logging.getLogger(__name__)


class ToolLookup(Protocol):
    """Anything that can return a registry record by tool name."""

    def get_tool(self, name: str) -> ToolRecord: ...


def _entry_for_version(name: str, version: ToolVersion, platform: str) -> LockedEntry:
    asset = select_asset(name, version, platform)
    return LockedEntry(
        name=name,
        resolved_version=version.version,
        download_url=asset.url,
        checksum=asset.checksum,
        platform=asset.platform,
    )


def lock_tool(name: str, requirement: str, registry: ToolLookup, platform: str) -> LockedEntry:
    """Resolve one tool from scratch.

    Raises:
        NotFound: Tool missing from the registry.
        RegistryUnavailable: Registry could not be read.
        NoMatchingVersion: Nothing satisfies ``requirement``.
        NoCompatibleAsset: Resolved version has no asset for ``platform``.
    """
    record = registry.get_tool(name)
    resolved = resolve_version(name, requirement, record.version_strings())
    version = record.get_version(resolved)
    if version is None:
        raise NoMatchingVersion(name, requirement, record.version_strings())
    entry = _entry_for_version(name, version, platform)
    logger.info("Locked %s %s → %s (%s)", name, requirement, resolved, entry.platform)
    return entry


def is_entry_current(entry: LockedEntry, req: VersionReq, platform: str) -> bool:
    """Whether a locked entry still satisfies ``req`` on ``platform``."""
    version = try_parse_version(entry.resolved_version)
    if version is None or not req.matches(version):
        return False
    return entry.platform in candidate_platforms(platform)


def _refreshed(entry: LockedEntry, registry: ToolLookup, platform: str) -> LockedEntry | None:
    """Re-select the asset of a kept entry.  None means re-resolve."""
    record = registry.get_tool(entry.name)
    version = record.get_version(entry.resolved_version)
    if version is None:
        logger.info("%s %s is no longer published", entry.name, entry.resolved_version)
        return None
    fresh = _entry_for_version(entry.name, version, platform)
    if fresh != entry:
        logger.info("%s %s: published asset changed", entry.name, entry.resolved_version)
    return fresh


def sync_lockfile(
    manifest: Manifest,
    lockfile: Lockfile | None,
    registry: ToolLookup,
    platform: str,
    *,
    refresh: bool = False,
) -> Lockfile:
    """Build the lockfile that matches ``manifest``.

    Args:
        manifest: Declared tools.
        lockfile: Existing lockfile, or None.
        registry: Registry lookup; only consulted for entries that need it
            (or for every entry when ``refresh`` is set).
        platform: Target triple to lock assets for.
        refresh: Re-check kept entries against the registry and re-select
            their asset if the published URL or checksum changed.

    Returns:
        A new Lockfile covering exactly the manifest's tools.

    Raises:
        FrateError: The first resolution failure; nothing is partially
            applied.
    """
    previous = lockfile or Lockfile()
    tools: dict[str, LockedEntry] = {}
    kept = 0

    for name, requirement in manifest.dependencies.items():
        req = parse_requirement(name, requirement)
        existing = previous.get(name)

        if existing is not None and is_entry_current(existing, req, platform):
            current = _refreshed(existing, registry, platform) if refresh else existing
            if current is not None:
                tools[name] = current
                kept += 1
                continue
        elif existing is not None:
            logger.info(
                "%s: locked %s no longer satisfies '%s' on %s",
                name, existing.resolved_version, requirement, platform,
            )

        tools[name] = lock_tool(name, requirement, registry, platform)

    dropped = sorted(set(previous.tools) - set(manifest.dependencies))
    for name in dropped:
        logger.info("Dropping %s from lockfile (no longer declared)", name)

    logger.debug(
        "Sync: %d kept, %d resolved, %d dropped", kept, len(tools) - kept, len(dropped),
    )
    return Lockfile(tools={name: tools[name] for name in sorted(tools)})


def diff_lockfiles(old: Lockfile | None, new: Lockfile) -> dict[str, list[str]]:
    """Summarize what a sync changed, by tool name."""
    old_tools = old.tools if old else {}
    return {
        "added": sorted(set(new.tools) - set(old_tools)),
        "removed": sorted(set(old_tools) - set(new.tools)),
        "changed": sorted(
            name for name in set(new.tools) & set(old_tools)
            if new.tools[name] != old_tools[name]
        ),
    }
