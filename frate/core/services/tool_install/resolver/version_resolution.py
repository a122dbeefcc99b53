"""
L2 Resolver — Pick one published version for a requirement.

Policy: parse every published version, drop the unparsable ones,
keep those satisfying the requirement, and take the highest.  Registry
order never matters.
"""

from __future__ import annotations

import logging

from frate.core.errors import ManifestParseError, NoMatchingVersion
from frate.core.services.tool_install.domain.version_constraint import (
    Version,
    VersionError,
    VersionReq,
    try_parse_version,
)

logger = logging.getLogger(__name__)


def parse_requirement(tool: str, requirement: str) -> VersionReq:
    """Parse a manifest requirement, naming the tool on failure."""
    try:
        return VersionReq.parse(requirement)
    except VersionError as e:
        raise ManifestParseError(f"Invalid requirement for '{tool}': {e}") from e


def parse_published(published: list[str]) -> list[tuple[Version, str]]:
    """Parse published version strings, skipping invalid ones."""
    parsed: list[tuple[Version, str]] = []
    for raw in published:
        version = try_parse_version(raw)
        if version is None:
            logger.debug("Ignoring unparsable published version %r", raw)
            continue
        parsed.append((version, raw))
    return parsed


def sort_versions(published: list[str], *, descending: bool = True) -> list[str]:
    """Valid published versions in precedence order."""
    parsed = parse_published(published)
    parsed.sort(key=lambda vr: (vr[0], vr[0].build, vr[1]), reverse=descending)
    return [raw for _, raw in parsed]


def resolve_version(tool: str, requirement: str, published: list[str]) -> str:
    """Resolve ``requirement`` against ``published`` versions.

    Args:
        tool: Tool name (for error messages).
        requirement: Requirement string from the manifest.
        published: Version strings in registry order.

    Returns:
        The published string of the highest satisfying version.

    Raises:
        ManifestParseError: If the requirement does not parse.
        NoMatchingVersion: If nothing satisfies it.
    """
    req = parse_requirement(tool, requirement)
    matching = [(v, raw) for v, raw in parse_published(published) if req.matches(v)]
    if not matching:
        raise NoMatchingVersion(tool, requirement, sort_versions(published))

    version, raw = max(matching, key=lambda vr: (vr[0], vr[0].build, vr[1]))
    logger.debug("Resolved %s %s → %s (%d candidates)", tool, requirement, raw, len(matching))
    return raw
