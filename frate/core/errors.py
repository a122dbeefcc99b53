"""
Error kinds — the typed failures every core component raises.

Lower layers raise these and never recover locally.  The orchestration
layer catches ``FrateError`` per tool when it works over "all tools"
and records the ``kind`` in the report, so one tool failing never
hides the outcome of another.
"""

from __future__ import annotations


class FrateError(Exception):
    """Base class for all frate failures."""

    kind = "error"


class ConfigError(FrateError):
    """Raised when user settings are invalid or unreadable."""

    kind = "config_error"


class ManifestParseError(FrateError):
    """Raised when frate.yml is missing, malformed, or declares bad entries."""

    kind = "manifest_parse_error"


class NoMatchingVersion(FrateError):
    """No published version satisfies the requirement."""

    kind = "no_matching_version"

    def __init__(self, tool: str, requirement: str, available: list[str] | None = None):
        self.tool = tool
        self.requirement = requirement
        self.available = list(available or [])
        msg = f"No version of '{tool}' matches '{requirement}'"
        if self.available:
            shown = ", ".join(self.available[:8])
            more = "" if len(self.available) <= 8 else f" (+{len(self.available) - 8} more)"
            msg += f" (available: {shown}{more})"
        super().__init__(msg)


class NoCompatibleAsset(FrateError):
    """The resolved version publishes no asset for the running platform."""

    kind = "no_compatible_asset"

    def __init__(self, tool: str, version: str, platform: str, offered: list[str] | None = None):
        self.tool = tool
        self.version = version
        self.platform = platform
        self.offered = list(offered or [])
        msg = f"'{tool}' {version} has no asset for {platform}"
        if self.offered:
            msg += f" (offered: {', '.join(self.offered)})"
        super().__init__(msg)


class RegistryUnavailable(FrateError):
    """The registry endpoint could not be fetched or parsed."""

    kind = "registry_unavailable"

    def __init__(self, url: str, cause: object):
        self.url = url
        self.cause = cause
        super().__init__(f"Registry unavailable at {url}: {cause}")


class NotFound(FrateError):
    """A tool is absent from the manifest, lockfile, cache, or registry.

    ``context`` says which one.
    """

    kind = "not_found"

    def __init__(self, tool: str, context: str, message: str | None = None):
        self.tool = tool
        self.context = context
        super().__init__(message or f"'{tool}' not found in {context}")


class ToolNotInRegistry(NotFound):
    """The registry was reachable but does not list the tool."""

    def __init__(self, tool: str):
        super().__init__(tool, "registry")


class FetchError(FrateError):
    """A download failed.  Transient: callers may retry."""

    kind = "fetch_error"

    def __init__(self, url: str, cause: object):
        self.url = url
        self.cause = cause
        super().__init__(f"Failed to fetch {url}: {cause}")


class IntegrityError(FrateError):
    """A downloaded artifact does not match its published checksum."""

    kind = "integrity_error"

    def __init__(self, url: str, expected: str, actual: str):
        self.url = url
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Checksum mismatch for {url}: expected {expected}, got {actual}"
        )


class UnsafeArchiveEntry(FrateError):
    """An archive member would land outside the extraction directory."""

    kind = "unsafe_archive_entry"

    def __init__(self, member: str, reason: str = "escapes the target directory"):
        self.member = member
        self.reason = reason
        super().__init__(f"Unsafe archive entry '{member}': {reason}")


class UnsupportedArchiveFormat(FrateError):
    """The asset is neither a zip nor a gzip-compressed tar."""

    kind = "unsupported_archive_format"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unsupported archive type: {name}")


class CacheIOError(FrateError):
    """A filesystem operation on the cache root failed."""

    kind = "cache_io_error"


class ShimGenerationError(FrateError):
    """No shim could be produced for an installed tool."""

    kind = "shim_generation_error"
