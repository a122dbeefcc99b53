"""
L2 Resolver — requirement → version, manifest → lockfile.
"""

from frate.core.services.tool_install.resolver.lock_sync import (  # noqa: F401
    diff_lockfiles,
    is_entry_current,
    lock_tool,
    sync_lockfile,
)
from frate.core.services.tool_install.resolver.version_resolution import (  # noqa: F401
    parse_requirement,
    resolve_version,
    sort_versions,
)
