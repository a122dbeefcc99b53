"""
Tool installation service — package re-exports.

Each symbol lives in its single-responsibility module inside the
appropriate onion layer (domain → resolver → detection → execution →
orchestration).  Orchestration is imported from its own package::

    from frate.core.services.tool_install.orchestration import install
"""

# ── L1: Domain ──
from frate.core.services.tool_install.domain.platform_match import (  # noqa: F401
    candidate_platforms,
    select_asset,
)
from frate.core.services.tool_install.domain.version_constraint import (  # noqa: F401
    Version,
    VersionReq,
)

# ── L2: Resolver ──
from frate.core.services.tool_install.resolver.lock_sync import (  # noqa: F401
    diff_lockfiles,
    lock_tool,
    sync_lockfile,
)
from frate.core.services.tool_install.resolver.version_resolution import (  # noqa: F401
    resolve_version,
)

# ── L3: Detection ──
from frate.core.services.tool_install.detection.host_platform import (  # noqa: F401
    current_platform,
)

# ── L4: Execution ──
from frate.core.services.tool_install.execution.cache_manager import (  # noqa: F401
    CacheManager,
    CachePaths,
)
from frate.core.services.tool_install.execution.tool_management import (  # noqa: F401
    clean_tool,
    install_tool,
    uninstall_tool,
)

# ── Registry ──
from frate.core.services.tool_install.registry.client import RegistryClient  # noqa: F401
