"""
L5 Orchestration — ``__init__.py`` re-exports top-level coordinators.

These are the entry points that external code calls.
"""

from frate.core.services.tool_install.orchestration.orchestrator import (  # noqa: F401
    Project,
    Session,
    add_tool,
    cache_status,
    clean,
    find_project,
    init_project,
    install,
    locate,
    open_session,
    remove_tool,
    require_lockfile,
    resolve_and_lock,
    run_tool,
    search,
    uninstall,
)
