"""
L4 Execution — everything that writes to the cache root.
"""

from frate.core.services.tool_install.execution.cache_manager import (  # noqa: F401
    CacheManager,
    CachePaths,
)
from frate.core.services.tool_install.execution.download import (  # noqa: F401
    VerifiedArchive,
    fetch_and_verify,
)
from frate.core.services.tool_install.execution.extract import extract_archive  # noqa: F401
from frate.core.services.tool_install.execution.tool_management import (  # noqa: F401
    clean_tool,
    install_tool,
    locate_binary,
    uninstall_tool,
)
