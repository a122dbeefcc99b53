"""
L3 Detection — read-only probes of the host and of extracted files.
"""

from frate.core.services.tool_install.detection.executables import (  # noqa: F401
    detect_binary,
    find_executables,
)
from frate.core.services.tool_install.detection.host_platform import (  # noqa: F401
    current_platform,
    detect_libc,
)
