"""
Registry access — the published tool records.
"""

from frate.core.services.tool_install.registry.client import (  # noqa: F401
    DEFAULT_REGISTRY_URL,
    RegistryClient,
)
