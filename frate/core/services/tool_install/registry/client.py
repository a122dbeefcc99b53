"""
Registry client — read-only access to the published tool records.

The registry is one JSON document (an array of tool records) behind an
HTTP(S) or file URL.  It is fetched lazily, once per client, and kept
in memory for the rest of the command.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from pathlib import Path

from pydantic import ValidationError

from frate import __version__
from frate.core.errors import RegistryUnavailable, ToolNotInRegistry
from frate.core.models.registry import ToolRecord

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_URL = (
    "https://raw.githubusercontent.com/konni332/frate-registry/refs/heads/master/registry.json"
)


def _normalize_url(url: str) -> str:
    """Turn a plain filesystem path into a ``file://`` URL."""
    if "://" in url:
        return url
    return Path(url).expanduser().resolve().as_uri()


class RegistryClient:
    """Lazily loaded view of the registry document."""

    def __init__(self, url: str = DEFAULT_REGISTRY_URL, *, timeout: float = 30.0):
        self.url = _normalize_url(url)
        self.timeout = timeout
        self._records: dict[str, ToolRecord] | None = None

    @property
    def loaded(self) -> bool:
        return self._records is not None

    def load(self) -> dict[str, ToolRecord]:
        """Fetch and parse the registry (first call only).

        Raises:
            RegistryUnavailable: On network failure or an unparsable document.
        """
        if self._records is None:
            self._records = self._fetch()
        return self._records

    def _fetch(self) -> dict[str, ToolRecord]:
        logger.debug("Fetching registry from %s", self.url)
        request = urllib.request.Request(
            self.url,
            headers={
                "Accept": "application/json",
                "User-Agent": f"frate/{__version__}",
            },
        )
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as resp:
                raw = resp.read()
        except (urllib.error.URLError, OSError, ValueError) as e:
            raise RegistryUnavailable(self.url, e) from e

        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise RegistryUnavailable(self.url, f"invalid JSON: {e}") from e

        if not isinstance(data, list):
            raise RegistryUnavailable(
                self.url, f"expected a JSON array of tool records, got {type(data).__name__}"
            )

        records: dict[str, ToolRecord] = {}
        for item in data:
            try:
                record = ToolRecord.model_validate(item)
            except ValidationError as e:
                logger.warning("Skipping malformed registry record: %s", e)
                continue
            records[record.name] = record

        logger.info("Registry loaded: %d tools from %s", len(records), self.url)
        return records

    def get_tool(self, name: str) -> ToolRecord:
        """Return the record for ``name``.

        Raises:
            RegistryUnavailable: Registry could not be read.
            ToolNotInRegistry: Registry was read but does not list ``name``.
        """
        record = self.load().get(name)
        if record is None:
            raise ToolNotInRegistry(name)
        return record

    def search(self, query: str) -> list[ToolRecord]:
        """Records whose name contains ``query`` (case-insensitive), by name."""
        q = query.lower()
        return sorted(
            (r for r in self.load().values() if q in r.name.lower()),
            key=lambda r: r.name,
        )
