"""
Report model — per-tool outcomes of install, uninstall, and clean.

The presentation layer renders these directly; it never has to
re-derive counts or guess what happened to a tool.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

OutcomeStatus = Literal["installed", "skipped", "removed", "failed"]


@dataclass
class ToolOutcome:
    """What happened to one tool."""

    name: str
    status: OutcomeStatus
    version: str | None = None
    message: str = ""
    error_kind: str | None = None

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"name": self.name, "status": self.status}
        if self.version:
            d["version"] = self.version
        if self.message:
            d["message"] = self.message
        if self.error_kind:
            d["error_kind"] = self.error_kind
        return d


@dataclass
class Report:
    """Aggregated outcomes of one operation over one or more tools."""

    operation: str
    outcomes: list[ToolOutcome] = field(default_factory=list)

    def add(self, outcome: ToolOutcome) -> None:
        self.outcomes.append(outcome)

    def _count(self, status: str) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def installed(self) -> int:
        return self._count("installed")

    @property
    def skipped(self) -> int:
        return self._count("skipped")

    @property
    def removed(self) -> int:
        return self._count("removed")

    @property
    def failed(self) -> int:
        return self._count("failed")

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def get(self, name: str) -> ToolOutcome | None:
        for o in self.outcomes:
            if o.name == name:
                return o
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "operation": self.operation,
            "ok": self.ok,
            "installed": self.installed,
            "skipped": self.skipped,
            "removed": self.removed,
            "failed": self.failed,
            "tools": [o.to_dict() for o in self.outcomes],
        }
