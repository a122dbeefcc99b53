"""
Tests for core models — manifest, cache entry, and report.
"""

from frate.core.models.cache import CacheEntry
from frate.core.models.manifest import Manifest
from frate.core.models.registry import ToolRecord
from frate.core.models.report import Report, ToolOutcome


class TestManifest:
    def test_add_and_remove(self):
        m = Manifest.default("demo")
        m.add("just", "^1.40")
        m.add("just", "^1.42")
        assert m.dependencies == {"just": "^1.42"}
        assert m.remove("just")
        assert not m.remove("just")
        assert m.dependencies == {}


class TestToolRecord:
    def test_lookup(self):
        record = ToolRecord.model_validate({
            "name": "just",
            "versions": [
                {"version": "1.0.0", "platform_assets": [
                    {"platform": "x86_64-unknown-linux-gnu", "url": "u", "checksum": "c"},
                ]},
                {"version": "0.9.0"},
            ],
        })
        assert record.version_strings() == ["1.0.0", "0.9.0"]
        assert record.get_version("1.0.0").platforms() == ["x86_64-unknown-linux-gnu"]
        assert record.get_version("0.9.0").platform_assets == []
        assert record.get_version("2.0.0") is None


class TestCacheEntry:
    def test_json_roundtrip(self):
        entry = CacheEntry(name="just", version="1.42.1", binary="just", candidates=["just"])
        assert entry.installed_at
        assert CacheEntry.model_validate(entry.model_dump(mode="json")) == entry


class TestReport:
    def test_counts(self):
        report = Report("install")
        report.add(ToolOutcome("just", "installed", "1.42.1"))
        report.add(ToolOutcome("bat", "skipped", "0.24.0", "already installed"))
        report.add(ToolOutcome("fd", "failed", "8.7.0", "boom", "fetch_error"))
        assert (report.installed, report.skipped, report.failed, report.removed) == (1, 1, 1, 0)
        assert not report.ok
        assert report.get("fd").failed
        assert report.get("nope") is None

    def test_to_dict(self):
        report = Report("uninstall", [ToolOutcome("just", "removed", "1.42.1")])
        assert report.to_dict() == {
            "operation": "uninstall",
            "ok": True,
            "installed": 0,
            "skipped": 0,
            "removed": 1,
            "failed": 0,
            "tools": [{"name": "just", "status": "removed", "version": "1.42.1"}],
        }

    def test_failed_outcome_dict(self):
        outcome = ToolOutcome("fd", "failed", None, "boom", "fetch_error")
        assert outcome.to_dict() == {
            "name": "fd", "status": "failed", "message": "boom", "error_kind": "fetch_error",
        }

    def test_empty_is_ok(self):
        assert Report("clean").ok
