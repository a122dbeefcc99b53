"""
Tests for persistence — frate.lock read/write.
"""

from pathlib import Path

import pytest

from frate.core.models.lockfile import LockedEntry, Lockfile
from frate.core.persistence.lock_file import (
    LOCKFILE_HEADER,
    LockfileFormatError,
    dump_lockfile,
    load_lockfile,
    parse_lockfile,
    save_lockfile,
)


def _entry(name: str, version: str = "1.0.0") -> LockedEntry:
    return LockedEntry(
        name=name,
        resolved_version=version,
        download_url=f"https://example.invalid/{name}-{version}.tar.gz",
        checksum="sha256:" + "ab" * 32,
        platform="x86_64-unknown-linux-gnu",
    )


class TestLockfileFile:
    """Tests for lockfile persistence."""

    def test_save_and_load(self, tmp_path: Path):
        path = tmp_path / "frate.lock"
        lockfile = Lockfile(tools={"just": _entry("just", "1.42.1"), "bat": _entry("bat")})
        save_lockfile(lockfile, path)
        assert load_lockfile(path) == lockfile
        assert list(tmp_path.iterdir()) == [path]

    def test_deterministic(self):
        a = Lockfile(tools={"just": _entry("just"), "bat": _entry("bat")})
        b = Lockfile(tools={"bat": _entry("bat"), "just": _entry("just")})
        assert dump_lockfile(a) == dump_lockfile(b)

    def test_layout(self):
        text = dump_lockfile(Lockfile(tools={"just": _entry("just", "1.42.1")}))
        assert text.startswith(LOCKFILE_HEADER)
        body = text[len(LOCKFILE_HEADER):].splitlines()
        assert body[:4] == ["version: 1", "tools:", "  just:", "    resolved_version: 1.42.1"]
        assert [line.split(":")[0].strip() for line in body[4:]] == [
            "download_url", "checksum", "platform",
        ]

    def test_version_like_strings_survive(self, tmp_path: Path):
        path = tmp_path / "frate.lock"
        save_lockfile(Lockfile(tools={"fd": _entry("fd", "8.0")}), path)
        assert load_lockfile(path).get("fd").resolved_version == "8.0"

    def test_missing(self, tmp_path: Path):
        assert load_lockfile(tmp_path / "frate.lock") is None

    def test_corrupt_is_ignored(self, tmp_path: Path):
        path = tmp_path / "frate.lock"
        path.write_text("tools: [not, a, mapping]\n")
        assert load_lockfile(path) is None

    def test_empty(self):
        assert parse_lockfile("") == Lockfile()

    @pytest.mark.parametrize("raw", [
        "tools:\n  just:\n    resolved_version: 1.0.0\n",
        "- 1\n",
        "tools: {just: [",
    ])
    def test_parse_errors(self, raw):
        with pytest.raises(LockfileFormatError):
            parse_lockfile(raw)

    def test_save_replaces(self, tmp_path: Path):
        path = tmp_path / "frate.lock"
        save_lockfile(Lockfile(tools={"just": _entry("just")}), path)
        save_lockfile(Lockfile(), path)
        assert load_lockfile(path).tools == {}
