"""
Tests for shim generation.
"""

import os
import subprocess
import sys

import pytest

from frate.core.errors import ShimGenerationError
from frate.core.models.cache import CacheEntry
from frate.core.services.tool_install.execution import shims
from frate.core.services.tool_install.execution.cache_manager import CachePaths

SCRIPT = b'#!/bin/sh\necho "args: $*"\nexit "${FRATE_TEST_EXIT:-0}"\n'

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell shims")


def _installed(paths: CachePaths, name="just", version="1.42.1", binary="bin/just") -> CacheEntry:
    files = paths.files_dir(name, version)
    target = files / binary
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(SCRIPT)
    os.chmod(target, 0o755)
    return CacheEntry(name=name, version=version, binary=binary)


class TestRender:
    def test_posix(self):
        text = shims.render_shim(CacheEntry(name="just", version="1.42.1", binary="bin/just"), windows=False)
        lines = text.splitlines()
        assert lines[0] == "#!/bin/sh"
        assert "# frate-shim: just 1.42.1" in lines
        assert lines[-1] == 'exec "$FRATE_ROOT"/tools/just/1.42.1/files/bin/just "$@"'

    def test_posix_quotes_odd_paths(self):
        text = shims.render_shim(CacheEntry(name="t", version="1.0.0", binary="my dir/t"), windows=False)
        assert "'tools/t/1.0.0/files/my dir/t'" in text

    def test_windows(self):
        text = shims.render_shim(CacheEntry(name="just", version="1.42.1", binary="just.exe"), windows=True)
        assert text.startswith("@echo off\r\n")
        assert "rem frate-shim: just 1.42.1\r\n" in text
        assert '"%~dp0..\\tools\\just\\1.42.1\\files\\just.exe" %*' in text
        assert "\n" not in text.replace("\r\n", "")

    @pytest.mark.parametrize("binary", ["../escape", "/usr/bin/just", "a/../../b"])
    def test_escaping_binary_rejected(self, binary):
        with pytest.raises(ShimGenerationError):
            shims.render_shim(CacheEntry(name="just", version="1.0.0", binary=binary))


class TestCreate:
    def test_create_and_read_back(self, cache_paths):
        entry = _installed(cache_paths)
        path = shims.create_shim(cache_paths, entry, windows=False)
        assert path == cache_paths.bin_dir / "just"
        info = shims.read_shim(cache_paths, "just", windows=False)
        assert (info.name, info.version) == ("just", "1.42.1")
        assert shims.is_shim_current(cache_paths, entry, windows=False)

    def test_windows_shim_written_with_crlf(self, cache_paths):
        entry = _installed(cache_paths)
        path = shims.create_shim(cache_paths, entry, windows=True)
        assert path.name == "just.cmd"
        data = path.read_bytes()
        assert b"\r\n" in data and b"\r\r\n" not in data
        assert shims.is_shim_current(cache_paths, entry, windows=True)

    def test_missing_binary(self, cache_paths):
        entry = CacheEntry(name="just", version="1.42.1", binary="just")
        with pytest.raises(ShimGenerationError, match="missing"):
            shims.create_shim(cache_paths, entry)
        assert not shims.shim_path(cache_paths, "just").exists()

    def test_replace_points_at_new_version(self, cache_paths):
        shims.create_shim(cache_paths, _installed(cache_paths, version="1.40.0"), windows=False)
        newer = _installed(cache_paths, version="1.42.1")
        shims.create_shim(cache_paths, newer, windows=False)
        assert shims.read_shim(cache_paths, "just", windows=False).version == "1.42.1"
        assert [p.name for p in cache_paths.bin_dir.iterdir()] == ["just"]

    def test_stale_shim_detected(self, cache_paths):
        entry = _installed(cache_paths)
        path = shims.create_shim(cache_paths, entry, windows=False)
        path.write_text(path.read_text() + "# edited\n")
        assert not shims.is_shim_current(cache_paths, entry, windows=False)

    def test_remove(self, cache_paths):
        entry = _installed(cache_paths)
        shims.create_shim(cache_paths, entry)
        assert shims.remove_shim(cache_paths, "just")
        assert not shims.remove_shim(cache_paths, "just")
        assert shims.read_shim(cache_paths, "just") is None

    def test_list_ignores_foreign_files(self, cache_paths):
        shims.create_shim(cache_paths, _installed(cache_paths, name="just"))
        shims.create_shim(cache_paths, _installed(cache_paths, name="bat", version="0.24.0"))
        (cache_paths.bin_dir / "not-ours").write_text("#!/bin/sh\necho hi\n")
        assert [(s.name, s.version) for s in shims.list_shims(cache_paths)] == [
            ("bat", "0.24.0"), ("just", "1.42.1"),
        ]


@posix_only
class TestRunShim:
    def test_forwards_arguments(self, tmp_path):
        paths = CachePaths(tmp_path / "cache root with spaces")
        shim = shims.create_shim(paths, _installed(paths))
        proc = subprocess.run([str(shim), "a b", "c"], capture_output=True, text=True)
        assert proc.returncode == 0
        assert proc.stdout.strip() == "args: a b c"

    def test_forwards_exit_code(self, cache_paths):
        shim = shims.create_shim(cache_paths, _installed(cache_paths))
        env = {**os.environ, "FRATE_TEST_EXIT": "7"}
        assert subprocess.run([str(shim)], env=env, capture_output=True).returncode == 7

    def test_works_through_symlink_free_relocation(self, tmp_path):
        old = CachePaths(tmp_path / "old")
        shims.create_shim(old, _installed(old))
        moved = tmp_path / "new"
        old.root.rename(moved)
        proc = subprocess.run([str(moved / "bin" / "just"), "x"], capture_output=True, text=True)
        assert proc.stdout.strip() == "args: x"
