"""
Shared test fixtures and configuration.

No test touches the network: registries are JSON files addressed by
``file://`` URIs, and so are the archives they publish.
"""

from __future__ import annotations

import hashlib
import io
import json
import tarfile
import zipfile
from pathlib import Path

import pytest

from frate.core.errors import ToolNotInRegistry
from frate.core.models.registry import ToolRecord
from frate.core.services.tool_install.execution.cache_manager import CacheManager, CachePaths

PLATFORM = "x86_64-unknown-linux-gnu"

TOOL_SCRIPT = (
    b'#!/bin/sh\n'
    b'echo "args: $*"\n'
    b'exit "${FRATE_TEST_EXIT:-0}"\n'
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path: Path):
    """Keep the user's frate config and env out of every test."""
    for var in (
        "FRATE_HOME",
        "FRATE_REGISTRY_URL",
        "FRATE_TIMEOUT",
        "FRATE_LOG_LEVEL",
        "FRATE_LOG_FILE",
        "FRATE_LOG_FILE_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("FRATE_CONFIG", str(tmp_path / "no-such-config.yml"))
    monkeypatch.setenv("FRATE_PLATFORM", PLATFORM)


@pytest.fixture
def cache_paths(tmp_path: Path) -> CachePaths:
    """A fresh cache root under the test's tmp dir."""
    return CachePaths(tmp_path / "cache")


@pytest.fixture
def cache(cache_paths: CachePaths) -> CacheManager:
    return CacheManager(cache_paths)


# ── Archive builders ────────────────────────────────────────────


@pytest.fixture
def make_tar_gz(tmp_path: Path):
    """Build a .tar.gz from ``{member_name: bytes}``.

    Names listed in ``executables`` get mode 0755.
    """
    out_dir = tmp_path / "archives-src"

    def _make(filename: str, members: dict[str, bytes], executables=()) -> Path:
        out_dir.mkdir(exist_ok=True)
        path = out_dir / filename
        with tarfile.open(path, "w:gz") as tf:
            for name, data in members.items():
                info = tarfile.TarInfo(name)
                info.size = len(data)
                info.mode = 0o755 if name in executables else 0o644
                tf.addfile(info, io.BytesIO(data))
        return path

    return _make


@pytest.fixture
def make_zip(tmp_path: Path):
    """Build a .zip from ``{member_name: bytes}`` with Unix permissions."""
    out_dir = tmp_path / "archives-src"

    def _make(filename: str, members: dict[str, bytes], executables=()) -> Path:
        out_dir.mkdir(exist_ok=True)
        path = out_dir / filename
        with zipfile.ZipFile(path, "w") as zf:
            for name, data in members.items():
                info = zipfile.ZipInfo(name)
                info.create_system = 3
                mode = 0o755 if name in executables else 0o644
                info.external_attr = (0o100000 | mode) << 16
                zf.writestr(info, data)
        return path

    return _make


def sha256_of(path: Path) -> str:
    return hashlib.sha256(path.read_bytes()).hexdigest()


@pytest.fixture
def tool_archive(make_tar_gz):
    """A realistic release tarball holding an executable shell script."""

    def _make(name: str = "just", version: str = "1.42.1") -> Path:
        top = f"{name}-{version}-{PLATFORM}"
        return make_tar_gz(
            f"{top}.tar.gz",
            {
                f"{top}/{name}": TOOL_SCRIPT,
                f"{top}/README.md": b"# readme\n",
                f"{top}/completions/{name}.bash": b"complete -F _x x\n",
            },
            executables={f"{top}/{name}"},
        )

    return _make


# ── Registry builders ───────────────────────────────────────────


def asset_for(archive: Path, platform: str = PLATFORM, checksum: str | None = None) -> dict:
    """A registry platform asset pointing at a local archive."""
    return {
        "platform": platform,
        "url": archive.as_uri(),
        "checksum": checksum or f"sha256:{sha256_of(archive)}",
    }


@pytest.fixture
def write_registry(tmp_path: Path):
    """Write a registry document and return its ``file://`` URI."""

    def _write(records: list[dict], filename: str = "registry.json") -> str:
        path = tmp_path / filename
        path.write_text(json.dumps(records, indent=2))
        return path.as_uri()

    return _write


@pytest.fixture
def published_registry(write_registry, tool_archive):
    """Registry with ``just`` 1.40.0 / 1.42.1 / 1.43.0-beta for PLATFORM."""

    def _make(name: str = "just", versions=("1.40.0", "1.42.1", "1.43.0-beta")) -> str:
        record = {
            "name": name,
            "description": f"{name} command runner",
            "repo": f"https://github.com/example/{name}",
            "versions": [
                {"version": v, "platform_assets": [asset_for(tool_archive(name, v))]}
                for v in versions
            ],
        }
        return write_registry([record])

    return _make


class FakeRegistry:
    """In-memory registry lookup that counts requests."""

    def __init__(self, records: list[dict]):
        self.records = {r["name"]: ToolRecord.model_validate(r) for r in records}
        self.calls: list[str] = []

    def get_tool(self, name: str) -> ToolRecord:
        self.calls.append(name)
        record = self.records.get(name)
        if record is None:
            raise ToolNotInRegistry(name)
        return record


@pytest.fixture
def fake_registry():
    """Factory for an in-memory registry from record dicts."""
    return FakeRegistry


def record(name: str, *versions: str, platforms=(PLATFORM,)) -> dict:
    """A registry record with one fake asset per version and platform."""
    return {
        "name": name,
        "versions": [
            {
                "version": v,
                "platform_assets": [
                    {
                        "platform": p,
                        "url": f"https://example.invalid/{name}-{v}-{p}.tar.gz",
                        "checksum": f"sha256:{hashlib.sha256(f'{name}{v}{p}'.encode()).hexdigest()}",
                    }
                    for p in platforms
                ],
            }
            for v in versions
        ],
    }


@pytest.fixture
def make_record():
    """Factory for registry record dicts (see ``record``)."""
    return record


@pytest.fixture
def make_asset():
    """Factory for platform assets pointing at local archives (see ``asset_for``)."""
    return asset_for
