"""
Tests for the orchestration layer: the project workflow end to end.
"""

import sys

import pytest

from frate.core.config.settings import load_settings
from frate.core.errors import (
    IntegrityError,
    ManifestParseError,
    NoCompatibleAsset,
    NoMatchingVersion,
    NotFound,
    ToolNotInRegistry,
)
from frate.core.models.lockfile import Lockfile
from frate.core.services.tool_install.orchestration import (
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
from frate.core.services.tool_install.orchestration.orchestrator import parse_tool_spec

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell tools")


@pytest.fixture
def registry_url(write_registry, tool_archive, make_asset):
    def rec(name, *versions):
        return {
            "name": name,
            "description": f"{name} tool",
            "versions": [
                {"version": v, "platform_assets": [make_asset(tool_archive(name, v))]}
                for v in versions
            ],
        }

    return write_registry([rec("just", "1.40.0", "1.42.1"), rec("bat", "0.24.0"), rec("rg", "14.1.0")])


@pytest.fixture
def session(tmp_path, registry_url):
    return open_session(load_settings(cache_root=tmp_path / "cache", registry_url=registry_url))


@pytest.fixture
def project(tmp_path):
    root = tmp_path / "proj"
    root.mkdir()
    return init_project(root, "demo")


class TestProject:
    def test_init(self, project):
        assert project.manifest_path.name == "frate.yml"
        manifest = project.manifest()
        assert manifest.project.name == "demo"
        assert manifest.dependencies == {}
        assert project.lockfile() is None

    def test_init_twice(self, project):
        with pytest.raises(ManifestParseError, match="already exists"):
            init_project(project.root)

    def test_find_from_subdirectory(self, project):
        sub = project.root / "src" / "deep"
        sub.mkdir(parents=True)
        assert find_project(sub).manifest_path == project.manifest_path.resolve()


class TestParseToolSpec:
    def test_defaults_to_any(self):
        assert parse_tool_spec("just") == ("just", "*")

    def test_with_requirement(self):
        assert parse_tool_spec("just@ ^1.40") == ("just", "^1.40")

    @pytest.mark.parametrize("spec", ["@1.0.0", "just@banana"])
    def test_invalid(self, spec):
        with pytest.raises(ManifestParseError):
            parse_tool_spec(spec)


class TestLocking:
    def test_add_locks_and_saves(self, session, project):
        result = add_tool(session, project, "just@^1.40")
        assert result.changes["added"] == ["just"]
        assert result.lockfile.get("just").resolved_version == "1.42.1"
        assert project.manifest().dependencies == {"just": "^1.40"}
        assert project.lockfile() == result.lockfile

    def test_add_unknown_tool_changes_nothing(self, session, project):
        before = project.manifest_path.read_bytes()
        with pytest.raises(ToolNotInRegistry):
            add_tool(session, project, "nope")
        assert project.manifest_path.read_bytes() == before
        assert not project.lockfile_path.exists()

    def test_add_unsatisfiable(self, session, project):
        with pytest.raises(NoMatchingVersion) as exc:
            add_tool(session, project, "just@^2")
        assert exc.value.available == ["1.42.1", "1.40.0"]

    def test_add_without_asset_for_host_changes_nothing(
        self, tmp_path, write_registry, tool_archive, make_asset, project,
    ):
        foreign = make_asset(tool_archive("mactool", "2.0.0"), platform="aarch64-apple-darwin")
        url = write_registry(
            [{"name": "mactool", "versions": [{"version": "2.0.0", "platform_assets": [foreign]}]}],
            filename="foreign.json",
        )
        session = open_session(load_settings(cache_root=tmp_path / "cache", registry_url=url))
        before = project.manifest_path.read_bytes()

        with pytest.raises(NoCompatibleAsset) as exc:
            add_tool(session, project, "mactool")
        assert exc.value.offered == ["aarch64-apple-darwin"]
        assert project.manifest_path.read_bytes() == before
        assert not project.lockfile_path.exists()
        assert not session.cache.paths.root.exists()

    def test_sync_without_asset_for_host_keeps_lockfile(
        self, tmp_path, write_registry, tool_archive, make_asset, session, project,
    ):
        add_tool(session, project, "just@1.40.0")
        locked = project.lockfile_path.read_bytes()
        project.manifest_path.write_text(
            project.manifest_path.read_text() + "  mactool: '*'\n"
        )
        manifest = project.manifest_path.read_bytes()

        foreign = make_asset(tool_archive("mactool", "2.0.0"), platform="aarch64-apple-darwin")
        url = write_registry(
            [{"name": "mactool", "versions": [{"version": "2.0.0", "platform_assets": [foreign]}]}],
            filename="foreign.json",
        )
        other = open_session(load_settings(cache_root=tmp_path / "other-cache", registry_url=url))

        with pytest.raises(NoCompatibleAsset):
            resolve_and_lock(other, project)
        assert project.lockfile_path.read_bytes() == locked
        assert project.manifest_path.read_bytes() == manifest
        assert not other.cache.paths.root.exists()

    def test_sync_twice_unchanged(self, session, project):
        add_tool(session, project, "just@1.40.0")
        first = project.lockfile_path.read_bytes()
        result = resolve_and_lock(session, project)
        assert not result.changed
        assert project.lockfile_path.read_bytes() == first

    def test_remove(self, session, project):
        add_tool(session, project, "just")
        add_tool(session, project, "bat")
        result = remove_tool(session, project, "just")
        assert result.changes["removed"] == ["just"]
        assert list(result.lockfile.tools) == ["bat"]
        assert list(project.manifest().dependencies) == ["bat"]

    def test_remove_undeclared(self, session, project):
        with pytest.raises(NotFound) as exc:
            remove_tool(session, project, "just")
        assert exc.value.context == "manifest"

    def test_require_lockfile(self, project):
        with pytest.raises(NotFound) as exc:
            require_lockfile(project)
        assert exc.value.context == "lockfile"


class TestInstall:
    def _locked_project(self, session, project, *specs):
        for spec in specs:
            add_tool(session, project, spec)
        return require_lockfile(project)

    def test_install_all(self, session, project):
        lockfile = self._locked_project(session, project, "just", "bat")
        report = install(session, lockfile)
        assert report.ok
        assert [(o.name, o.status) for o in report.outcomes] == [
            ("bat", "installed"), ("just", "installed"),
        ]

        again = install(session, lockfile)
        assert again.skipped == 2 and again.installed == 0

    def test_parallel_install(self, session, project):
        lockfile = self._locked_project(session, project, "just", "bat", "rg")
        seen = []
        report = install(session, lockfile, jobs=3, on_progress=lambda n, s: seen.append((n, s)))
        assert [o.name for o in report.outcomes] == ["bat", "just", "rg"]
        assert report.installed == 3
        assert sorted(n for n, s in seen if s == "installed") == ["bat", "just", "rg"]
        assert sorted(session.cache.installed_tools()) == ["bat", "just", "rg"]

    def test_one_failure_does_not_hide_others(self, session, project):
        lockfile = self._locked_project(session, project, "just", "bat")
        bad = lockfile.get("bat").model_copy(update={"checksum": "sha256:" + "0" * 64})
        tampered = Lockfile(tools={**lockfile.tools, "bat": bad})

        report = install(session, tampered)
        assert not report.ok
        assert report.get("just").status == "installed"
        failed = report.get("bat")
        assert failed.status == "failed"
        assert failed.error_kind == "integrity_error"
        assert session.cache.list_versions("bat") == []

    def test_named_tool(self, session, project):
        lockfile = self._locked_project(session, project, "just", "bat")
        report = install(session, lockfile, "just")
        assert [o.name for o in report.outcomes] == ["just"]
        assert session.cache.installed_tools() == ["just"]

    def test_named_tool_not_locked(self, session, project):
        lockfile = self._locked_project(session, project, "just")
        with pytest.raises(NotFound):
            install(session, lockfile, "bat")

    def test_named_tool_failure_propagates(self, session, project):
        lockfile = self._locked_project(session, project, "just")
        bad = lockfile.get("just").model_copy(update={"checksum": "sha256:" + "0" * 64})
        with pytest.raises(IntegrityError):
            install(session, Lockfile(tools={"just": bad}), "just")


class TestRemoval:
    def test_uninstall_all(self, session, project):
        add_tool(session, project, "just")
        add_tool(session, project, "bat")
        install(session, require_lockfile(project))

        report = uninstall(session)
        assert report.removed == 2
        assert session.cache.installed_tools() == []
        assert uninstall(session).outcomes == []

    def test_uninstall_named_not_installed(self, session):
        report = uninstall(session, "just")
        assert report.get("just").status == "skipped"

    def test_clean_all(self, session, project):
        add_tool(session, project, "just")
        install(session, require_lockfile(project))

        report = clean(session)
        assert report.removed == 1
        assert not session.cache.paths.archives_dir.exists()
        assert not session.cache.paths.tmp_dir.exists()


class TestLocateAndRun:
    def test_locate(self, session, project):
        add_tool(session, project, "just@1.40.0")
        install(session, require_lockfile(project))
        location = locate(session, "just")
        assert location.version == "1.40.0"
        assert location.binary.is_file()
        assert location.shim.parent == session.cache.paths.bin_dir

    def test_locate_reports_ambiguous_choice(
        self, tmp_path, write_registry, make_tar_gz, make_asset, project,
    ):
        script = b"#!/bin/sh\nexit 0\n"
        archive = make_tar_gz(
            "dup-1.0.0.tar.gz",
            {"a/dup": script, "b/dup": script},
            executables={"a/dup", "b/dup"},
        )
        url = write_registry(
            [{"name": "dup", "versions": [{"version": "1.0.0", "platform_assets": [make_asset(archive)]}]}],
            filename="dup.json",
        )
        session = open_session(load_settings(cache_root=tmp_path / "cache", registry_url=url))
        add_tool(session, project, "dup")
        install(session, require_lockfile(project))

        location = locate(session, "dup")
        assert location.ambiguous
        assert location.candidates == ["a/dup", "b/dup"]
        assert location.binary == session.cache.paths.files_dir("dup", "1.0.0") / "a" / "dup"
        data = location.to_dict()
        assert data["ambiguous"] is True
        assert data["candidates"] == ["a/dup", "b/dup"]

    def test_locate_unambiguous(self, session, project):
        add_tool(session, project, "just")
        install(session, require_lockfile(project))
        location = locate(session, "just")
        assert not location.ambiguous
        assert location.candidates[0].endswith("/just")

    def test_locate_missing(self, session):
        with pytest.raises(NotFound):
            locate(session, "just")

    @posix_only
    def test_run_tool_exit_code(self, session, project, monkeypatch):
        add_tool(session, project, "just")
        install(session, require_lockfile(project))
        monkeypatch.setenv("FRATE_TEST_EXIT", "3")
        assert run_tool(session, "just", ["x"]) == 3

    @posix_only
    def test_run_tool_output(self, session, project, capfd):
        add_tool(session, project, "just")
        install(session, require_lockfile(project))
        assert run_tool(session, "just", ["--list", "a b"]) == 0
        assert capfd.readouterr().out.strip() == "args: --list a b"


class TestSearchAndStatus:
    def test_search(self, session):
        record = search(session, "just")
        assert record.version_strings() == ["1.40.0", "1.42.1"]

    def test_search_unknown(self, session):
        with pytest.raises(ToolNotInRegistry):
            search(session, "nope")

    def test_cache_status(self, session, project):
        add_tool(session, project, "just")
        install(session, require_lockfile(project))
        status = cache_status(session)
        assert status["shims"] == {"just": "1.42.1"}
        assert status["tools"]["just"]["versions"] == ["1.42.1"]
