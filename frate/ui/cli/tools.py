"""
CLI commands for declaring, locking, installing, and running tools.

Thin wrappers over ``frate.core.services.tool_install.orchestration``.
"""

from __future__ import annotations

import json
import sys

import click

from frate.core.errors import FrateError
from frate.ui.cli.common import fail, get_project, get_session, render_report


def _echo_sync(result, as_json: bool, quiet: bool = False) -> None:
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return
    if quiet:
        return
    changes = result.changes
    for name in changes.get("added", []):
        entry = result.lockfile.get(name)
        click.secho(f"   + {name} {entry.resolved_version if entry else ''}", fg="green")
    for name in changes.get("changed", []):
        entry = result.lockfile.get(name)
        click.secho(f"   ~ {name} {entry.resolved_version if entry else ''}", fg="yellow")
    for name in changes.get("removed", []):
        click.secho(f"   - {name}", fg="red")
    if result.changed:
        click.secho(f"🔒 Updated {result.path.name}", fg="green", bold=True)
    else:
        click.secho(f"🔒 {result.path.name} is up to date", fg="green")


# ── Manifest & lockfile ─────────────────────────────────────────


@click.command()
@click.argument("spec")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def add(ctx: click.Context, spec: str, as_json: bool) -> None:
    """Declare a tool (NAME or NAME@REQUIREMENT) and lock it."""
    from frate.core.services.tool_install.orchestration import add_tool

    project = get_project(ctx)
    try:
        result = add_tool(get_session(ctx), project, spec)
    except FrateError as e:
        fail(e)
    _echo_sync(result, as_json, ctx.obj.get("quiet", False))


@click.command()
@click.argument("name")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def remove(ctx: click.Context, name: str, as_json: bool) -> None:
    """Remove a declared tool and re-lock."""
    from frate.core.services.tool_install.orchestration import remove_tool

    project = get_project(ctx)
    try:
        result = remove_tool(get_session(ctx), project, name)
    except FrateError as e:
        fail(e)
    _echo_sync(result, as_json, ctx.obj.get("quiet", False))


@click.command()
@click.option("--refresh", is_flag=True, help="Re-check locked assets against the registry.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def sync(ctx: click.Context, refresh: bool, as_json: bool) -> None:
    """Resolve frate.yml and write frate.lock."""
    from frate.core.services.tool_install.orchestration import resolve_and_lock

    project = get_project(ctx)
    try:
        result = resolve_and_lock(get_session(ctx), project, refresh=refresh)
    except FrateError as e:
        fail(e)
    _echo_sync(result, as_json, ctx.obj.get("quiet", False))


# ── Install / uninstall / clean ─────────────────────────────────


@click.command()
@click.argument("name", required=False)
@click.option("--jobs", "-j", default=1, show_default=True, type=click.IntRange(min=1),
              help="Install up to N tools in parallel.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(ctx: click.Context, name: str | None, jobs: int, as_json: bool) -> None:
    """Install NAME, or every tool in frate.lock."""
    from frate.core.services.tool_install.orchestration import install as do_install
    from frate.core.services.tool_install.orchestration import require_lockfile

    project = get_project(ctx)
    session = get_session(ctx)
    try:
        lockfile = require_lockfile(project)
        report = do_install(session, lockfile, name, jobs=jobs)
    except FrateError as e:
        fail(e)
    render_report(report, as_json)


@click.command()
@click.argument("name", required=False)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def uninstall(ctx: click.Context, name: str | None, as_json: bool) -> None:
    """Remove NAME (or every installed tool) from the cache. Archives are kept."""
    from frate.core.services.tool_install.orchestration import uninstall as do_uninstall

    try:
        report = do_uninstall(get_session(ctx), name)
    except FrateError as e:
        fail(e)
    render_report(report, as_json)


@click.command()
@click.argument("name", required=False)
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def clean(ctx: click.Context, name: str | None, yes: bool, as_json: bool) -> None:
    """Remove NAME (or everything) from the cache, including archives."""
    from frate.core.services.tool_install.orchestration import clean as do_clean

    session = get_session(ctx)
    if name is None and not yes and not as_json:
        click.confirm(f"Remove every tool and archive under {session.cache.paths.root}?", abort=True)
    try:
        report = do_clean(session, name)
    except FrateError as e:
        fail(e)
    render_report(report, as_json)


# ── Locate / run / search ───────────────────────────────────────


@click.command()
@click.argument("name")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def which(ctx: click.Context, name: str, as_json: bool) -> None:
    """Show where an installed tool's binary and shim live."""
    from frate.core.services.tool_install.orchestration import locate

    try:
        location = locate(get_session(ctx), name)
    except FrateError as e:
        fail(e)

    if as_json:
        click.echo(json.dumps(location.to_dict(), indent=2))
        return
    click.echo(str(location.binary))
    if location.ambiguous:
        click.secho(
            f"⚠️  Several executables matched '{name}'; "
            f"others: {', '.join(location.candidates[1:])}",
            fg="yellow", err=True,
        )
    if ctx.obj.get("verbose"):
        click.echo(f"shim: {location.shim}")


@click.command(
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)
@click.argument("name")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def run(ctx: click.Context, name: str, args: tuple[str, ...]) -> None:
    """Run an installed tool with ARGS; exits with its exit code."""
    from frate.core.services.tool_install.orchestration import run_tool

    try:
        code = run_tool(get_session(ctx), name, list(args))
    except FrateError as e:
        fail(e)
    sys.exit(code)


@click.command()
@click.argument("name")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def search(ctx: click.Context, name: str, as_json: bool) -> None:
    """Show a tool's registry record and published versions."""
    from frate.core.errors import ToolNotInRegistry
    from frate.core.services.tool_install.orchestration import search as do_search
    from frate.core.services.tool_install.orchestration.orchestrator import search_similar
    from frate.core.services.tool_install.resolver.version_resolution import sort_versions

    session = get_session(ctx)
    try:
        record = do_search(session, name)
    except ToolNotInRegistry as e:
        similar = search_similar(session, name)
        if similar and not as_json:
            click.secho(f"⚠️  {e}. Similar: {', '.join(r.name for r in similar)}", fg="yellow")
            sys.exit(1)
        fail(e)
    except FrateError as e:
        fail(e)

    if as_json:
        click.echo(json.dumps(record.model_dump(), indent=2))
        return

    click.secho(f"📦 {record.name}", fg="cyan", bold=True)
    if record.description:
        click.echo(f"   {record.description}")
    if record.repo or record.homepage:
        click.echo(f"   🔗 {record.repo or record.homepage}")
    click.echo()
    for version in sort_versions(record.version_strings()):
        tool_version = record.get_version(version)
        platforms = ", ".join(sorted(tool_version.platforms())) if tool_version else ""
        click.echo(f"   {version:<14} {platforms}")
