"""
frate — CLI entrypoint.

Usage:
    frate --help
    frate init
    frate add just@^1.40
    frate sync
    frate install
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from frate import __version__
from frate.core.observability.logging_config import resolve_level, setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="frate")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--project",
    "-C",
    "project_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Project directory (default: search upward from the CWD).",
)
@click.option(
    "--cache-root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Cache root (default: user cache dir).",
)
@click.option("--registry", "registry_url", default=None, help="Registry URL or path.")
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    project_dir: Path | None,
    cache_root: Path | None,
    registry_url: str | None,
) -> None:
    """frate — per-project, version-pinned developer tools."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["project_dir"] = project_dir
    ctx.obj["cache_root"] = cache_root
    ctx.obj["registry_url"] = registry_url
    ctx.obj["session"] = None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get("FRATE_LOG_FILE"),
        log_file_level=os.environ.get("FRATE_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )


@cli.command()
@click.argument("directory", required=False, type=click.Path(file_okay=False, path_type=Path))
@click.option("--name", default=None, help="Project name (default: directory name).")
@click.pass_context
def init(ctx: click.Context, directory: Path | None, name: str | None) -> None:
    """Create frate.yml in DIRECTORY (default: --project dir or the CWD)."""
    from frate.core.errors import FrateError
    from frate.core.services.tool_install.orchestration import init_project
    from frate.ui.cli.common import fail

    target = directory or ctx.obj.get("project_dir") or Path.cwd()
    try:
        target.mkdir(parents=True, exist_ok=True)
        project = init_project(target, name)
    except FrateError as e:
        fail(e)
    except OSError as e:
        fail(f"Cannot create {target}: {e}")
    click.secho(f"✅ Created {project.manifest_path}", fg="green")


@cli.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_cmd(ctx: click.Context, as_json: bool) -> None:
    """Show declared tools with their locked and installed versions."""
    from frate.core.use_cases.status import list_tools
    from frate.ui.cli.common import get_project, get_session

    project = get_project(ctx)
    result = list_tools(get_session(ctx).cache, project.manifest_path)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    if not ctx.obj.get("quiet", False):
        click.secho(f"\n📋 {result.project_name}", fg="cyan", bold=True)
        if not result.has_lockfile:
            click.secho("   ⚠️  No frate.lock — run 'frate sync'", fg="yellow")
        click.echo()

    if not result.tools:
        click.echo("   No dependencies")
        return

    for tool in result.tools:
        locked = tool.locked_version or "unlocked"
        if tool.up_to_date:
            state, color = "installed", "green"
        elif tool.installed:
            state, color = f"installed {tool.active_version}", "yellow"
        else:
            state, color = "not installed", "white"
        click.echo(f"   • {tool.name} {tool.requirement}  → {locked}  ", nl=False)
        click.secho(state, fg=color)


# ── Register command modules ────────────────────────────────────

from frate.ui.cli.cache import cache  # noqa: E402
from frate.ui.cli.tools import (  # noqa: E402
    add,
    clean,
    install,
    remove,
    run,
    search,
    sync,
    uninstall,
    which,
)

cli.add_command(add)
cli.add_command(remove)
cli.add_command(sync)
cli.add_command(install)
cli.add_command(uninstall)
cli.add_command(clean)
cli.add_command(which)
cli.add_command(run)
cli.add_command(search)
cli.add_command(cache)


if __name__ == "__main__":
    cli()
