"""
CLI commands for inspecting the user-level tool cache.
"""

from __future__ import annotations

import json

import click

from frate.ui.cli.common import get_session


@click.group()
def cache() -> None:
    """Cache — location and contents of installed tools."""


@cache.command("dir")
@click.option("--bin", "show_bin", is_flag=True, help="Print the shim directory instead.")
@click.pass_context
def cache_dir(ctx: click.Context, show_bin: bool) -> None:
    """Print the cache root (add --bin to PATH for shims)."""
    paths = get_session(ctx).cache.paths
    click.echo(str(paths.bin_dir if show_bin else paths.root))


@cache.command("status")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def cache_status_cmd(ctx: click.Context, as_json: bool) -> None:
    """Show installed tools, versions, and disk usage."""
    from frate.core.services.tool_install.orchestration import cache_status

    result = cache_status(get_session(ctx))

    if as_json:
        click.echo(json.dumps(result, indent=2))
        return

    click.secho(f"🗄️  {result['cache_root']}", fg="cyan", bold=True)
    tools = result.get("tools", {})
    if not tools:
        click.secho("   No tools installed", fg="yellow")
    shims = result.get("shims", {})
    for name, info in tools.items():
        active = shims.get(name)
        versions = ", ".join(
            f"{v} ←" if v == active else v for v in info["versions"]
        ) or "(incomplete)"
        click.echo(f"   • {name}: {versions}  [{info['size']}]")
    click.echo()
    click.echo(f"   Archives: {result['archives_size']}")
    click.secho(f"   Total:    {result['total_size']}", bold=True)
