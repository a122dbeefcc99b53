"""
Shared plumbing for CLI commands: session/project lookup and rendering.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import NoReturn

import click

from frate.core.errors import FrateError
from frate.core.models.report import Report


def fail(error: FrateError | str) -> NoReturn:
    """Print an error and exit 1."""
    click.secho(f"❌ {error}", fg="red", err=True)
    sys.exit(1)


def get_session(ctx: click.Context):
    """Session for this invocation (built on first use)."""
    from frate.core.config.settings import load_settings
    from frate.core.services.tool_install.orchestration import open_session

    obj = ctx.find_root().obj
    if obj.get("session") is None:
        try:
            settings = load_settings(
                cache_root=obj.get("cache_root"),
                registry_url=obj.get("registry_url"),
            )
            obj["session"] = open_session(settings)
        except FrateError as e:
            fail(e)
    return obj["session"]


def get_project(ctx: click.Context):
    """The enclosing project, starting from ``--project`` or the CWD."""
    from frate.core.services.tool_install.orchestration import find_project

    start: Path | None = ctx.find_root().obj.get("project_dir")
    try:
        return find_project(start)
    except FrateError as e:
        fail(e)


_STATUS_STYLE = {
    "installed": ("✅", "green"),
    "removed": ("🗑️ ", "green"),
    "skipped": ("⏭️ ", "white"),
    "failed": ("❌", "red"),
}


def render_report(report: Report, as_json: bool) -> None:
    """One line per tool, a summary, and exit 1 on any failure."""
    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        if not report.ok:
            sys.exit(1)
        return

    if not report.outcomes:
        click.secho("Nothing to do.", fg="yellow")
        return

    for outcome in report.outcomes:
        icon, color = _STATUS_STYLE.get(outcome.status, ("•", "white"))
        version = f" {outcome.version}" if outcome.version else ""
        detail = f" ({outcome.message})" if outcome.message else ""
        click.secho(f"   {icon} {outcome.name}{version}: {outcome.status}{detail}", fg=color)

    parts = [
        f"{count} {label}"
        for count, label in (
            (report.installed, "installed"),
            (report.removed, "removed"),
            (report.skipped, "skipped"),
            (report.failed, "failed"),
        )
        if count
    ]
    click.echo()
    click.secho(
        f"{report.operation.capitalize()}: {', '.join(parts)}",
        fg="green" if report.ok else "red",
        bold=True,
    )
    if not report.ok:
        sys.exit(1)
