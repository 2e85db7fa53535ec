"""
chocomaint — CLI entrypoint.

Usage:
    python -m chocomaint.main --help
    python -m chocomaint.main update
    python -m chocomaint.main backup create
"""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path

import click

from chocomaint import __version__
from chocomaint.core.config.loader import ConfigError, find_config_file, load_config
from chocomaint.core.models.settings import MaintenanceConfig
from chocomaint.core.observability.logging_config import setup_logging
from chocomaint.ui.cli.helpers import get_config

logger = logging.getLogger(__name__)


@click.group()
@click.version_option(version=__version__, prog_name="chocomaint")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to chocomaint.json (default: auto-detect).",
)
@click.option("--log-file", default=None, help="Append log output to this file.")
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
    log_file: str | None,
) -> None:
    """chocomaint — Chocolatey install, update, cleanup, backup and health."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Settings (read once per invocation) ─────────────────────
    # Absolute path of the file in effect; scheduled tasks run from System32
    settings_file = ctx.obj["config_path"] or find_config_file()
    ctx.obj["config_file"] = (
        settings_file.resolve() if settings_file and settings_file.is_file() else None
    )
    try:
        config = load_config(ctx.obj["config_path"])
        ctx.obj["config_error"] = None
    except ConfigError as e:
        config = MaintenanceConfig()
        ctx.obj["config_error"] = str(e)
    ctx.obj["config"] = config

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("CHOCOMAINT_LOG_LEVEL", "WARNING")

    ctx.obj["log_file"] = setup_logging(
        level=level,
        log_file=log_file or os.environ.get("CHOCOMAINT_LOG_FILE") or config.log_path,
        log_file_level=os.environ.get("CHOCOMAINT_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )

    if ctx.obj["config_error"]:
        logger.error("%s", ctx.obj["config_error"])
    elif ctx.obj["config_file"]:
        logger.info("Settings loaded from %s", ctx.obj["config_file"])
    else:
        logger.info("No settings file found, using defaults")


# ── Config ──────────────────────────────────────────────────────


@cli.group()
def config() -> None:
    """Settings commands."""


@config.command("show")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_show(ctx: click.Context, as_json: bool) -> None:
    """Show the effective settings (secrets masked)."""
    settings = get_config(ctx)
    data = settings.to_public_dict()

    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    source = ctx.obj.get("config_file") or "defaults"
    click.secho(f"⚙️  Settings ({source})", fg="cyan", bold=True)
    width = max(len(k) for k in data)
    for key, value in data.items():
        click.echo(f"   {key:<{width}}  {value}")


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate the settings file."""
    error = ctx.obj.get("config_error")
    result = {"valid": error is None, "errors": [error] if error else []}

    if as_json:
        click.echo(json.dumps(result, indent=2))
        sys.exit(0 if result["valid"] else 1)

    if result["valid"]:
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        return

    click.secho("❌ Configuration errors:", fg="red", bold=True)
    click.echo(f"   • {error}")
    sys.exit(1)


# ── Health ──────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def health(ctx: click.Context, as_json: bool) -> None:
    "Show installation health — choco, updates, disk, backups, tasks."
    from chocomaint.core.observability.health import check_system_health
    from chocomaint.core.services.preflight import exit_code_for

    settings = get_config(ctx)
    system_health = check_system_health(settings)
    code = exit_code_for(system_health.issues)

    if as_json:
        click.echo(json.dumps(system_health.to_dict(), indent=2))
        sys.exit(code)

    # Pretty output
    status_icons = {
        "healthy": ("💚", "green"),
        "degraded": ("🟡", "yellow"),
        "unhealthy": ("🔴", "red"),
        "unknown": ("❔", "white"),
    }
    icon, color = status_icons.get(system_health.status, ("❔", "white"))

    click.echo()
    click.secho(f"{icon} System Health: {system_health.status.upper()}", fg=color, bold=True)
    click.echo(f"   {system_health.timestamp}")
    click.echo()

    for component in system_health.components:
        c_icon, c_color = status_icons.get(component.status, ("❔", "white"))
        click.secho(f"   {c_icon} {component.name}", fg=c_color, bold=True)
        click.echo(f"      {component.message}")

        if ctx.obj.get("verbose") and component.details:
            for key, val in component.details.items():
                click.echo(f"      {key}: {val}")

    click.echo()
    click.echo(f"   Issues: {system_health.issues}")
    sys.exit(code)


# ── Register sub-commands from chocomaint/ui/cli/ ───────────────

from chocomaint.ui.cli.backup import backup  # noqa: E402
from chocomaint.ui.cli.packages import bootstrap, cleanup, install, list_cmd, outdated, update  # noqa: E402
from chocomaint.ui.cli.schedule import schedule  # noqa: E402

cli.add_command(install)
cli.add_command(bootstrap)
cli.add_command(update)
cli.add_command(cleanup)
cli.add_command(list_cmd)
cli.add_command(outdated)
cli.add_command(backup)
cli.add_command(schedule)


if __name__ == "__main__":
    cli()
