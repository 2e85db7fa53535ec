"""
Shared helpers for CLI command modules.
"""

from __future__ import annotations

import json
import sys

import click

from chocomaint.core.models.settings import MaintenanceConfig
from chocomaint.core.services.preflight import exit_code_for


def get_config(ctx: click.Context) -> MaintenanceConfig:
    """Settings loaded by the root command; exit 1 if they were invalid."""
    error = ctx.obj.get("config_error")
    if error:
        click.secho(f"❌ {error}", fg="red")
        sys.exit(1)
    return ctx.obj["config"]


def result_exit_code(result: dict) -> int:
    issues = int(result.get("issues", 0) or 0)
    if not result.get("ok", False):
        return exit_code_for(max(issues, 1))
    return exit_code_for(issues)


def emit_json(result: dict) -> None:
    """Print a result as JSON and exit with its exit code."""
    click.echo(json.dumps(result, indent=2, default=str))
    sys.exit(result_exit_code(result))


def fail_if_fatal(result: dict) -> None:
    if result.get("fatal"):
        click.secho(f"❌ {result['error']}", fg="red")
        sys.exit(1)


def format_bytes(n: int) -> str:
    size = float(n)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"
