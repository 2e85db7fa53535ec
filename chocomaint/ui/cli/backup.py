"""
CLI commands for Backup & Restore of the installed package list.

Thin wrappers over ``chocomaint.core.services.backup_ops``.
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from chocomaint.ui.cli.helpers import (
    emit_json,
    fail_if_fatal,
    format_bytes,
    get_config,
    result_exit_code,
)


@click.group()
def backup() -> None:
    """Backup & Restore — snapshot, list, prune and restore package lists."""


def _create(ctx: click.Context, output: str | None, as_json: bool) -> None:
    from chocomaint.core.services.backup_ops import create_backup

    config = get_config(ctx)
    result = create_backup(config, Path(output) if output else None)

    if as_json:
        emit_json(result)
    if not result["ok"]:
        click.secho(f"❌ {result['error']}", fg="red")
        sys.exit(1)

    click.secho(f"✅ Backed up {result['package_count']} packages", fg="green", bold=True)
    click.echo(f"   Path: {result['path']}")
    for name in result["pruned"]:
        click.echo(f"   🗑️  Pruned {name}")


def _restore(
    ctx: click.Context,
    backup_file: str | None,
    use_versions: bool,
    dry_run: bool,
    as_json: bool,
) -> None:
    from chocomaint.core.services.backup_ops import restore_backup

    config = get_config(ctx)
    result = restore_backup(
        config,
        Path(backup_file) if backup_file else None,
        use_versions=use_versions,
        dry_run=dry_run,
    )

    if as_json:
        emit_json(result)
    fail_if_fatal(result)

    verb = "Would install" if dry_run else "Installed"
    click.secho(f"♻️  Restore from {Path(result['path']).name}", fg="cyan", bold=True)
    for name in result["installed"]:
        click.secho(f"   ✅ {verb} {name}", fg="green")
    for item in result["failed"]:
        click.secho(f"   ❌ {item['name']} {item['version']} (exit {item['returncode']})", fg="red")
    click.echo(
        f"   {len(result['installed'])} installed, "
        f"{len(result['skipped'])} already present, {len(result['failed'])} failed"
    )
    sys.exit(result_exit_code(result))


def _list(ctx: click.Context, as_json: bool) -> None:
    from chocomaint.core.services.backup_ops import list_backups

    config = get_config(ctx)
    result = list_backups(config)

    if as_json:
        result["ok"] = True
        emit_json(result)

    backups = result["backups"]
    if not backups:
        click.secho(f"No backups found in {result['directory']}", fg="yellow")
        return

    click.secho(f"📦 Backups in {result['directory']} ({len(backups)}):", fg="cyan", bold=True)
    for b in backups:
        if "error" in b:
            click.secho(f"   ⚠️  {b['filename']}  ({b['error']})", fg="yellow")
            continue
        click.echo(
            f"   {b['filename']}  {b['package_count']:>4} packages  "
            f"{b['computer_name'] or '?'}  ({format_bytes(b['size_bytes'])})"
        )


@backup.command()
@click.option("--output", "-o", default=None, help="Write to this file instead of the backup folder.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def create(ctx: click.Context, output: str | None, as_json: bool) -> None:
    """Snapshot the installed packages to a JSON backup file."""
    _create(ctx, output, as_json)


@backup.command()
@click.option("--file", "-f", "backup_file", default=None, help="Backup file (default: newest).")
@click.option("--use-versions", is_flag=True, help="Install the backed-up versions.")
@click.option("--dry-run", is_flag=True, help="Show what would be installed.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def restore(
    ctx: click.Context,
    backup_file: str | None,
    use_versions: bool,
    dry_run: bool,
    as_json: bool,
) -> None:
    """Install packages from a backup that aren't installed yet."""
    _restore(ctx, backup_file, use_versions, dry_run, as_json)


@backup.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_backups_cmd(ctx: click.Context, as_json: bool) -> None:
    """List backups, newest first."""
    _list(ctx, as_json)


@backup.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def prune(ctx: click.Context, as_json: bool) -> None:
    """Delete backups older than the retention window."""
    from chocomaint.core.services.backup_ops import prune_backups

    config = get_config(ctx)
    result = prune_backups(config)

    if as_json:
        result["ok"] = True
        emit_json(result)

    if not result["removed"]:
        click.echo(f"Nothing to prune ({result['kept']} backup(s) kept)")
        return
    for name in result["removed"]:
        click.echo(f"   🗑️  {name}")
    click.echo(f"   {len(result['removed'])} removed, {result['kept']} kept")


@backup.command("run")
@click.option(
    "--action",
    type=click.Choice(["Backup", "Restore", "List"], case_sensitive=False),
    default="Backup",
    show_default=True,
)
@click.option("--backup-file", default=None, help="Backup file for Backup/Restore.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def run(ctx: click.Context, action: str, backup_file: str | None, as_json: bool) -> None:
    """Single entry point: --action Backup | Restore | List."""
    action = action.lower()
    if action == "backup":
        _create(ctx, backup_file, as_json)
    elif action == "restore":
        _restore(ctx, backup_file, False, False, as_json)
    else:
        _list(ctx, as_json)
