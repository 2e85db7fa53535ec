"""
CLI commands for package maintenance — install, update, cleanup, list.

Thin wrappers over ``chocomaint.core.services``.
"""

from __future__ import annotations

import json
import sys

import click

from chocomaint.ui.cli.helpers import (
    emit_json,
    fail_if_fatal,
    format_bytes,
    get_config,
    result_exit_code,
)


# ── Install ─────────────────────────────────────────────────────


@click.command()
@click.argument("names", nargs=-1)
@click.option("--dry-run", is_flag=True, help="Show what would be installed.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(ctx: click.Context, names: tuple[str, ...], dry_run: bool, as_json: bool) -> None:
    """Install software (NAMES, or the 'packages' list from settings).

    Packages that are already installed are skipped.
    """
    from chocomaint.core.services.install_ops import install_software

    config = get_config(ctx)
    result = install_software(config, list(names) or None, dry_run=dry_run)

    if as_json:
        emit_json(result)
    fail_if_fatal(result)

    verb = "Would install" if dry_run else "Installed"
    for name in result["installed"]:
        click.secho(f"   ✅ {verb} {name}", fg="green")
    for name in result["skipped"]:
        click.echo(f"   ⏭️  {name} (already installed)")
    for item in result["failed"]:
        click.secho(f"   ❌ {item['name']} (exit {item['returncode']})", fg="red")

    click.echo()
    click.echo(
        f"   {len(result['installed'])} installed, "
        f"{len(result['skipped'])} skipped, {len(result['failed'])} failed"
    )
    if result["reboot_required"]:
        click.secho("   🔁 A reboot is required to finish installation", fg="yellow")
    sys.exit(result_exit_code(result))


@click.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def bootstrap(as_json: bool) -> None:
    """Install Chocolatey itself if it is missing."""
    from chocomaint.core.services.choco_ops import choco_available, install_chocolatey

    status = choco_available()
    if status["available"]:
        result = {"ok": True, "already_installed": True, "version": status["version"]}
    else:
        result = install_chocolatey()

    if as_json:
        emit_json(result)

    if not result["ok"]:
        click.secho(f"❌ {result['error']}", fg="red")
        sys.exit(1)
    if result.get("already_installed"):
        click.secho(f"✅ Chocolatey {result['version']} is already installed", fg="green")
    else:
        click.secho(f"✅ Chocolatey {result['version']} installed", fg="green", bold=True)


# ── Update ──────────────────────────────────────────────────────


@click.command()
@click.option("--dry-run", is_flag=True, help="Check gates and list outdated packages only.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def update(ctx: click.Context, dry_run: bool, as_json: bool) -> None:
    """Upgrade all packages when on the trusted network and AC power."""
    from chocomaint.core.services.update_ops import run_auto_update

    config = get_config(ctx)
    result = run_auto_update(config, dry_run=dry_run)

    if as_json:
        emit_json(result)
    fail_if_fatal(result)

    if result["skipped"]:
        click.secho(f"⏸️  Update skipped: {result['reason']}", fg="yellow")
        return

    outdated = result["outdated"]
    if outdated:
        click.secho(f"📦 Outdated ({len(outdated)}):", fg="cyan", bold=True)
        for p in outdated:
            pin = " 📌" if p["pinned"] else ""
            click.echo(f"   {p['name']:<30} {p['current']:<14} → {p['available']}{pin}")
    else:
        click.secho("✅ All packages up to date", fg="green")

    if dry_run:
        sys.exit(result_exit_code(result))

    click.echo()
    click.echo(f"   Upgraded: {result['upgraded']}")
    if result["failed"]:
        click.secho(f"   Failed:   {', '.join(result['failed'])}", fg="red")
    if result.get("error"):
        click.secho(f"   ❌ {result['error']}", fg="red")
    if result["reboot_required"]:
        click.secho("   🔁 A reboot is required to finish upgrades", fg="yellow")
    sys.exit(result_exit_code(result))


# ── Cleanup ─────────────────────────────────────────────────────


@click.command()
@click.option("--dry-run", is_flag=True, help="Report reclaimable space without deleting.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def cleanup(ctx: click.Context, dry_run: bool, as_json: bool) -> None:
    """Clear the package cache, failed installs, backups and stale temp files."""
    from chocomaint.core.services.cleanup_ops import run_cleanup

    config = get_config(ctx)
    result = run_cleanup(config, dry_run=dry_run)

    if as_json:
        emit_json(result)
    fail_if_fatal(result)

    click.secho("🧹 Cleanup" + (" (dry run)" if dry_run else ""), fg="cyan", bold=True)
    for name, target in result["targets"].items():
        if name == "cache":
            if target.get("skipped"):
                icon = "⏭️ "
            else:
                icon = "✅" if target["ok"] else "❌"
            click.echo(f"   {icon} {name}")
            continue
        if not target.get("exists"):
            click.echo(f"   ·  {name} (not present)")
            continue
        icon = "⚠️ " if target.get("errors") else "✅"
        click.echo(f"   {icon} {name}: {target['removed']} item(s), {format_bytes(target['bytes'])}")

    label = "Reclaimable" if dry_run else "Freed"
    click.echo()
    click.echo(f"   {label}: {format_bytes(result['bytes_freed'])}")
    sys.exit(result_exit_code(result))


# ── Observe ─────────────────────────────────────────────────────


@click.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_cmd(ctx: click.Context, as_json: bool) -> None:
    """List installed packages."""
    from chocomaint.core.errors import CommandError
    from chocomaint.core.services.choco_ops import choco_available, list_installed

    config = get_config(ctx)
    try:
        packages = list_installed(
            timeout=config.choco_timeout,
            choco_version=choco_available()["version"],
        )
    except CommandError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps([p.model_dump(by_alias=True) for p in packages], indent=2))
        return

    click.secho(f"📦 Installed ({len(packages)}):", fg="cyan", bold=True)
    for p in packages:
        click.echo(f"   {p.name:<40} {p.version}")


@click.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def outdated(ctx: click.Context, as_json: bool) -> None:
    """Check for outdated packages."""
    from chocomaint.core.errors import CommandError
    from chocomaint.core.services.choco_ops import list_outdated

    config = get_config(ctx)
    try:
        packages = list_outdated(timeout=config.choco_timeout)
    except CommandError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps([p.model_dump() for p in packages], indent=2))
        return

    if not packages:
        click.secho("✅ All packages up to date", fg="green")
        return

    click.secho(f"📦 Outdated ({len(packages)}):", fg="yellow", bold=True)
    for p in packages:
        pin = " 📌" if p.pinned else ""
        click.echo(f"   {p.name:<30} {p.current:<14} → {p.available}{pin}")
