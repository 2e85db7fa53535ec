"""
CLI commands for scheduled maintenance tasks.

Thin wrappers over ``chocomaint.core.services.schedule_ops``.
"""

from __future__ import annotations

import sys

import click

from chocomaint.ui.cli.helpers import emit_json, fail_if_fatal, get_config, result_exit_code


@click.group()
def schedule() -> None:
    """Scheduled tasks — register, remove and list maintenance runs."""


@schedule.command()
@click.argument("names", nargs=-1)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def register(ctx: click.Context, names: tuple[str, ...], as_json: bool) -> None:
    """Register tasks (NAMES: update, cleanup, backup; default: all)."""
    from chocomaint.core.services.schedule_ops import register_tasks

    config = get_config(ctx)
    config_path = ctx.obj.get("config_file")
    result = register_tasks(
        config,
        list(names) or None,
        config_path=str(config_path) if config_path else None,
    )

    if as_json:
        emit_json(result)
    fail_if_fatal(result)

    for name in result["registered"]:
        click.secho(f"   ✅ {name}", fg="green")
    for item in result["failed"]:
        click.secho(f"   ❌ {item['name']}: {item['error']}", fg="red")
    sys.exit(result_exit_code(result))


@schedule.command()
@click.argument("names", nargs=-1)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def remove(ctx: click.Context, names: tuple[str, ...], as_json: bool) -> None:
    """Remove tasks (default: all)."""
    from chocomaint.core.services.schedule_ops import remove_tasks

    config = get_config(ctx)
    result = remove_tasks(config, list(names) or None)

    if as_json:
        emit_json(result)
    fail_if_fatal(result)

    for name in result["removed"]:
        click.echo(f"   🗑️  {name}")
    for name in result["missing"]:
        click.echo(f"   ·  {name} (not registered)")
    for item in result["failed"]:
        click.secho(f"   ❌ {item['name']}: {item['error']}", fg="red")
    sys.exit(result_exit_code(result))


@schedule.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_tasks_cmd(ctx: click.Context, as_json: bool) -> None:
    """Show registration state of the maintenance tasks."""
    from chocomaint.core.services.schedule_ops import list_tasks

    config = get_config(ctx)
    result = list_tasks(config)

    if as_json:
        result["ok"] = True
        emit_json(result)

    click.secho(f"🗓️  Tasks ({result['registered']}/{result['total']} registered):", fg="cyan", bold=True)
    for task in result["tasks"]:
        when = task["start_time"] + (f" {task['day']}" if task["day"] else "")
        if task["registered"]:
            click.echo(f"   ✅ {task['name']:<22} {task['schedule']:<7} {when:<10} next: {task.get('next_run') or '?'}")
        else:
            click.secho(f"   ❌ {task['name']:<22} {task['schedule']:<7} {when}", fg="yellow")
