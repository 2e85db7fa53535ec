"""
Scheduled tasks — register maintenance runs with Windows Task Scheduler.

Tasks run ``<python> -m chocomaint.main <command>`` as SYSTEM with
highest privileges, through ``schtasks``.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass

from chocomaint.adapters.shell.command import run_command
from chocomaint.adapters.system import probes
from chocomaint.core.models.settings import MaintenanceConfig

logger = logging.getLogger(__name__)

TASK_PREFIX = "chocomaint-"


@dataclass(frozen=True)
class TaskSpec:
    name: str
    command: str
    schedule: str        # DAILY | WEEKLY
    start_time: str
    day: str | None = None

    @property
    def task_name(self) -> str:
        return f"{TASK_PREFIX}{self.name}"


def task_specs(config: MaintenanceConfig) -> list[TaskSpec]:
    """The maintenance tasks for this configuration."""
    return [
        TaskSpec("update", "update", "DAILY", config.update_time),
        TaskSpec("cleanup", "cleanup", "WEEKLY", "04:00", config.cleanup_day),
        TaskSpec("backup", "backup create", "WEEKLY", "02:00", config.cleanup_day),
    ]


def _task_command(spec: TaskSpec, config_path: str | None) -> str:
    parts = [f'"{sys.executable}"', "-m", "chocomaint.main"]
    if config_path:
        parts += ["--config", f'"{config_path}"']
    parts.append(spec.command)
    return " ".join(parts)


def _create_args(spec: TaskSpec, config_path: str | None) -> list[str]:
    args = [
        "schtasks", "/create",
        "/tn", spec.task_name,
        "/tr", _task_command(spec, config_path),
        "/sc", spec.schedule,
        "/st", spec.start_time,
        "/ru", "SYSTEM",
        "/rl", "HIGHEST",
        "/f",
    ]
    if spec.day:
        args += ["/d", spec.day]
    return args


def _select(config: MaintenanceConfig, names: list[str] | None) -> list[TaskSpec]:
    specs = task_specs(config)
    if not names:
        return specs
    wanted = {n.lower().removeprefix(TASK_PREFIX) for n in names}
    return [s for s in specs if s.name in wanted]


def parse_query_output(output: str) -> dict:
    """Parse ``schtasks /query /fo LIST /v`` key/value lines."""
    fields = {}
    for line in output.splitlines():
        key, sep, value = line.partition(":")
        if sep:
            fields[key.strip().lower()] = value.strip()
    return {
        "status": fields.get("status", ""),
        "next_run": fields.get("next run time", ""),
        "last_run": fields.get("last run time", ""),
        "last_result": fields.get("last result", ""),
    }


# ═══════════════════════════════════════════════════════════════════
#  Operations
# ═══════════════════════════════════════════════════════════════════


def register_tasks(
    config: MaintenanceConfig,
    names: list[str] | None = None,
    *,
    config_path: str | None = None,
) -> dict:
    """Create (or overwrite) the scheduled tasks.

    Returns:
        {"ok", "registered": [...], "failed": [{name, error}], "issues"}
    """
    if not probes.is_admin():
        return {"ok": False, "fatal": True, "error": "Administrator rights required"}

    specs = _select(config, names)
    if not specs:
        return {"ok": False, "fatal": True, "error": f"Unknown task(s): {', '.join(names or [])}"}

    registered: list[str] = []
    failed: list[dict] = []
    for spec in specs:
        result = run_command(_create_args(spec, config_path), timeout=60)
        if result.ok:
            logger.info("Registered task %s (%s at %s)", spec.task_name, spec.schedule, spec.start_time)
            registered.append(spec.task_name)
        else:
            logger.error("Failed to register %s: %s", spec.task_name, result.output)
            failed.append({"name": spec.task_name, "error": result.output})

    return {"ok": not failed, "registered": registered, "failed": failed, "issues": len(failed)}


def remove_tasks(config: MaintenanceConfig, names: list[str] | None = None) -> dict:
    """Delete the scheduled tasks. Tasks that don't exist are skipped."""
    if not probes.is_admin():
        return {"ok": False, "fatal": True, "error": "Administrator rights required"}

    removed: list[str] = []
    missing: list[str] = []
    failed: list[dict] = []
    for spec in _select(config, names):
        result = run_command(["schtasks", "/delete", "/tn", spec.task_name, "/f"], timeout=60)
        if result.ok:
            logger.info("Removed task %s", spec.task_name)
            removed.append(spec.task_name)
        elif "cannot find" in result.output.lower() or "does not exist" in result.output.lower():
            missing.append(spec.task_name)
        else:
            failed.append({"name": spec.task_name, "error": result.output})

    return {"ok": not failed, "removed": removed, "missing": missing, "failed": failed, "issues": len(failed)}


def list_tasks(config: MaintenanceConfig) -> dict:
    """Registration state of every maintenance task."""
    tasks = []
    for spec in task_specs(config):
        result = run_command(
            ["schtasks", "/query", "/tn", spec.task_name, "/fo", "LIST", "/v"],
            timeout=60,
        )
        entry = {
            "name": spec.task_name,
            "command": spec.command,
            "schedule": spec.schedule,
            "start_time": spec.start_time,
            "day": spec.day,
            "registered": result.ok,
        }
        if result.ok:
            entry.update(parse_query_output(result.stdout))
        tasks.append(entry)

    registered = sum(1 for t in tasks if t["registered"])
    return {"tasks": tasks, "registered": registered, "total": len(tasks)}
