"""
Health checker — aggregate the health of the Chocolatey installation.

Each check returns a ComponentHealth; SystemHealth rolls them up.
The number of non-healthy components is the issue count that decides
the exit code of ``chocomaint health``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Callable

from chocomaint.adapters.system import probes
from chocomaint.core.errors import CommandError
from chocomaint.core.models.settings import MaintenanceConfig
from chocomaint.core.persistence.backup_file import parse_backup_timestamp

logger = logging.getLogger(__name__)

CACHE_WARN_BYTES = 1024 * 1024 * 1024
BACKUP_MAX_AGE_DAYS = 14


@dataclass
class ComponentHealth:
    """Health of a single component."""

    name: str
    status: str = "unknown"  # healthy, degraded, unhealthy, unknown
    message: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status,
            "message": self.message,
            "details": self.details,
        }


@dataclass
class SystemHealth:
    """Aggregate health of the installation."""

    status: str = "healthy"
    timestamp: str = ""
    components: list[ComponentHealth] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.timestamp:
            self.timestamp = datetime.now(UTC).isoformat()

    def add(self, component: ComponentHealth) -> None:
        self.components.append(component)
        self._recalculate()

    def _recalculate(self) -> None:
        """Recalculate overall status from components."""
        statuses = [c.status for c in self.components]
        if any(s == "unhealthy" for s in statuses):
            self.status = "unhealthy"
        elif any(s == "degraded" for s in statuses):
            self.status = "degraded"
        elif all(s == "healthy" for s in statuses):
            self.status = "healthy"
        else:
            self.status = "unknown"

    @property
    def issues(self) -> int:
        return sum(1 for c in self.components if c.status != "healthy")

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "timestamp": self.timestamp,
            "issues": self.issues,
            "components": [c.to_dict() for c in self.components],
        }


# ═══════════════════════════════════════════════════════════════════
#  Checks
# ═══════════════════════════════════════════════════════════════════


def check_chocolatey() -> ComponentHealth:
    from chocomaint.core.services.choco_ops import choco_available

    status = choco_available()
    if not status["available"]:
        return ComponentHealth(
            name="chocolatey",
            status="unhealthy",
            message="choco not found on PATH",
        )
    return ComponentHealth(
        name="chocolatey",
        status="healthy",
        message=f"Chocolatey {status['version']}",
        details=status,
    )


def check_admin() -> ComponentHealth:
    if probes.is_admin():
        return ComponentHealth(name="admin", status="healthy", message="Running elevated")
    return ComponentHealth(
        name="admin",
        status="degraded",
        message="Not running as Administrator — install/update will refuse to run",
    )


def check_outdated() -> ComponentHealth:
    from chocomaint.core.services.choco_ops import list_outdated

    try:
        outdated = list_outdated()
    except CommandError as e:
        return ComponentHealth(name="outdated", status="unknown", message=str(e))

    if not outdated:
        return ComponentHealth(name="outdated", status="healthy", message="All packages up to date")
    names = [p.name for p in outdated]
    return ComponentHealth(
        name="outdated",
        status="degraded",
        message=f"{len(outdated)} package(s) outdated",
        details={"packages": names},
    )


def check_disk_space(config: MaintenanceConfig) -> ComponentHealth:
    usage = probes.disk_usage()
    if "error" in usage:
        return ComponentHealth(name="disk", status="unknown", message=usage["error"], details=usage)

    free_gb = usage["free"] / 1024 ** 3
    message = f"{usage['percent_free']}% free ({free_gb:.1f} GB) on {usage['path']}"
    status = "degraded" if usage["percent_free"] < config.disk_free_warn_percent else "healthy"
    return ComponentHealth(name="disk", status=status, message=message, details=usage)


def check_failed_installs() -> ComponentHealth:
    from chocomaint.core.services.choco_ops import chocolatey_install_dir

    lib_bad = chocolatey_install_dir() / "lib-bad"
    entries = sorted(p.name for p in lib_bad.iterdir()) if lib_bad.is_dir() else []
    if not entries:
        return ComponentHealth(name="failed_installs", status="healthy", message="No failed installs")
    return ComponentHealth(
        name="failed_installs",
        status="degraded",
        message=f"{len(entries)} failed install(s) in lib-bad",
        details={"packages": entries},
    )


def check_cache_size() -> ComponentHealth:
    from chocomaint.core.services.cleanup_ops import chocolatey_temp_dir, path_size

    cache = chocolatey_temp_dir()
    size = path_size(cache) if cache.exists() else 0
    message = f"{size / 1_048_576:.1f} MB in {cache}"
    status = "degraded" if size > CACHE_WARN_BYTES else "healthy"
    return ComponentHealth(name="cache", status=status, message=message, details={"bytes": size})


def check_last_backup(config: MaintenanceConfig, *, now: datetime | None = None) -> ComponentHealth:
    from chocomaint.core.services.backup_ops import latest_backup

    latest = latest_backup(config)
    if latest is None:
        return ComponentHealth(
            name="backup",
            status="degraded",
            message=f"No backups in {config.backup_dir}",
        )

    taken = parse_backup_timestamp(latest.name) or datetime.fromtimestamp(latest.stat().st_mtime)
    age_days = ((now or datetime.now()) - taken).days
    status = "degraded" if age_days > BACKUP_MAX_AGE_DAYS else "healthy"
    return ComponentHealth(
        name="backup",
        status=status,
        message=f"Last backup {latest.name} ({age_days} day(s) old)",
        details={"path": str(latest), "age_days": age_days},
    )


def check_scheduled_tasks(config: MaintenanceConfig) -> ComponentHealth:
    from chocomaint.core.services.schedule_ops import list_tasks

    result = list_tasks(config)
    missing = [t["name"] for t in result["tasks"] if not t["registered"]]
    if not missing:
        return ComponentHealth(
            name="scheduled_tasks",
            status="healthy",
            message=f"All {result['total']} tasks registered",
        )
    return ComponentHealth(
        name="scheduled_tasks",
        status="degraded",
        message=f"{len(missing)}/{result['total']} task(s) not registered",
        details={"missing": missing},
    )


def check_log_path(config: MaintenanceConfig) -> ComponentHealth:
    directory = config.log_file.parent
    probe_dir = directory
    while not probe_dir.exists() and probe_dir != probe_dir.parent:
        probe_dir = probe_dir.parent
    if os.access(probe_dir, os.W_OK):
        return ComponentHealth(name="log", status="healthy", message=str(config.log_file))
    return ComponentHealth(
        name="log",
        status="degraded",
        message=f"Log directory not writable: {directory}",
    )


def check_system_health(config: MaintenanceConfig) -> SystemHealth:
    """Run all health checks and return aggregate status."""
    health = SystemHealth()

    chocolatey = check_chocolatey()
    health.add(chocolatey)

    checks: list[Callable[[], ComponentHealth]] = [
        check_admin,
        lambda: check_disk_space(config),
        lambda: check_last_backup(config),
        lambda: check_scheduled_tasks(config),
        lambda: check_log_path(config),
    ]
    if chocolatey.status == "healthy":
        checks[1:1] = [check_outdated, check_failed_installs, check_cache_size]

    for check in checks:
        try:
            health.add(check())
        except OSError as e:
            logger.warning("Health check failed: %s", e)
            health.add(ComponentHealth(name=getattr(check, "__name__", "check"), status="unknown", message=str(e)))

    logger.info("Health: %s (%d issue(s))", health.status, health.issues)
    return health
