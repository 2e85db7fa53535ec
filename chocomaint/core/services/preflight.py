"""
Preflight checks and exit-code selection shared by every workflow.

Missing prerequisites (not elevated, no choco) are fatal; everything
else is counted as an issue and reported at the end.
"""

from __future__ import annotations

import logging

from chocomaint.adapters.system import probes
from chocomaint.core.models.settings import MaintenanceConfig
from chocomaint.core.services import choco_ops

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ISSUES = 1


def exit_code_for(issues: int) -> int:
    """0 when nothing went wrong, 1 otherwise."""
    return EXIT_OK if issues <= 0 else EXIT_ISSUES


def check_prerequisites(config: MaintenanceConfig, *, need_admin: bool | None = None) -> dict:
    """Verify elevation and the choco CLI.

    Args:
        need_admin: Override ``config.require_admin``.

    Returns:
        {"ok": True, "choco_version": str} or
        {"ok": False, "fatal": True, "error": str}
    """
    require_admin = config.require_admin if need_admin is None else need_admin
    if require_admin and not probes.is_admin():
        logger.error("This operation must be run as Administrator")
        return {"ok": False, "fatal": True, "error": "Administrator rights required"}

    status = choco_ops.choco_available()
    if not status["available"]:
        logger.error("Chocolatey is not installed or not on PATH")
        return {"ok": False, "fatal": True, "error": "Chocolatey (choco) is not installed"}

    logger.debug("Chocolatey %s at %s", status["version"], status["path"])
    return {"ok": True, "choco_version": status["version"]}
