"""
Auto-update workflow — gated ``choco upgrade all``.

    admin + choco  →  WiFi SSID (bounded retries)  →  AC power
        →  outdated  →  upgrade all  →  cache cleanup
        →  aggregate  →  notify  →  log

Gates that don't pass skip the run without touching any package.
"""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime
from typing import Callable

from chocomaint.core.errors import CommandError
from chocomaint.core.models.settings import MaintenanceConfig
from chocomaint.core.services import choco_ops, notify
from chocomaint.core.services.gating import evaluate_gates
from chocomaint.core.services.preflight import check_prerequisites

logger = logging.getLogger(__name__)


def _summary_message(result: dict) -> str:
    if result["failed"]:
        return (
            f"Upgraded {result['upgraded']} package(s); "
            f"{len(result['failed'])} failed: {', '.join(result['failed'])}"
        )
    if result["upgraded"]:
        return f"Upgraded {result['upgraded']} package(s)"
    return "All packages are up to date"


def run_auto_update(
    config: MaintenanceConfig,
    *,
    dry_run: bool = False,
    ssid_probe: Callable[[], str | None] | None = None,
    power_probe: Callable[[], dict] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> dict:
    """Upgrade all packages if every gating condition holds.

    Returns:
        {"ok", "skipped", "reason", "gates", "outdated", "upgraded",
         "failed", "cleanup", "notification", "issues", ...}
        or {"ok": False, "fatal": True, "error": str}
    """
    started = datetime.now(UTC)
    logger.info("Auto-update started%s", " (dry run)" if dry_run else "")

    pre = check_prerequisites(config)
    if not pre["ok"]:
        return pre

    gates = evaluate_gates(config, ssid_probe=ssid_probe, power_probe=power_probe, sleep=sleep)
    if not gates["proceed"]:
        logger.info("Auto-update skipped: %s", gates["reason"])
        return {
            "ok": True,
            "skipped": True,
            "reason": gates["reason"],
            "gates": gates,
            "issues": 0,
        }

    issues = 0
    try:
        outdated = choco_ops.list_outdated(timeout=config.choco_timeout)
    except CommandError as e:
        logger.warning("Could not list outdated packages: %s", e)
        outdated = []
        issues += 1

    result: dict = {
        "ok": True,
        "skipped": False,
        "reason": "",
        "dry_run": dry_run,
        "gates": gates,
        "choco_version": pre["choco_version"],
        "outdated": [p.model_dump() for p in outdated],
        "upgraded": 0,
        "failed": [],
        "reboot_required": False,
        "cleanup": None,
        "notification": None,
    }

    if dry_run:
        logger.info("Dry run: %d package(s) would be upgraded", len(outdated))
        result["issues"] = issues
        result["ok"] = issues == 0
        return result

    upgrade = choco_ops.upgrade_packages(timeout=config.choco_timeout)
    result["upgraded"] = upgrade["upgraded"]
    result["failed"] = upgrade["failed"]
    result["reboot_required"] = upgrade["reboot_required"]
    if upgrade["failed"]:
        issues += len(upgrade["failed"])
    elif not upgrade["ok"]:
        issues += 1
        result["error"] = f"choco upgrade exited {upgrade['returncode']}"

    cleanup = choco_ops.clear_cache()
    result["cleanup"] = cleanup
    if not cleanup["ok"]:
        logger.warning("Cache cleanup after upgrade failed: %s", cleanup.get("error"))
        issues += 1

    result["issues"] = issues
    result["ok"] = issues == 0

    message = _summary_message(result)
    title = "Chocolatey update complete" if result["ok"] else "Chocolatey update had problems"
    result["notification"] = notify.notify(config, title, message, success=result["ok"])

    elapsed = (datetime.now(UTC) - started).total_seconds()
    logger.info("Auto-update finished in %.0fs: %s (issues=%d)", elapsed, message, issues)
    return result
