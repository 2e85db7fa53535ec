"""
Software installation — install the configured package list.

Already-installed packages are skipped, so running the same list twice
installs nothing the second time. A failed install is recorded and the
loop moves on to the next package.
"""

from __future__ import annotations

import logging

from chocomaint.core.errors import CommandError
from chocomaint.core.models.settings import MaintenanceConfig
from chocomaint.core.services import choco_ops
from chocomaint.core.services.preflight import check_prerequisites

logger = logging.getLogger(__name__)


def _installed_names(choco_version: str | None) -> set[str]:
    return {p.name.lower() for p in choco_ops.list_installed(choco_version=choco_version)}


def install_software(
    config: MaintenanceConfig,
    names: list[str] | None = None,
    *,
    dry_run: bool = False,
) -> dict:
    """Install every requested package that isn't installed yet.

    Args:
        names: Packages to install (default: ``config.packages``).
        dry_run: Report what would be installed without installing.

    Returns:
        {"ok", "installed": [...], "skipped": [...], "failed": [...],
         "reboot_required": bool, "issues": int}
        or {"ok": False, "fatal": True, "error": str}
    """
    requested = list(dict.fromkeys(names if names is not None else config.packages))
    if not requested:
        return {"ok": False, "fatal": True, "error": "No packages requested (set 'packages' in settings)"}

    pre = check_prerequisites(config)
    if not pre["ok"]:
        return pre

    try:
        present = _installed_names(pre["choco_version"])
    except CommandError as e:
        logger.error("Cannot list installed packages: %s", e)
        return {"ok": False, "fatal": True, "error": str(e)}

    installed: list[str] = []
    skipped: list[str] = []
    failed: list[dict] = []
    reboot = False

    logger.info("Installing %d package(s)", len(requested))
    for name in requested:
        if name.lower() in present:
            logger.info("%s is already installed — skipping", name)
            skipped.append(name)
            continue

        if dry_run:
            installed.append(name)
            continue

        result = choco_ops.install_package(name, timeout=config.choco_timeout)
        if result["ok"]:
            installed.append(name)
            present.add(name.lower())
            reboot = reboot or result["reboot_required"]
        else:
            failed.append({"name": name, "returncode": result["returncode"], "output": result["output"]})

    issues = len(failed)
    logger.info(
        "Install finished: %d installed, %d skipped, %d failed",
        len(installed), len(skipped), issues,
    )
    return {
        "ok": issues == 0,
        "dry_run": dry_run,
        "installed": installed,
        "skipped": skipped,
        "failed": failed,
        "reboot_required": reboot,
        "issues": issues,
    }
