"""
Disk cleanup — reclaim space left behind by Chocolatey.

Targets:
    cache     ``choco cache remove``
    lib-bad   failed installs kept for diagnosis
    lib-bkp   package backups from upgrades
    temp      stale files in %TEMP%\\chocolatey
    logs      rotated Chocolatey logs

Each target is handled on its own; an error in one is logged, counted
and the next target still runs.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import time
from pathlib import Path

from chocomaint.core.models.settings import MaintenanceConfig
from chocomaint.core.services import choco_ops
from chocomaint.core.services.preflight import check_prerequisites

logger = logging.getLogger(__name__)

# Logs Chocolatey is still writing to
_ACTIVE_LOGS = frozenset({"chocolatey.log", "choco.summary.log"})


# ═══════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════


def path_size(path: Path) -> int:
    """Total size in bytes of a file or directory tree."""
    if path.is_file():
        return path.stat().st_size
    total = 0
    for root, _dirs, files in os.walk(path):
        for name in files:
            try:
                total += (Path(root) / name).stat().st_size
            except OSError:
                continue
    return total


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def chocolatey_temp_dir() -> Path:
    return Path(tempfile.gettempdir()) / "chocolatey"


def _clear_children(directory: Path, *, dry_run: bool, older_than: float | None = None,
                    keep: frozenset[str] = frozenset()) -> dict:
    """Remove entries directly under ``directory``."""
    if not directory.is_dir():
        return {"path": str(directory), "removed": 0, "bytes": 0, "exists": False}

    removed = 0
    freed = 0
    errors: list[str] = []
    try:
        entries = sorted(directory.iterdir())
    except OSError as e:
        logger.warning("Cannot list %s: %s", directory, e)
        return {"path": str(directory), "removed": 0, "bytes": 0, "exists": True, "errors": [str(e)]}

    for entry in entries:
        if entry.name.lower() in keep:
            continue
        try:
            if older_than is not None and entry.stat().st_mtime > older_than:
                continue
            size = path_size(entry)
            if not dry_run:
                _remove(entry)
            removed += 1
            freed += size
        except OSError as e:
            logger.warning("Cannot remove %s: %s", entry, e)
            errors.append(f"{entry.name}: {e}")

    result = {"path": str(directory), "removed": removed, "bytes": freed, "exists": True}
    if errors:
        result["errors"] = errors
    return result


# ═══════════════════════════════════════════════════════════════════
#  Workflow
# ═══════════════════════════════════════════════════════════════════


def run_cleanup(config: MaintenanceConfig, *, dry_run: bool = False) -> dict:
    """Run every cleanup target.

    Returns:
        {"ok", "dry_run", "targets": {name: {...}}, "bytes_freed", "issues"}
        or {"ok": False, "fatal": True, "error": str}
    """
    pre = check_prerequisites(config)
    if not pre["ok"]:
        return pre

    logger.info("Cleanup started%s", " (dry run)" if dry_run else "")
    install_dir = choco_ops.chocolatey_install_dir()
    cutoff = time.time() - config.cleanup_temp_max_age_days * 86400
    targets: dict[str, dict] = {}
    issues = 0

    # ── Download cache ──────────────────────────────────────────
    if dry_run:
        targets["cache"] = {"ok": True, "skipped": True}
    else:
        cache = choco_ops.clear_cache()
        targets["cache"] = cache
        if not cache["ok"]:
            logger.warning("choco cache remove failed: %s", cache.get("error"))
            issues += 1

    # ── Filesystem targets ──────────────────────────────────────
    fs_targets = {
        "lib-bad": (install_dir / "lib-bad", None, frozenset()),
        "lib-bkp": (install_dir / "lib-bkp", None, frozenset()),
        "temp": (chocolatey_temp_dir(), cutoff, frozenset()),
        "logs": (install_dir / "logs", cutoff, _ACTIVE_LOGS),
    }
    for name, (directory, older_than, keep) in fs_targets.items():
        outcome = _clear_children(directory, dry_run=dry_run, older_than=older_than, keep=keep)
        targets[name] = outcome
        if outcome.get("errors"):
            issues += len(outcome["errors"])
        if outcome["removed"]:
            logger.info("%s: %d item(s), %d bytes", name, outcome["removed"], outcome["bytes"])

    bytes_freed = sum(t.get("bytes", 0) for t in targets.values())
    logger.info(
        "Cleanup finished: %.1f MB %s, %d issue(s)",
        bytes_freed / 1_048_576,
        "reclaimable" if dry_run else "freed",
        issues,
    )
    return {
        "ok": issues == 0,
        "dry_run": dry_run,
        "targets": targets,
        "bytes_freed": bytes_freed,
        "issues": issues,
    }
