"""
Backup & Restore operations — channel-independent service.

Snapshots the installed package list to JSON, restores it on another
(or a rebuilt) machine, lists existing backups and prunes old ones.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from pathlib import Path

from chocomaint.adapters.system import probes
from chocomaint.core.errors import BackupError, CommandError
from chocomaint.core.models.package import BackupDocument
from chocomaint.core.models.settings import MaintenanceConfig
from chocomaint.core.persistence.backup_file import (
    BACKUP_PREFIX,
    BACKUP_SUFFIX,
    backup_filename,
    load_backup,
    parse_backup_timestamp,
    save_backup,
)
from chocomaint.core.services import choco_ops
from chocomaint.core.services.preflight import check_prerequisites

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════


def _backup_files(directory: Path) -> list[Path]:
    """Backup files in ``directory``, newest first."""
    if not directory.is_dir():
        return []
    files = [
        p for p in directory.glob(f"{BACKUP_PREFIX}*{BACKUP_SUFFIX}")
        if p.is_file()
    ]
    return sorted(files, key=_sort_key, reverse=True)


def _sort_key(path: Path) -> float:
    stamp = parse_backup_timestamp(path.name)
    return stamp.timestamp() if stamp else path.stat().st_mtime


def latest_backup(config: MaintenanceConfig) -> Path | None:
    files = _backup_files(config.backup_dir)
    return files[0] if files else None


# ═══════════════════════════════════════════════════════════════════
#  Create
# ═══════════════════════════════════════════════════════════════════


def create_backup(config: MaintenanceConfig, output: Path | None = None) -> dict:
    """Write a snapshot of installed packages.

    Args:
        output: Explicit file path (default: timestamped file in
            ``config.backup_path``).

    Returns:
        {"ok": True, "path", "package_count", "pruned"} or {"ok": False, "error"}
    """
    pre = check_prerequisites(config, need_admin=False)
    if not pre["ok"]:
        return pre

    try:
        packages = choco_ops.list_installed(choco_version=pre["choco_version"])
    except CommandError as e:
        logger.error("Backup failed: %s", e)
        return {"ok": False, "error": str(e)}

    now = datetime.now()
    doc = BackupDocument(
        backup_date=now.astimezone().isoformat(),
        computer_name=probes.computer_name(),
        chocolatey_version=pre["choco_version"] or "",
        package_count=len(packages),
        packages=packages,
    )
    target = output or (config.backup_dir / backup_filename(now))

    try:
        save_backup(doc, target)
    except OSError as e:
        logger.error("Cannot write backup %s: %s", target, e)
        return {"ok": False, "error": f"Cannot write backup: {e}"}

    logger.info("Backed up %d packages to %s", len(packages), target)

    pruned: list[str] = []
    if output is None:
        pruned = prune_backups(config)["removed"]

    return {
        "ok": True,
        "path": str(target),
        "package_count": len(packages),
        "pruned": pruned,
    }


# ═══════════════════════════════════════════════════════════════════
#  Restore
# ═══════════════════════════════════════════════════════════════════


def restore_backup(
    config: MaintenanceConfig,
    path: Path | None = None,
    *,
    use_versions: bool = False,
    dry_run: bool = False,
) -> dict:
    """Install every package from a backup that isn't installed yet.

    Args:
        path: Backup file (default: the newest in ``config.backup_path``).
        use_versions: Pin each install to the backed-up version.
        dry_run: Report what would be installed.

    Returns:
        {"ok", "path", "installed", "skipped", "failed", "issues"}
        or {"ok": False, "fatal": True, "error": str}
    """
    pre = check_prerequisites(config)
    if not pre["ok"]:
        return pre

    if path is None:
        path = latest_backup(config)
        if path is None:
            return {"ok": False, "fatal": True, "error": f"No backups found in {config.backup_dir}"}

    try:
        doc = load_backup(path)
        installed_now = choco_ops.list_installed(choco_version=pre["choco_version"])
        present = {p.name.lower() for p in installed_now}
    except (BackupError, CommandError) as e:
        logger.error("Restore failed: %s", e)
        return {"ok": False, "fatal": True, "error": str(e)}

    logger.info(
        "Restoring %d packages from %s (taken %s on %s)",
        doc.package_count, path.name, doc.backup_date, doc.computer_name or "?",
    )

    installed: list[str] = []
    skipped: list[str] = []
    failed: list[dict] = []
    for pkg in doc.packages:
        if pkg.name.lower() in present:
            skipped.append(pkg.name)
            continue
        if dry_run:
            installed.append(pkg.name)
            continue

        version = pkg.version if use_versions and pkg.version else None
        result = choco_ops.install_package(pkg.name, version, timeout=config.choco_timeout)
        if result["ok"]:
            installed.append(pkg.name)
            present.add(pkg.name.lower())
        else:
            failed.append({"name": pkg.name, "version": pkg.version, "returncode": result["returncode"]})

    issues = len(failed)
    logger.info(
        "Restore finished: %d installed, %d already present, %d failed",
        len(installed), len(skipped), issues,
    )
    return {
        "ok": issues == 0,
        "dry_run": dry_run,
        "path": str(path),
        "installed": installed,
        "skipped": skipped,
        "failed": failed,
        "issues": issues,
    }


# ═══════════════════════════════════════════════════════════════════
#  List / prune
# ═══════════════════════════════════════════════════════════════════


def list_backups(config: MaintenanceConfig) -> dict:
    """Backups in ``config.backup_path``, newest first.

    Unreadable files are listed with an ``error`` instead of metadata.
    """
    backups = []
    for path in _backup_files(config.backup_dir):
        entry: dict = {
            "filename": path.name,
            "path": str(path),
            "size_bytes": path.stat().st_size,
        }
        try:
            doc = load_backup(path)
        except BackupError as e:
            entry["error"] = str(e)
        else:
            entry.update(
                backup_date=doc.backup_date,
                computer_name=doc.computer_name,
                chocolatey_version=doc.chocolatey_version,
                package_count=doc.package_count,
            )
        backups.append(entry)

    return {"directory": str(config.backup_dir), "backups": backups, "count": len(backups)}


def prune_backups(config: MaintenanceConfig, *, now: datetime | None = None) -> dict:
    """Delete backups older than the retention window.

    The newest ``backup_keep_min`` files are always kept, and a
    retention of 0 days keeps everything.
    """
    if config.backup_retention_days <= 0:
        return {"removed": [], "kept": len(_backup_files(config.backup_dir))}

    cutoff = (now or datetime.now()) - timedelta(days=config.backup_retention_days)
    files = _backup_files(config.backup_dir)
    removed: list[str] = []

    for path in files[config.backup_keep_min:]:
        stamp = parse_backup_timestamp(path.name) or datetime.fromtimestamp(path.stat().st_mtime)
        if stamp >= cutoff:
            continue
        try:
            path.unlink()
        except OSError as e:
            logger.warning("Cannot delete old backup %s: %s", path, e)
            continue
        removed.append(path.name)
        logger.info("Pruned old backup %s", path.name)

    return {"removed": removed, "kept": len(files) - len(removed)}
