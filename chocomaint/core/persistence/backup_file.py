"""
Backup file persistence — atomic read/write of BackupDocument.

Backups are JSON files named ``choco-backup-YYYYMMDD-HHMMSS.json``.
Writes go to a temp file in the same directory and are then renamed,
so an interrupted run never leaves a half-written backup behind.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from chocomaint.core.errors import BackupError
from chocomaint.core.models.package import BackupDocument

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "choco-backup-"
BACKUP_SUFFIX = ".json"
_NAME_RE = re.compile(r"^choco-backup-(\d{8}-\d{6})\.json$")


def backup_filename(when: datetime) -> str:
    return f"{BACKUP_PREFIX}{when.strftime('%Y%m%d-%H%M%S')}{BACKUP_SUFFIX}"


def parse_backup_timestamp(name: str) -> datetime | None:
    """Timestamp encoded in a backup filename, or None."""
    match = _NAME_RE.match(name)
    if not match:
        return None
    return datetime.strptime(match.group(1), "%Y%m%d-%H%M%S")


def load_backup(path: Path) -> BackupDocument:
    """Read a backup file.

    Raises:
        BackupError: If the file is missing, not JSON, or not a backup.
    """
    if not path.is_file():
        raise BackupError(f"Backup file not found: {path}")

    try:
        data = json.loads(path.read_text(encoding="utf-8-sig"))
    except OSError as e:
        raise BackupError(f"Cannot read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise BackupError(f"Invalid JSON in {path}: {e}") from e

    # Older exports were a bare list of {Name, Version}
    if isinstance(data, list):
        data = {"Packages": data, "PackageCount": len(data)}
    if not isinstance(data, dict):
        raise BackupError(f"Unexpected backup format in {path}")

    try:
        doc = BackupDocument.model_validate(data)
    except ValidationError as e:
        raise BackupError(f"Invalid backup {path}: {e}") from e

    if doc.package_count != len(doc.packages):
        logger.warning(
            "%s declares %d packages but lists %d — using the list",
            path.name, doc.package_count, len(doc.packages),
        )
        doc.package_count = len(doc.packages)

    return doc


def save_backup(doc: BackupDocument, path: Path) -> None:
    """Write a backup file (atomic write)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(doc.to_json_dict(), indent=2, ensure_ascii=False) + "\n"

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".backup_", suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
        os.replace(tmp, path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise
    logger.debug("Backup written to %s", path)
