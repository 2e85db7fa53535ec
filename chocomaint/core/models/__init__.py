"""
Domain models — Pydantic types for chocomaint.

    from chocomaint.core.models import MaintenanceConfig, PackageRecord, BackupDocument
"""

from chocomaint.core.models.package import BackupDocument, OutdatedPackage, PackageRecord
from chocomaint.core.models.settings import MaintenanceConfig, default_data_dir

__all__ = [
    "BackupDocument",
    "MaintenanceConfig",
    "OutdatedPackage",
    "PackageRecord",
    "default_data_dir",
]
