"""
MaintenanceConfig — the flat settings record.

Loaded once per invocation from chocomaint.json (or .yml) and passed
explicitly into every service. Missing keys fall back to the defaults
declared here; unknown keys are ignored.
"""

from __future__ import annotations

import os
import re
import sys
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

_WEEKDAYS = ("MON", "TUE", "WED", "THU", "FRI", "SAT", "SUN")


def default_data_dir() -> Path:
    """Root directory for logs and backups on this machine."""
    if sys.platform == "win32":
        base = os.environ.get("ProgramData", r"C:\ProgramData")
        return Path(base) / "chocomaint"
    return Path.home() / ".chocomaint"


def _default_backup_path() -> str:
    return str(default_data_dir() / "backups")


def _default_log_path() -> str:
    return str(default_data_dir() / "logs" / "chocomaint.log")


class MaintenanceConfig(BaseModel):
    """Settings for every chocomaint workflow."""

    model_config = ConfigDict(extra="ignore")

    # ── Gating ───────────────────────────────────────────────────
    wifi_ssid: str = ""                     # empty = WiFi gate disabled
    wifi_retry_count: int = Field(default=3, ge=1)
    wifi_retry_delay: int = Field(default=10, ge=0)
    require_ac_power: bool = True
    require_admin: bool = True

    # ── Notifications ────────────────────────────────────────────
    email_to: str = ""
    email_from: str = ""
    smtp_server: str = ""
    smtp_port: int = 587
    smtp_use_tls: bool = True
    smtp_username: str = ""
    smtp_password: str = ""
    toast_enabled: bool = True
    email_enabled: bool = False
    notify_on_success: bool = True
    notify_on_failure: bool = True

    # ── Backup ───────────────────────────────────────────────────
    backup_path: str = Field(default_factory=_default_backup_path)
    backup_retention_days: int = Field(default=30, ge=0)
    backup_keep_min: int = Field(default=3, ge=0)

    # ── Install / cleanup ────────────────────────────────────────
    log_path: str = Field(default_factory=_default_log_path)
    packages: list[str] = Field(default_factory=list)
    cleanup_temp_max_age_days: int = Field(default=7, ge=0)
    disk_free_warn_percent: float = Field(default=10.0, ge=0, le=100)

    # ── Scheduling ───────────────────────────────────────────────
    update_time: str = "03:00"
    cleanup_day: str = "SUN"
    choco_timeout: int = Field(default=3600, ge=1)

    @field_validator("update_time")
    @classmethod
    def _check_time(cls, value: str) -> str:
        if not re.fullmatch(r"([01]\d|2[0-3]):[0-5]\d", value):
            raise ValueError(f"update_time must be HH:MM, got {value!r}")
        return value

    @field_validator("cleanup_day")
    @classmethod
    def _check_day(cls, value: str) -> str:
        day = value.strip().upper()[:3]
        if day not in _WEEKDAYS:
            raise ValueError(f"cleanup_day must be one of {', '.join(_WEEKDAYS)}")
        return day

    @field_validator("packages")
    @classmethod
    def _strip_packages(cls, value: list[str]) -> list[str]:
        return [p.strip() for p in value if p and p.strip()]

    @property
    def backup_dir(self) -> Path:
        return Path(self.backup_path).expanduser()

    @property
    def log_file(self) -> Path:
        return Path(self.log_path).expanduser()

    def to_public_dict(self) -> dict:
        """Settings as a dict with secrets masked, for display."""
        data = self.model_dump(mode="json")
        if data.get("smtp_password"):
            data["smtp_password"] = "********"
        return data
