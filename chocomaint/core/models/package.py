"""
Package models — installed packages, outdated packages, backup files.

The backup document keeps the PascalCase key layout produced by
PowerShell's ConvertTo-Json so existing backup files stay readable.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class PackageRecord(BaseModel):
    """A package name/version pair."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(alias="Name")
    version: str = Field(default="", alias="Version")

    @classmethod
    def from_limit_output(cls, line: str) -> PackageRecord | None:
        """Parse a ``name|version`` line, or None if it isn't one."""
        parts = line.strip().split("|")
        if len(parts) < 2 or not parts[0].strip():
            return None
        return cls(name=parts[0].strip(), version=parts[1].strip())


class OutdatedPackage(BaseModel):
    """A row of ``choco outdated --limit-output``."""

    name: str
    current: str
    available: str
    pinned: bool = False

    @classmethod
    def from_limit_output(cls, line: str) -> OutdatedPackage | None:
        """Parse a ``name|current|available|pinned`` line."""
        parts = line.strip().split("|")
        if len(parts) < 3 or not parts[0].strip():
            return None
        pinned = len(parts) > 3 and parts[3].strip().lower() == "true"
        return cls(
            name=parts[0].strip(),
            current=parts[1].strip(),
            available=parts[2].strip(),
            pinned=pinned,
        )


class BackupDocument(BaseModel):
    """Snapshot of installed packages plus the metadata of the run."""

    model_config = ConfigDict(populate_by_name=True)

    backup_date: str = Field(default_factory=_now_iso, alias="BackupDate")
    computer_name: str = Field(default="", alias="ComputerName")
    chocolatey_version: str = Field(default="", alias="ChocolateyVersion")
    package_count: int = Field(default=0, alias="PackageCount")
    packages: list[PackageRecord] = Field(default_factory=list, alias="Packages")

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
