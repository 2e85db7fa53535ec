"""Exception types raised by chocomaint services."""

from __future__ import annotations


class ChocomaintError(Exception):
    """Base class for chocomaint errors."""


class ConfigError(ChocomaintError):
    """Raised when the settings file is unreadable or invalid."""


class BackupError(ChocomaintError):
    """Raised when a backup file is missing or cannot be parsed."""


class CommandError(ChocomaintError):
    """Raised when a checked external command exits non-zero."""

    def __init__(self, message: str, *, returncode: int = 1, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr
