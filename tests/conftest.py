"""
Shared test fixtures and configuration.

No test touches the real ``choco``, ``netsh`` or ``schtasks``: the
``fake_choco`` fixture replaces ``choco_ops._run_choco`` with an
in-memory package database.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from chocomaint.adapters.shell.command import CmdResult
from chocomaint.core.models.settings import MaintenanceConfig


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep settings lookup, logs and data dirs inside tmp_path."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("ChocolateyInstall", str(tmp_path / "chocolatey"))
    monkeypatch.setenv("CHOCOMAINT_LOG_FILE", str(tmp_path / "logs" / "test.log"))
    monkeypatch.delenv("CHOCOMAINT_CONFIG", raising=False)
    monkeypatch.delenv("CHOCOMAINT_LOG_LEVEL", raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def config(tmp_path: Path) -> MaintenanceConfig:
    """Settings pointing every path at tmp_path, no sleeping."""
    return MaintenanceConfig(
        backup_path=str(tmp_path / "backups"),
        log_path=str(tmp_path / "logs" / "chocomaint.log"),
        wifi_retry_delay=0,
        toast_enabled=False,
    )


class FakeChoco:
    """Minimal stand-in for the choco CLI."""

    def __init__(self) -> None:
        self.version = "2.2.2"
        self.installed: dict[str, str] = {}
        self.outdated: dict[str, str] = {}      # name -> available version
        self.fail_install: set[str] = set()
        self.fail_upgrade: set[str] = set()
        self.list_rc = 0
        self.cache_rc = 0
        self.available = True
        self.calls: list[tuple[str, ...]] = []

    def _result(self, args: tuple[str, ...], rc: int = 0, stdout: str = "", stderr: str = "") -> CmdResult:
        return CmdResult(argv=["choco", *args], returncode=rc, stdout=stdout, stderr=stderr)

    def __call__(self, *args: str, timeout: int = 600) -> CmdResult:
        self.calls.append(args)
        if not self.available:
            return self._result(args, 127, stderr="choco: command not found")

        cmd = args[0]
        if cmd == "--version":
            return self._result(args, stdout=f"{self.version}\n")
        if cmd == "list":
            lines = [f"{n}|{v}" for n, v in sorted(self.installed.items())]
            return self._result(args, self.list_rc, stdout="\n".join(lines) + "\n")
        if cmd == "outdated":
            lines = [
                f"{n}|{self.installed[n]}|{avail}|false"
                for n, avail in sorted(self.outdated.items())
            ]
            return self._result(args, 2 if lines else 0, stdout="\n".join(lines) + "\n")
        if cmd == "install":
            name = args[1]
            if name in self.fail_install:
                return self._result(args, 1, stdout=f"{name} not installed. An error occurred.")
            version = args[args.index("--version") + 1] if "--version" in args else "1.0.0"
            self.installed[name] = version
            return self._result(args, stdout="Chocolatey installed 1/1 packages.")
        if cmd == "upgrade":
            return self._upgrade(args)
        if cmd == "cache":
            return self._result(args, self.cache_rc, stdout="Cache removed.")
        return self._result(args, 1, stderr=f"unknown command {cmd}")

    def _upgrade(self, args: tuple[str, ...]) -> CmdResult:
        targets = list(self.outdated)
        ok = [n for n in targets if n not in self.fail_upgrade]
        bad = [n for n in targets if n in self.fail_upgrade]
        for name in ok:
            self.installed[name] = self.outdated.pop(name)
        lines = [f"Chocolatey upgraded {len(ok)}/{len(self.installed)} packages."]
        if bad:
            lines[0] += f" {len(bad)} packages failed."
            lines += ["", "Failures"]
            lines += [f" - {n} (exited 1) - Error while running install script" for n in bad]
        return self._result(args, 1 if bad else 0, stdout="\n".join(lines) + "\n")

    def commands(self, name: str) -> list[tuple[str, ...]]:
        return [c for c in self.calls if c and c[0] == name]


@pytest.fixture
def fake_choco():
    """Patch choco_ops._run_choco with a FakeChoco and yield it."""
    fake = FakeChoco()
    with patch("chocomaint.core.services.choco_ops._run_choco", side_effect=fake):
        yield fake


@pytest.fixture
def as_admin():
    with patch("chocomaint.adapters.system.probes.is_admin", return_value=True):
        yield


@pytest.fixture
def not_admin():
    with patch("chocomaint.adapters.system.probes.is_admin", return_value=False):
        yield
