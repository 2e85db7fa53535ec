"""
CLI tests — invoke commands through click's CliRunner.

Services talk to the FakeChoco from conftest; settings come from a
chocomaint.json written into the (temporary) working directory.
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from chocomaint.core.observability.health import ComponentHealth, SystemHealth
from chocomaint.main import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def settings_file(tmp_path: Path) -> Path:
    path = tmp_path / "chocomaint.json"
    path.write_text(json.dumps({
        "backup_path": str(tmp_path / "backups"),
        "log_path": str(tmp_path / "logs" / "chocomaint.log"),
        "wifi_retry_delay": 0,
        "require_ac_power": False,
        "toast_enabled": False,
        "smtp_password": "hunter2",
        "packages": ["git", "vlc"],
    }))
    return path


# ═══════════════════════════════════════════════════════════════════
#  Root group
# ═══════════════════════════════════════════════════════════════════


class TestRoot:
    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for name in ("install", "update", "cleanup", "backup", "schedule", "health"):
            assert name in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_log_file_written(self, runner, settings_file, tmp_path, fake_choco):
        log = tmp_path / "run.log"
        result = runner.invoke(cli, ["--log-file", str(log), "-v", "list"])
        assert result.exit_code == 0
        assert log.is_file()

    def test_settings_source_is_logged(self, runner, settings_file, tmp_path):
        result = runner.invoke(cli, ["config", "show"])
        assert result.exit_code == 0
        text = (tmp_path / "logs" / "test.log").read_text(encoding="utf-8")
        assert f"Settings loaded from {settings_file.resolve()}" in text


class TestConfigCommands:
    def test_show_masks_password(self, runner, settings_file):
        result = runner.invoke(cli, ["config", "show", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["smtp_password"] == "********"
        assert data["packages"] == ["git", "vlc"]

    def test_check_valid(self, runner, settings_file):
        result = runner.invoke(cli, ["config", "check"])
        assert result.exit_code == 0
        assert "valid" in result.output

    def test_check_invalid(self, runner, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text('{"update_time": "25:99"}')
        result = runner.invoke(cli, ["--config", str(bad), "config", "check", "--json"])
        assert result.exit_code == 1
        assert json.loads(result.stdout)["valid"] is False

    def test_invalid_config_blocks_commands(self, runner, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("{not json")
        result = runner.invoke(cli, ["--config", str(bad), "install"])
        assert result.exit_code == 1
        assert "Invalid JSON" in result.output


# ═══════════════════════════════════════════════════════════════════
#  Package commands
# ═══════════════════════════════════════════════════════════════════


class TestInstallCommand:
    def test_installs_configured_packages(self, runner, settings_file, fake_choco, as_admin):
        result = runner.invoke(cli, ["install"])
        assert result.exit_code == 0
        assert set(fake_choco.installed) == {"git", "vlc"}
        assert "2 installed" in result.output

    def test_json_failure_exit_code(self, runner, settings_file, fake_choco, as_admin):
        fake_choco.fail_install.add("vlc")
        result = runner.invoke(cli, ["install", "--json"])
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["issues"] == 1

    def test_not_admin(self, runner, settings_file, fake_choco, not_admin):
        result = runner.invoke(cli, ["install", "git"])
        assert result.exit_code == 1
        assert "Administrator" in result.output


class TestUpdateCommand:
    def test_upgrades(self, runner, settings_file, fake_choco, as_admin):
        fake_choco.installed["git"] = "2.43.0"
        fake_choco.outdated["git"] = "2.44.0"
        result = runner.invoke(cli, ["update"])
        assert result.exit_code == 0
        assert "Upgraded: 1" in result.output
        assert fake_choco.installed["git"] == "2.44.0"

    def test_skipped_off_network(self, runner, tmp_path, fake_choco, as_admin):
        cfg = tmp_path / "gated.json"
        cfg.write_text(json.dumps({
            "wifi_ssid": "HomeNet",
            "wifi_retry_count": 1,
            "wifi_retry_delay": 0,
            "toast_enabled": False,
        }))
        with patch("chocomaint.adapters.system.probes.current_ssid", return_value="Cafe"):
            result = runner.invoke(cli, ["--config", str(cfg), "update", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["skipped"] is True
        assert fake_choco.commands("upgrade") == []

    def test_dry_run(self, runner, settings_file, fake_choco, as_admin):
        fake_choco.installed["git"] = "2.43.0"
        fake_choco.outdated["git"] = "2.44.0"
        result = runner.invoke(cli, ["update", "--dry-run"])
        assert result.exit_code == 0
        assert "git" in result.output
        assert fake_choco.commands("upgrade") == []


class TestListCommands:
    def test_list_json(self, runner, fake_choco):
        fake_choco.installed.update({"git": "2.44.0"})
        result = runner.invoke(cli, ["list", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == [{"Name": "git", "Version": "2.44.0"}]

    def test_outdated_none(self, runner, fake_choco):
        result = runner.invoke(cli, ["outdated"])
        assert result.exit_code == 0
        assert "up to date" in result.output

    def test_list_on_choco_1_is_local_only(self, runner, fake_choco):
        fake_choco.version = "1.4.0"
        result = runner.invoke(cli, ["list"])
        assert result.exit_code == 0
        assert "--local-only" in fake_choco.commands("list")[0]

    def test_list_uses_configured_timeout(self, runner, tmp_path):
        cfg = tmp_path / "slow.json"
        cfg.write_text(json.dumps({"choco_timeout": 42}))
        with patch("chocomaint.core.services.choco_ops.list_outdated", return_value=[]) as listing:
            result = runner.invoke(cli, ["--config", str(cfg), "outdated"])
        assert result.exit_code == 0
        assert listing.call_args.kwargs["timeout"] == 42

    def test_invalid_settings_block_listing(self, runner, tmp_path, fake_choco):
        bad = tmp_path / "bad.json"
        bad.write_text("{not json")
        result = runner.invoke(cli, ["--config", str(bad), "list"])
        assert result.exit_code == 1
        assert fake_choco.commands("list") == []


class TestCleanupCommand:
    def test_dry_run(self, runner, settings_file, fake_choco, as_admin):
        result = runner.invoke(cli, ["cleanup", "--dry-run", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["dry_run"] is True
        assert fake_choco.commands("cache") == []


# ═══════════════════════════════════════════════════════════════════
#  Backup / schedule / health
# ═══════════════════════════════════════════════════════════════════


class TestBackupCommands:
    def test_create_then_list(self, runner, settings_file, tmp_path, fake_choco):
        fake_choco.installed.update({"git": "2.44.0", "vlc": "3.0.20"})

        created = runner.invoke(cli, ["backup", "create"])
        assert created.exit_code == 0
        assert "Backed up 2 packages" in created.output

        listed = runner.invoke(cli, ["backup", "list", "--json"])
        assert listed.exit_code == 0
        data = json.loads(listed.stdout)
        assert data["count"] == 1
        assert data["backups"][0]["package_count"] == 2

    def test_run_action_backup_to_file(self, runner, settings_file, tmp_path, fake_choco):
        target = tmp_path / "export.json"
        result = runner.invoke(cli, ["backup", "run", "--action", "Backup", "--backup-file", str(target)])
        assert result.exit_code == 0
        assert target.is_file()

    def test_restore_dry_run(self, runner, settings_file, tmp_path, fake_choco, as_admin):
        fake_choco.installed["git"] = "2.44.0"
        runner.invoke(cli, ["backup", "create"])
        fake_choco.installed.clear()

        result = runner.invoke(cli, ["backup", "restore", "--dry-run", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["installed"] == ["git"]
        assert fake_choco.commands("install") == []

    def test_restore_without_backups(self, runner, settings_file, fake_choco, as_admin):
        result = runner.invoke(cli, ["backup", "restore"])
        assert result.exit_code == 1
        assert "No backups found" in result.output


class TestScheduleCommands:
    def test_list(self, runner, settings_file):
        from chocomaint.adapters.shell.command import CmdResult

        missing = CmdResult(argv=["schtasks"], returncode=1, stderr="ERROR: not found")
        with patch("chocomaint.core.services.schedule_ops.run_command", return_value=missing):
            result = runner.invoke(cli, ["schedule", "list", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["registered"] == 0

    def test_register_needs_admin(self, runner, settings_file, not_admin):
        result = runner.invoke(cli, ["schedule", "register"])
        assert result.exit_code == 1

    def _registered_command(self, runner, args):
        from chocomaint.adapters.shell.command import CmdResult

        ok = CmdResult(argv=["schtasks"], returncode=0, stdout="SUCCESS")
        with patch("chocomaint.core.services.schedule_ops.run_command", return_value=ok) as run:
            result = runner.invoke(cli, [*args, "schedule", "register", "update"])
        assert result.exit_code == 0
        argv = run.call_args.args[0]
        return argv[argv.index("/tr") + 1]

    def test_register_passes_detected_settings_file(self, runner, settings_file, as_admin):
        command = self._registered_command(runner, [])
        assert f'--config "{settings_file.resolve()}"' in command

    def test_register_makes_relative_config_absolute(self, runner, tmp_path, as_admin):
        (tmp_path / "cfg").mkdir()
        (tmp_path / "cfg" / "mine.json").write_text("{}")
        command = self._registered_command(runner, ["--config", "cfg/mine.json"])
        assert f'--config "{(tmp_path / "cfg" / "mine.json").resolve()}"' in command

    def test_register_without_settings_file(self, runner, as_admin):
        assert "--config" not in self._registered_command(runner, [])


class TestHealthCommand:
    def _health(self, *statuses: str) -> SystemHealth:
        health = SystemHealth()
        for i, status in enumerate(statuses):
            health.add(ComponentHealth(name=f"c{i}", status=status, message="msg"))
        return health

    def test_healthy_exit_zero(self, runner, settings_file):
        with patch("chocomaint.core.observability.health.check_system_health",
                   return_value=self._health("healthy", "healthy")):
            result = runner.invoke(cli, ["health"])
        assert result.exit_code == 0
        assert "HEALTHY" in result.output

    def test_issues_exit_one(self, runner, settings_file):
        with patch("chocomaint.core.observability.health.check_system_health",
                   return_value=self._health("healthy", "degraded")):
            result = runner.invoke(cli, ["health", "--json"])
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["status"] == "degraded"
        assert data["issues"] == 1
