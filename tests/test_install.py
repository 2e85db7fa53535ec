"""
Tests for software installation — idempotence and failure aggregation.
"""

from chocomaint.core.services.install_ops import install_software


class TestInstallSoftware:
    def test_installs_missing_packages(self, config, fake_choco, as_admin):
        result = install_software(config, ["git", "vlc"])
        assert result["ok"] is True
        assert result["installed"] == ["git", "vlc"]
        assert set(fake_choco.installed) == {"git", "vlc"}

    def test_running_twice_does_not_reinstall(self, config, fake_choco, as_admin):
        install_software(config, ["git", "vlc"])
        installs_before = len(fake_choco.commands("install"))

        second = install_software(config, ["git", "vlc"])
        assert second["installed"] == []
        assert second["skipped"] == ["git", "vlc"]
        assert len(fake_choco.commands("install")) == installs_before

    def test_skip_is_case_insensitive(self, config, fake_choco, as_admin):
        fake_choco.installed["Git"] = "2.44.0"
        result = install_software(config, ["git"])
        assert result["skipped"] == ["git"]
        assert fake_choco.commands("install") == []

    def test_uses_configured_list(self, config, fake_choco, as_admin):
        cfg = config.model_copy(update={"packages": ["7zip"]})
        assert install_software(cfg)["installed"] == ["7zip"]

    def test_failure_does_not_stop_loop(self, config, fake_choco, as_admin):
        fake_choco.fail_install.add("broken")
        result = install_software(config, ["broken", "git"])
        assert result["ok"] is False
        assert result["issues"] == 1
        assert result["installed"] == ["git"]
        assert result["failed"][0]["name"] == "broken"

    def test_dry_run_installs_nothing(self, config, fake_choco, as_admin):
        result = install_software(config, ["git"], dry_run=True)
        assert result["installed"] == ["git"]
        assert fake_choco.commands("install") == []

    def test_requires_admin(self, config, fake_choco, not_admin):
        result = install_software(config, ["git"])
        assert result["fatal"] is True
        assert "Administrator" in result["error"]
        assert fake_choco.commands("install") == []

    def test_requires_choco(self, config, fake_choco, as_admin):
        fake_choco.available = False
        result = install_software(config, ["git"])
        assert result["fatal"] is True
        assert "not installed" in result["error"]

    def test_nothing_requested(self, config, fake_choco, as_admin):
        result = install_software(config, [])
        assert result["fatal"] is True

    def test_choco_1_lists_local_packages_only(self, config, fake_choco, as_admin):
        fake_choco.version = "1.4.0"
        install_software(config, ["git"])
        assert "--local-only" in fake_choco.commands("list")[0]

    def test_choco_2_list_is_already_local(self, config, fake_choco, as_admin):
        install_software(config, ["git"])
        assert "--local-only" not in fake_choco.commands("list")[0]
