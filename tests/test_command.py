"""
Tests for the shell command adapter (mocked subprocess).
"""

import subprocess
import sys
from unittest.mock import patch

import pytest

from chocomaint.adapters.shell.command import RC_NOT_FOUND, RC_TIMEOUT, CmdResult, run_command
from chocomaint.core.errors import CommandError


def _completed(stdout: str = "", stderr: str = "", rc: int = 0):
    return subprocess.CompletedProcess(args=["x"], returncode=rc, stdout=stdout, stderr=stderr)


class TestRunCommand:
    def test_success(self):
        with patch("chocomaint.adapters.shell.command.subprocess.run",
                   return_value=_completed(stdout="hello\n")) as mock_run:
            result = run_command(["choco", "--version"], timeout=5)
        assert result.ok
        assert result.stdout == "hello\n"
        assert mock_run.call_args[0][0] == ["choco", "--version"]
        assert mock_run.call_args[1]["timeout"] == 5

    def test_nonzero_exit(self):
        with patch("chocomaint.adapters.shell.command.subprocess.run",
                   return_value=_completed(stderr="boom", rc=3)):
            result = run_command(["choco", "bad"])
        assert not result.ok
        assert result.returncode == 3
        assert result.output == "boom"

    def test_missing_executable(self):
        with patch("chocomaint.adapters.shell.command.subprocess.run",
                   side_effect=FileNotFoundError):
            result = run_command(["nope"])
        assert result.returncode == RC_NOT_FOUND
        assert "not found" in result.stderr

    def test_timeout(self):
        with patch("chocomaint.adapters.shell.command.subprocess.run",
                   side_effect=subprocess.TimeoutExpired(cmd="x", timeout=1)):
            result = run_command(["slow"], timeout=1)
        assert result.returncode == RC_TIMEOUT

    def test_check_raises(self):
        with patch("chocomaint.adapters.shell.command.subprocess.run",
                   return_value=_completed(stderr="denied", rc=5)):
            with pytest.raises(CommandError) as exc:
                run_command(["schtasks"], check=True)
        assert exc.value.returncode == 5
        assert exc.value.stderr == "denied"

    def test_default_encoding_is_utf8(self):
        with patch("chocomaint.adapters.shell.command.subprocess.run",
                   return_value=_completed()) as mock_run:
            run_command(["choco", "list"])
        assert mock_run.call_args[1]["encoding"] == "utf-8"

    def test_output_decoded_with_given_code_page(self):
        script = "import sys; sys.stdout.buffer.write('SSID : Caf\\u00e9Net'.encode('cp850'))"
        result = run_command([sys.executable, "-c", script], encoding="cp850")
        assert result.stdout == "SSID : CaféNet"


class TestCmdResult:
    def test_output_joins_streams(self):
        r = CmdResult(argv=["x"], returncode=0, stdout="out\n", stderr=" err ")
        assert r.output == "out\nerr"

    def test_output_empty(self):
        assert CmdResult(argv=["x"], returncode=0, stdout="", stderr="").output == ""

    def test_streams_default_to_empty(self):
        r = CmdResult(argv=["schtasks"], returncode=1)
        assert (r.stdout, r.stderr, r.output) == ("", "", "")
