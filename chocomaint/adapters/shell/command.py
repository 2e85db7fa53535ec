"""
Shell command adapter — the single place subprocesses are started.

Every external tool chocomaint drives (choco, netsh, schtasks,
powershell) goes through ``run_command`` so that logging, timeouts and
"tool not installed" handling behave the same everywhere.
"""

from __future__ import annotations

import logging
import subprocess
import time
from dataclasses import dataclass
from typing import Sequence

from chocomaint.core.errors import CommandError

logger = logging.getLogger(__name__)

# Conventional shell codes for "not found" and "timed out"
RC_NOT_FOUND = 127
RC_TIMEOUT = 124


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """stdout and stderr joined, stripped."""
        parts = [s.strip() for s in (self.stdout, self.stderr) if s and s.strip()]
        return "\n".join(parts)


def run_command(
    argv: Sequence[str],
    *,
    timeout: int = 300,
    check: bool = False,
    input_text: str | None = None,
    encoding: str = "utf-8",
) -> CmdResult:
    """Run a command and capture its output.

    Args:
        argv: Command and arguments (no shell).
        timeout: Seconds before the command is killed.
        check: Raise CommandError on a non-zero exit.
        input_text: Optional text piped to stdin.
        encoding: Codec for the child's output ("oem" for console
            tools such as netsh on Windows).

    Returns:
        CmdResult. A missing executable yields returncode 127, a
        timeout yields 124.
    """
    argv_list = [str(a) for a in argv]
    logger.debug("CMD %s (timeout=%ss)", subprocess.list2cmdline(argv_list), timeout)
    start = time.monotonic()

    try:
        p = subprocess.run(
            argv_list,
            input=input_text,
            capture_output=True,
            text=True,
            encoding=encoding,
            errors="replace",
            timeout=timeout,
        )
        result = CmdResult(
            argv=argv_list,
            returncode=p.returncode,
            stdout=p.stdout or "",
            stderr=p.stderr or "",
            duration_ms=int((time.monotonic() - start) * 1000),
        )
    except FileNotFoundError:
        logger.debug("Executable not found: %s", argv_list[0])
        result = CmdResult(
            argv=argv_list,
            returncode=RC_NOT_FOUND,
            stdout="",
            stderr=f"{argv_list[0]}: command not found",
        )
    except subprocess.TimeoutExpired:
        logger.warning("Command timed out after %ss: %s", timeout, argv_list[0])
        result = CmdResult(
            argv=argv_list,
            returncode=RC_TIMEOUT,
            stdout="",
            stderr=f"Command timed out after {timeout}s",
            duration_ms=int((time.monotonic() - start) * 1000),
        )

    if result.stdout:
        logger.debug("STDOUT %s", result.stdout.strip()[-2000:])
    if result.stderr:
        logger.debug("STDERR %s", result.stderr.strip()[-2000:])

    if check and not result.ok:
        raise CommandError(
            f"Command failed ({result.returncode}): {subprocess.list2cmdline(argv_list)}",
            returncode=result.returncode,
            stderr=result.stderr,
        )
    return result
