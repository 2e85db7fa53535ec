"""
Chocolatey operations — channel-independent wrappers over ``choco``.

Provides availability detection, installed/outdated listing via
``--limit-output`` and non-interactive install/upgrade/cache commands.
All invocations go through ``_run_choco``.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
from pathlib import Path

from chocomaint.adapters.shell.command import CmdResult, run_command
from chocomaint.core.errors import CommandError
from chocomaint.core.models.package import OutdatedPackage, PackageRecord

logger = logging.getLogger(__name__)

# 1641 / 3010: success, reboot initiated / required
SUCCESS_CODES = frozenset({0, 1641, 3010})
REBOOT_CODES = frozenset({1641, 3010})

_DEFAULT_INSTALL_DIR = r"C:\ProgramData\chocolatey"

_INSTALL_SCRIPT = (
    "Set-ExecutionPolicy Bypass -Scope Process -Force; "
    "[System.Net.ServicePointManager]::SecurityProtocol = "
    "[System.Net.ServicePointManager]::SecurityProtocol -bor 3072; "
    "iex ((New-Object System.Net.WebClient).DownloadString("
    "'https://community.chocolatey.org/install.ps1'))"
)

_SUMMARY_RE = re.compile(
    r"Chocolatey (?:installed|upgraded) (\d+)/(\d+) packages?",
    re.IGNORECASE,
)
_FAILURE_LINE_RE = re.compile(r"^\s*-\s+(\S+)")
_VERSION_RE = re.compile(r"(\d+)\.\d+")


# ═══════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════


def chocolatey_install_dir() -> Path:
    """Chocolatey's install root (``$env:ChocolateyInstall``)."""
    return Path(os.environ.get("ChocolateyInstall") or _DEFAULT_INSTALL_DIR)


def _choco_exe() -> str:
    found = shutil.which("choco")
    if found:
        return found
    candidate = chocolatey_install_dir() / "bin" / "choco.exe"
    return str(candidate) if candidate.is_file() else "choco"


def _run_choco(*args: str, timeout: int = 600) -> CmdResult:
    """Run a choco command."""
    return run_command([_choco_exe(), *args], timeout=timeout)


def _succeeded(result: CmdResult) -> bool:
    return result.returncode in SUCCESS_CODES


def parse_summary(output: str) -> dict:
    """Parse the ``Chocolatey upgraded X/Y packages`` footer and failures.

    Returns:
        {"succeeded": int | None, "attempted": int | None, "failed": [names]}
    """
    succeeded = attempted = None
    match = _SUMMARY_RE.search(output)
    if match:
        succeeded, attempted = int(match.group(1)), int(match.group(2))

    failed: list[str] = []
    in_failures = False
    for line in output.splitlines():
        stripped = line.strip()
        if stripped.rstrip(":").lower() == "failures":
            in_failures = True
            continue
        if not in_failures:
            continue
        m = _FAILURE_LINE_RE.match(line)
        if m:
            failed.append(m.group(1))
        elif stripped and not line.startswith((" ", "\t")):
            # next section header
            in_failures = False

    return {"succeeded": succeeded, "attempted": attempted, "failed": failed}


# ═══════════════════════════════════════════════════════════════════
#  Detect
# ═══════════════════════════════════════════════════════════════════


def choco_available() -> dict:
    """Check whether the choco CLI is installed.

    Returns:
        {"available": bool, "version": str | None, "path": str | None}
    """
    result = _run_choco("--version", timeout=30)
    if not result.ok:
        return {"available": False, "version": None, "path": None}

    lines = [ln.strip() for ln in result.stdout.splitlines() if ln.strip()]
    version = lines[-1] if lines else "unknown"
    return {"available": True, "version": version, "path": _choco_exe()}


# ═══════════════════════════════════════════════════════════════════
#  Observe
# ═══════════════════════════════════════════════════════════════════


def needs_local_only(choco_version: str | None) -> bool:
    """True for Chocolatey 1.x, where ``choco list`` queries the feed by default."""
    match = _VERSION_RE.search(choco_version or "")
    return bool(match) and int(match.group(1)) < 2


def list_installed(*, timeout: int = 120, choco_version: str | None = None) -> list[PackageRecord]:
    """Locally installed packages.

    Args:
        choco_version: Output of ``choco --version``; 1.x needs
            ``--local-only``.

    Raises:
        CommandError: If ``choco list`` fails.
    """
    args = ["list", "--limit-output"]
    if needs_local_only(choco_version):
        args.append("--local-only")
    result = _run_choco(*args, timeout=timeout)
    if not result.ok:
        raise CommandError(
            f"choco list failed (exit {result.returncode})",
            returncode=result.returncode,
            stderr=result.stderr,
        )

    packages = []
    for line in result.stdout.splitlines():
        record = PackageRecord.from_limit_output(line)
        if record is not None:
            packages.append(record)
    logger.debug("Found %d installed packages", len(packages))
    return packages


def list_outdated(*, timeout: int = 600) -> list[OutdatedPackage]:
    """Packages with a newer version available.

    Raises:
        CommandError: If ``choco outdated`` fails.
    """
    # choco outdated exits 2 when outdated packages exist (enhanced exit codes)
    result = _run_choco("outdated", "--limit-output", timeout=timeout)
    if result.returncode not in (0, 2):
        raise CommandError(
            f"choco outdated failed (exit {result.returncode})",
            returncode=result.returncode,
            stderr=result.stderr,
        )

    outdated = []
    for line in result.stdout.splitlines():
        pkg = OutdatedPackage.from_limit_output(line)
        if pkg is not None:
            outdated.append(pkg)
    return outdated


# ═══════════════════════════════════════════════════════════════════
#  Act
# ═══════════════════════════════════════════════════════════════════


def install_package(name: str, version: str | None = None, *, timeout: int = 3600) -> dict:
    """Install one package non-interactively.

    Returns:
        {"ok": bool, "name", "returncode", "reboot_required", "output"}
    """
    args = ["install", name, "-y", "--no-progress"]
    if version:
        args += ["--version", version]

    logger.info("Installing %s%s", name, f" {version}" if version else "")
    result = _run_choco(*args, timeout=timeout)
    ok = _succeeded(result)
    if not ok:
        logger.error("Install of %s failed (exit %s)", name, result.returncode)

    return {
        "ok": ok,
        "name": name,
        "version": version,
        "returncode": result.returncode,
        "reboot_required": result.returncode in REBOOT_CODES,
        "output": result.output[-2000:],
    }


def upgrade_packages(names: list[str] | None = None, *, timeout: int = 3600) -> dict:
    """Upgrade the given packages, or all of them.

    Returns:
        {"ok", "upgraded", "attempted", "failed", "reboot_required",
         "returncode", "output"}
    """
    targets = names or ["all"]
    logger.info("Upgrading %s", ", ".join(targets))
    result = _run_choco("upgrade", *targets, "-y", "--no-progress", timeout=timeout)
    summary = parse_summary(result.stdout)
    ok = _succeeded(result) and not summary["failed"]

    if not ok:
        logger.error(
            "Upgrade finished with errors (exit %s, failed: %s)",
            result.returncode,
            ", ".join(summary["failed"]) or "?",
        )

    return {
        "ok": ok,
        "upgraded": summary["succeeded"] or 0,
        "attempted": summary["attempted"] or 0,
        "failed": summary["failed"],
        "reboot_required": result.returncode in REBOOT_CODES,
        "returncode": result.returncode,
        "output": result.output[-2000:],
    }


def clear_cache(*, timeout: int = 600) -> dict:
    """Remove Chocolatey's download cache (``choco cache remove``)."""
    result = _run_choco("cache", "remove", "-y", timeout=timeout)
    if not result.ok:
        return {"ok": False, "error": result.output or f"choco cache remove exited {result.returncode}"}
    return {"ok": True, "output": result.output}


def install_chocolatey(*, timeout: int = 900) -> dict:
    """Bootstrap Chocolatey with the official PowerShell installer."""
    logger.info("Installing Chocolatey")
    result = run_command(
        ["powershell", "-NoProfile", "-ExecutionPolicy", "Bypass", "-Command", _INSTALL_SCRIPT],
        timeout=timeout,
    )
    if not result.ok:
        return {"ok": False, "error": result.output or f"installer exited {result.returncode}"}

    status = choco_available()
    if not status["available"]:
        return {"ok": False, "error": "Installer finished but choco is still not on PATH"}
    return {"ok": True, "version": status["version"]}
