"""
System probes — admin rights, WiFi SSID, power state, disk usage.

Read-only queries against the OS. Each probe degrades to a safe
answer (not admin, no SSID, unknown usage) instead of raising, so the
workflows can decide what a missing answer means.
"""

from __future__ import annotations

import ctypes
import logging
import os
import platform
import re
import sys
from pathlib import Path

import psutil

from chocomaint.adapters.shell.command import run_command

logger = logging.getLogger(__name__)

# "SSID : name" but not "BSSID : aa:bb:..."
_SSID_RE = re.compile(r"^\s*SSID\s*:\s*(.+?)\s*$", re.IGNORECASE | re.MULTILINE)
_STATE_RE = re.compile(r"^\s*State\s*:\s*(.+?)\s*$", re.IGNORECASE | re.MULTILINE)


def is_windows() -> bool:
    return sys.platform == "win32"


def is_admin() -> bool:
    """True when the process runs elevated (Administrator / root)."""
    if is_windows():
        try:
            return bool(ctypes.windll.shell32.IsUserAnAdmin())
        except (AttributeError, OSError):
            return False
    geteuid = getattr(os, "geteuid", None)
    return bool(geteuid and geteuid() == 0)


def computer_name() -> str:
    return os.environ.get("COMPUTERNAME") or platform.node() or "unknown"


def parse_netsh_interfaces(output: str) -> str | None:
    """Extract the connected SSID from ``netsh wlan show interfaces``."""
    state = _STATE_RE.search(output)
    if state and state.group(1).lower() != "connected":
        return None
    match = _SSID_RE.search(output)
    if not match:
        return None
    ssid = match.group(1).strip()
    return ssid or None


def current_ssid() -> str | None:
    """SSID of the connected WiFi network, or None."""
    # netsh writes in the console (OEM) code page, not UTF-8
    encoding = "oem" if is_windows() else "utf-8"
    result = run_command(["netsh", "wlan", "show", "interfaces"], timeout=15, encoding=encoding)
    if not result.ok:
        logger.debug("netsh unavailable (rc=%s)", result.returncode)
        return None
    return parse_netsh_interfaces(result.stdout)


def power_status() -> dict:
    """Battery / AC state.

    Machines without a battery report ``on_ac=True``.

    Returns:
        {"on_ac": bool, "has_battery": bool, "percent": float | None}
    """
    try:
        battery = psutil.sensors_battery()
    except (NotImplementedError, RuntimeError, OSError) as e:
        logger.debug("Battery query failed: %s", e)
        battery = None

    if battery is None:
        return {"on_ac": True, "has_battery": False, "percent": None}

    plugged = battery.power_plugged
    return {
        # None means the OS couldn't tell; treat it as battery power
        "on_ac": bool(plugged),
        "has_battery": True,
        "percent": battery.percent,
    }


def system_drive() -> Path:
    if is_windows():
        return Path(os.environ.get("SystemDrive", "C:") + "\\")
    return Path("/")


def disk_usage(path: Path | None = None) -> dict:
    """Usage of the volume holding ``path`` (default: system drive).

    Returns:
        {"path", "total", "used", "free", "percent_free"} or {"path", "error"}
    """
    target = path or system_drive()
    try:
        usage = psutil.disk_usage(str(target))
    except OSError as e:
        return {"path": str(target), "error": str(e)}

    percent_free = (usage.free / usage.total * 100) if usage.total else 0.0
    return {
        "path": str(target),
        "total": usage.total,
        "used": usage.used,
        "free": usage.free,
        "percent_free": round(percent_free, 1),
    }
