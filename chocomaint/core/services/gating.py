"""
Gating conditions — network and power checks before an update.

The WiFi check is a bounded retry loop: up to ``attempts`` probes,
sleeping ``delay`` seconds between them. Probes and sleep are
injectable so callers (and tests) control the clock.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from chocomaint.adapters.system import probes
from chocomaint.core.models.settings import MaintenanceConfig

logger = logging.getLogger(__name__)


def wait_for_ssid(
    expected: str,
    attempts: int,
    delay: float,
    *,
    probe: Callable[[], str | None] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Return True once the connected SSID equals ``expected``.

    An empty ``expected`` disables the gate (True without probing).
    """
    if not expected:
        logger.debug("No WiFi SSID configured — network gate disabled")
        return True

    probe = probe or probes.current_ssid
    attempts = max(1, attempts)

    for attempt in range(1, attempts + 1):
        ssid = probe()
        if ssid == expected:
            logger.info("Connected to trusted network %r", expected)
            return True

        logger.info(
            "WiFi check %d/%d: connected to %r, expected %r",
            attempt, attempts, ssid, expected,
        )
        if attempt < attempts:
            sleep(delay)

    logger.warning("Not connected to %r after %d attempts", expected, attempts)
    return False


def check_power(
    config: MaintenanceConfig,
    *,
    probe: Callable[[], dict] | None = None,
) -> bool:
    """True when on AC power, or when the power gate is disabled."""
    if not config.require_ac_power:
        return True

    status = (probe or probes.power_status)()
    if status.get("on_ac"):
        logger.info("On AC power")
        return True

    logger.warning("Running on battery (%s%%) — update deferred", status.get("percent"))
    return False


def evaluate_gates(
    config: MaintenanceConfig,
    *,
    ssid_probe: Callable[[], str | None] | None = None,
    power_probe: Callable[[], dict] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> dict:
    """Check all gating conditions.

    Returns:
        {"wifi_ok": bool, "power_ok": bool | None, "proceed": bool, "reason": str}
        ``power_ok`` is None when the network gate already failed.
    """
    wifi_ok = wait_for_ssid(
        config.wifi_ssid,
        config.wifi_retry_count,
        config.wifi_retry_delay,
        probe=ssid_probe,
        sleep=sleep,
    )
    # Power is only worth asking about once the network gate passed
    power_ok = check_power(config, probe=power_probe) if wifi_ok else None

    if not wifi_ok:
        reason = f"Not connected to trusted network '{config.wifi_ssid}'"
    elif not power_ok:
        reason = "Not on AC power"
    else:
        reason = ""

    return {
        "wifi_ok": wifi_ok,
        "power_ok": power_ok,
        "proceed": wifi_ok and power_ok is True,
        "reason": reason,
    }
