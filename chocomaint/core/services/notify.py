"""
Notifications — Windows toast and SMTP email.

A notification that can't be delivered is logged and reported as
False; it never fails the workflow that asked for it.
"""

from __future__ import annotations

import logging
import smtplib
import ssl
from email.message import EmailMessage

from chocomaint.adapters.shell.command import run_command
from chocomaint.adapters.system import probes
from chocomaint.core.models.settings import MaintenanceConfig

logger = logging.getLogger(__name__)

_APP_ID = "chocomaint"

_TOAST_TEMPLATE = """
[Windows.UI.Notifications.ToastNotificationManager, Windows.UI.Notifications, ContentType = WindowsRuntime] | Out-Null
[Windows.Data.Xml.Dom.XmlDocument, Windows.Data.Xml.Dom.XmlDocument, ContentType = WindowsRuntime] | Out-Null
$xml = New-Object Windows.Data.Xml.Dom.XmlDocument
$xml.LoadXml('<toast><visual><binding template="ToastGeneric"><text>{title}</text><text>{message}</text></binding></visual></toast>')
$toast = New-Object Windows.UI.Notifications.ToastNotification $xml
[Windows.UI.Notifications.ToastNotificationManager]::CreateToastNotifier('{app_id}').Show($toast)
"""


def _xml_escape(text: str) -> str:
    escaped = (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )
    # the XML sits inside a single-quoted PowerShell string
    return escaped.replace("'", "''")


def send_toast(title: str, message: str) -> bool:
    """Show a Windows toast notification."""
    if not probes.is_windows():
        logger.debug("Toast notifications are only available on Windows")
        return False

    script = _TOAST_TEMPLATE.format(
        title=_xml_escape(title),
        message=_xml_escape(message),
        app_id=_APP_ID,
    )
    result = run_command(["powershell", "-NoProfile", "-NonInteractive", "-Command", script], timeout=30)
    if not result.ok:
        logger.warning("Toast notification failed: %s", result.output or result.returncode)
        return False
    return True


def send_email(config: MaintenanceConfig, subject: str, body: str) -> bool:
    """Send a plain-text email through the configured SMTP server."""
    if not (config.smtp_server and config.email_to):
        logger.warning("Email notification skipped: smtp_server/email_to not configured")
        return False

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = config.email_from or config.smtp_username or config.email_to
    msg["To"] = config.email_to
    msg.set_content(body)

    try:
        with smtplib.SMTP(config.smtp_server, config.smtp_port, timeout=30) as smtp:
            if config.smtp_use_tls:
                smtp.starttls(context=ssl.create_default_context())
            if config.smtp_username:
                smtp.login(config.smtp_username, config.smtp_password)
            smtp.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.warning("Email notification to %s failed: %s", config.email_to, e)
        return False

    logger.info("Email notification sent to %s", config.email_to)
    return True


def notify(config: MaintenanceConfig, title: str, message: str, *, success: bool) -> dict:
    """Dispatch a notification according to the toggles in ``config``.

    Returns:
        {"sent": bool, "toast": bool | None, "email": bool | None}
        (None = channel not attempted)
    """
    wanted = config.notify_on_success if success else config.notify_on_failure
    result: dict = {"sent": False, "toast": None, "email": None}
    if not wanted:
        logger.debug("Notification suppressed (success=%s)", success)
        return result

    if config.toast_enabled:
        result["toast"] = send_toast(title, message)
    if config.email_enabled:
        subject = f"[{probes.computer_name()}] {title}"
        result["email"] = send_email(config, subject, message)

    result["sent"] = bool(result["toast"] or result["email"])
    return result
