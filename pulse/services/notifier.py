"""
Notifier Service - Delivers user-facing desktop notifications.

Delivery is best effort: a missing backend or a failing command is logged
and swallowed here, so callers never see notification errors.
"""

import subprocess
from typing import Optional, Protocol

from loguru import logger
from plyer import notification

from pulse.core.constants import APP_NAME
from pulse.utils.platform_utils import Platform, PlatformUtils

NOTIFY_COMMAND_TIMEOUT = 5  # seconds
NOTIFICATION_DISPLAY_TIMEOUT = 5  # seconds on screen


class Notifier(Protocol):
    """Abstract notification sink."""

    def notify(self, title: str, body: str, sound: Optional[str] = None) -> None:
        ...


class NoOpNotifier:
    """A Notifier that does nothing (tests, notifications disabled)."""

    def notify(self, title: str, body: str, sound: Optional[str] = None) -> None:
        logger.debug(f"[Notifier] Suppressed notification: {title} - {body}")


def escape_applescript(text: str) -> str:
    """Escape text for use inside an AppleScript string literal."""
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


class DesktopNotifier:
    """
    Sends desktop notifications.

    macOS goes through osascript so the per-state sound name is played;
    everywhere else plyer picks the platform backend and sounds are ignored.
    """

    def __init__(self, platform: Optional[Platform] = None):
        self._platform = platform or PlatformUtils.get_platform()

    def notify(self, title: str, body: str, sound: Optional[str] = None) -> None:
        if self._platform == Platform.MACOS:
            self._notify_macos(title, body, sound)
        else:
            self._notify_plyer(title, body)

    def _notify_plyer(self, title: str, body: str):
        try:
            notification.notify(
                title=title,
                message=body,
                app_name=APP_NAME,
                timeout=NOTIFICATION_DISPLAY_TIMEOUT,
            )
        except Exception as e:
            # plyer raises NotImplementedError without a backend, backends raise their own errors
            logger.warning(f"[Notifier] Notification failed: {e}")

    def _notify_macos(self, title: str, body: str, sound: Optional[str]):
        try:
            result = subprocess.run(
                self.build_macos_command(title, body, sound),
                capture_output=True,
                text=True,
                timeout=NOTIFY_COMMAND_TIMEOUT,
                check=False,
            )
        except subprocess.TimeoutExpired:
            logger.warning("[Notifier] Notification command timed out")
            return
        except (OSError, subprocess.SubprocessError) as e:
            logger.error(f"[Notifier] Notification failed: {e}")
            return

        if result.returncode != 0:
            logger.warning(f"[Notifier] osascript exited {result.returncode}: {result.stderr.strip()}")

    @staticmethod
    def build_macos_command(title: str, body: str, sound: Optional[str] = None) -> list:
        """Build the osascript invocation, with an optional sound name."""
        script = f'display notification "{escape_applescript(body)}" with title "{escape_applescript(title)}"'
        if sound:
            script += f' sound name "{escape_applescript(sound)}"'
        return ["/usr/bin/osascript", "-e", script]
