"""Network interface utilities - Cross-platform support."""
import os
import subprocess
from typing import Optional

from loguru import logger

from pulse.utils.platform_utils import Platform, PlatformUtils

# Constants
ROUTE_COMMAND_TIMEOUT = 2  # seconds
TUN_INTERFACE_KEYWORDS = {"tun", "tap", "utun", "wg", "ipsec"}
LOOPBACK_PREFIXES = ("lo",)
WIFI_NAME_PREFIXES = ("wl", "wlan", "wi-fi", "wifi", "airport", "wireless")
SYS_CLASS_NET = "/sys/class/net"


class NetworkInterfaceDetector:
    """Detects the default-route interface and classifies interfaces - cross-platform."""

    @staticmethod
    def get_default_interface() -> Optional[str]:
        """
        Get the name of the interface carrying the default route.

        Returns:
            Interface name (e.g. "wlp3s0", "en0") or None when it cannot be determined
        """
        platform = PlatformUtils.get_platform()

        if platform == Platform.LINUX:
            return NetworkInterfaceDetector._get_default_interface_linux()
        elif platform == Platform.MACOS:
            return NetworkInterfaceDetector._get_default_interface_macos()
        # Windows: caller falls back to interface stats
        return None

    @staticmethod
    def _get_default_interface_linux() -> Optional[str]:
        """Get default interface on Linux using 'ip route show default'."""
        output = NetworkInterfaceDetector._run(["ip", "route", "show", "default"])
        if not output:
            return None

        # Parse output like: "default via 192.168.1.1 dev wlp3s0 proto dhcp metric 600"
        for line in output.strip().split("\n"):
            parts = line.split()
            for i, part in enumerate(parts):
                if part == "dev" and i + 1 < len(parts):
                    name = parts[i + 1]
                    if not NetworkInterfaceDetector.is_tunnel(name):
                        return name
        return None

    @staticmethod
    def _get_default_interface_macos() -> Optional[str]:
        """Get default interface on macOS using 'route -n get default'."""
        output = NetworkInterfaceDetector._run(["route", "-n", "get", "default"])
        if not output:
            return None

        for line in output.split("\n"):
            line = line.strip()
            if line.startswith("interface:"):
                name = line.split(":", 1)[1].strip()
                if name and not NetworkInterfaceDetector.is_tunnel(name):
                    return name
        return None

    @staticmethod
    def _run(cmd) -> Optional[str]:
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=ROUTE_COMMAND_TIMEOUT,
                check=False,
            )
        except subprocess.TimeoutExpired:
            logger.debug(f"Timeout while running {cmd[0]}")
            return None
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug(f"Error running {cmd[0]}: {e}")
            return None

        if result.returncode != 0:
            return None
        return result.stdout

    @staticmethod
    def is_loopback(name: str) -> bool:
        lowered = name.lower()
        return lowered.startswith(LOOPBACK_PREFIXES) or "loopback" in lowered

    @staticmethod
    def is_tunnel(name: str) -> bool:
        lowered = name.lower()
        return any(lowered.startswith(keyword) for keyword in TUN_INTERFACE_KEYWORDS)

    @staticmethod
    def is_wifi(name: str) -> bool:
        """
        Check whether an interface is a Wi-Fi adapter.

        Linux exposes a `wireless` directory for wireless NICs; elsewhere we rely
        on naming conventions (macOS puts the built-in Wi-Fi on en0).
        """
        if not name:
            return False

        if PlatformUtils.get_platform() == Platform.LINUX and os.path.isdir(os.path.join(SYS_CLASS_NET, name)):
            return os.path.isdir(os.path.join(SYS_CLASS_NET, name, "wireless"))

        lowered = name.lower()
        if PlatformUtils.get_platform() == Platform.MACOS and lowered == "en0":
            return True
        return lowered.startswith(WIFI_NAME_PREFIXES) or "wi-fi" in lowered or "wireless" in lowered
