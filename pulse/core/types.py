"""Core types and enums."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class InternetState(Enum):
    """Usable-internet states reported to observers."""

    OFFLINE = "offline"  # No route / transport
    WIFI_NO_INTERNET = "wifi_no_internet"  # Link up but internet unusable (captive/DNS/HTTP blocked)
    ONLINE = "online"  # Internet OK

    def __str__(self):
        return self.value


class ProbeOutcome(Enum):
    """Result of a single HTTP probe."""

    MATCHED = "matched"
    RESPONDED_UNMATCHED = "responded_unmatched"  # Something answered, but not what we expected
    NO_RESPONSE = "no_response"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class PathSnapshot:
    """Link state as reported by the OS path observer."""

    satisfied: bool
    is_wifi: bool
    interface: Optional[str] = None

    @property
    def is_satisfied_wifi(self) -> bool:
        return self.satisfied and self.is_wifi


def is_satisfied_wifi(path: Optional[PathSnapshot]) -> bool:
    """Unknown link state counts as neither satisfied nor Wi-Fi."""
    return path is not None and path.is_satisfied_wifi
