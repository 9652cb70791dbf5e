"""Pulse - Watches for usable internet connectivity and reports changes."""

__version__ = "0.1.0"
__author__ = "pulse contributors"
__description__ = "Distinguishes offline, Wi-Fi without internet, and online"

from pulse.core.types import InternetState, PathSnapshot
from pulse.services.connectivity_service import ConnectivityService
from pulse.services.monitoring import ConnectivityWatcher

__all__ = ["ConnectivityService", "ConnectivityWatcher", "InternetState", "PathSnapshot", "__version__"]
