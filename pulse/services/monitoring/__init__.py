"""
Monitoring subpackage - Deciding when to check connectivity.

- ConnectivityWatcher: Debounce, in-flight guard, jittered heartbeat, change-only emission
- PathObserver / PsutilPathObserver: Link-state change source
- Watcher messages: Typed inputs consumed by the watcher loop
"""

from pulse.services.monitoring.connectivity_watcher import ConnectivityWatcher, jittered_interval
from pulse.services.monitoring.path_observer import PathObserver, PsutilPathObserver
from pulse.services.monitoring.signals import TriggerSource

__all__ = [
    "ConnectivityWatcher",
    "PathObserver",
    "PsutilPathObserver",
    "TriggerSource",
    "jittered_interval",
]
