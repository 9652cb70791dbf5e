"""Path Observer - Emits link-state snapshots when the host's network path changes."""

import ipaddress
import socket
import threading
from typing import Callable, Iterable, Optional, Protocol

import psutil
from loguru import logger

from pulse.core.constants import PATH_POLL_INTERVAL
from pulse.core.types import PathSnapshot
from pulse.utils.network_interface import NetworkInterfaceDetector

PathHandler = Callable[[Optional[PathSnapshot]], None]


class PathObserver(Protocol):
    """Source of path-change events consumed by the watcher."""

    def start(self, handler: PathHandler) -> None:
        """Begin delivering snapshots to handler (from any thread)."""
        ...

    def cancel(self) -> None:
        """Stop delivering snapshots. No handler call may start after this returns."""
        ...

    def current_path(self) -> Optional[PathSnapshot]:
        """Latest known snapshot, or None if unknown."""
        ...


class PsutilPathObserver:
    """
    Polls interface state via psutil and reports changes.

    A path is satisfied when some non-loopback, non-tunnel interface is up
    and holds a routable address. The active interface is the one carrying
    the default route when that can be determined, otherwise a usable
    interface (Wi-Fi preferred).
    """

    def __init__(self, poll_interval: float = PATH_POLL_INTERVAL, interface_detector=NetworkInterfaceDetector):
        self._poll_interval = poll_interval
        self._detector = interface_detector

        self._lock = threading.Lock()
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._handler: Optional[PathHandler] = None
        self._current: Optional[PathSnapshot] = None

    def start(self, handler: PathHandler) -> None:
        with self._lock:
            if self._running:
                return
            self._running = True
            self._handler = handler
            self._current = None
            self._stop_event.clear()
            self._thread = threading.Thread(target=self._poll_loop, daemon=True, name="PsutilPathObserver")
            self._thread.start()
        logger.info(f"[PathObserver] Started (poll every {self._poll_interval}s)")

    def cancel(self) -> None:
        with self._lock:
            if not self._running:
                return
            self._running = False
            self._handler = None
            self._stop_event.set()
            thread = self._thread
            self._thread = None

        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=2.0)
        logger.info("[PathObserver] Stopped")

    def current_path(self) -> Optional[PathSnapshot]:
        with self._lock:
            if self._current is not None:
                return self._current
        return self.snapshot()

    def snapshot(self) -> Optional[PathSnapshot]:
        """Read interface state now. Returns None if it cannot be read."""
        try:
            stats = psutil.net_if_stats()
            addrs = psutil.net_if_addrs()
        except (OSError, RuntimeError) as e:
            logger.warning(f"[PathObserver] Could not read interface state: {e}")
            return None

        usable = [
            name
            for name, st in stats.items()
            if st.isup
            and not self._detector.is_loopback(name)
            and not self._detector.is_tunnel(name)
            and self._has_routable_address(addrs.get(name, ()))
        ]

        if not usable:
            return PathSnapshot(satisfied=False, is_wifi=False)

        default = self._detector.get_default_interface()
        if default in usable:
            active = default
        else:
            # No default route info: prefer Wi-Fi, then name order for stability
            active = sorted(usable, key=lambda n: (not self._detector.is_wifi(n), n))[0]

        return PathSnapshot(satisfied=True, is_wifi=self._detector.is_wifi(active), interface=active)

    @staticmethod
    def _has_routable_address(addresses: Iterable) -> bool:
        for addr in addresses:
            if addr.family not in (socket.AF_INET, socket.AF_INET6):
                continue
            try:
                ip = ipaddress.ip_address(addr.address.split("%", 1)[0])
            except ValueError:
                continue
            if not (ip.is_loopback or ip.is_link_local or ip.is_unspecified):
                return True
        return False

    def _poll_loop(self):
        """Main polling loop. The first snapshot is always delivered."""
        first = True
        while not self._stop_event.is_set():
            try:
                snapshot = self.snapshot()
                with self._lock:
                    changed = first or snapshot != self._current
                    self._current = snapshot
                    handler = self._handler if self._running else None
                first = False

                if changed and handler:
                    logger.debug(f"[PathObserver] Path changed: {snapshot}")
                    handler(snapshot)
            except Exception as e:
                logger.error(f"[PathObserver] Error in poll loop: {e}")

            self._stop_event.wait(self._poll_interval)
