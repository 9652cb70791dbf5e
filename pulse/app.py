"""Application wiring: path observer -> watcher -> notifier."""

from typing import Optional

from loguru import logger

from pulse.core.config import Config
from pulse.core.constants import HTTP_PROBE_TIMEOUT, NOTIFICATION_TITLE, PATH_POLL_INTERVAL, TCP_PROBE_TIMEOUT
from pulse.core.probe_catalog import ProbeCatalog
from pulse.core.types import InternetState
from pulse.services.connectivity_service import ConnectivityService
from pulse.services.monitoring import ConnectivityWatcher, PathObserver, PsutilPathObserver
from pulse.services.notifier import DesktopNotifier, NoOpNotifier, Notifier

STATE_MESSAGES = {
    InternetState.ONLINE: "✅ Internet is available",
    InternetState.WIFI_NO_INTERNET: "⚠️ WiFi connected, but no internet",
    InternetState.OFFLINE: "❌ Offline",
}


def build_service(config: Config) -> ConnectivityService:
    """Create the evaluator with probe timeouts taken from configuration.

    Raises:
        ValueError: If a configured timeout is invalid
    """
    catalog = ProbeCatalog.default().with_timeouts(
        http_timeout=config.get_number("probes.http_timeout", HTTP_PROBE_TIMEOUT),
        tcp_timeout=config.get_number("probes.tcp_timeout", TCP_PROBE_TIMEOUT),
    )
    return ConnectivityService(catalog=catalog)


def build_notifier(config: Config) -> Notifier:
    if not config.get("notifications.enabled", True):
        return NoOpNotifier()
    return DesktopNotifier()


class PulseApp:
    """Watches connectivity and turns every state transition into a notification."""

    def __init__(
        self,
        config: Config,
        notifier: Optional[Notifier] = None,
        observer: Optional[PathObserver] = None,
        service: Optional[ConnectivityService] = None,
    ):
        self._config = config
        self._notifier = notifier or build_notifier(config)
        self._observer = observer or PsutilPathObserver(
            poll_interval=config.get_number("path_observer.poll_interval", PATH_POLL_INTERVAL)
        )
        self._watcher = ConnectivityWatcher(
            service=service or build_service(config),
            observer=self._observer,
            on_change=self.on_state_change,
            settings=config.watcher_settings(),
        )

    @property
    def watcher(self) -> ConnectivityWatcher:
        return self._watcher

    def start(self):
        if self._watcher.start():
            # Report the initial state without waiting for the first heartbeat
            self._watcher.evaluate_now()

    def stop(self):
        self._watcher.stop()

    def on_state_change(self, state: InternetState):
        body = STATE_MESSAGES[state]
        sound = self._config.get(f"notifications.sounds.{state.value}")
        logger.info(f"[Pulse] {body}")
        self._notifier.notify(NOTIFICATION_TITLE, body, sound)
