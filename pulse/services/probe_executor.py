"""
Probe Executor - Runs one HTTP or TCP reachability probe in bounded time.

Transport failures (DNS, refused, TLS, timeout) never escape: HTTP probes
degrade to NO_RESPONSE and TCP probes to False.
"""

import socket
import threading
from typing import Callable

import requests
from loguru import logger

from pulse.core.constants import APP_VERSION, MAX_BODY_BYTES
from pulse.core.probe_catalog import HTTPProbe, TCPTarget
from pulse.core.types import ProbeOutcome

PROBE_HEADERS = {
    "User-Agent": f"Pulse/{APP_VERSION}",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}
READ_CHUNK_SIZE = 4096


class _ConnectRace:
    """First of (connect worker, deadline) to finish decides the result."""

    def __init__(self):
        self._lock = threading.Lock()
        self._finished = False
        self.connected = False
        self.done = threading.Event()

    def finish(self, connected: bool) -> bool:
        """Record a result. Returns False if the other side already won."""
        with self._lock:
            if self._finished:
                return False
            self._finished = True
            self.connected = connected
        self.done.set()
        return True


class ProbeExecutor:
    """Executes single probes. Stateless apart from the injected factories."""

    def __init__(
        self,
        session_factory: Callable[[], requests.Session] = requests.Session,
        max_body_bytes: int = MAX_BODY_BYTES,
    ):
        self._session_factory = session_factory
        self._max_body_bytes = max_body_bytes

    def execute(self, probe: HTTPProbe) -> ProbeOutcome:
        """
        Issue the probe's request and compare the response with its expectation.

        Redirects are not followed: a portal's 30x is itself the
        "answered, but not what we asked for" signal.
        """
        try:
            # Fresh session per probe so no pooled connection outlives a network change
            with self._session_factory() as session:
                with session.request(
                    probe.method,
                    probe.url,
                    headers=PROBE_HEADERS,
                    timeout=probe.timeout,
                    # requests follows redirects by default, which would hide a portal 30x
                    allow_redirects=False,
                    stream=True,
                ) as response:
                    status_code = response.status_code
                    body = self._read_body(response) if probe.method == "GET" else ""
        except (requests.RequestException, OSError) as e:
            logger.debug(f"[ProbeExecutor] {probe.method} {probe.url} -> no response ({type(e).__name__})")
            return ProbeOutcome.NO_RESPONSE

        if probe.expectation.matches(status_code, body):
            logger.debug(f"[ProbeExecutor] {probe.method} {probe.url} -> {status_code} matched")
            return ProbeOutcome.MATCHED

        logger.debug(f"[ProbeExecutor] {probe.method} {probe.url} -> {status_code} unexpected response")
        return ProbeOutcome.RESPONDED_UNMATCHED

    def _read_body(self, response: requests.Response) -> str:
        chunks = []
        received = 0
        for chunk in response.iter_content(chunk_size=READ_CHUNK_SIZE):
            if not chunk:
                continue
            chunks.append(chunk)
            received += len(chunk)
            if received >= self._max_body_bytes:
                break
        return b"".join(chunks)[: self._max_body_bytes].decode("utf-8", errors="replace")

    def connect(self, target: TCPTarget, timeout: float) -> bool:
        """
        Attempt a raw TCP connection to target within `timeout` seconds.

        Name resolution inside create_connection is not covered by the socket
        timeout, so the attempt runs on a worker thread raced against the
        deadline. A connection that completes after the deadline is closed
        and ignored.
        """
        race = _ConnectRace()

        def _attempt():
            try:
                sock = socket.create_connection((target.host, target.port), timeout=timeout)
            except OSError as e:
                logger.debug(f"[ProbeExecutor] TCP {target} failed: {e}")
                race.finish(False)
                return
            try:
                if not race.finish(True):
                    logger.debug(f"[ProbeExecutor] TCP {target} connected after deadline, ignored")
            finally:
                sock.close()

        worker = threading.Thread(target=_attempt, daemon=True, name=f"ProbeExecutor-TCP-{target}")
        worker.start()

        if not race.done.wait(timeout) and race.finish(False):
            logger.debug(f"[ProbeExecutor] TCP {target} timed out after {timeout}s")

        return race.connected
