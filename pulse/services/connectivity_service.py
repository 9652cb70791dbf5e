"""
Connectivity Service - Fans the probe catalog out concurrently and resolves
the aggregate into one InternetState.

Resolution priority (strict):
1. Any HTTP probe matched                      -> ONLINE
2. Any HTTP probe answered but did not match   -> WIFI_NO_INTERNET on satisfied Wi-Fi, else OFFLINE
3. Any TCP target connected                    -> WIFI_NO_INTERNET
4. Nothing answered                            -> WIFI_NO_INTERNET on satisfied Wi-Fi, else OFFLINE

TCP-only success means "network up, internet not confirmed", never ONLINE.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Optional

from loguru import logger

from pulse.core.constants import EVALUATION_GRACE
from pulse.core.probe_catalog import HTTPProbe, ProbeCatalog, TCPTarget
from pulse.core.types import InternetState, PathSnapshot, ProbeOutcome, is_satisfied_wifi
from pulse.services.probe_executor import ProbeExecutor


class AggregateResult:
    """Per-evaluation accumulator. Probe workers write to it concurrently."""

    def __init__(self):
        self._lock = threading.Lock()
        self.any_http_matched = False
        self.any_http_responded_unmatched = False
        self.any_tcp_connected = False
        self._sealed = False

    def record_http(self, outcome: ProbeOutcome):
        with self._lock:
            if self._sealed:
                return
            if outcome == ProbeOutcome.MATCHED:
                self.any_http_matched = True
            elif outcome == ProbeOutcome.RESPONDED_UNMATCHED:
                self.any_http_responded_unmatched = True

    def record_tcp(self, connected: bool):
        if not connected:
            return
        with self._lock:
            if not self._sealed:
                self.any_tcp_connected = True

    def seal(self):
        """Ignore any further writes (probes that overran the deadline)."""
        with self._lock:
            self._sealed = True

    def __repr__(self):
        return (
            f"AggregateResult(http_matched={self.any_http_matched}, "
            f"http_unmatched={self.any_http_responded_unmatched}, "
            f"tcp_connected={self.any_tcp_connected})"
        )


def resolve_state(aggregate: AggregateResult, path: Optional[PathSnapshot]) -> InternetState:
    """Map aggregated probe signals plus link state to an InternetState."""
    if aggregate.any_http_matched:
        return InternetState.ONLINE

    if aggregate.any_http_responded_unmatched:
        # Often a captive portal / walled garden
        return InternetState.WIFI_NO_INTERNET if is_satisfied_wifi(path) else InternetState.OFFLINE

    if aggregate.any_tcp_connected:
        return InternetState.WIFI_NO_INTERNET

    return InternetState.WIFI_NO_INTERNET if is_satisfied_wifi(path) else InternetState.OFFLINE


class ConnectivityService:
    """Runs the whole probe catalog and decides the current InternetState."""

    def __init__(
        self,
        catalog: Optional[ProbeCatalog] = None,
        executor: Optional[ProbeExecutor] = None,
        grace: float = EVALUATION_GRACE,
    ):
        self._catalog = catalog or ProbeCatalog.default()
        self._executor = executor or ProbeExecutor()
        self._grace = grace

    @property
    def catalog(self) -> ProbeCatalog:
        return self._catalog

    def evaluate(self, path: Optional[PathSnapshot]) -> InternetState:
        """
        Probe every target concurrently and wait for all of them.

        There is no early exit on first success: the aggregate needs every
        signal to tell "nothing answered" from "something answered wrong".
        Probes still running at the deadline count as NO_RESPONSE.
        """
        aggregate = AggregateResult()
        if self._catalog.size == 0:
            return resolve_state(aggregate, path)

        started = time.monotonic()
        pool = ThreadPoolExecutor(max_workers=self._catalog.size, thread_name_prefix="ConnectivityProbe")
        try:
            futures = [pool.submit(self._run_http, probe, aggregate) for probe in self._catalog.http_probes]
            futures += [pool.submit(self._run_tcp, target, aggregate) for target in self._catalog.tcp_targets]

            _, not_done = wait(futures, timeout=self._catalog.max_timeout + self._grace)
            if not_done:
                logger.warning(
                    f"[ConnectivityService] {len(not_done)} probe(s) overran the deadline, counting as no response"
                )
        finally:
            aggregate.seal()
            # Do not wait for stragglers; their late results are ignored
            pool.shutdown(wait=False, cancel_futures=True)

        state = resolve_state(aggregate, path)
        logger.debug(
            f"[ConnectivityService] {aggregate} path={path} -> {state} "
            f"({time.monotonic() - started:.2f}s)"
        )
        return state

    def _run_http(self, probe: HTTPProbe, aggregate: AggregateResult):
        try:
            outcome = self._executor.execute(probe)
        except Exception as e:
            logger.error(f"[ConnectivityService] HTTP probe {probe.url} raised: {e}")
            outcome = ProbeOutcome.NO_RESPONSE
        aggregate.record_http(outcome)

    def _run_tcp(self, target: TCPTarget, aggregate: AggregateResult):
        try:
            connected = self._executor.connect(target, self._catalog.tcp_timeout)
        except Exception as e:
            logger.error(f"[ConnectivityService] TCP probe {target} raised: {e}")
            connected = False
        aggregate.record_tcp(connected)
