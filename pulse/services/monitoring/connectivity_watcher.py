"""
Connectivity Watcher - Decides when to re-evaluate connectivity and reports changes.

Design:
- One scheduler thread owns all watcher state. Observers, timers and
  evaluation workers only post messages (see signals.py) onto its queue.
- Path events are debounced: each one re-arms a short timer, so a burst of
  interface flaps collapses into one evaluation using the last snapshot.
- A self-rescheduling heartbeat with jitter re-checks periodically; the
  floor keeps a bad jitter draw from looping tightly.
- At most one evaluation is in flight. Triggers arriving meanwhile are
  dropped, not queued.
- on_change fires only when the state differs from the last one emitted.
- stop() is terminal: timers disarmed, observer detached, and the result of
  an evaluation still running is discarded.
"""

import queue
import random
import threading
import time
from typing import Callable, Optional

from loguru import logger

from pulse.core.config import WatcherSettings
from pulse.core.types import InternetState, PathSnapshot

from .path_observer import PathObserver
from .signals import (
    DebounceFired,
    EvaluateNow,
    EvaluationCompleted,
    HeartbeatFired,
    PathChanged,
    StopRequested,
    TriggerSource,
)

STOP_JOIN_TIMEOUT = 2.0


def jittered_interval(base: float, jitter: float, floor: float, rng=random) -> float:
    """base ± uniform(jitter), never below floor."""
    return max(floor, base + rng.uniform(-jitter, jitter))


def _daemon_timer(delay: float, callback: Callable[[], None]):
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    return timer


class ConnectivityWatcher:
    """Event scheduler between the path observer and the connectivity evaluator."""

    def __init__(
        self,
        service,
        observer: Optional[PathObserver] = None,
        on_change: Optional[Callable[[InternetState], None]] = None,
        settings: Optional[WatcherSettings] = None,
        timer_factory: Callable = _daemon_timer,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize the watcher.

        Args:
            service: Evaluator exposing evaluate(path) -> InternetState
            observer: Path observer to attach to (optional; heartbeat still runs without it)
            on_change: Called with the new state on every distinct transition
            settings: Debounce and heartbeat timings
            timer_factory: (delay, callback) -> timer with start()/cancel()
            rng: Random source for heartbeat jitter
        """
        self._service = service
        self._observer = observer
        self.on_change = on_change
        self._settings = settings or WatcherSettings()
        self._timer_factory = timer_factory
        self._rng = rng or random.Random()

        self._queue: "queue.Queue" = queue.Queue()
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._started = False

        # Scheduler-thread state
        self._last_emitted_state: Optional[InternetState] = None
        self._in_flight = False
        self._latest_path: Optional[PathSnapshot] = None
        self._generation = 0
        self._debounce_timer = None
        self._debounce_token = 0
        self._heartbeat_timer = None
        self._heartbeat_token = 0

    # ---- lifecycle ----

    def start(self) -> bool:
        """Start the scheduler loop, arm the first heartbeat and attach the observer."""
        with self._lock:
            if self._started:
                if self._stop_event.is_set():
                    logger.warning("[ConnectivityWatcher] Cannot restart a stopped watcher")
                return False
            self._started = True
            self._thread = threading.Thread(target=self._run_loop, daemon=True, name="ConnectivityWatcher")

            # Held under the lock so a concurrent stop() only sees a fully started watcher.
            # Loop not running yet, so touching timer state here does not race it.
            self._schedule_next_heartbeat()
            self._thread.start()

            if self._observer is not None:
                self._observer.start(self._on_path_event)

        logger.info(
            f"[ConnectivityWatcher] Started (debounce={self._settings.debounce_delay}s, "
            f"heartbeat={self._settings.heartbeat_base}±{self._settings.heartbeat_jitter}s, "
            f"floor={self._settings.heartbeat_min_interval}s)"
        )
        return True

    def stop(self):
        """Stop watching. No on_change call happens after this returns."""
        with self._lock:
            if not self._started or self._stop_event.is_set():
                return
            self._stop_event.set()
            thread = self._thread

        if self._observer is not None:
            self._observer.cancel()

        # Bypass _post: it drops everything once stopped
        self._queue.put(StopRequested())
        if thread and thread is not threading.current_thread():
            thread.join(timeout=STOP_JOIN_TIMEOUT)
            if thread.is_alive():
                logger.warning("[ConnectivityWatcher] Scheduler thread did not exit in time")

        logger.info("[ConnectivityWatcher] Stopped")

    def is_running(self) -> bool:
        with self._lock:
            return self._started and not self._stop_event.is_set()

    def evaluate_now(self):
        """Request an immediate evaluation (still subject to the in-flight guard)."""
        self._post(EvaluateNow())

    def drain(self, timeout: float = 2.0) -> bool:
        """Block until every queued message has been handled. Returns False on timeout."""
        deadline = time.monotonic() + timeout
        with self._queue.all_tasks_done:
            while self._queue.unfinished_tasks:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._queue.all_tasks_done.wait(remaining)
        return True

    @property
    def last_state(self) -> Optional[InternetState]:
        return self._last_emitted_state

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    # ---- inbound (any thread) ----

    def _on_path_event(self, snapshot: Optional[PathSnapshot]):
        self._post(PathChanged(snapshot))

    def _post(self, message):
        if self._stop_event.is_set():
            logger.debug(f"[ConnectivityWatcher] Dropped {type(message).__name__} (stopped)")
            return
        self._queue.put(message)

    # ---- scheduler thread ----

    def _run_loop(self):
        """Main scheduler loop."""
        while True:
            message = self._queue.get()
            try:
                if isinstance(message, StopRequested):
                    self._cancel_timers()
                    return
                if self._stop_event.is_set():
                    continue
                self._handle(message)
            except Exception as e:
                logger.error(f"[ConnectivityWatcher] Error handling {type(message).__name__}: {e}")
            finally:
                self._queue.task_done()

    def _handle(self, message):
        if isinstance(message, PathChanged):
            self._latest_path = message.snapshot
            self._arm_debounce()
        elif isinstance(message, DebounceFired):
            if message.token != self._debounce_token or self._debounce_timer is None:
                logger.debug("[ConnectivityWatcher] Ignored stale debounce fire")
                return
            self._debounce_timer = None
            self._trigger(TriggerSource.DEBOUNCE, self._latest_path)
        elif isinstance(message, HeartbeatFired):
            if message.token != self._heartbeat_token:
                logger.debug("[ConnectivityWatcher] Ignored stale heartbeat fire")
                return
            self._heartbeat_timer = None
            if self._observer is not None:
                self._latest_path = self._observer.current_path()
            self._trigger(TriggerSource.HEARTBEAT, self._latest_path)
            # Re-arm whether the check ran or was skipped
            self._schedule_next_heartbeat()
        elif isinstance(message, EvaluateNow):
            # The first path event may not have arrived yet
            if self._observer is not None:
                self._latest_path = self._observer.current_path()
            self._trigger(TriggerSource.MANUAL, self._latest_path)
        elif isinstance(message, EvaluationCompleted):
            self._complete(message)

    def _arm_debounce(self):
        if self._debounce_timer is not None:
            self._debounce_timer.cancel()
        self._debounce_token += 1
        token = self._debounce_token
        self._debounce_timer = self._timer_factory(
            self._settings.debounce_delay, lambda: self._post(DebounceFired(token))
        )
        self._debounce_timer.start()

    def _schedule_next_heartbeat(self):
        if self._heartbeat_timer is not None:
            self._heartbeat_timer.cancel()
        interval = jittered_interval(
            self._settings.heartbeat_base,
            self._settings.heartbeat_jitter,
            self._settings.heartbeat_min_interval,
            self._rng,
        )
        self._heartbeat_token += 1
        token = self._heartbeat_token
        self._heartbeat_timer = self._timer_factory(interval, lambda: self._post(HeartbeatFired(token)))
        self._heartbeat_timer.start()
        logger.debug(f"[ConnectivityWatcher] Next heartbeat in {interval:.1f}s")

    def _cancel_timers(self):
        if self._debounce_timer is not None:
            self._debounce_timer.cancel()
            self._debounce_timer = None
        if self._heartbeat_timer is not None:
            self._heartbeat_timer.cancel()
            self._heartbeat_timer = None
        # Invalidate anything already fired
        self._debounce_token += 1
        self._heartbeat_token += 1

    def _trigger(self, source: TriggerSource, path: Optional[PathSnapshot]):
        if self._in_flight:
            logger.debug(f"[ConnectivityWatcher] Skipped {source} check (evaluation in flight)")
            return

        self._in_flight = True
        self._generation += 1
        generation = self._generation
        logger.debug(f"[ConnectivityWatcher] Evaluating ({source}, generation {generation}, path={path})")

        threading.Thread(
            target=self._evaluate,
            args=(generation, path),
            daemon=True,
            name=f"ConnectivityWatcher-Evaluation-{generation}",
        ).start()

    def _evaluate(self, generation: int, path: Optional[PathSnapshot]):
        """Runs on a worker thread; reports back through the queue."""
        try:
            state = self._service.evaluate(path)
        except Exception as e:
            self._post(EvaluationCompleted(generation, None, e))
            return
        self._post(EvaluationCompleted(generation, state))

    def _complete(self, message: EvaluationCompleted):
        if message.generation != self._generation:
            logger.debug(f"[ConnectivityWatcher] Discarded stale result (generation {message.generation})")
            return
        self._in_flight = False

        if message.error is not None:
            logger.error(f"[ConnectivityWatcher] Evaluation failed: {message.error}")
            return

        state = message.state
        if state == self._last_emitted_state:
            logger.debug(f"[ConnectivityWatcher] State unchanged ({state})")
            return

        previous = self._last_emitted_state
        self._last_emitted_state = state
        logger.info(f"[ConnectivityWatcher] State changed: {previous} -> {state}")

        if self.on_change:
            try:
                self.on_change(state)
            except Exception as e:
                logger.error(f"[ConnectivityWatcher] Error in change callback: {e}")
