"""
Watcher Messages - Typed inputs consumed by the ConnectivityWatcher loop.

Every source (path observer, timers, evaluation workers, stop) only posts
one of these onto the watcher's queue. The scheduler thread is the single
consumer and the only code that touches watcher state.

Timer messages carry the token of the timer that produced them; a message
whose token no longer matches the armed timer is a late fire and is dropped.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pulse.core.types import InternetState, PathSnapshot


class TriggerSource(Enum):
    """What asked for an evaluation."""

    DEBOUNCE = "debounce"
    HEARTBEAT = "heartbeat"
    MANUAL = "manual"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class PathChanged:
    snapshot: Optional[PathSnapshot]


@dataclass(frozen=True)
class DebounceFired:
    token: int


@dataclass(frozen=True)
class HeartbeatFired:
    token: int


@dataclass(frozen=True)
class EvaluateNow:
    pass


@dataclass(frozen=True)
class EvaluationCompleted:
    generation: int
    state: Optional[InternetState]
    error: Optional[BaseException] = None


@dataclass(frozen=True)
class StopRequested:
    pass
