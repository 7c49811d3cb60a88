"""Debounced background refresh."""

import logging
import threading
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from ..models import TimeBucket

logger = logging.getLogger(__name__)


class SchedulerState(Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    RUNNING = "running"


class RefreshScheduler:
    """
    Collapse bursts of refresh requests into one run.

    Every trigger (re)starts a timer of ``delay`` seconds. When it fires, the
    callback runs once with the union of all buckets triggered since the last
    run. Triggers that arrive while a run is in progress are queued and
    scheduled when it ends.
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[List[TimeBucket]], None],
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ):
        self.delay = delay
        self._callback = callback
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._state = SchedulerState.IDLE
        self._generation = 0
        self._timer: Optional[threading.Timer] = None
        self._queued: Dict[str, TimeBucket] = {}
        self._closed = False

    @property
    def state(self) -> SchedulerState:
        with self._lock:
            return self._state

    def trigger(self, buckets: Iterable[TimeBucket]):
        with self._lock:
            if self._closed:
                logger.warning("Refresh requested after shutdown, ignoring")
                return
            for bucket in buckets:
                self._queued[bucket.key] = bucket
            if self._state is SchedulerState.RUNNING:
                logger.debug(f"Refresh running, queued {sorted(self._queued)}")
                return
            self._schedule_locked()

    def _schedule_locked(self):
        if self._timer is not None:
            self._timer.cancel()
        self._generation += 1
        self._timer = self._timer_factory(self.delay, self._fire, args=(self._generation,))
        self._timer.daemon = True
        self._state = SchedulerState.SCHEDULED
        self._timer.start()
        logger.debug(f"Refresh scheduled in {self.delay}s (generation {self._generation})")

    def _fire(self, generation: int):
        with self._lock:
            # A restarted timer leaves older callbacks behind.
            if self._closed or generation != self._generation:
                return
            if self._state is not SchedulerState.SCHEDULED:
                return
            self._state = SchedulerState.RUNNING
            self._timer = None
            buckets = list(self._queued.values())
            self._queued = {}

        logger.info(f"Running refresh for {[b.key for b in buckets]}")
        try:
            self._callback(buckets)
        except Exception as e:
            logger.exception(f"Refresh failed: {e}")
        finally:
            with self._lock:
                self._state = SchedulerState.IDLE
                if self._queued and not self._closed:
                    self._schedule_locked()

    def shutdown(self):
        """Cancel any pending timer; a run in progress finishes on its own."""
        with self._lock:
            self._closed = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            if self._state is SchedulerState.SCHEDULED:
                self._state = SchedulerState.IDLE
            self._queued = {}
