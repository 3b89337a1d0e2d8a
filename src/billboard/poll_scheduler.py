"""
Poll Scheduler for the billboard logo sync.
Drives the fetch/validate/update cycle at a fixed interval on a background thread.
"""

import threading
from enum import Enum
from typing import Any, Callable, Dict, Optional

from src.common.logger import setup_logger

logger = setup_logger(__name__)


class SchedulerState(Enum):
    """Lifecycle state of the scheduler."""
    IDLE = "idle"
    RUNNING = "running"


class PollScheduler:
    """
    Runs a cycle callable every `interval` seconds.

    Only one cycle is in flight at a time; a tick that would overlap a running
    cycle is skipped and logged. Failures are retried at the same fixed
    interval. Stopping cancels future ticks but lets an in-flight cycle finish.
    """

    # Seconds to wait for the loop thread on stop
    STOP_TIMEOUT = 2.0

    def __init__(self, cycle: Callable[[], Any], name: str = "ManifestPoller"):
        """
        Initialize the scheduler.

        Args:
            cycle: Callable run on every tick. Its return value is passed through
            name: Name for the background thread and log lines
        """
        self._cycle = cycle
        self.name = name

        self._lock = threading.Lock()
        self._cycle_lock = threading.Lock()
        self._state = SchedulerState.IDLE
        self._interval: Optional[float] = None
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None

        # Statistics
        self._total_ticks = 0
        self._skipped_ticks = 0
        self._failed_ticks = 0

    @property
    def state(self) -> SchedulerState:
        """Current lifecycle state."""
        with self._lock:
            return self._state

    @property
    def is_running(self) -> bool:
        """Check if the scheduler is running."""
        return self.state == SchedulerState.RUNNING

    @property
    def interval(self) -> Optional[float]:
        """Current tick interval in seconds (None when never started)."""
        return self._interval

    @property
    def cycle_in_flight(self) -> bool:
        """Check if a cycle is executing right now."""
        return self._cycle_lock.locked()

    @property
    def skipped_ticks(self) -> int:
        """Ticks skipped because a cycle was still running."""
        return self._skipped_ticks

    def start(self, interval_seconds: float, run_immediately: bool = True) -> None:
        """
        Start periodic polling.

        Args:
            interval_seconds: Seconds between ticks (must be positive)
            run_immediately: Run the first tick right away instead of after one interval

        Raises:
            ValueError: If interval_seconds is not positive
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        with self._lock:
            if self._state == SchedulerState.RUNNING:
                logger.warning("%s already running", self.name)
                return

            self._interval = interval_seconds
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._poll_loop,
                args=(self._stop_event, interval_seconds, run_immediately),
                name=self.name,
                daemon=True
            )
            self._state = SchedulerState.RUNNING
            self._thread.start()

        logger.info("%s started - interval: %ss", self.name, interval_seconds)

    def stop(self) -> None:
        """Stop polling. Idempotent; does not abort an in-flight cycle."""
        with self._lock:
            if self._state == SchedulerState.IDLE:
                return

            self._state = SchedulerState.IDLE
            if self._stop_event is not None:
                self._stop_event.set()
            thread = self._thread
            self._thread = None
            self._stop_event = None

        if thread is not None and thread is not threading.current_thread() and thread.is_alive():
            thread.join(timeout=self.STOP_TIMEOUT)

        logger.info("%s stopped", self.name)

    def restart(self, interval_seconds: float) -> None:
        """Apply a new interval by stopping and starting again."""
        logger.info("%s restarting with interval %ss", self.name, interval_seconds)
        self.stop()
        self.start(interval_seconds)

    def wait_for_cycle(self, timeout: float) -> bool:
        """
        Block until no cycle is in flight.

        Returns:
            True if idle, False if a cycle was still running after timeout
        """
        if not self._cycle_lock.acquire(timeout=timeout):
            return False
        self._cycle_lock.release()
        return True

    def run_now(self, cycle: Optional[Callable[[], Any]] = None) -> Any:
        """
        Run one cycle on the calling thread, under the same overlap guard.

        Args:
            cycle: Alternate callable to run instead of the scheduled cycle

        Returns:
            The cycle's result, False if it raised, None if skipped due to overlap
        """
        return self._tick(cycle)

    def _poll_loop(self, stop_event: threading.Event, interval: float, run_immediately: bool) -> None:
        """Background thread loop."""
        logger.debug("%s loop started", self.name)

        if run_immediately and not stop_event.is_set():
            self._tick()

        while not stop_event.wait(timeout=interval):
            self._tick()

        logger.debug("%s loop ended", self.name)

    def _tick(self, cycle: Optional[Callable[[], Any]] = None) -> Any:
        """Run the cycle unless one is already in flight."""
        if not self._cycle_lock.acquire(blocking=False):
            self._skipped_ticks += 1
            logger.warning("%s: previous cycle still running - skipping tick", self.name)
            return None

        self._total_ticks += 1
        try:
            return (cycle or self._cycle)()
        except Exception as e:
            self._failed_ticks += 1
            logger.error("%s cycle failed with error: %s", self.name, e)
            return False
        finally:
            self._cycle_lock.release()

    def get_status(self) -> Dict[str, Any]:
        """Scheduler status for diagnostics."""
        return {
            'state': self.state.value,
            'interval': self._interval,
            'cycle_in_flight': self.cycle_in_flight,
            'total_ticks': self._total_ticks,
            'skipped_ticks': self._skipped_ticks,
            'failed_ticks': self._failed_ticks,
        }

    def __repr__(self) -> str:
        """String representation."""
        return f"PollScheduler(name={self.name}, state={self.state.value}, interval={self._interval})"
