"""Fixed-period tick scheduler."""

from __future__ import annotations

import os
import sys
import threading
from enum import Enum
from typing import Any, Callable, Protocol


def _get_verbosity() -> int:
    """Get verbosity level from environment: 0=quiet, 1=normal, 2=verbose."""
    try:
        return int(os.environ.get("LOOPSIM_VERBOSITY", "1"))
    except ValueError:
        return 1


class Timer(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[..., Timer]


def daemon_timer(interval: float, function: Callable[..., Any], args: tuple = ()) -> threading.Timer:
    timer = threading.Timer(interval, function, args=args)
    timer.daemon = True
    return timer


class SchedulerState(str, Enum):
    IDLE = "Idle"
    RUNNING = "Running"


class TickScheduler:
    """Invoke ``callback`` once per ``interval`` seconds until stopped.

    Each firing runs the callback synchronously and only then arms the next
    timer, so ticks never overlap. ``stop()`` waits for an in-flight tick and
    cancels the pending timer; once it returns the callback will not run again
    until the next ``start()``. A callback that raises is counted in
    ``failed_ticks`` and does not stop the schedule.

    Attributes:
        interval: Seconds between the end of one tick and the next firing.
        tick_count: Ticks that completed without raising.
        failed_ticks: Ticks whose callback raised.
        last_error: Most recent exception raised by the callback.
    """

    def __init__(
        self,
        callback: Callable[[], Any],
        interval: float,
        timer_factory: TimerFactory | None = None,
    ) -> None:
        if not interval > 0:
            raise ValueError(f"Tick interval must be positive, got {interval}.")
        self.interval = float(interval)
        self._callback = callback
        self._timer_factory = timer_factory or daemon_timer
        self._lock = threading.RLock()
        self._state = SchedulerState.IDLE
        self._timer: Timer | None = None
        # Bumped on every start/stop so a timer armed before a stop is ignored.
        self._generation = 0
        self.tick_count = 0
        self.failed_ticks = 0
        self.last_error: BaseException | None = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state is SchedulerState.RUNNING

    def start(self) -> bool:
        """Arm the timer. Returns False if the scheduler was already running."""
        with self._lock:
            if self._state is SchedulerState.RUNNING:
                return False
            self._state = SchedulerState.RUNNING
            self._generation += 1
            self._arm(self._generation)
            return True

    def stop(self) -> bool:
        """Cancel the pending timer. Returns False if already idle."""
        with self._lock:
            if self._state is SchedulerState.IDLE:
                return False
            self._state = SchedulerState.IDLE
            self._generation += 1
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            return True

    def _arm(self, generation: int) -> None:
        timer = self._timer_factory(self.interval, self._fire, args=(generation,))
        self._timer = timer
        timer.start()

    def _fire(self, generation: int) -> None:
        with self._lock:
            if self._state is not SchedulerState.RUNNING or generation != self._generation:
                return
            self._timer = None
            try:
                self._callback()
            except Exception as exc:
                self.failed_ticks += 1
                self.last_error = exc
                if _get_verbosity() >= 1:
                    print(f"Tick failed ({self.failed_ticks} so far): {exc!r}", file=sys.stderr)
            else:
                self.tick_count += 1
            finally:
                # The callback may have stopped (or restarted) the scheduler.
                if self._state is SchedulerState.RUNNING and generation == self._generation:
                    self._arm(generation)
