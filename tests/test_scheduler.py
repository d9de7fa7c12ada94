"""Unit tests for scheduler.py module."""

import threading
import time

import pytest

from loopsim.scheduler import SchedulerState, TickScheduler


class FakeTimer:
    """Timer stand-in that only fires when the test says so."""

    def __init__(self, interval, function, args=()):
        self.interval = interval
        self.function = function
        self.args = args
        self.started = False
        self.cancelled = False
        self.fired = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.fired = True
        self.function(*self.args)


class FakeTimerFactory:
    def __init__(self):
        self.timers = []

    def __call__(self, interval, function, args=()):
        timer = FakeTimer(interval, function, args)
        self.timers.append(timer)
        return timer

    @property
    def pending(self):
        return [t for t in self.timers if t.started and not t.cancelled and not t.fired]

    def fire_next(self):
        pending = self.pending
        assert len(pending) == 1, f"expected one pending timer, found {len(pending)}"
        pending[0].fire()


class Counter:
    def __init__(self):
        self.calls = 0

    def __call__(self):
        self.calls += 1


class TestSchedulerStates:
    """Test the Idle/Running state machine."""

    def test_starts_idle(self):
        scheduler = TickScheduler(Counter(), 1.0, timer_factory=FakeTimerFactory())
        assert scheduler.state is SchedulerState.IDLE
        assert not scheduler.running

    def test_start_arms_timer(self):
        timers = FakeTimerFactory()
        scheduler = TickScheduler(Counter(), 2.0, timer_factory=timers)
        assert scheduler.start() is True
        assert scheduler.state is SchedulerState.RUNNING
        assert len(timers.pending) == 1
        assert timers.pending[0].interval == 2.0

    def test_restart_while_running_is_noop(self):
        """Test that a second start does not double-arm."""
        timers = FakeTimerFactory()
        scheduler = TickScheduler(Counter(), 1.0, timer_factory=timers)
        scheduler.start()
        assert scheduler.start() is False
        assert len(timers.timers) == 1

    def test_stop_is_idempotent(self):
        timers = FakeTimerFactory()
        scheduler = TickScheduler(Counter(), 1.0, timer_factory=timers)
        assert scheduler.stop() is False
        scheduler.start()
        assert scheduler.stop() is True
        assert scheduler.stop() is False
        assert scheduler.state is SchedulerState.IDLE

    def test_invalid_interval(self):
        with pytest.raises(ValueError, match="must be positive"):
            TickScheduler(Counter(), 0.0)


class TestSchedulerTicks:
    """Test tick dispatch, cancellation and error containment."""

    def test_each_firing_ticks_once_and_rearms(self):
        counter = Counter()
        timers = FakeTimerFactory()
        scheduler = TickScheduler(counter, 1.0, timer_factory=timers)
        scheduler.start()
        for expected in range(1, 4):
            timers.fire_next()
            assert counter.calls == expected
            assert len(timers.pending) == 1
        assert scheduler.tick_count == 3

    def test_stop_cancels_pending_timer(self):
        counter = Counter()
        timers = FakeTimerFactory()
        scheduler = TickScheduler(counter, 1.0, timer_factory=timers)
        scheduler.start()
        timer = timers.pending[0]
        scheduler.stop()
        assert timer.cancelled
        assert timers.pending == []

    def test_stale_timer_does_not_tick_after_stop(self):
        """Test that a timer firing after stop() returns does not mutate state."""
        counter = Counter()
        timers = FakeTimerFactory()
        scheduler = TickScheduler(counter, 1.0, timer_factory=timers)
        scheduler.start()
        timer = timers.pending[0]
        scheduler.stop()
        timer.fire()
        assert counter.calls == 0
        assert timers.pending == []

    def test_stale_timer_ignored_after_restart(self):
        """Test that a timer from a previous run cannot double-tick a new run."""
        counter = Counter()
        timers = FakeTimerFactory()
        scheduler = TickScheduler(counter, 1.0, timer_factory=timers)
        scheduler.start()
        stale = timers.timers[0]
        scheduler.stop()
        scheduler.start()
        stale.fire()
        assert counter.calls == 0
        timers.fire_next()
        assert counter.calls == 1

    def test_stop_then_start_resumes(self):
        counter = Counter()
        timers = FakeTimerFactory()
        scheduler = TickScheduler(counter, 1.0, timer_factory=timers)
        scheduler.start()
        timers.fire_next()
        scheduler.stop()
        assert timers.pending == []
        scheduler.start()
        timers.fire_next()
        assert counter.calls == 2

    def test_failing_tick_does_not_stop_schedule(self, monkeypatch, capsys):
        monkeypatch.setenv("LOOPSIM_VERBOSITY", "1")
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise ZeroDivisionError("bad tick")

        timers = FakeTimerFactory()
        scheduler = TickScheduler(flaky, 1.0, timer_factory=timers)
        scheduler.start()
        timers.fire_next()
        assert scheduler.failed_ticks == 1
        assert isinstance(scheduler.last_error, ZeroDivisionError)
        assert "Tick failed" in capsys.readouterr().err
        timers.fire_next()
        assert len(calls) == 2
        assert scheduler.tick_count == 1
        assert scheduler.running

    def test_failure_is_silent_when_quiet(self, monkeypatch, capsys):
        monkeypatch.setenv("LOOPSIM_VERBOSITY", "0")

        def broken():
            raise RuntimeError("boom")

        timers = FakeTimerFactory()
        scheduler = TickScheduler(broken, 1.0, timer_factory=timers)
        scheduler.start()
        timers.fire_next()
        assert capsys.readouterr().err == ""

    def test_unparsable_verbosity_keeps_schedule(self, monkeypatch, capsys):
        """Test that a bad LOOPSIM_VERBOSITY value neither escapes nor stops ticking."""
        monkeypatch.setenv("LOOPSIM_VERBOSITY", "loud")

        def broken():
            raise RuntimeError("boom")

        timers = FakeTimerFactory()
        scheduler = TickScheduler(broken, 1.0, timer_factory=timers)
        scheduler.start()
        timers.fire_next()
        assert scheduler.failed_ticks == 1
        assert scheduler.running
        assert len(timers.pending) == 1
        assert "boom" in capsys.readouterr().err
        timers.fire_next()
        assert scheduler.failed_ticks == 2

    def test_callback_may_stop_scheduler(self):
        timers = FakeTimerFactory()
        scheduler = None

        def stop_self():
            scheduler.stop()

        scheduler = TickScheduler(stop_self, 1.0, timer_factory=timers)
        scheduler.start()
        timers.fire_next()
        assert scheduler.state is SchedulerState.IDLE
        assert timers.pending == []


class TestSchedulerWithThreads:
    """Test the default threading.Timer backend."""

    def test_real_timer_ticks_and_stops(self):
        ticked = threading.Event()
        counter = Counter()

        def callback():
            counter()
            if counter.calls >= 3:
                ticked.set()

        scheduler = TickScheduler(callback, 0.01)
        scheduler.start()
        try:
            assert ticked.wait(5.0)
        finally:
            scheduler.stop()
        calls_at_stop = counter.calls
        time.sleep(0.1)
        assert counter.calls == calls_at_stop
