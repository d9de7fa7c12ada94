"""Single- and multi-parameter simulation engines.

Each engine owns its state (PVs, setpoints, bounds, bounded trends) and a
:class:`TickScheduler`. The lifecycle is::

    engine = MultiParameterEngine()      # create, seeded with default values
    unsubscribe = engine.subscribe(redraw)
    engine.start()                       # tick every config interval
    engine.set_target_fraction(84.0)     # read on the next tick
    engine.stop()
    engine.dispose()

Inputs set between ticks are validated at the setter and picked up by the
next tick. Subscribers receive an immutable snapshot after every tick.
"""

from __future__ import annotations

import os
import sys
import threading
import time
from dataclasses import dataclass, replace
from typing import Callable, Dict, Generic, Iterable, TypeVar

import numpy as np

from .config import SimConfig
from .fraction import compute_fraction, is_optimal
from .history import BoundedHistory
from .model import ControlLoopModel
from .parameter import (
    FractionSample,
    ProcessParameter,
    SampledPoint,
    TrendPoint,
    require_finite,
    validate_bounds,
)
from .plant import (
    INITIAL_FRACTION,
    SINGLE_HIGH_LIMIT,
    SINGLE_INITIAL_PV,
    SINGLE_INITIAL_SP,
    SINGLE_LOW_LIMIT,
    default_parameters,
)
from .scheduler import TickScheduler, TimerFactory
from .status import Classification, classify, classify_fraction, classify_parameter, range_band


def _get_verbosity() -> int:
    """Get verbosity level from environment: 0=quiet, 1=normal, 2=verbose."""
    try:
        return int(os.environ.get("LOOPSIM_VERBOSITY", "1"))
    except ValueError:
        return 1


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True, slots=True)
class SingleParameterSnapshot:
    timestamp: int
    tick: int
    pv: float
    sp: float
    ai_sp: float
    ai_enabled: bool
    manual_sp: float
    low_limit: float
    high_limit: float
    history: tuple[SampledPoint, ...]
    status: Classification

    @property
    def latest(self) -> SampledPoint | None:
        return self.history[-1] if self.history else None


@dataclass(frozen=True, slots=True)
class MultiParameterSnapshot:
    """State of the multi-parameter engine after a tick.

    ``parameter_status`` is aligned index-for-index with ``parameters``.
    """

    timestamp: int
    tick: int
    parameters: tuple[ProcessParameter, ...]
    parameter_status: tuple[Classification, ...]
    fraction: FractionSample
    fraction_history: tuple[FractionSample, ...]
    fraction_status: Classification
    is_optimal: bool
    ai_enabled: bool
    missing_parameters: tuple[str, ...] = ()

    def parameter(self, parameter_id: str) -> ProcessParameter:
        for parameter in self.parameters:
            if parameter.id == parameter_id:
                return parameter
        raise KeyError(parameter_id)

    def status_of(self, parameter_id: str) -> Classification:
        for parameter, status in zip(self.parameters, self.parameter_status):
            if parameter.id == parameter_id:
                return status
        raise KeyError(parameter_id)


S = TypeVar("S")


class _Engine(Generic[S]):
    """Shared lifecycle, locking and subscription handling."""

    def __init__(
        self,
        config: SimConfig | None,
        interval: float | None,
        rng: np.random.Generator | None,
        clock: Callable[[], int] | None,
        timer_factory: TimerFactory | None,
    ) -> None:
        self.config = config or SimConfig()
        self.model = ControlLoopModel(self.config, rng)
        self._clock = clock or _now_ms
        self._lock = threading.RLock()
        self._subscribers: list[Callable[[S], None]] = []
        self._disposed = False
        self._tick = 0
        self.scheduler = TickScheduler(self.tick, interval, timer_factory=timer_factory)

    @property
    def running(self) -> bool:
        return self.scheduler.running

    @property
    def disposed(self) -> bool:
        return self._disposed

    def subscribe(self, callback: Callable[[S], None]) -> Callable[[], None]:
        """Register ``callback`` for post-tick snapshots; returns an unsubscribe function."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def start(self) -> bool:
        if self._disposed:
            raise RuntimeError("Cannot start a disposed engine.")
        return self.scheduler.start()

    def stop(self) -> bool:
        return self.scheduler.stop()

    def dispose(self) -> None:
        self.scheduler.stop()
        with self._lock:
            self._subscribers.clear()
            self._disposed = True

    def tick(self) -> S:
        """Advance the simulation by one step and publish the new snapshot."""
        with self._lock:
            if self._disposed:
                raise RuntimeError("Cannot tick a disposed engine.")
            self._tick += 1
            snapshot = self._advance(self._clock())
            subscribers = list(self._subscribers)
        for callback in subscribers:
            callback(snapshot)
        return snapshot

    def advance(self, ticks: int) -> S:
        """Run ``ticks`` steps back to back, without the scheduler."""
        if ticks < 1:
            raise ValueError(f"ticks must be at least 1, got {ticks}.")
        snapshot = None
        for _ in range(ticks):
            snapshot = self.tick()
        return snapshot

    def _advance(self, now: int) -> S:
        raise NotImplementedError


class SingleParameterEngine(_Engine[SingleParameterSnapshot]):
    """One PV/SP loop with optional AI setpoint perturbation."""

    def __init__(
        self,
        config: SimConfig | None = None,
        *,
        rng: np.random.Generator | None = None,
        clock: Callable[[], int] | None = None,
        timer_factory: TimerFactory | None = None,
    ) -> None:
        config = config or SimConfig()
        super().__init__(config, config.single_tick_interval, rng, clock, timer_factory)
        self.history: BoundedHistory[SampledPoint] = BoundedHistory(self.config.history_length)
        self.reset()

    def reset(self) -> None:
        """Restore the seed state and clear the history."""
        with self._lock:
            self._pv = SINGLE_INITIAL_PV
            self._sp = SINGLE_INITIAL_SP
            self._ai_sp = SINGLE_INITIAL_SP
            self._manual_sp = SINGLE_INITIAL_SP
            self._low = SINGLE_LOW_LIMIT
            self._high = SINGLE_HIGH_LIMIT
            self._ai_enabled = True
            self._tick = 0
            self.history.clear()

    def set_ai_enabled(self, enabled: bool) -> None:
        with self._lock:
            self._ai_enabled = bool(enabled)

    def set_manual_setpoint(self, value: float) -> None:
        value = require_finite(value, "Manual setpoint")
        with self._lock:
            self._manual_sp = value

    def set_bounds(self, low: float, high: float) -> None:
        low, high = validate_bounds(low, high, label="Setpoint bounds")
        with self._lock:
            self._low, self._high = low, high

    def snapshot(self) -> SingleParameterSnapshot:
        with self._lock:
            return self._snapshot(self._clock())

    def _advance(self, now: int) -> SingleParameterSnapshot:
        result = self.model.step(
            self._pv, self._sp, self._ai_enabled, self._manual_sp, self._low, self._high
        )
        self._pv = result.pv
        self._sp = result.ai_sp
        self._ai_sp = result.ai_sp
        self.history.append(SampledPoint(timestamp=now, pv=result.pv, sp=result.ai_sp, ai_sp=result.ai_sp))
        return self._snapshot(now)

    def _snapshot(self, now: int) -> SingleParameterSnapshot:
        status = classify(
            self._sp - self._pv,
            range_band(self._low, self._high, self.config.in_range_fraction),
            self._sp,
            self.config,
        )
        return SingleParameterSnapshot(
            timestamp=now,
            tick=self._tick,
            pv=self._pv,
            sp=self._sp,
            ai_sp=self._ai_sp,
            ai_enabled=self._ai_enabled,
            manual_sp=self._manual_sp,
            low_limit=self._low,
            high_limit=self._high,
            history=self.history.snapshot(),
            status=status,
        )


class MultiParameterEngine(_Engine[MultiParameterSnapshot]):
    """Eight coupled loops feeding a combined fraction.

    ``parameters`` overrides the default plant. A coupling term whose
    parameter is absent falls back to the term's ``fallback_pv``.
    """

    def __init__(
        self,
        config: SimConfig | None = None,
        *,
        parameters: Iterable[ProcessParameter] | None = None,
        rng: np.random.Generator | None = None,
        clock: Callable[[], int] | None = None,
        timer_factory: TimerFactory | None = None,
    ) -> None:
        config = config or SimConfig()
        super().__init__(config, config.multi_tick_interval, rng, clock, timer_factory)
        self._seed = self._index(parameters) if parameters is not None else None
        self._warned_missing: set[str] = set()
        self.reset()

    @staticmethod
    def _index(parameters: Iterable[ProcessParameter]) -> Dict[str, ProcessParameter]:
        indexed: Dict[str, ProcessParameter] = {}
        for parameter in parameters:
            if parameter.id in indexed:
                raise ValueError(
                    f"Duplicate parameter id '{parameter.id}'.\n"
                    f"Parameter ids must be unique within an engine."
                )
            indexed[parameter.id] = parameter
        if not indexed:
            raise ValueError("A multi-parameter engine needs at least one parameter.")
        return indexed

    def reset(self) -> None:
        """Restore the seed parameters, target and fraction; clear all trends."""
        with self._lock:
            seed = dict(self._seed) if self._seed is not None else default_parameters()
            self._parameters: Dict[str, ProcessParameter] = {
                pid: replace(parameter, trend=()) for pid, parameter in seed.items()
            }
            self._trends: Dict[str, BoundedHistory[TrendPoint]] = {
                pid: BoundedHistory(self.config.history_length) for pid in self._parameters
            }
            self._manual_sp = {pid: parameter.sp for pid, parameter in self._parameters.items()}
            self.fraction_history: BoundedHistory[FractionSample] = BoundedHistory(self.config.history_length)
            self._fraction = INITIAL_FRACTION
            self._target = self.config.default_target_fraction
            self._ai_enabled = True
            self._missing: tuple[str, ...] = ()
            self._tick = 0

    @property
    def parameter_ids(self) -> tuple[str, ...]:
        return tuple(self._parameters)

    def _require(self, parameter_id: str) -> ProcessParameter:
        try:
            return self._parameters[parameter_id]
        except KeyError:
            raise KeyError(
                f"Unknown parameter id '{parameter_id}'. "
                f"Known ids: {', '.join(self._parameters)}"
            ) from None

    def set_parameter_bounds(self, parameter_id: str, low: float, high: float) -> None:
        with self._lock:
            parameter = self._require(parameter_id)
            self._parameters[parameter_id] = parameter.with_bounds(low, high)

    def set_target_fraction(self, value: float) -> None:
        value = require_finite(value, "Target fraction")
        with self._lock:
            self._target = value

    def set_ai_enabled(self, enabled: bool) -> None:
        with self._lock:
            self._ai_enabled = bool(enabled)

    def set_manual_setpoint(self, parameter_id: str, value: float) -> None:
        value = require_finite(value, f"Manual setpoint of '{parameter_id}'")
        with self._lock:
            self._require(parameter_id)
            self._manual_sp[parameter_id] = value

    def snapshot(self) -> MultiParameterSnapshot:
        with self._lock:
            return self._snapshot(self._clock())

    def _advance(self, now: int) -> MultiParameterSnapshot:
        for pid, parameter in self._parameters.items():
            result = self.model.step(
                parameter.pv,
                parameter.sp,
                self._ai_enabled,
                self._manual_sp[pid],
                parameter.low_limit,
                parameter.high_limit,
            )
            trend = self._trends[pid]
            trend.append(TrendPoint(timestamp=now, pv=result.pv, sp=result.ai_sp))
            self._parameters[pid] = replace(
                parameter,
                pv=result.pv,
                sp=result.ai_sp,
                ai_sp=result.ai_sp,
                trend=trend.snapshot(),
            )

        pvs = {pid: parameter.pv for pid, parameter in self._parameters.items()}
        fraction = compute_fraction(pvs, self.config, self.model.rng)
        self._warn_missing(fraction.missing)
        self._missing = fraction.missing
        self._fraction = fraction.value
        self.fraction_history.append(FractionSample(timestamp=now, value=fraction.value, target=self._target))
        return self._snapshot(now)

    def _warn_missing(self, missing: tuple[str, ...]) -> None:
        fresh = [pid for pid in missing if pid not in self._warned_missing]
        if not fresh:
            return
        self._warned_missing.update(fresh)
        if _get_verbosity() >= 1:
            print(
                f"Warning: coupling parameter(s) {', '.join(fresh)} not present; "
                f"using fallback PV values.",
                file=sys.stderr,
            )

    def _snapshot(self, now: int) -> MultiParameterSnapshot:
        parameters = tuple(self._parameters.values())
        return MultiParameterSnapshot(
            timestamp=now,
            tick=self._tick,
            parameters=parameters,
            parameter_status=tuple(classify_parameter(p, self.config) for p in parameters),
            fraction=FractionSample(timestamp=now, value=self._fraction, target=self._target),
            fraction_history=self.fraction_history.snapshot(),
            fraction_status=classify_fraction(self._fraction, self._target, self.config),
            is_optimal=is_optimal(self._fraction, self._target, self.config),
            ai_enabled=self._ai_enabled,
            missing_parameters=self._missing,
        )
