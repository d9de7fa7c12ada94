"""loopsim: an illustrative control-loop simulator.

loopsim generates synthetic process-variable (PV) trajectories that track a
setpoint (SP) under a simple feedback law. A bounded random walk stands in
for an optimiser ("AI setpoint"); it is a demonstration, not a controller.

Main Components:
    - SingleParameterEngine: one PV/SP loop ticking every second
    - MultiParameterEngine: eight loops combined into a "fraction" metric,
      ticking every two seconds
    - SimConfig: every tunable constant, overridable from JSON
    - classify / classify_parameter / classify_fraction: convergence status
    - SimulationRun: headless runs with CSV, plot and table output

Quick Start:
    >>> import numpy as np
    >>> from loopsim import MultiParameterEngine
    >>>
    >>> engine = MultiParameterEngine(rng=np.random.default_rng(7))
    >>> unsubscribe = engine.subscribe(lambda snap: print(f"{snap.fraction.value:.1f}"))
    >>> engine.start()
    >>> engine.set_target_fraction(84.0)   # picked up on the next tick
    >>> engine.dispose()
"""

from .analysis import SimulationRun, run_simulation
from .config import CouplingTerm, SimConfig
from .engine import (
    MultiParameterEngine,
    MultiParameterSnapshot,
    SingleParameterEngine,
    SingleParameterSnapshot,
)
from .history import BoundedHistory
from .parameter import (
    FractionSample,
    InvalidBoundsError,
    ParameterColor,
    ProcessParameter,
    SampledPoint,
    TrendPoint,
)
from .scheduler import SchedulerState, TickScheduler
from .status import (
    Classification,
    Direction,
    Status,
    classify,
    classify_fraction,
    classify_parameter,
    gauge_fill_percent,
)

__all__ = [
    "BoundedHistory",
    "Classification",
    "CouplingTerm",
    "Direction",
    "FractionSample",
    "InvalidBoundsError",
    "MultiParameterEngine",
    "MultiParameterSnapshot",
    "ParameterColor",
    "ProcessParameter",
    "SampledPoint",
    "SchedulerState",
    "SimConfig",
    "SimulationRun",
    "SingleParameterEngine",
    "SingleParameterSnapshot",
    "Status",
    "TickScheduler",
    "TrendPoint",
    "classify",
    "classify_fraction",
    "classify_parameter",
    "gauge_fill_percent",
    "run_simulation",
]
