"""Convergence and status classification for parameters and the fraction.

Every function here is pure: the same inputs always give the same status, and
nothing feeds back into the update rule. The presentation layer uses the
results for badges and guidance text only.

- Status: InRange when |error| is inside the tolerance band, else OutOfRange
- Direction: Converged (in range), Increase / Decrease (|error| beyond the
  direction threshold) or FineTune
- Deviation: |error / reference| as a percentage, None when undefined
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from .config import SimConfig
from .parameter import FractionSample, ProcessParameter


class Status(str, Enum):
    IN_RANGE = "InRange"
    OUT_OF_RANGE = "OutOfRange"


class Direction(str, Enum):
    CONVERGED = "Converged"
    INCREASE = "Increase"
    DECREASE = "Decrease"
    FINE_TUNE = "FineTune"


ACTION_TEXT = {
    Direction.CONVERGED: "System Converged",
    Direction.INCREASE: "Increase Actuator",
    Direction.DECREASE: "Decrease Actuator",
    Direction.FINE_TUNE: "Fine Tuning",
}


@dataclass(frozen=True, slots=True)
class Classification:
    """Result of classifying one error against its tolerance band.

    Attributes:
        error: Signed error, target minus measured.
        band: Half-width of the in-range band.
        status: InRange / OutOfRange.
        direction: Suggested corrective direction.
        deviation_percent: |error / reference| * 100, or None if undefined.
        severe: True when |error| exceeds the severity threshold.
        magnitude: Error-magnitude gauge value in [0, 100].
    """

    error: float
    band: float
    status: Status
    direction: Direction
    deviation_percent: float | None
    severe: bool
    magnitude: float

    @property
    def converged(self) -> bool:
        return self.status is Status.IN_RANGE

    @property
    def action(self) -> str:
        return ACTION_TEXT[self.direction]

    @property
    def guidance(self) -> str:
        if self.converged:
            return "Process is within acceptable limits"
        if self.error > 0:
            return "PV below SP - increase input"
        return "PV above SP - decrease input"


def range_band(low: float, high: float, fraction: float = 0.05) -> float:
    """Tolerance band derived from a parameter's operating range."""
    return (high - low) * fraction


def gauge_fill_percent(value: float, low: float, high: float) -> float:
    """Position of ``value`` within ``[low, high]`` as a 0-100 fill level."""
    if high <= low:
        return 0.0
    return float(min(100.0, max(0.0, (value - low) / (high - low) * 100.0)))


def deviation_percent(error: float, reference: float) -> float | None:
    """Return |error / reference| * 100, or None when the ratio is undefined."""
    if reference == 0:
        return None
    value = abs(error / reference) * 100.0
    if not math.isfinite(value):
        return None
    return value


def classify_error(error: float, band: float, direction_threshold: float = 2.0) -> tuple[Status, Direction]:
    if abs(error) < band:
        return Status.IN_RANGE, Direction.CONVERGED
    if error > direction_threshold:
        return Status.OUT_OF_RANGE, Direction.INCREASE
    if error < -direction_threshold:
        return Status.OUT_OF_RANGE, Direction.DECREASE
    return Status.OUT_OF_RANGE, Direction.FINE_TUNE


def classify(
    error: float,
    band: float,
    reference: float,
    config: SimConfig | None = None,
) -> Classification:
    config = config or SimConfig()
    status, direction = classify_error(error, band, config.direction_threshold)
    return Classification(
        error=float(error),
        band=float(band),
        status=status,
        direction=direction,
        deviation_percent=deviation_percent(error, reference),
        severe=abs(error) > config.severe_error,
        magnitude=min(100.0, abs(error) * 5.0),
    )


def classify_parameter(parameter: ProcessParameter, config: SimConfig | None = None) -> Classification:
    """Classify ``sp - pv`` against 5% (by default) of the parameter's range."""
    config = config or SimConfig()
    band = range_band(parameter.low_limit, parameter.high_limit, config.in_range_fraction)
    return classify(parameter.error, band, parameter.sp, config)


def classify_fraction(value: float, target: float, config: SimConfig | None = None) -> Classification:
    """Classify ``target - value`` against the convergence tolerance."""
    config = config or SimConfig()
    return classify(target - value, config.convergence_tolerance, target, config)


def classify_fraction_sample(sample: FractionSample, config: SimConfig | None = None) -> Classification:
    return classify_fraction(sample.value, sample.target, config)
