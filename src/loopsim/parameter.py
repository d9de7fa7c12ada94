"""Process parameter records and sampled trend points."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum


class ParameterColor(str, Enum):
    AMBER = "amber"
    BLUE = "blue"
    CYAN = "cyan"
    YELLOW = "yellow"
    PURPLE = "purple"
    RED = "red"
    GREEN = "green"
    ORANGE = "orange"


class InvalidBoundsError(ValueError):
    """Raised when a low/high limit pair cannot bound a setpoint."""


def validate_bounds(low: float, high: float, label: str = "bounds") -> tuple[float, float]:
    """Return ``(low, high)`` as floats or raise :class:`InvalidBoundsError`."""
    low = float(low)
    high = float(high)
    if not (math.isfinite(low) and math.isfinite(high)):
        raise InvalidBoundsError(
            f"{label} must be finite, got low={low}, high={high}."
        )
    if low >= high:
        raise InvalidBoundsError(
            f"{label} require low < high, got low={low}, high={high}.\n"
            f"A setpoint cannot be clamped into an empty or inverted range."
        )
    return low, high


def require_finite(value: float, name: str) -> float:
    value = float(value)
    if not math.isfinite(value):
        raise ValueError(f"{name} must be a finite number, got {value}.")
    return value


@dataclass(frozen=True, slots=True)
class SampledPoint:
    """One single-parameter sample. ``sp`` is the setpoint actually commanded."""

    timestamp: int
    pv: float
    sp: float
    ai_sp: float


@dataclass(frozen=True, slots=True)
class TrendPoint:
    timestamp: int
    pv: float
    sp: float


@dataclass(frozen=True, slots=True)
class FractionSample:
    timestamp: int
    value: float
    target: float


@dataclass(frozen=True, slots=True)
class ProcessParameter:
    """Immutable view of one simulated process parameter.

    Attributes:
        id: Stable identifier used by the engine API and the coupling terms.
        name: Display name (e.g. "Ore Feed Rate").
        unit: Engineering unit (e.g. "t/h").
        pv: Current process variable.
        sp: Setpoint commanded on the last tick.
        ai_sp: Setpoint proposed by the AI perturbation rule on the last tick.
        low_limit: Lower bound for the AI setpoint.
        high_limit: Upper bound for the AI setpoint.
        trend: Recent ``TrendPoint`` samples, oldest first.
        color: Palette tag for the presentation layer.
        icon: Short glyph for the presentation layer.

    ``low_limit < high_limit`` is checked in ``__post_init__``.
    """

    id: str
    name: str
    unit: str
    pv: float
    sp: float
    ai_sp: float
    low_limit: float
    high_limit: float
    trend: tuple[TrendPoint, ...] = ()
    color: ParameterColor = ParameterColor.BLUE
    icon: str = ""

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Process parameter id must be a non-empty string.")
        validate_bounds(self.low_limit, self.high_limit, label=f"Limits of '{self.id}'")
        for name in ("pv", "sp", "ai_sp"):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise ValueError(
                    f"{name} of '{self.id}' must be finite, got {value}.\n"
                    f"Non-finite values would propagate into the trend history."
                )
        if not isinstance(self.color, ParameterColor):
            object.__setattr__(self, "color", ParameterColor(self.color))

    @property
    def error(self) -> float:
        return self.sp - self.pv

    @property
    def operating_range(self) -> float:
        return self.high_limit - self.low_limit

    def with_bounds(self, low: float, high: float) -> "ProcessParameter":
        low, high = validate_bounds(low, high, label=f"Limits of '{self.id}'")
        return replace(self, low_limit=low, high_limit=high)
