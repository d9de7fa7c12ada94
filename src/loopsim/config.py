"""Configuration primitives for the loopsim control-loop simulator."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping


@dataclass(frozen=True)
class CouplingTerm:
    """One primary influence on the multi-parameter fraction.

    The term contributes ``(pv / reference_pv) * weight`` to the fraction.
    ``fallback_pv`` stands in for the PV when ``parameter_id`` is not present
    in the engine.
    """

    parameter_id: str
    reference_pv: float
    weight: float
    fallback_pv: float

    def __post_init__(self) -> None:
        if self.reference_pv == 0 or not math.isfinite(self.reference_pv):
            raise ValueError(
                f"Coupling term '{self.parameter_id}' has reference_pv={self.reference_pv}.\n"
                f"The reference value normalises the PV and must be finite and non-zero."
            )
        if not (math.isfinite(self.weight) and math.isfinite(self.fallback_pv)):
            raise ValueError(
                f"Coupling term '{self.parameter_id}' contains non-finite values "
                f"(weight={self.weight}, fallback_pv={self.fallback_pv})."
            )

    def contribution(self, pv: float) -> float:
        return (pv / self.reference_pv) * self.weight


# Reference values are the default plant setpoints; with every coupled PV on
# its reference the noise-free fraction equals the sum of the weights (78.5).
DEFAULT_COUPLING: tuple[CouplingTerm, ...] = (
    CouplingTerm("ore_feed", reference_pv=450.0, weight=25.0, fallback_pv=450.0),
    CouplingTerm("water_addition", reference_pv=120.0, weight=20.0, fallback_pv=120.0),
    CouplingTerm("mill_power", reference_pv=3200.0, weight=18.0, fallback_pv=3200.0),
    CouplingTerm("pulp_density", reference_pv=68.0, weight=15.5, fallback_pv=68.0),
)


@dataclass(frozen=True)
class SimConfig:
    """Holds every tunable constant of the simulator.

    **Scheduling:**
    - single_tick_interval, multi_tick_interval: tick periods in seconds

    **Update rule:**
    - gain: proportional pull of the PV toward the setpoint per tick
    - setpoint_noise: amplitude of the AI setpoint perturbation U(-a, a)
    - pv_noise: amplitude of the PV measurement noise U(-a, a)

    **Fraction:**
    - coupling: weighted primary influences feeding the fraction
    - fraction_noise: amplitude of the fraction noise term
    - convergence_tolerance: |target - fraction| below which the fraction is optimal
    - default_target_fraction: target used when an engine is created

    **Classification:**
    - in_range_fraction: share of a parameter's operating range counted as "in range"
    - direction_threshold: |error| above which a direction is suggested
    - severe_error: |error| above which a deviation is flagged as severe

    **History:**
    - history_length: samples retained per trend

    seed=None draws fresh entropy for every engine.
    """

    single_tick_interval: float = 1.0
    multi_tick_interval: float = 2.0

    history_length: int = 50

    gain: float = 0.1
    setpoint_noise: float = 1.0
    pv_noise: float = 0.75

    coupling: tuple[CouplingTerm, ...] = field(default=DEFAULT_COUPLING)
    fraction_noise: float = 1.0
    convergence_tolerance: float = 1.0
    default_target_fraction: float = 82.0

    in_range_fraction: float = 0.05
    direction_threshold: float = 2.0
    severe_error: float = 5.0

    seed: int | None = None

    def __post_init__(self) -> None:
        if self.history_length < 1:
            raise ValueError(
                f"history_length must be at least 1, got {self.history_length}.\n"
                f"Each trend keeps the most recent history_length samples."
            )
        for name in ("single_tick_interval", "multi_tick_interval"):
            value = getattr(self, name)
            if not value > 0:
                raise ValueError(f"{name} must be a positive number of seconds, got {value}.")
        for name in ("setpoint_noise", "pv_noise", "fraction_noise", "convergence_tolerance"):
            value = getattr(self, name)
            if value < 0 or not math.isfinite(value):
                raise ValueError(f"{name} must be finite and non-negative, got {value}.")
        ids = [term.parameter_id for term in self.coupling]
        if len(set(ids)) != len(ids):
            raise ValueError(
                f"Coupling terms must reference distinct parameters.\n"
                f"Got: {', '.join(ids)}"
            )

    @property
    def coupling_ids(self) -> tuple[str, ...]:
        return tuple(term.parameter_id for term in self.coupling)

    @property
    def nominal_fraction(self) -> float:
        """Noise-free fraction when every coupled parameter sits at its reference PV."""
        return float(sum(term.weight for term in self.coupling))

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "SimConfig":
        """Build a config from plain data, overriding defaults key by key.

        ``coupling`` may be given as a list of mappings with the
        :class:`CouplingTerm` field names.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(
                f"Unknown configuration keys: {', '.join(unknown)}.\n"
                f"Valid keys are: {', '.join(sorted(known))}."
            )
        kwargs = dict(values)
        if "coupling" in kwargs:
            kwargs["coupling"] = tuple(
                term if isinstance(term, CouplingTerm) else CouplingTerm(**term)
                for term in kwargs["coupling"]
            )
        return cls(**kwargs)

    @classmethod
    def from_json(cls, path: str | Path) -> "SimConfig":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
        if not isinstance(data, dict):
            raise ValueError(
                f"Configuration file {path} must contain a JSON object, "
                f"got {type(data).__name__}."
            )
        return cls.from_mapping(data)
