"""Cross-coupling of parameter PVs into the combined fraction metric."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

import numpy as np

from .config import SimConfig
from .model import uniform_noise


@dataclass(frozen=True, slots=True)
class FractionResult:
    """Fraction value and how it was assembled.

    Attributes:
        value: Weighted sum of influences plus noise.
        influences: Contribution of each coupling term, keyed by parameter id.
        missing: Coupling ids that were absent and replaced by their fallback PV.
    """

    value: float
    influences: dict[str, float]
    missing: tuple[str, ...]


def compute_fraction(
    pvs: Mapping[str, float],
    config: SimConfig,
    rng: np.random.Generator,
) -> FractionResult:
    """Combine current PVs into the fraction: sum((pv/ref) * weight) + U(-a, a)."""
    influences: dict[str, float] = {}
    missing: list[str] = []
    for term in config.coupling:
        pv = pvs.get(term.parameter_id)
        if pv is None:
            missing.append(term.parameter_id)
            pv = term.fallback_pv
        influences[term.parameter_id] = term.contribution(pv)
    value = sum(influences.values()) + uniform_noise(rng, config.fraction_noise)
    return FractionResult(value=float(value), influences=influences, missing=tuple(missing))


def is_optimal(value: float, target: float, config: SimConfig) -> bool:
    return abs(target - value) < config.convergence_tolerance
