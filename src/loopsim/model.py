"""Setpoint/PV update rule shared by both engines.

Each tick a parameter proposes a setpoint and its PV lags toward it:

    ai_sp = clip(sp + U(-a_sp, a_sp), low, high)     (AI enabled)
    ai_sp = manual_sp                                (AI disabled, no clip)
    pv'   = pv + (ai_sp - pv) * gain + U(-a_pv, a_pv)

The manual branch is an operator override, so it is deliberately left
unclamped.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .config import SimConfig


@dataclass(frozen=True, slots=True)
class StepResult:
    """Outcome of one update: the commanded setpoint and the next PV."""

    ai_sp: float
    pv: float
    error: float


def uniform_noise(rng: np.random.Generator, amplitude: float) -> float:
    """Draw from U(-amplitude, amplitude); zero amplitude draws nothing."""
    if amplitude == 0:
        return 0.0
    return float((rng.random() - 0.5) * 2.0 * amplitude)


class ControlLoopModel:
    """First-order-lag loop with a bounded random-walk setpoint optimiser.

    Attributes:
        config: Constants for gain and noise amplitudes.
        rng: Randomness source. Inject a seeded generator for reproducible runs.
    """

    def __init__(self, config: SimConfig | None = None, rng: np.random.Generator | None = None) -> None:
        self.config = config or SimConfig()
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)

    def next_setpoint(
        self,
        current_sp: float,
        ai_enabled: bool,
        manual_sp: float,
        low: float,
        high: float,
    ) -> float:
        if not ai_enabled:
            return float(manual_sp)
        proposal = current_sp + uniform_noise(self.rng, self.config.setpoint_noise)
        return float(np.clip(proposal, low, high))

    def next_pv(self, pv: float, setpoint: float) -> tuple[float, float]:
        """Return ``(pv', error)`` where ``error`` is measured before the move."""
        error = setpoint - pv
        pv_next = pv + error * self.config.gain + uniform_noise(self.rng, self.config.pv_noise)
        return float(pv_next), float(error)

    def step(
        self,
        pv: float,
        current_sp: float,
        ai_enabled: bool,
        manual_sp: float,
        low: float,
        high: float,
    ) -> StepResult:
        ai_sp = self.next_setpoint(current_sp, ai_enabled, manual_sp, low, high)
        pv_next, error = self.next_pv(pv, ai_sp)
        return StepResult(ai_sp=ai_sp, pv=pv_next, error=error)
