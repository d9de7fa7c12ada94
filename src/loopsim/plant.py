"""Default seed state for the simulator.

The multi-parameter plant is an illustrative grinding circuit:
- ore feed, water addition, mill power and pulp density drive the fraction
- reagent dosage, cyclone pressure, slurry temperature and sump level are
  simulated and displayed but carry no coupling weight

Note: these are demonstration values, not a calibrated process model.
"""

from __future__ import annotations

from typing import Dict

from .parameter import ParameterColor, ProcessParameter

SINGLE_INITIAL_PV = 45.2
SINGLE_INITIAL_SP = 50.0
SINGLE_LOW_LIMIT = 20.0
SINGLE_HIGH_LIMIT = 80.0

INITIAL_FRACTION = 78.5


def _param(
    pid: str,
    name: str,
    unit: str,
    pv: float,
    sp: float,
    low: float,
    high: float,
    color: ParameterColor,
    icon: str,
) -> ProcessParameter:
    return ProcessParameter(
        id=pid,
        name=name,
        unit=unit,
        pv=pv,
        sp=sp,
        ai_sp=sp,
        low_limit=low,
        high_limit=high,
        color=color,
        icon=icon,
    )


def default_parameters() -> Dict[str, ProcessParameter]:
    parameters = [
        _param("ore_feed", "Ore Feed Rate", "t/h", 448.0, 450.0, 380.0, 520.0, ParameterColor.AMBER, "⛏"),
        _param("water_addition", "Water Addition", "m³/h", 118.5, 120.0, 90.0, 150.0, ParameterColor.BLUE, "💧"),
        _param("mill_power", "Mill Power", "kW", 3185.0, 3200.0, 2800.0, 3600.0, ParameterColor.YELLOW, "⚡"),
        _param("reagent_dosage", "Reagent Dosage", "g/t", 42.3, 45.0, 30.0, 60.0, ParameterColor.PURPLE, "🧪"),
        _param("pulp_density", "Pulp Density", "% solids", 67.2, 68.0, 60.0, 75.0, ParameterColor.CYAN, "⚖"),
        _param("cyclone_pressure", "Cyclone Pressure", "kPa", 96.4, 100.0, 80.0, 120.0, ParameterColor.RED, "🌀"),
        _param("slurry_temperature", "Slurry Temperature", "°C", 34.8, 35.0, 25.0, 45.0, ParameterColor.ORANGE, "🌡"),
        _param("sump_level", "Sump Level", "%", 58.1, 60.0, 40.0, 80.0, ParameterColor.GREEN, "📊"),
    ]
    return {parameter.id: parameter for parameter in parameters}
