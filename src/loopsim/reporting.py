"""Reporting utilities for engine snapshots."""

from __future__ import annotations

from tabulate import tabulate

from .engine import MultiParameterSnapshot, SingleParameterSnapshot
from .status import Classification, gauge_fill_percent


def _fmt_deviation(status: Classification) -> str:
    if status.deviation_percent is None:
        return "n/a"
    return f"{status.deviation_percent:.1f}"


def summarize_single(snapshot: SingleParameterSnapshot) -> str:
    status = snapshot.status
    rows = [
        ("PV", f"{snapshot.pv:.2f}"),
        ("SP", f"{snapshot.sp:.2f}"),
        ("Mode", "AI" if snapshot.ai_enabled else f"Manual ({snapshot.manual_sp:.2f})"),
        ("Bounds", f"[{snapshot.low_limit:.1f}, {snapshot.high_limit:.1f}]"),
        ("Error", f"{status.error:+.2f}"),
        ("Deviation [%]", _fmt_deviation(status)),
        ("Status", status.status.value),
        ("Action", status.action),
    ]
    table = tabulate(rows, headers=["Field", "Value"], tablefmt="github")
    return table + f"\nSamples in history: {len(snapshot.history)} (tick {snapshot.tick})"


def summarize_parameters(snapshot: MultiParameterSnapshot) -> str:
    rows: list[tuple] = []
    for parameter, status in zip(snapshot.parameters, snapshot.parameter_status):
        rows.append(
            (
                parameter.name,
                parameter.unit,
                f"{parameter.pv:.2f}",
                f"{parameter.sp:.2f}",
                f"{parameter.low_limit:g}",
                f"{parameter.high_limit:g}",
                f"{status.error:+.2f}",
                _fmt_deviation(status),
                f"{gauge_fill_percent(parameter.pv, parameter.low_limit, parameter.high_limit):.0f}",
                "OK" if status.converged else "ADJ",
            )
        )
    table = tabulate(
        rows,
        headers=["Parameter", "Unit", "PV", "SP", "Low", "High", "Error", "Dev [%]", "Fill [%]", "State"],
        tablefmt="github",
    )
    fraction = snapshot.fraction
    state = "OPTIMAL" if snapshot.is_optimal else "OPTIMIZING"
    overall = (
        f"Fraction: {fraction.value:.2f}% (target {fraction.target:.2f}%, "
        f"error {snapshot.fraction_status.error:+.2f}) -> {state}, {snapshot.fraction_status.action}"
    )
    lines = [table, overall]
    if snapshot.missing_parameters:
        lines.append(f"Fallback PVs used for: {', '.join(snapshot.missing_parameters)}")
    return "\n".join(lines)
