"""Headless runs: advance an engine, collect the trajectory, write artifacts."""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

import matplotlib.pyplot as plt
import pandas as pd
from tqdm import tqdm

from .engine import (
    MultiParameterEngine,
    MultiParameterSnapshot,
    SingleParameterEngine,
    SingleParameterSnapshot,
)
from .parameter import ParameterColor
from .reporting import summarize_parameters, summarize_single

Engine = Union[SingleParameterEngine, MultiParameterEngine]
Snapshot = Union[SingleParameterSnapshot, MultiParameterSnapshot]

PLOT_COLORS = {
    ParameterColor.AMBER: "#f59e0b",
    ParameterColor.BLUE: "#3b82f6",
    ParameterColor.CYAN: "#06b6d4",
    ParameterColor.YELLOW: "#eab308",
    ParameterColor.PURPLE: "#a855f7",
    ParameterColor.RED: "#ef4444",
    ParameterColor.GREEN: "#10b981",
    ParameterColor.ORANGE: "#f97316",
}


def _get_verbosity() -> int:
    """Get verbosity level from environment: 0=quiet, 1=normal, 2=verbose."""
    try:
        return int(os.environ.get("LOOPSIM_VERBOSITY", "1"))
    except ValueError:
        return 1


@dataclass(slots=True)
class RunArtifacts:
    mode: str
    frame: pd.DataFrame
    final: Snapshot
    tables: str
    output_dir: Optional[Path]


def single_trajectory_frame(snapshots: Sequence[SingleParameterSnapshot]) -> pd.DataFrame:
    rows = [
        {
            "tick": snap.tick,
            "timestamp": snap.timestamp,
            "pv": snap.pv,
            "sp": snap.sp,
            "ai_sp": snap.ai_sp,
            "low_limit": snap.low_limit,
            "high_limit": snap.high_limit,
            "error": snap.status.error,
            "status": snap.status.status.value,
            "direction": snap.status.direction.value,
        }
        for snap in snapshots
    ]
    return pd.DataFrame(rows)


def multi_trajectory_frame(snapshots: Sequence[MultiParameterSnapshot]) -> pd.DataFrame:
    rows = []
    for snap in snapshots:
        row = {
            "tick": snap.tick,
            "timestamp": snap.timestamp,
            "fraction": snap.fraction.value,
            "target": snap.fraction.target,
            "is_optimal": snap.is_optimal,
        }
        for parameter in snap.parameters:
            row[f"{parameter.id}_pv"] = parameter.pv
            row[f"{parameter.id}_sp"] = parameter.sp
        rows.append(row)
    return pd.DataFrame(rows)


class SimulationRun:
    """Drive an engine for a fixed number of ticks and summarise the result."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.mode = "single" if isinstance(engine, SingleParameterEngine) else "multi"

    def _collect_stepped(self, ticks: int, disable_pbar: bool) -> List[Snapshot]:
        snapshots: List[Snapshot] = []
        for _ in tqdm(range(ticks), desc=f"Simulating ({self.mode})", disable=disable_pbar, leave=False):
            snapshots.append(self.engine.tick())
        return snapshots

    def _collect_realtime(self, ticks: int, timeout: Optional[float]) -> List[Snapshot]:
        snapshots: List[Snapshot] = []
        done = threading.Event()

        def on_tick(snapshot: Snapshot) -> None:
            if len(snapshots) < ticks:
                snapshots.append(snapshot)
            if len(snapshots) >= ticks:
                done.set()

        unsubscribe = self.engine.subscribe(on_tick)
        try:
            self.engine.start()
            done.wait(timeout)
        finally:
            self.engine.stop()
            unsubscribe()
        if not snapshots:
            raise RuntimeError("No ticks completed before the timeout expired.")
        return snapshots

    def _plot_single(self, frame: pd.DataFrame, out_path: Path) -> None:
        plt.figure(figsize=(8.0, 4.5))
        plt.plot(frame["tick"], frame["pv"], "-", label="PV", linewidth=2.0)
        plt.plot(frame["tick"], frame["sp"], "--", label="SP", linewidth=1.5)
        plt.plot(frame["tick"], frame["low_limit"], ":", color="grey", label="Limits")
        plt.plot(frame["tick"], frame["high_limit"], ":", color="grey")
        plt.xlabel("Tick")
        plt.ylabel("Value")
        plt.title("Single-parameter trend")
        plt.grid(True, alpha=0.3)
        plt.legend()
        plt.tight_layout()
        plt.savefig(out_path)
        plt.close()

    def _plot_multi(self, frame: pd.DataFrame, final: MultiParameterSnapshot, out_path: Path) -> None:
        fig = plt.figure(figsize=(12.0, 9.0))
        grid = fig.add_gridspec(3, 4)
        ax = fig.add_subplot(grid[0, :])
        ax.plot(frame["tick"], frame["fraction"], "-", label="Fraction", linewidth=2.0)
        ax.plot(frame["tick"], frame["target"], "--", label="Target", linewidth=1.5)
        ax.set_ylabel("Fraction [%]")
        ax.set_title("Main process fraction")
        ax.grid(True, alpha=0.3)
        ax.legend()
        for idx, parameter in enumerate(final.parameters[:8]):
            sub = fig.add_subplot(grid[1 + idx // 4, idx % 4])
            sub.plot(frame["tick"], frame[f"{parameter.id}_pv"], "-", color=PLOT_COLORS[parameter.color], linewidth=1.2)
            sub.plot(frame["tick"], frame[f"{parameter.id}_sp"], "--", color="grey", linewidth=1.0)
            sub.set_title(f"{parameter.name} [{parameter.unit}]", fontsize=9)
            sub.tick_params(labelsize=7)
            sub.grid(True, alpha=0.3)
        fig.tight_layout()
        fig.savefig(out_path)
        plt.close(fig)

    def run(
        self,
        ticks: int,
        output_dir: str | Path | None = None,
        realtime: bool = False,
        timeout: Optional[float] = None,
    ) -> RunArtifacts:
        if ticks < 1:
            raise ValueError(f"ticks must be at least 1, got {ticks}.")
        verbosity = _get_verbosity()

        if verbosity >= 1:
            print(f"Running {ticks} {self.mode}-parameter tick(s){' in real time' if realtime else ''}...")

        if realtime:
            snapshots = self._collect_realtime(ticks, timeout)
        else:
            snapshots = self._collect_stepped(ticks, disable_pbar=verbosity == 0)

        final = snapshots[-1]
        if self.mode == "single":
            frame = single_trajectory_frame(snapshots)
            tables = summarize_single(final)
        else:
            frame = multi_trajectory_frame(snapshots)
            tables = summarize_parameters(final)

        artifact_dir = Path(output_dir) if output_dir else None
        if artifact_dir is not None:
            artifact_dir.mkdir(parents=True, exist_ok=True)
            if verbosity >= 1:
                print(f"Writing artifacts to {artifact_dir}...")
            frame.to_csv(artifact_dir / "trend.csv", index=False)
            if self.mode == "single":
                self._plot_single(frame, artifact_dir / "trend.png")
            else:
                self._plot_multi(frame, final, artifact_dir / "trend.png")
            (artifact_dir / "summary.txt").write_text(tables, encoding="utf-8")

        return RunArtifacts(mode=self.mode, frame=frame, final=final, tables=tables, output_dir=artifact_dir)


def run_simulation(
    mode: str = "multi",
    ticks: int = 60,
    output_dir: str | Path | None = None,
    engine: Engine | None = None,
) -> RunArtifacts:
    if engine is None:
        if mode == "single":
            engine = SingleParameterEngine()
        elif mode == "multi":
            engine = MultiParameterEngine()
        else:
            raise ValueError(f"mode must be 'single' or 'multi', got '{mode}'.")
    try:
        return SimulationRun(engine).run(ticks, output_dir=output_dir)
    finally:
        engine.dispose()
