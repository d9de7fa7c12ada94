"""Command-line entry point for running a headless loopsim simulation."""

from __future__ import annotations

import argparse
import os
import sys
import time
from dataclasses import replace
from pathlib import Path

from .analysis import SimulationRun
from .config import SimConfig
from .engine import MultiParameterEngine, SingleParameterEngine


def format_duration(seconds: float) -> str:
    """Format duration in seconds to human-readable string."""
    if seconds < 60:
        return f"{seconds:.2f}s"
    minutes = int(seconds // 60)
    secs = seconds % 60
    return f"{minutes}m {secs:.1f}s"


def print_header(text: str, width: int = 70) -> None:
    """Print a formatted section header."""
    print("\n" + "=" * width)
    print(f"  {text}")
    print("=" * width)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="loopsim",
        description="Run the illustrative control-loop simulator without a UI.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s multi                          # 60 ticks of the eight-parameter plant
  %(prog)s single --ticks 200 --seed 7    # reproducible single loop
  %(prog)s single --no-ai --manual-sp 95  # operator override outside the limits
  %(prog)s multi --realtime --ticks 5     # tick on the wall clock (2 s period)
        """,
    )
    parser.add_argument("mode", choices=("single", "multi"), help="Engine variant to run.")
    parser.add_argument("--ticks", type=int, default=60, help="Number of ticks to simulate (default: 60).")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the random source.")
    parser.add_argument("--config", type=Path, default=None, help="JSON file overriding configuration constants.")
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("artifacts"),
        help="Directory where trend.csv, trend.png and summary.txt are written (default: artifacts).",
    )
    parser.add_argument("--no-ai", action="store_true", help="Disable AI setpoint perturbation.")
    parser.add_argument(
        "--manual-sp",
        type=float,
        default=None,
        help="Manual setpoint used while AI is disabled (single mode only).",
    )
    parser.add_argument("--target", type=float, default=None, help="Target fraction (multi mode only).")
    parser.add_argument("--realtime", action="store_true", help="Tick on the configured wall-clock interval.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show detailed output.")
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress all output except errors and the final value.")
    return parser


def load_config(args: argparse.Namespace) -> SimConfig:
    config = SimConfig.from_json(args.config) if args.config is not None else SimConfig()
    if args.seed is not None:
        config = replace(config, seed=args.seed)
    return config


def build_engine(args: argparse.Namespace, config: SimConfig) -> SingleParameterEngine | MultiParameterEngine:
    if args.mode == "single":
        if args.target is not None:
            raise ValueError("--target only applies to multi mode.")
        engine = SingleParameterEngine(config)
        if args.manual_sp is not None:
            engine.set_manual_setpoint(args.manual_sp)
        engine.set_ai_enabled(not args.no_ai)
        return engine
    if args.manual_sp is not None:
        raise ValueError("--manual-sp only applies to single mode.")
    engine = MultiParameterEngine(config)
    if args.target is not None:
        engine.set_target_fraction(args.target)
    engine.set_ai_enabled(not args.no_ai)
    return engine


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    # Set global verbosity level (used by other modules)
    if args.quiet:
        os.environ["LOOPSIM_VERBOSITY"] = "0"
    elif args.verbose:
        os.environ["LOOPSIM_VERBOSITY"] = "2"
    else:
        os.environ["LOOPSIM_VERBOSITY"] = "1"

    start_time = time.time()
    try:
        config = load_config(args)
        engine = build_engine(args, config)
        if not args.quiet:
            print_header(f"loopsim {args.mode}-parameter simulation")
            print(f"\nOutput directory: {args.output_dir.resolve()}")
        try:
            timeout = None
            if args.realtime:
                interval = config.single_tick_interval if args.mode == "single" else config.multi_tick_interval
                timeout = interval * (args.ticks + 2)
            artifacts = SimulationRun(engine).run(
                args.ticks, output_dir=args.output_dir, realtime=args.realtime, timeout=timeout
            )
        finally:
            engine.dispose()
    except FileNotFoundError as e:
        print(f"\nError: file not found: {e}", file=sys.stderr)
        return 1
    except (ValueError, KeyError) as e:
        print(f"\nError: invalid input: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        elapsed = time.time() - start_time
        print(
            f"\nError after {format_duration(elapsed)}: {e}\n"
            f"For help, run: python -m loopsim --help",
            file=sys.stderr,
        )
        return 1

    elapsed = time.time() - start_time
    final = artifacts.final
    if args.quiet:
        if artifacts.mode == "single":
            print(f"{final.pv:.4f}")
        else:
            print(f"{final.fraction.value:.4f}")
        return 0

    print("\n" + artifacts.tables)
    if args.verbose:
        print(f"\nRuntime: {format_duration(elapsed)}")
        print(f"Ticks recorded: {len(artifacts.frame)}")
    print_header("Simulation Complete")
    print(f"Results written to: {args.output_dir.resolve()}\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
