"""
Basic Usage Example for loopsim

This script demonstrates the fundamental workflow:
1. Create a multi-parameter engine with a seeded random source
2. Subscribe to post-tick snapshots
3. Change inputs between ticks (target, bounds, manual override)
4. Inspect convergence status and plot the fraction trend
"""

import matplotlib.pyplot as plt
import numpy as np

from loopsim import MultiParameterEngine, SimConfig
from loopsim.reporting import summarize_parameters


def main():
    print("=" * 60)
    print("loopsim Basic Usage Example")
    print("=" * 60)

    # Step 1: Create engine
    print("\n[1] Creating multi-parameter engine...")
    config = SimConfig()  # Use default constants
    engine = MultiParameterEngine(config, rng=np.random.default_rng(2024))
    snap = engine.snapshot()
    print(f"    Parameters: {', '.join(p.name for p in snap.parameters)}")
    print(f"    Fraction: {snap.fraction.value:.1f}% (target {snap.fraction.target:.1f}%)")
    print(f"    Status: {snap.fraction_status.status.value} / {snap.fraction_status.direction.value}")

    # Step 2: Subscribe
    print("\n[2] Subscribing to snapshots...")
    fractions = []
    unsubscribe = engine.subscribe(lambda s: fractions.append((s.tick, s.fraction.value, s.fraction.target)))

    # Step 3: Drive ticks directly (engine.start() would tick every 2 s instead)
    print("\n[3] Simulating 40 ticks, lowering the target after 20...")
    engine.advance(20)
    engine.set_target_fraction(80.0)
    engine.set_parameter_bounds("ore_feed", 440.0, 470.0)
    snap = engine.advance(20)
    unsubscribe()

    # Step 4: Report
    print("\n[4] Final state:")
    print(summarize_parameters(snap))

    ticks, values, targets = zip(*fractions)
    plt.figure(figsize=(8, 4.5))
    plt.plot(ticks, values, "-", label="Fraction", linewidth=2)
    plt.plot(ticks, targets, "--", label="Target", linewidth=1.5)
    plt.xlabel("Tick")
    plt.ylabel("Fraction [%]")
    plt.title("Fraction vs. target")
    plt.legend()
    plt.grid(alpha=0.3)
    plt.tight_layout()
    plt.savefig("loopsim_basic_example.png", dpi=150)
    print("\n    Saved to: loopsim_basic_example.png")

    engine.dispose()


if __name__ == "__main__":
    main()
