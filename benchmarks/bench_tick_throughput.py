"""Benchmark: Driver tick throughput — ticks per second.

Measures how many SimulationDriver.tick() calls complete per second for the
full default roster (participant, ten avatars, one goal) on the kinematic
backend, so the number reflects estimation and dispatch overhead rather
than avoidance solving.
"""
from __future__ import annotations

import json
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from crowd_replay.oracle.kinematic import KinematicOracle
from crowd_replay.simulation.driver import SimulationDriver
from crowd_replay.simulation.experiment import (
    ExperimentConfig,
    build_source,
    load_trajectories,
)
from crowd_replay.trajectory.estimator import PreferredVelocityEstimator

_ITERATIONS: int = 5_000


def _make_driver() -> SimulationDriver:
    """Set up a driver over the default synthetic roster."""
    config = ExperimentConfig(max_steps=_ITERATIONS)
    oracle = KinematicOracle()
    oracle.configure(config.agent_defaults())
    driver = SimulationDriver(oracle, PreferredVelocityEstimator(config.time_step))
    driver.setup(load_trajectories(config, build_source(config)), config.goal_specs())
    return driver


def bench_tick_throughput() -> dict[str, object]:
    """Benchmark SimulationDriver.tick() throughput.

    Returns
    -------
    dict with keys: operation, iterations, total_seconds, ops_per_second,
    avg_latency_ms, p99_latency_ms, memory_peak_mb.
    """
    driver = _make_driver()

    latencies: list[float] = []
    start = time.perf_counter()
    for _ in range(_ITERATIONS):
        t0 = time.perf_counter()
        driver.tick()
        latencies.append(time.perf_counter() - t0)
    total = time.perf_counter() - start

    latencies.sort()
    p99 = latencies[int(len(latencies) * 0.99) - 1]
    result: dict[str, object] = {
        "operation": "driver_tick_throughput",
        "iterations": _ITERATIONS,
        "total_seconds": round(total, 4),
        "ops_per_second": round(_ITERATIONS / total, 1),
        "avg_latency_ms": round(total / _ITERATIONS * 1000, 4),
        "p99_latency_ms": round(p99 * 1000, 4),
        "memory_peak_mb": 0.0,
    }
    print(
        f"[bench_tick_throughput] {result['operation']}: "
        f"{result['ops_per_second']:,.0f} ticks/sec  "
        f"avg {result['avg_latency_ms']:.4f} ms"
    )
    return result


def run_benchmark() -> dict[str, object]:
    """Entry point returning the benchmark result dict."""
    return bench_tick_throughput()


if __name__ == "__main__":
    result = run_benchmark()
    results_dir = Path(__file__).parent / "results"
    results_dir.mkdir(exist_ok=True)
    output_path = results_dir / "throughput_baseline.json"
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(result, fh, indent=2)
    print(f"Results saved to {output_path}")
