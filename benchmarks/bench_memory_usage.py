"""Benchmark: Memory usage of a full recorded run.

Uses tracemalloc to measure memory allocated while replaying the default
trial and streaming every sampled record to an in-memory CSV.
"""
from __future__ import annotations

import io
import json
import sys
import tracemalloc
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from crowd_replay.oracle.kinematic import KinematicOracle
from crowd_replay.simulation.driver import SimulationDriver
from crowd_replay.simulation.experiment import (
    ExperimentConfig,
    build_source,
    load_trajectories,
)
from crowd_replay.simulation.recorder import TrajectoryRecorder
from crowd_replay.trajectory.estimator import PreferredVelocityEstimator

_MAX_STEPS: int = 500


def bench_recorded_run_memory() -> dict[str, object]:
    """Benchmark memory usage of one recorded replay.

    Returns
    -------
    dict with keys: operation, iterations, peak_memory_kb, current_memory_kb,
    ops_per_second, avg_latency_ms, memory_peak_mb.
    """
    tracemalloc.start()
    snapshot_before = tracemalloc.take_snapshot()

    config = ExperimentConfig(max_steps=_MAX_STEPS, sample_interval=1)
    oracle = KinematicOracle()
    oracle.configure(config.agent_defaults())
    driver = SimulationDriver(oracle, PreferredVelocityEstimator(config.time_step))
    driver.setup(load_trajectories(config, build_source(config)), config.goal_specs())
    with TrajectoryRecorder(stream=io.StringIO()) as recorder:
        driver.run(sample_interval=config.sample_interval, recorder=recorder)

    snapshot_after = tracemalloc.take_snapshot()
    _, peak_bytes = tracemalloc.get_traced_memory()
    tracemalloc.stop()

    stats = snapshot_after.compare_to(snapshot_before, "lineno")
    current_bytes = sum(stat.size_diff for stat in stats if stat.size_diff > 0)
    peak_kb = round(peak_bytes / 1024, 2)

    result: dict[str, object] = {
        "operation": "recorded_run_memory",
        "iterations": _MAX_STEPS,
        "peak_memory_kb": peak_kb,
        "current_memory_kb": round(current_bytes / 1024, 2),
        "ops_per_second": 0.0,
        "avg_latency_ms": 0.0,
        "memory_peak_mb": round(peak_kb / 1024, 4),
    }
    print(
        f"[bench_memory_usage] {result['operation']}: "
        f"peak {peak_kb:.2f} KB over {_MAX_STEPS} ticks "
        f"({recorder.rows_written} rows)"
    )
    return result


def run_benchmark() -> dict[str, object]:
    """Entry point returning the benchmark result dict."""
    return bench_recorded_run_memory()


if __name__ == "__main__":
    result = run_benchmark()
    results_dir = Path(__file__).parent / "results"
    results_dir.mkdir(exist_ok=True)
    output_path = results_dir / "memory_baseline.json"
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(result, fh, indent=2)
    print(f"Results saved to {output_path}")
