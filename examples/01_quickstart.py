#!/usr/bin/env python3
"""Example: Quickstart — crowd-replay

Minimal working example: replay a synthetic trial (participant, one avatar,
one goal marker) through the kinematic backend and print the run summary.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install crowd-replay
"""
from __future__ import annotations

import tempfile
from pathlib import Path

import crowd_replay
from crowd_replay import (
    ExperimentConfig,
    KinematicOracle,
    TrajectoryRecorder,
    run_experiment,
)


def main() -> None:
    print(f"crowd-replay version: {crowd_replay.__version__}")

    # Step 1: Describe the trial
    config = ExperimentConfig(n_avatars=1, max_steps=200, sample_interval=20)
    print(f"Goals: {[(g.x, g.y) for g in config.goal_specs()]}")

    with tempfile.TemporaryDirectory() as tmpdir:
        output = Path(tmpdir) / "simulation_output.csv"

        # Step 2: Run it
        result = run_experiment(config, KinematicOracle(), output_path=output)
        for key, value in result.summary().items():
            print(f"  {key}: {value}")

        # Step 3: Read the record stream back
        records = TrajectoryRecorder.load(output)
        print(f"\n{len(records)} rows; first three:")
        for record in records[:3]:
            print(f"  step={record.step} agent={record.agent_id} "
                  f"pos=({record.x:.3f}, {record.y:.3f}) speed={record.speed:.3f}")


if __name__ == "__main__":
    main()
