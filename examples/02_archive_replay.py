#!/usr/bin/env python3
"""Example: Replaying recorded trajectories

Exports synthetic trajectories as ``.npz`` archives, edits one of them, and
replays the directory.  The avatar archive is removed first so the run falls
back to a synthetic path for it and reports degraded mode.

Usage:
    python examples/02_archive_replay.py

Requirements:
    pip install crowd-replay
"""
from __future__ import annotations

import tempfile
from pathlib import Path

import numpy as np

from crowd_replay import (
    AgentIdentity,
    ExperimentConfig,
    KinematicOracle,
    SyntheticTrajectorySource,
    Trajectory,
    run_experiment,
    save_trajectory,
)


def main() -> None:
    config = ExperimentConfig(n_avatars=1, max_steps=180, sample_interval=30)

    with tempfile.TemporaryDirectory() as tmpdir:
        data_dir = Path(tmpdir) / "trial"

        # A straight walk for the participant, written the same way recordings are stored.
        source = SyntheticTrajectorySource(max_steps=config.max_steps, dt=config.time_step)
        baseline = source.generate(AgentIdentity.participant())
        straight = np.column_stack([
            np.full(config.max_steps, baseline.positions[0][0]),
            np.linspace(baseline.positions[0][1], 20.0, config.max_steps),
        ])
        path = save_trajectory(
            Trajectory.from_positions(AgentIdentity.participant(), straight, config.time_step),
            data_dir,
        )
        print(f"Wrote {path.name}")

        result = run_experiment(
            config,
            KinematicOracle(),
            data_path=data_dir,
            output_path=Path(tmpdir) / "out.csv",
        )
        print(f"Degraded agents: {result.degraded}")
        print(f"Rows written: {result.rows_written}")


if __name__ == "__main__":
    main()
