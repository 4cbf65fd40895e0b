#!/usr/bin/env python3
"""Example: Driving the simulation by hand

Uses SimulationDriver directly: explicit setup, manual ticks, and a
snapshot after each batch.  Swap ``KinematicOracle`` for ``RVO2Oracle``
(``pip install crowd-replay[rvo2]``) to get collision avoidance.

Usage:
    python examples/03_driver_stepping.py

Requirements:
    pip install crowd-replay
"""
from __future__ import annotations

from crowd_replay import (
    AgentIdentity,
    ExperimentConfig,
    GoalSpec,
    KinematicOracle,
    PreferredVelocityEstimator,
    SimulationDriver,
    SyntheticTrajectorySource,
)


def main() -> None:
    config = ExperimentConfig(n_avatars=2, max_steps=90)
    oracle = KinematicOracle()
    oracle.configure(config.agent_defaults())

    source = SyntheticTrajectorySource(max_steps=config.max_steps, dt=config.time_step)
    trajectories = [source.generate(identity) for identity in config.identities()]

    driver = SimulationDriver(oracle, PreferredVelocityEstimator(config.time_step))
    report = driver.setup(trajectories, [GoalSpec(x=20.0, y=30.0)])
    print(f"Registered: {report.summary()}")
    print(f"A2P is agent {driver.handle_for(AgentIdentity.avatar(2))}")

    for _ in range(3):
        for _ in range(30):
            driver.tick()
        print(f"\nAfter {driver.current_tick} ticks:")
        for record in driver.snapshot():
            print(f"  agent {record.agent_id}: ({record.x:7.3f}, {record.y:7.3f}) "
                  f"speed {record.speed:.3f}")


if __name__ == "__main__":
    main()
