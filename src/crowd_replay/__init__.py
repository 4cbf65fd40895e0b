"""crowd-replay — replay recorded pedestrian trajectories through collision avoidance.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Quick-start example
-------------------
>>> import crowd_replay as cr
>>> cr.__version__
'0.1.0'

Subpackages
-----------
trajectory:
    Agent identities, recorded trajectories, trajectory sources, and
    preferred-velocity estimation.
oracle:
    Collision-avoidance oracle protocol with RVO2 and kinematic backends.
simulation:
    Simulation driver, CSV record streaming, and experiment orchestration.
"""
from __future__ import annotations

__version__: str = "0.1.0"

# -- Trajectory -----------------------------------------------------------
from crowd_replay.trajectory import (
    AgentIdentity,
    AgentRole,
    ArchiveTrajectorySource,
    DataUnavailableError,
    FallbackTrajectorySource,
    PreferredVelocityEstimator,
    SyntheticTrajectorySource,
    Trajectory,
    TrajectorySource,
    estimate_preferred_velocity,
    save_trajectory,
)

# -- Oracle ---------------------------------------------------------------
from crowd_replay.oracle import (
    AgentDefaults,
    AvoidanceOracle,
    KinematicOracle,
    OracleRegistrationError,
    RVO2Oracle,
    create_oracle,
)

# -- Simulation -----------------------------------------------------------
from crowd_replay.simulation import (
    AgentBinding,
    ExperimentConfig,
    ExperimentResult,
    GoalSpec,
    NotInitializedError,
    OutputWriteError,
    RegistrationReport,
    SimulationDriver,
    TickRecord,
    TrajectoryRecorder,
    run_experiment,
)

__all__: list[str] = [
    "__version__",
    # trajectory
    "AgentIdentity",
    "AgentRole",
    "Trajectory",
    "TrajectorySource",
    "SyntheticTrajectorySource",
    "ArchiveTrajectorySource",
    "FallbackTrajectorySource",
    "DataUnavailableError",
    "save_trajectory",
    "PreferredVelocityEstimator",
    "estimate_preferred_velocity",
    # oracle
    "AgentDefaults",
    "AvoidanceOracle",
    "OracleRegistrationError",
    "KinematicOracle",
    "RVO2Oracle",
    "create_oracle",
    # simulation
    "SimulationDriver",
    "AgentBinding",
    "GoalSpec",
    "RegistrationReport",
    "NotInitializedError",
    "TrajectoryRecorder",
    "TickRecord",
    "OutputWriteError",
    "ExperimentConfig",
    "ExperimentResult",
    "run_experiment",
]
