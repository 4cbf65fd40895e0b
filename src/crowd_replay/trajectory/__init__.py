"""Agent identities, recorded trajectories, sources, and velocity estimation."""
from __future__ import annotations

from crowd_replay.trajectory.estimator import (
    PreferredVelocityEstimator,
    estimate_preferred_velocity,
)
from crowd_replay.trajectory.models import AgentIdentity, AgentRole, Trajectory
from crowd_replay.trajectory.source import (
    ArchiveTrajectorySource,
    DataUnavailableError,
    FallbackTrajectorySource,
    SyntheticTrajectorySource,
    TrajectorySource,
    save_trajectory,
)

__all__ = [
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
]
