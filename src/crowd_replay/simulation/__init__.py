"""Simulation driving, record streaming, and experiment orchestration."""
from __future__ import annotations

from crowd_replay.simulation.driver import (
    AgentBinding,
    GoalSpec,
    NotInitializedError,
    RegistrationReport,
    SimulationDriver,
)
from crowd_replay.simulation.experiment import (
    ExperimentConfig,
    ExperimentResult,
    build_source,
    load_trajectories,
    run_experiment,
)
from crowd_replay.simulation.recorder import (
    CSV_HEADER,
    OutputWriteError,
    TickRecord,
    TrajectoryRecorder,
)

__all__ = [
    "SimulationDriver",
    "AgentBinding",
    "GoalSpec",
    "RegistrationReport",
    "NotInitializedError",
    "TrajectoryRecorder",
    "TickRecord",
    "CSV_HEADER",
    "OutputWriteError",
    "ExperimentConfig",
    "ExperimentResult",
    "build_source",
    "load_trajectories",
    "run_experiment",
]
