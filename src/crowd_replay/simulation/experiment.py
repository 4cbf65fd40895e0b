"""Experiment configuration and one-call orchestration of a replay run.

An :class:`ExperimentConfig` captures every constant of a re-simulated
trial: oracle agent defaults, arena bounds, roster size, sampling, goal
positions, and where to write the output.  Configurations are persisted as
YAML for human readability.

:func:`run_experiment` wires the pieces together::

    config = ExperimentConfig()
    result = run_experiment(config, KinematicOracle())
    print(result.summary())
"""
from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, model_validator

from crowd_replay.oracle.base import AgentDefaults, AvoidanceOracle
from crowd_replay.simulation.driver import GoalSpec, RegistrationReport, SimulationDriver
from crowd_replay.simulation.recorder import TrajectoryRecorder
from crowd_replay.trajectory.estimator import PreferredVelocityEstimator
from crowd_replay.trajectory.models import AgentIdentity, Trajectory
from crowd_replay.trajectory.source import (
    ArchiveTrajectorySource,
    FallbackTrajectorySource,
    SyntheticTrajectorySource,
    TrajectorySource,
)

logger = logging.getLogger(__name__)

# Goal marker of the reference trial (subject 10, trial 76).
DEFAULT_GOAL_OFFSET: float = math.sqrt(9**2 + 11**2)


class ExperimentConfig(BaseModel):
    """All tunable constants of a replay experiment.

    Attributes
    ----------
    time_step:
        Tick duration in seconds (the trials were captured at 90 Hz).
    neighbor_dist, max_neighbors, time_horizon, time_horizon_obst, radius, max_speed:
        Avoidance oracle agent defaults.
    min_x, min_y, max_x, max_y:
        Arena bounds used by the synthetic trajectory generator.
    max_steps:
        Samples per synthetic trajectory.
    n_avatars:
        Number of avatar agents (labelled ``A1P`` .. ``A<n>P``).
    sample_interval:
        Record agent state every this many ticks.
    subject, trial:
        Identifiers of the re-simulated trial, reported in the summary.
    goals:
        Static goal markers.  ``None`` places one goal at
        ``(min_x, min_y + sqrt(9² + 11²))``.
    output_path:
        CSV file receiving the record stream.
    """

    time_step: float = Field(default=1.0 / 90.0, gt=0.0)
    neighbor_dist: float = Field(default=15.0, ge=0.0)
    max_neighbors: int = Field(default=10, ge=0)
    time_horizon: float = Field(default=10.0, gt=0.0)
    time_horizon_obst: float = Field(default=10.0, gt=0.0)
    radius: float = Field(default=0.5, ge=0.0)
    max_speed: float = Field(default=2.0, ge=0.0)

    min_x: float = 10.0
    min_y: float = 10.0
    max_x: float = 100.0
    max_y: float = 100.0

    max_steps: int = Field(default=500, ge=0)
    n_avatars: int = Field(default=10, ge=0)
    sample_interval: int = Field(default=10, ge=1)

    subject: int = 10
    trial: int = 76

    goals: list[GoalSpec] | None = None
    output_path: str = "simulation_output.csv"

    @model_validator(mode="after")
    def _check_bounds(self) -> "ExperimentConfig":
        if self.max_x <= self.min_x or self.max_y <= self.min_y:
            raise ValueError(
                f"invalid bounds ({self.min_x}, {self.min_y}) to ({self.max_x}, {self.max_y})"
            )
        return self

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        return (self.min_x, self.min_y, self.max_x, self.max_y)

    def agent_defaults(self) -> AgentDefaults:
        return AgentDefaults(
            time_step=self.time_step,
            neighbor_dist=self.neighbor_dist,
            max_neighbors=self.max_neighbors,
            time_horizon=self.time_horizon,
            time_horizon_obst=self.time_horizon_obst,
            radius=self.radius,
            max_speed=self.max_speed,
        )

    def goal_specs(self) -> list[GoalSpec]:
        if self.goals is not None:
            return list(self.goals)
        return [GoalSpec(x=self.min_x, y=self.min_y + DEFAULT_GOAL_OFFSET)]

    def identities(self) -> list[AgentIdentity]:
        """Participant followed by every avatar, in registration order."""
        return [AgentIdentity.participant()] + [
            AgentIdentity.avatar(k) for k in range(1, self.n_avatars + 1)
        ]

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, path: str | Path) -> Path:
        """Write this configuration to *path* as YAML."""
        destination = Path(path)
        destination.parent.mkdir(parents=True, exist_ok=True)
        with destination.open("w", encoding="utf-8") as f:
            yaml.safe_dump(self.model_dump(), f, default_flow_style=False, sort_keys=False)
        logger.info("Saved experiment config to %s", destination)
        return destination

    @classmethod
    def load(cls, path: str | Path) -> "ExperimentConfig":
        """Load a configuration from YAML.  Missing keys take defaults.

        Raises
        ------
        FileNotFoundError
            If *path* does not exist.
        """
        source = Path(path)
        if not source.exists():
            raise FileNotFoundError(f"Experiment config not found at {source}")
        with source.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        config = cls.model_validate(data)
        logger.debug("Loaded experiment config from %s", source)
        return config


@dataclass
class ExperimentResult:
    """Outcome of :func:`run_experiment`.

    Attributes
    ----------
    config:
        Configuration the run used.
    registration:
        Agent roster reported by setup.
    ticks:
        Number of ticks executed.
    rows_written:
        Records persisted to the output stream.
    output_path:
        CSV file written.
    wall_time_seconds:
        Elapsed wall-clock time.
    degraded:
        Labels of agents whose recorded data was unavailable and that were
        replaced by synthetic trajectories.
    """

    config: ExperimentConfig
    registration: RegistrationReport
    ticks: int = 0
    rows_written: int = 0
    output_path: Path | None = None
    wall_time_seconds: float = 0.0
    degraded: list[str] = field(default_factory=list)

    def summary(self) -> dict[str, object]:
        """Statistics of the run as a plain dict."""
        config = self.config
        return {
            "subject": config.subject,
            "trial": config.trial,
            "time_step": config.time_step,
            "total_steps": self.ticks,
            "total_agents": self.registration.agent_count,
            "bounds": config.bounds,
            "rows_written": self.rows_written,
            "output_path": str(self.output_path) if self.output_path else None,
            "wall_time_seconds": self.wall_time_seconds,
            "degraded": list(self.degraded),
        }


def build_source(config: ExperimentConfig, data_path: str | Path | None = None) -> TrajectorySource:
    """Trajectory source for *config*.

    Without *data_path* trajectories are synthetic.  With it, archives under
    *data_path* are preferred and any missing agent falls back to synthetic
    generation with a logged warning.
    """
    synthetic = SyntheticTrajectorySource(
        max_steps=config.max_steps,
        dt=config.time_step,
        bounds=config.bounds,
    )
    if data_path is None:
        return synthetic
    archive = ArchiveTrajectorySource(data_path, dt=config.time_step)
    return FallbackTrajectorySource(archive, synthetic)


def load_trajectories(
    config: ExperimentConfig,
    source: TrajectorySource,
) -> dict[AgentIdentity, Trajectory]:
    """Generate a trajectory for every moving agent of *config*."""
    return {identity: source.generate(identity) for identity in config.identities()}


def run_experiment(
    config: ExperimentConfig,
    oracle: AvoidanceOracle,
    data_path: str | Path | None = None,
    output_path: str | Path | None = None,
) -> ExperimentResult:
    """Configure, set up, and run one replay, streaming records to CSV.

    Parameters
    ----------
    config:
        Experiment constants.
    oracle:
        Fresh oracle with no agents; configured here.
    data_path:
        Optional directory of recorded ``.npz`` trajectories.
    output_path:
        Overrides ``config.output_path``.

    Returns
    -------
    ExperimentResult

    Raises
    ------
    DataUnavailableError
        If neither recorded nor synthetic data can be produced.
    OracleRegistrationError
        If the oracle rejects an agent; no tick is executed.
    OutputWriteError
        If the output stream fails; the run is abandoned.
    """
    t_start = time.monotonic()
    destination = Path(output_path if output_path is not None else config.output_path)

    oracle.configure(config.agent_defaults())
    source = build_source(config, data_path)
    trajectories = load_trajectories(config, source)

    driver = SimulationDriver(oracle, PreferredVelocityEstimator(config.time_step))
    registration = driver.setup(trajectories, config.goal_specs())

    logger.info(
        "Subject %d, trial %d: %d agents, %d ticks of %.6fs",
        config.subject,
        config.trial,
        registration.agent_count,
        registration.tick_budget,
        config.time_step,
    )

    with TrajectoryRecorder(destination) as recorder:
        driver.run(sample_interval=config.sample_interval, recorder=recorder)

    degraded = source.degraded if isinstance(source, FallbackTrajectorySource) else []
    result = ExperimentResult(
        config=config,
        registration=registration,
        ticks=driver.current_tick,
        rows_written=recorder.rows_written,
        output_path=destination,
        wall_time_seconds=time.monotonic() - t_start,
        degraded=[identity.label for identity in degraded],
    )
    logger.info("Simulation completed. Output saved to %s", destination)
    return result
