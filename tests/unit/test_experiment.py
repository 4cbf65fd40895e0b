"""Unit tests for simulation/experiment.py.

Includes an end-to-end replay of the reference scenario (participant, one
avatar, one goal, 500 ticks at 90 Hz) through the kinematic backend.
"""
from __future__ import annotations

import math
import tempfile
from pathlib import Path

import numpy as np
import pytest
from pydantic import ValidationError

from crowd_replay.oracle.kinematic import KinematicOracle
from crowd_replay.simulation.driver import GoalSpec
from crowd_replay.simulation.experiment import (
    ExperimentConfig,
    ExperimentResult,
    build_source,
    load_trajectories,
    run_experiment,
)
from crowd_replay.simulation.recorder import OutputWriteError, TrajectoryRecorder
from crowd_replay.trajectory.models import AgentIdentity, Trajectory
from crowd_replay.trajectory.source import (
    FallbackTrajectorySource,
    SyntheticTrajectorySource,
    save_trajectory,
)


class TestExperimentConfig:
    def test_defaults(self) -> None:
        config = ExperimentConfig()
        assert config.time_step == pytest.approx(1.0 / 90.0)
        assert config.bounds == (10.0, 10.0, 100.0, 100.0)
        assert config.max_steps == 500
        assert config.n_avatars == 10
        assert config.sample_interval == 10

    def test_default_goal(self) -> None:
        goals = ExperimentConfig().goal_specs()
        assert len(goals) == 1
        assert goals[0].x == pytest.approx(10.0)
        assert goals[0].y == pytest.approx(10.0 + math.sqrt(202.0))

    def test_explicit_goals(self) -> None:
        config = ExperimentConfig(goals=[GoalSpec(x=1.0, y=1.0), GoalSpec(x=2.0, y=2.0)])
        assert [g.x for g in config.goal_specs()] == [1.0, 2.0]

    def test_empty_goal_list_means_no_goals(self) -> None:
        assert ExperimentConfig(goals=[]).goal_specs() == []

    def test_identities(self) -> None:
        labels = [i.label for i in ExperimentConfig(n_avatars=2).identities()]
        assert labels == ["P", "A1P", "A2P"]

    def test_invalid_bounds(self) -> None:
        with pytest.raises(ValidationError):
            ExperimentConfig(min_x=50.0, max_x=10.0)

    def test_invalid_sample_interval(self) -> None:
        with pytest.raises(ValidationError):
            ExperimentConfig(sample_interval=0)

    def test_agent_defaults(self) -> None:
        defaults = ExperimentConfig(max_speed=3.0).agent_defaults()
        assert defaults.max_speed == 3.0
        assert defaults.max_neighbors == 10

    def test_yaml_round_trip(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "experiment.yaml"
            config = ExperimentConfig(n_avatars=3, goals=[GoalSpec(x=5.0, y=6.0)], trial=12)
            config.save(path)
            assert ExperimentConfig.load(path) == config

    def test_partial_yaml_takes_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "partial.yaml"
            path.write_text("n_avatars: 4\n", encoding="utf-8")
            config = ExperimentConfig.load(path)
            assert config.n_avatars == 4
            assert config.max_steps == 500

    def test_empty_yaml(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "empty.yaml"
            path.write_text("", encoding="utf-8")
            assert ExperimentConfig.load(path) == ExperimentConfig()

    def test_missing_file(self) -> None:
        with pytest.raises(FileNotFoundError):
            ExperimentConfig.load("/nonexistent/experiment.yaml")


class TestBuildSource:
    def test_synthetic_without_data(self) -> None:
        assert isinstance(build_source(ExperimentConfig()), SyntheticTrajectorySource)

    def test_fallback_with_data(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            assert isinstance(build_source(ExperimentConfig(), tmpdir), FallbackTrajectorySource)

    def test_load_trajectories_covers_roster(self) -> None:
        config = ExperimentConfig(n_avatars=2, max_steps=20)
        trajectories = load_trajectories(config, build_source(config))
        assert list(trajectories) == config.identities()
        assert all(len(t) == 20 for t in trajectories.values())


class TestRunExperiment:
    def test_reference_scenario(self) -> None:
        config = ExperimentConfig(n_avatars=1)
        with tempfile.TemporaryDirectory() as tmpdir:
            output = Path(tmpdir) / "simulation_output.csv"
            result = run_experiment(config, KinematicOracle(), output_path=output)
            records = TrajectoryRecorder.load(output)

        assert isinstance(result, ExperimentResult)
        assert result.ticks == 500
        assert result.registration.agent_count == 3
        # 50 sampled steps (0, 10, ..., 490) x 3 agents.
        assert result.rows_written == 150
        assert len(records) == 150
        assert [r.key for r in records] == sorted(r.key for r in records)

        participant = SyntheticTrajectorySource().generate(AgentIdentity.participant())
        first = records[0]
        assert (first.step, first.agent_id) == (0, 0)
        assert first.x == pytest.approx(participant.positions[0][0])
        assert first.y == pytest.approx(participant.positions[0][1])

        goal_rows = [r for r in records if r.agent_id == 2]
        assert len(goal_rows) == 50
        assert all(r.speed == 0.0 for r in goal_rows)
        assert all(r.x == pytest.approx(10.0) for r in goal_rows)

        summary = result.summary()
        assert summary["total_agents"] == 3
        assert summary["total_steps"] == 500
        assert summary["subject"] == 10
        assert summary["trial"] == 76
        assert summary["degraded"] == []

    def test_zero_steps_writes_header_only(self) -> None:
        config = ExperimentConfig(n_avatars=1, max_steps=0)
        with tempfile.TemporaryDirectory() as tmpdir:
            output = Path(tmpdir) / "out.csv"
            result = run_experiment(config, KinematicOracle(), output_path=output)
            assert output.read_text(encoding="utf-8").splitlines() == ["step,agent_id,x,y,vx,vy,speed"]
        assert result.ticks == 0
        assert result.rows_written == 0

    def test_single_step_writes_one_sample(self) -> None:
        config = ExperimentConfig(n_avatars=0, max_steps=1, goals=[])
        with tempfile.TemporaryDirectory() as tmpdir:
            output = Path(tmpdir) / "out.csv"
            result = run_experiment(config, KinematicOracle(), output_path=output)
            assert result.rows_written == 1
            assert result.ticks == 1

    def test_archive_data_with_fallback(self) -> None:
        config = ExperimentConfig(n_avatars=2, max_steps=30, sample_interval=5)
        with tempfile.TemporaryDirectory() as tmpdir:
            data_dir = Path(tmpdir) / "data"
            positions = np.column_stack([np.full(30, 50.0), np.linspace(10.0, 20.0, 30)])
            save_trajectory(
                Trajectory.from_positions(AgentIdentity.participant(), positions, config.time_step),
                data_dir,
            )
            output = Path(tmpdir) / "out.csv"
            result = run_experiment(config, KinematicOracle(), data_path=data_dir, output_path=output)
            records = TrajectoryRecorder.load(output)

        assert result.degraded == ["A1P", "A2P"]
        first = records[0]
        assert (first.x, first.y) == pytest.approx((50.0, 10.0))

    def test_output_failure(self) -> None:
        config = ExperimentConfig(n_avatars=0, max_steps=5)
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(OutputWriteError):
                run_experiment(config, KinematicOracle(), output_path=tmpdir)
