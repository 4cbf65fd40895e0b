"""Unit tests for the CLI commands.

Uses Click's CliRunner to invoke all commands without launching a real process.
Covers:
- cli root group (--help, --version, --log-level)
- version command
- run (kinematic backend, archive data with fallback, config file, overrides,
  missing rvo2, bad config, unwritable output)
- generate (archives written and replayable)
- config show (defaults, file overrides)
"""
from __future__ import annotations

import tempfile
from pathlib import Path
from unittest.mock import patch

import yaml
from click.testing import CliRunner

import crowd_replay
from crowd_replay.cli.main import cli
from crowd_replay.oracle import rvo as rvo_module
from crowd_replay.simulation.recorder import TrajectoryRecorder


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _runner() -> CliRunner:
    return CliRunner()


def _write_config(directory: str, **values: object) -> str:
    path = Path(directory) / "experiment.yaml"
    path.write_text(yaml.safe_dump(values), encoding="utf-8")
    return str(path)


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


class TestCliRoot:
    def test_help(self) -> None:
        result = _runner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "trajectories" in result.output.lower()

    def test_version_option(self) -> None:
        result = _runner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert crowd_replay.__version__ in result.output

    def test_log_level_option_accepted(self) -> None:
        result = _runner().invoke(cli, ["--log-level", "DEBUG", "version"])
        assert result.exit_code == 0

    def test_invalid_log_level_rejected(self) -> None:
        result = _runner().invoke(cli, ["--log-level", "LOUD", "version"])
        assert result.exit_code != 0


class TestVersionCommand:
    def test_shows_version_and_python(self) -> None:
        result = _runner().invoke(cli, ["version"])
        assert result.exit_code == 0
        assert crowd_replay.__version__ in result.output
        assert "Python" in result.output


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


class TestRunCommand:
    def test_kinematic_run(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            output = Path(tmpdir) / "out.csv"
            result = _runner().invoke(
                cli,
                [
                    "run",
                    "--backend", "kinematic",
                    "--avatars", "1",
                    "--steps", "50",
                    "--output", str(output),
                ],
            )
            assert result.exit_code == 0, result.output
            assert "Simulation Statistics" in result.output
            assert "Output saved to" in result.output
            records = TrajectoryRecorder.load(output)
        # 5 sampled steps x (participant + avatar + goal)
        assert len(records) == 15

    def test_sample_interval_override(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            output = Path(tmpdir) / "out.csv"
            result = _runner().invoke(
                cli,
                [
                    "run",
                    "--backend", "kinematic",
                    "--avatars", "0",
                    "--steps", "10",
                    "--sample-interval", "1",
                    "--output", str(output),
                ],
            )
            assert result.exit_code == 0, result.output
            assert len(TrajectoryRecorder.load(output)) == 20

    def test_config_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            output = Path(tmpdir) / "configured.csv"
            config_path = _write_config(
                tmpdir,
                n_avatars=2,
                max_steps=20,
                goals=[],
                output_path=str(output),
            )
            result = _runner().invoke(
                cli, ["run", "--backend", "kinematic", "--config", config_path]
            )
            assert result.exit_code == 0, result.output
            # 2 sampled steps x 3 moving agents
            assert len(TrajectoryRecorder.load(output)) == 6

    def test_bad_config_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = _write_config(tmpdir, sample_interval=0)
            result = _runner().invoke(
                cli, ["run", "--backend", "kinematic", "--config", config_path]
            )
            assert result.exit_code == 1
            assert "Error reading config file" in result.output

    def test_archive_directory_with_fallback(self) -> None:
        runner = _runner()
        with tempfile.TemporaryDirectory() as tmpdir:
            data_dir = Path(tmpdir) / "data"
            generated = runner.invoke(
                cli, ["generate", str(data_dir), "--avatars", "0", "--steps", "30"]
            )
            assert generated.exit_code == 0, generated.output

            output = Path(tmpdir) / "out.csv"
            result = runner.invoke(
                cli,
                [
                    "run", str(data_dir),
                    "--backend", "kinematic",
                    "--avatars", "1",
                    "--steps", "30",
                    "--output", str(output),
                ],
            )
            assert result.exit_code == 0, result.output
            assert "Degraded mode" in result.output
            assert "A1P" in result.output

    def test_missing_rvo2(self) -> None:
        with patch.object(rvo_module, "_RVO2_AVAILABLE", False):
            result = _runner().invoke(cli, ["run", "--backend", "rvo2", "--steps", "5"])
        assert result.exit_code == 1
        assert "Backend unavailable" in result.output

    def test_unwritable_output(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            target = Path(tmpdir) / "taken"
            target.mkdir()
            result = _runner().invoke(
                cli,
                [
                    "run",
                    "--backend", "kinematic",
                    "--avatars", "0",
                    "--steps", "5",
                    "--output", str(target),
                ],
            )
        assert result.exit_code != 0

    def test_unknown_backend_rejected(self) -> None:
        result = _runner().invoke(cli, ["run", "--backend", "social-force"])
        assert result.exit_code != 0


# ---------------------------------------------------------------------------
# generate
# ---------------------------------------------------------------------------


class TestGenerateCommand:
    def test_writes_archives(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            result = _runner().invoke(
                cli, ["generate", tmpdir, "--avatars", "2", "--steps", "15"]
            )
            assert result.exit_code == 0, result.output
            assert "Generated Trajectories" in result.output
            names = sorted(p.name for p in Path(tmpdir).glob("*.npz"))
        assert names == ["A1P.npz", "A2P.npz", "P.npz"]


# ---------------------------------------------------------------------------
# config show
# ---------------------------------------------------------------------------


class TestConfigShow:
    def test_defaults(self) -> None:
        result = _runner().invoke(cli, ["config", "show"])
        assert result.exit_code == 0
        data = yaml.safe_load(result.output)
        assert data["max_steps"] == 500
        assert data["n_avatars"] == 10
        assert len(data["goals"]) == 1
        assert data["goals"][0]["x"] == 10.0

    def test_file_overrides(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = _write_config(tmpdir, n_avatars=3, trial=12)
            result = _runner().invoke(cli, ["config", "show", "--config", config_path])
        assert result.exit_code == 0
        data = yaml.safe_load(result.output)
        assert data["n_avatars"] == 3
        assert data["trial"] == 12
