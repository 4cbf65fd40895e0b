"""CLI entry point for crowd-replay.

Invoked as::

    crowd-replay [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m crowd_replay.cli.main

Available commands
------------------
* ``run``          — replay a trial through the avoidance oracle and write CSV
* ``generate``     — export synthetic trajectories as ``.npz`` archives
* ``config show``  — print the effective experiment configuration as YAML
* ``version``      — show detailed version information
"""
from __future__ import annotations

import logging
import sys

import click
import yaml
from rich.console import Console
from rich.table import Table

from crowd_replay import __version__
from crowd_replay.simulation.experiment import ExperimentConfig

console = Console()
logger = logging.getLogger(__name__)


def _load_config(config_path: str | None) -> ExperimentConfig:
    if config_path is None:
        return ExperimentConfig()
    try:
        return ExperimentConfig.load(config_path)
    except Exception as exc:
        console.print(f"[red]Error reading config file:[/red] {exc}")
        raise SystemExit(1) from exc


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="crowd-replay")
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Set the log level.",
    show_default=True,
)
def cli(log_level: str) -> None:
    """Replay recorded pedestrian trajectories through collision avoidance."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(levelname)s %(name)s — %(message)s",
    )


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    console.print(f"[bold]crowd-replay[/bold] v{__version__}")
    console.print(f"Python {sys.version}")


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


@cli.command(name="run")
@click.argument("data_path", required=False, type=click.Path(file_okay=False))
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="YAML experiment configuration.",
)
@click.option(
    "--output",
    "output_path",
    default=None,
    type=click.Path(dir_okay=False),
    help="CSV output path (overrides the configuration).",
)
@click.option("--steps", default=None, type=click.IntRange(min=0), help="Samples per synthetic trajectory.")
@click.option("--avatars", default=None, type=click.IntRange(min=0), help="Number of avatar agents.")
@click.option(
    "--sample-interval",
    default=None,
    type=click.IntRange(min=1),
    help="Record agent state every N ticks.",
)
@click.option(
    "--backend",
    default="rvo2",
    type=click.Choice(["rvo2", "kinematic"], case_sensitive=False),
    show_default=True,
    help="Collision-avoidance backend.",
)
def run_command(
    data_path: str | None,
    config_path: str | None,
    output_path: str | None,
    steps: int | None,
    avatars: int | None,
    sample_interval: int | None,
    backend: str,
) -> None:
    """Replay a trial and write per-tick agent state to CSV.

    DATA_PATH (optional) is a directory of ``<label>.npz`` trajectory
    archives (``P.npz``, ``A1P.npz`` ...).  Agents without an archive fall
    back to synthetic trajectories.  Without DATA_PATH every trajectory is
    synthetic.
    """
    from crowd_replay.oracle import create_oracle
    from crowd_replay.oracle.base import OracleRegistrationError
    from crowd_replay.simulation.driver import NotInitializedError
    from crowd_replay.simulation.experiment import run_experiment
    from crowd_replay.simulation.recorder import OutputWriteError
    from crowd_replay.trajectory.source import DataUnavailableError

    config = _load_config(config_path)
    overrides: dict[str, object] = {}
    if steps is not None:
        overrides["max_steps"] = steps
    if avatars is not None:
        overrides["n_avatars"] = avatars
    if sample_interval is not None:
        overrides["sample_interval"] = sample_interval
    if output_path is not None:
        overrides["output_path"] = output_path
    if overrides:
        config = config.model_validate({**config.model_dump(), **overrides})

    console.print(
        f"[bold cyan]run[/bold cyan] — backend={backend}, "
        f"data={data_path!r}, output={config.output_path!r}"
    )

    try:
        oracle = create_oracle(backend)
    except ImportError as exc:
        console.print(f"[red]Backend unavailable:[/red] {exc}")
        console.print("Use [bold]--backend kinematic[/bold] to run without collision avoidance.")
        raise SystemExit(1) from exc

    try:
        result = run_experiment(config, oracle, data_path=data_path)
    except (
        DataUnavailableError,
        NotInitializedError,
        OracleRegistrationError,
        OutputWriteError,
    ) as exc:
        console.print(f"[red]Simulation failed:[/red] {exc}")
        raise SystemExit(1) from exc

    if result.degraded:
        console.print(
            f"[yellow]Degraded mode:[/yellow] synthetic data used for "
            f"{', '.join(result.degraded)}"
        )

    summary = result.summary()
    min_x, min_y, max_x, max_y = config.bounds
    table = Table(title="Simulation Statistics", show_header=True)
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Subject", str(summary["subject"]))
    table.add_row("Trial", str(summary["trial"]))
    table.add_row("Time step (s)", f"{config.time_step:.6f}")
    table.add_row("Total steps", str(summary["total_steps"]))
    table.add_row("Total agents", str(summary["total_agents"]))
    table.add_row("Bounds", f"({min_x:g}, {min_y:g}) to ({max_x:g}, {max_y:g})")
    table.add_row("Rows written", str(summary["rows_written"]))
    table.add_row("Wall time (s)", f"{result.wall_time_seconds:.3f}")
    console.print(table)
    console.print(f"[bold green]Output saved to:[/bold green] {result.output_path}")


# ---------------------------------------------------------------------------
# generate
# ---------------------------------------------------------------------------


@cli.command(name="generate")
@click.argument("output_dir", type=click.Path(file_okay=False))
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="YAML experiment configuration.",
)
@click.option("--steps", default=None, type=click.IntRange(min=0), help="Samples per trajectory.")
@click.option("--avatars", default=None, type=click.IntRange(min=0), help="Number of avatar agents.")
def generate_command(
    output_dir: str,
    config_path: str | None,
    steps: int | None,
    avatars: int | None,
) -> None:
    """Write synthetic trajectories to OUTPUT_DIR as ``.npz`` archives.

    The archives can be edited and fed back with ``crowd-replay run OUTPUT_DIR``.
    """
    from crowd_replay.simulation.experiment import build_source, load_trajectories
    from crowd_replay.trajectory.source import save_trajectory

    config = _load_config(config_path)
    overrides: dict[str, object] = {}
    if steps is not None:
        overrides["max_steps"] = steps
    if avatars is not None:
        overrides["n_avatars"] = avatars
    if overrides:
        config = config.model_validate({**config.model_dump(), **overrides})

    trajectories = load_trajectories(config, build_source(config))
    table = Table(title="Generated Trajectories", show_header=True)
    table.add_column("Agent", style="bold")
    table.add_column("Samples")
    table.add_column("File")
    for identity, trajectory in trajectories.items():
        try:
            path = save_trajectory(trajectory, output_dir)
        except OSError as exc:
            console.print(f"[red]Error writing trajectory:[/red] {exc}")
            raise SystemExit(1) from exc
        table.add_row(identity.label, str(len(trajectory)), str(path))
    console.print(table)


# ---------------------------------------------------------------------------
# config group
# ---------------------------------------------------------------------------


@cli.group(name="config")
def config_group() -> None:
    """Experiment configuration commands."""


@config_group.command(name="show")
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="YAML experiment configuration.",
)
def config_show(config_path: str | None) -> None:
    """Print the effective configuration as YAML."""
    config = _load_config(config_path)
    data = config.model_dump()
    data["goals"] = [goal.model_dump() for goal in config.goal_specs()]
    console.print(yaml.safe_dump(data, default_flow_style=False, sort_keys=False), markup=False)


if __name__ == "__main__":
    cli()
