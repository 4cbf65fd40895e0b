"""Trajectory sources — synthetic, archive-backed, and fallback chains.

Every source satisfies the :class:`TrajectorySource` protocol: given an
:class:`~crowd_replay.trajectory.models.AgentIdentity` it returns a
:class:`~crowd_replay.trajectory.models.Trajectory` or raises
:class:`DataUnavailableError`.

Archive layout
--------------
:class:`ArchiveTrajectorySource` reads one compressed numpy archive per
agent, named after the agent label (``P.npz``, ``A1P.npz`` ...), holding:

* ``positions`` — ``(n, 2)`` float array (required)
* ``speeds`` — ``(n,)`` float array (optional)
* ``headings`` — ``(n,)`` float array (optional)

Missing speeds or headings are derived from the positions.
"""
from __future__ import annotations

import logging
import math
import zipfile
from pathlib import Path
from typing import Protocol, runtime_checkable

import numpy as np

from crowd_replay.trajectory.models import AgentIdentity, AgentRole, Trajectory

logger = logging.getLogger(__name__)


class DataUnavailableError(LookupError):
    """Raised when a source cannot produce a trajectory for an identity."""

    def __init__(self, identity: AgentIdentity, reason: str) -> None:
        self.identity = identity
        self.reason = reason
        super().__init__(f"No trajectory for {identity.label!r}: {reason}")


@runtime_checkable
class TrajectorySource(Protocol):
    """Anything that can produce a trajectory for an agent identity."""

    def generate(self, identity: AgentIdentity) -> Trajectory:
        """Return the trajectory recorded for *identity*."""
        ...


class SyntheticTrajectorySource:
    """Deterministic closed-form placeholder trajectories.

    The participant walks from the bottom of the arena towards increasing
    Y with a sinusoidal sideways sway while facing forward (+90°).  Each
    avatar descends from near the top of the arena, shifted sideways and
    phase-offset by its ordinal, facing backward (-90°).

    Parameters
    ----------
    max_steps:
        Number of samples in every generated trajectory.
    dt:
        Simulation time step in seconds.
    bounds:
        ``(min_x, min_y, max_x, max_y)`` of the experiment arena.
    """

    def __init__(
        self,
        max_steps: int = 500,
        dt: float = 1.0 / 90.0,
        bounds: tuple[float, float, float, float] = (10.0, 10.0, 100.0, 100.0),
    ) -> None:
        if max_steps < 0:
            raise ValueError(f"max_steps must be >= 0, got {max_steps}")
        if dt <= 0.0:
            raise ValueError(f"dt must be positive, got {dt}")
        self._max_steps = max_steps
        self._dt = dt
        self._bounds = bounds

    @property
    def max_steps(self) -> int:
        return self._max_steps

    def generate(self, identity: AgentIdentity) -> Trajectory:
        if identity.role is AgentRole.GOAL:
            raise DataUnavailableError(identity, "goal markers have no trajectory")

        min_x, min_y, max_x, max_y = self._bounds
        ticks = np.arange(self._max_steps, dtype=np.float64)
        t = ticks * self._dt
        progress = ticks / self._max_steps if self._max_steps else ticks

        if identity.role is AgentRole.PARTICIPANT:
            x = min_x + 5.0 + 2.0 * np.sin(t * 0.5)
            y = min_y + (max_y - min_y) * progress
            speeds = 1.2 + 0.3 * np.sin(t)
            headings = math.pi / 2 + 0.2 * np.sin(t * 0.3)
        else:
            k = float(identity.ordinal)
            offset_x = (k - 5.5) * 2.0
            start_y = max_y - 10.0
            x = min_x + 30.0 + offset_x + np.sin(t * 0.3 + k)
            y = start_y - (max_y - min_y) * 0.8 * progress
            speeds = 1.0 + 0.2 * np.sin(t + k)
            headings = -math.pi / 2 + 0.1 * np.sin(t * 0.4 + k)

        logger.debug(
            "Generated synthetic trajectory for %s (%d samples)",
            identity.label,
            self._max_steps,
        )
        return Trajectory(
            identity=identity,
            positions=np.column_stack([x, y]),
            speeds=speeds,
            headings=headings,
        )

    def __repr__(self) -> str:
        return (
            f"SyntheticTrajectorySource(max_steps={self._max_steps}, "
            f"dt={self._dt:.6f}, bounds={self._bounds})"
        )


class ArchiveTrajectorySource:
    """Load per-agent trajectories from ``<label>.npz`` archives.

    Parameters
    ----------
    directory:
        Directory holding one archive per agent.
    dt:
        Time step used to derive speed/heading when the archive omits them.
    """

    def __init__(self, directory: str | Path, dt: float = 1.0 / 90.0) -> None:
        self._directory = Path(directory)
        self._dt = dt

    def path_for(self, identity: AgentIdentity) -> Path:
        return self._directory / f"{identity.label}.npz"

    def generate(self, identity: AgentIdentity) -> Trajectory:
        path = self.path_for(identity)
        if not path.is_file():
            raise DataUnavailableError(identity, f"{path} does not exist")

        try:
            data = np.load(path)
        except (OSError, ValueError, zipfile.BadZipFile) as exc:
            raise DataUnavailableError(identity, f"cannot read {path}: {exc}") from exc
        if not isinstance(data, np.lib.npyio.NpzFile):
            raise DataUnavailableError(identity, f"{path} is not an .npz archive")
        with data:
            try:
                arrays = {key: np.array(data[key]) for key in data.files}
            except (OSError, ValueError) as exc:
                raise DataUnavailableError(identity, f"cannot read {path}: {exc}") from exc

        if "positions" not in arrays:
            raise DataUnavailableError(identity, f"{path} has no 'positions' array")

        positions = arrays["positions"]
        if positions.ndim != 2 or positions.shape[1] != 2:
            raise DataUnavailableError(
                identity, f"'positions' in {path} has shape {positions.shape}, expected (n, 2)"
            )

        try:
            derived = Trajectory.from_positions(identity, positions, self._dt)
            trajectory = Trajectory(
                identity=identity,
                positions=positions,
                speeds=arrays.get("speeds", derived.speeds),
                headings=arrays.get("headings", derived.headings),
            )
        except ValueError as exc:
            raise DataUnavailableError(identity, f"invalid arrays in {path}: {exc}") from exc

        logger.debug("Loaded %d samples for %s from %s", len(trajectory), identity.label, path)
        return trajectory

    def __repr__(self) -> str:
        return f"ArchiveTrajectorySource(directory={str(self._directory)!r})"


class FallbackTrajectorySource:
    """Try *primary* first and degrade to *secondary* on missing data.

    Every fallback is logged as a warning so a degraded run is visible in
    the log.  Errors raised by *secondary* propagate unchanged.
    """

    def __init__(self, primary: TrajectorySource, secondary: TrajectorySource) -> None:
        self._primary = primary
        self._secondary = secondary
        self._degraded: list[AgentIdentity] = []

    @property
    def degraded(self) -> list[AgentIdentity]:
        """Identities that were served by the secondary source."""
        return list(self._degraded)

    def generate(self, identity: AgentIdentity) -> Trajectory:
        try:
            return self._primary.generate(identity)
        except DataUnavailableError as exc:
            logger.warning(
                "Degraded mode: %s; falling back to %r", exc, self._secondary
            )
            self._degraded.append(identity)
            return self._secondary.generate(identity)

    def __repr__(self) -> str:
        return f"FallbackTrajectorySource(primary={self._primary!r}, secondary={self._secondary!r})"


def save_trajectory(trajectory: Trajectory, directory: str | Path) -> Path:
    """Write *trajectory* as ``<directory>/<label>.npz``.

    The result is readable by :class:`ArchiveTrajectorySource`.

    Returns
    -------
    Path
        The archive path written.
    """
    destination = Path(directory)
    destination.mkdir(parents=True, exist_ok=True)
    path = destination / f"{trajectory.identity.label}.npz"
    np.savez_compressed(
        path,
        positions=trajectory.positions,
        speeds=trajectory.speeds,
        headings=trajectory.headings,
    )
    logger.info("Saved %d samples for %s to %s", len(trajectory), trajectory.identity.label, path)
    return path
