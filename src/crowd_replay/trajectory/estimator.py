"""PreferredVelocityEstimator — velocity commands from recorded paths.

The preferred velocity of an agent at tick ``i`` is the forward finite
difference of its recorded positions, ``(p[i+1] - p[i]) / dt``.  Once the
agent reaches the last recorded sample it holds position: the estimate is
the zero vector from then on.
"""
from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from crowd_replay.trajectory.models import Trajectory

ZERO_VELOCITY: NDArray[np.float64] = np.zeros(2, dtype=np.float64)
ZERO_VELOCITY.flags.writeable = False


def estimate_preferred_velocity(
    trajectory: Trajectory,
    tick: int,
    dt: float,
) -> NDArray[np.float64]:
    """Return the preferred velocity for *trajectory* at *tick*.

    Parameters
    ----------
    trajectory:
        The agent's recorded path.
    tick:
        Zero-based simulation tick.
    dt:
        Simulation time step in seconds.

    Returns
    -------
    NDArray[np.float64]
        A fresh ``(2,)`` velocity vector; zero when *tick* is at or past the
        last sample.
    """
    if tick < 0:
        raise ValueError(f"tick must be >= 0, got {tick}")
    if tick >= len(trajectory) - 1:
        return ZERO_VELOCITY.copy()
    positions = trajectory.positions
    return (positions[tick + 1] - positions[tick]) / dt


class PreferredVelocityEstimator:
    """Stateless estimator bound to a fixed simulation time step.

    Parameters
    ----------
    dt:
        Simulation time step in seconds.  Must be positive.
    """

    def __init__(self, dt: float) -> None:
        if dt <= 0.0:
            raise ValueError(f"dt must be positive, got {dt}")
        self._dt = dt

    @property
    def dt(self) -> float:
        return self._dt

    def estimate(self, trajectory: Trajectory, tick: int) -> NDArray[np.float64]:
        return estimate_preferred_velocity(trajectory, tick, self._dt)

    def __repr__(self) -> str:
        return f"PreferredVelocityEstimator(dt={self._dt!r})"
