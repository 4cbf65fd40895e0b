"""KinematicOracle — collision-free reference backend.

Each agent moves at its preferred velocity, clamped to its maximum speed,
with explicit Euler integration.  No avoidance is performed, which makes
runs cheap and fully predictable: useful for dry runs, tests, and for
isolating the contribution of avoidance when compared with the RVO2 backend.
"""
from __future__ import annotations

import logging

import numpy as np
from numpy.typing import NDArray

from crowd_replay.oracle.base import AgentDefaults, OracleRegistrationError

logger = logging.getLogger(__name__)


class KinematicOracle:
    """Preferred-velocity integrator satisfying the AvoidanceOracle protocol.

    Parameters
    ----------
    capacity:
        Optional maximum number of agents.  Registrations beyond this raise
        :class:`~crowd_replay.oracle.base.OracleRegistrationError`.
    """

    def __init__(self, capacity: int | None = None) -> None:
        self._capacity = capacity
        self._defaults: AgentDefaults | None = None
        self._positions: list[NDArray[np.float64]] = []
        self._velocities: list[NDArray[np.float64]] = []
        self._preferred: list[NDArray[np.float64]] = []
        self._max_speeds: list[float] = []
        self._global_time: float = 0.0

    @property
    def global_time(self) -> float:
        """Simulated seconds elapsed since the first registration."""
        return self._global_time

    def configure(self, defaults: AgentDefaults) -> None:
        if self._positions:
            raise RuntimeError("configure() must be called before any agent is registered")
        self._defaults = defaults
        logger.debug("KinematicOracle configured: %s", defaults)

    def register_agent(self, position: NDArray[np.float64]) -> int:
        if self._defaults is None:
            raise OracleRegistrationError("no agent defaults configured")
        if self._capacity is not None and len(self._positions) >= self._capacity:
            raise OracleRegistrationError(
                f"capacity of {self._capacity} agents exhausted"
            )
        self._positions.append(np.array(position, dtype=np.float64).reshape(2))
        self._velocities.append(np.zeros(2))
        self._preferred.append(np.zeros(2))
        self._max_speeds.append(self._defaults.max_speed)
        return len(self._positions) - 1

    def set_max_speed(self, handle: int, value: float) -> None:
        self._check(handle)
        self._max_speeds[handle] = float(value)

    def set_preferred_velocity(self, handle: int, velocity: NDArray[np.float64]) -> None:
        self._check(handle)
        self._preferred[handle] = np.array(velocity, dtype=np.float64).reshape(2)

    def advance(self) -> None:
        if self._defaults is None:
            raise RuntimeError("advance() called before configure()")
        dt = self._defaults.time_step
        for handle, preferred in enumerate(self._preferred):
            speed = float(np.hypot(preferred[0], preferred[1]))
            limit = self._max_speeds[handle]
            if speed > limit:
                velocity = preferred * (limit / speed)
            else:
                velocity = preferred.copy()
            self._velocities[handle] = velocity
            self._positions[handle] = self._positions[handle] + velocity * dt
        self._global_time += dt

    def position(self, handle: int) -> NDArray[np.float64]:
        self._check(handle)
        return self._positions[handle].copy()

    def velocity(self, handle: int) -> NDArray[np.float64]:
        self._check(handle)
        return self._velocities[handle].copy()

    def agent_count(self) -> int:
        return len(self._positions)

    def _check(self, handle: int) -> None:
        if not 0 <= handle < len(self._positions):
            raise IndexError(f"unknown agent handle {handle}")

    def __repr__(self) -> str:
        return f"KinematicOracle(agents={len(self._positions)}, capacity={self._capacity})"
