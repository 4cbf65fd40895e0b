"""RVO2Oracle — adapter for the RVO2 reciprocal collision-avoidance library.

Wraps ``rvo2.PyRVOSimulator`` (Python-RVO2,
https://github.com/sybrenstuvel/Python-RVO2) behind the
:class:`~crowd_replay.oracle.base.AvoidanceOracle` protocol.

The import of ``rvo2`` is guarded so that the rest of the package can be
used without the compiled extension.  Instantiating :class:`RVO2Oracle`
without it installed raises :class:`ImportError` at construction time.

Optional install
----------------
::

    pip install "crowd-replay[rvo2]"
"""
from __future__ import annotations

import logging
from typing import Any

import numpy as np
from numpy.typing import NDArray

from crowd_replay.oracle.base import AgentDefaults, OracleRegistrationError

logger = logging.getLogger(__name__)

# Guarded import: rvo2 is optional.
try:
    import rvo2 as _rvo2

    _RVO2_AVAILABLE = True
except ImportError:
    _rvo2 = None
    _RVO2_AVAILABLE = False


class RVO2Oracle:
    """AvoidanceOracle backed by ``rvo2.PyRVOSimulator``.

    ``PyRVOSimulator`` takes its agent defaults in the constructor, so the
    underlying simulator is created by :meth:`configure`.  Registering an
    agent before that raises
    :class:`~crowd_replay.oracle.base.OracleRegistrationError`, mirroring
    RVO2's refusal to add agents without defaults.
    """

    def __init__(self) -> None:
        if not _RVO2_AVAILABLE:
            raise ImportError(
                "Python-RVO2 is not installed.  Install it with: "
                "pip install 'crowd-replay[rvo2]'"
            )
        self._sim: Any = None

    def configure(self, defaults: AgentDefaults) -> None:
        if self._sim is not None and self._sim.getNumAgents() > 0:
            raise RuntimeError("configure() must be called before any agent is registered")
        self._sim = _rvo2.PyRVOSimulator(
            defaults.time_step,
            defaults.neighbor_dist,
            defaults.max_neighbors,
            defaults.time_horizon,
            defaults.time_horizon_obst,
            defaults.radius,
            defaults.max_speed,
        )
        logger.debug("RVO2 simulator created: %s", defaults)

    def register_agent(self, position: NDArray[np.float64]) -> int:
        if self._sim is None:
            raise OracleRegistrationError("no agent defaults configured")
        sim = self._sim
        x, y = (float(v) for v in np.asarray(position).reshape(2))
        try:
            handle = sim.addAgent((x, y))
        except Exception as exc:  # noqa: BLE001
            raise OracleRegistrationError(f"RVO2 rejected agent at ({x}, {y}): {exc}") from exc
        if handle < 0:
            raise OracleRegistrationError(f"RVO2 returned error handle {handle}")
        return int(handle)

    def set_max_speed(self, handle: int, value: float) -> None:
        self._require_sim().setAgentMaxSpeed(handle, float(value))

    def set_preferred_velocity(self, handle: int, velocity: NDArray[np.float64]) -> None:
        vx, vy = (float(v) for v in np.asarray(velocity).reshape(2))
        self._require_sim().setAgentPrefVelocity(handle, (vx, vy))

    def advance(self) -> None:
        self._require_sim().doStep()

    def position(self, handle: int) -> NDArray[np.float64]:
        return np.array(self._require_sim().getAgentPosition(handle), dtype=np.float64)

    def velocity(self, handle: int) -> NDArray[np.float64]:
        return np.array(self._require_sim().getAgentVelocity(handle), dtype=np.float64)

    def agent_count(self) -> int:
        if self._sim is None:
            return 0
        return int(self._sim.getNumAgents())

    def _require_sim(self) -> Any:
        if self._sim is None:
            raise RuntimeError("RVO2Oracle used before configure()")
        return self._sim

    def __repr__(self) -> str:
        return f"RVO2Oracle(agents={self.agent_count()})"
