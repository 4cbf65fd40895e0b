"""Collision-avoidance oracle protocol and backends.

Available backends
------------------
* :class:`~crowd_replay.oracle.rvo.RVO2Oracle` — Python-RVO2 (import
  guarded; raises :class:`ImportError` if ``rvo2`` is not installed).
* :class:`~crowd_replay.oracle.kinematic.KinematicOracle` — collision-free
  preferred-velocity integration.
"""
from __future__ import annotations

from crowd_replay.oracle.base import AgentDefaults, AvoidanceOracle, OracleRegistrationError
from crowd_replay.oracle.kinematic import KinematicOracle
from crowd_replay.oracle.rvo import RVO2Oracle

BACKENDS: tuple[str, ...] = ("rvo2", "kinematic")


def create_oracle(name: str) -> AvoidanceOracle:
    """Instantiate an oracle backend by name (``"rvo2"`` or ``"kinematic"``).

    Raises
    ------
    ValueError
        If *name* is not a known backend.
    ImportError
        If the backend's library is not installed.
    """
    key = name.lower()
    if key == "rvo2":
        return RVO2Oracle()
    if key == "kinematic":
        return KinematicOracle()
    raise ValueError(f"Unknown oracle backend {name!r}. Choose from: {', '.join(BACKENDS)}.")


__all__ = [
    "AgentDefaults",
    "AvoidanceOracle",
    "OracleRegistrationError",
    "KinematicOracle",
    "RVO2Oracle",
    "BACKENDS",
    "create_oracle",
]
