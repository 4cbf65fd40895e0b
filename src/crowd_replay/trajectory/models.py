"""Trajectory data model — agent identities and fixed-length recorded paths.

A :class:`Trajectory` is an immutable, tick-indexed sequence of samples
(position, speed, heading).  Sample ``i`` corresponds to simulation tick
``i``; the sample count is fixed when the trajectory is created.
"""
from __future__ import annotations

from enum import Enum

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, Field, field_validator, model_validator


class AgentRole(str, Enum):
    """Category of a simulated agent."""

    PARTICIPANT = "participant"
    AVATAR = "avatar"
    GOAL = "goal"


class AgentIdentity(BaseModel):
    """Stable identity of one agent in an experiment.

    Attributes
    ----------
    role:
        Agent category.
    ordinal:
        ``0`` for the participant, ``1..N`` for avatars and ``1..G`` for
        goal markers.
    """

    model_config = {"frozen": True}

    role: AgentRole
    ordinal: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _check_ordinal(self) -> "AgentIdentity":
        if self.role is AgentRole.PARTICIPANT and self.ordinal != 0:
            raise ValueError("participant ordinal must be 0")
        if self.role is not AgentRole.PARTICIPANT and self.ordinal < 1:
            raise ValueError(f"{self.role.value} ordinal must be >= 1")
        return self

    @classmethod
    def participant(cls) -> "AgentIdentity":
        return cls(role=AgentRole.PARTICIPANT)

    @classmethod
    def avatar(cls, ordinal: int) -> "AgentIdentity":
        return cls(role=AgentRole.AVATAR, ordinal=ordinal)

    @classmethod
    def goal(cls, ordinal: int) -> "AgentIdentity":
        return cls(role=AgentRole.GOAL, ordinal=ordinal)

    @property
    def label(self) -> str:
        """Recording label: ``P``, ``A<k>P`` or ``G<k>``."""
        if self.role is AgentRole.PARTICIPANT:
            return "P"
        if self.role is AgentRole.AVATAR:
            return f"A{self.ordinal}P"
        return f"G{self.ordinal}"

    def __str__(self) -> str:
        return self.label


def _readonly(values: NDArray[np.float64]) -> NDArray[np.float64]:
    array = np.array(values, dtype=np.float64, copy=True)
    array.flags.writeable = False
    return array


class Trajectory(BaseModel):
    """Fixed-length recorded path of a single agent.

    Attributes
    ----------
    identity:
        The agent this trajectory belongs to.
    positions:
        ``(n, 2)`` array of world positions, one row per tick.
    speeds:
        ``(n,)`` array of recorded scalar speeds.
    headings:
        ``(n,)`` array of recorded headings in radians.

    All arrays are copied on construction and marked read-only.
    """

    model_config = {"arbitrary_types_allowed": True, "frozen": True}

    identity: AgentIdentity
    positions: NDArray[np.float64]
    speeds: NDArray[np.float64]
    headings: NDArray[np.float64]

    @field_validator("positions", mode="before")
    @classmethod
    def _validate_positions(cls, value: object) -> NDArray[np.float64]:
        array = np.asarray(value, dtype=np.float64)
        if array.size == 0:
            array = array.reshape(0, 2)
        if array.ndim != 2 or array.shape[1] != 2:
            raise ValueError(f"positions must have shape (n, 2), got {array.shape}")
        return _readonly(array)

    @field_validator("speeds", "headings", mode="before")
    @classmethod
    def _validate_series(cls, value: object) -> NDArray[np.float64]:
        array = np.asarray(value, dtype=np.float64).reshape(-1)
        return _readonly(array)

    @model_validator(mode="after")
    def _check_lengths(self) -> "Trajectory":
        n = self.positions.shape[0]
        if self.speeds.shape[0] != n or self.headings.shape[0] != n:
            raise ValueError(
                f"speeds ({self.speeds.shape[0]}) and headings "
                f"({self.headings.shape[0]}) must match positions ({n})"
            )
        return self

    @classmethod
    def from_positions(
        cls,
        identity: AgentIdentity,
        positions: NDArray[np.float64],
        dt: float,
    ) -> "Trajectory":
        """Build a trajectory from positions alone, deriving speed and heading.

        Speed and heading at tick ``i`` come from the forward difference
        ``p[i+1] - p[i]``; the last sample repeats the previous value.
        """
        points = np.asarray(positions, dtype=np.float64).reshape(-1, 2)
        n = points.shape[0]
        if n < 2:
            return cls(
                identity=identity,
                positions=points,
                speeds=np.zeros(n),
                headings=np.zeros(n),
            )
        deltas = np.diff(points, axis=0) / dt
        deltas = np.vstack([deltas, deltas[-1:]])
        return cls(
            identity=identity,
            positions=points,
            speeds=np.hypot(deltas[:, 0], deltas[:, 1]),
            headings=np.arctan2(deltas[:, 1], deltas[:, 0]),
        )

    def __len__(self) -> int:
        return int(self.positions.shape[0])

    @property
    def start(self) -> NDArray[np.float64]:
        """Tick-0 position.

        Raises
        ------
        IndexError
            If the trajectory has no samples.
        """
        if len(self) == 0:
            raise IndexError(f"trajectory for {self.identity} is empty")
        return self.positions[0]

    def __repr__(self) -> str:
        return f"Trajectory(identity={self.identity.label!r}, samples={len(self)})"
