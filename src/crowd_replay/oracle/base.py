"""AvoidanceOracle protocol — the collision-avoidance simulator seam.

The oracle owns the authoritative position and velocity of every agent.
Callers register agents, set a preferred velocity for each one, and ask
the oracle to advance all agents jointly by one time step.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, Field


class OracleRegistrationError(RuntimeError):
    """Raised when the oracle rejects or mis-numbers an agent registration."""


class AgentDefaults(BaseModel):
    """Simulation-wide agent defaults passed to :meth:`AvoidanceOracle.configure`.

    Attributes
    ----------
    time_step:
        Duration of one tick in seconds.
    neighbor_dist:
        Maximum distance at which other agents are considered.
    max_neighbors:
        Maximum number of neighbours taken into account.
    time_horizon:
        Look-ahead (seconds) for agent-agent avoidance.
    time_horizon_obst:
        Look-ahead (seconds) for agent-obstacle avoidance.
    radius:
        Agent radius.
    max_speed:
        Default maximum speed.
    """

    model_config = {"frozen": True}

    time_step: float = Field(gt=0.0)
    neighbor_dist: float = Field(ge=0.0)
    max_neighbors: int = Field(ge=0)
    time_horizon: float = Field(gt=0.0)
    time_horizon_obst: float = Field(gt=0.0)
    radius: float = Field(ge=0.0)
    max_speed: float = Field(ge=0.0)


@runtime_checkable
class AvoidanceOracle(Protocol):
    """Structural protocol every collision-avoidance backend must satisfy.

    Handles are dense integers assigned in registration order from 0.
    """

    def configure(self, defaults: AgentDefaults) -> None:
        """Set agent defaults.  Must be called before any registration."""
        ...

    def register_agent(self, position: NDArray[np.float64]) -> int:
        """Add an agent at *position* and return its handle."""
        ...

    def set_max_speed(self, handle: int, value: float) -> None:
        """Override the maximum speed of one agent."""
        ...

    def set_preferred_velocity(self, handle: int, velocity: NDArray[np.float64]) -> None:
        """Set the velocity the agent would take absent avoidance."""
        ...

    def advance(self) -> None:
        """Advance all agents by one time step."""
        ...

    def position(self, handle: int) -> NDArray[np.float64]:
        """Current position of an agent."""
        ...

    def velocity(self, handle: int) -> NDArray[np.float64]:
        """Current velocity of an agent."""
        ...

    def agent_count(self) -> int:
        """Number of registered agents."""
        ...
