"""SimulationDriver — trajectory-driven stepping of an avoidance oracle.

The driver owns the roster of agents for one run.  During :meth:`setup`
it registers the participant, then every avatar in ordinal order, then the
static goal markers, so oracle handles are assigned densely from 0 in that
order.  Each :meth:`tick` pushes a preferred velocity for *every* agent
before a single ``advance()`` call, because the oracle resolves avoidance
jointly.  :meth:`run` repeats ticks for a fixed budget and snapshots the
realised state at a configurable sampling interval.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel

from crowd_replay.oracle.base import AvoidanceOracle, OracleRegistrationError
from crowd_replay.simulation.recorder import TickRecord, TrajectoryRecorder
from crowd_replay.trajectory.estimator import ZERO_VELOCITY, PreferredVelocityEstimator
from crowd_replay.trajectory.models import AgentIdentity, AgentRole, Trajectory

logger = logging.getLogger(__name__)


class NotInitializedError(RuntimeError):
    """Raised when the driver is stepped before :meth:`SimulationDriver.setup`."""


class GoalSpec(BaseModel):
    """Fixed position of a static goal marker."""

    model_config = {"frozen": True}

    x: float
    y: float

    def as_array(self) -> NDArray[np.float64]:
        return np.array([self.x, self.y], dtype=np.float64)


@dataclass(frozen=True)
class AgentBinding:
    """Association between an agent identity and its oracle handle.

    Attributes
    ----------
    identity:
        Role and ordinal of the agent.
    handle:
        Handle returned by the oracle at registration.
    trajectory:
        Recorded path driving the agent; ``None`` for goal markers.
    position:
        Fixed position of a goal marker; ``None`` for moving agents.
    """

    identity: AgentIdentity
    handle: int
    trajectory: Trajectory | None = None
    position: tuple[float, float] | None = None

    @property
    def role(self) -> AgentRole:
        return self.identity.role

    @property
    def is_goal(self) -> bool:
        return self.identity.role is AgentRole.GOAL


@dataclass
class RegistrationReport:
    """Outcome of :meth:`SimulationDriver.setup`.

    Attributes
    ----------
    bindings:
        Every registered agent, in handle order.
    tick_budget:
        Longest trajectory length; the default number of ticks for a run.
    """

    bindings: list[AgentBinding] = field(default_factory=list)
    tick_budget: int = 0

    @property
    def agent_count(self) -> int:
        return len(self.bindings)

    def handles(self, role: AgentRole) -> list[int]:
        """Handles of all agents with *role*, ascending."""
        return [b.handle for b in self.bindings if b.role is role]

    def summary(self) -> dict[str, object]:
        return {
            "agents": self.agent_count,
            "participants": len(self.handles(AgentRole.PARTICIPANT)),
            "avatars": len(self.handles(AgentRole.AVATAR)),
            "goals": len(self.handles(AgentRole.GOAL)),
            "tick_budget": self.tick_budget,
        }


class SimulationDriver:
    """Drive an :class:`~crowd_replay.oracle.base.AvoidanceOracle` from trajectories.

    Parameters
    ----------
    oracle:
        A configured oracle with no agents registered yet.
    estimator:
        Preferred-velocity estimator; its ``dt`` should match the oracle's
        time step.

    Usage
    -----
    ::

        driver = SimulationDriver(oracle, PreferredVelocityEstimator(dt))
        driver.setup(trajectories, goals)
        with TrajectoryRecorder("out.csv") as recorder:
            driver.run(sample_interval=10, recorder=recorder)
    """

    def __init__(
        self,
        oracle: AvoidanceOracle,
        estimator: PreferredVelocityEstimator,
    ) -> None:
        self._oracle = oracle
        self._estimator = estimator
        self._bindings: list[AgentBinding] = []
        self._by_identity: dict[AgentIdentity, AgentBinding] = {}
        self._current_tick = 0
        self._tick_budget = 0
        self._initialized = False

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def current_tick(self) -> int:
        """Number of ticks completed so far."""
        return self._current_tick

    @property
    def tick_budget(self) -> int:
        return self._tick_budget

    @property
    def bindings(self) -> list[AgentBinding]:
        """All bindings in handle order."""
        return list(self._bindings)

    @property
    def moving_bindings(self) -> list[AgentBinding]:
        return [b for b in self._bindings if not b.is_goal]

    @property
    def goal_bindings(self) -> list[AgentBinding]:
        return [b for b in self._bindings if b.is_goal]

    def handle_for(self, identity: AgentIdentity) -> int:
        """Oracle handle registered for *identity*.

        Raises
        ------
        KeyError
            If no agent with that identity was registered.
        """
        try:
            return self._by_identity[identity].handle
        except KeyError:
            raise KeyError(f"No agent registered as {identity.label!r}") from None

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def setup(
        self,
        trajectories: Mapping[AgentIdentity, Trajectory] | Sequence[Trajectory],
        goals: Sequence[GoalSpec] = (),
    ) -> RegistrationReport:
        """Register every agent with the oracle.

        Parameters
        ----------
        trajectories:
            Exactly one participant trajectory plus any number of avatar
            trajectories.  Registration order is participant first, then
            avatars by ascending ordinal, regardless of input order.
        goals:
            Static goal markers, registered last in the given order with
            their maximum speed pinned to zero.

        Raises
        ------
        RuntimeError
            If setup has already run.
        ValueError
            If the roster is malformed (no or several participants, goal
            trajectories, duplicate identities).
        OracleRegistrationError
            If the oracle rejects a registration or assigns a handle out of
            call order.
        """
        if self._initialized:
            raise RuntimeError("setup() has already been called on this driver")

        ordered = self._order_roster(trajectories)
        bindings: list[AgentBinding] = []

        for trajectory in ordered:
            handle = self._register(self._initial_position(trajectory), expected=len(bindings))
            bindings.append(
                AgentBinding(identity=trajectory.identity, handle=handle, trajectory=trajectory)
            )
            logger.debug("Registered %s as agent %d", trajectory.identity.label, handle)

        for ordinal, goal in enumerate(goals, start=1):
            handle = self._register(goal.as_array(), expected=len(bindings))
            self._oracle.set_max_speed(handle, 0.0)
            bindings.append(
                AgentBinding(
                    identity=AgentIdentity.goal(ordinal),
                    handle=handle,
                    position=(goal.x, goal.y),
                )
            )
            logger.debug("Registered goal G%d at (%.3f, %.3f) as agent %d", ordinal, goal.x, goal.y, handle)

        self._bindings = bindings
        self._by_identity = {b.identity: b for b in bindings}
        self._tick_budget = max((len(t) for t in ordered), default=0)
        self._current_tick = 0
        self._initialized = True

        report = RegistrationReport(bindings=list(bindings), tick_budget=self._tick_budget)
        logger.info("Setup complete: %s", report.summary())
        return report

    def _order_roster(
        self,
        trajectories: Mapping[AgentIdentity, Trajectory] | Sequence[Trajectory],
    ) -> list[Trajectory]:
        items = list(trajectories.values()) if isinstance(trajectories, Mapping) else list(trajectories)

        seen: set[AgentIdentity] = set()
        for trajectory in items:
            identity = trajectory.identity
            if identity.role is AgentRole.GOAL:
                raise ValueError(f"goal marker {identity.label} cannot carry a trajectory")
            if identity in seen:
                raise ValueError(f"duplicate trajectory for {identity.label}")
            seen.add(identity)

        participants = [t for t in items if t.identity.role is AgentRole.PARTICIPANT]
        if len(participants) != 1:
            raise ValueError(f"exactly one participant trajectory required, got {len(participants)}")
        avatars = sorted(
            (t for t in items if t.identity.role is AgentRole.AVATAR),
            key=lambda t: t.identity.ordinal,
        )
        return [participants[0], *avatars]

    def _initial_position(self, trajectory: Trajectory) -> NDArray[np.float64]:
        if len(trajectory) == 0:
            logger.warning("Trajectory for %s is empty; registering at origin", trajectory.identity.label)
            return np.zeros(2)
        return trajectory.start

    def _register(self, position: NDArray[np.float64], expected: int) -> int:
        handle = self._oracle.register_agent(position)
        if handle != expected:
            raise OracleRegistrationError(
                f"oracle assigned handle {handle}, expected {expected} "
                "(handles must be dense and in registration order)"
            )
        return handle

    # ------------------------------------------------------------------
    # Stepping
    # ------------------------------------------------------------------

    def preferred_velocity(self, binding: AgentBinding, tick: int) -> NDArray[np.float64]:
        """Preferred velocity of *binding* at *tick*; always zero for goals."""
        if binding.trajectory is None:
            return ZERO_VELOCITY.copy()
        return self._estimator.estimate(binding.trajectory, tick)

    def tick(self) -> None:
        """Set every agent's preferred velocity, then advance the oracle once."""
        self._ensure_initialized()
        tick = self._current_tick
        for binding in self._bindings:
            self._oracle.set_preferred_velocity(
                binding.handle, self.preferred_velocity(binding, tick)
            )
        self._oracle.advance()
        self._current_tick += 1

    def snapshot(self) -> list[TickRecord]:
        """Current state of every agent, labelled with the current tick."""
        self._ensure_initialized()
        return [
            TickRecord.from_state(
                self._current_tick,
                handle,
                self._oracle.position(handle),
                self._oracle.velocity(handle),
            )
            for handle in range(self._oracle.agent_count())
        ]

    def run(
        self,
        tick_budget: int | None = None,
        sample_interval: int = 10,
        recorder: TrajectoryRecorder | None = None,
    ) -> list[TickRecord]:
        """Run the tick loop and collect sampled agent state.

        On every tick whose index is a multiple of *sample_interval* the
        state of all agents is captured before that tick advances, so the
        record for step ``n`` reflects the agents after ``n`` completed
        ticks.  Exactly *tick_budget* ticks are executed; agents whose
        trajectory is exhausted hold position.

        Parameters
        ----------
        tick_budget:
            Number of ticks to run.  Defaults to the longest trajectory.
        sample_interval:
            Sample every this many ticks.  ``1`` samples every tick.
        recorder:
            Open recorder that receives each sampled batch as it is taken.

        Returns
        -------
        list[TickRecord]
            All sampled records, ordered by step then agent id.

        Raises
        ------
        NotInitializedError
            If :meth:`setup` has not been called.
        OutputWriteError
            If *recorder* fails; remaining ticks are abandoned.
        """
        self._ensure_initialized()
        budget = self._tick_budget if tick_budget is None else tick_budget
        if budget < 0:
            raise ValueError(f"tick_budget must be >= 0, got {budget}")
        if sample_interval < 1:
            raise ValueError(f"sample_interval must be >= 1, got {sample_interval}")

        logger.info(
            "Starting run: %d ticks, %d agents, sampling every %d ticks",
            budget,
            len(self._bindings),
            sample_interval,
        )
        records: list[TickRecord] = []
        for _ in range(budget):
            if self._current_tick % sample_interval == 0:
                batch = self.snapshot()
                if recorder is not None:
                    recorder.write_many(batch)
                records.extend(batch)
                logger.debug("Step %d/%d sampled", self._current_tick, budget)
            self.tick()

        logger.info("Run complete: %d ticks, %d records", self._current_tick, len(records))
        return records

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise NotInitializedError("setup() must be called before stepping the driver")

    def __repr__(self) -> str:
        return (
            f"SimulationDriver(agents={len(self._bindings)}, "
            f"tick={self._current_tick}, tick_budget={self._tick_budget})"
        )
