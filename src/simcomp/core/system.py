"""
Multibody system builder.

The system is the registry a model is compiled into. During extend-system
each component registers bodies, coordinates, state variables, force
contributors and reporters here, in deterministic tree order. After
``finalize`` the system issues default States and drives stage-by-stage
realization.
"""
from __future__ import annotations

import copy
import itertools
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import numpy as np
from numpy.typing import NDArray

from simcomp.core.state import Stage, State, StateVariableHandle, VariableKind
from simcomp.errors import ConfigurationError, StateAccessError

if TYPE_CHECKING:
    from simcomp.core.capabilities import ContributesForce, ReportsEvents
    from simcomp.core.component import Component
    from simcomp.dynamics.body import Body, Coordinate

logger = logging.getLogger(__name__)

_system_ids = itertools.count(1)

BODY_FORCES_KEY = ("system", "body_forces")
GENERALIZED_FORCES_KEY = ("system", "generalized_forces")


class MultibodySystem:
    """
    Compiled form of a model: indices, state layout and contributor lists.

    Parameters
    ----------
    root : Component
        Root of the component tree this system was built from
    name : str
        Label used in log messages

    Attributes
    ----------
    id : int
        Process-unique identifier; States and handles carry it
    bodies : list[Body]
        Registered bodies; index 0 is ground
    coordinates : list[Coordinate]
        Registered generalized coordinates
    """

    def __init__(self, root: Component, name: str = "system") -> None:
        self.id = next(_system_ids)
        self.name = name
        self.root = root
        self.bodies: list[Body] = []
        self.coordinates: list[Coordinate] = []
        self.force_contributors: list[ContributesForce] = []
        self.reporters: list[ReportsEvents] = []
        self._continuous: list[StateVariableHandle] = []
        self._continuous_defaults: list[NDArray[np.float64]] = []
        self._discrete: list[StateVariableHandle] = []
        self._discrete_defaults: list[tuple[Any, Callable[[], Any] | None]] = []
        self._paths: set[str] = set()
        self._ny = 0
        self._finalized = False

    # --- Registration (extend-system phase) ---

    def _check_open(self, what: str) -> None:
        if self._finalized:
            raise ConfigurationError(f"Cannot add {what} to finalized system '{self.name}'")

    def add_body(self, body: Body) -> int:
        """
        Register a body.

        Returns
        -------
        int
            Index of the body in the force buffer (ground is 0)
        """
        self._check_open(f"body '{body.name}'")
        if any(b is body for b in self.bodies):
            raise ConfigurationError(f"Body '{body.name}' registered twice")
        self.bodies.append(body)
        return len(self.bodies) - 1

    def add_coordinate(self, coordinate: Coordinate) -> int:
        self._check_open(f"coordinate '{coordinate.name}'")
        self.coordinates.append(coordinate)
        return len(self.coordinates) - 1

    def _claim_path(self, owner_path: str, name: str) -> None:
        path = f"{owner_path}/{name}"
        if path in self._paths:
            raise ConfigurationError(f"State variable '{path}' registered twice")
        self._paths.add(path)

    def add_continuous_variable(
        self,
        owner_path: str,
        name: str,
        size: int = 1,
        default: Any = 0.0,
        invalidates: Stage = Stage.POSITION,
    ) -> StateVariableHandle:
        """Allocate ``size`` slots of the continuous state vector."""
        self._check_open(f"state variable '{name}'")
        self._claim_path(owner_path, name)
        values = np.broadcast_to(np.asarray(default, dtype=np.float64), (size,)).copy()
        handle = StateVariableHandle(
            owner_path, name, VariableKind.CONTINUOUS, self._ny, size,
            Stage(invalidates), self.id,
        )
        self._ny += size
        self._continuous.append(handle)
        self._continuous_defaults.append(values)
        return handle

    def add_discrete_variable(
        self,
        owner_path: str,
        name: str,
        default: Any = None,
        default_factory: Callable[[], Any] | None = None,
        invalidates: Stage | None = Stage.INSTANCE,
    ) -> StateVariableHandle:
        """Allocate a discrete slot; each new State gets its own copy of the default."""
        self._check_open(f"state variable '{name}'")
        self._claim_path(owner_path, name)
        handle = StateVariableHandle(
            owner_path, name, VariableKind.DISCRETE, len(self._discrete), 0,
            Stage(invalidates) if invalidates is not None else None, self.id,
        )
        self._discrete.append(handle)
        self._discrete_defaults.append((default, default_factory))
        return handle

    def add_force_contributor(self, contributor: ContributesForce) -> None:
        self._check_open("force contributor")
        self.force_contributors.append(contributor)

    def add_reporter(self, reporter: ReportsEvents) -> None:
        self._check_open("reporter")
        self.reporters.append(reporter)

    def finalize(self) -> None:
        self._finalized = True
        logger.debug(
            "Finalized system '%s': %d bodies, %d coordinates, %d continuous slots, "
            "%d discrete variables",
            self.name, len(self.bodies), len(self.coordinates), self._ny, len(self._discrete),
        )

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    @property
    def num_continuous(self) -> int:
        return self._ny

    @property
    def state_variable_handles(self) -> list[StateVariableHandle]:
        return self._continuous + self._discrete

    # --- States ---

    def default_state(self) -> State:
        """New State holding the registered defaults, realized to INSTANCE."""
        if not self._finalized:
            raise ConfigurationError(f"System '{self.name}' is not finalized")
        y = np.concatenate(self._continuous_defaults) if self._continuous_defaults else np.zeros(0)
        discrete = [
            factory() if factory is not None else copy.deepcopy(default)
            for default, factory in self._discrete_defaults
        ]
        return State(self.id, y, discrete)

    def check_state(self, state: State) -> None:
        if state.system_id != self.id:
            raise StateAccessError(
                f"State {state.id} was not created by system '{self.name}'"
            )

    def realize(self, state: State, stage: Stage) -> None:
        """
        Realize ``state`` through ``stage``, one stage at a time.

        Each stage calls ``realize_and_compute`` on the whole tree; at
        DYNAMICS the force accumulators are rebuilt from scratch.
        """
        self.check_state(state)
        stage = Stage(stage)
        while state.realized_stage < stage:
            next_stage = Stage(state.realized_stage + 1)
            with state.realizing(next_stage):
                self.root.realize_and_compute(state, next_stage)
                if next_stage is Stage.DYNAMICS:
                    self._compute_forces(state)

    def _compute_forces(self, state: State) -> None:
        body_forces = np.zeros((len(self.bodies), 6))
        generalized_forces = np.zeros(len(self.coordinates))
        for contributor in self.force_contributors:
            contributor.compute_force(state, body_forces, generalized_forces)
        state.set_cache(BODY_FORCES_KEY, Stage.DYNAMICS, body_forces)
        state.set_cache(GENERALIZED_FORCES_KEY, Stage.DYNAMICS, generalized_forces)

    def get_body_forces(self, state: State) -> NDArray[np.float64]:
        """
        Spatial forces per body, shape ``(n_bodies, 6)``.

        Rows are ``[torque_x, torque_y, torque_z, force_x, force_y, force_z]``
        expressed in ground, torque about the body origin.
        """
        self.check_state(state)
        state.require_stage(Stage.DYNAMICS, "Body forces")
        return state.get_cache(BODY_FORCES_KEY).copy()

    def get_generalized_forces(self, state: State) -> NDArray[np.float64]:
        self.check_state(state)
        state.require_stage(Stage.DYNAMICS, "Generalized forces")
        return state.get_cache(GENERALIZED_FORCES_KEY).copy()

    def __repr__(self) -> str:
        return (
            f"MultibodySystem(name='{self.name}', bodies={len(self.bodies)}, "
            f"ny={self._ny}, discrete={len(self._discrete)})"
        )
