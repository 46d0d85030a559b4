"""
Model: root of a component tree and entry point of the lifecycle.

Typical use::

    model = Model("knee")
    femur = model.add_body(Body("femur", mass=5.0))
    ...
    model.build_system()            # connect -> extend-system -> finalize
    state = model.initialize_state()
    model.realize_dynamics(state)
"""
from __future__ import annotations

import logging
from typing import TypeVar

import numpy as np
from numpy.typing import NDArray

from simcomp.config import DEFAULT_CONFIG, SimulationConfig
from simcomp.core.capabilities import Scalable
from simcomp.core.component import Component
from simcomp.core.state import Stage, State
from simcomp.core.system import MultibodySystem
from simcomp.dynamics.body import Body, Coordinate, Ground
from simcomp.dynamics.forces import Force
from simcomp.dynamics.scaling import ScaleSet
from simcomp.errors import ConfigurationError, StateAccessError
from simcomp.reporting.reporter import Reporter

logger = logging.getLogger(__name__)

C = TypeVar("C", bound=Component)


class Model(Component):
    """
    Root component that owns ground, bodies, coordinates, forces and reporters.

    Parameters
    ----------
    name : str
        Model name; the first segment of every absolute path
    config : SimulationConfig | None
        Run settings shared with the Managers that drive this model

    Attributes
    ----------
    config : SimulationConfig
        Run settings
    system : MultibodySystem | None
        Compiled system, None until ``build_system`` succeeds and again
        after any property or structural change in the tree

    Notes
    -----
    States belong to the system that created them. Once the tree changes,
    the system is dropped and its states are rejected; call
    ``initialize_state`` for a state of the rebuilt system.
    """

    def __init__(self, name: str = "model", config: SimulationConfig | None = None) -> None:
        self.config = config if config is not None else DEFAULT_CONFIG
        self._built_system: MultibodySystem | None = None
        self._retired_system_ids: set[int] = set()
        self._scaling = False
        super().__init__(name)

    def _construct_properties(self) -> None:
        self._declare_property(
            "ground", Ground, comment="Inertial reference frame",
            default_factory=Ground,
        )

    # --- Assembly ---

    @property
    def ground(self) -> Ground:
        return self.get_property("ground")

    def _add_typed(self, component: C, kind: type) -> C:
        if not isinstance(component, kind):
            raise ConfigurationError(
                f"Expected a {kind.__name__}, got {type(component).__name__}"
            )
        return self.add_component(component)

    def add_body(self, body: Body) -> Body:
        return self._add_typed(body, Body)

    def add_coordinate(self, coordinate: Coordinate) -> Coordinate:
        return self._add_typed(coordinate, Coordinate)

    def add_force(self, force: Force) -> Force:
        return self._add_typed(force, Force)

    def add_reporter(self, reporter: Reporter) -> Reporter:
        return self._add_typed(reporter, Reporter)

    def _of_type(self, kind: type[C]) -> list[C]:
        return [c for c in self.iter_components() if isinstance(c, kind)]

    def get_bodies(self) -> list[Body]:
        return self._of_type(Body)

    def get_coordinates(self) -> list[Coordinate]:
        return self._of_type(Coordinate)

    def get_forces(self) -> list[Force]:
        return self._of_type(Force)

    def get_reporters(self) -> list[Reporter]:
        return self._of_type(Reporter)

    # --- Lifecycle ---

    @property
    def system(self) -> MultibodySystem | None:
        return self._built_system

    def build_system(self) -> MultibodySystem:
        """
        Connect the tree and compile it into a finalized system.

        Raises
        ------
        PortConnectionError
            If an Input cannot be resolved
        ConfigurationError
            If a component invariant is violated

        Notes
        -----
        On failure the model is left without a system, so nothing can be
        realized against a half-wired tree. States of a previous system are
        rejected from then on.
        """
        self._retire_system()
        self.connect(self)
        system = MultibodySystem(self, self.name)
        self.extend_system(system)
        system.finalize()
        self._built_system = system
        logger.info(
            "Built model '%s': %d bodies, %d coordinates, %d forces, %d reporters",
            self.name, len(system.bodies), len(system.coordinates),
            len(system.force_contributors), len(system.reporters),
        )
        return system

    def _retire_system(self) -> None:
        if self._built_system is None:
            return
        self._retired_system_ids.add(self._built_system.id)
        self._built_system = None

    def _on_subtree_changed(self) -> None:
        # Scaling edits geometry in place on a live system.
        if self._scaling or self._built_system is None:
            return
        logger.debug("Model '%s' changed; dropping its system", self.name)
        self._retire_system()

    def _require_built(self) -> MultibodySystem:
        if self._built_system is None:
            raise StateAccessError(f"Model '{self.name}' has no system; call build_system()")
        return self._built_system

    def check_state(self, state: State) -> MultibodySystem:
        """
        Return the current system after checking that ``state`` belongs to it.

        Raises
        ------
        StateAccessError
            If the model has no system, or ``state`` was created by another
            system (including one dropped after the model changed)
        """
        if state.system_id in self._retired_system_ids:
            raise StateAccessError(
                f"Model '{self.name}' changed after state {state.id} was created; "
                "call initialize_state() for a new state"
            )
        system = self._require_built()
        system.check_state(state)
        return system

    def extend_add_to_system(self, system: MultibodySystem) -> None:
        self._add_discrete_state_variable(system, "last_step_time", None, invalidates=None)

    def get_last_step_time(self, state: State) -> float | None:
        """Time of the last accepted step of ``state``, None before the first."""
        return self.get_state_variable_value(state, "last_step_time")

    def set_last_step_time(self, state: State, time: float) -> None:
        self._set_state_variable_value(state, "last_step_time", float(time))

    def initialize_state(self) -> State:
        """New State seeded from properties and realized to TIME."""
        system = self._built_system if self._built_system is not None else self.build_system()
        state = system.default_state()
        self.init_state_from_properties(state)
        system.realize(state, Stage.TIME)
        return state

    def realize(self, state: State, stage: Stage) -> None:
        self.check_state(state).realize(state, stage)

    def realize_position(self, state: State) -> None:
        self.realize(state, Stage.POSITION)

    def realize_velocity(self, state: State) -> None:
        self.realize(state, Stage.VELOCITY)

    def realize_dynamics(self, state: State) -> None:
        self.realize(state, Stage.DYNAMICS)

    def realize_report(self, state: State) -> None:
        self.realize(state, Stage.REPORT)

    def get_body_forces(self, state: State) -> NDArray[np.float64]:
        return self.check_state(state).get_body_forces(state)

    def get_generalized_forces(self, state: State) -> NDArray[np.float64]:
        return self.check_state(state).get_generalized_forces(state)

    # --- Scaling ---

    def _top_scalables(self, comp: Component) -> list[Component]:
        found = []
        for sub in comp.subcomponents:
            if isinstance(sub, Scalable):
                found.append(sub)
            else:
                found.extend(self._top_scalables(sub))
        return found

    def scale(self, state: State, scale_set: ScaleSet) -> None:
        """
        Apply per-body scale factors to every scalable component.

        Runs pre-scale on all components against the unscaled geometry,
        then scale, then re-realizes ``state`` to POSITION with the new
        geometry, then post-scale. The system stays built, so ``state``
        remains usable.
        """
        system = self.check_state(state)
        system.realize(state, Stage.POSITION)
        targets = self._top_scalables(self)
        self._scaling = True
        try:
            for comp in targets:
                comp.pre_scale(state, scale_set)
            for comp in targets:
                comp.scale(state, scale_set)
            state.invalidate(Stage.INSTANCE)
            system.realize(state, Stage.POSITION)
            for comp in targets:
                comp.post_scale(state, scale_set)
        finally:
            self._scaling = False
        logger.debug("Scaled %d components of '%s'", len(targets), self.name)
