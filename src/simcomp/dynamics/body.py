"""
Bodies and generalized coordinates.

Body poses live in the State, not on the component: translation ``p`` [m]
and orientation quaternion ``q`` (scalar-last ``[x, y, z, w]``) are
continuous state variables registered during extend-system. The Body
component only holds the initial pose and mass as Properties.

All physical quantities use SI units.
"""
from __future__ import annotations

import warnings
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray
from scipy.spatial.transform import Rotation as ScR

from simcomp.core.component import Component
from simcomp.core.ports import resolve_component
from simcomp.core.state import Stage, State
from simcomp.errors import ConfigurationError, PortConnectionError
from simcomp.utils.validation import validate_positive, validate_quaternion, validate_vector

if TYPE_CHECKING:
    from simcomp.core.system import MultibodySystem

QUATERNION_EPSILON = 1e-12
AXES = {"tx": 0, "ty": 1, "tz": 2}


def quat_normalize(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Return unit quaternion (float64).

    Parameters
    ----------
    q : NDArray[np.float64]
        Quaternion in scalar-last format [x, y, z, w].

    Returns
    -------
    NDArray[np.float64]
        Normalized unit quaternion. Returns [0, 0, 0, 1] if input norm is zero.
    """
    q = np.asarray(q, dtype=np.float64)
    n = np.linalg.norm(q)
    if n < QUATERNION_EPSILON:
        warnings.warn(
            "Zero-norm quaternion detected. Returning identity quaternion [0,0,0,1].",
            RuntimeWarning,
            stacklevel=2
        )
        return np.array([0.0, 0.0, 0.0, 1.0], dtype=np.float64)
    return q / n


class Body(Component):
    """
    Free rigid body whose pose is part of the simulation state.

    Parameters
    ----------
    name : str
        Body name, unique among its siblings
    mass : float
        Mass [kg], must be positive
    position : array-like, optional
        Initial position of the body origin in ground [m] (3,)
    orientation : array-like, optional
        Initial orientation quaternion [x, y, z, w] (4,)

    Notes
    -----
    Writing the pose invalidates POSITION and every later stage, so paths,
    lengths and forces are recomputed on the next realization.
    """

    def __init__(
        self,
        name: str,
        mass: float = 1.0,
        position: NDArray[np.float64] | list[float] | None = None,
        orientation: NDArray[np.float64] | list[float] | None = None,
    ) -> None:
        self._index: int | None = None
        super().__init__(name)
        self.set_property("mass", mass)
        if position is not None:
            self.set_property("initial_position", validate_vector(position, 3, "position"))
        if orientation is not None:
            self.set_property("initial_orientation", validate_vector(orientation, 4, "orientation"))

    def _construct_properties(self) -> None:
        self._declare_property(
            "mass", float, 1.0, "Mass of the body [kg]",
            validator=lambda m: validate_positive(m, "mass"),
        )
        self._declare_property(
            "initial_position", float, [0.0, 0.0, 0.0],
            "Initial position of the body origin in ground [m]", is_list=True, size=3,
        )
        self._declare_property(
            "initial_orientation", float, [0.0, 0.0, 0.0, 1.0],
            "Initial orientation quaternion, scalar-last [x, y, z, w]",
            is_list=True, size=4, validator=validate_quaternion,
        )

    def _construct_outputs(self) -> None:
        self._declare_output(
            "position", np.ndarray, lambda body, state: body.get_position(state),
            Stage.POSITION, "Body origin in ground [m]",
        )

    # --- System ---

    @property
    def index(self) -> int:
        """Row of this body in the system's force buffer."""
        if self._index is None:
            raise ConfigurationError(f"Body '{self.name}' has not been added to a system")
        return self._index

    def extend_add_to_system(self, system: MultibodySystem) -> None:
        self._index = system.add_body(self)
        self._add_continuous_state_variable(system, "translation", size=3)
        self._add_continuous_state_variable(
            system, "orientation", size=4, default=[0.0, 0.0, 0.0, 1.0]
        )

    def extend_init_state_from_properties(self, state: State) -> None:
        self._set_state_variable_value(
            state, "translation", np.asarray(self.get_property("initial_position"))
        )
        self._set_state_variable_value(
            state, "orientation", quat_normalize(self.get_property("initial_orientation"))
        )

    # --- Pose ---

    def get_position(self, state: State) -> NDArray[np.float64]:
        return np.asarray(self.get_state_variable_value(state, "translation"))

    def get_orientation(self, state: State) -> NDArray[np.float64]:
        return np.asarray(self.get_state_variable_value(state, "orientation"))

    def get_rotation(self, state: State) -> NDArray[np.float64]:
        """Rotation matrix body -> ground (3, 3); requires POSITION."""
        state.require_stage(Stage.POSITION, f"Rotation of '{self.name}'")
        key = ("rotation", id(self))
        if state.has_cache(key):
            return state.get_cache(key)
        R = ScR.from_quat(self.get_orientation(state)).as_matrix()
        state.set_cache(key, Stage.POSITION, R)
        return R

    def station_location_in_ground(
        self, state: State, station: NDArray[np.float64]
    ) -> NDArray[np.float64]:
        """Ground-frame location of a point fixed in this body [m]."""
        return self.get_position(state) + self.get_rotation(state) @ np.asarray(
            station, dtype=np.float64
        )

    def set_position(self, state: State, position: NDArray[np.float64]) -> None:
        self._set_state_variable_value(state, "translation", validate_vector(position, 3, "position"))

    def set_pose(
        self,
        state: State,
        position: NDArray[np.float64],
        orientation: NDArray[np.float64] | None = None,
    ) -> None:
        """Write the body pose into ``state``; invalidates POSITION."""
        self.set_position(state, position)
        if orientation is not None:
            q = validate_vector(orientation, 4, "orientation")
            self._set_state_variable_value(state, "orientation", quat_normalize(q))


class Ground(Body):
    """Inertial frame. Fixed at the origin, always index 0 in the system."""

    def __init__(self, name: str = "ground") -> None:
        self._index = None
        Component.__init__(self, name)

    def _construct_properties(self) -> None:
        pass

    def extend_add_to_system(self, system: MultibodySystem) -> None:
        self._index = system.add_body(self)
        if self._index != 0:
            raise ConfigurationError("Ground must be the first body registered")

    def extend_init_state_from_properties(self, state: State) -> None:
        pass

    def get_position(self, state: State) -> NDArray[np.float64]:
        return np.zeros(3)

    def get_orientation(self, state: State) -> NDArray[np.float64]:
        return np.array([0.0, 0.0, 0.0, 1.0])

    def get_rotation(self, state: State) -> NDArray[np.float64]:
        return np.eye(3)

    def set_pose(self, state, position, orientation=None) -> None:
        raise ConfigurationError("Ground cannot be moved")

    def set_position(self, state, position) -> None:
        raise ConfigurationError("Ground cannot be moved")


class Coordinate(Component):
    """
    Translational generalized coordinate of a body along a ground axis.

    Parameters
    ----------
    name : str
        Coordinate name
    body : str
        Path (or unique name) of the body this coordinate moves
    axis : str
        One of 'tx', 'ty', 'tz'
    """

    def __init__(self, name: str, body: str = "", axis: str = "tx") -> None:
        self._body: Body | None = None
        self._index: int | None = None
        super().__init__(name)
        self.set_property("body", body)
        self.set_property("axis", axis)

    def _construct_properties(self) -> None:
        self._declare_property("body", str, "", "Path of the body this coordinate moves")
        self._declare_property(
            "axis", str, "tx", "Ground axis of translation: tx, ty or tz",
            validator=_validate_axis,
        )

    def _construct_outputs(self) -> None:
        self._declare_output(
            "value", float, lambda coord, state: coord.get_value(state),
            Stage.POSITION, "Coordinate value [m]",
        )

    def extend_connect(self, root: Component) -> None:
        comp = resolve_component(self, root, self.get_property("body"), f"body of '{self.name}'")
        if not isinstance(comp, Body) or isinstance(comp, Ground):
            raise PortConnectionError(
                f"Coordinate '{self.name}' must reference a movable body, "
                f"got '{comp.absolute_path}'"
            )
        self._body = comp

    def extend_add_to_system(self, system: MultibodySystem) -> None:
        self._index = system.add_coordinate(self)

    @property
    def body(self) -> Body:
        if self._body is None:
            raise ConfigurationError(f"Coordinate '{self.name}' is not connected")
        return self._body

    @property
    def index(self) -> int:
        if self._index is None:
            raise ConfigurationError(f"Coordinate '{self.name}' has not been added to a system")
        return self._index

    @property
    def axis_index(self) -> int:
        return AXES[self.get_property("axis")]

    def get_value(self, state: State) -> float:
        return float(self.body.get_position(state)[self.axis_index])

    def set_value(self, state: State, value: float) -> None:
        p = self.body.get_position(state)
        p[self.axis_index] = float(value)
        self.body.set_position(state, p)


def _validate_axis(axis: str) -> None:
    if axis not in AXES:
        raise ConfigurationError(f"Invalid axis '{axis}'. Valid options: {list(AXES)}")
