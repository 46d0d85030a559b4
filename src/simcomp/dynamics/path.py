"""
Point-to-point geometry paths.

A GeometryPath is an ordered list of PathPoints, each fixed in a body. Its
length is the sum of straight segment lengths between consecutive points
in ground. Wrapping surfaces are not modelled.
"""
from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from simcomp.config import DEFAULT_CONFIG
from simcomp.core.component import Component
from simcomp.core.ports import resolve_component
from simcomp.core.state import Stage, State
from simcomp.dynamics.body import Body, Coordinate
from simcomp.errors import ConfigurationError, PortConnectionError
from simcomp.utils.validation import validate_positive, validate_vector

if TYPE_CHECKING:
    from simcomp.core.system import MultibodySystem
    from simcomp.dynamics.scaling import ScaleSet

logger = logging.getLogger(__name__)

EPSILON_LENGTH = 1e-12


@dataclass
class PointForceDirection:
    """
    Where and along which direction a path applies its tension.

    Attributes
    ----------
    body : Body
        Body the point is fixed in
    point : NDArray[np.float64]
        Point location in the body frame [m] (3,)
    direction : NDArray[np.float64]
        Ground-frame direction of the force per unit tension (3,)
    """

    body: Body
    point: NDArray[np.float64]
    direction: NDArray[np.float64]


class PathPoint(Component):
    """A point fixed in a body, given in the body frame."""

    def __init__(
        self,
        name: str,
        body: str = "",
        location: NDArray[np.float64] | list[float] | None = None,
    ) -> None:
        self._body: Body | None = None
        super().__init__(name)
        self.set_property("body", body)
        if location is not None:
            self.set_property("location", validate_vector(location, 3, "location"))

    def _construct_properties(self) -> None:
        self._declare_property("body", str, "", "Path of the body the point is fixed in")
        self._declare_property(
            "location", float, [0.0, 0.0, 0.0], "Location in the body frame [m]",
            is_list=True, size=3,
        )

    def extend_connect(self, root: Component) -> None:
        comp = resolve_component(self, root, self.get_property("body"), f"body of '{self.name}'")
        if not isinstance(comp, Body):
            raise PortConnectionError(
                f"Path point '{self.name}' must reference a body, got '{comp.absolute_path}'"
            )
        self._body = comp

    @property
    def body(self) -> Body:
        if self._body is None:
            raise ConfigurationError(f"Path point '{self.name}' is not connected")
        return self._body

    @property
    def location(self) -> NDArray[np.float64]:
        return np.asarray(self.get_property("location"), dtype=np.float64)

    def get_location_in_ground(self, state: State) -> NDArray[np.float64]:
        return self.body.station_location_in_ground(state, self.location)

    def scale(self, state: State, scale_set: ScaleSet) -> None:
        factors = scale_set.get_factors(self.body.name)
        self.set_property("location", self.location * factors)


class GeometryPath(Component):
    """
    Straight-line path through an ordered list of points.

    The path is normally owned by a force element (e.g. a Ligament) and
    reports its length, the per-point force directions used to apply a
    tension, and moment arms about generalized coordinates.
    """

    def _construct_outputs(self) -> None:
        self._declare_output(
            "length", float, lambda path, state: path.get_length(state),
            Stage.POSITION, "Total path length [m]",
        )

    # --- Points ---

    def add_path_point(
        self,
        name: str,
        body: Body | str,
        location: NDArray[np.float64] | list[float],
    ) -> PathPoint:
        """
        Append a point fixed in ``body``.

        Parameters
        ----------
        name : str
            Point name, unique within the path
        body : Body | str
            Body (or path to it) the point is fixed in
        location : array-like
            Point location in the body frame [m] (3,)
        """
        body_path = body.absolute_path if isinstance(body, Body) else body
        return self.add_component(PathPoint(name, body_path, location))

    @property
    def path_points(self) -> list[PathPoint]:
        return [c for c in self.subcomponents if isinstance(c, PathPoint)]

    # --- Lifecycle ---

    def extend_add_to_system(self, system: MultibodySystem) -> None:
        self._add_discrete_state_variable(
            system, "pre_scale_length", 0.0, invalidates=None
        )

    def extend_realize(self, state: State, stage: Stage) -> None:
        if stage is Stage.POSITION:
            self.get_length(state)

    # --- Geometry ---

    def get_length(self, state: State) -> float:
        """Sum of segment lengths [m]; requires POSITION."""
        state.require_stage(Stage.POSITION, f"Length of path '{self.name}'")
        key = ("path_length", id(self))
        if state.has_cache(key):
            return state.get_cache(key)
        points = self.path_points
        if len(points) < 2:
            warnings.warn(
                f"Path '{self.absolute_path}' has {len(points)} point(s); length is 0",
                RuntimeWarning,
                stacklevel=2
            )
            length = 0.0
        else:
            locations = np.array([p.get_location_in_ground(state) for p in points])
            length = float(np.sum(np.linalg.norm(np.diff(locations, axis=0), axis=1)))
        state.set_cache(key, Stage.POSITION, length)
        return length

    def get_point_force_directions(self, state: State) -> list[PointForceDirection]:
        """
        Unit-tension force direction at every path point.

        At each point the direction is the sum of the unit vectors pointing
        to its neighbours, so a positive tension pulls every point along
        the path toward the rest of it.
        """
        state.require_stage(Stage.POSITION, f"Force directions of path '{self.name}'")
        points = self.path_points
        locations = [p.get_location_in_ground(state) for p in points]
        units = []
        for a, b in zip(locations[:-1], locations[1:]):
            seg = b - a
            n = np.linalg.norm(seg)
            units.append(seg / n if n > EPSILON_LENGTH else np.zeros(3))

        directions = []
        for i, point in enumerate(points):
            d = np.zeros(3)
            if i > 0:
                d -= units[i - 1]
            if i < len(points) - 1:
                d += units[i]
            directions.append(PointForceDirection(point.body, point.location, d))
        return directions

    def compute_moment_arm(
        self, state: State, coordinate: Coordinate, step: float | None = None
    ) -> float:
        """
        Moment arm about ``coordinate``: r = -dL/dq.

        Evaluated by central differences on copies of ``state``; the input
        state is not modified.

        Parameters
        ----------
        state : State
            State realized to at least TIME
        coordinate : Coordinate
            Generalized coordinate to differentiate against
        step : float | None
            Perturbation of the coordinate. Defaults to the model's
            ``SimulationConfig.moment_arm_step``.
        """
        if step is None:
            step = getattr(self.root, "config", DEFAULT_CONFIG).moment_arm_step
        validate_positive(step, "step")
        system = self._require_system()
        q0 = coordinate.get_value(state)

        lengths = []
        for q in (q0 + step, q0 - step):
            perturbed = state.copy()
            coordinate.set_value(perturbed, q)
            system.realize(perturbed, Stage.POSITION)
            lengths.append(self.get_length(perturbed))
        return -(lengths[0] - lengths[1]) / (2.0 * step)

    # --- Scaling ---

    def get_pre_scale_length(self, state: State) -> float:
        return self.get_state_variable_value(state, "pre_scale_length")

    def set_pre_scale_length(self, state: State, length: float) -> None:
        self._set_state_variable_value(state, "pre_scale_length", float(length))

    def pre_scale(self, state: State, scale_set: ScaleSet) -> None:
        """Record the current length so owners can rescale against it."""
        self.set_pre_scale_length(state, self.get_length(state))

    def scale(self, state: State, scale_set: ScaleSet) -> None:
        for point in self.path_points:
            point.scale(state, scale_set)
        logger.debug("Scaled %d points of %s", len(self.path_points), self.absolute_path)

    def post_scale(self, state: State, scale_set: ScaleSet) -> None:
        pass
