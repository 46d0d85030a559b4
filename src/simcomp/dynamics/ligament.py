"""
Passive ligament: a tension-only force element along a geometry path.

Force law:
    strain = (L - L0) / L0
    T = pcsa_force * f(strain)   if L > L0
    T = 0                        otherwise

where L is the current path length, L0 the resting length and f the
normalized force-length curve. A ligament cannot push: for L <= L0 the
force is exactly zero regardless of the curve.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from simcomp.core.component import Component
from simcomp.core.state import Stage, State
from simcomp.dynamics.forces import Force
from simcomp.dynamics.path import GeometryPath
from simcomp.errors import ConfigurationError
from simcomp.models.functions import (
    Function,
    LinearFunction,
    default_ligament_force_length_curve,
)
from simcomp.utils.validation import validate_non_negative, validate_positive

if TYPE_CHECKING:
    from simcomp.dynamics.body import Coordinate
    from simcomp.dynamics.scaling import ScaleSet

logger = logging.getLogger(__name__)


class Ligament(Force):
    """
    Passive connective element whose tension depends on path strain.

    Parameters
    ----------
    name : str
        Ligament name
    resting_length : float
        Length at which the ligament goes slack [m]. Must be positive by
        the time the model is connected.
    pcsa_force : float
        Force scale multiplying the normalized curve [N]
    force_length_curve : Function | None
        Normalized force as a function of strain. Defaults to the standard
        ligament curve (monotone cubic through a 13-point table).

    Attributes
    ----------
    path : GeometryPath
        Owned path the tension acts along

    Examples
    --------
    >>> lig = Ligament("acl", resting_length=0.03, pcsa_force=1000.0)
    >>> lig.path.add_path_point("origin", "/model/femur", [0, -0.4, 0])
    >>> lig.path.add_path_point("insertion", "/model/tibia", [0, 0.02, 0])
    >>> model.add_force(lig)
    """

    def __init__(
        self,
        name: str = "ligament",
        resting_length: float = 0.0,
        pcsa_force: float = 0.0,
        force_length_curve: Function | None = None,
    ) -> None:
        super().__init__(name)
        self.set_resting_length(resting_length)
        self.set_max_isometric_force(pcsa_force)
        if force_length_curve is not None:
            self.set_force_length_curve(force_length_curve)

    def _construct_properties(self) -> None:
        self._declare_property(
            "path", GeometryPath, comment="Path along which the ligament acts",
            default_factory=lambda: GeometryPath("path"),
        )
        self._declare_property(
            "resting_length", float, 0.0, "Resting length of the ligament [m]",
            validator=lambda v: validate_non_negative(v, "resting_length"),
        )
        self._declare_property(
            "pcsa_force", float, 0.0, "Force magnitude that scales the force-length curve [N]",
            validator=lambda v: validate_non_negative(v, "pcsa_force"),
        )
        self._declare_property(
            "force_length_curve", Function,
            comment="Function computing normalized force vs. strain",
            default_factory=default_ligament_force_length_curve,
        )

    def _construct_outputs(self) -> None:
        self._declare_output(
            "length", float, lambda lig, state: lig.get_length(state),
            Stage.POSITION, "Current path length [m]",
        )
        self._declare_output(
            "strain", float, lambda lig, state: lig.get_strain(state),
            Stage.POSITION, "(L - L0) / L0 [-]",
        )
        self._declare_output(
            "tension", float, lambda lig, state: lig.get_tension(state),
            Stage.DYNAMICS, "Scalar tension along the path [N]",
        )

    # --- Configuration ---

    @property
    def path(self) -> GeometryPath:
        return self.get_property("path")

    def get_resting_length(self) -> float:
        return self.get_property("resting_length")

    def set_resting_length(self, length: float) -> None:
        self.set_property("resting_length", length)

    def get_max_isometric_force(self) -> float:
        return self.get_property("pcsa_force")

    def set_max_isometric_force(self, force: float) -> None:
        self.set_property("pcsa_force", force)

    def get_force_length_curve(self) -> Function:
        return self.get_property("force_length_curve")

    def set_force_length_curve(self, curve: Function) -> None:
        self.set_property("force_length_curve", curve)

    def set_linear_stiffness(self, stiffness: float, rest_length: float) -> None:
        """
        Make the ligament a linear spring: T = stiffness * (L - rest_length).

        The curve is replaced by f(strain) = rest_length * strain and the
        force scale is set to ``stiffness`` [N/m].
        """
        validate_non_negative(stiffness, "stiffness")
        validate_positive(rest_length, "rest_length")
        self.set_force_length_curve(LinearFunction(slope=rest_length, intercept=0.0))
        self.set_resting_length(rest_length)
        self.set_max_isometric_force(stiffness)

    # --- Lifecycle ---

    def extend_connect(self, root: Component) -> None:
        self._positive_resting_length()
        if self.path.owner is not self:
            raise ConfigurationError(f"Path of ligament '{self.name}' is not owned by it")

    # --- Computation ---

    def _positive_resting_length(self) -> float:
        L0 = self.get_resting_length()
        validate_positive(L0, f"resting_length of '{self.name}'")
        return L0

    def get_length(self, state: State) -> float:
        return self.path.get_length(state)

    def get_strain(self, state: State) -> float:
        """(L - L0) / L0; raises ConfigurationError unless L0 > 0."""
        L0 = self._positive_resting_length()
        return (self.get_length(state) - L0) / L0

    def get_tension(self, state: State) -> float:
        """Scalar tension [N]. Pure: does not touch any accumulator."""
        L0 = self._positive_resting_length()
        L = self.get_length(state)
        if L <= L0:
            return 0.0
        strain = (L - L0) / L0
        return float(self.get_force_length_curve()(strain)) * self.get_max_isometric_force()

    def compute_force(
        self,
        state: State,
        body_forces: NDArray[np.float64],
        generalized_forces: NDArray[np.float64],
    ) -> None:
        if self.get_length(state) <= self.get_resting_length():
            return
        tension = self.get_tension(state)
        for pfd in self.path.get_point_force_directions(state):
            self.apply_force_to_point(
                state, pfd.body, pfd.point, tension * pfd.direction, body_forces
            )

    def compute_moment_arm(
        self, state: State, coordinate: Coordinate, step: float | None = None
    ) -> float:
        return self.path.compute_moment_arm(state, coordinate, step)

    # --- Scaling ---

    def pre_scale(self, state: State, scale_set: ScaleSet) -> None:
        self.path.pre_scale(state, scale_set)

    def scale(self, state: State, scale_set: ScaleSet) -> None:
        self.path.scale(state, scale_set)

    def post_scale(self, state: State, scale_set: ScaleSet) -> None:
        """Rescale the resting length by the path's change in length."""
        path = self.path
        path.post_scale(state, scale_set)
        pre_length = path.get_pre_scale_length(state)
        if pre_length > 0.0:
            factor = path.get_length(state) / pre_length
            self.set_resting_length(self.get_resting_length() * factor)
            path.set_pre_scale_length(state, 0.0)
            logger.debug("Scaled resting length of %s by %.6g", self.absolute_path, factor)
