"""
Force elements.

A Force is a component that adds spatial forces and generalized forces into
accumulators owned by the system during DYNAMICS realization. Forces never
overwrite an accumulator, they only add to it.

Physical units:
- Forces: Newtons [N]
- Torques: Newton-meters [N·m]
"""
from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np
from numpy.typing import NDArray

from simcomp.core.component import Component
from simcomp.core.state import State
from simcomp.dynamics.body import Body, Coordinate


class Force(Component, ABC):
    """
    Base class for components that contribute forces.

    Subclasses implement ``compute_force``; the system registers every
    component that can compute a force and calls it once per DYNAMICS
    realization with freshly zeroed accumulators.
    """

    @abstractmethod
    def compute_force(
        self,
        state: State,
        body_forces: NDArray[np.float64],
        generalized_forces: NDArray[np.float64],
    ) -> None:
        """
        Add this element's contribution to the accumulators.

        Parameters
        ----------
        state : State
            State being realized to DYNAMICS
        body_forces : NDArray[np.float64]
            Spatial forces per body (n_bodies, 6), rows [torque, force] in ground
        generalized_forces : NDArray[np.float64]
            Generalized forces per coordinate (n_coordinates,)
        """

    @staticmethod
    def apply_force_to_point(
        state: State,
        body: Body,
        point: NDArray[np.float64],
        force: NDArray[np.float64],
        body_forces: NDArray[np.float64],
    ) -> None:
        """
        Add a ground-frame force acting at a body-fixed point.

        The torque about the body origin is ``(R @ point) x force``.
        """
        force = np.asarray(force, dtype=np.float64)
        r_w = body.get_rotation(state) @ np.asarray(point, dtype=np.float64)
        body_forces[body.index, 3:] += force
        body_forces[body.index, :3] += np.cross(r_w, force)

    @staticmethod
    def apply_torque(
        state: State,
        body: Body,
        torque: NDArray[np.float64],
        body_forces: NDArray[np.float64],
    ) -> None:
        body_forces[body.index, :3] += np.asarray(torque, dtype=np.float64)

    @staticmethod
    def apply_generalized_force(
        state: State,
        coordinate: Coordinate,
        force: float,
        generalized_forces: NDArray[np.float64],
    ) -> None:
        generalized_forces[coordinate.index] += float(force)
