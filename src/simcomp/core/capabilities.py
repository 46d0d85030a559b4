"""
Capability interfaces components may implement.

The system and the model dispatch on these protocols rather than on the
class hierarchy: anything that can compute a force is registered as a force
contributor, anything that can report is handed report events, and so on.
A concrete component implements only the capabilities it needs.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    import numpy as np
    from numpy.typing import NDArray

    from simcomp.core.ports import Input, ListInput, Output
    from simcomp.core.state import State
    from simcomp.dynamics.scaling import ScaleSet


@runtime_checkable
class HasProperties(Protocol):
    def get_property(self, name: str) -> Any: ...

    def set_property(self, name: str, value: Any) -> None: ...


@runtime_checkable
class HasPorts(Protocol):
    @property
    def inputs(self) -> dict[str, Input | ListInput]: ...

    @property
    def outputs(self) -> dict[str, Output]: ...


@runtime_checkable
class ProducesOutput(Protocol):
    def get_output_value(self, state: State, name: str) -> Any: ...


@runtime_checkable
class OwnsStateVariables(Protocol):
    def get_state_variable_names(self) -> list[str]: ...

    def get_state_variable_value(self, state: State, name: str) -> Any: ...


@runtime_checkable
class ContributesForce(Protocol):
    """Adds forces into externally owned accumulators at DYNAMICS."""

    def compute_force(
        self,
        state: State,
        body_forces: NDArray[np.float64],
        generalized_forces: NDArray[np.float64],
    ) -> None: ...


@runtime_checkable
class ReportsEvents(Protocol):
    """Receives report events dispatched by the driving integrator."""

    def is_report_due(
        self, previous_time: float | None, time: float, tolerance: float = ...
    ) -> bool: ...

    def report(self, state: State) -> None: ...


@runtime_checkable
class Scalable(Protocol):
    """Takes part in the three-phase scale protocol."""

    def pre_scale(self, state: State, scale_set: ScaleSet) -> None: ...

    def scale(self, state: State, scale_set: ScaleSet) -> None: ...

    def post_scale(self, state: State, scale_set: ScaleSet) -> None: ...
