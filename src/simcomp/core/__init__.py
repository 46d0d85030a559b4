"""Component framework: properties, ports, state, lifecycle and the system builder."""

from .capabilities import (
    ContributesForce,
    HasPorts,
    HasProperties,
    OwnsStateVariables,
    ProducesOutput,
    ReportsEvents,
    Scalable,
)
from .component import Component
from .ports import Input, InputChannel, ListInput, Output
from .properties import Property, PropertySet
from .state import Stage, State, StateVariableHandle, VariableKind
from .system import MultibodySystem

__all__ = [
    "Component",
    "Property",
    "PropertySet",
    "Input",
    "ListInput",
    "InputChannel",
    "Output",
    "Stage",
    "State",
    "StateVariableHandle",
    "VariableKind",
    "MultibodySystem",
    # Capabilities
    "HasProperties",
    "HasPorts",
    "ProducesOutput",
    "OwnsStateVariables",
    "ContributesForce",
    "ReportsEvents",
    "Scalable",
]
