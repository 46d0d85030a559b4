"""
Base component: a node of the model tree.

A Component owns typed Properties, Input and Output ports, and an ordered
list of subcomponents. Every component goes through the same lifecycle:

1. construction: properties, inputs and outputs are declared and the
   structure is frozen
2. configuration: property values are set (by API or deserialization)
3. ``connect(root)``: inputs are resolved against the tree, recursively
4. ``extend_system(system)``: state variables and physical contributions
   are registered with the system, recursively and in tree order
5. ``init_state_from_properties(state)``: initial state values are seeded
6. ``realize_and_compute(state, stage)``: invoked by the system once per
   stage per time value

Subclasses customize the lifecycle through the ``extend_*`` hooks and never
override the recursive drivers.

Design Pattern: Composition over Inheritance
--------------------------------------------
Concrete components keep the hierarchy shallow (Component -> Force ->
Ligament, Component -> Reporter -> TableReporter) and advertise what they
can do through the protocols in :mod:`simcomp.core.capabilities`. The
system asks "can this compute a force?", not "is this a Force?".
"""
from __future__ import annotations

import logging
import weakref
from collections.abc import Callable, Iterator, Mapping
from typing import TYPE_CHECKING, Any, ClassVar

from simcomp.core.capabilities import ContributesForce, ReportsEvents
from simcomp.core.ports import Input, ListInput, Output
from simcomp.core.properties import Property, PropertySet, Validator, _MISSING
from simcomp.core.state import Stage, State, StateVariableHandle, VariableKind
from simcomp.errors import ConfigurationError, StateAccessError

if TYPE_CHECKING:
    from simcomp.core.system import MultibodySystem

logger = logging.getLogger(__name__)

_INVALID_NAME_CHARS = ("/", "|")


def _validate_name(name: str) -> str:
    if not isinstance(name, str) or not name:
        raise ConfigurationError(f"Component name must be a non-empty string, got {name!r}")
    if any(ch in name for ch in _INVALID_NAME_CHARS) or name in (".", ".."):
        raise ConfigurationError(f"Invalid component name {name!r}")
    return name


class Component:
    """
    Abstract composite node of a model.

    Parameters
    ----------
    name : str | None
        Component name, unique among its siblings. Defaults to the class name.

    Attributes
    ----------
    name : str
        Component identifier
    owner : Component | None
        Parent component (non-owning back-reference), None for a root
    """

    _registry: ClassVar[dict[str, type[Component]]] = {}

    def __init_subclass__(cls, **kwargs) -> None:
        super().__init_subclass__(**kwargs)
        Component._registry[cls.__name__] = cls

    def __init__(self, name: str | None = None) -> None:
        self._name = _validate_name(name if name is not None else type(self).__name__)
        self._owner_ref: weakref.ref | None = None
        self._properties = PropertySet(self._name)
        self._inputs: dict[str, Input | ListInput] = {}
        self._outputs: dict[str, Output] = {}
        self._adopted: list[Component] = []
        self._subcomponents: list[Component] = []
        self._state_variables: dict[str, StateVariableHandle] = {}
        self._system_ref: weakref.ref | None = None

        self._construct_properties()
        self._construct_inputs()
        self._construct_outputs()
        self._properties.freeze()
        self._structure_frozen = True
        self.finalize_from_properties()

    # -------------------------------------------------------------------------
    # Construction hooks (declare structure; called once from __init__)
    # -------------------------------------------------------------------------

    def _construct_properties(self) -> None:
        """Declare properties with ``_declare_property``."""

    def _construct_inputs(self) -> None:
        """Declare inputs with ``_declare_input`` / ``_declare_list_input``."""

    def _construct_outputs(self) -> None:
        """Declare outputs with ``_declare_output``."""

    def _check_structure_open(self, what: str) -> None:
        if getattr(self, "_structure_frozen", False):
            raise ConfigurationError(
                f"Cannot declare {what} on '{self._name}' after construction"
            )

    def _check_port_name(self, name: str) -> None:
        if name in self._inputs or name in self._outputs:
            raise ConfigurationError(f"Duplicate port name '{name}' on '{self._name}'")

    def _declare_property(
        self,
        name: str,
        value_type: type,
        default: Any = _MISSING,
        comment: str = "",
        *,
        default_factory: Callable[[], Any] | None = None,
        is_list: bool = False,
        size: int | None = None,
        allow_none: bool = False,
        validator: Validator | None = None,
    ) -> Property:
        self._check_structure_open(f"property '{name}'")
        prop = Property(
            name, value_type, default, comment,
            default_factory=default_factory, is_list=is_list, size=size,
            allow_none=allow_none, validator=validator,
        )
        return self._properties.declare(prop)

    def _declare_input(
        self, name: str, value_type: type, *, optional: bool = False, comment: str = ""
    ) -> Input:
        self._check_structure_open(f"input '{name}'")
        self._check_port_name(name)
        port = Input(name, value_type, optional=optional, comment=comment)
        port._attach(self)
        self._inputs[name] = port
        return port

    def _declare_list_input(
        self, name: str, value_type: type, *, optional: bool = True, comment: str = ""
    ) -> ListInput:
        self._check_structure_open(f"input '{name}'")
        self._check_port_name(name)
        port = ListInput(name, value_type, optional=optional, comment=comment)
        port._attach(self)
        self._inputs[name] = port
        return port

    def _declare_output(
        self,
        name: str,
        value_type: type,
        compute: Callable[[Any, State], Any],
        stage: Stage = Stage.POSITION,
        comment: str = "",
        cached: bool = True,
    ) -> Output:
        self._check_structure_open(f"output '{name}'")
        self._check_port_name(name)
        port = Output(name, value_type, compute, stage, comment, cached)
        port._attach(self)
        self._outputs[name] = port
        return port

    # -------------------------------------------------------------------------
    # Identity and tree structure
    # -------------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def owner(self) -> Component | None:
        """Parent component, or None when not attached to a tree."""
        if self._owner_ref is None:
            return None
        return self._owner_ref()

    def has_owner(self) -> bool:
        return self.owner is not None

    @property
    def root(self) -> Component:
        comp = self
        while comp.owner is not None:
            comp = comp.owner
        return comp

    @property
    def absolute_path(self) -> str:
        names = []
        comp: Component | None = self
        while comp is not None:
            names.append(comp.name)
            comp = comp.owner
        return "/" + "/".join(reversed(names))

    @property
    def subcomponents(self) -> tuple[Component, ...]:
        return tuple(self._subcomponents)

    def iter_components(self, include_self: bool = False) -> Iterator[Component]:
        """Pre-order traversal of the subtree (deterministic)."""
        if include_self:
            yield self
        for sub in self._subcomponents:
            yield from sub.iter_components(include_self=True)

    def _ancestors(self) -> Iterator[Component]:
        comp = self.owner
        while comp is not None:
            yield comp
            comp = comp.owner

    def _check_can_adopt(self, component: Component) -> None:
        if not isinstance(component, Component):
            raise ConfigurationError(
                f"Subcomponent must be a Component, got {type(component).__name__}"
            )
        if component is self or any(a is component for a in self._ancestors()):
            raise ConfigurationError(
                f"Adopting '{component.name}' into '{self._name}' would create a cycle"
            )
        # Owners are held weakly: a component whose owner was collected is free again.
        owner = component.owner
        if owner is not None and owner is not self:
            raise ConfigurationError(
                f"'{component.name}' is already owned by '{owner.absolute_path}'"
            )

    def finalize_from_properties(self) -> None:
        """
        Rebuild the subcomponent list.

        Component-valued properties come first (in declaration order),
        followed by explicitly added components. Idempotent.
        """
        candidates = [
            p.value for p in self._properties.values()
            if isinstance(p.value, Component)
        ]
        candidates.extend(self._adopted)

        seen: set[str] = set()
        for comp in candidates:
            self._check_can_adopt(comp)
            if comp.name in seen:
                raise ConfigurationError(
                    f"Duplicate subcomponent name '{comp.name}' in '{self._name}'"
                )
            seen.add(comp.name)

        for comp in candidates:
            comp._owner_ref = weakref.ref(self)
        self._subcomponents = candidates

    def add_component(self, component: Component) -> Component:
        """
        Adopt ``component`` as an owned subcomponent.

        Raises
        ------
        ConfigurationError
            If the component already has another owner, its name clashes
            with a sibling, or adoption would create a cycle
        """
        self._check_can_adopt(component)
        if any(c is component for c in self._subcomponents):
            return component
        if any(c.name == component.name for c in self._subcomponents):
            raise ConfigurationError(
                f"Duplicate subcomponent name '{component.name}' in '{self._name}'"
            )
        self._adopted.append(component)
        self.finalize_from_properties()
        self._notify_changed()
        return component

    def remove_component(self, component: Component) -> None:
        """Release an explicitly added subcomponent."""
        for i, comp in enumerate(self._adopted):
            if comp is component:
                del self._adopted[i]
                component._owner_ref = None
                self.finalize_from_properties()
                self._notify_changed()
                return
        raise ConfigurationError(
            f"'{component.name}' is not an added subcomponent of '{self._name}'"
        )

    def _child(self, name: str) -> Component | None:
        for sub in self._subcomponents:
            if sub.name == name:
                return sub
        return None

    def find_component(self, path: str) -> Component | None:
        """
        Resolve a component path.

        Parameters
        ----------
        path : str
            Absolute (``/model/lig/path``) or relative to this component
            (``lig/path``, ``../other``, ``.``)

        Returns
        -------
        Component | None
            The component, or None if the path does not resolve
        """
        segments = [s for s in path.split("/") if s]
        if path.startswith("/"):
            current: Component | None = self.root
            if not segments or segments[0] != current.name:
                return None
            segments = segments[1:]
        else:
            current = self

        for seg in segments:
            if current is None:
                return None
            if seg == ".":
                continue
            if seg == "..":
                current = current.owner
                continue
            current = current._child(seg)
        return current

    def get_component(self, path: str) -> Component:
        """Like ``find_component`` but raises ConfigurationError when missing."""
        comp = self.find_component(path)
        if comp is None:
            raise ConfigurationError(
                f"No component at '{path}' relative to '{self.absolute_path}'"
            )
        return comp

    def find_components_by_name(self, name: str) -> list[Component]:
        return [c for c in self.iter_components(include_self=True) if c.name == name]

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def property_names(self) -> list[str]:
        return self._properties.names()

    def get_property(self, name: str) -> Any:
        return self._properties.get(name).value

    def get_property_comment(self, name: str) -> str:
        return self._properties.get(name).comment

    def set_property(self, name: str, value: Any) -> None:
        """
        Set a property value.

        Component-valued properties transfer ownership: the previous value
        is released and the new one is adopted as a subcomponent.
        """
        prop = self._properties.get(name)
        old = prop.value
        if isinstance(value, Component) and value is not old:
            self._check_can_adopt(value)
        prop.set_value(value)
        if isinstance(old, Component) and old is not value:
            old._owner_ref = None
        if isinstance(old, Component) or isinstance(value, Component):
            self.finalize_from_properties()
        self._notify_changed()

    def _notify_changed(self) -> None:
        """Tell this component and every ancestor that the subtree changed."""
        comp: Component | None = self
        while comp is not None:
            comp._on_subtree_changed()
            comp = comp.owner

    def _on_subtree_changed(self) -> None:
        """Hook for components that cache anything derived from their subtree."""

    # -------------------------------------------------------------------------
    # Ports
    # -------------------------------------------------------------------------

    @property
    def inputs(self) -> dict[str, Input | ListInput]:
        return dict(self._inputs)

    @property
    def outputs(self) -> dict[str, Output]:
        return dict(self._outputs)

    def get_input(self, name: str) -> Input | ListInput:
        try:
            return self._inputs[name]
        except KeyError:
            raise ConfigurationError(
                f"'{self._name}' has no input '{name}'. Valid options: {list(self._inputs)}"
            ) from None

    def get_output(self, name: str) -> Output:
        try:
            return self._outputs[name]
        except KeyError:
            raise ConfigurationError(
                f"'{self._name}' has no output '{name}'. Valid options: {list(self._outputs)}"
            ) from None

    def get_output_value(self, state: State, name: str) -> Any:
        return self.get_output(name).get_value(state)

    # -------------------------------------------------------------------------
    # Lifecycle drivers (recursive; do not override)
    # -------------------------------------------------------------------------

    def connect(self, root: Component | None = None) -> None:
        """
        Wire inputs to outputs for this component and its subtree.

        Safe to call again after structural changes: every input is
        re-resolved from its configured path.

        Raises
        ------
        PortConnectionError
            If a required input is unresolved or types mismatch
        ConfigurationError
            If a component invariant is violated
        """
        root = root if root is not None else self.root
        self.finalize_from_properties()
        for port in self._inputs.values():
            port.connect(self, root)
        self.extend_connect(root)
        logger.debug("Connected %s", self.absolute_path)
        for sub in self._subcomponents:
            sub.connect(root)

    def extend_system(self, system: MultibodySystem) -> None:
        """Register state variables and contributions, then recurse."""
        self._state_variables = {}
        self._system_ref = weakref.ref(system)
        self.extend_add_to_system(system)
        if isinstance(self, ContributesForce):
            system.add_force_contributor(self)
        if isinstance(self, ReportsEvents):
            system.add_reporter(self)
        for sub in self._subcomponents:
            sub.extend_system(system)

    def init_state_from_properties(self, state: State) -> None:
        """Seed this subtree's state variables from property values."""
        self._check_state(state)
        self.extend_init_state_from_properties(state)
        for sub in self._subcomponents:
            sub.init_state_from_properties(state)

    def realize_and_compute(self, state: State, stage: Stage) -> None:
        """Per-stage realization of this subtree; invoked by the system."""
        self.extend_realize(state, stage)
        for sub in self._subcomponents:
            sub.realize_and_compute(state, stage)

    # -------------------------------------------------------------------------
    # Lifecycle hooks (override in subclasses)
    # -------------------------------------------------------------------------

    def extend_connect(self, root: Component) -> None:
        """Resolve references beyond ports and validate invariants."""

    def extend_add_to_system(self, system: MultibodySystem) -> None:
        """Register this component's own state variables and resources."""

    def extend_init_state_from_properties(self, state: State) -> None:
        """Write initial values of this component's own state variables."""

    def extend_realize(self, state: State, stage: Stage) -> None:
        """Compute this component's quantities for ``stage``; caches only."""

    # -------------------------------------------------------------------------
    # State variables
    # -------------------------------------------------------------------------

    @property
    def system(self) -> MultibodySystem | None:
        """System this component was last added to, if any."""
        if self._system_ref is None:
            return None
        return self._system_ref()

    def _require_system(self) -> MultibodySystem:
        system = self.system
        if system is None:
            raise StateAccessError(
                f"'{self.absolute_path}' has not been added to a system; "
                "build the model first"
            )
        return system

    def _check_state(self, state: State) -> None:
        system = self._require_system()
        if state.system_id != system.id:
            raise StateAccessError(
                f"State was not created by the system '{self.absolute_path}' belongs to"
            )

    def _add_continuous_state_variable(
        self,
        system: MultibodySystem,
        name: str,
        size: int = 1,
        default: Any = 0.0,
        invalidates: Stage = Stage.POSITION,
    ) -> StateVariableHandle:
        if name in self._state_variables:
            raise ConfigurationError(
                f"Duplicate state variable '{name}' on '{self.absolute_path}'"
            )
        handle = system.add_continuous_variable(
            self.absolute_path, name, size=size, default=default, invalidates=invalidates
        )
        self._state_variables[name] = handle
        return handle

    def _add_discrete_state_variable(
        self,
        system: MultibodySystem,
        name: str,
        default: Any = None,
        *,
        default_factory: Callable[[], Any] | None = None,
        invalidates: Stage | None = Stage.INSTANCE,
    ) -> StateVariableHandle:
        if name in self._state_variables:
            raise ConfigurationError(
                f"Duplicate state variable '{name}' on '{self.absolute_path}'"
            )
        handle = system.add_discrete_variable(
            self.absolute_path, name, default=default,
            default_factory=default_factory, invalidates=invalidates,
        )
        self._state_variables[name] = handle
        return handle

    def get_state_variable_names(self) -> list[str]:
        return list(self._state_variables)

    def get_state_variable_handle(self, name: str) -> StateVariableHandle:
        try:
            return self._state_variables[name]
        except KeyError:
            raise StateAccessError(
                f"'{self.absolute_path}' has no registered state variable '{name}'"
            ) from None

    def get_state_variable_value(self, state: State, name: str) -> Any:
        """Read one of this component's state variables (public, read-only)."""
        handle = self.get_state_variable_handle(name)
        if handle.kind is VariableKind.CONTINUOUS:
            return state.get_continuous(handle)
        return state.get_discrete(handle)

    def _set_state_variable_value(self, state: State, name: str, value: Any) -> None:
        handle = self.get_state_variable_handle(name)
        if handle.kind is VariableKind.CONTINUOUS:
            state.set_continuous(handle, value)
        else:
            state.set_discrete(handle, value)

    def _upd_state_variable(self, state: State, name: str) -> Any:
        """Mutable access to a discrete variable this component owns."""
        return state.upd_discrete(self.get_state_variable_handle(name))

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize configuration (not state) to plain Python data.

        Returns
        -------
        dict
            ``type``, ``name``, ``properties``, ``inputs`` and the explicitly
            added ``components``
        """
        inputs: dict[str, Any] = {}
        for name, port in self._inputs.items():
            if isinstance(port, ListInput):
                inputs[name] = [
                    {"path": c.path, "alias": c.alias} for c in port.channels
                ]
            else:
                inputs[name] = port.connectee_path
        return {
            "type": type(self).__name__,
            "name": self._name,
            "properties": self._properties.to_dict(),
            "inputs": inputs,
            "components": [c.to_dict() for c in self._adopted],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Component:
        """Rebuild a component tree produced by ``to_dict``."""
        type_name = data.get("type")
        comp_cls = Component._registry.get(type_name)
        if comp_cls is None:
            raise ConfigurationError(f"Unknown component type {type_name!r}")
        if not issubclass(comp_cls, cls):
            raise ConfigurationError(
                f"Serialized type {type_name!r} is not a {cls.__name__}"
            )
        comp = comp_cls(name=data["name"])
        for prop_name, raw in data.get("properties", {}).items():
            prop = comp._properties.get(prop_name)
            comp.set_property(prop_name, prop.decode(raw))
        for sub in data.get("components", []):
            comp.add_component(Component.from_dict(sub))
        for port_name, raw in data.get("inputs", {}).items():
            port = comp.get_input(port_name)
            if isinstance(port, ListInput):
                port.clear()
                for channel in raw:
                    port.add_channel(channel["path"], channel.get("alias"))
            elif raw:
                port.connect_to(raw)
        return comp

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self._name}')"
