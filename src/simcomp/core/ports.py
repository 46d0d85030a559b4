"""
Typed named sockets that wire data dependencies between components.

An Output is published by a component and computed from the state and the
component's own properties. An Input names the Output it depends on with a
connectee path of the form ``"<component path>|<output name>"`` and is
resolved to exactly one Output during ``connect``.

Component paths are absolute (``/model/knee_lig``), relative to the
component that owns the Input (``../knee_lig``), or a bare component name,
which is looked up among the owner's children first and then across the
whole tree (it must be unique).
"""
from __future__ import annotations

import weakref
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from simcomp.core.state import Stage, State
from simcomp.errors import ConfigurationError, PortConnectionError

if TYPE_CHECKING:
    from simcomp.core.component import Component

PATH_SEPARATOR = "|"


class Output:
    """
    A value published by a component.

    Parameters
    ----------
    name : str
        Output name, unique among the owner's ports
    value_type : type
        Type of the produced value
    compute : Callable[[Component, State], Any]
        Pure function of (owning component, state)
    depends_on_stage : Stage
        Stage the state must be realized to before the value is readable
    comment : str
        Human-readable description
    cached : bool
        Whether to memoize the value in the state's cache
    """

    def __init__(
        self,
        name: str,
        value_type: type,
        compute: Callable[[Component, State], Any],
        depends_on_stage: Stage = Stage.POSITION,
        comment: str = "",
        cached: bool = True,
    ) -> None:
        self.name = name
        self.value_type = value_type
        self.depends_on_stage = Stage(depends_on_stage)
        self.comment = comment
        self.cached = cached
        self._compute = compute
        self._owner_ref: weakref.ref | None = None

    def _attach(self, owner: Component) -> None:
        self._owner_ref = weakref.ref(owner)

    @property
    def owner(self) -> Component:
        owner = self._owner_ref() if self._owner_ref is not None else None
        if owner is None:
            raise ConfigurationError(f"Output '{self.name}' is not attached to a component")
        return owner

    @property
    def path(self) -> str:
        return f"{self.owner.absolute_path}{PATH_SEPARATOR}{self.name}"

    def get_value(self, state: State) -> Any:
        """Evaluate the output; the state must be realized to its stage."""
        owner = self.owner
        state.require_stage(self.depends_on_stage, f"Output '{self.name}' of '{owner.name}'")
        key = ("output", id(owner), self.name)
        if self.cached and state.has_cache(key):
            return state.get_cache(key)
        value = self._compute(owner, state)
        if self.cached:
            state.set_cache(key, self.depends_on_stage, value)
        return value

    def __repr__(self) -> str:
        return (
            f"Output(name='{self.name}', type={self.value_type.__name__}, "
            f"stage={self.depends_on_stage.name})"
        )


def _check_type(port_name: str, expected: type, output: Output) -> None:
    if expected is object or issubclass(output.value_type, expected):
        return
    raise PortConnectionError(
        f"Input '{port_name}' expects {expected.__name__} but Output "
        f"'{output.path}' produces {output.value_type.__name__}"
    )


def resolve_component(
    owner: Component, root: Component, comp_path: str, what: str = ""
) -> Component:
    """
    Find the component named by ``comp_path``.

    Absolute paths are looked up from ``root``, relative paths from
    ``owner``. A bare name that is not reachable from ``owner`` is searched
    for across the whole tree and must be unique.

    Raises
    ------
    PortConnectionError
        If no component matches or a bare name is ambiguous
    """
    what = what or repr(comp_path)
    if comp_path.startswith("/"):
        comp = root.find_component(comp_path)
    else:
        comp = owner.find_component(comp_path)
        if comp is None and "/" not in comp_path and comp_path not in (".", ".."):
            matches = root.find_components_by_name(comp_path)
            if len(matches) > 1:
                raise PortConnectionError(
                    f"Component name '{comp_path}' in {what} is ambiguous: "
                    f"{[m.absolute_path for m in matches]}"
                )
            comp = matches[0] if matches else None

    if comp is None:
        raise PortConnectionError(
            f"No component found for {what} (searched from '{owner.absolute_path}')"
        )
    return comp


def resolve_output(owner: Component, root: Component, connectee_path: str) -> Output:
    """
    Find the Output named by ``connectee_path``.

    Parameters
    ----------
    owner : Component
        Component that owns the Input being resolved
    root : Component
        Root of the tree that is searched for absolute paths and bare names
    connectee_path : str
        ``"<component path>|<output name>"``

    Raises
    ------
    PortConnectionError
        If the path is malformed, the component does not exist, a bare name
        is ambiguous, or the component has no such output
    """
    comp_path, sep, output_name = connectee_path.rpartition(PATH_SEPARATOR)
    if not sep or not comp_path or not output_name:
        raise PortConnectionError(
            f"Malformed connectee path {connectee_path!r}; "
            f"expected '<component path>{PATH_SEPARATOR}<output name>'"
        )

    comp = resolve_component(owner, root, comp_path, repr(connectee_path))
    output = comp.outputs.get(output_name)
    if output is None:
        raise PortConnectionError(
            f"Component '{comp.absolute_path}' has no output '{output_name}'. "
            f"Valid options: {list(comp.outputs)}"
        )
    return output


def _target_path(target: Output | str) -> str:
    if isinstance(target, Output):
        return target.path
    if not isinstance(target, str):
        raise PortConnectionError(
            f"Connectee must be an Output or a path string, got {type(target).__name__}"
        )
    return target


class Input:
    """
    A single-source data dependency.

    Parameters
    ----------
    name : str
        Input name, unique among the owner's ports
    value_type : type
        Required type of the connected Output (``object`` accepts any)
    optional : bool
        If True, an empty connectee path leaves the input unconnected
        instead of failing ``connect``
    comment : str
        Human-readable description
    """

    def __init__(
        self,
        name: str,
        value_type: type,
        optional: bool = False,
        comment: str = "",
    ) -> None:
        self.name = name
        self.value_type = value_type
        self.optional = optional
        self.comment = comment
        self._target: Output | str = ""
        self._connectee: Output | None = None
        self._owner_ref: weakref.ref | None = None

    def _attach(self, owner: Component) -> None:
        self._owner_ref = weakref.ref(owner)

    @property
    def connectee_path(self) -> str:
        if isinstance(self._target, Output):
            return self._target.path
        return self._target

    def connect_to(self, target: Output | str) -> None:
        """Configure the Output this input depends on (resolved at connect)."""
        if not isinstance(target, (Output, str)):
            raise PortConnectionError(
                f"Connectee must be an Output or a path string, got {type(target).__name__}"
            )
        self._target = target
        self._connectee = None

    def disconnect(self) -> None:
        self._target = ""
        self._connectee = None

    def connect(self, owner: Component, root: Component) -> None:
        """Resolve the configured target; called by ``Component.connect``."""
        self._connectee = None
        path = _target_path(self._target)
        if not path:
            if self.optional:
                return
            raise PortConnectionError(
                f"Required input '{self.name}' of '{owner.absolute_path}' is not connected"
            )
        output = resolve_output(owner, root, path)
        _check_type(self.name, self.value_type, output)
        self._connectee = output
        # Store the resolved path so serialization does not depend on the object.
        self._target = output.path

    @property
    def is_connected(self) -> bool:
        return self._connectee is not None

    @property
    def connectee(self) -> Output | None:
        return self._connectee

    def get_value(self, state: State) -> Any:
        if self._connectee is None:
            raise PortConnectionError(f"Input '{self.name}' is not connected")
        return self._connectee.get_value(state)

    def __repr__(self) -> str:
        return f"Input(name='{self.name}', connectee={self.connectee_path!r})"


@dataclass
class InputChannel:
    """One source of a ListInput, with an optional column alias."""

    target: Output | str
    alias: str | None = None
    connectee: Output | None = field(default=None, compare=False)

    @property
    def path(self) -> str:
        return _target_path(self.target)

    @property
    def label(self) -> str:
        if self.alias:
            return self.alias
        return self.path


class ListInput:
    """
    An ordered sequence of single-source channels under one input name.

    Each channel follows the same rules as an Input: it resolves to exactly
    one Output of a compatible type. The declaration order of channels is
    the order in which values are sampled.
    """

    def __init__(
        self,
        name: str,
        value_type: type,
        optional: bool = True,
        comment: str = "",
    ) -> None:
        self.name = name
        self.value_type = value_type
        self.optional = optional
        self.comment = comment
        self._channels: list[InputChannel] = []
        self._owner_ref: weakref.ref | None = None

    def _attach(self, owner: Component) -> None:
        self._owner_ref = weakref.ref(owner)

    def add_channel(self, target: Output | str, alias: str | None = None) -> InputChannel:
        if not isinstance(target, (Output, str)) or target == "":
            raise PortConnectionError(
                f"Channel of '{self.name}' needs an Output or a non-empty path"
            )
        channel = InputChannel(target=target, alias=alias)
        self._channels.append(channel)
        return channel

    def clear(self) -> None:
        self._channels.clear()

    @property
    def channels(self) -> tuple[InputChannel, ...]:
        return tuple(self._channels)

    @property
    def labels(self) -> list[str]:
        return [c.label for c in self._channels]

    @property
    def is_connected(self) -> bool:
        return all(c.connectee is not None for c in self._channels) and (
            self.optional or bool(self._channels)
        )

    def connect(self, owner: Component, root: Component) -> None:
        if not self._channels and not self.optional:
            raise PortConnectionError(
                f"Required list input '{self.name}' of '{owner.absolute_path}' "
                "has no channels"
            )
        for channel in self._channels:
            channel.connectee = None
        for channel in self._channels:
            output = resolve_output(owner, root, channel.path)
            _check_type(self.name, self.value_type, output)
            channel.connectee = output
            channel.target = output.path

    def get_values(self, state: State) -> list[Any]:
        values = []
        for channel in self._channels:
            if channel.connectee is None:
                raise PortConnectionError(
                    f"Channel '{channel.label}' of input '{self.name}' is not connected"
                )
            values.append(channel.connectee.get_value(state))
        return values

    def __len__(self) -> int:
        return len(self._channels)

    def __repr__(self) -> str:
        return f"ListInput(name='{self.name}', channels={self.labels})"
