"""
Simulation state: time, state variables, cached quantities and stages.

A State is owned by the caller, never by a component. One model definition
can back any number of independent States; everything that varies from
run to run (continuous variables, discrete flags, report tables, caches)
lives here.

Realization stages are strictly ordered. A quantity tagged with stage S
may only be read once the state has been realized to S (or while stage S
is being realized). Changing time or a state variable drops the realized
stage below the lowest affected stage and discards every cached quantity
at or above it.
"""
from __future__ import annotations

import copy
import itertools
from collections.abc import Hashable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any

import numpy as np
from numpy.typing import NDArray

from simcomp.errors import StateAccessError


class Stage(IntEnum):
    """Ordered realization checkpoints."""

    EMPTY = 0
    TOPOLOGY = 1
    MODEL = 2
    INSTANCE = 3
    TIME = 4
    POSITION = 5
    VELOCITY = 6
    DYNAMICS = 7
    ACCELERATION = 8
    REPORT = 9

    def previous(self) -> Stage:
        return Stage(max(int(self) - 1, 0))


class VariableKind(Enum):
    CONTINUOUS = "continuous"
    DISCRETE = "discrete"


@dataclass(frozen=True)
class StateVariableHandle:
    """
    Stable index of one registered state variable.

    Handles are issued by a MultibodySystem during extend-system, in
    deterministic tree order, and are only valid for States created by
    that same system.

    Attributes
    ----------
    owner_path : str
        Absolute path of the component that registered the variable
    name : str
        Variable name, unique within its owner
    kind : VariableKind
        Continuous (numeric vector slot) or discrete (arbitrary object)
    index : int
        Offset into the continuous vector, or index into the discrete list
    size : int
        Number of scalars (continuous variables only)
    invalidates : Stage | None
        Lowest stage invalidated when the variable is written. None means
        writing the variable invalidates nothing.
    system_id : int
        Identifier of the issuing system
    """

    owner_path: str
    name: str
    kind: VariableKind
    index: int
    size: int
    invalidates: Stage | None
    system_id: int

    @property
    def path(self) -> str:
        return f"{self.owner_path}/{self.name}"


_state_ids = itertools.count()


class State:
    """
    Mutable per-run simulation state.

    States are created by ``MultibodySystem.default_state()`` (normally via
    ``Model.initialize_state()``); the constructor is not meant to be
    called directly.
    """

    __slots__ = (
        "_system_id", "_id", "_time", "_y", "_discrete", "_cache",
        "_realized", "_realizing",
    )

    def __init__(
        self,
        system_id: int,
        y: NDArray[np.float64],
        discrete: list[Any],
        time: float = 0.0,
    ) -> None:
        self._system_id = system_id
        self._id = next(_state_ids)
        self._time = float(time)
        self._y = np.asarray(y, dtype=np.float64).copy()
        self._discrete = discrete
        self._cache: dict[Hashable, tuple[Stage, Any]] = {}
        self._realized = Stage.INSTANCE
        self._realizing: Stage | None = None

    # --- Identity and stage bookkeeping ---

    @property
    def system_id(self) -> int:
        return self._system_id

    @property
    def id(self) -> int:
        """Process-unique identifier of this state instance."""
        return self._id

    @property
    def realized_stage(self) -> Stage:
        return self._realized

    @property
    def realizing_stage(self) -> Stage | None:
        return self._realizing

    def is_realized(self, stage: Stage) -> bool:
        return self._realized >= stage

    def require_stage(self, stage: Stage, what: str = "quantity") -> None:
        """
        Raise StateAccessError unless ``stage`` may be read now.

        A stage is readable once realized, or while it is the stage
        currently being realized (so components can compute the
        quantities of the stage they are realizing).
        """
        if stage <= self._realized:
            return
        if self._realizing is not None and stage <= self._realizing:
            return
        raise StateAccessError(
            f"{what} requires stage {stage.name} but the state is realized "
            f"only to {self._realized.name} (t={self._time})"
        )

    def invalidate(self, stage: Stage) -> None:
        """Drop the realized stage below ``stage`` and discard stale caches."""
        stage = Stage(stage)
        if self._realized >= stage:
            self._realized = stage.previous()
        stale = [key for key, (s, _) in self._cache.items() if s >= stage]
        for key in stale:
            del self._cache[key]

    @contextmanager
    def realizing(self, stage: Stage) -> Iterator[State]:
        """Context in which ``stage`` is being realized; marks it done on success."""
        stage = Stage(stage)
        if stage != self._realized + 1:
            raise StateAccessError(
                f"Cannot realize {stage.name} from {self._realized.name}; "
                "stages must be realized in order"
            )
        self._realizing = stage
        try:
            yield self
        finally:
            self._realizing = None
        self._realized = stage

    # --- Time ---

    @property
    def time(self) -> float:
        return self._time

    def set_time(self, t: float) -> None:
        """Set simulation time; invalidates TIME and every later stage."""
        self._time = float(t)
        self.invalidate(Stage.TIME)

    # --- State variables ---

    def _check_handle(self, handle: StateVariableHandle, kind: VariableKind) -> None:
        if handle.system_id != self._system_id:
            raise StateAccessError(
                f"State variable '{handle.path}' belongs to a different system"
            )
        if handle.kind is not kind:
            raise StateAccessError(
                f"State variable '{handle.path}' is {handle.kind.value}, "
                f"not {kind.value}"
            )
        if kind is VariableKind.CONTINUOUS:
            in_range = 0 <= handle.index and handle.index + handle.size <= self._y.size
        else:
            in_range = 0 <= handle.index < len(self._discrete)
        if not in_range:
            raise StateAccessError(f"State variable '{handle.path}' is not allocated")

    def get_continuous(self, handle: StateVariableHandle) -> float | NDArray[np.float64]:
        """Return a continuous variable (float if scalar, else a copy)."""
        self._check_handle(handle, VariableKind.CONTINUOUS)
        if handle.size == 1:
            return float(self._y[handle.index])
        return self._y[handle.index:handle.index + handle.size].copy()

    def set_continuous(
        self, handle: StateVariableHandle, value: float | NDArray[np.float64]
    ) -> None:
        self._check_handle(handle, VariableKind.CONTINUOUS)
        arr = np.asarray(value, dtype=np.float64).reshape(-1)
        if arr.size != handle.size:
            raise StateAccessError(
                f"State variable '{handle.path}' has size {handle.size}, "
                f"got {arr.size} values"
            )
        self._y[handle.index:handle.index + handle.size] = arr
        if handle.invalidates is not None:
            self.invalidate(handle.invalidates)

    def get_discrete(self, handle: StateVariableHandle) -> Any:
        self._check_handle(handle, VariableKind.DISCRETE)
        return self._discrete[handle.index]

    def upd_discrete(self, handle: StateVariableHandle) -> Any:
        """Return a discrete value for in-place update, without invalidation."""
        self._check_handle(handle, VariableKind.DISCRETE)
        return self._discrete[handle.index]

    def set_discrete(self, handle: StateVariableHandle, value: Any) -> None:
        self._check_handle(handle, VariableKind.DISCRETE)
        self._discrete[handle.index] = value
        if handle.invalidates is not None:
            self.invalidate(handle.invalidates)

    @property
    def y(self) -> NDArray[np.float64]:
        """Read-only view of the continuous state vector."""
        view = self._y.view()
        view.flags.writeable = False
        return view

    # --- Cache ---

    def has_cache(self, key: Hashable) -> bool:
        return key in self._cache

    def get_cache(self, key: Hashable) -> Any:
        try:
            stage, value = self._cache[key]
        except KeyError:
            raise StateAccessError(f"No cached value for {key!r}") from None
        self.require_stage(stage, f"cached value {key!r}")
        return value

    def set_cache(self, key: Hashable, stage: Stage, value: Any) -> None:
        """Store a value computed from stage ``stage`` quantities."""
        self.require_stage(stage, f"caching {key!r}")
        self._cache[key] = (Stage(stage), value)

    # --- Copying ---

    def copy(self) -> State:
        """Independent deep copy (same system, same realized stage)."""
        other = State.__new__(State)
        other._system_id = self._system_id
        other._id = next(_state_ids)
        other._time = self._time
        other._y = self._y.copy()
        other._discrete = copy.deepcopy(self._discrete)
        other._cache = copy.deepcopy(self._cache)
        other._realized = self._realized
        other._realizing = None
        return other

    def __repr__(self) -> str:
        return (
            f"State(t={self._time}, realized={self._realized.name}, "
            f"ny={self._y.size}, ndiscrete={len(self._discrete)})"
        )
