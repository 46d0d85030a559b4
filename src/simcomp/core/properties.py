"""
Typed, named, documented configuration values.

A Property belongs to exactly one component. Properties are declared while
the component is being constructed; after that the set of names is frozen
and only values change, through the owner's ``set_property`` or the typed
accessors the owner declares.
"""
from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping, Sequence
from typing import Any

import numpy as np

from simcomp.errors import ConfigurationError

_MISSING = object()

Validator = Callable[[Any], None]


def _coerce_scalar(name: str, value_type: type, value: Any) -> Any:
    """Check ``value`` against ``value_type``; numbers are normalized."""
    if value_type is float:
        if isinstance(value, (bool, np.bool_)) or not isinstance(
            value, (int, float, np.integer, np.floating)
        ):
            raise ConfigurationError(
                f"Property '{name}' expects a number, got {type(value).__name__}"
            )
        return float(value)
    if value_type is int:
        if isinstance(value, (bool, np.bool_)) or not isinstance(value, (int, np.integer)):
            raise ConfigurationError(
                f"Property '{name}' expects an integer, got {type(value).__name__}"
            )
        return int(value)
    if value_type is bool:
        if not isinstance(value, (bool, np.bool_)):
            raise ConfigurationError(
                f"Property '{name}' expects a bool, got {type(value).__name__}"
            )
        return bool(value)
    if not isinstance(value, value_type):
        raise ConfigurationError(
            f"Property '{name}' expects {value_type.__name__}, "
            f"got {type(value).__name__}"
        )
    return value


class Property:
    """
    A single typed configuration value.

    Parameters
    ----------
    name : str
        Property name; also the key used in serialized form
    value_type : type
        Python type of the value (or of each element for list properties)
    default : Any
        Initial value. Mutually exclusive with ``default_factory``.
    comment : str
        Human-readable description
    default_factory : Callable[[], Any] | None
        Builds the initial value; use for mutable or component values so
        that no two owners share one default object
    is_list : bool
        If True the value is a list of ``value_type`` elements
    size : int | None
        Required list length (list properties only)
    allow_none : bool
        Whether None is an acceptable value
    validator : Callable[[Any], None] | None
        Extra check run after type coercion; raises ConfigurationError
    """

    __slots__ = (
        "name", "value_type", "comment", "is_list", "size", "allow_none",
        "validator", "_value",
    )

    def __init__(
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
    ) -> None:
        if not name or not name.isidentifier():
            raise ConfigurationError(f"Invalid property name {name!r}")
        if (default is _MISSING) == (default_factory is None):
            raise ConfigurationError(
                f"Property '{name}' needs exactly one of default or default_factory"
            )
        self.name = name
        self.value_type = value_type
        self.comment = comment
        self.is_list = is_list
        self.size = size
        self.allow_none = allow_none
        self.validator = validator
        self._value: Any = None
        self.set_value(default_factory() if default_factory is not None else default)

    @property
    def value(self) -> Any:
        if self.is_list:
            return list(self._value)
        return self._value

    def coerce(self, value: Any) -> Any:
        """Return ``value`` converted to this property's type, or raise."""
        if value is None:
            if self.allow_none:
                return None
            raise ConfigurationError(f"Property '{self.name}' may not be None")
        if not self.is_list:
            return _coerce_scalar(self.name, self.value_type, value)

        if isinstance(value, (str, bytes)) or not isinstance(value, (Sequence, np.ndarray)):
            raise ConfigurationError(
                f"Property '{self.name}' expects a sequence, got {type(value).__name__}"
            )
        items = [_coerce_scalar(self.name, self.value_type, v) for v in value]
        if self.size is not None and len(items) != self.size:
            raise ConfigurationError(
                f"Property '{self.name}' expects {self.size} elements, got {len(items)}"
            )
        return items

    def set_value(self, value: Any) -> None:
        coerced = self.coerce(value)
        if self.validator is not None and coerced is not None:
            self.validator(coerced)
        self._value = coerced

    # --- Serialization ---

    def to_serializable(self) -> Any:
        value = self._value
        if value is None:
            return None
        if self.is_list:
            return [_encode(v) for v in value]
        return _encode(value)

    def decode(self, data: Any) -> Any:
        """Convert serialized data back into a value of this property's type."""
        if data is None:
            return None
        if self.is_list:
            return [_decode(self.value_type, v) for v in data]
        return _decode(self.value_type, data)

    def __repr__(self) -> str:
        return f"Property({self.name}={self._value!r})"


def _encode(value: Any) -> Any:
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return value


def _decode(value_type: type, data: Any) -> Any:
    from_dict = getattr(value_type, "from_dict", None)
    if callable(from_dict) and isinstance(data, Mapping):
        return from_dict(data)
    return data


class PropertySet:
    """Ordered collection of the properties owned by one component."""

    def __init__(self, owner_name: str = "") -> None:
        self._owner_name = owner_name
        self._properties: dict[str, Property] = {}
        self._frozen = False

    def declare(self, prop: Property) -> Property:
        if self._frozen:
            raise ConfigurationError(
                f"Cannot declare property '{prop.name}' on '{self._owner_name}' "
                "after construction"
            )
        if prop.name in self._properties:
            raise ConfigurationError(
                f"Duplicate property '{prop.name}' on '{self._owner_name}'"
            )
        self._properties[prop.name] = prop
        return prop

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, name: str) -> Property:
        try:
            return self._properties[name]
        except KeyError:
            raise ConfigurationError(
                f"'{self._owner_name}' has no property '{name}'. "
                f"Valid options: {list(self._properties)}"
            ) from None

    def names(self) -> list[str]:
        return list(self._properties)

    def values(self) -> Iterator[Property]:
        return iter(self._properties.values())

    def __contains__(self, name: object) -> bool:
        return name in self._properties

    def __iter__(self) -> Iterator[str]:
        return iter(self._properties)

    def __len__(self) -> int:
        return len(self._properties)

    def to_dict(self) -> dict[str, Any]:
        return {name: p.to_serializable() for name, p in self._properties.items()}
