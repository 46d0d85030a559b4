"""
Scalar response curves used as component properties.

A Function maps a normalized argument (for ligaments, the strain
(L - L0) / L0) to a normalized response. Curves are serializable
(``to_dict`` / ``Function.from_dict``) so they can live in Properties.

Curves implemented:
- Constant: f(x) = c
- LinearFunction: f(x) = slope * x + intercept
- PiecewiseLinearFunction: linear interpolation, clamped outside the data
- MonotoneCubicSpline: shape-preserving (PCHIP) cubic, clamped outside
- NaturalCubicSpline: natural cubic spline, linear beyond the end points
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any, ClassVar

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.interpolate import CubicSpline, PchipInterpolator

from simcomp.errors import ConfigurationError
from simcomp.utils.validation import validate_finite, validate_strictly_increasing

# Default ligament force-length curve: strain -> force / pcsa_force
LIGAMENT_CURVE_X = (-5.0, 0.998, 0.999, 1.0, 1.1, 1.2, 1.3, 1.4, 1.5, 1.6, 1.601, 1.602, 5.0)
LIGAMENT_CURVE_Y = (0.0, 0.0, 0.0, 0.0, 0.035, 0.12, 0.26, 0.55, 1.17, 2.0, 2.0, 2.0, 2.0)


class Function(ABC):
    """Base class for serializable scalar functions of one argument."""

    _registry: ClassVar[dict[str, type[Function]]] = {}

    def __init_subclass__(cls, **kwargs) -> None:
        super().__init_subclass__(**kwargs)
        Function._registry[cls.__name__] = cls

    @abstractmethod
    def evaluate(self, x: ArrayLike) -> float | NDArray[np.float64]:
        """Evaluate at a scalar or an array of arguments."""

    def __call__(self, x: ArrayLike) -> float | NDArray[np.float64]:
        return self.evaluate(x)

    @abstractmethod
    def _params(self) -> dict[str, Any]: ...

    def to_dict(self) -> dict[str, Any]:
        return {"type": type(self).__name__, **self._params()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Function:
        params = dict(data)
        type_name = params.pop("type", None)
        func_cls = Function._registry.get(type_name)
        if func_cls is None:
            raise ConfigurationError(
                f"Unknown function type {type_name!r}. "
                f"Valid options: {sorted(Function._registry)}"
            )
        return func_cls(**params)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Function):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    __hash__ = None

    def __repr__(self) -> str:
        params = ", ".join(f"{k}={v!r}" for k, v in self._params().items())
        return f"{type(self).__name__}({params})"


def _as_output(result: NDArray[np.float64], x: ArrayLike) -> float | NDArray[np.float64]:
    if np.ndim(x) == 0:
        return float(result)
    return np.asarray(result, dtype=np.float64)


class Constant(Function):
    def __init__(self, value: float = 0.0) -> None:
        validate_finite(value, "value")
        self.value = float(value)

    def evaluate(self, x):
        return _as_output(np.full(np.shape(x), self.value), x)

    def _params(self) -> dict[str, Any]:
        return {"value": self.value}


class LinearFunction(Function):
    """f(x) = slope * x + intercept"""

    def __init__(self, slope: float = 1.0, intercept: float = 0.0) -> None:
        validate_finite(slope, "slope")
        validate_finite(intercept, "intercept")
        self.slope = float(slope)
        self.intercept = float(intercept)

    def evaluate(self, x):
        return _as_output(self.slope * np.asarray(x, dtype=np.float64) + self.intercept, x)

    def _params(self) -> dict[str, Any]:
        return {"slope": self.slope, "intercept": self.intercept}


class _TabulatedFunction(Function):
    """Shared storage and validation for curves defined by (x, y) samples."""

    min_points: ClassVar[int] = 2

    def __init__(self, x: Sequence[float], y: Sequence[float]) -> None:
        xs = np.asarray(x, dtype=np.float64)
        ys = np.asarray(y, dtype=np.float64)
        if xs.ndim != 1 or xs.shape != ys.shape:
            raise ConfigurationError(
                f"{type(self).__name__} needs 1-D x and y of equal length, "
                f"got shapes {xs.shape} and {ys.shape}"
            )
        if xs.size < self.min_points:
            raise ConfigurationError(
                f"{type(self).__name__} needs at least {self.min_points} points, got {xs.size}"
            )
        if not np.all(np.isfinite(ys)):
            raise ConfigurationError(f"{type(self).__name__} y values must be finite")
        validate_strictly_increasing(xs, "x")
        self.x = xs
        self.y = ys

    def _params(self) -> dict[str, Any]:
        return {"x": self.x.tolist(), "y": self.y.tolist()}


class PiecewiseLinearFunction(_TabulatedFunction):
    """Linear interpolation between samples; constant beyond the end points."""

    def evaluate(self, x):
        return _as_output(np.interp(x, self.x, self.y), x)


class MonotoneCubicSpline(_TabulatedFunction):
    """
    Piecewise cubic Hermite interpolant (PCHIP).

    Preserves monotonicity of the samples, so a non-decreasing table yields
    a non-decreasing curve with no overshoot between knots. Arguments
    outside the sampled range are clamped to the end values.
    """

    def __init__(self, x: Sequence[float], y: Sequence[float]) -> None:
        super().__init__(x, y)
        self._interp = PchipInterpolator(self.x, self.y, extrapolate=False)

    def evaluate(self, x):
        xc = np.clip(np.asarray(x, dtype=np.float64), self.x[0], self.x[-1])
        return _as_output(self._interp(xc), x)


class NaturalCubicSpline(_TabulatedFunction):
    """
    Natural cubic spline (zero curvature at both ends).

    Beyond the sampled range the curve continues along the end tangents.
    Unlike MonotoneCubicSpline it may overshoot between knots.
    """

    min_points = 3

    def __init__(self, x: Sequence[float], y: Sequence[float]) -> None:
        super().__init__(x, y)
        self._spline = CubicSpline(self.x, self.y, bc_type="natural")
        self._slopes = self._spline(self.x[[0, -1]], 1)

    def evaluate(self, x):
        xa = np.asarray(x, dtype=np.float64)
        result = np.asarray(self._spline(np.clip(xa, self.x[0], self.x[-1])), dtype=np.float64)
        below = xa < self.x[0]
        above = xa > self.x[-1]
        result = np.where(below, self.y[0] + self._slopes[0] * (xa - self.x[0]), result)
        result = np.where(above, self.y[-1] + self._slopes[1] * (xa - self.x[-1]), result)
        return _as_output(result, x)


def default_ligament_force_length_curve() -> MonotoneCubicSpline:
    """Normalized force-length curve: slack below 1.0, saturating at 2.0 above 1.6."""
    return MonotoneCubicSpline(LIGAMENT_CURVE_X, LIGAMENT_CURVE_Y)
