"""
Validation utilities for physical parameters and configuration values.

Every check raises ConfigurationError in all build configurations; none of
them is an assertion that could be stripped by running Python with -O.
"""
from __future__ import annotations

import math
import warnings

import numpy as np
from numpy.typing import NDArray

from simcomp.errors import ConfigurationError


def validate_positive(value: float, name: str, strict: bool = True) -> None:
    """
    Validate that a scalar value is strictly positive.

    Parameters
    ----------
    value : float
        Value to validate
    name : str
        Parameter name for error messages
    strict : bool
        If True, raise ConfigurationError. If False, issue warning.

    Raises
    ------
    ConfigurationError
        If strict=True and value <= 0 (or NaN)
    """
    if not value > 0:
        msg = f"{name} must be positive, got {value}"
        if strict:
            raise ConfigurationError(msg)
        warnings.warn(msg, RuntimeWarning, stacklevel=2)


def validate_non_negative(value: float, name: str) -> None:
    """Validate that a value is non-negative."""
    if not value >= 0:
        raise ConfigurationError(f"{name} must be non-negative, got {value}")


def validate_finite(value: float, name: str) -> None:
    """Validate that a value is neither infinite nor NaN."""
    if not math.isfinite(value):
        raise ConfigurationError(f"{name} must be finite, got {value}")


def validate_vector(
    v: NDArray[np.float64] | list[float], size: int, name: str
) -> NDArray[np.float64]:
    """
    Validate and convert a fixed-size vector of finite floats.

    Parameters
    ----------
    v : array-like
        Vector to validate
    size : int
        Required number of elements
    name : str
        Parameter name for error messages

    Returns
    -------
    NDArray[np.float64]
        The vector as a float64 array of shape (size,)
    """
    arr = np.asarray(v, dtype=np.float64)
    if arr.shape != (size,):
        raise ConfigurationError(f"{name} must have shape ({size},), got {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise ConfigurationError(f"{name} must contain only finite values, got {arr}")
    return arr


def validate_quaternion(q: NDArray[np.float64], tol: float = 1e-6) -> None:
    """
    Validate that array is a usable orientation quaternion.

    Parameters
    ----------
    q : NDArray[np.float64]
        Quaternion [x, y, z, w]
    tol : float
        Tolerance for unit norm check

    Raises
    ------
    ConfigurationError
        If quaternion shape is wrong or its norm is zero
    """
    q = np.asarray(q, dtype=np.float64)
    if q.shape != (4,):
        raise ConfigurationError(f"Quaternion must have shape (4,), got {q.shape}")

    norm = np.linalg.norm(q)
    if norm < tol:
        raise ConfigurationError(f"Quaternion must have non-zero norm, got {q}")
    if abs(norm - 1.0) > tol:
        warnings.warn(
            f"Quaternion not normalized: |q| = {norm:.6f}. "
            "It will be normalized before use.",
            RuntimeWarning,
            stacklevel=2
        )


def validate_strictly_increasing(x: NDArray[np.float64], name: str) -> None:
    """Validate that a 1-D array of abscissae is strictly increasing."""
    x = np.asarray(x, dtype=np.float64)
    if x.ndim != 1 or x.size < 2:
        raise ConfigurationError(f"{name} must be a 1-D array with at least 2 points")
    if np.any(np.diff(x) <= 0):
        raise ConfigurationError(f"{name} must be strictly increasing, got {x}")
