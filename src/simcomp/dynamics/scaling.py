"""
Per-body scale factors consumed by the three-phase scale protocol.
"""
from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray

from simcomp.errors import ConfigurationError
from simcomp.utils.validation import validate_vector


@dataclass
class Scale:
    """
    XYZ scale factors for one body.

    Attributes
    ----------
    segment_name : str
        Name of the body to scale
    factors : NDArray[np.float64]
        Positive scale factors along the body's x, y, z axes (3,)
    """

    segment_name: str
    factors: NDArray[np.float64] = field(default_factory=lambda: np.ones(3))

    def __post_init__(self) -> None:
        self.factors = validate_vector(self.factors, 3, f"scale factors of '{self.segment_name}'")
        if np.any(self.factors <= 0):
            raise ConfigurationError(
                f"Scale factors of '{self.segment_name}' must be positive, got {self.factors}"
            )


class ScaleSet:
    """Collection of Scales keyed by body name; unlisted bodies scale by 1."""

    def __init__(self, scales: list[Scale] | None = None) -> None:
        self._scales: dict[str, Scale] = {}
        for scale in scales or []:
            self.add(scale)

    def add(self, scale: Scale) -> None:
        if scale.segment_name in self._scales:
            raise ConfigurationError(f"Duplicate scale for '{scale.segment_name}'")
        self._scales[scale.segment_name] = scale

    def get_factors(self, body_name: str) -> NDArray[np.float64]:
        scale = self._scales.get(body_name)
        if scale is None:
            return np.ones(3)
        return scale.factors.copy()

    def __contains__(self, body_name: object) -> bool:
        return body_name in self._scales

    def __len__(self) -> int:
        return len(self._scales)
