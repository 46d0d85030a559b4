"""
Response curves used by force elements.

Curves are kept separate from the force implementations in
``simcomp.dynamics``: forces evaluate curves, curves encapsulate the
mathematics.
"""

from .functions import (
    Constant,
    Function,
    LinearFunction,
    MonotoneCubicSpline,
    NaturalCubicSpline,
    PiecewiseLinearFunction,
    default_ligament_force_length_curve,
)

__all__ = [
    "Function",
    "Constant",
    "LinearFunction",
    "PiecewiseLinearFunction",
    "MonotoneCubicSpline",
    "NaturalCubicSpline",
    "default_ligament_force_length_curve",
]
