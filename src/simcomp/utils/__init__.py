"""Utility functions for simcomp models."""

from .io import load_model, load_report, save_model, save_report
from .validation import (
    validate_finite,
    validate_non_negative,
    validate_positive,
    validate_quaternion,
    validate_strictly_increasing,
    validate_vector,
)

__all__ = [
    "save_model",
    "load_model",
    "save_report",
    "load_report",
    "validate_positive",
    "validate_non_negative",
    "validate_finite",
    "validate_vector",
    "validate_quaternion",
    "validate_strictly_increasing",
]
