"""
Exception hierarchy for model assembly and evaluation.

Three families of failure are distinguished:

- ConfigurationError: a structural or property invariant is violated
  (non-positive resting length, duplicate port name, bad property type).
- PortConnectionError: a required Input cannot be resolved, or resolves to
  an Output of the wrong value type.
- StateAccessError: a stage-dependent quantity is read before the state was
  realized far enough, or a state slot is accessed that the component never
  registered.

All three are fatal. Configuration and connection errors abort model
assembly before any computation runs; state access errors indicate a
lifecycle-ordering bug and abort the run.
"""
from __future__ import annotations


class SimCompError(Exception):
    """Base class for all errors raised by simcomp."""


class ConfigurationError(SimCompError, ValueError):
    """A structural or property invariant of a component was violated."""


class PortConnectionError(SimCompError):
    """An Input could not be wired to a compatible Output.

    Named so that it does not shadow the builtin ``ConnectionError``,
    which is an ``OSError`` with unrelated meaning.
    """


class StateAccessError(SimCompError):
    """A state quantity was accessed out of lifecycle order or by the wrong owner."""
