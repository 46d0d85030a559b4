"""
Reporters: components that sample connected Outputs at scheduled times.

Everything a reporter accumulates during a run (its table, its disabled
flag) lives in discrete state variables, so one reporter definition can
serve any number of independent States.

Scheduling
----------
A negative or NaN ``report_time_interval`` reports on every accepted step.
A positive interval reports whenever simulation time reaches or passes a
multiple of the interval. The first accepted step of a run always reports.
The driver (``Manager``) asks ``is_report_due`` and dispatches ``report``.
"""
from __future__ import annotations

import logging
import math
import warnings
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from simcomp.config import DEFAULT_CONFIG
from simcomp.core.component import Component
from simcomp.core.ports import ListInput, Output
from simcomp.core.state import State
from simcomp.errors import ConfigurationError
from simcomp.reporting.table import TimeSeriesTable

if TYPE_CHECKING:
    from simcomp.core.system import MultibodySystem

logger = logging.getLogger(__name__)

MIN_REPORT_INTERVAL = 1e-6


def _validate_interval(interval: float) -> None:
    if interval == 0.0 or interval == math.inf:
        raise ConfigurationError(
            f"report_time_interval must be negative (every step) or a finite "
            f"positive period, got {interval}"
        )
    if 0.0 < interval < MIN_REPORT_INTERVAL:
        warnings.warn(
            f"report_time_interval {interval} s is very small; reports may be due on every step",
            RuntimeWarning,
            stacklevel=2
        )


class Reporter(Component, ABC):
    """
    Base reporter with a list input and a state-scoped disabled flag.

    Parameters
    ----------
    name : str
        Reporter name
    report_time_interval : float
        Reporting period [s]; negative or NaN reports every step
    value_type : type
        Type every connected Output must produce
    """

    def __init__(
        self,
        name: str = "reporter",
        report_time_interval: float = -1.0,
        value_type: type = float,
    ) -> None:
        self._value_type = value_type
        super().__init__(name)
        self.set_property("report_time_interval", report_time_interval)

    def _construct_properties(self) -> None:
        self._declare_property(
            "report_time_interval", float, -1.0,
            "Reporting period [s]. Negative or NaN reports every accepted step.",
            validator=_validate_interval,
        )
        self._declare_property(
            "is_disabled", bool, False,
            "Initial value of the per-state disabled flag; when true, report events are ignored",
        )

    def _construct_inputs(self) -> None:
        self._declare_list_input(
            "inputs", self._value_type, optional=True,
            comment="Outputs sampled into each report row",
        )

    # --- Configuration ---

    @property
    def report_time_interval(self) -> float:
        return self.get_property("report_time_interval")

    def set_report_time_interval(self, interval: float) -> None:
        self.set_property("report_time_interval", interval)

    def add_to_report(self, output: Output | str, alias: str | None = None) -> None:
        """
        Add a channel to the report.

        Parameters
        ----------
        output : Output | str
            Output object or connectee path ``"<component path>|<output>"``
        alias : str | None
            Column label; defaults to the Output's path
        """
        self.get_input("inputs").add_channel(output, alias)
        self._notify_changed()

    @property
    def column_labels(self) -> list[str]:
        return self.get_input("inputs").labels

    # --- Lifecycle ---

    def extend_connect(self, root: Component) -> None:
        labels = self.column_labels
        duplicates = sorted({label for label in labels if labels.count(label) > 1})
        if duplicates:
            raise ConfigurationError(
                f"Reporter '{self.name}' has duplicate column labels {duplicates}; "
                "give each channel a distinct alias"
            )

    def extend_add_to_system(self, system: MultibodySystem) -> None:
        self._add_discrete_state_variable(system, "disabled", False, invalidates=None)

    def extend_init_state_from_properties(self, state: State) -> None:
        self._set_state_variable_value(state, "disabled", self.get_property("is_disabled"))

    # --- Runtime ---

    def is_disabled(self, state: State) -> bool:
        return bool(self.get_state_variable_value(state, "disabled"))

    def set_disabled(self, state: State, disabled: bool) -> None:
        """Enable or disable reporting for ``state`` only."""
        self._set_state_variable_value(state, "disabled", bool(disabled))

    def is_report_due(
        self,
        previous_time: float | None,
        time: float,
        tolerance: float = DEFAULT_CONFIG.time_tolerance,
    ) -> bool:
        """
        Whether advancing from ``previous_time`` to ``time`` triggers a report.

        Parameters
        ----------
        previous_time : float | None
            Time of the previous accepted step, None on the first step
        time : float
            Time of the step just accepted
        tolerance : float
            Relative slack so that times a rounding error short of a
            multiple of the interval still count as reaching it
        """
        interval = self.report_time_interval
        if math.isnan(interval) or interval < 0 or previous_time is None:
            return True
        return math.floor(time / interval + tolerance) > math.floor(
            previous_time / interval + tolerance
        )

    def report(self, state: State) -> None:
        """Sample the connected Outputs into this state's report, unless disabled."""
        if self.is_disabled(state):
            return
        self.implement_report(state)

    @abstractmethod
    def implement_report(self, state: State) -> None:
        """Record one report event for ``state``."""


class TableReporter(Reporter):
    """
    Accumulates ``(time, value...)`` rows in a per-state table.

    Columns follow the order in which channels were added to ``inputs``.

    Examples
    --------
    >>> reporter = TableReporter("lig_reporter")
    >>> reporter.add_to_report("/model/acl|tension", alias="acl_tension")
    >>> model.add_reporter(reporter)
    """

    def extend_add_to_system(self, system: MultibodySystem) -> None:
        super().extend_add_to_system(system)
        labels = self.column_labels
        self._add_discrete_state_variable(
            system, "table", default_factory=lambda: TimeSeriesTable(labels), invalidates=None
        )

    def extend_init_state_from_properties(self, state: State) -> None:
        super().extend_init_state_from_properties(state)
        self._set_state_variable_value(state, "table", TimeSeriesTable(self.column_labels))

    def implement_report(self, state: State) -> None:
        values = self.get_input("inputs").get_values(state)
        self._upd_state_variable(state, "table").append_row(state.time, values)

    def get_report(self, state: State) -> TimeSeriesTable:
        """Read-only view of the rows reported so far in ``state``."""
        return self.get_state_variable_value(state, "table").view()

    def clear_table(self, state: State) -> None:
        self._upd_state_variable(state, "table").clear()


class ConsoleReporter(Reporter):
    """
    Writes report rows to the log, one line per event.

    The header line is emitted on the first report of each state.
    """

    def __init__(
        self,
        name: str = "console_reporter",
        report_time_interval: float = -1.0,
        precision: int = DEFAULT_CONFIG.report_precision,
    ) -> None:
        super().__init__(name, report_time_interval, value_type=object)
        self.set_property("precision", precision)

    def _construct_properties(self) -> None:
        super()._construct_properties()
        self._declare_property(
            "precision", int, DEFAULT_CONFIG.report_precision,
            "Significant digits of numeric values",
            validator=_validate_precision,
        )

    def extend_add_to_system(self, system: MultibodySystem) -> None:
        super().extend_add_to_system(system)
        self._add_discrete_state_variable(system, "header_printed", False, invalidates=None)

    def _format(self, value: Any) -> str:
        precision = self.get_property("precision")
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return f"{value:.{precision}g}"
        return str(value)

    def implement_report(self, state: State) -> None:
        if not self.get_state_variable_value(state, "header_printed"):
            logger.info("[%s] time | %s", self.name, " | ".join(self.column_labels))
            self._set_state_variable_value(state, "header_printed", True)
        values = self.get_input("inputs").get_values(state)
        logger.info(
            "[%s] %s | %s",
            self.name, self._format(state.time), " | ".join(self._format(v) for v in values),
        )


def _validate_precision(precision: int) -> None:
    if precision < 1:
        raise ConfigurationError(f"precision must be at least 1, got {precision}")
