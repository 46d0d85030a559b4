"""
Step driver for model evaluation.

The Manager plays the role of the integrator's outer loop: it accepts a
sequence of time points, lets the caller write the kinematics for each one,
realizes the state through REPORT and dispatches report events to the
reporters that are due. Solving equations of motion is left to the caller's
``kinematics`` callback.

Step history (the time of the last accepted step) lives in the State, so a
copied state continues the schedule of its source and any Manager can drive
any state of the model.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from simcomp.config import SimulationConfig
from simcomp.core.model import Model
from simcomp.core.state import Stage, State
from simcomp.errors import ConfigurationError

logger = logging.getLogger(__name__)

KinematicsFn = Callable[[Model, State, float], None]


class Manager:
    """
    Drives a model through accepted time steps.

    Parameters
    ----------
    model : Model
        Model to evaluate; states must come from its ``initialize_state``
    config : SimulationConfig | None
        Run settings. Defaults to the model's configuration.

    Examples
    --------
    >>> manager = Manager(model)
    >>> state = model.initialize_state()
    >>> manager.integrate(state, [0.0, 0.1, 0.2])
    >>> reporter.get_report(state).num_rows
    3
    """

    def __init__(self, model: Model, config: SimulationConfig | None = None) -> None:
        self.model = model
        self.config = config if config is not None else model.config

    def previous_time(self, state: State) -> float | None:
        """Time of the last step accepted for ``state``, None before the first."""
        return self.model.get_last_step_time(state)

    def step(
        self,
        state: State,
        time: float,
        kinematics: KinematicsFn | None = None,
    ) -> list[str]:
        """
        Accept one step at ``time``.

        Parameters
        ----------
        state : State
            State to advance
        time : float
            Simulation time of the step [s]; must not decrease
        kinematics : Callable[[Model, State, float], None] | None
            Writes positions for ``time`` into ``state`` (e.g. by setting
            coordinate values)

        Returns
        -------
        list[str]
            Names of the reporters that received a report event

        Raises
        ------
        StateAccessError
            If ``state`` does not belong to the model's current system
        ConfigurationError
            If ``time`` is earlier than the state's last accepted step
        """
        system = self.model.check_state(state)
        previous = self.model.get_last_step_time(state)
        if previous is not None and time < previous:
            raise ConfigurationError(
                f"Time must not decrease: got {time} after {previous}"
            )

        state.set_time(time)
        if kinematics is not None:
            kinematics(self.model, state, time)
        system.realize(state, Stage.REPORT)

        reported = []
        for reporter in system.reporters:
            if reporter.is_report_due(previous, time, self.config.time_tolerance):
                reporter.report(state)
                reported.append(reporter.name)
        self.model.set_last_step_time(state, time)
        if reported:
            logger.debug("t=%.6g: reported %s", time, reported)
        return reported

    def integrate(
        self,
        state: State,
        times: Iterable[float],
        kinematics: KinematicsFn | None = None,
    ) -> State:
        """
        Accept a sequence of steps.

        Progress is logged at INFO every ``config.log_interval`` seconds of
        simulation time (set <= 0 to disable).
        """
        times = [float(t) for t in times]
        if not times:
            return state
        log_interval = self.config.log_interval
        logger.info(
            "Starting run of '%s': %d steps, t=%.6g..%.6g s",
            self.model.name, len(times), times[0], times[-1],
        )
        last_log_time = times[0]
        for t in times:
            self.step(state, t, kinematics)
            if log_interval > 0 and (t - last_log_time) >= log_interval:
                logger.info("t=%6.2f s", t)
                last_log_time = t
        logger.info("Finished run of '%s' at t=%.6g s", self.model.name, state.time)
        return state
