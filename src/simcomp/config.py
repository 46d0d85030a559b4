"""
Run configuration for model evaluation.

Component configuration lives in Properties; this module holds the knobs
of a simulation run that are not part of any component: event-time
tolerance, the finite-difference step used for moment arms, and progress
logging cadence.
"""
from __future__ import annotations

from dataclasses import dataclass, replace

from simcomp.errors import ConfigurationError

CONFIG_PRESETS: dict[str, dict[str, float | int]] = {
    "default": {"time_tolerance": 1e-9, "moment_arm_step": 1e-6, "log_interval": 1.0},
    "precise": {"time_tolerance": 1e-12, "moment_arm_step": 1e-7, "log_interval": 1.0},
    "quiet": {"time_tolerance": 1e-9, "moment_arm_step": 1e-6, "log_interval": 0.0},
}


@dataclass(frozen=True)
class SimulationConfig:
    """
    Settings shared by a Model and the Managers that drive it.

    Attributes
    ----------
    time_tolerance : float
        Relative slack used when deciding whether simulation time has
        crossed a reporting boundary [-]
    moment_arm_step : float
        Coordinate perturbation for central-difference moment arms [m]
    log_interval : float
        Simulation-time interval between progress log lines [s].
        Set <= 0 to disable.
    report_precision : int
        Significant digits used by text reporters
    """

    time_tolerance: float = 1e-9
    moment_arm_step: float = 1e-6
    log_interval: float = 1.0
    report_precision: int = 6

    def __post_init__(self) -> None:
        if not self.time_tolerance >= 0:
            raise ConfigurationError(
                f"time_tolerance must be non-negative, got {self.time_tolerance}"
            )
        if not self.moment_arm_step > 0:
            raise ConfigurationError(
                f"moment_arm_step must be positive, got {self.moment_arm_step}"
            )
        if self.report_precision < 1:
            raise ConfigurationError(
                f"report_precision must be at least 1, got {self.report_precision}"
            )

    @classmethod
    def from_preset(cls, preset: str = "default", **overrides) -> SimulationConfig:
        """
        Build a configuration from a named preset with optional overrides.

        Presets: 'default', 'precise', 'quiet'
        """
        if preset not in CONFIG_PRESETS:
            raise ConfigurationError(
                f"Unknown preset '{preset}'. Valid options: {sorted(CONFIG_PRESETS)}"
            )
        params = dict(CONFIG_PRESETS[preset])
        params.update(overrides)
        return cls(**params)

    def with_overrides(self, **overrides) -> SimulationConfig:
        return replace(self, **overrides)


DEFAULT_CONFIG = SimulationConfig()
