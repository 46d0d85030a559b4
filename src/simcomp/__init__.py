"""
SimComp - component framework for musculoskeletal-style force elements.

Core Components
---------------
Model : Root of a component tree
Manager : Step driver dispatching report events
Component : Base class with properties, ports and lifecycle
State : Per-run time, state variables and realization stage

Elements
--------
Body, Ground, Coordinate : Bodies and generalized coordinates
GeometryPath : Straight-line path through body-fixed points
Ligament : Tension-only force element along a path
TableReporter, ConsoleReporter : Samplers of connected Outputs

Examples
--------
>>> from simcomp import Model, Body, Ligament, TableReporter, Manager
"""

__version__ = "0.1.0"

from simcomp.config import CONFIG_PRESETS, DEFAULT_CONFIG, SimulationConfig
from simcomp.errors import (
    ConfigurationError,
    PortConnectionError,
    SimCompError,
    StateAccessError,
)
from simcomp.log import configure_logging

# Core
from simcomp.core import (
    Component,
    Input,
    ListInput,
    MultibodySystem,
    Output,
    Property,
    Stage,
    State,
)
from simcomp.core.model import Model
from simcomp.core.manager import Manager

# Elements
from simcomp.dynamics import (
    Body,
    Coordinate,
    Force,
    GeometryPath,
    Ground,
    Ligament,
    PathPoint,
    Scale,
    ScaleSet,
)
from simcomp.models import (
    Constant,
    Function,
    LinearFunction,
    MonotoneCubicSpline,
    NaturalCubicSpline,
    PiecewiseLinearFunction,
)

# Reporting
from simcomp.reporting import ConsoleReporter, Reporter, TableReporter, TimeSeriesTable
from simcomp.utils.io import load_model, load_report, save_model, save_report

__all__ = [
    # Version
    "__version__",
    # Configuration
    "SimulationConfig",
    "CONFIG_PRESETS",
    "DEFAULT_CONFIG",
    "configure_logging",
    # Errors
    "SimCompError",
    "ConfigurationError",
    "PortConnectionError",
    "StateAccessError",
    # Core
    "Component",
    "Property",
    "Input",
    "ListInput",
    "Output",
    "Stage",
    "State",
    "MultibodySystem",
    "Model",
    "Manager",
    # Elements
    "Body",
    "Ground",
    "Coordinate",
    "Force",
    "GeometryPath",
    "PathPoint",
    "Ligament",
    "Scale",
    "ScaleSet",
    # Curves
    "Function",
    "Constant",
    "LinearFunction",
    "PiecewiseLinearFunction",
    "MonotoneCubicSpline",
    "NaturalCubicSpline",
    # Reporting
    "Reporter",
    "TableReporter",
    "ConsoleReporter",
    "TimeSeriesTable",
    # IO
    "save_model",
    "load_model",
    "save_report",
    "load_report",
]
