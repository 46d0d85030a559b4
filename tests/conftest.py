import os
import sys

# Get the path to the project root (one level up from 'tests')
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
src_path = os.path.join(project_root, 'src')

# Add 'src' to sys.path
sys.path.insert(0, src_path)

import pytest

from simcomp import Body, Coordinate, Ligament, Model, TableReporter


@pytest.fixture
def knee_model():
    """
    Ground, one body sliding along y and a ligament spanning them.

    The ligament runs from the ground origin to a point 0.1 m below the
    tibia origin, so its length is 0.1 - q for coordinate value q <= 0.1.
    Initial length is 0.5 m, resting length 0.4 m.
    """
    model = Model("model")
    tibia = model.add_body(Body("tibia", mass=2.0, position=[0.0, -0.4, 0.0]))
    model.add_coordinate(Coordinate("knee_ty", body="tibia", axis="ty"))
    lig = Ligament("acl", resting_length=0.4, pcsa_force=100.0)
    lig.path.add_path_point("origin", model.ground, [0.0, 0.0, 0.0])
    lig.path.add_path_point("insertion", tibia, [0.0, -0.1, 0.0])
    model.add_force(lig)
    return model


@pytest.fixture
def knee_with_reporter(knee_model):
    reporter = TableReporter("coord_reporter")
    reporter.add_to_report("/model/knee_ty|value", alias="q")
    knee_model.add_reporter(reporter)
    return knee_model


@pytest.fixture
def set_length():
    """Move the tibia so the ligament path has the requested length."""
    def _set(model, state, length):
        model.get_component("knee_ty").set_value(state, 0.1 - length)
    return _set
