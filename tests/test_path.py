import numpy as np
import pytest

from simcomp import Body, Coordinate, Ligament, Model, PortConnectionError, StateAccessError


def test_two_point_length(knee_model):
    state = knee_model.initialize_state()
    knee_model.realize_position(state)
    path = knee_model.get_component("acl/path")
    assert path.get_length(state) == pytest.approx(0.5)
    assert path.get_output_value(state, "length") == pytest.approx(0.5)


def test_via_point_adds_segments():
    model = Model("model")
    tibia = model.add_body(Body("tibia", position=[0.0, -1.0, 0.0]))
    lig = Ligament("lig", resting_length=1.0)
    lig.path.add_path_point("origin", model.ground, [0.0, 0.0, 0.0])
    lig.path.add_path_point("via", model.ground, [0.3, -0.4, 0.0])
    lig.path.add_path_point("insertion", tibia, [0.3, 0.0, 0.0])
    model.add_force(lig)
    state = model.initialize_state()
    model.realize_position(state)
    # 0.5 to the via point, then 0.6 straight down
    assert lig.get_length(state) == pytest.approx(1.1)


def test_rotated_body_moves_its_points():
    model = Model("model")
    # 90 degrees about z: body x axis points along ground y
    q = [0.0, 0.0, np.sin(np.pi / 4), np.cos(np.pi / 4)]
    arm = model.add_body(Body("arm", position=[1.0, 0.0, 0.0], orientation=q))
    lig = Ligament("lig", resting_length=1.0)
    lig.path.add_path_point("origin", model.ground, [1.0, 0.0, 0.0])
    lig.path.add_path_point("insertion", arm, [2.0, 0.0, 0.0])
    model.add_force(lig)
    state = model.initialize_state()
    model.realize_position(state)
    np.testing.assert_allclose(
        lig.path.path_points[1].get_location_in_ground(state), [1.0, 2.0, 0.0], atol=1e-12
    )
    assert lig.get_length(state) == pytest.approx(2.0)


def test_force_directions_point_along_path(knee_model):
    state = knee_model.initialize_state()
    knee_model.realize_position(state)
    pfds = knee_model.get_component("acl").path.get_point_force_directions(state)
    assert [p.body.name for p in pfds] == ["ground", "tibia"]
    np.testing.assert_allclose(pfds[0].direction, [0.0, -1.0, 0.0])
    np.testing.assert_allclose(pfds[1].direction, [0.0, 1.0, 0.0])
    np.testing.assert_allclose(pfds[1].point, [0.0, -0.1, 0.0])


def test_moment_arm_is_negative_length_derivative(knee_model):
    state = knee_model.initialize_state()
    knee_model.realize_position(state)
    lig = knee_model.get_component("acl")
    coord = knee_model.get_component("knee_ty")
    y_before = state.y.copy()
    # L = 0.1 - q, so dL/dq = -1
    assert lig.compute_moment_arm(state, coord) == pytest.approx(1.0, rel=1e-6)
    np.testing.assert_array_equal(state.y, y_before)
    assert lig.get_length(state) == pytest.approx(0.5)


def test_moment_arm_about_unrelated_axis_is_zero(knee_model):
    knee_model.add_coordinate(Coordinate("knee_tz", body="tibia", axis="tz"))
    state = knee_model.initialize_state()
    lig = knee_model.get_component("acl")
    coord = knee_model.get_component("knee_tz")
    assert lig.compute_moment_arm(state, coord) == pytest.approx(0.0, abs=1e-6)


def test_short_path_warns_and_has_zero_length():
    model = Model("model")
    lig = Ligament("lig", resting_length=1.0)
    lig.path.add_path_point("only", model.ground, [0.0, 0.0, 0.0])
    model.add_force(lig)
    state = model.initialize_state()
    with pytest.warns(RuntimeWarning, match="1 point"):
        model.realize_position(state)
    assert lig.get_length(state) == 0.0


def test_path_point_on_unknown_body():
    model = Model("model")
    lig = Ligament("lig", resting_length=1.0)
    lig.path.add_path_point("origin", "/model/nowhere", [0.0, 0.0, 0.0])
    model.add_force(lig)
    with pytest.raises(PortConnectionError):
        model.build_system()


def test_path_point_added_after_build_needs_new_state(knee_model):
    lig = knee_model.get_component("acl")
    state = knee_model.initialize_state()
    lig.path.add_path_point("via", "/model/ground", [0.3, -0.2, 0.0])
    with pytest.raises(StateAccessError, match="initialize_state"):
        knee_model.realize_position(state)

    state = knee_model.initialize_state()
    knee_model.realize_position(state)
    assert len(lig.path.path_points) == 3
    assert lig.get_length(state) > 0.5
