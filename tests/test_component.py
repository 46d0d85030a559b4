import gc

import pytest

from simcomp import (
    Body,
    Component,
    ConfigurationError,
    GeometryPath,
    Ligament,
    Model,
    PortConnectionError,
    StateAccessError,
    TableReporter,
)
from simcomp.core.capabilities import ContributesForce, ReportsEvents, Scalable


def test_paths_and_lookup(knee_model):
    lig = knee_model.get_component("acl")
    point = lig.path.path_points[1]
    assert point.absolute_path == "/model/acl/path/insertion"
    assert knee_model.find_component("/model/acl/path") is lig.path
    assert point.find_component("../../..") is knee_model
    assert point.find_component("..") is lig.path
    assert point.find_component(".") is point
    assert lig.find_component("path/origin").name == "origin"
    assert knee_model.find_component("/other/acl") is None
    assert knee_model.find_component("acl/missing") is None
    with pytest.raises(ConfigurationError):
        knee_model.get_component("missing")


def test_pre_order_traversal(knee_model):
    names = [c.name for c in knee_model.iter_components()]
    assert names == ["ground", "tibia", "knee_ty", "acl", "path", "origin", "insertion"]


def test_path_owner_is_non_owning_back_reference():
    lig = Ligament("lig", resting_length=1.0)
    assert lig.path.owner is lig
    assert lig.has_owner() is False
    new_path = GeometryPath("path")
    old_path = lig.path
    lig.set_property("path", new_path)
    assert new_path.owner is lig
    assert old_path.owner is None
    assert lig.subcomponents == (new_path,)


def test_component_cannot_have_two_owners():
    body = Body("b")
    first = Model("m1")
    first.add_body(body)
    with pytest.raises(ConfigurationError, match="already owned"):
        Model("m2").add_body(body)
    assert body.owner is first


def test_collected_owner_releases_component():
    body = Body("b")
    first = Model("m1")
    first.add_body(body)
    del first
    gc.collect()
    assert body.owner is None
    second = Model("m2")
    second.add_body(body)
    assert body.absolute_path == "/m2/b"


def test_cycle_and_self_adoption_rejected():
    model = Model("m")
    holder = Model("inner")
    model.add_component(holder)
    with pytest.raises(ConfigurationError, match="cycle"):
        holder.add_component(model)
    with pytest.raises(ConfigurationError, match="cycle"):
        model.add_component(model)


def test_duplicate_sibling_name_rejected():
    model = Model("m")
    model.add_body(Body("b"))
    with pytest.raises(ConfigurationError, match="Duplicate subcomponent"):
        model.add_body(Body("b"))


def test_add_component_twice_is_a_no_op():
    model = Model("m")
    body = Body("b")
    model.add_body(body)
    model.add_body(body)
    assert [c.name for c in model.subcomponents] == ["ground", "b"]


def test_remove_component_releases_owner():
    model = Model("m")
    body = model.add_body(Body("b"))
    model.remove_component(body)
    assert body.owner is None
    assert model.find_component("b") is None


def test_invalid_names():
    with pytest.raises(ConfigurationError):
        Body("a/b")
    with pytest.raises(ConfigurationError):
        Body("x|y")
    with pytest.raises(ConfigurationError):
        Body("")


def test_duplicate_port_name_rejected():
    class Doubled(Component):
        def _construct_outputs(self):
            self._declare_output("x", float, lambda c, s: 1.0)
            self._declare_output("x", float, lambda c, s: 2.0)

    with pytest.raises(ConfigurationError, match="Duplicate port"):
        Doubled("doubled")


def test_input_and_output_share_one_namespace():
    class Clash(Component):
        def _construct_inputs(self):
            self._declare_input("signal", float)

        def _construct_outputs(self):
            self._declare_output("signal", float, lambda c, s: 0.0)

    with pytest.raises(ConfigurationError, match="Duplicate port"):
        Clash("clash")


def test_capabilities_are_structural(knee_with_reporter):
    lig = knee_with_reporter.get_component("acl")
    reporter = knee_with_reporter.get_component("coord_reporter")
    assert isinstance(lig, ContributesForce)
    assert isinstance(lig, Scalable)
    assert not isinstance(lig, ReportsEvents)
    assert isinstance(reporter, ReportsEvents)
    assert not isinstance(reporter, ContributesForce)
    assert not isinstance(knee_with_reporter.get_component("tibia"), Scalable)


def test_connect_is_idempotent(knee_with_reporter):
    model = knee_with_reporter
    model.build_system()
    reporter = model.get_component("coord_reporter")
    coord = model.get_component("knee_ty")
    first = [c.connectee for c in reporter.get_input("inputs").channels]
    first_body = coord.body
    model.connect()
    second = [c.connectee for c in reporter.get_input("inputs").channels]
    assert first == second
    assert all(a is b for a, b in zip(first, second))
    assert first[0] is coord.get_output("value")
    assert coord.body is first_body


def test_unresolved_required_input_fails_at_connect():
    class Follower(Component):
        def _construct_inputs(self):
            self._declare_input("signal", float)

        def extend_realize(self, state, stage):
            raise AssertionError("realize must not run")

    model = Model("m")
    model.add_component(Follower("follower"))
    with pytest.raises(PortConnectionError, match="not connected"):
        model.build_system()
    assert model.system is None


def test_optional_input_may_stay_unconnected():
    class Listener(Component):
        def _construct_inputs(self):
            self._declare_input("signal", float, optional=True)

    model = Model("m")
    listener = model.add_component(Listener("listener"))
    model.build_system()
    assert listener.get_input("signal").is_connected is False
    state = model.initialize_state()
    with pytest.raises(PortConnectionError):
        listener.get_input("signal").get_value(state)


def test_input_connected_by_relative_path(knee_model):
    class Follower(Component):
        def _construct_inputs(self):
            self._declare_input("length", float)

    follower = knee_model.add_component(Follower("follower"))
    follower.get_input("length").connect_to("../acl|length")
    knee_model.build_system()
    assert follower.get_input("length").connectee_path == "/model/acl|length"

    state = knee_model.initialize_state()
    knee_model.realize_position(state)
    assert follower.get_input("length").get_value(state) == pytest.approx(0.5)


def test_unknown_output_and_ambiguous_name(knee_model):
    reporter = TableReporter("r")
    reporter.add_to_report("acl|nope")
    knee_model.add_reporter(reporter)
    with pytest.raises(PortConnectionError, match="no output 'nope'"):
        knee_model.build_system()

    reporter.get_input("inputs").clear()
    reporter.add_to_report("path|length")
    other = Ligament("pcl", resting_length=0.3)
    knee_model.add_force(other)
    with pytest.raises(PortConnectionError, match="ambiguous"):
        knee_model.build_system()


def test_malformed_connectee_path(knee_model):
    reporter = TableReporter("r")
    reporter.add_to_report("/model/acl")
    knee_model.add_reporter(reporter)
    with pytest.raises(PortConnectionError, match="Malformed"):
        knee_model.build_system()


def test_output_type_mismatch(knee_model):
    reporter = TableReporter("r")
    reporter.add_to_report("/model/tibia|position")
    knee_model.add_reporter(reporter)
    with pytest.raises(PortConnectionError, match="expects float"):
        knee_model.build_system()


def test_state_variable_access(knee_model):
    knee_model.build_system()
    state = knee_model.initialize_state()
    tibia = knee_model.get_component("tibia")
    lig = knee_model.get_component("acl")
    assert tibia.get_state_variable_names() == ["translation", "orientation"]
    assert lig.get_state_variable_names() == []
    with pytest.raises(StateAccessError):
        lig.get_state_variable_value(state, "translation")


def test_unbuilt_component_has_no_state_access():
    lig = Ligament("lig", resting_length=1.0)
    with pytest.raises(StateAccessError):
        lig.path.get_pre_scale_length(None)


def test_property_change_drops_built_system(knee_model):
    state = knee_model.initialize_state()
    assert knee_model.system is not None
    knee_model.get_component("tibia").set_property("mass", 3.0)
    assert knee_model.system is None
    with pytest.raises(StateAccessError, match="changed after state"):
        knee_model.realize_position(state)
    knee_model.realize_position(knee_model.initialize_state())


def test_removing_a_component_drops_built_system(knee_model):
    extra = knee_model.add_body(Body("extra"))
    state = knee_model.initialize_state()
    knee_model.remove_component(extra)
    assert knee_model.system is None
    with pytest.raises(StateAccessError):
        knee_model.get_body_forces(state)
