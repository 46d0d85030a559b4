import logging
import math

import numpy as np
import pytest

from simcomp import (
    ConfigurationError,
    ConsoleReporter,
    Manager,
    PortConnectionError,
    Stage,
    StateAccessError,
    TableReporter,
)


def _drive_coordinate(model, state, t):
    model.get_component("knee_ty").set_value(state, -0.4 - t)


TIMES = [0.0, 0.1, 0.2, 0.3, 0.4]


def test_round_trip_every_step(knee_with_reporter):
    model = knee_with_reporter
    reporter = model.get_component("coord_reporter")
    state = model.initialize_state()
    Manager(model).integrate(state, TIMES, _drive_coordinate)

    table = reporter.get_report(state)
    assert table.num_rows == 5
    assert table.column_labels == ["q"]
    for i, t in enumerate(TIMES):
        time, values = table.get_row(i)
        assert time == t
        assert values == [pytest.approx(-0.4 - t)]


def test_columns_follow_declaration_order(knee_model):
    reporter = TableReporter("r")
    reporter.add_to_report("/model/acl|length")
    reporter.add_to_report(knee_model.get_component("knee_ty").get_output("value"), alias="q")
    reporter.add_to_report("acl|tension", alias="tension")
    knee_model.add_reporter(reporter)
    knee_model.get_component("acl").set_linear_stiffness(100.0, 0.4)
    state = knee_model.initialize_state()
    Manager(knee_model).step(state, 0.0)

    table = reporter.get_report(state)
    assert table.column_labels == ["/model/acl|length", "q", "tension"]
    np.testing.assert_allclose(table.values[0], [0.5, -0.4, 10.0])


def test_report_before_any_event_is_empty(knee_with_reporter):
    model = knee_with_reporter
    state = model.initialize_state()
    table = model.get_component("coord_reporter").get_report(state)
    assert table.num_rows == 0
    assert table.column_labels == ["q"]
    assert table.values.shape == (0, 1)


def test_get_report_needs_a_built_model():
    reporter = TableReporter("r")
    with pytest.raises(StateAccessError):
        reporter.get_report(None)


def test_disabled_is_per_state(knee_with_reporter):
    model = knee_with_reporter
    reporter = model.get_component("coord_reporter")
    disabled = model.initialize_state()
    enabled = model.initialize_state()
    reporter.set_disabled(disabled, True)
    assert reporter.is_disabled(disabled)
    assert not reporter.is_disabled(enabled)

    manager = Manager(model)
    manager.integrate(disabled, TIMES, _drive_coordinate)
    manager.integrate(enabled, TIMES, _drive_coordinate)
    for _ in range(3):
        reporter.report(disabled)

    assert reporter.get_report(disabled).num_rows == 0
    assert reporter.get_report(enabled).num_rows == 5


def test_disabling_does_not_invalidate(knee_with_reporter):
    model = knee_with_reporter
    reporter = model.get_component("coord_reporter")
    state = model.initialize_state()
    model.realize_report(state)
    reporter.set_disabled(state, True)
    assert state.realized_stage == Stage.REPORT


def test_reenabling_resumes(knee_with_reporter):
    model = knee_with_reporter
    reporter = model.get_component("coord_reporter")
    state = model.initialize_state()
    manager = Manager(model)
    manager.step(state, 0.0)
    reporter.set_disabled(state, True)
    manager.step(state, 0.1)
    reporter.set_disabled(state, False)
    manager.step(state, 0.2)
    np.testing.assert_allclose(reporter.get_report(state).times, [0.0, 0.2])


def test_report_view_is_read_only(knee_with_reporter):
    model = knee_with_reporter
    reporter = model.get_component("coord_reporter")
    state = model.initialize_state()
    view = reporter.get_report(state)
    with pytest.raises(TypeError):
        view.append_row(0.0, [1.0])
    Manager(model).step(state, 0.0)
    assert view.num_rows == 1


def test_clear_table(knee_with_reporter):
    model = knee_with_reporter
    reporter = model.get_component("coord_reporter")
    state = model.initialize_state()
    Manager(model).integrate(state, TIMES)
    reporter.clear_table(state)
    assert reporter.get_report(state).num_rows == 0


def test_copied_state_has_its_own_table(knee_with_reporter):
    model = knee_with_reporter
    reporter = model.get_component("coord_reporter")
    state = model.initialize_state()
    manager = Manager(model)
    manager.step(state, 0.0)
    branch = state.copy()
    manager.step(state, 0.1)
    assert reporter.get_report(state).num_rows == 2
    assert reporter.get_report(branch).num_rows == 1


@pytest.mark.parametrize("interval", [-1.0, -0.5, math.nan])
def test_every_step_intervals(interval):
    reporter = TableReporter("r", report_time_interval=interval)
    assert reporter.is_report_due(None, 0.0)
    assert reporter.is_report_due(0.0, 1e-6)
    assert reporter.is_report_due(0.3, 0.3)


def test_interval_schedule(knee_with_reporter):
    model = knee_with_reporter
    reporter = model.get_component("coord_reporter")
    reporter.set_report_time_interval(0.25)
    state = model.initialize_state()
    times = [i * 0.1 for i in range(11)]
    Manager(model).integrate(state, times)
    np.testing.assert_allclose(
        reporter.get_report(state).times, [0.0, 0.3, 0.5, 0.8, 1.0]
    )


def test_interval_reached_within_tolerance():
    reporter = TableReporter("r", report_time_interval=0.1)
    assert reporter.is_report_due(0.05, 0.1 - 1e-15)
    assert not reporter.is_report_due(0.1, 0.15)


@pytest.mark.parametrize("interval", [0.0, math.inf])
def test_invalid_interval(interval):
    with pytest.raises(ConfigurationError):
        TableReporter("r", report_time_interval=interval)


def test_unresolved_channel_fails_before_any_step(knee_model):
    reporter = TableReporter("r")
    reporter.add_to_report("/model/missing|value")
    knee_model.add_reporter(reporter)
    with pytest.raises(PortConnectionError):
        Manager(knee_model).step(knee_model.initialize_state(), 0.0)


def test_empty_channel_rejected():
    with pytest.raises(PortConnectionError):
        TableReporter("r").add_to_report("")


def test_console_reporter_logs_rows(knee_model, caplog):
    reporter = ConsoleReporter("console", precision=3)
    reporter.add_to_report("/model/acl|length", alias="L")
    reporter.add_to_report("/model/tibia|position", alias="p")
    knee_model.add_reporter(reporter)
    state = knee_model.initialize_state()
    with caplog.at_level(logging.INFO, logger="simcomp"):
        Manager(knee_model).integrate(state, [0.0, 0.5])
    lines = [r.getMessage() for r in caplog.records if r.name == "simcomp.reporting.reporter"]
    assert lines[0] == "[console] time | L | p"
    assert lines[1].startswith("[console] 0 | 0.5 | ")
    assert len(lines) == 3


def test_tiny_interval_warns():
    with pytest.warns(RuntimeWarning, match="very small"):
        TableReporter("r", report_time_interval=1e-9)


def test_duplicate_alias_fails_at_build(knee_model):
    reporter = TableReporter("r")
    reporter.add_to_report("/model/acl|length", alias="x")
    reporter.add_to_report("/model/acl|strain", alias="x")
    knee_model.add_reporter(reporter)
    with pytest.raises(ConfigurationError, match="duplicate column labels"):
        knee_model.build_system()
    assert knee_model.system is None


def test_same_output_twice_fails_at_build(knee_model):
    reporter = TableReporter("r")
    reporter.add_to_report("/model/knee_ty|value")
    reporter.add_to_report(knee_model.get_component("knee_ty").get_output("value"))
    knee_model.add_reporter(reporter)
    with pytest.raises(ConfigurationError, match="duplicate column labels"):
        knee_model.build_system()


def test_disabled_property_seeds_new_states(knee_with_reporter):
    model = knee_with_reporter
    reporter = model.get_component("coord_reporter")
    assert reporter.get_property("is_disabled") is False
    reporter.set_property("is_disabled", True)
    state = model.initialize_state()
    assert reporter.is_disabled(state)
    Manager(model).integrate(state, TIMES)
    assert reporter.get_report(state).num_rows == 0

    reporter.set_disabled(state, False)
    Manager(model).step(state, 1.0)
    assert reporter.get_report(state).num_rows == 1
