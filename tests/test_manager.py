import logging

import numpy as np
import pytest

from simcomp import (
    ConfigurationError,
    Manager,
    SimulationConfig,
    Stage,
    StateAccessError,
    TableReporter,
)


def test_step_realizes_to_report_and_returns_reporters(knee_with_reporter):
    model = knee_with_reporter
    state = model.initialize_state()
    manager = Manager(model)
    assert manager.previous_time(state) is None
    reported = manager.step(state, 0.25)
    assert reported == ["coord_reporter"]
    assert state.realized_stage == Stage.REPORT
    assert state.time == 0.25
    assert manager.previous_time(state) == 0.25


def test_time_must_not_decrease(knee_with_reporter):
    model = knee_with_reporter
    state = model.initialize_state()
    manager = Manager(model)
    manager.step(state, 1.0)
    with pytest.raises(ConfigurationError, match="must not decrease"):
        manager.step(state, 0.5)
    assert state.time == 1.0
    assert manager.previous_time(state) == 1.0

    fresh = model.initialize_state()
    assert manager.step(fresh, 0.5) == ["coord_reporter"]


def test_copied_state_continues_report_schedule(knee_with_reporter):
    model = knee_with_reporter
    reporter = model.get_component("coord_reporter")
    reporter.set_report_time_interval(0.25)
    state = model.initialize_state()
    manager = Manager(model)
    manager.integrate(state, [0.0, 0.1])

    branch = state.copy()
    assert manager.previous_time(branch) == 0.1
    assert manager.step(branch, 0.2) == []
    np.testing.assert_allclose(reporter.get_report(branch).times, [0.0])


def test_copied_state_cannot_step_back(knee_with_reporter):
    model = knee_with_reporter
    state = model.initialize_state()
    manager = Manager(model)
    manager.integrate(state, [0.0, 0.5])
    with pytest.raises(ConfigurationError, match="must not decrease"):
        manager.step(state.copy(), 0.1)


def test_step_history_is_shared_between_managers(knee_with_reporter):
    model = knee_with_reporter
    reporter = model.get_component("coord_reporter")
    reporter.set_report_time_interval(0.25)
    state = model.initialize_state()
    Manager(model).integrate(state, [0.0, 0.1])
    other = Manager(model)
    assert other.previous_time(state) == 0.1
    assert other.step(state, 0.2) == []
    assert other.step(state, 0.3) == ["coord_reporter"]
    with pytest.raises(ConfigurationError):
        Manager(model).step(state, 0.0)


def test_step_rejects_state_of_changed_model(knee_model):
    state = knee_model.initialize_state()
    late = TableReporter("late")
    late.add_to_report("/model/knee_ty|value", alias="q")
    knee_model.add_component(late)
    assert knee_model.system is None
    with pytest.raises(StateAccessError, match="initialize_state"):
        Manager(knee_model).step(state, 0.0)

    fresh = knee_model.initialize_state()
    Manager(knee_model).integrate(fresh, [0.0, 0.1])
    assert late.get_report(fresh).num_rows == 2


def test_kinematics_callback_runs_before_realization(knee_model):
    seen = []

    def kinematics(model, state, t):
        seen.append((t, state.realized_stage))
        model.get_component("knee_ty").set_value(state, -0.4 - t)

    state = knee_model.initialize_state()
    Manager(knee_model).integrate(state, [0.0, 0.2])
    Manager(knee_model).integrate(state, [0.3], kinematics)
    assert seen == [(0.3, Stage.INSTANCE)]
    assert knee_model.get_component("acl").get_length(state) == pytest.approx(0.8)


def test_config_defaults_to_model_config(knee_model):
    assert Manager(knee_model).config is knee_model.config
    custom = SimulationConfig(time_tolerance=1e-6)
    assert Manager(knee_model, custom).config is custom


def test_progress_logging(knee_with_reporter, caplog):
    model = knee_with_reporter
    state = model.initialize_state()
    manager = Manager(model, SimulationConfig(log_interval=0.5))
    with caplog.at_level(logging.INFO, logger="simcomp"):
        manager.integrate(state, [0.0, 0.25, 0.5, 0.75, 1.0])
    messages = [r.getMessage() for r in caplog.records if r.name == "simcomp.core.manager"]
    assert messages[0].startswith("Starting run of 'model': 5 steps")
    assert sum(m.startswith("t=") for m in messages) == 2
    assert messages[-1].startswith("Finished run")


def test_integrate_empty_sequence(knee_model):
    state = knee_model.initialize_state()
    assert Manager(knee_model).integrate(state, []) is state
