import numpy as np
import pytest

from simcomp import (
    ConfigurationError,
    Constant,
    Function,
    LinearFunction,
    MonotoneCubicSpline,
    NaturalCubicSpline,
    PiecewiseLinearFunction,
)
from simcomp.models.functions import (
    LIGAMENT_CURVE_X,
    LIGAMENT_CURVE_Y,
    default_ligament_force_length_curve,
)


def test_default_curve_passes_through_table():
    curve = default_ligament_force_length_curve()
    values = curve(np.array(LIGAMENT_CURVE_X))
    np.testing.assert_allclose(values, LIGAMENT_CURVE_Y, atol=1e-12)


def test_default_curve_is_monotone_for_non_negative_strain():
    curve = default_ligament_force_length_curve()
    strains = np.linspace(0.0, 6.0, 2001)
    values = curve(strains)
    assert np.all(np.diff(values) >= -1e-12)
    assert np.all(values >= 0.0)


def test_default_curve_is_clamped_outside_table():
    curve = default_ligament_force_length_curve()
    assert curve(10.0) == pytest.approx(2.0)
    assert curve(-10.0) == pytest.approx(0.0)


def test_scalar_in_scalar_out():
    curve = default_ligament_force_length_curve()
    assert isinstance(curve(1.5), float)
    assert curve(np.array([1.5, 1.6])).shape == (2,)


def test_linear_and_constant():
    f = LinearFunction(slope=2.0, intercept=1.0)
    assert f(3.0) == pytest.approx(7.0)
    np.testing.assert_allclose(f([0.0, 1.0]), [1.0, 3.0])
    assert Constant(4.0)(123.0) == 4.0


def test_piecewise_linear_interpolates_and_clamps():
    f = PiecewiseLinearFunction([0.0, 1.0, 2.0], [0.0, 10.0, 10.0])
    assert f(0.5) == pytest.approx(5.0)
    assert f(-1.0) == pytest.approx(0.0)
    assert f(5.0) == pytest.approx(10.0)


def test_natural_spline_extrapolates_linearly():
    x = [0.0, 1.0, 2.0, 3.0]
    y = [0.0, 1.0, 4.0, 9.0]
    f = NaturalCubicSpline(x, y)
    np.testing.assert_allclose(f(np.array(x)), y, atol=1e-12)
    slope = f(3.0 + 1e-6) - f(3.0)
    assert f(4.0) - f(3.0) == pytest.approx(slope * 1e6, rel=1e-4)


def test_monotone_spline_has_no_overshoot():
    f = MonotoneCubicSpline([0.0, 1.0, 2.0, 3.0], [0.0, 0.0, 1.0, 1.0])
    xs = np.linspace(0.0, 3.0, 301)
    values = f(xs)
    assert values.min() >= -1e-12
    assert values.max() <= 1.0 + 1e-12


@pytest.mark.parametrize("x, y", [
    ([0.0, 1.0, 1.0], [0.0, 1.0, 2.0]),
    ([0.0, 2.0, 1.0], [0.0, 1.0, 2.0]),
    ([0.0, 1.0], [0.0]),
    ([0.0], [0.0]),
    ([0.0, 1.0], [0.0, np.nan]),
])
def test_invalid_tables_rejected(x, y):
    with pytest.raises(ConfigurationError):
        PiecewiseLinearFunction(x, y)


def test_serialization_round_trip():
    for f in (
        Constant(2.5),
        LinearFunction(0.4, 0.0),
        PiecewiseLinearFunction([0.0, 1.0], [1.0, 2.0]),
        default_ligament_force_length_curve(),
    ):
        data = f.to_dict()
        assert data["type"] == type(f).__name__
        assert Function.from_dict(data) == f


def test_unknown_function_type():
    with pytest.raises(ConfigurationError, match="Unknown function type"):
        Function.from_dict({"type": "Sigmoid"})
