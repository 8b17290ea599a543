"""Tests for step function evaluation and inversion"""

import numpy as np
import pytest

from msaalen.utils import StepFunctionCurve


@pytest.fixture
def curve():
    times = np.array([0.0, 1.0, 2.5, 4.0])
    values = np.array([[0.0, 0.0], [0.2, 1.0], [0.5, 0.5], [0.9, 2.0]])
    return StepFunctionCurve(times, values, columns=["a", "b"])


def test_evaluate_right_continuous(curve):
    """Value at the greatest grid time <= t"""
    assert np.allclose(curve.evaluate(0.0), [0.0, 0.0])
    assert np.allclose(curve.evaluate(0.99), [0.0, 0.0])
    assert np.allclose(curve.evaluate(1.0), [0.2, 1.0])
    assert np.allclose(curve.evaluate(2.4), [0.2, 1.0])
    assert np.allclose(curve.evaluate(2.5), [0.5, 0.5])


def test_evaluate_beyond_horizon_is_flat(curve):
    values = curve.evaluate([4.0, 10.0, np.inf])
    assert values.shape == (3, 2)
    assert np.allclose(values, [[0.9, 2.0]] * 3)


def test_evaluate_below_first_grid_time():
    curve = StepFunctionCurve([0.0, 1.0], [0.3, 0.4])
    # Grids start at the origin, so only t = 0 itself is at the left edge
    assert curve.evaluate(0.0) == pytest.approx(0.3)
    assert curve.evaluate(0.5) == pytest.approx(0.3)


def test_evaluate_rejects_negative_times(curve):
    with pytest.raises(ValueError):
        curve.evaluate(-1.0)


def test_univariate_shapes():
    curve = StepFunctionCurve([0.0, 1.0, 2.0], [0.0, 0.1, 0.3])
    assert np.ndim(curve.evaluate(1.5)) == 0
    assert curve.evaluate([0.5, 1.5, 3.0]).shape == (3,)
    assert curve.horizon == 2.0


def test_invert_monotone():
    curve = StepFunctionCurve([0.0, 1.0, 2.0, 3.0], [0.0, 0.1, 0.4, 1.0])
    assert curve.invert(0.05) == 1.0
    assert curve.invert(0.1) == 1.0
    assert curve.invert(0.11) == 2.0
    assert curve.invert(1.0) == 3.0
    assert np.array_equal(curve.invert([0.05, 0.3, 0.7]), [1.0, 2.0, 3.0])


def test_invert_unreached():
    """A curve that never exceeds 0.3 cannot be inverted at 2.0"""
    curve = StepFunctionCurve([0.0, 1.0, 2.0], [0.0, 0.1, 0.3])
    assert curve.invert(2.0) == np.inf
    result = curve.invert([0.2, 2.0])
    assert result[0] == 2.0
    assert np.isinf(result[1])


def test_invert_non_monotone_uses_first_crossing():
    curve = StepFunctionCurve([0.0, 1.0, 2.0, 3.0], [0.0, 0.5, 0.3, 0.8])
    assert curve.invert(0.4) == 1.0
    assert curve.invert(0.6) == 3.0
    assert curve.invert(0.9) == np.inf


def test_invert_column(curve):
    assert curve.invert(0.7, column=1) == 1.0
    assert curve.invert(1.5, column=1) == 4.0


def test_increments():
    curve = StepFunctionCurve([0.0, 1.0, 2.0], [0.1, 0.3, 0.2])
    assert np.allclose(curve.increments(), [0.1, 0.2, -0.1])


def test_running_max():
    curve = StepFunctionCurve([0.0, 1.0, 2.0, 3.0], [0.0, 0.5, 0.3, 0.8])
    assert np.allclose(curve.running_max().evaluate([0, 1, 2, 3]), [0.0, 0.5, 0.5, 0.8])


def test_single_point_curve():
    curve = StepFunctionCurve([0.0], [0.0])
    assert curve.evaluate(3.0) == 0.0
    assert curve.invert(0.5) == np.inf


def test_invalid_grid():
    with pytest.raises(ValueError):
        StepFunctionCurve([0.0, 0.0, 1.0], [0.0, 0.1, 0.2])
    with pytest.raises(ValueError):
        StepFunctionCurve([0.0, 1.0], [0.0, 0.1, 0.2])
