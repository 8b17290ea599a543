"""Tests for coefficient/variance tables and model sets"""

import joblib
import numpy as np
import pandas as pd
import pytest

from msaalen.data import CoefficientTable, VarianceTable, TransitionCurves, ModelSet
from msaalen.exceptions import InputShapeMismatch
from msaalen.state_manager import Transition
from conftest import COLUMNS, GRID, SLOPES, linear_curves


def test_table_construction():
    table = linear_curves(Transition.RELAPSE, SLOPES[Transition.RELAPSE]).coefficients
    assert table.transition is Transition.RELAPSE
    assert table.stratum is None
    assert table.columns == COLUMNS
    assert table.values.shape == (len(GRID), len(COLUMNS))
    assert table.horizon == 5.0
    assert table.key == (Transition.RELAPSE, None)


def test_table_is_read_only():
    table = linear_curves(Transition.RELAPSE, SLOPES[Transition.RELAPSE]).coefficients
    with pytest.raises(ValueError):
        table.values[0, 0] = 1.0


def test_non_monotone_coefficients_accepted():
    values = np.array([[0.0, 0.0], [0.2, -0.1], [0.1, -0.3], [0.4, 0.2]])
    table = CoefficientTable([0, 1, 2, 3], values, ["(Intercept)", "Stage2"], "1->3")
    assert np.array_equal(table.values, values)


@pytest.mark.parametrize("times,values,columns", [
    (GRID, np.zeros((5, 4)), COLUMNS),          # row count
    (GRID, np.zeros((6, 3)), COLUMNS),          # column count
    ([1, 2, 3, 4, 5, 6], np.zeros((6, 4)), COLUMNS),  # grid not at origin
    ([0, 2, 1, 3, 4, 5], np.zeros((6, 4)), COLUMNS),  # unsorted grid
    (GRID, np.zeros((6, 4)), ["a", "a", "b", "c"]),   # duplicate labels
])
def test_table_shape_errors(times, values, columns):
    with pytest.raises(InputShapeMismatch, match="1->2"):
        CoefficientTable(times, values, columns, Transition.RELAPSE)


@pytest.mark.parametrize("bad", [np.nan, np.inf])
def test_table_rejects_non_finite_values(bad):
    values = np.zeros((6, 4))
    values[2, 1] = bad
    with pytest.raises(InputShapeMismatch, match="1->2"):
        CoefficientTable(GRID, values, COLUMNS, Transition.RELAPSE)


def test_variance_table_rejects_non_numeric_values():
    values = np.zeros((6, 4)).astype(object)
    values[0, 0] = "n/a"
    with pytest.raises(InputShapeMismatch, match="2->3"):
        VarianceTable(GRID, values, COLUMNS, "2->3")


def test_from_frame_round_trip():
    table = linear_curves(Transition.DIRECT_DEATH, SLOPES[Transition.DIRECT_DEATH]).coefficients
    frame = table.to_frame()
    assert list(frame.columns) == ["time"] + COLUMNS

    rebuilt = CoefficientTable.from_frame(frame, "1->3")
    assert rebuilt.columns == COLUMNS
    assert np.array_equal(rebuilt.times, table.times)
    assert np.array_equal(rebuilt.values, table.values)


def test_from_frame_missing_time_column():
    frame = pd.DataFrame({"t": [0.0, 1.0], "(Intercept)": [0.0, 0.1]})
    with pytest.raises(InputShapeMismatch, match="time"):
        CoefficientTable.from_frame(frame, "1->2")


def test_variance_standard_errors():
    values = np.array([[0.0], [0.04], [-1e-12]])
    var = VarianceTable([0, 1, 2], values, ["(Intercept)"], "2->3")
    se = var.standard_errors()
    assert se.shape == (3, 1)
    assert np.allclose(se[:, 0], [0.0, 0.2, 0.0])


def test_transition_curves_grid_mismatch():
    coef = CoefficientTable(GRID, np.zeros((6, 4)), COLUMNS, "1->2")
    var = VarianceTable([0, 1, 2, 3, 4, 6], np.zeros((6, 4)), COLUMNS, "1->2")
    with pytest.raises(InputShapeMismatch, match="time grids"):
        TransitionCurves(coef, var)


def test_transition_curves_column_mismatch():
    coef = CoefficientTable(GRID, np.zeros((6, 4)), COLUMNS, "1->2")
    var = VarianceTable(GRID, np.zeros((6, 4)), COLUMNS[:3] + ["Stage4"], "1->2")
    with pytest.raises(InputShapeMismatch, match="columns"):
        TransitionCurves(coef, var)


def test_transition_curves_transition_mismatch():
    coef = CoefficientTable(GRID, np.zeros((6, 4)), COLUMNS, "1->2")
    var = VarianceTable(GRID, np.zeros((6, 4)), COLUMNS, "1->3")
    with pytest.raises(InputShapeMismatch):
        TransitionCurves(coef, var)


def test_model_set_select(model_set):
    curves = model_set.select()
    assert set(curves) == set(Transition)
    assert model_set.strata() == [None]
    assert model_set["1->2"].transition is Transition.RELAPSE
    assert len(model_set) == 3


def test_model_set_strata(stratified_model_set):
    assert stratified_model_set.strata() == ["A", "B"]
    curves_b = stratified_model_set.select("B")
    assert curves_b[Transition.RELAPSE].stratum == "B"
    assert stratified_model_set[(Transition.RELAPSE, "A")].stratum == "A"

    with pytest.raises(KeyError):
        stratified_model_set.select()
    with pytest.raises(KeyError):
        stratified_model_set.select("C")


def test_model_set_missing_transition():
    curves = [linear_curves(t, s) for t, s in SLOPES.items() if t is not Transition.DEATH_AFTER_RELAPSE]
    with pytest.raises(InputShapeMismatch, match="2->3"):
        ModelSet(curves)


def test_model_set_duplicate_transition():
    curves = [linear_curves(t, s) for t, s in SLOPES.items()]
    curves.append(linear_curves(Transition.RELAPSE, SLOPES[Transition.RELAPSE]))
    with pytest.raises(ValueError, match="Duplicate"):
        ModelSet(curves)


def test_model_set_from_frames():
    coef_frames, var_frames = {}, {}
    for transition, slopes in SLOPES.items():
        curves = linear_curves(transition, slopes, stratum="A")
        coef_frames[(str(transition), "A")] = curves.coefficients.to_frame()
        var_frames[(str(transition), "A")] = curves.variances.to_frame()

    model_set = ModelSet.from_frames(coef_frames, var_frames)
    assert model_set.strata() == ["A"]
    assert model_set[("2->3", "A")].variances is not None

    del var_frames[("1->3", "A")]
    with pytest.raises(InputShapeMismatch, match="1->3"):
        ModelSet.from_frames(coef_frames, var_frames)


def test_model_set_persistence(tmp_path, model_set):
    path = tmp_path / "model_set.joblib"
    joblib.dump(model_set, path)
    loaded = joblib.load(path)
    assert loaded.strata() == model_set.strata()
    assert np.array_equal(loaded["1->2"].coefficients.values, model_set["1->2"].coefficients.values)


def test_dummy_index_built_once_per_covariate_set():
    table = linear_curves(Transition.RELAPSE, SLOPES[Transition.RELAPSE]).coefficients
    index = table.index_for(["Age", "Stage"])
    assert table.index_for(["Stage", "Age"]) is index
    assert table.index_for(["Age"]) is not index
    assert index.lookup("Age", ">4 yrs") == [1]


def test_declared_covariates_index_reused():
    table = CoefficientTable(GRID, np.zeros((6, 4)), COLUMNS, "1->2", covariates=["Age", "Stage"])
    assert table.index_for(["Stage"]) is table.dummy_index
    assert table.index_for(["Age", "Sex"]) is not table.dummy_index
