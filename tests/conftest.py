"""Shared fixtures: linear cumulative coefficient curves on an integer grid"""

import numpy as np
import pandas as pd
import pytest

from msaalen.data import CoefficientTable, VarianceTable, TransitionCurves, ModelSet, TransitionRecords
from msaalen.models import IllnessDeathModel
from msaalen.state_manager import Transition

GRID = np.array([0.0, 1.0, 2.0, 3.0, 4.0, 5.0])
COLUMNS = ["(Intercept)", "Age>4 yrs", "Stage2", "Stage3"]
VARIANCE_SLOPE = 0.001

SLOPES = {
    Transition.RELAPSE: [0.10, 0.05, 0.02, 0.04],
    Transition.DIRECT_DEATH: [0.03, 0.02, 0.01, 0.02],
    Transition.DEATH_AFTER_RELAPSE: [0.20, 0.05, 0.03, 0.05],
}


def linear_curves(transition, slopes, stratum=None, grid=GRID, columns=COLUMNS, with_variance=True):
    """Curves whose cumulative coefficients grow linearly on the grid"""
    coef = CoefficientTable(grid, np.outer(grid, slopes), columns, transition, stratum=stratum)
    var = None
    if with_variance:
        var = VarianceTable(grid, np.outer(grid, [VARIANCE_SLOPE] * len(columns)), columns,
                            transition, stratum=stratum)
    return TransitionCurves(coef, var)


def intercept_only_model(slopes, grid=GRID):
    """Model whose hazards are the intercept curves only, for the empty profile"""
    curves = {
        t: linear_curves(t, [slopes[t]], grid=grid, columns=["(Intercept)"])
        for t in Transition
    }
    return IllnessDeathModel.from_curves(curves, {})


@pytest.fixture
def model_set():
    """Single-stratum model set"""
    return ModelSet(linear_curves(t, s) for t, s in SLOPES.items())


@pytest.fixture
def stratified_model_set():
    """Two strata, stratum B with doubled hazards"""
    curves = [linear_curves(t, s, stratum="A") for t, s in SLOPES.items()]
    curves += [linear_curves(t, 2 * np.asarray(s), stratum="B") for t, s in SLOPES.items()]
    return ModelSet(curves)


@pytest.fixture
def profile():
    return {"Age": ">4 yrs", "Stage": 2}


@pytest.fixture
def model(model_set, profile):
    """H12 = 0.17 t, H13 = 0.06 t, H23 = 0.28 t on the grid"""
    return IllnessDeathModel.from_model_set(model_set, profile)


@pytest.fixture
def null_model():
    """Single time point with all coefficients 0"""
    curves = {
        t: TransitionCurves(CoefficientTable([0.0], [[0.0] * len(COLUMNS)], COLUMNS, t))
        for t in Transition
    }
    return IllnessDeathModel.from_curves(curves, {"Age": ">4 yrs", "Stage": 3})


@pytest.fixture
def state1_records():
    """Aligned 1->2 and 1->3 records of eight subjects entering at time 0"""
    frame = pd.DataFrame({
        "start": np.zeros(8),
        "stop": [0.5, 1.0, 1.5, 2.0, 2.5, 3.0, 3.5, 4.0],
        "relapse": [1, 0, 0, 1, 0, 1, 0, 0],
        "death": [0, 1, 0, 0, 0, 0, 1, 0],
        "study": ["A", "A", "B", "B", "A", "B", "A", "B"],
        "Age": ["<=4 yrs", ">4 yrs"] * 4,
    })
    relapse = TransitionRecords.from_frame(
        frame.drop(columns="death"), Transition.RELAPSE, event_col="relapse")
    death = TransitionRecords.from_frame(
        frame.drop(columns="relapse"), Transition.DIRECT_DEATH, event_col="death")
    return relapse, death
