"""
Time grid and time-in-state utilities for illness-death models.
"""
import numpy as np
import pandas as pd
from typing import Optional
from scipy.integrate import trapezoid

from ..state_manager import STATES
from ..time_handler import TimeHandler


def create_prediction_grid(
    model,
    n_points: int = 100,
    max_time: Optional[float] = None
) -> np.ndarray:
    """Create an evenly spaced time grid within the observed range of a model.

    Parameters
    ----------
    model : IllnessDeathModel, ModelSet or iterable of TransitionCurves
        Anything exposing ``horizon`` or a collection of curves
    n_points : int, default=100
        Number of time points
    max_time : float, optional
        Upper end of the grid; defaults to the shortest horizon across
        transitions so that no curve is held constant past its data

    Returns
    -------
    np.ndarray
        Array of time points starting at 0
    """
    if max_time is None:
        if hasattr(model, "horizon"):
            max_time = model.horizon
        else:
            max_time = min(c.coefficients.horizon for c in model)
    if max_time < 0:
        raise ValueError("max_time must be non-negative")
    return np.linspace(0, max_time, n_points)


def expected_time_in_state(times, occupancy) -> pd.Series:
    """Restricted mean time spent in each state up to the last time point.

    Integrates the occupation curves with the trapezoidal rule, so the grid
    should be fine relative to the jumps of the underlying step functions.

    Parameters
    ----------
    times : array-like
        Ascending time points starting at the origin
    occupancy : array-like of shape (n_times, 3)
        State occupation probabilities

    Returns
    -------
    pd.Series
        Expected time in Healthy, Relapsed and Dead
    """
    times = TimeHandler.validate_times(times)
    occupancy = np.asarray(occupancy, dtype=float)
    if occupancy.shape != (len(times), len(STATES)):
        raise ValueError("Occupancy must have one row per time and one column per state")
    if np.any(np.diff(times) < 0):
        raise ValueError("Times must be ascending")
    return pd.Series(trapezoid(occupancy, times, axis=0), index=STATES)
