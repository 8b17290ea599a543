"""
Right-continuous step functions on a fitted time grid.
"""
from typing import Optional, Sequence, Union
import numpy as np

from ..time_handler import TimeHandler


class StepFunctionCurve:
    """
    Piecewise-constant cumulative curves sharing one time grid.

    The value at ``t`` is the value at the greatest grid time <= t. Below the
    first grid time the first value is used and beyond the last grid time the
    last value is held, so curves never grow past the observed range.

    Parameters
    ----------
    times : array-like
        Strictly ascending grid starting at 0
    values : array-like of shape (n_times,) or (n_times, n_columns)
        Curve values at each grid time
    columns : sequence of str, optional
        Column labels
    """

    def __init__(self, times, values, columns: Optional[Sequence[str]] = None):
        self.times = TimeHandler.validate_grid(times)
        values = np.asarray(values, dtype=float)
        self._univariate = values.ndim == 1
        if self._univariate:
            values = values[:, np.newaxis]
        if values.ndim != 2 or values.shape[0] != len(self.times):
            raise ValueError("Curve values must have one row per grid time")
        self.values = values
        self.columns = list(columns) if columns is not None else list(range(values.shape[1]))
        # Running maximum for inversion; tolerates negative increments
        self._running_max = np.maximum.accumulate(values, axis=0)

    @property
    def horizon(self) -> float:
        return float(self.times[-1])

    def _grid_index(self, t: np.ndarray) -> np.ndarray:
        idx = np.searchsorted(self.times, t, side="right") - 1
        return np.clip(idx, 0, len(self.times) - 1)

    def evaluate(self, t: Union[float, np.ndarray]) -> np.ndarray:
        """
        Evaluate the curve(s) at ``t``

        Returns
        -------
        np.ndarray
            Shape (n_times,) for a univariate curve, (n_times, n_columns)
            otherwise; the time axis is dropped for scalar ``t``
        """
        scalar = np.ndim(t) == 0
        t = TimeHandler.validate_times(t)
        out = self.values[self._grid_index(t)]
        if self._univariate:
            out = out[:, 0]
        return out[0] if scalar else out

    def invert(self, target: Union[float, np.ndarray], column: int = 0) -> Union[float, np.ndarray]:
        """
        Smallest grid time at which the curve reaches or exceeds ``target``

        Returns ``np.inf`` where the target is never reached within the grid
        ("unreached"); no extrapolation is attempted.
        """
        scalar = np.ndim(target) == 0
        target = np.atleast_1d(np.asarray(target, dtype=float))
        running = self._running_max[:, column]
        idx = np.searchsorted(running, target, side="left")
        reached = idx < len(self.times)
        out = np.full(target.shape, np.inf)
        out[reached] = self.times[idx[reached]]
        return float(out[0]) if scalar else out

    def increments(self) -> np.ndarray:
        """Jump at each grid time; the first jump is the value at the origin"""
        jumps = np.diff(self.values, axis=0, prepend=np.zeros((1, self.values.shape[1])))
        return jumps[:, 0] if self._univariate else jumps

    def running_max(self) -> "StepFunctionCurve":
        """Curve of the running maximum, the quantity inversion works on"""
        values = self._running_max[:, 0] if self._univariate else self._running_max
        return StepFunctionCurve(self.times, values, columns=self.columns)
