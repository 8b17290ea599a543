import numpy as np
from typing import Union, List


class TimeHandler:
    """Unified time handling for curves, evaluation requests and cohort records"""

    @staticmethod
    def validate_times(times: Union[np.ndarray, List[float], float]) -> np.ndarray:
        """
        Validate evaluation times

        Parameters
        ----------
        times : array-like or float
            Time values to validate

        Returns
        -------
        np.ndarray
            Validated one-dimensional time values

        Raises
        ------
        ValueError
            If times are negative, NaN or non-numeric
        """
        try:
            times = np.atleast_1d(np.asarray(times, dtype=float))
        except (TypeError, ValueError):
            raise ValueError("Times must be numeric")

        if times.ndim != 1:
            raise ValueError("Times must be one-dimensional")
        if np.any(np.isnan(times)):
            raise ValueError("Times must not be NaN")
        if np.any(times < 0):
            raise ValueError("Times must be non-negative")

        return times

    @staticmethod
    def validate_grid(times: Union[np.ndarray, List[float]]) -> np.ndarray:
        """
        Validate a model time grid: finite, strictly ascending, starting at 0

        Raises
        ------
        ValueError
            If the grid is empty, unsorted or does not start at the origin
        """
        times = TimeHandler.validate_times(times)
        if len(times) == 0:
            raise ValueError("Time grid must contain at least one time point")
        if not np.all(np.isfinite(times)):
            raise ValueError("Time grid must be finite")
        if times[0] != 0:
            raise ValueError("Time grid must start at 0")
        if np.any(np.diff(times) <= 0):
            raise ValueError("Time grid must be strictly ascending")
        return times

    @staticmethod
    def validate_time_intervals(start_times: np.ndarray, end_times: np.ndarray) -> None:
        """
        Validate start-stop intervals

        Raises
        ------
        ValueError
            If intervals are invalid
        """
        start_times = TimeHandler.validate_times(start_times)
        end_times = TimeHandler.validate_times(end_times)

        if len(start_times) != len(end_times):
            raise ValueError("Start and stop times must have the same length")

        if np.any(end_times <= start_times):
            raise ValueError("Stop times must be greater than start times")
