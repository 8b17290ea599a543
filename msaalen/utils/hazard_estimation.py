"""
Hazard helpers shared by the closed-form, simulation and incidence paths.
"""
from typing import Tuple
import numpy as np

# Cap on |H|; exp(-H) and expm1(-H) stay finite for either sign
MAX_CUMULATIVE_HAZARD = np.log(np.finfo(np.float64).max) / 2


class HazardEstimator:
    """Stateless hazard arithmetic for additive hazards curves."""

    @staticmethod
    def combine_coefficients(coefficients: np.ndarray, weights: np.ndarray) -> np.ndarray:
        """
        Cumulative hazard implied by cumulative coefficients and a covariate vector.

        Parameters
        ----------
        coefficients : np.ndarray of shape (n_times, n_columns)
            Cumulative regression coefficients
        weights : np.ndarray of shape (n_columns,)
            Resolved 0/1 covariate vector

        Returns
        -------
        np.ndarray
            Cumulative hazard at each grid time
        """
        coefficients = np.asarray(coefficients, dtype=float)
        weights = np.asarray(weights, dtype=float)
        if coefficients.shape[1] != weights.shape[0]:
            raise ValueError("Covariate vector does not match the coefficient columns")
        return coefficients @ weights

    @staticmethod
    def hazard_increments(cumulative_hazard: np.ndarray) -> Tuple[np.ndarray, int]:
        """
        Per-grid increments of a cumulative hazard, first increment = H(t_1).

        Returns
        -------
        tuple
            (increments, number of negative increments)
        """
        cumulative_hazard = np.asarray(cumulative_hazard, dtype=float)
        increments = np.diff(cumulative_hazard, prepend=0.0)
        return increments, int(np.sum(increments < 0))

    @staticmethod
    def transform_hazard(cumulative_hazard: np.ndarray, transform: str = "exp") -> np.ndarray:
        """
        Transform cumulative hazard to survival or its complement.

        Parameters
        ----------
        cumulative_hazard : np.ndarray
            Cumulative hazard values
        transform : str
            "exp" for survival exp(-H), "cif" for 1 - exp(-H)

        Returns
        -------
        np.ndarray
            Transformed values
        """
        clipped = np.clip(np.asarray(cumulative_hazard, dtype=float),
                          -MAX_CUMULATIVE_HAZARD, MAX_CUMULATIVE_HAZARD)
        with np.errstate(over="ignore", under="ignore"):
            if transform == "exp":
                return np.exp(-clipped)
            elif transform == "cif":
                return -np.expm1(-clipped)
        raise ValueError("Transform must be 'exp' or 'cif'")
