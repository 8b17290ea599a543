"""
Cumulative incidence of single transitions in the presence of competing exits.
"""
import logging
from typing import Mapping, Optional, Union
import numpy as np
import pandas as pd
from scipy.stats import norm

from ..state_manager import StateManager, Transition
from ..time_handler import TimeHandler
from ..utils.hazard_estimation import HazardEstimator
from ..utils.step_function import StepFunctionCurve
from .hazard import CumulativeHazardEvaluator

log = logging.getLogger(__name__)


class CumulativeIncidence:
    """CIF of one transition on its model time grid, with optional bands"""

    def __init__(self, transition: Transition, times: np.ndarray, cif: np.ndarray,
                 lower: Optional[np.ndarray] = None, upper: Optional[np.ndarray] = None,
                 hazard: Optional[np.ndarray] = None, hazard_lower: Optional[np.ndarray] = None,
                 hazard_upper: Optional[np.ndarray] = None):
        self.transition = transition
        self.times = times
        self.cif = cif
        self.lower = lower
        self.upper = upper
        self.hazard = hazard
        self.hazard_lower = hazard_lower
        self.hazard_upper = hazard_upper

    @property
    def has_bands(self) -> bool:
        return self.lower is not None

    def at(self, times) -> pd.DataFrame:
        """CIF and bands at arbitrary times, by step lookup on the grid"""
        times = TimeHandler.validate_times(times)
        columns = {"cif": self.cif}
        if self.has_bands:
            columns.update(lower=self.lower, upper=self.upper)
        frame = pd.DataFrame({"time": times})
        for name, values in columns.items():
            frame[name] = StepFunctionCurve(self.times, values).evaluate(times)
        return frame

    def to_frame(self) -> pd.DataFrame:
        frame = pd.DataFrame({"time": self.times, "cif": self.cif})
        if self.has_bands:
            frame["lower"] = self.lower
            frame["upper"] = self.upper
        frame.insert(0, "transition", str(self.transition))
        return frame


class CumulativeIncidenceEstimator:
    """
    Cumulative incidence functions from cumulative hazard increments.

    On the transition's own grid ``t_1 = 0 < ... < t_k``::

        CIF(t_i) = CIF(t_{i-1}) + dH(t_i) * S(t_{i-1})

    with ``dH(t_1) = H(t_1)``, ``S(t_0) = 1`` and ``S = exp(-H_total)`` where
    ``H_total`` sums the hazards of every transition leaving the origin
    state of the transition of interest.

    Confidence bands use a normal approximation at the cumulative coefficient
    level: ``H +/- z * SE(H)`` with ``z = band_multiplier`` (2 by default),
    the band increments are fed through the same recursion with the point
    estimate of S. This is inherited from the coefficient variances and is
    not a delta-method variance of the CIF itself.

    Parameters
    ----------
    band_multiplier : float, default=2.0
        Multiple of the standard error used for the bands
    confidence_level : float, optional
        If given, overrides ``band_multiplier`` with the two-sided normal
        quantile, e.g. 0.95 -> 1.96
    state_manager : StateManager, optional
        Defines which transitions compete
    """

    def __init__(self, band_multiplier: float = 2.0, confidence_level: Optional[float] = None,
                 state_manager: Optional[StateManager] = None):
        if confidence_level is not None:
            if not 0 < confidence_level < 1:
                raise ValueError("confidence_level must be between 0 and 1")
            band_multiplier = float(norm.ppf(0.5 + confidence_level / 2))
        if band_multiplier < 0:
            raise ValueError("band_multiplier must be non-negative")
        self.band_multiplier = band_multiplier
        self.confidence_level = confidence_level
        self.state_manager = state_manager or StateManager()

    @staticmethod
    def _accumulate(increments: np.ndarray, survival: np.ndarray) -> np.ndarray:
        survival_before = np.concatenate([[1.0], survival[:-1]])
        return np.cumsum(increments * survival_before)

    @staticmethod
    def _tidy(cif: np.ndarray) -> np.ndarray:
        # Negative increments enter the sum; the reported curve is monotone in [0, 1]
        return np.maximum.accumulate(np.clip(cif, 0, 1))

    def estimate(self, evaluators: Mapping[Union[Transition, str], CumulativeHazardEvaluator],
                 transition: Union[Transition, str]) -> CumulativeIncidence:
        """
        CIF of ``transition`` for the profile the evaluators were built for.

        Parameters
        ----------
        evaluators : mapping
            CumulativeHazardEvaluator per transition; every transition
            competing with ``transition`` must be present
        transition : Transition or str
            Transition of interest

        Returns
        -------
        CumulativeIncidence
        """
        evaluators = {Transition.parse(k): v for k, v in evaluators.items()}
        transition = Transition.parse(transition)
        if transition not in evaluators:
            raise ValueError(f"No hazard evaluator for transition {transition}")
        target = evaluators[transition]
        times = target.times

        competing = self.state_manager.competing_transitions(transition)
        missing = [t for t in competing if t not in evaluators]
        if missing:
            raise ValueError(f"Transition {transition} competes with {[str(t) for t in missing]}, "
                             f"which have no hazard evaluator")
        total_hazard = sum(evaluators[t].cumulative_hazard(times) for t in competing)
        survival = HazardEstimator.transform_hazard(total_hazard, "exp")

        hazard = target.grid_hazard
        increments = target.hazard_increments()
        raw = self._accumulate(increments, survival)
        if np.any(np.diff(raw) < 0):
            log.debug("Transition %s: CIF made monotone over negative increments", transition)
        cif = self._tidy(raw)

        if not target.has_variance:
            return CumulativeIncidence(transition, times, cif, hazard=hazard)

        half_width = self.band_multiplier * np.sqrt(target.variance(times))
        hazard_lower = hazard - half_width
        hazard_upper = hazard + half_width
        lower = self._tidy(self._accumulate(np.diff(hazard_lower, prepend=0.0), survival))
        upper = self._tidy(self._accumulate(np.diff(hazard_upper, prepend=0.0), survival))
        return CumulativeIncidence(
            transition, times, cif,
            lower=np.minimum(lower, cif), upper=np.maximum(upper, cif),
            hazard=hazard, hazard_lower=hazard_lower, hazard_upper=hazard_upper,
        )

    def estimate_all(self, evaluators: Mapping[Union[Transition, str], CumulativeHazardEvaluator]) -> pd.DataFrame:
        """Tidy frame of the CIFs of every transition"""
        frames = [self.estimate(evaluators, t).to_frame() for t in self.state_manager.transitions]
        return pd.concat(frames, ignore_index=True)
