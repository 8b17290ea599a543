"""
Cumulative hazard of one transition for one covariate profile.
"""
import logging
from typing import Mapping, Optional, Union
import numpy as np

from ..data.tables import TransitionCurves
from ..utils.hazard_estimation import HazardEstimator
from ..utils.step_function import StepFunctionCurve
from .profile import CovariateProfile, CovariateProfileResolver, ResolvedCoefficientVector

log = logging.getLogger(__name__)


class CumulativeHazardEvaluator:
    """
    Cumulative hazard H(t) of one (transition, profile) pair.

    The dot product of the coefficient rows with the resolved covariate
    vector is computed once for every grid time; queries at arbitrary times
    are then served by step lookup on the precomputed curve.

    Parameters
    ----------
    curves : TransitionCurves
        Coefficient (and optional variance) tables of the transition
    profile : mapping
        Covariate profile
    resolver : CovariateProfileResolver, optional
        Resolver to use, a default one otherwise
    """

    def __init__(self, curves: TransitionCurves, profile: Mapping,
                 resolver: Optional[CovariateProfileResolver] = None):
        self.curves = curves
        self.transition = curves.transition
        self.profile = profile if isinstance(profile, CovariateProfile) else CovariateProfile(profile)
        resolver = resolver or CovariateProfileResolver()
        self.vector: ResolvedCoefficientVector = resolver.resolve(self.profile, curves.coefficients)

        table = curves.coefficients
        hazard = HazardEstimator.combine_coefficients(table.values, self.vector.weights)
        self.curve = StepFunctionCurve(table.times, hazard, columns=[str(self.transition)])

        increments, n_negative = HazardEstimator.hazard_increments(hazard)
        self._increments = increments
        if n_negative:
            log.debug("Transition %s, profile %s: %d negative hazard increments tolerated",
                      self.transition, dict(self.profile), n_negative)

        self._variance = None
        if curves.variances is not None:
            # Covariances between coefficients are not available; treat them as 0
            self._variance = StepFunctionCurve(
                table.times,
                HazardEstimator.combine_coefficients(np.clip(curves.variances.values, 0, None),
                                                     self.vector.weights),
            )

    @property
    def times(self) -> np.ndarray:
        return self.curve.times

    @property
    def horizon(self) -> float:
        return self.curve.horizon

    @property
    def grid_hazard(self) -> np.ndarray:
        """H at every grid time"""
        return self.curve.values[:, 0]

    @property
    def has_variance(self) -> bool:
        return self._variance is not None

    def cumulative_hazard(self, t: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
        """H(t) by step lookup"""
        return self.curve.evaluate(t)

    def hazard_increments(self) -> np.ndarray:
        """Increment of H at each grid time, H(t_1) first"""
        return self._increments.copy()

    def variance(self, t: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
        """Variance of the profile's cumulative hazard, summing selected coefficient variances"""
        if self._variance is None:
            raise ValueError(f"No variance table for transition {self.transition}")
        return self._variance.evaluate(t)

    def invert(self, target: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
        """First grid time at which H reaches ``target``; ``np.inf`` if unreached"""
        return self.curve.invert(target)
