"""
Closed-form transition probabilities of the illness-death model.
"""
from typing import Mapping, Optional, Union
import numpy as np

from ..data.tables import ModelSet, TransitionCurves
from ..state_manager import StateManager, Transition
from ..time_handler import TimeHandler
from ..utils.hazard_estimation import HazardEstimator
from .base_multi_state import BaseMultiStateModel
from .competing_risks import CumulativeIncidenceEstimator
from .hazard import CumulativeHazardEvaluator
from .profile import CovariateProfile, CovariateProfileResolver
from .simulation import TrajectorySimulator


class ClosedFormTransitionMatrix:
    """
    Analytic 3x3 transition probability matrix at elapsed time t.

    Row 1 (start in Healthy at the origin)::

        S1(t)  = exp(-(H12(t) + H13(t)))
        P12(t) = (1 - exp(-H12(t))) * exp(-H13(t))
        P13(t) = 1 - S1(t) - P12(t)

    Row 2 (start in Relapsed, t measured from entry into state 2)::

        S2(t) = exp(-H23(t)),  P23(t) = 1 - S2(t)

    Row 3 is absorbing, [0, 0, 1].

    Notes
    -----
    P12 treats the two transitions out of Healthy as conditionally
    independent given the profile. This is an approximation under additive
    hazards, not the exact multi-state likelihood; it ignores deaths after
    relapse within row 1. Negative entries from rounding or non-monotone
    curves are clipped to 0 and the row is renormalised.
    """

    def __init__(self, evaluators: Mapping[Transition, CumulativeHazardEvaluator]):
        self.evaluators = {Transition.parse(k): v for k, v in evaluators.items()}

    @staticmethod
    def from_hazards(h12, h13, h23) -> np.ndarray:
        """
        Matrices from cumulative hazards already evaluated at the same times.

        Returns
        -------
        np.ndarray
            Shape (n_times, 3, 3)
        """
        h12 = np.atleast_1d(np.asarray(h12, dtype=float))
        h13 = np.atleast_1d(np.asarray(h13, dtype=float))
        h23 = np.atleast_1d(np.asarray(h23, dtype=float))

        s1 = HazardEstimator.transform_hazard(h12 + h13, "exp")
        p12 = HazardEstimator.transform_hazard(h12, "cif") * HazardEstimator.transform_hazard(h13, "exp")
        p13 = 1.0 - s1 - p12
        s2 = HazardEstimator.transform_hazard(h23, "exp")

        matrix = np.zeros((len(h12), 3, 3))
        matrix[:, 0] = np.column_stack([s1, p12, p13])
        matrix[:, 1] = np.column_stack([np.zeros_like(s2), s2, 1.0 - s2])
        matrix[:, :2] = BaseMultiStateModel._clip_and_renormalize(matrix[:, :2])
        # No recovery and an absorbing Dead state, exactly
        matrix[:, 1, 0] = 0.0
        matrix[:, 2] = [0.0, 0.0, 1.0]
        return matrix

    def predict(self, times) -> np.ndarray:
        """Transition matrices at each requested time, shape (n_times, 3, 3)"""
        times = TimeHandler.validate_times(times)
        return self.from_hazards(
            self.evaluators[Transition.RELAPSE].cumulative_hazard(times),
            self.evaluators[Transition.DIRECT_DEATH].cumulative_hazard(times),
            self.evaluators[Transition.DEATH_AFTER_RELAPSE].cumulative_hazard(times),
        )


class IllnessDeathModel(BaseMultiStateModel):
    """
    Illness-death model for one covariate profile and study stratum.

    Parameters
    ----------
    evaluators : mapping
        CumulativeHazardEvaluator per transition, all for the same profile
    state_manager : StateManager, optional
        State structure, Healthy/Relapsed/Dead by default

    Examples
    --------
    >>> model = IllnessDeathModel.from_model_set(model_set, {"Age": ">4 yrs", "Stage": 2})
    >>> matrices = model.predict_transition_matrix([0, 1, 2, 5])
    >>> occupancy = model.predict_state_occupation([0, 1, 2, 5])
    """

    def __init__(self, evaluators: Mapping[Union[Transition, str], CumulativeHazardEvaluator],
                 state_manager: Optional[StateManager] = None):
        super().__init__(evaluators, state_manager)
        self.matrix = ClosedFormTransitionMatrix(self.evaluators)
        profiles = {e.profile for e in self.evaluators.values()}
        if len(profiles) > 1:
            raise ValueError("All transitions must be evaluated for the same profile")
        self.profile = profiles.pop()

    @classmethod
    def from_curves(cls, curves: Mapping[Union[Transition, str], TransitionCurves], profile: Mapping,
                    resolver: Optional[CovariateProfileResolver] = None) -> "IllnessDeathModel":
        """Resolve ``profile`` against each transition's curves"""
        profile = profile if isinstance(profile, CovariateProfile) else CovariateProfile(profile)
        resolver = resolver or CovariateProfileResolver()
        evaluators = {
            Transition.parse(t): CumulativeHazardEvaluator(c, profile, resolver)
            for t, c in curves.items()
        }
        return cls(evaluators)

    @classmethod
    def from_model_set(cls, model_set: ModelSet, profile: Mapping, stratum: Optional[str] = None,
                       resolver: Optional[CovariateProfileResolver] = None) -> "IllnessDeathModel":
        """Model for ``profile`` within one stratum of a fitted model set"""
        return cls.from_curves(model_set.select(stratum), profile, resolver)

    def predict_transition_matrix(self, times) -> np.ndarray:
        """
        Closed-form transition probability matrices.

        Parameters
        ----------
        times : array-like
            Elapsed times

        Returns
        -------
        np.ndarray
            Row-stochastic matrices of shape (n_times, 3, 3)
        """
        return self.matrix.predict(times)

    def predict_state_occupation(self, times) -> np.ndarray:
        """
        State occupation probabilities from Healthy at time 0.

        Entry into Relapsed at each jump s_j of the 1->2 curve carries mass
        ``(exp(-H12(s_{j-1})) - exp(-H12(s_j))) * exp(-H13(s_j))`` and is
        followed by survival ``exp(-H23(t - s_j))`` on the time since relapse.
        Cumulative hazards enter through their running maximum, which is the
        law the inversion sampler draws from. With H23 = 0 and monotone
        curves the result reduces to the first row of the closed-form matrix
        up to the independence approximation.

        Returns
        -------
        np.ndarray
            Shape (n_times, 3), columns Healthy, Relapsed, Dead
        """
        times = self.time_handler.validate_times(times)
        h12 = self.evaluators[Transition.RELAPSE].curve.running_max()
        h13 = self.evaluators[Transition.DIRECT_DEATH].curve.running_max()
        h23 = self.evaluators[Transition.DEATH_AFTER_RELAPSE].curve.running_max()

        healthy = HazardEstimator.transform_hazard(h12.evaluate(times) + h13.evaluate(times), "exp")

        entry_times = h12.times
        free = HazardEstimator.transform_hazard(h12.values[:, 0], "exp")
        free_before = np.concatenate([[1.0], free[:-1]])
        entry_mass = (free_before - free) * HazardEstimator.transform_hazard(h13.evaluate(entry_times), "exp")

        elapsed = times[:, np.newaxis] - entry_times[np.newaxis, :]
        entered = elapsed >= 0
        alive = HazardEstimator.transform_hazard(h23.evaluate(np.clip(elapsed, 0, None).ravel()), "exp")
        alive = alive.reshape(elapsed.shape) * entered
        relapsed = alive @ entry_mass

        occupation = np.column_stack([healthy, relapsed, 1.0 - healthy - relapsed])
        return self._clip_and_renormalize(occupation)

    def simulate(self, times, simulator=None):
        """Monte Carlo state occupation, see TrajectorySimulator"""
        simulator = simulator or TrajectorySimulator()
        return simulator.simulate(self, times)

    def cumulative_incidence(self, transition: Union[Transition, str], estimator=None):
        """Cumulative incidence of one transition, see CumulativeIncidenceEstimator"""
        estimator = estimator or CumulativeIncidenceEstimator(state_manager=self.state_manager)
        return estimator.estimate(self.evaluators, transition)
