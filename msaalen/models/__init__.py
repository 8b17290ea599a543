"""
Hazard, closed-form, simulation and incidence models.
"""

from .profile import CovariateProfile, CovariateProfileResolver, ResolvedCoefficientVector
from .hazard import CumulativeHazardEvaluator
from .base_multi_state import BaseMultiStateModel
from .multi_state import ClosedFormTransitionMatrix, IllnessDeathModel
from .simulation import TrajectorySimulator, SimulationResult
from .competing_risks import CumulativeIncidenceEstimator, CumulativeIncidence

__all__ = [
    'CovariateProfile',
    'CovariateProfileResolver',
    'ResolvedCoefficientVector',
    'CumulativeHazardEvaluator',
    'BaseMultiStateModel',
    'ClosedFormTransitionMatrix',
    'IllnessDeathModel',
    'TrajectorySimulator',
    'SimulationResult',
    'CumulativeIncidenceEstimator',
    'CumulativeIncidence'
]
