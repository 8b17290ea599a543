"""
msaalen: Illness-death transition and simulation engine for additive hazards models
"""

__version__ = "0.1.0"

from .state_manager import StateManager, Transition
from .exceptions import ProfileResolutionError, InputShapeMismatch
from .data import CoefficientTable, VarianceTable, TransitionCurves, ModelSet, TransitionRecords
from .models import (
    CovariateProfile,
    CovariateProfileResolver,
    CumulativeHazardEvaluator,
    ClosedFormTransitionMatrix,
    IllnessDeathModel,
    TrajectorySimulator,
    CumulativeIncidenceEstimator
)
from .evaluation import RiskSetCounter, ModelEvaluator
from .utils import StepFunctionCurve

__all__ = [
    "StateManager",
    "Transition",
    "ProfileResolutionError",
    "InputShapeMismatch",
    "CoefficientTable",
    "VarianceTable",
    "TransitionCurves",
    "ModelSet",
    "TransitionRecords",
    "CovariateProfile",
    "CovariateProfileResolver",
    "CumulativeHazardEvaluator",
    "ClosedFormTransitionMatrix",
    "IllnessDeathModel",
    "TrajectorySimulator",
    "CumulativeIncidenceEstimator",
    "RiskSetCounter",
    "ModelEvaluator",
    "StepFunctionCurve"
]
