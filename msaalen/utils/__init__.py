"""
Step functions, hazard arithmetic and time utilities
"""

from .step_function import StepFunctionCurve
from .hazard_estimation import HazardEstimator
from .time_utils import create_prediction_grid, expected_time_in_state

__all__ = [
    "StepFunctionCurve",
    "HazardEstimator",
    "create_prediction_grid",
    "expected_time_in_state"
]
