"""
Cross-checks of engine output against raw data and against each other
"""

from .risk_set import RiskSetCounter
from .evaluator import ModelEvaluator

__all__ = [
    "RiskSetCounter",
    "ModelEvaluator"
]
