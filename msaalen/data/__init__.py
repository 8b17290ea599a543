"""
Data structures for fitted curves and cohort records
"""

from .tables import CoefficientTable, VarianceTable, TransitionCurves, ModelSet, DummyColumnIndex
from .cohort import TransitionRecords

__all__ = [
    "CoefficientTable",
    "VarianceTable",
    "TransitionCurves",
    "ModelSet",
    "DummyColumnIndex",
    "TransitionRecords"
]
