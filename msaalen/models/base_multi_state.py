"""
Base class for illness-death models built from per-transition hazard curves.
"""
import logging
from typing import Dict, Mapping, Optional, Union
import numpy as np
from abc import ABC, abstractmethod

from ..state_manager import StateManager, Transition
from ..time_handler import TimeHandler
from .hazard import CumulativeHazardEvaluator

log = logging.getLogger(__name__)


class BaseMultiStateModel(ABC):
    """
    Base class for models composing the three transitions' cumulative hazards.

    Subclasses provide the state occupation and transition matrices; this
    class holds the state structure, the evaluators and the shared numeric
    safeguards.
    """

    def __init__(self, evaluators: Mapping[Union[Transition, str], CumulativeHazardEvaluator],
                 state_manager: Optional[StateManager] = None):
        """
        Initialize the model.

        Parameters
        ----------
        evaluators : mapping
            One CumulativeHazardEvaluator per transition
        state_manager : StateManager, optional
            Illness-death state structure
        """
        self.state_manager = state_manager or StateManager()
        self.time_handler = TimeHandler()
        self.evaluators: Dict[Transition, CumulativeHazardEvaluator] = {
            Transition.parse(k): v for k, v in evaluators.items()
        }
        missing = [t for t in self.state_manager.transitions if t not in self.evaluators]
        if missing:
            raise ValueError(f"No hazard evaluator for transitions {[str(t) for t in missing]}")
        for transition, evaluator in self.evaluators.items():
            if evaluator.transition != transition:
                raise ValueError(
                    f"Evaluator for transition {evaluator.transition} registered as {transition}"
                )

    @property
    def states(self):
        return self.state_manager.states

    @property
    def horizon(self) -> float:
        """Shortest observed range across the transitions"""
        return min(e.horizon for e in self.evaluators.values())

    def predict_cumulative_hazard(self, times, transition: Union[Transition, str]) -> np.ndarray:
        """
        Cumulative hazard of a transition at the given times.

        Parameters
        ----------
        times : array-like
            Non-negative times
        transition : Transition or str
            Transition to evaluate

        Returns
        -------
        np.ndarray
            H(t) at each time
        """
        times = self.time_handler.validate_times(times)
        return self.evaluators[Transition.parse(transition)].cumulative_hazard(times)

    @staticmethod
    def _clip_and_renormalize(probabilities: np.ndarray) -> np.ndarray:
        """Clip negative entries to 0, then rescale the last axis to sum to 1"""
        probabilities = np.asarray(probabilities, dtype=float)
        n_negative = int(np.sum(probabilities < 0))
        if n_negative:
            log.debug("Clipped %d negative probabilities", n_negative)
        clipped = np.clip(probabilities, 0, None)
        total = clipped.sum(axis=-1, keepdims=True)
        # A row can only collapse to 0 through clipping; hand its mass to the last state
        empty = total[..., 0] <= 0
        if np.any(empty):
            clipped[empty] = 0.0
            clipped[empty, -1] = 1.0
            total = clipped.sum(axis=-1, keepdims=True)
        return clipped / total

    @abstractmethod
    def predict_transition_matrix(self, times) -> np.ndarray:
        """Transition probability matrices, shape (n_times, n_states, n_states)."""
        pass

    @abstractmethod
    def predict_state_occupation(self, times) -> np.ndarray:
        """State occupation from the initial state, shape (n_times, n_states)."""
        pass
