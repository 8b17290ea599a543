"""
Consistency checks between closed-form output, simulation and raw records
"""

import numpy as np
import pandas as pd
from typing import Dict, Optional, Union
from lifelines import KaplanMeierFitter

from ..data.cohort import TransitionRecords
from ..models.simulation import SimulationResult
from ..state_manager import STATES, Transition
from ..time_handler import TimeHandler
from .risk_set import RiskSetCounter


class ModelEvaluator:
    """Evaluator for illness-death engine output"""

    def compare_occupancy(self,
                          reference: Union[np.ndarray, pd.DataFrame],
                          simulated: SimulationResult) -> pd.DataFrame:
        """Absolute difference between reference and simulated occupancy

        Args:
            reference: Occupancy of shape (n_times, 3) at ``simulated.times``,
                e.g. closed-form output
            simulated: Monte Carlo result

        Returns:
            DataFrame with the time, the absolute error per state and the
            Monte Carlo standard error per state
        """
        if isinstance(reference, pd.DataFrame):
            reference = reference[STATES].to_numpy()
        reference = np.asarray(reference, dtype=float)
        if reference.shape != simulated.occupancy.shape:
            raise ValueError("Reference and simulated occupancy must have the same shape")

        error = np.abs(reference - simulated.occupancy)
        frame = pd.DataFrame(error, columns=[f"{s}_error" for s in STATES])
        se = simulated.standard_errors()
        for i, state in enumerate(STATES):
            frame[f"{state}_se"] = se[:, i]
        frame.insert(0, "time", simulated.times)
        return frame

    def max_occupancy_error(self, reference, simulated: SimulationResult) -> float:
        """Largest absolute occupancy difference over times and states"""
        frame = self.compare_occupancy(reference, simulated)
        return float(frame[[f"{s}_error" for s in STATES]].to_numpy().max())

    def empirical_healthy_occupancy(self,
                                    relapse: TransitionRecords,
                                    direct_death: TransitionRecords,
                                    times) -> np.ndarray:
        """Kaplan-Meier probability of still being Healthy, from raw records

        Args:
            relapse: 1->2 records
            direct_death: 1->3 records for the same subjects, row-aligned
            times: Evaluation times

        Returns:
            Probability of no exit from state 1 at each time
        """
        if relapse.transition != Transition.RELAPSE or direct_death.transition != Transition.DIRECT_DEATH:
            raise ValueError("Expected 1->2 and 1->3 records")
        if len(relapse) != len(direct_death) or not (
                np.array_equal(relapse.start, direct_death.start)
                and np.array_equal(relapse.stop, direct_death.stop)):
            raise ValueError("1->2 and 1->3 records must describe the same intervals")
        if np.any(relapse.start != 0):
            raise ValueError("State 1 records must start at time 0")

        times = TimeHandler.validate_times(times)
        fitter = KaplanMeierFitter()
        fitter.fit(relapse.stop, event_observed=(relapse.event == 1) | (direct_death.event == 1))
        return fitter.survival_function_at_times(times).to_numpy()

    def check_cohort_consistency(self, counter: RiskSetCounter,
                                 horizon: Optional[float] = None) -> Dict[str, object]:
        """Sanity checks of a transition's records

        For transitions out of Healthy everybody is at risk at time 0; at the
        end of follow-up every observed event has been counted.

        Returns:
            Dictionary of counts and a ``consistent`` flag
        """
        records = counter.records
        horizon = float(records.stop.max()) if horizon is None else horizon
        result = {
            "transition": str(counter.transition),
            "records": counter.n_records,
            "at_risk_at_zero": counter.at_risk(0.0),
            "events": counter.n_events,
            "events_at_horizon": counter.cumulative_events(horizon),
        }
        consistent = result["events_at_horizon"] == result["events"]
        if counter.transition.from_state == 1:
            consistent = consistent and result["at_risk_at_zero"] == result["records"]
        result["consistent"] = bool(consistent)
        return result
