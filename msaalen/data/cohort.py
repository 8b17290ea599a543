"""
Start-stop records of one transition, as prepared from the cohort
"""

import numpy as np
import pandas as pd
from typing import Optional, Sequence, Union

from ..state_manager import Transition
from ..time_handler import TimeHandler


class TransitionRecords:
    """Counting-process records (start, stop, event, study, covariates) for one transition"""

    def __init__(self, start: Union[np.ndarray, pd.Series],
                 stop: Union[np.ndarray, pd.Series],
                 event: Union[np.ndarray, pd.Series],
                 transition,
                 study: Optional[Union[np.ndarray, pd.Series]] = None,
                 covariates: Optional[pd.DataFrame] = None):
        """
        Initialize transition records

        Parameters
        ----------
        start : array-like
            Entry time into the origin state (>= 0)
        stop : array-like
            Exit or censoring time (> start)
        event : array-like
            1 if the transition was observed at ``stop``, 0 if censored
        transition : Transition or str
            Transition the records describe
        study : array-like, optional
            Study label of each record
        covariates : pd.DataFrame, optional
            Covariate columns, one row per record
        """
        self.transition = Transition.parse(transition)
        self.start = np.asarray(start, dtype=float)
        self.stop = np.asarray(stop, dtype=float)
        self.event = np.asarray(event)
        self.study = np.asarray(study) if study is not None else None
        self.covariates = covariates.reset_index(drop=True) if covariates is not None else None
        self._validate()

    def _validate(self):
        """Validate the records"""
        n = len(self.start)
        if len(self.stop) != n or len(self.event) != n:
            raise ValueError("Start, stop and event arrays must have the same length")
        if self.study is not None and len(self.study) != n:
            raise ValueError("Study labels must have one entry per record")
        if self.covariates is not None and len(self.covariates) != n:
            raise ValueError("Covariates must have one row per record")
        TimeHandler.validate_time_intervals(self.start, self.stop)
        if not np.all(np.isin(self.event, [0, 1])):
            raise ValueError("Event indicators must be 0 or 1")
        self.event = self.event.astype(int)

    @classmethod
    def from_frame(cls, frame: pd.DataFrame, transition,
                   start_col: str = "start", stop_col: str = "stop",
                   event_col: str = "event", study_col: Optional[str] = "study",
                   covariate_cols: Optional[Sequence[str]] = None) -> "TransitionRecords":
        """Build records from a DataFrame in start-stop format"""
        study = frame[study_col] if study_col is not None and study_col in frame.columns else None
        if covariate_cols is None:
            used = {start_col, stop_col, event_col, study_col}
            covariate_cols = [c for c in frame.columns if c not in used]
        covariates = frame[list(covariate_cols)] if covariate_cols else None
        return cls(frame[start_col], frame[stop_col], frame[event_col], transition,
                   study=study, covariates=covariates)

    def for_study(self, study) -> "TransitionRecords":
        """Records of a single study"""
        if self.study is None:
            raise ValueError("Records carry no study labels")
        mask = self.study == study
        covariates = self.covariates[mask] if self.covariates is not None else None
        return TransitionRecords(self.start[mask], self.stop[mask], self.event[mask],
                                 self.transition, study=self.study[mask], covariates=covariates)

    @property
    def n_events(self) -> int:
        return int(self.event.sum())

    def __len__(self) -> int:
        return len(self.start)
