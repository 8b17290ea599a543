"""
At-risk and event counts from start-stop records
"""

import numpy as np
import pandas as pd
from typing import Union

from ..data.cohort import TransitionRecords
from ..time_handler import TimeHandler


class RiskSetCounter:
    """
    Count subjects at risk and cumulative events of one transition

    ``at_risk(t)`` counts records with ``start <= t < stop`` and
    ``cumulative_events(t)`` counts records with ``event == 1`` and
    ``stop <= t``. No model is involved.
    """

    def __init__(self, records: TransitionRecords, study=None):
        if study is not None:
            records = records.for_study(study)
        self.records = records
        self.transition = records.transition
        self._starts = np.sort(records.start)
        self._stops = np.sort(records.stop)
        self._event_stops = np.sort(records.stop[records.event == 1])

    def at_risk(self, t: Union[float, np.ndarray]) -> Union[int, np.ndarray]:
        """Number of records under observation at ``t``"""
        scalar = np.ndim(t) == 0
        t = TimeHandler.validate_times(t)
        # stop > start, so every record stopped by t has also started by t
        counts = (np.searchsorted(self._starts, t, side="right")
                  - np.searchsorted(self._stops, t, side="right"))
        return int(counts[0]) if scalar else counts

    def cumulative_events(self, t: Union[float, np.ndarray]) -> Union[int, np.ndarray]:
        """Number of observed transitions at or before ``t``"""
        scalar = np.ndim(t) == 0
        t = TimeHandler.validate_times(t)
        counts = np.searchsorted(self._event_stops, t, side="right")
        return int(counts[0]) if scalar else counts

    def summary(self, times) -> pd.DataFrame:
        """At-risk and cumulative event counts at each time"""
        times = TimeHandler.validate_times(times)
        return pd.DataFrame({
            "time": times,
            "at_risk": self.at_risk(times),
            "cumulative_events": self.cumulative_events(times),
        })

    @property
    def n_records(self) -> int:
        return len(self.records)

    @property
    def n_events(self) -> int:
        return self.records.n_events
