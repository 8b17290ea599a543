"""
Monte Carlo simulation of illness-death trajectories by inversion sampling.
"""
import logging
from typing import Dict, Optional, Union
import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from ..state_manager import STATES, Transition
from ..time_handler import TimeHandler
from ..utils.step_function import StepFunctionCurve

log = logging.getLogger(__name__)

STAY_HEALTHY = "stay-healthy"
DIRECT_DEATH = "direct-death"
RELAPSE_THEN_DEATH = "relapse-then-death"
PATHS = [STAY_HEALTHY, DIRECT_DEATH, RELAPSE_THEN_DEATH]


def _draw_trajectories(h12: StepFunctionCurve, h13: StepFunctionCurve, h23: StepFunctionCurve,
                       rng: np.random.Generator, size: int):
    """
    Relapse and death times of ``size`` subjects starting Healthy at time 0.

    ``np.inf`` marks an event that does not happen within the observed range
    of its curve. H23 runs on the time since relapse.
    """
    draws = rng.standard_exponential((size, 3))
    t12 = h12.invert(draws[:, 0])
    t13 = h13.invert(draws[:, 1])

    relapse = t12 < t13
    relapse_time = np.where(relapse, t12, np.inf)
    death_time = np.where(relapse, np.inf, t13)
    death_time[relapse] = t12[relapse] + h23.invert(draws[relapse, 2])
    return relapse_time, death_time, relapse


def _simulate_chunk(h12: StepFunctionCurve, h13: StepFunctionCurve, h23: StepFunctionCurve,
                    seed: int, size: int, times: np.ndarray):
    """State counts at ``times`` and path counts for one chunk of replicates."""
    rng = np.random.default_rng(seed)
    relapse_time, death_time, relapse = _draw_trajectories(h12, h13, h23, rng, size)

    dead = np.searchsorted(np.sort(death_time), times, side="right")
    entered = np.searchsorted(np.sort(relapse_time), times, side="right")
    dead_after_relapse = np.searchsorted(np.sort(death_time[relapse]), times, side="right")
    relapsed = entered - dead_after_relapse
    healthy = size - dead - relapsed
    counts = np.column_stack([healthy, relapsed, dead]).astype(np.int64)

    n_relapse = int(relapse.sum())
    n_direct = int(np.sum(~relapse & np.isfinite(death_time)))
    paths = np.array([size - n_relapse - n_direct, n_direct, n_relapse], dtype=np.int64)
    return counts, paths


class SimulationResult:
    """
    Aggregated Monte Carlo state occupation.

    Attributes
    ----------
    times : np.ndarray
        Evaluation times
    counts : np.ndarray of shape (n_times, 3)
        Replicates in Healthy, Relapsed and Dead at each time
    n_replicates : int
        Number of simulated subjects
    path_counts : dict
        Replicates per path label
    """

    def __init__(self, times: np.ndarray, counts: np.ndarray, n_replicates: int,
                 path_counts: Dict[str, int]):
        self.times = times
        self.counts = counts
        self.n_replicates = n_replicates
        self.path_counts = path_counts

    @property
    def occupancy(self) -> np.ndarray:
        """Fractions per state; rows sum to 1 by construction"""
        return self.counts / self.n_replicates

    def standard_errors(self) -> np.ndarray:
        """Binomial Monte Carlo standard error of each occupancy fraction"""
        p = self.occupancy
        return np.sqrt(p * (1 - p) / self.n_replicates)

    def to_frame(self) -> pd.DataFrame:
        frame = pd.DataFrame(self.occupancy, columns=STATES)
        frame.insert(0, "time", self.times)
        return frame


class TrajectorySimulator:
    """
    Inversion sampler for illness-death trajectories.

    For each replicate two unit exponentials give candidate times
    ``t12 = H12^-1(u12)`` and ``t13 = H13^-1(u13)``. If ``t12 < t13`` the
    subject relapses at ``t12`` and dies ``H23^-1(u23)`` later (H23 on the
    time since relapse); otherwise it dies directly at ``t13``. Unreached
    inversions are infinite, i.e. the event lies beyond the horizon.

    Replicates are processed in chunks of ``chunk_size``. Every chunk draws
    from its own generator seeded from ``random_state``, and chunk counts are
    summed in chunk order, so results do not depend on ``n_jobs``.

    Parameters
    ----------
    n_replicates : int, default=10000
        Number of simulated subjects
    random_state : int, SeedSequence or numpy.random.Generator, optional
        Seed or injected generator
    chunk_size : int, default=10000
        Replicates per chunk
    n_jobs : int, optional
        Parallel jobs over chunks (joblib semantics)
    backend : str, optional
        joblib backend, e.g. "threading"
    """

    def __init__(self, n_replicates: int = 10000,
                 random_state: Optional[Union[int, np.random.SeedSequence, np.random.Generator]] = None,
                 chunk_size: int = 10000, n_jobs: Optional[int] = None, backend: Optional[str] = None):
        if int(n_replicates) < 1:
            raise ValueError("n_replicates must be positive")
        if int(chunk_size) < 1:
            raise ValueError("chunk_size must be positive")
        self.n_replicates = int(n_replicates)
        self.random_state = random_state
        self.chunk_size = int(chunk_size)
        self.n_jobs = n_jobs
        self.backend = backend

    def _generator(self) -> np.random.Generator:
        if isinstance(self.random_state, np.random.Generator):
            return self.random_state
        return np.random.default_rng(self.random_state)

    def _chunks(self):
        sizes = [self.chunk_size] * (self.n_replicates // self.chunk_size)
        if self.n_replicates % self.chunk_size:
            sizes.append(self.n_replicates % self.chunk_size)
        seeds = self._generator().integers(0, 2**63 - 1, size=len(sizes))
        return list(zip(seeds.tolist(), sizes))

    @staticmethod
    def _curves(model) -> Dict[Transition, StepFunctionCurve]:
        evaluators = model.evaluators if hasattr(model, "evaluators") else model
        return {Transition.parse(t): e.curve for t, e in evaluators.items()}

    def simulate(self, model, times) -> SimulationResult:
        """
        Estimate state occupation at ``times``.

        Parameters
        ----------
        model : IllnessDeathModel or mapping
            Model, or CumulativeHazardEvaluator per transition
        times : array-like
            Non-negative evaluation times

        Returns
        -------
        SimulationResult
        """
        times = TimeHandler.validate_times(times)
        curves = self._curves(model)
        h12 = curves[Transition.RELAPSE]
        h13 = curves[Transition.DIRECT_DEATH]
        h23 = curves[Transition.DEATH_AFTER_RELAPSE]

        chunks = self._chunks()
        log.info("Simulating %d replicates in %d chunks (n_jobs=%s)",
                 self.n_replicates, len(chunks), self.n_jobs)
        results = Parallel(n_jobs=self.n_jobs, backend=self.backend)(
            delayed(_simulate_chunk)(h12, h13, h23, seed, size, times) for seed, size in chunks
        )

        counts = np.zeros((len(times), 3), dtype=np.int64)
        paths = np.zeros(len(PATHS), dtype=np.int64)
        for chunk_counts, chunk_paths in results:
            counts += chunk_counts
            paths += chunk_paths

        return SimulationResult(times, counts, self.n_replicates,
                                dict(zip(PATHS, paths.tolist())))

    def sample_trajectories(self, model, n: Optional[int] = None) -> pd.DataFrame:
        """
        Individual simulated trajectories, for inspection.

        Missing relapse or death times (beyond the horizon) are NaN.

        Returns
        -------
        pd.DataFrame
            Columns relapse_time, death_time, path
        """
        curves = self._curves(model)
        n = self.n_replicates if n is None else int(n)
        relapse_time, death_time, relapse = _draw_trajectories(
            curves[Transition.RELAPSE], curves[Transition.DIRECT_DEATH],
            curves[Transition.DEATH_AFTER_RELAPSE], self._generator(), n,
        )
        path = np.where(relapse, RELAPSE_THEN_DEATH,
                        np.where(np.isfinite(death_time), DIRECT_DEATH, STAY_HEALTHY))
        return pd.DataFrame({
            "relapse_time": np.where(np.isfinite(relapse_time), relapse_time, np.nan),
            "death_time": np.where(np.isfinite(death_time), death_time, np.nan),
            "path": path,
        })
