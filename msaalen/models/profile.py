"""
Resolution of named covariate profiles onto dummy-column coefficient vectors
"""

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Dict, Iterator, List, Optional, Tuple

import numpy as np

from ..data.tables import CoefficientTable
from ..exceptions import ProfileResolutionError

log = logging.getLogger(__name__)


class CovariateProfile(Mapping):
    """Immutable mapping from covariate name to one discrete level"""

    def __init__(self, levels: Optional[Mapping] = None, **kwargs):
        merged = dict(levels or {})
        merged.update(kwargs)
        self._levels = MappingProxyType(merged)

    def __getitem__(self, name):
        return self._levels[name]

    def __iter__(self) -> Iterator:
        return iter(self._levels)

    def __len__(self) -> int:
        return len(self._levels)

    def __hash__(self):
        return hash(tuple(sorted((str(k), str(v)) for k, v in self._levels.items())))

    def __eq__(self, other):
        if isinstance(other, Mapping):
            return dict(self._levels) == dict(other)
        return NotImplemented

    def __reduce__(self):
        return CovariateProfile, (dict(self._levels),)

    def __repr__(self) -> str:
        return f"CovariateProfile({dict(self._levels)})"


class ResolvedCoefficientVector:
    """
    Dense 0/1 vector aligned with a coefficient table's columns

    Attributes
    ----------
    weights : np.ndarray
        1 at the intercept and each matched dummy column, 0 elsewhere
    columns : list of str
        Column labels, index-for-index with ``weights``
    matches : list of tuple
        (covariate, level, column label) for every non-reference level
    """

    def __init__(self, weights: np.ndarray, columns: List[str], transition, profile,
                 matches: List[Tuple[str, object, str]]):
        weights = np.asarray(weights, dtype=float)
        weights.setflags(write=False)
        self.weights = weights
        self.columns = list(columns)
        self.transition = transition
        self.profile = profile
        self.matches = list(matches)

    def active_columns(self) -> List[str]:
        return [c for c, w in zip(self.columns, self.weights) if w]

    def as_dict(self) -> Dict[str, float]:
        return dict(zip(self.columns, self.weights.tolist()))

    def __repr__(self) -> str:
        return f"ResolvedCoefficientVector(transition={self.transition}, active={self.active_columns()})"


class CovariateProfileResolver:
    """
    Map a covariate profile onto a coefficient table's dummy columns

    Each (name, level) pair is looked up in the table's dummy column index.
    A level without a column is the reference level and contributes 0. A
    covariate that the transition's model does not contain at all also
    contributes 0. A level labelled by more than one column is fatal.
    """

    def resolve(self, profile: Mapping, table: CoefficientTable) -> ResolvedCoefficientVector:
        """
        Resolve ``profile`` against ``table``

        Raises
        ------
        ProfileResolutionError
            If the profile is malformed or a level matches several columns
        """
        if not isinstance(profile, CovariateProfile):
            if not isinstance(profile, Mapping):
                raise ProfileResolutionError("Profile must be a mapping of covariate to level",
                                             table.transition)
            profile = CovariateProfile(profile)

        for name, level in profile.items():
            if not isinstance(name, str) or not name:
                raise ProfileResolutionError(f"Invalid covariate name {name!r}",
                                             table.transition, profile)
            if level is None or (np.ndim(level) != 0) or (isinstance(level, float) and np.isnan(level)):
                raise ProfileResolutionError(f"Covariate '{name}' needs a single level, got {level!r}",
                                             table.transition, profile)

        index = table.index_for(profile.keys())
        weights = np.zeros(len(table.columns))
        if table.intercept is not None and table.intercept in table.columns:
            weights[table.columns.index(table.intercept)] = 1.0

        matches = []
        for name, level in profile.items():
            hits = index.lookup(name, level)
            if len(hits) > 1:
                labels = [table.columns[i] for i in hits]
                raise ProfileResolutionError(
                    f"Level {level!r} of '{name}' matches several columns {labels}",
                    table.transition, profile,
                )
            if hits:
                weights[hits[0]] = 1.0
                matches.append((name, level, table.columns[hits[0]]))
            elif index.has_covariate(name):
                log.debug("Transition %s: %s=%r is the reference level", table.transition, name, level)
            else:
                log.debug("Transition %s: covariate '%s' not in model", table.transition, name)

        return ResolvedCoefficientVector(weights, table.columns, table.transition, profile, matches)
