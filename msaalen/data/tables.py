"""
Cumulative coefficient tables produced by the additive hazards fitting step
"""

import re
import numpy as np
import pandas as pd
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
from sklearn.utils import check_array

from ..exceptions import InputShapeMismatch
from ..state_manager import Transition
from ..time_handler import TimeHandler

_FACTOR_LABEL = re.compile(r"^factor\((?P<name>[^()]+)\)(?P<level>.*)$")

Key = Tuple[Transition, Optional[str]]


def format_level(level) -> str:
    """Render a covariate level the way the fitting step labels dummy columns"""
    if isinstance(level, (float, np.floating)) and float(level).is_integer():
        return str(int(level))
    return str(level)


class DummyColumnIndex:
    """
    Explicit association between (covariate, level) pairs and dummy columns

    A dummy column is labelled with the covariate name immediately followed by
    the level label, e.g. ``Age>4 yrs`` or ``Stage2``. R-style labels such as
    ``factor(Stage)2`` are normalised to the same pair. When several covariate
    names prefix a column the longest one wins.
    """

    def __init__(self, columns: Sequence[str], covariates: Iterable[str],
                 intercept: Optional[str] = "(Intercept)"):
        self.columns = list(columns)
        self.covariates = sorted(set(covariates), key=len, reverse=True)
        self.intercept = intercept
        self.entries: Dict[Tuple[str, str], List[int]] = {}
        self.covariate_columns: Dict[str, List[int]] = {name: [] for name in self.covariates}

        for idx, column in enumerate(self.columns):
            if intercept is not None and column == intercept:
                continue
            pair = self._split(column)
            if pair is None:
                continue
            self.entries.setdefault(pair, []).append(idx)
            self.covariate_columns[pair[0]].append(idx)

    def _split(self, column: str) -> Optional[Tuple[str, str]]:
        match = _FACTOR_LABEL.match(column)
        if match is not None and match.group("name") in self.covariate_columns:
            return match.group("name"), match.group("level")
        for name in self.covariates:
            if column.startswith(name) and len(column) > len(name):
                return name, column[len(name):]
        return None

    def lookup(self, covariate: str, level) -> List[int]:
        """Column indices labelled with this covariate level (empty for the reference level)"""
        return list(self.entries.get((covariate, format_level(level)), []))

    def has_covariate(self, covariate: str) -> bool:
        return bool(self.covariate_columns.get(covariate))


class CoefficientTable:
    """
    Cumulative regression coefficients of one transition and study stratum

    Parameters
    ----------
    times : array-like
        Strictly ascending time grid starting at 0
    values : array-like of shape (n_times, n_columns)
        Cumulative coefficient of every dummy column at every grid time.
        Columns need not be monotone.
    columns : sequence of str
        Dummy column labels, usually including an intercept
    transition : Transition or str
        Transition the table was fitted for
    stratum : str, optional
        Study stratum the table was fitted for
    intercept : str, optional
        Label of the intercept column
    covariates : iterable of str, optional
        Covariate names used to build the dummy column index up front
    """

    kind = "coefficient"

    def __init__(self, times, values, columns: Sequence[str], transition,
                 stratum: Optional[str] = None, intercept: Optional[str] = "(Intercept)",
                 covariates: Optional[Iterable[str]] = None):
        self.transition = Transition.parse(transition)
        self.stratum = stratum
        self.intercept = intercept
        try:
            self.times = TimeHandler.validate_grid(times)
        except ValueError as exc:
            raise InputShapeMismatch(f"Invalid {self.kind} time grid: {exc}", self.transition)

        try:
            values = check_array(values, dtype=float, ensure_2d=True)
        except ValueError as exc:
            raise InputShapeMismatch(f"Invalid {self.kind} values: {exc}", self.transition)
        self.columns = [str(c) for c in columns]
        if values.shape[0] != len(self.times):
            raise InputShapeMismatch(
                f"{self.kind} table has {values.shape[0]} rows for {len(self.times)} time points",
                self.transition,
            )
        if values.shape[1] != len(self.columns):
            raise InputShapeMismatch(
                f"{self.kind} table has {values.shape[1]} value columns for {len(self.columns)} labels",
                self.transition,
            )
        if len(set(self.columns)) != len(self.columns):
            raise InputShapeMismatch(f"Duplicate {self.kind} column labels", self.transition)

        values = values.copy()
        values.setflags(write=False)
        self.times.setflags(write=False)
        self.values = values

        self.covariates = list(covariates) if covariates is not None else None
        self.dummy_index = (
            DummyColumnIndex(self.columns, self.covariates, intercept)
            if self.covariates is not None else None
        )
        self._index_cache: Dict[frozenset, DummyColumnIndex] = {}

    @classmethod
    def from_frame(cls, frame: pd.DataFrame, transition, stratum: Optional[str] = None,
                   time_col: str = "time", **kwargs):
        """
        Build a table from a DataFrame with one time column and one column per dummy

        Parameters
        ----------
        frame : pd.DataFrame
            Output of the fitting step, ascending in ``time_col``
        transition : Transition or str
            Transition the table belongs to
        stratum : str, optional
            Study stratum
        time_col : str, default="time"
            Name of the time column
        """
        if time_col not in frame.columns:
            raise InputShapeMismatch(f"Missing time column '{time_col}'", Transition.parse(transition))
        value_cols = [c for c in frame.columns if c != time_col]
        return cls(
            frame[time_col].to_numpy(dtype=float),
            frame[value_cols].to_numpy(dtype=float),
            value_cols,
            transition,
            stratum=stratum,
            **kwargs,
        )

    @property
    def key(self) -> Key:
        return self.transition, self.stratum

    @property
    def horizon(self) -> float:
        return float(self.times[-1])

    def index_for(self, covariates: Iterable[str]) -> DummyColumnIndex:
        """
        Dummy column index covering ``covariates`` and any declared covariates

        The index built from declared covariates is reused whenever it covers
        the request; other indices are built once per set of names and cached.
        """
        names = set(covariates)
        if self.dummy_index is not None and names.issubset(self.dummy_index.covariate_columns):
            return self.dummy_index
        if self.covariates is not None:
            names.update(self.covariates)
        key = frozenset(names)
        if key not in self._index_cache:
            self._index_cache[key] = DummyColumnIndex(self.columns, names, self.intercept)
        return self._index_cache[key]

    def to_frame(self, time_col: str = "time") -> pd.DataFrame:
        frame = pd.DataFrame(np.asarray(self.values), columns=self.columns)
        frame.insert(0, time_col, np.asarray(self.times))
        return frame

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(transition={self.transition}, stratum={self.stratum!r}, "
                f"n_times={len(self.times)}, columns={self.columns})")


class VarianceTable(CoefficientTable):
    """Variance of each cumulative coefficient on the same grid and columns"""

    kind = "variance"

    def standard_errors(self) -> np.ndarray:
        """Square root of the variances, small negative estimates clipped to 0"""
        return np.sqrt(np.clip(self.values, 0, None))


class TransitionCurves:
    """Coefficient table and (optional) matching variance table of one transition"""

    def __init__(self, coefficients: CoefficientTable, variances: Optional[VarianceTable] = None):
        self.coefficients = coefficients
        self.variances = variances
        if variances is not None:
            self._validate_pair()

    def _validate_pair(self) -> None:
        coef, var = self.coefficients, self.variances
        if coef.key != var.key:
            raise InputShapeMismatch(
                f"Variance table belongs to transition {var.transition}, stratum {var.stratum!r}",
                coef.transition,
            )
        if len(coef.times) != len(var.times) or not np.array_equal(coef.times, var.times):
            raise InputShapeMismatch(
                "Coefficient and variance tables have different time grids", coef.transition
            )
        if coef.columns != var.columns:
            raise InputShapeMismatch(
                "Coefficient and variance tables have different columns", coef.transition
            )

    @property
    def transition(self) -> Transition:
        return self.coefficients.transition

    @property
    def stratum(self) -> Optional[str]:
        return self.coefficients.stratum

    @property
    def key(self) -> Key:
        return self.coefficients.key


class ModelSet:
    """
    Fitted curves for every transition and study stratum

    Parameters
    ----------
    curves : iterable of TransitionCurves
        One entry per (transition, stratum); each stratum must provide all
        three transitions.
    """

    def __init__(self, curves: Iterable[TransitionCurves]):
        self._curves: Dict[Key, TransitionCurves] = {}
        for item in curves:
            if item.key in self._curves:
                raise ValueError(f"Duplicate curves for transition {item.transition}, stratum {item.stratum!r}")
            self._curves[item.key] = item
        if not self._curves:
            raise ValueError("ModelSet needs at least one transition")
        for stratum in self.strata():
            missing = [t for t in Transition if (t, stratum) not in self._curves]
            if missing:
                raise InputShapeMismatch(
                    f"Stratum {stratum!r} has no curves", ", ".join(str(t) for t in missing)
                )

    @classmethod
    def from_frames(cls, coefficients: Mapping, variances: Optional[Mapping] = None,
                    time_col: str = "time", **kwargs) -> "ModelSet":
        """
        Build a model set from DataFrames keyed by transition or (transition, stratum)

        Parameters
        ----------
        coefficients : mapping
            Cumulative coefficient frames
        variances : mapping, optional
            Variance frames with the same keys
        """
        curves = []
        for key, frame in coefficients.items():
            transition, stratum = _split_key(key)
            coef = CoefficientTable.from_frame(frame, transition, stratum, time_col=time_col, **kwargs)
            var = None
            if variances is not None:
                if key not in variances:
                    raise InputShapeMismatch(f"Missing variance table for stratum {stratum!r}", transition)
                var = VarianceTable.from_frame(variances[key], transition, stratum, time_col=time_col, **kwargs)
            curves.append(TransitionCurves(coef, var))
        return cls(curves)

    def strata(self) -> List[Optional[str]]:
        seen = []
        for _, stratum in self._curves:
            if stratum not in seen:
                seen.append(stratum)
        return seen

    def select(self, stratum: Optional[str] = None) -> Dict[Transition, TransitionCurves]:
        """
        Curves of the three transitions for one stratum

        If ``stratum`` is None and the set holds a single stratum, that stratum
        is used.
        """
        strata = self.strata()
        if stratum is None and len(strata) == 1:
            stratum = strata[0]
        if stratum not in strata:
            raise KeyError(f"Unknown stratum {stratum!r}; available: {strata}")
        return {t: self._curves[(t, stratum)] for t in Transition}

    def __getitem__(self, key) -> TransitionCurves:
        return self._curves[_split_key(key)]

    def __iter__(self):
        return iter(self._curves.values())

    def __len__(self) -> int:
        return len(self._curves)


def _split_key(key) -> Key:
    if isinstance(key, tuple) and len(key) == 2 and not all(isinstance(k, (int, np.integer)) for k in key):
        return Transition.parse(key[0]), key[1]
    return Transition.parse(key), None
