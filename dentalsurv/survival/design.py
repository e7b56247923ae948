"""
SurvivalDesign: immutable container for time-to-event data.

Wraps time, event indicator, optional covariates, and optional strata.
Validates inputs at construction time: all downstream code trusts clean data.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from dentalsurv.core.exceptions import (
    DimensionError,
    InsufficientDataError,
    InvalidInputError,
)
from dentalsurv.core.validation import (
    check_array,
    check_binary,
    check_finite,
    check_non_negative,
)


@dataclass(frozen=True)
class SurvivalDesign:
    """Immutable survival data container.

    Parameters
    ----------
    time : NDArray
        Time to event or censoring. Non-negative and finite.
    event : NDArray
        Event indicator: 1 = event observed, 0 = censored.
    X : NDArray or None
        Covariate matrix (n, p). None for KM / log-rank.
    strata : NDArray or None
        Integer stratum codes (n,), indexing into ``levels``.
    levels : tuple or None
        Stratum labels in declared order.
    columns : tuple of str or None
        Names of the columns of X.
    """

    time: NDArray
    event: NDArray
    X: NDArray | None
    strata: NDArray | None
    levels: tuple[Any, ...] | None
    columns: tuple[str, ...] | None

    @classmethod
    def for_survival(
        cls,
        time,
        event,
        X=None,
        *,
        strata=None,
        levels=None,
        names=None,
    ) -> SurvivalDesign:
        """Create and validate survival data.

        Parameters
        ----------
        time : array-like
            Time to event or censoring.
        event : array-like
            Event indicator (0/1 or bool).
        X : array-like or None
            Optional covariate matrix.
        strata : array-like, pandas Series/Categorical, or None
            Optional stratum labels, one per subject.
        levels : sequence or None
            Declared stratum order. Every declared level must have at
            least one subject and every label must be declared.
        names : sequence of str or None
            Column names for X. Defaults to x0, x1, ...

        Returns
        -------
        SurvivalDesign

        Raises
        ------
        InvalidInputError
            If inputs are malformed.
        InsufficientDataError
            If a declared stratum has no subjects.
        """
        time = check_array(time, "time").ravel()
        event = check_array(event, "event").ravel()

        n = len(time)

        if n == 0:
            raise InvalidInputError("time must have at least one observation")

        if len(event) != n:
            raise DimensionError(
                f"time and event must have the same length: "
                f"got {n} and {len(event)}"
            )

        check_finite(time, "time")
        check_non_negative(time, "time")
        check_finite(event, "event")
        check_binary(event, "event")

        X_arr = None
        columns = None
        if X is not None:
            X_arr = check_array(X, "X")
            if X_arr.ndim == 1:
                X_arr = X_arr.reshape(-1, 1)
            if X_arr.ndim != 2:
                raise DimensionError(
                    f"X must be 1D or 2D, got {X_arr.ndim}D"
                )
            if X_arr.shape[0] != n:
                raise DimensionError(
                    f"X must have {n} rows to match time, "
                    f"got {X_arr.shape[0]}"
                )
            check_finite(X_arr, "X")

            if names is None:
                columns = tuple(f"x{j}" for j in range(X_arr.shape[1]))
            else:
                columns = tuple(str(c) for c in names)
                if len(columns) != X_arr.shape[1]:
                    raise InvalidInputError(
                        f"names must have {X_arr.shape[1]} entries to match "
                        f"the columns of X, got {len(columns)}"
                    )

        codes = None
        level_tuple = None
        if strata is not None:
            codes, level_tuple = _encode_strata(strata, levels, n)
        elif levels is not None:
            raise InvalidInputError("levels given without strata")

        return cls(
            time=time,
            event=event,
            X=X_arr,
            strata=codes,
            levels=level_tuple,
            columns=columns,
        )

    @property
    def n(self) -> int:
        """Number of observations."""
        return len(self.time)

    @property
    def p(self) -> int | None:
        """Number of covariates (None if no covariates)."""
        return self.X.shape[1] if self.X is not None else None

    @property
    def n_events(self) -> int:
        """Number of observed events."""
        return int(np.sum(self.event))

    @property
    def n_strata(self) -> int:
        """Number of strata (1 when unstratified)."""
        return len(self.levels) if self.levels is not None else 1

    def iter_strata(self) -> Iterator[tuple[Any, NDArray, NDArray]]:
        """Yield (label, time, event) per stratum in declared order.

        An unstratified design yields a single stratum labelled None.
        """
        if self.strata is None:
            yield None, self.time, self.event
            return
        for k, label in enumerate(self.levels):
            mask = self.strata == k
            yield label, self.time[mask], self.event[mask]


def _encode_strata(strata, levels, n: int) -> tuple[NDArray, tuple[Any, ...]]:
    """Map stratum labels to integer codes in declared order."""
    if isinstance(strata, pd.Series):
        series = strata.reset_index(drop=True)
    elif isinstance(strata, pd.Categorical):
        series = pd.Series(strata)
    else:
        series = pd.Series(np.asarray(strata).ravel())

    if len(series) != n:
        raise DimensionError(
            f"strata must have {n} elements to match time, "
            f"got {len(series)}"
        )

    missing = series.isna()
    if missing.any():
        raise InvalidInputError(
            f"strata contains {int(missing.sum())} missing label(s); "
            f"recode or drop those subjects before fitting"
        )

    explicit = levels is not None
    if levels is None:
        if isinstance(series.dtype, pd.CategoricalDtype):
            present = set(series.unique())
            levels = [c for c in series.cat.categories if c in present]
        else:
            levels = np.unique(series.to_numpy()).tolist()
    else:
        levels = list(levels)
        if len(set(levels)) != len(levels):
            raise InvalidInputError(f"levels contains duplicates: {levels}")

    values = series.astype(object) if isinstance(series.dtype, pd.CategoricalDtype) else series
    codes = pd.Categorical(values, categories=levels).codes.astype(np.intp)

    unknown = codes < 0
    if unknown.any():
        labels = sorted({str(v) for v in series[unknown]})
        raise InvalidInputError(
            f"strata labels {labels} are not among the declared levels {levels}"
        )

    if explicit:
        counts = np.bincount(codes, minlength=len(levels))
        for label, count in zip(levels, counts):
            if count == 0:
                raise InsufficientDataError(
                    f"stratum {label!r} has no subjects", stratum=label,
                )

    return codes, tuple(levels)
