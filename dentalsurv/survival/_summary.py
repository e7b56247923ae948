"""
Curve summaries: survival at fixed times and median survival.

Fixed-time queries follow R's summary(survfit, times=...):
- S(t) is the step-function value at t (last estimate at or before t)
- n.risk is the number of subjects still under observation at t
- before the first event the curve is 1 and the CI is undefined
- past the last follow-up time n.risk is 0 and S(t) stays at the last
  estimate unless extend=False asks for NaN

Median queries follow R's print(survfit): the median is the first time
S(t) <= 0.5, and its CI comes from where the upper and lower confidence
bounds cross 0.5.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from dentalsurv.core.exceptions import InvalidInputError
from dentalsurv.core.validation import check_array, check_finite, check_non_negative
from dentalsurv.survival._common import KMCurve, MedianRow, SurvivalRow


def query_times(times) -> NDArray:
    """Validate query times: finite, non-negative, at least one."""
    arr = check_array(np.atleast_1d(times), "times").ravel()
    if len(arr) == 0:
        raise InvalidInputError("times must contain at least one query time")
    check_finite(arr, "times")
    check_non_negative(arr, "times")
    return arr


def survival_rows(
    curve: KMCurve,
    times: NDArray,
    extend: bool = True,
) -> list[SurvivalRow]:
    """Evaluate one curve at each query time, in the given order."""
    cum_events = np.cumsum(curve.n_events)
    cum_censored = np.cumsum(curve.n_censored)
    last_time = curve.time[-1]
    m = len(curve.time)

    rows = []
    for t in times:
        # idx: last curve time <= t; j: first curve time >= t
        idx = int(np.searchsorted(curve.time, t, side="right")) - 1
        j = int(np.searchsorted(curve.time, t, side="left"))

        n_risk = int(curve.n_risk[j]) if j < m else 0
        n_events = int(cum_events[idx]) if idx >= 0 else 0
        n_censored = int(cum_censored[j - 1]) if j > 0 else 0

        if t > last_time and not extend:
            survival = se = ci_lower = ci_upper = np.nan
        elif n_events == 0:
            survival, se = 1.0, 0.0
            ci_lower = ci_upper = np.nan
        else:
            survival = float(curve.survival[idx])
            se = float(curve.se[idx])
            ci_lower = float(curve.ci_lower[idx])
            ci_upper = float(curve.ci_upper[idx])

        rows.append(SurvivalRow(
            stratum=curve.stratum,
            time=float(t),
            n_risk=n_risk,
            n_events=n_events,
            n_censored=n_censored,
            survival=survival,
            se=se,
            ci_lower=ci_lower,
            ci_upper=ci_upper,
        ))

    return rows


def median_row(curve: KMCurve) -> MedianRow:
    """Median survival time and its CI for one curve."""
    return MedianRow(
        stratum=curve.stratum,
        n_observations=curve.n_observations,
        n_events=curve.n_events_total,
        median=first_crossing(curve.time, curve.survival),
        ci_lower=first_crossing(curve.time, curve.ci_lower),
        ci_upper=first_crossing(curve.time, curve.ci_upper),
    )


def first_crossing(
    time: Sequence[float],
    values: NDArray,
    threshold: float = 0.5,
) -> float | None:
    """Smallest time with value <= threshold, or None if never reached."""
    hit = np.flatnonzero(np.asarray(values) <= threshold)
    if len(hit) == 0:
        return None
    return float(time[hit[0]])
