"""
Descriptive cohort summary for time-to-event data.

Median follow-up uses the reverse Kaplan-Meier method (Schemper & Smith,
1996): the event indicator is flipped so censoring becomes the "event",
and the median of that curve estimates potential follow-up time.
"""

from __future__ import annotations

from typing import Any

import numpy as np
from numpy.typing import NDArray

from dentalsurv.survival._common import CohortRow
from dentalsurv.survival._km import kaplan_meier_curve
from dentalsurv.survival._summary import first_crossing


def cohort_row(time: NDArray, event: NDArray, stratum: Any = None) -> CohortRow:
    """Counts and follow-up summary for one stratum."""
    n_events = int(np.sum(event))

    # Only the point estimate of the reverse curve is used
    reverse = kaplan_meier_curve(
        time, 1.0 - event, conf_level=0.95, conf_type="log", stratum=stratum,
    )

    return CohortRow(
        stratum=stratum,
        n_observations=len(time),
        n_events=n_events,
        n_censored=len(time) - n_events,
        zero_time_events=int(np.sum((time == 0) & (event == 1))),
        min_time=float(np.min(time)),
        max_time=float(np.max(time)),
        median_follow_up=first_crossing(reverse.time, reverse.survival),
    )
