"""
Parameter payloads and row types for survival analysis results.

Each *Params dataclass is a frozen payload carried inside a Result[P]
envelope. The *Row dataclasses are the row-oriented records handed to
table and plot code.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from numpy.typing import NDArray


@dataclass(frozen=True)
class KMCurve:
    """One Kaplan-Meier curve (a single stratum).

    Matches one stratum of R's survival::survfit() with all observed
    times (event and censoring) listed.
    """

    stratum: Any                 # stratum label, None if unstratified
    time: NDArray                # (m,) distinct observed times
    n_risk: NDArray              # (m,) number at risk just before each time
    n_events: NDArray            # (m,) events at each time
    n_censored: NDArray          # (m,) censored at each time
    survival: NDArray            # (m,) S(t)
    se: NDArray                  # (m,) Greenwood standard error of S(t)
    ci_lower: NDArray            # (m,) lower CI for S(t)
    ci_upper: NDArray            # (m,) upper CI for S(t)
    n_observations: int
    n_events_total: int
    zero_time_events: int        # events recorded at time 0

    @property
    def event_mask(self) -> NDArray:
        """Boolean mask of times where at least one event occurred."""
        return self.n_events > 0


@dataclass(frozen=True)
class KMParams:
    """Kaplan-Meier fit: one curve per stratum, in declared order."""

    curves: tuple[KMCurve, ...]
    levels: tuple[Any, ...] | None  # None when unstratified
    conf_level: float
    conf_type: str               # "log" (default), "plain", "log-log"


@dataclass(frozen=True)
class SurvivalRow:
    """Curve state at one query time for one stratum."""

    stratum: Any
    time: float
    n_risk: int                  # subjects with time >= t
    n_events: int                # cumulative events with time <= t
    n_censored: int              # cumulative censorings with time < t
    survival: float
    se: float
    ci_lower: float              # NaN when undefined
    ci_upper: float


@dataclass(frozen=True)
class MedianRow:
    """Median survival time with CI for one stratum.

    None means "not reached": the curve (or CI bound) never fell to 0.5.
    """

    stratum: Any
    n_observations: int
    n_events: int
    median: float | None
    ci_lower: float | None
    ci_upper: float | None

    @property
    def reached(self) -> bool:
        return self.median is not None


@dataclass(frozen=True)
class LogRankParams:
    """Log-rank test parameters.

    Matches the output of R's survival::survdiff().
    """

    statistic: float             # chi-squared statistic
    df: int                      # degrees of freedom (n_groups - 1)
    p_value: float
    n_groups: int
    observed: NDArray            # (n_groups,) observed events per group
    expected: NDArray            # (n_groups,) expected events per group
    variance: NDArray            # (n_groups, n_groups) variance of O - E
    n_per_group: NDArray         # (n_groups,) subjects per group
    rho: float                   # weight parameter (0=log-rank, 1=Peto-Peto)
    group_labels: tuple[Any, ...]


@dataclass(frozen=True)
class CoxParams:
    """Cox proportional hazards model parameters.

    Matches the output of R's survival::coxph().
    """

    names: tuple[str, ...]       # design-matrix column names
    terms: tuple[str, ...]       # covariate each column belongs to
    levels: tuple[Any, ...]      # level coded by each column (None if numeric)
    references: tuple[Any, ...]  # reference level per column (None if numeric)
    coefficients: NDArray        # (p,) log hazard ratios
    hazard_ratios: NDArray       # (p,) exp(coef)
    standard_errors: NDArray     # (p,) from observed information matrix
    z_statistics: NDArray        # (p,) coef / se
    p_values: NDArray            # (p,) two-sided Wald test
    ci_lower: NDArray            # (p,) lower CI for the hazard ratio
    ci_upper: NDArray            # (p,) upper CI for the hazard ratio
    conf_level: float
    variance: NDArray            # (p, p) inverse information
    loglik: tuple[float, float]  # (null log-lik, model log-lik)
    lr_statistic: float          # likelihood ratio test
    lr_df: int
    lr_p_value: float
    concordance: float           # Harrell's C-statistic
    n_events: int
    n_observations: int
    n_iter: int                  # Newton-Raphson iterations
    converged: bool
    ties: str                    # "efron" or "breslow"


@dataclass(frozen=True)
class CoxRow:
    """One design-matrix column of a Cox fit."""

    term: str
    level: Any                   # None for numeric covariates
    reference: Any               # None for numeric covariates
    coef: float
    hazard_ratio: float
    se: float
    z: float
    p_value: float
    ci_lower: float
    ci_upper: float


@dataclass(frozen=True)
class CohortRow:
    """Descriptive summary of one stratum of the cohort."""

    stratum: Any
    n_observations: int
    n_events: int
    n_censored: int
    zero_time_events: int
    min_time: float
    max_time: float
    median_follow_up: float | None  # reverse Kaplan-Meier median


@dataclass(frozen=True)
class CohortParams:
    """Cohort description: one row per stratum plus the pooled total."""

    rows: tuple[CohortRow, ...]
    total: CohortRow
