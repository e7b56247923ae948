"""
Public API for survival analysis.

    kaplan_meier(time, event) → KMSolution
    survival_at(fit, times) → SurvivalSummary
    median_survival(fit) → MedianSummary
    summarize(fit, times=None) → SurvivalSummary | MedianSummary
    survdiff(time, event, group) → LogRankSolution
    coxph(time, event, X) → CoxSolution
    coxph_frame(data, time=..., event=..., covariates=[...]) → CoxSolution
    describe_cohort(time, event) → CohortSolution

Each function validates inputs, creates a SurvivalDesign, runs the
computation, and wraps the Result in a Solution.
"""

from __future__ import annotations

from typing import Any, Literal, Mapping, Sequence

import pandas as pd

from dentalsurv.core.exceptions import InsufficientDataError, InvalidInputError
from dentalsurv.core.result import Result
from dentalsurv.core.timing import Timer
from dentalsurv.core.validation import check_choice, check_column_rank, check_conf_level
from dentalsurv.survival.design import SurvivalDesign
from dentalsurv.survival._common import CohortParams, KMParams
from dentalsurv.survival._cohort import cohort_row
from dentalsurv.survival._covariates import build_design
from dentalsurv.survival._cox import cox_fit
from dentalsurv.survival._km import kaplan_meier_curve
from dentalsurv.survival._logrank import logrank_test
from dentalsurv.survival.solution import (
    CohortSolution, CoxSolution, KMSolution, LogRankSolution,
    MedianSummary, SurvivalSummary,
)


def _zero_time_warning(count: int, stratum) -> str:
    where = f" in stratum {stratum!r}" if stratum is not None else ""
    noun = "event" if count == 1 else "events"
    return (
        f"{count} {noun} recorded at time 0{where}; "
        f"kept as-is, check for data-entry artifacts"
    )


def kaplan_meier(
    time,
    event,
    *,
    strata=None,
    levels: Sequence[Any] | None = None,
    conf_level: float = 0.95,
    conf_type: Literal["log", "plain", "log-log"] = "log",
) -> KMSolution:
    """Kaplan-Meier survival curve estimation.

    Matches R's survival::survfit(Surv(time, event) ~ strata).

    Parameters
    ----------
    time : array-like
        Time to event or censoring.
    event : array-like
        Event indicator (1=event, 0=censored).
    strata : array-like or None
        Stratum labels; one curve is estimated per stratum.
    levels : sequence or None
        Declared stratum order. Defaults to categorical order for pandas
        categoricals, else sorted order.
    conf_level : float
        Confidence level for CI (default 0.95).
    conf_type : str
        CI transformation: "log" (R default), "plain", "log-log".

    Returns
    -------
    KMSolution
    """
    check_conf_level(conf_level)
    check_choice(conf_type, ("log", "plain", "log-log"), "conf_type")

    design = SurvivalDesign.for_survival(time, event, strata=strata, levels=levels)

    timer = Timer()
    timer.start()

    curves = []
    warnings_list = []
    for label, t, e in design.iter_strata():
        with timer.section(f"stratum={label}" if label is not None else "curve"):
            curve = kaplan_meier_curve(
                t, e,
                conf_level=conf_level,
                conf_type=conf_type,
                stratum=label,
            )
        curves.append(curve)
        if curve.zero_time_events > 0:
            warnings_list.append(_zero_time_warning(curve.zero_time_events, label))

    timer.stop()

    params = KMParams(
        curves=tuple(curves),
        levels=design.levels,
        conf_level=conf_level,
        conf_type=conf_type,
    )

    result = Result(
        params=params,
        info={"method": "Kaplan-Meier", "n_strata": design.n_strata},
        timing=timer.result(),
        backend_name="cpu_km",
        warnings=tuple(warnings_list),
    )

    return KMSolution(_result=result)


def survival_at(fit: KMSolution, times, *, extend: bool = True) -> SurvivalSummary:
    """Survival probability at fixed times.

    Equivalent to R's summary(survfit, times=...). See
    KMSolution.survival_at.
    """
    return fit.survival_at(times, extend=extend)


def median_survival(fit: KMSolution) -> MedianSummary:
    """Median survival time with CI per stratum.

    A median the curve never reaches is reported as None ("not reached").
    """
    return fit.median()


def summarize(
    fit: KMSolution,
    times=None,
    *,
    extend: bool = True,
) -> SurvivalSummary | MedianSummary:
    """Summarise a fit: at ``times`` if given, else the median."""
    if times is None:
        return fit.median()
    return fit.survival_at(times, extend=extend)


def survdiff(
    time,
    event,
    group,
    *,
    levels: Sequence[Any] | None = None,
    rho: float = 0.0,
) -> LogRankSolution:
    """Log-rank test (and G-rho family).

    Matches R's survival::survdiff().

    Parameters
    ----------
    time : array-like
        Time to event or censoring.
    event : array-like
        Event indicator (1=event, 0=censored).
    group : array-like
        Group labels (e.g. RCT vs non-RCT).
    levels : sequence or None
        Declared group order; every level must have subjects.
    rho : float
        G-rho weight parameter. rho=0 (default) gives the standard
        log-rank test. rho=1 gives Peto & Peto / Gehan-Wilcoxon.

    Returns
    -------
    LogRankSolution

    Raises
    ------
    InsufficientDataError
        Fewer than two groups, a declared group without subjects, or
        fewer than two groups with any expected events.
    NumericalError
        If the variance matrix of the remaining groups is singular.
    """
    if rho < 0:
        raise InvalidInputError(f"rho must be non-negative, got {rho}")

    design = SurvivalDesign.for_survival(time, event, strata=group, levels=levels)

    if design.n_strata < 2:
        raise InsufficientDataError(
            f"Need at least 2 groups for log-rank test, got {design.n_strata}",
            stratum=design.levels[0],
        )

    timer = Timer()
    timer.start()

    params = logrank_test(
        design.time, design.event, design.strata, design.levels,
        rho=rho,
    )

    timer.stop()

    warnings_list = []
    if params.expected.sum() > 0:
        warnings_list.extend(
            f"group {label!r} has no expected events; dropped from the test"
            for label, e in zip(params.group_labels, params.expected) if e <= 0
        )

    result = Result(
        params=params,
        info={"method": "Log-rank test", "rho": rho},
        timing=timer.result(),
        backend_name="cpu_logrank",
        warnings=tuple(warnings_list),
    )

    return LogRankSolution(_result=result)


def coxph(
    time,
    event,
    X,
    *,
    names: Sequence[str] | None = None,
    ties: Literal["efron", "breslow"] = "efron",
    conf_level: float = 0.95,
    tol: float = 1e-9,
    max_iter: int = 20,
) -> CoxSolution:
    """Cox proportional hazards model.

    Matches R's survival::coxph().

    Parameters
    ----------
    time : array-like
        Time to event or censoring.
    event : array-like
        Event indicator (1=event, 0=censored).
    X : array-like
        Covariate matrix (n, p). No intercept; Cox model has no intercept.
    names : sequence of str or None
        Column names for X.
    ties : str
        Method for handling tied event times: "efron" (default) or "breslow".
    conf_level : float
        Confidence level for hazard-ratio intervals.
    tol : float
        Convergence tolerance on the relative log-likelihood change.
    max_iter : int
        Maximum Newton-Raphson iterations.

    Returns
    -------
    CoxSolution

    Raises
    ------
    CollinearityError
        If the covariate matrix is rank-deficient.
    NonConvergenceError
        If Newton-Raphson does not converge within max_iter iterations.
    InsufficientDataError
        If there are no events.
    """
    design = SurvivalDesign.for_survival(time, event, X, names=names)

    if design.X is None:
        raise InvalidInputError("X (covariates) is required for coxph()")

    p = design.p
    return _fit_cox(
        design,
        terms=design.columns,
        levels=(None,) * p,
        references=(None,) * p,
        ties=ties,
        conf_level=conf_level,
        tol=tol,
        max_iter=max_iter,
    )


def coxph_frame(
    data: pd.DataFrame,
    *,
    time: str,
    event: str,
    covariates: Sequence[str],
    reference: Mapping[str, Any] | None = None,
    ties: Literal["efron", "breslow"] = "efron",
    conf_level: float = 0.95,
    tol: float = 1e-9,
    max_iter: int = 20,
) -> CoxSolution:
    """Cox model from a DataFrame with numeric and categorical covariates.

    Equivalent to R's coxph(Surv(time, event) ~ a + b, data=data) with
    treatment contrasts. Categorical covariates get one column per
    non-reference level.

    Parameters
    ----------
    data : DataFrame
        Subject-level data.
    time, event : str
        Column names of the time and event indicator.
    covariates : sequence of str
        Covariate columns, in term order.
    reference : mapping or None
        Reference level per categorical covariate (default: first level).

    Returns
    -------
    CoxSolution
    """
    for column in (time, event):
        if column not in data.columns:
            raise InvalidInputError(f"column '{column}' not found in data")

    covs = build_design(data, covariates, reference)
    design = SurvivalDesign.for_survival(
        data[time].to_numpy(), data[event].to_numpy(), covs.X, names=covs.names,
    )

    return _fit_cox(
        design,
        terms=covs.terms,
        levels=covs.levels,
        references=covs.references,
        ties=ties,
        conf_level=conf_level,
        tol=tol,
        max_iter=max_iter,
    )


def _fit_cox(
    design: SurvivalDesign,
    *,
    terms: tuple[str, ...],
    levels: tuple[Any, ...],
    references: tuple[Any, ...],
    ties: str,
    conf_level: float,
    tol: float,
    max_iter: int,
) -> CoxSolution:
    check_choice(ties, ("efron", "breslow"), "ties")
    check_conf_level(conf_level)
    if max_iter < 1:
        raise InvalidInputError(f"max_iter must be at least 1, got {max_iter}")

    check_column_rank(design.X, "X", columns=design.columns)

    timer = Timer()
    timer.start()

    params, warnings_list = cox_fit(
        design.time, design.event, design.X,
        names=design.columns,
        terms=terms,
        levels=levels,
        references=references,
        ties=ties,
        conf_level=conf_level,
        tol=tol,
        max_iter=max_iter,
    )

    timer.stop()

    result = Result(
        params=params,
        info={
            "method": "Cox PH",
            "ties": ties,
            "n_iter": params.n_iter,
        },
        timing=timer.result(),
        backend_name="cpu_cox",
        warnings=warnings_list,
    )

    return CoxSolution(_result=result)


def describe_cohort(
    time,
    event,
    *,
    strata=None,
    levels: Sequence[Any] | None = None,
) -> CohortSolution:
    """Descriptive summary of the cohort, optionally per stratum.

    Reports subjects, events, censorings, time-0 events, the observed
    time range and the reverse Kaplan-Meier median follow-up.
    """
    design = SurvivalDesign.for_survival(time, event, strata=strata, levels=levels)

    timer = Timer()
    timer.start()

    rows = tuple(
        cohort_row(t, e, stratum=label)
        for label, t, e in design.iter_strata()
    )
    total = rows[0] if design.strata is None else cohort_row(design.time, design.event)

    timer.stop()

    warnings_list = tuple(
        _zero_time_warning(row.zero_time_events, row.stratum)
        for row in rows if row.zero_time_events > 0
    )

    result = Result(
        params=CohortParams(rows=rows, total=total),
        info={"method": "Cohort description", "n_strata": design.n_strata},
        timing=timer.result(),
        backend_name="cpu_cohort",
        warnings=warnings_list,
    )

    return CohortSolution(_result=result)
