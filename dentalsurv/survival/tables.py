"""
Tidy tables for the presentation layer.

Reshapes summary rows into pandas DataFrames with the column headings
used in the tutorial's risk-set tables. Formatting (rounding, labels,
typesetting) is left to the caller.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import pandas as pd

if TYPE_CHECKING:
    from dentalsurv.survival.solution import (
        CohortSolution, CoxSolution, MedianSummary, SurvivalSummary,
    )


def _na(value: float | None) -> float:
    return np.nan if value is None else value


def _ci_labels(conf_level: float) -> tuple[str, str]:
    pct = f"{conf_level * 100:g}%"
    return f"{pct} CI (lower)", f"{pct} CI (upper)"


def survival_table(summary: SurvivalSummary) -> pd.DataFrame:
    """One row per (stratum, time) with the per-time risk-set statistics.

    Columns: Time, Number at risk, Number of events, Probability of
    survival, Standard Error, and the lower/upper CI. A leading Strata
    column is added for stratified fits.
    """
    lower, upper = _ci_labels(summary.conf_level)
    records = [
        {
            "Strata": row.stratum,
            "Time": row.time,
            "Number at risk": row.n_risk,
            "Number of events": row.n_events,
            "Probability of survival": row.survival,
            "Standard Error": row.se,
            lower: row.ci_lower,
            upper: row.ci_upper,
        }
        for row in summary.rows
    ]
    columns = ["Strata", "Time", "Number at risk", "Number of events",
               "Probability of survival", "Standard Error", lower, upper]
    frame = pd.DataFrame.from_records(records, columns=columns)
    if not summary.stratified:
        frame = frame.drop(columns="Strata")
    return frame


def median_table(summary: MedianSummary) -> pd.DataFrame:
    """One row per stratum: n, events, median survival and its CI.

    A median (or bound) that was not reached is NaN.
    """
    lower, upper = _ci_labels(summary.conf_level)
    records = [
        {
            "Strata": row.stratum,
            "N": row.n_observations,
            "Events": row.n_events,
            "Median survival": _na(row.median),
            lower: _na(row.ci_lower),
            upper: _na(row.ci_upper),
        }
        for row in summary.rows
    ]
    columns = ["Strata", "N", "Events", "Median survival", lower, upper]
    frame = pd.DataFrame.from_records(records, columns=columns)
    if not summary.stratified:
        frame = frame.drop(columns="Strata")
    return frame


def cox_table(fit: CoxSolution) -> pd.DataFrame:
    """Hazard-ratio table, one row per design-matrix column."""
    lower, upper = _ci_labels(fit.conf_level)
    return pd.DataFrame.from_records(
        [
            {
                "Term": row.term,
                "Level": row.level,
                "Reference": row.reference,
                "Coefficient": row.coef,
                "Hazard ratio": row.hazard_ratio,
                "Standard Error": row.se,
                lower: row.ci_lower,
                upper: row.ci_upper,
                "p-value": row.p_value,
            }
            for row in fit.rows
        ],
        index=list(fit.names),
    )


def cohort_table(fit: CohortSolution) -> pd.DataFrame:
    """Descriptive table: one row per stratum, then the pooled total."""
    rows = list(fit.rows)
    if fit.stratified:
        rows.append(fit.total)
    return pd.DataFrame.from_records(
        [
            {
                "Strata": "Total" if row is fit.total and fit.stratified else row.stratum,
                "N": row.n_observations,
                "Events": row.n_events,
                "Censored": row.n_censored,
                "Events at time 0": row.zero_time_events,
                "Min time": row.min_time,
                "Max time": row.max_time,
                "Median follow-up": _na(row.median_follow_up),
            }
            for row in rows
        ]
    )
