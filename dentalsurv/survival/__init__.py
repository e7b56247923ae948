"""
Survival analysis.

Public API:
    kaplan_meier(...) -> KMSolution
    survival_at(...) -> SurvivalSummary
    median_survival(...) -> MedianSummary
    summarize(...) -> SurvivalSummary | MedianSummary
    survdiff(...) -> LogRankSolution
    coxph(...) -> CoxSolution
    coxph_frame(...) -> CoxSolution
    describe_cohort(...) -> CohortSolution
    survival_table(...) -> pandas.DataFrame
"""

from dentalsurv.survival.solvers import (
    kaplan_meier,
    survival_at,
    median_survival,
    summarize,
    survdiff,
    coxph,
    coxph_frame,
    describe_cohort,
)
from dentalsurv.survival.solution import (
    KMSolution,
    SurvivalSummary,
    MedianSummary,
    LogRankSolution,
    CoxSolution,
    CohortSolution,
)
from dentalsurv.survival._common import (
    KMCurve,
    SurvivalRow,
    MedianRow,
    CoxRow,
    CohortRow,
)
from dentalsurv.survival.tables import (
    survival_table,
    median_table,
    cox_table,
    cohort_table,
)

__all__ = [
    "kaplan_meier",
    "survival_at",
    "median_survival",
    "summarize",
    "survdiff",
    "coxph",
    "coxph_frame",
    "describe_cohort",
    "KMSolution",
    "SurvivalSummary",
    "MedianSummary",
    "LogRankSolution",
    "CoxSolution",
    "CohortSolution",
    "KMCurve",
    "SurvivalRow",
    "MedianRow",
    "CoxRow",
    "CohortRow",
    "survival_table",
    "median_table",
    "cox_table",
    "cohort_table",
]
