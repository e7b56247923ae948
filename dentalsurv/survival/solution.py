"""
Solution wrappers for survival analysis results.

Each Solution wraps a Result[Params] and exposes user-friendly properties
with R-style summary() methods. Summary containers hold immutable rows
and reshape them into DataFrames on request.
"""

from __future__ import annotations

from typing import Any, Iterator

import pandas as pd

from dentalsurv.core.exceptions import InvalidInputError
from dentalsurv.core.result import Result
from dentalsurv.survival import tables
from dentalsurv.survival._common import (
    CohortParams,
    CohortRow,
    CoxParams,
    CoxRow,
    KMCurve,
    KMParams,
    LogRankParams,
    MedianRow,
    SurvivalRow,
)
from dentalsurv.survival._summary import median_row, query_times, survival_rows


def _fmt(value: float | None) -> str:
    return f"{value:.4g}" if value is not None else "NR"


class _Diagnostics:
    """Shared access to the Result envelope."""

    __slots__ = ('_result',)

    def __init__(self, _result: Result) -> None:
        self._result = _result

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def timing(self):
        return self._result.timing

    @property
    def info(self) -> dict[str, Any]:
        return dict(self._result.info)

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def has_warning(self, substring: str) -> bool:
        return self._result.has_warning(substring)


class KMSolution(_Diagnostics):
    """Kaplan-Meier survival curve solution.

    Properties mirror R's survfit() output. A stratified fit holds one
    curve per stratum; select one with ``fit[label]``. The per-time
    properties (``time``, ``survival``, ...) need a single curve.
    """

    __slots__ = ()

    _result: Result[KMParams]

    @property
    def curves(self) -> tuple[KMCurve, ...]:
        return self._result.params.curves

    @property
    def strata(self) -> tuple[Any, ...] | None:
        """Stratum labels in declared order (None if unstratified)."""
        return self._result.params.levels

    @property
    def stratified(self) -> bool:
        return self.strata is not None

    def __len__(self) -> int:
        return len(self.curves)

    def __iter__(self) -> Iterator[KMCurve]:
        return iter(self.curves)

    def __getitem__(self, stratum) -> KMCurve:
        for curve in self.curves:
            if curve.stratum == stratum:
                return curve
        raise KeyError(
            f"no stratum {stratum!r}; available: {self.strata}"
        )

    @property
    def curve(self) -> KMCurve:
        """The single curve of an unstratified fit."""
        if len(self.curves) != 1:
            raise InvalidInputError(
                f"fit has {len(self.curves)} strata; select one with "
                f"fit[label] (labels: {self.strata})"
            )
        return self.curves[0]

    # -- Properties delegating to the single KMCurve --

    @property
    def time(self):
        """Distinct observed times."""
        return self.curve.time

    @property
    def survival(self):
        """S(t) at each time."""
        return self.curve.survival

    @property
    def n_risk(self):
        """Number at risk just before each time."""
        return self.curve.n_risk

    @property
    def n_events(self):
        """Number of events at each time."""
        return self.curve.n_events

    @property
    def n_censored(self):
        """Number censored at each time."""
        return self.curve.n_censored

    @property
    def se(self):
        """Greenwood standard error of S(t)."""
        return self.curve.se

    @property
    def ci_lower(self):
        """Lower confidence bound for S(t)."""
        return self.curve.ci_lower

    @property
    def ci_upper(self):
        """Upper confidence bound for S(t)."""
        return self.curve.ci_upper

    @property
    def median_survival(self) -> float | None:
        """Median survival time (smallest t where S(t) <= 0.5)."""
        return median_row(self.curve).median

    # -- Whole-fit properties --

    @property
    def conf_level(self) -> float:
        return self._result.params.conf_level

    @property
    def conf_type(self) -> str:
        return self._result.params.conf_type

    @property
    def n_observations(self) -> int:
        return sum(c.n_observations for c in self.curves)

    @property
    def n_events_total(self) -> int:
        return sum(c.n_events_total for c in self.curves)

    @property
    def zero_time_events(self) -> int:
        """Events recorded at time 0, across all strata."""
        return sum(c.zero_time_events for c in self.curves)

    # -- Summaries --

    def survival_at(self, times, *, extend: bool = True) -> SurvivalSummary:
        """Survival at fixed times, one row per (stratum, time).

        Rows follow the strata's declared order, and within each stratum
        the order of ``times``.

        Parameters
        ----------
        times : float or array-like
            Non-negative query times.
        extend : bool
            If True (default), carry the last estimate past the end of
            follow-up. If False, report NaN there, as R does by default.
        """
        t = query_times(times)
        rows = []
        for curve in self.curves:
            rows.extend(survival_rows(curve, t, extend=extend))
        return SurvivalSummary(
            rows=tuple(rows),
            conf_level=self.conf_level,
            stratified=self.stratified,
        )

    def median(self) -> MedianSummary:
        """Median survival with CI, one row per stratum."""
        return MedianSummary(
            rows=tuple(median_row(curve) for curve in self.curves),
            conf_level=self.conf_level,
            stratified=self.stratified,
        )

    def summary(self) -> str:
        """R-style summary of Kaplan-Meier fit."""
        lines = []
        lines.append("Call: kaplan_meier()")
        lines.append("")

        ci_pct = f"{self.conf_level * 100:g}"
        for curve in self.curves:
            row = median_row(curve)
            if curve.stratum is not None:
                lines.append(f"  strata={curve.stratum}")
            lines.append(
                f"  n={curve.n_observations}, "
                f"events={curve.n_events_total}"
            )
            lines.append(
                f"  median survival = {_fmt(row.median)} "
                f"({ci_pct}% CI {_fmt(row.ci_lower)}, {_fmt(row.ci_upper)})"
            )
            lines.append("")

            lines.append(
                f"  {'time':>8s}  {'n.risk':>8s}  {'n.event':>8s}  "
                f"{'survival':>10s}  {'se':>10s}  "
                f"{'lower ' + ci_pct + '%':>10s}  {'upper ' + ci_pct + '%':>10s}"
            )

            # Event times only, up to 20 rows
            idx = curve.event_mask.nonzero()[0]
            for i in idx[:20]:
                lines.append(
                    f"  {curve.time[i]:8.4g}  {curve.n_risk[i]:8.0f}  "
                    f"{curve.n_events[i]:8.0f}  "
                    f"{curve.survival[i]:10.6f}  {curve.se[i]:10.6f}  "
                    f"{curve.ci_lower[i]:10.6f}  {curve.ci_upper[i]:10.6f}"
                )
            if len(idx) > 20:
                lines.append(f"  ... ({len(idx) - 20} more rows)")
            lines.append("")

        for w in self.warnings:
            lines.append(f"  Warning: {w}")

        return "\n".join(lines).rstrip()

    def __repr__(self) -> str:
        if self.stratified:
            return (
                f"KMSolution(n={self.n_observations}, "
                f"events={self.n_events_total}, "
                f"strata={len(self.curves)})"
            )
        return (
            f"KMSolution(n={self.n_observations}, "
            f"events={self.n_events_total}, "
            f"median={self.median_survival})"
        )


class SurvivalSummary:
    """Fixed-time survival rows, ordered by stratum then query time."""

    __slots__ = ('rows', 'conf_level', 'stratified')

    def __init__(
        self,
        rows: tuple[SurvivalRow, ...],
        conf_level: float,
        stratified: bool,
    ) -> None:
        self.rows = rows
        self.conf_level = conf_level
        self.stratified = stratified

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[SurvivalRow]:
        return iter(self.rows)

    def __getitem__(self, i: int) -> SurvivalRow:
        return self.rows[i]

    def to_frame(self) -> pd.DataFrame:
        return tables.survival_table(self)

    def __repr__(self) -> str:
        return f"SurvivalSummary(rows={len(self.rows)}, conf_level={self.conf_level})"


class MedianSummary:
    """Median survival rows, one per stratum."""

    __slots__ = ('rows', 'conf_level', 'stratified')

    def __init__(
        self,
        rows: tuple[MedianRow, ...],
        conf_level: float,
        stratified: bool,
    ) -> None:
        self.rows = rows
        self.conf_level = conf_level
        self.stratified = stratified

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[MedianRow]:
        return iter(self.rows)

    def __getitem__(self, i: int) -> MedianRow:
        return self.rows[i]

    def to_frame(self) -> pd.DataFrame:
        return tables.median_table(self)

    def __repr__(self) -> str:
        medians = ", ".join(_fmt(r.median) for r in self.rows)
        return f"MedianSummary(median=[{medians}], conf_level={self.conf_level})"


class LogRankSolution(_Diagnostics):
    """Log-rank test solution.

    Properties mirror R's survdiff() output.
    """

    __slots__ = ()

    _result: Result[LogRankParams]

    @property
    def statistic(self) -> float:
        return self._result.params.statistic

    @property
    def df(self) -> int:
        return self._result.params.df

    @property
    def p_value(self) -> float:
        return self._result.params.p_value

    @property
    def n_groups(self) -> int:
        return self._result.params.n_groups

    @property
    def observed(self):
        return self._result.params.observed

    @property
    def expected(self):
        return self._result.params.expected

    @property
    def variance(self):
        return self._result.params.variance

    @property
    def n_per_group(self):
        return self._result.params.n_per_group

    @property
    def rho(self) -> float:
        return self._result.params.rho

    @property
    def group_labels(self) -> tuple[Any, ...]:
        return self._result.params.group_labels

    def summary(self) -> str:
        """R-style summary of log-rank test."""
        lines = []
        lines.append("Call: survdiff()")
        lines.append("")

        lines.append(f"  {'':>12s}  {'N':>6s}  {'Observed':>10s}  {'Expected':>10s}  {'(O-E)^2/E':>10s}")
        for i in range(self.n_groups):
            oe = ((self.observed[i] - self.expected[i]) ** 2
                  / self.expected[i]) if self.expected[i] > 0 else 0
            label = str(self.group_labels[i])
            lines.append(
                f"  {label:>12s}  {self.n_per_group[i]:6.0f}  "
                f"{self.observed[i]:10.1f}  {self.expected[i]:10.1f}  "
                f"{oe:10.3f}"
            )

        lines.append("")
        lines.append(
            f"  Chisq= {self.statistic:.4f} on {self.df} degrees of freedom, "
            f"p= {self.p_value:.4g}"
        )

        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"LogRankSolution(chisq={self.statistic:.4f}, "
            f"df={self.df}, p={self.p_value:.4g})"
        )


class CoxSolution(_Diagnostics):
    """Cox proportional hazards solution.

    Properties mirror R's coxph() output.
    """

    __slots__ = ()

    _result: Result[CoxParams]

    @property
    def names(self) -> tuple[str, ...]:
        return self._result.params.names

    @property
    def coefficients(self):
        return self._result.params.coefficients

    @property
    def hazard_ratios(self):
        return self._result.params.hazard_ratios

    @property
    def standard_errors(self):
        return self._result.params.standard_errors

    @property
    def z_statistics(self):
        return self._result.params.z_statistics

    @property
    def p_values(self):
        return self._result.params.p_values

    @property
    def ci_lower(self):
        """Lower confidence bound for the hazard ratios."""
        return self._result.params.ci_lower

    @property
    def ci_upper(self):
        """Upper confidence bound for the hazard ratios."""
        return self._result.params.ci_upper

    @property
    def conf_level(self) -> float:
        return self._result.params.conf_level

    @property
    def variance(self):
        return self._result.params.variance

    @property
    def loglik(self) -> tuple[float, float]:
        return self._result.params.loglik

    @property
    def lr_statistic(self) -> float:
        return self._result.params.lr_statistic

    @property
    def lr_p_value(self) -> float:
        return self._result.params.lr_p_value

    @property
    def concordance(self) -> float:
        return self._result.params.concordance

    @property
    def n_events(self) -> int:
        return self._result.params.n_events

    @property
    def n_observations(self) -> int:
        return self._result.params.n_observations

    @property
    def n_iter(self) -> int:
        return self._result.params.n_iter

    @property
    def converged(self) -> bool:
        return self._result.params.converged

    @property
    def ties(self) -> str:
        return self._result.params.ties

    @property
    def rows(self) -> tuple[CoxRow, ...]:
        """One row per design-matrix column."""
        prm = self._result.params
        return tuple(
            CoxRow(
                term=prm.terms[j],
                level=prm.levels[j],
                reference=prm.references[j],
                coef=float(prm.coefficients[j]),
                hazard_ratio=float(prm.hazard_ratios[j]),
                se=float(prm.standard_errors[j]),
                z=float(prm.z_statistics[j]),
                p_value=float(prm.p_values[j]),
                ci_lower=float(prm.ci_lower[j]),
                ci_upper=float(prm.ci_upper[j]),
            )
            for j in range(len(prm.names))
        )

    def to_frame(self) -> pd.DataFrame:
        return tables.cox_table(self)

    def summary(self) -> str:
        """R-style summary of Cox PH fit."""
        lines = []
        lines.append("Call: coxph()")
        lines.append("")
        lines.append(
            f"  n= {self.n_observations}, "
            f"number of events= {self.n_events}"
        )
        lines.append("")

        width = max(10, max(len(n) for n in self.names))
        lines.append(
            f"  {'':>{width}s}  {'coef':>10s}  {'exp(coef)':>10s}  "
            f"{'se(coef)':>10s}  {'z':>10s}  {'Pr(>|z|)':>12s}"
        )
        for i, name in enumerate(self.names):
            lines.append(
                f"  {name:>{width}s}  {self.coefficients[i]:10.6f}  "
                f"{self.hazard_ratios[i]:10.6f}  "
                f"{self.standard_errors[i]:10.6f}  "
                f"{self.z_statistics[i]:10.4f}  "
                f"{self.p_values[i]:12.4g}"
            )

        ci_pct = f"{self.conf_level * 100:g}"
        lines.append("")
        lines.append(
            f"  {'':>{width}s}  {'exp(coef)':>10s}  "
            f"{'lower .' + ci_pct:>10s}  {'upper .' + ci_pct:>10s}"
        )
        for i, name in enumerate(self.names):
            lines.append(
                f"  {name:>{width}s}  {self.hazard_ratios[i]:10.4f}  "
                f"{self.ci_lower[i]:10.4f}  {self.ci_upper[i]:10.4f}"
            )

        lines.append("")
        lines.append(
            f"  Concordance= {self.concordance:.4f}"
        )
        lines.append(
            f"  Likelihood ratio test= {self.lr_statistic:.4f} "
            f"on {len(self.names)} df, p={self.lr_p_value:.4g}"
        )
        lines.append(f"  Ties: {self.ties}")

        for w in self.warnings:
            lines.append(f"  Warning: {w}")

        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"CoxSolution(n={self.n_observations}, "
            f"events={self.n_events}, "
            f"concordance={self.concordance:.4f})"
        )


class CohortSolution(_Diagnostics):
    """Descriptive cohort summary, one row per stratum."""

    __slots__ = ()

    _result: Result[CohortParams]

    @property
    def rows(self) -> tuple[CohortRow, ...]:
        return self._result.params.rows

    @property
    def total(self) -> CohortRow:
        return self._result.params.total

    @property
    def stratified(self) -> bool:
        return self.total.stratum is None and self.rows[0].stratum is not None

    def to_frame(self) -> pd.DataFrame:
        return tables.cohort_table(self)

    def __repr__(self) -> str:
        return (
            f"CohortSolution(n={self.total.n_observations}, "
            f"events={self.total.n_events}, strata={len(self.rows)})"
        )
