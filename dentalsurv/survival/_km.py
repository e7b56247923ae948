"""
Kaplan-Meier product-limit estimator.

Matches R's survival::survfit(Surv(time, event) ~ 1):
- Product-limit survival estimate: S(t) = ∏(1 - d_j / n_j)
- Greenwood variance: Var(S(t)) = S(t)^2 * Σ(d_j / (n_j * (n_j - d_j)))
- Confidence intervals via log, plain, or log-log transformation

Every distinct observed time is reported, censoring-only times included,
so that Σ(n_events + n_censored) equals the number of subjects.

References:
    Kaplan, E. L., & Meier, P. (1958). Nonparametric estimation from
        incomplete observations. JASA, 53(282), 457-481.
    R Core Team. survival::survfit.formula
"""

from __future__ import annotations

from typing import Any

import numpy as np
from numpy.typing import NDArray
from scipy import stats

from dentalsurv.survival._common import KMCurve


def kaplan_meier_curve(
    time: NDArray,
    event: NDArray,
    conf_level: float,
    conf_type: str,
    stratum: Any = None,
) -> KMCurve:
    """Compute a Kaplan-Meier survival curve for one stratum.

    Parameters
    ----------
    time : NDArray
        (n,) time to event or censoring.
    event : NDArray
        (n,) event indicator (1=event, 0=censored).
    conf_level : float
        Confidence level for CI (e.g. 0.95).
    conf_type : str
        CI type: "log" (default, matches R), "plain", "log-log".
    stratum : hashable
        Label stored on the curve.

    Returns
    -------
    KMCurve
    """
    n_total = len(time)

    # Events at a tied time are processed before censorings at that time:
    # both stay in the risk set n_j, only events reduce S(t).
    out_time, inverse = np.unique(time, return_inverse=True)
    m = len(out_time)

    out_n_events = np.bincount(inverse, weights=event, minlength=m)
    leaving = np.bincount(inverse, minlength=m).astype(np.float64)
    out_n_censored = leaving - out_n_events

    # n_j = subjects whose time is >= t_j
    left_before = np.concatenate(([0.0], np.cumsum(leaving)[:-1]))
    out_n_risk = n_total - left_before

    survival = np.cumprod(1.0 - out_n_events / out_n_risk)

    # A term with n_j == d_j (everyone at risk fails) contributes 0;
    # S(t) is 0 from there on, so the SE is 0 either way.
    denom = out_n_risk * (out_n_risk - out_n_events)
    denom = np.where(denom > 0, denom, np.inf)
    greenwood_sum = np.cumsum(out_n_events / denom)
    se = survival * np.sqrt(greenwood_sum)

    z = stats.norm.ppf((1.0 + conf_level) / 2.0)
    ci_lower, ci_upper = _compute_ci(survival, se, greenwood_sum, z, conf_type)

    zero_time_events = int(out_n_events[0]) if out_time[0] == 0.0 else 0

    return KMCurve(
        stratum=stratum,
        time=out_time,
        n_risk=out_n_risk,
        n_events=out_n_events,
        n_censored=out_n_censored,
        survival=survival,
        se=se,
        ci_lower=ci_lower,
        ci_upper=ci_upper,
        n_observations=n_total,
        n_events_total=int(np.sum(event)),
        zero_time_events=zero_time_events,
    )


def _compute_ci(
    survival: NDArray,
    se: NDArray,
    greenwood_sum: NDArray,
    z: float,
    conf_type: str,
) -> tuple[NDArray, NDArray]:
    """Compute CI for survival function.

    Parameters
    ----------
    survival : S(t) values
    se : Greenwood standard errors of S(t)
    greenwood_sum : cumulative Greenwood sum (variance of log S(t))
    z : normal quantile (e.g. 1.96 for 95%)
    conf_type : "log", "plain", or "log-log"

    Returns
    -------
    (ci_lower, ci_upper) clipped to [0, 1]
    """
    se_log = np.sqrt(greenwood_sum)

    if conf_type == "plain":
        ci_lower = survival - z * se
        ci_upper = survival + z * se

    elif conf_type == "log":
        # exp(log S ± z * se(log S)); collapses to 0 when S = 0
        ci_lower = survival * np.exp(-z * se_log)
        ci_upper = survival * np.exp(z * se_log)

    elif conf_type == "log-log":
        # log(-log S) ± z * se / |log S|, back-transformed to S^exp(...)
        with np.errstate(divide='ignore', invalid='ignore'):
            log_s = np.log(survival)
            se_loglog = se_log / np.abs(log_s)
            ci_lower = survival ** np.exp(z * se_loglog)
            ci_upper = survival ** np.exp(-z * se_loglog)
        ci_lower = np.where(survival >= 1.0, 1.0, ci_lower)
        ci_upper = np.where(survival >= 1.0, 1.0, ci_upper)
        ci_lower = np.where(survival <= 0.0, 0.0, ci_lower)
        ci_upper = np.where(survival <= 0.0, 0.0, ci_upper)
    else:
        raise ValueError(
            f"Unknown conf_type '{conf_type}'. "
            f"Choose from 'log', 'plain', 'log-log'."
        )

    ci_lower = np.clip(ci_lower, 0.0, 1.0)
    ci_upper = np.clip(ci_upper, 0.0, 1.0)

    return ci_lower, ci_upper
