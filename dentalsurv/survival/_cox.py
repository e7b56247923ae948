"""
Cox Proportional Hazards model via Newton-Raphson.

Implements Efron's and Breslow's methods for tied event times,
matching R's survival::coxph().

Algorithm:
    Initialize β = 0
    For iteration 1..max_iter:
        Compute: partial log-likelihood L(β), score U(β), information I(β)
        β_new = β + I(β)^{-1} @ U(β), halving the step while L decreases
        Converged when |1 - L(β)/L(β_new)| <= tol

Efron's partial likelihood (R default):
    L(β) = Σ_{j: event times} [ Σ_{i ∈ D_j} x_i @ β
            - Σ_{s=0}^{d_j-1} log(Σ_{l ∈ R_j} exp(x_l @ β)
                - (s/d_j) * Σ_{i ∈ D_j} exp(x_i @ β)) ]

    where D_j = set of events at time t_j, d_j = |D_j|,
          R_j = risk set at time t_j (alive just before t_j).

Risk-set sums are reverse cumulative sums over subjects sorted by time,
so each iteration is O(n p^2) rather than O(n m p^2).

References:
    Cox, D. R. (1972). Regression models and life-tables. JRSS-B, 34(2), 187-220.
    Efron, B. (1977). The efficiency of Cox's likelihood function for
        censored data. JASA, 72(359), 557-565.
    R Core Team. survival::coxph, coxph.fit
"""

from __future__ import annotations

from typing import Any

import numpy as np
from numpy.typing import NDArray
from scipy import stats

from dentalsurv.core.exceptions import (
    CollinearityError,
    InsufficientDataError,
    NonConvergenceError,
)
from dentalsurv.survival._common import CoxParams

# Newton steps larger than this (in any coordinate) are scaled down so
# exp(X @ beta) cannot overflow on a single bad step.
MAX_STEP = 5.0
MAX_HALVINGS = 20


def cox_fit(
    time: NDArray,
    event: NDArray,
    X: NDArray,
    *,
    names: tuple[str, ...],
    terms: tuple[str, ...],
    levels: tuple[Any, ...],
    references: tuple[Any, ...],
    ties: str = "efron",
    conf_level: float = 0.95,
    tol: float = 1e-9,
    max_iter: int = 20,
) -> tuple[CoxParams, tuple[str, ...]]:
    """Fit Cox proportional hazards model.

    Parameters
    ----------
    time : NDArray
        (n,) time to event or censoring.
    event : NDArray
        (n,) event indicator (1=event, 0=censored).
    X : NDArray
        (n, p) covariate matrix (NO intercept), full column rank.
    names, terms, levels, references : tuple
        Per-column labels carried into the result.
    ties : str
        Method for handling tied event times: "efron" (default) or "breslow".
    conf_level : float
        Confidence level for hazard-ratio intervals.
    tol : float
        Convergence tolerance on the relative change in log-likelihood.
    max_iter : int
        Maximum Newton-Raphson iterations.

    Returns
    -------
    (CoxParams, warnings)

    Raises
    ------
    InsufficientDataError
        If there are no events.
    NonConvergenceError
        If Newton-Raphson does not converge within max_iter iterations.
    CollinearityError
        If the information matrix is singular at the solution.
    """
    n, p = X.shape
    n_events_total = int(np.sum(event))

    if n_events_total == 0:
        raise InsufficientDataError(
            "coxph() needs at least one event; all observations are censored"
        )

    order = np.argsort(time, kind="stable")
    t_sorted = time[order]
    e_sorted = event[order]
    X_sorted = X[order]
    risk_start, event_groups = _risk_sets(t_sorted, e_sorted)

    def evaluate(beta):
        return _score_and_information(
            beta, X_sorted, risk_start, event_groups, ties,
        )

    beta = np.zeros(p, dtype=np.float64)
    loglik, score, info_matrix = evaluate(beta)
    null_loglik = loglik

    converged = False
    change = np.inf
    n_iter = 0

    for iteration in range(1, max_iter + 1):
        n_iter = iteration
        try:
            step = np.linalg.solve(info_matrix, score)
        except np.linalg.LinAlgError:
            raise NonConvergenceError(
                f"Information matrix became singular at iteration {iteration}; "
                f"the likelihood may have no finite maximum",
                iterations=iteration,
                final_change=change,
                threshold=tol,
            )

        max_step = np.max(np.abs(step))
        if max_step > MAX_STEP:
            step = step * (MAX_STEP / max_step)

        beta_new = beta + step
        loglik_new, score_new, info_new = evaluate(beta_new)

        # Step-halving while the likelihood gets worse (as R's coxph does)
        halvings = 0
        while loglik_new < loglik and halvings < MAX_HALVINGS:
            beta_new = (beta + beta_new) / 2.0
            loglik_new, score_new, info_new = evaluate(beta_new)
            halvings += 1

        change = abs(1.0 - loglik / loglik_new) if loglik_new != 0 else abs(loglik_new - loglik)
        beta, loglik, score, info_matrix = beta_new, loglik_new, score_new, info_new

        if change <= tol:
            converged = True
            break

    if not converged:
        raise NonConvergenceError(
            f"Newton-Raphson did not converge in {max_iter} iterations "
            f"(relative log-likelihood change {change:.3g} > {tol:g})",
            iterations=n_iter,
            final_change=change,
            threshold=tol,
        )

    try:
        var_matrix = np.linalg.inv(info_matrix)
    except np.linalg.LinAlgError:
        raise CollinearityError(
            "Information matrix is singular at the solution",
            matrix_name="information",
            expected_rank=p,
            columns=names,
        )
    se = np.sqrt(np.maximum(np.diag(var_matrix), 0.0))

    warnings_list = []
    # R's test for a coefficient drifting to infinity: the one-step
    # update at convergence is still large relative to the coefficient.
    infs = np.abs(var_matrix @ score)
    flagged = (infs > tol) & (infs > np.sqrt(tol) * np.abs(beta))
    for j in np.flatnonzero(flagged):
        warnings_list.append(
            f"Log-likelihood converged before '{names[j]}'; "
            f"coefficient may be infinite"
        )

    z = np.where(se > 0, beta / np.where(se > 0, se, 1.0), 0.0)
    p_values = 2.0 * stats.norm.sf(np.abs(z))

    z_crit = stats.norm.ppf((1.0 + conf_level) / 2.0)
    ci_lower = np.exp(beta - z_crit * se)
    ci_upper = np.exp(beta + z_crit * se)

    lr_statistic = max(2.0 * (loglik - null_loglik), 0.0)
    lr_p_value = float(stats.chi2.sf(lr_statistic, p))

    params = CoxParams(
        names=names,
        terms=terms,
        levels=levels,
        references=references,
        coefficients=beta,
        hazard_ratios=np.exp(beta),
        standard_errors=se,
        z_statistics=z,
        p_values=p_values,
        ci_lower=ci_lower,
        ci_upper=ci_upper,
        conf_level=conf_level,
        variance=var_matrix,
        loglik=(float(null_loglik), float(loglik)),
        lr_statistic=float(lr_statistic),
        lr_df=p,
        lr_p_value=lr_p_value,
        concordance=_concordance(X @ beta, time, event),
        n_events=n_events_total,
        n_observations=n,
        n_iter=n_iter,
        converged=converged,
        ties=ties,
    )
    return params, tuple(warnings_list)


def _risk_sets(
    t_sorted: NDArray,
    e_sorted: NDArray,
) -> tuple[NDArray, list[NDArray]]:
    """Index of the first subject at risk, and event indices, per event time."""
    event_idx = np.flatnonzero(e_sorted == 1)
    event_times = np.unique(t_sorted[event_idx])

    risk_start = np.searchsorted(t_sorted, event_times, side="left")

    group = np.searchsorted(event_times, t_sorted[event_idx])
    counts = np.bincount(group, minlength=len(event_times))
    event_groups = np.split(event_idx, np.cumsum(counts)[:-1])

    return risk_start, event_groups


def _score_and_information(
    beta: NDArray,
    X: NDArray,
    risk_start: NDArray,
    event_groups: list[NDArray],
    ties: str,
) -> tuple[float, NDArray, NDArray]:
    """Compute log-likelihood, score vector, and observed information matrix.

    X must be sorted by ascending time.

    Returns
    -------
    (loglik, score, info_matrix)
        loglik : float
        score : (p,) gradient of log-likelihood
        info_matrix : (p, p) negative Hessian (observed information)
    """
    n, p = X.shape
    eta = X @ beta

    # Centring cancels exactly: each event contributes one eta term and
    # one log-denominator term.
    eta_c = eta - np.max(eta)
    w = np.exp(eta_c)

    wX = X * w[:, np.newaxis]
    wXX = X[:, :, np.newaxis] * wX[:, np.newaxis, :]

    # Risk-set sums: subjects i..n-1 are at risk at X[i]'s time
    S0_all = np.cumsum(w[::-1])[::-1]
    S1_all = np.cumsum(wX[::-1], axis=0)[::-1]
    S2_all = np.cumsum(wXX[::-1], axis=0)[::-1]

    loglik = 0.0
    score = np.zeros(p, dtype=np.float64)
    info_matrix = np.zeros((p, p), dtype=np.float64)

    for start, idx in zip(risk_start, event_groups):
        S0 = S0_all[start]
        S1 = S1_all[start]
        S2 = S2_all[start]
        d_j = len(idx)

        loglik += np.sum(eta_c[idx])
        score += np.sum(X[idx], axis=0)

        if ties == "breslow" or d_j == 1:
            mean = S1 / S0
            loglik -= d_j * np.log(S0)
            score -= d_j * mean
            info_matrix += d_j * (S2 / S0 - np.outer(mean, mean))
        else:
            death_S0 = np.sum(w[idx])
            death_S1 = np.sum(wX[idx], axis=0)
            death_S2 = np.sum(wXX[idx], axis=0)

            for s in range(d_j):
                frac = s / d_j
                denom = S0 - frac * death_S0
                mean = (S1 - frac * death_S1) / denom

                loglik -= np.log(denom)
                score -= mean
                info_matrix += (S2 - frac * death_S2) / denom - np.outer(mean, mean)

    return float(loglik), score, info_matrix


def _concordance(
    eta: NDArray,
    time: NDArray,
    event: NDArray,
) -> float:
    """Harrell's concordance statistic (C-statistic).

    C = P(risk_i > risk_j | T_i < T_j, event_i = 1)
    """
    concordant = 0
    discordant = 0
    tied_risk = 0

    for i in np.flatnonzero(event == 1):
        later = time > time[i]
        diff = eta[i] - eta[later]
        concordant += int(np.sum(diff > 0))
        discordant += int(np.sum(diff < 0))
        tied_risk += int(np.sum(diff == 0))

    total = concordant + discordant + tied_risk
    if total == 0:
        return 0.5

    return (concordant + 0.5 * tied_risk) / total
