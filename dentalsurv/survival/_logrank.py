"""
Log-rank test (G-rho family) for comparing survival curves across groups.

Matches R's survival::survdiff(Surv(time, event) ~ group, rho=0):
- Standard log-rank test (rho=0): Mantel-Cox
- G-rho family (rho>0): Fleming-Harrington weighted variant
  When rho=1, gives the Peto & Peto modification of the Gehan-Wilcoxon test.

Algorithm:
    At each distinct event time t_j of the pooled sample:
       - n_kj = number at risk in group k, d_kj = events in group k
       - N_j, D_j = pooled totals
       - Expected events in group k: E_kj = n_kj * D_j / N_j
       - Weight w_j = S_hat(t_j-)^rho (pooled KM just before t_j)
    Groups with no expected events are dropped (as R does).
    Statistic: (O - E)' V^-1 (O - E) over the first K-1 remaining groups,
    chi-squared with K-1 degrees of freedom.

References:
    Harrington, D. P. & Fleming, T. R. (1982). A class of rank test
        procedures for censored survival data. Biometrika, 69(3), 553-566.
    R Core Team. survival::survdiff
"""

from __future__ import annotations

from typing import Any

import numpy as np
from numpy.typing import NDArray
from scipy import stats

from dentalsurv.core.exceptions import InsufficientDataError, NumericalError
from dentalsurv.survival._common import LogRankParams


def logrank_test(
    time: NDArray,
    event: NDArray,
    group_idx: NDArray,
    group_labels: tuple[Any, ...],
    rho: float = 0.0,
) -> LogRankParams:
    """Compute log-rank test (G-rho family).

    Parameters
    ----------
    time : NDArray
        (n,) time to event or censoring.
    event : NDArray
        (n,) event indicator (1=event, 0=censored).
    group_idx : NDArray
        (n,) integer group codes 0..K-1.
    group_labels : tuple
        Labels for codes 0..K-1, in declared order.
    rho : float
        G-rho weight parameter: rho=0 is standard log-rank,
        rho=1 is Peto & Peto / Gehan-Wilcoxon.

    Returns
    -------
    LogRankParams
    """
    n_groups = len(group_labels)
    n_per_group = np.bincount(group_idx, minlength=n_groups).astype(np.float64)
    df = n_groups - 1

    unique_times, inverse = np.unique(time, return_inverse=True)
    m = len(unique_times)

    # (m, K) events and departures per distinct time and group
    d_kg = np.zeros((m, n_groups), dtype=np.float64)
    leaving = np.zeros((m, n_groups), dtype=np.float64)
    np.add.at(d_kg, (inverse, group_idx), event)
    np.add.at(leaving, (inverse, group_idx), 1.0)

    # At risk just before t_j: group size minus everyone who left earlier
    left_before = np.vstack([np.zeros((1, n_groups)), np.cumsum(leaving, axis=0)[:-1]])
    n_kg = n_per_group - left_before

    keep = d_kg.sum(axis=1) > 0
    d_kg = d_kg[keep]
    n_kg = n_kg[keep]

    if len(d_kg) == 0:
        zeros = np.zeros(n_groups, dtype=np.float64)
        return LogRankParams(
            statistic=0.0,
            df=df,
            p_value=1.0,
            n_groups=n_groups,
            observed=zeros,
            expected=zeros.copy(),
            variance=np.zeros((n_groups, n_groups), dtype=np.float64),
            n_per_group=n_per_group,
            rho=rho,
            group_labels=group_labels,
        )

    D_j = d_kg.sum(axis=1)
    N_j = n_kg.sum(axis=1)

    if rho == 0.0:
        weights = np.ones(len(D_j), dtype=np.float64)
    else:
        # Pooled KM just before each event time
        cum_surv = np.cumprod(1.0 - D_j / N_j)
        s_before = np.concatenate(([1.0], cum_surv[:-1]))
        weights = s_before ** rho

    observed = weights @ d_kg
    expected = weights @ (n_kg * (D_j / N_j)[:, np.newaxis])

    # Hypergeometric variance:
    # V_kl = Σ_j w_j² D_j (N_j - D_j) / (N_j² (N_j - 1)) (δ_kl n_kj N_j - n_kj n_lj)
    with np.errstate(divide='ignore', invalid='ignore'):
        factor = weights ** 2 * D_j * (N_j - D_j) / (N_j ** 2 * (N_j - 1))
    factor = np.where(N_j > 1, factor, 0.0)

    V = np.diag((factor * N_j) @ n_kg) - (n_kg * factor[:, np.newaxis]).T @ n_kg

    # Groups with no expected events carry no information (R's survdiff
    # drops them); one more row/column is redundant since Σ(O_k - E_k) = 0
    kept = np.flatnonzero(expected > 0)
    if len(kept) < 2:
        dropped = [group_labels[k] for k in range(n_groups) if expected[k] <= 0]
        raise InsufficientDataError(
            f"groups {dropped} have no subjects at risk at any event time; "
            f"fewer than 2 groups remain to compare",
            stratum=dropped[0],
        )

    df = len(kept) - 1
    oe_diff = (observed - expected)[kept][:df]
    V_sub = V[np.ix_(kept, kept)][:df, :df]
    try:
        statistic = float(oe_diff @ np.linalg.solve(V_sub, oe_diff))
    except np.linalg.LinAlgError as e:
        raise NumericalError(
            f"log-rank variance matrix is singular for groups "
            f"{[group_labels[k] for k in kept]}"
        ) from e

    p_value = float(stats.chi2.sf(statistic, df))

    return LogRankParams(
        statistic=statistic,
        df=df,
        p_value=p_value,
        n_groups=n_groups,
        observed=observed,
        expected=expected,
        variance=V,
        n_per_group=n_per_group,
        rho=rho,
        group_labels=group_labels,
    )
