"""
Tests for survdiff() matching R survival::survdiff(Surv(time, event) ~ group).

R reference code:
    library(survival)
    survdiff(Surv(time, event) ~ group, data=...)
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose
from scipy import stats

from dentalsurv.core.exceptions import InsufficientDataError, InvalidInputError
from dentalsurv.survival import survdiff, LogRankSolution


# ── Fixtures ─────────────────────────────────────────────────────────

# Two-arm example: RCT vs non-RCT restorations
# R:
#   time <- c(6, 7, 10, 15, 16, 22, 23, 6, 9, 10, 11, 17, 19, 20)
#   event <- c(1, 1, 1, 1, 0, 1, 1, 0, 1, 0, 1, 1, 1, 1)
#   group <- rep(c("RCT", "non-RCT"), each=7)
TWO_GROUP_TIME = np.array([6, 7, 10, 15, 16, 22, 23, 6, 9, 10, 11, 17, 19, 20],
                          dtype=np.float64)
TWO_GROUP_EVENT = np.array([1, 1, 1, 1, 0, 1, 1, 0, 1, 0, 1, 1, 1, 1],
                           dtype=np.float64)
TWO_GROUP = np.array(["RCT"] * 7 + ["non-RCT"] * 7)

THREE_GROUP_TIME = np.array([1, 2, 3, 4, 5, 6,  1, 3, 5, 7, 9, 11,  2, 4, 6, 8, 10, 12],
                            dtype=np.float64)
THREE_GROUP_EVENT = np.array([1, 1, 0, 1, 1, 0,  0, 1, 0, 1, 1, 0,  1, 0, 1, 0, 1, 1],
                             dtype=np.float64)
THREE_GROUP = np.array(["GI"] * 6 + ["RMGI"] * 6 + ["Composite"] * 6)


class TestLogRankBasic:
    """Standard log-rank test (rho=0)."""

    def test_hand_computed_statistic(self):
        """Group A fails at t=1, 2; group B at t=3, 4.

        O_A - E_A = 2 - (1/2 + 1/3) = 7/6
        V_A = 1/4 + 2/9 = 17/36
        chisq = (7/6)^2 / (17/36) = 49/17
        """
        time = np.array([1, 2, 3, 4], dtype=np.float64)
        event = np.ones(4)
        group = np.array(["A", "A", "B", "B"])

        result = survdiff(time, event, group)

        assert_allclose(result.observed, [2, 2])
        assert_allclose(result.expected, [5 / 6, 19 / 6], rtol=1e-12)
        assert result.statistic == pytest.approx(49 / 17, rel=1e-12)
        assert result.p_value == pytest.approx(stats.chi2.sf(49 / 17, 1), rel=1e-12)

    def test_two_group_basic(self):
        result = survdiff(TWO_GROUP_TIME, TWO_GROUP_EVENT, TWO_GROUP)

        assert isinstance(result, LogRankSolution)
        assert result.n_groups == 2
        assert result.df == 1
        assert result.rho == 0.0
        assert result.statistic >= 0
        assert 0 <= result.p_value <= 1

        # Observed and expected should sum to total events
        total_events = int(np.sum(TWO_GROUP_EVENT))
        assert_allclose(np.sum(result.observed), total_events, rtol=1e-10)
        assert_allclose(np.sum(result.expected), total_events, rtol=1e-10)

    def test_group_order_sorted_by_default(self):
        result = survdiff(TWO_GROUP_TIME, TWO_GROUP_EVENT, TWO_GROUP)
        assert result.group_labels == ("RCT", "non-RCT")
        assert_allclose(result.n_per_group, [7, 7])

    def test_declared_order_does_not_change_statistic(self):
        default = survdiff(TWO_GROUP_TIME, TWO_GROUP_EVENT, TWO_GROUP)
        declared = survdiff(TWO_GROUP_TIME, TWO_GROUP_EVENT, TWO_GROUP,
                            levels=["non-RCT", "RCT"])

        assert declared.group_labels == ("non-RCT", "RCT")
        assert declared.statistic == pytest.approx(default.statistic, rel=1e-10)
        assert_allclose(declared.observed, default.observed[::-1])

    def test_identical_groups_p_one(self):
        """Identical survival in both groups gives chisq 0, p 1.

        R:
            time <- rep(1:5, 2)
            event <- rep(c(1, 1, 0, 1, 1), 2)
            group <- rep(c(1, 2), each=5)
            survdiff(Surv(time, event) ~ group)
            # Chisq= 0  on 1 degrees of freedom, p= 1
        """
        time = np.tile([1, 2, 3, 4, 5], 2).astype(np.float64)
        event = np.tile([1, 1, 0, 1, 1], 2).astype(np.float64)
        group = np.repeat([1, 2], 5)

        result = survdiff(time, event, group)
        assert result.statistic == pytest.approx(0.0, abs=1e-12)
        assert result.p_value == pytest.approx(1.0)

    def test_very_different_groups(self):
        time = np.array([1, 2, 3, 4, 5, 50, 60, 70, 80, 90], dtype=np.float64)
        event = np.ones(10)
        group = np.array([1, 1, 1, 1, 1, 2, 2, 2, 2, 2])

        result = survdiff(time, event, group)
        assert result.statistic > 5
        assert result.p_value < 0.05

    def test_three_groups(self):
        result = survdiff(THREE_GROUP_TIME, THREE_GROUP_EVENT, THREE_GROUP)

        assert result.n_groups == 3
        assert result.df == 2
        assert result.statistic >= 0
        assert list(result.group_labels) == ["Composite", "GI", "RMGI"]
        assert_allclose(result.n_per_group, [6, 6, 6])

    def test_variance_matrix(self):
        result = survdiff(THREE_GROUP_TIME, THREE_GROUP_EVENT, THREE_GROUP)
        V = result.variance
        assert V.shape == (3, 3)
        assert_allclose(V, V.T, atol=1e-12)
        # Rows of the full variance matrix sum to zero
        assert_allclose(V.sum(axis=1), 0.0, atol=1e-12)

    def test_matches_large_sample(self, random_cohort):
        """Arms with a two-fold hazard difference separate clearly."""
        time, event, group = random_cohort
        result = survdiff(time, event, group)
        assert result.p_value < 0.01
        gi = result.group_labels.index("GI")
        assert result.observed[gi] > result.expected[gi]

    def test_no_events(self):
        result = survdiff([1, 2, 3, 4], [0, 0, 0, 0], ["a", "a", "b", "b"])
        assert result.statistic == 0.0
        assert result.p_value == 1.0


class TestLogRankDegenerateGroups:
    """Groups without expected events are dropped, as survdiff does.

    R:
        time <- c(0.5, 0.5, 1:5, 10:14)
        event <- c(0, 0, rep(1, 10))
        group <- rep(c("A", "B", "C"), c(2, 5, 5))
        survdiff(Surv(time, event) ~ group)
        # group A: Observed 0, Expected 0; Chisq on 1 degree of freedom
    """

    TIME = np.array([0.5, 0.5, 1, 2, 3, 4, 5, 10, 11, 12, 13, 14], dtype=np.float64)
    EVENT = np.array([0, 0] + [1] * 10, dtype=np.float64)
    GROUP = np.array(["A"] * 2 + ["B"] * 5 + ["C"] * 5)

    def test_censored_early_group_dropped(self):
        """B fails at 1..5 while all of C is at risk; C fails after B is gone.

        At t = k: n_B = 6 - k, N = 11 - k, D = 1.
        E_B = Σ n_B / N, V_B = Σ n_B * 5 / N², chisq = (5 - E_B)² / V_B
        """
        k = np.arange(1, 6)
        n_b = 6 - k
        n = 11 - k
        expected_b = np.sum(n_b / n)
        var_b = np.sum(n_b * 5 / n ** 2)
        chisq = (5 - expected_b) ** 2 / var_b

        result = survdiff(self.TIME, self.EVENT, self.GROUP)

        assert result.df == 1
        assert result.n_groups == 3
        assert result.statistic == pytest.approx(chisq, rel=1e-12)
        assert result.statistic == pytest.approx(9.70, abs=0.01)
        assert result.p_value == pytest.approx(stats.chi2.sf(chisq, 1), rel=1e-10)
        assert_allclose(result.observed, [0, 5, 5])
        assert result.expected[0] == 0.0

    def test_matches_comparison_without_dropped_group(self):
        full = survdiff(self.TIME, self.EVENT, self.GROUP)
        mask = self.GROUP != "A"
        reduced = survdiff(self.TIME[mask], self.EVENT[mask], self.GROUP[mask])

        assert full.statistic == pytest.approx(reduced.statistic, rel=1e-12)
        assert full.df == reduced.df
        assert full.p_value == pytest.approx(reduced.p_value, rel=1e-12)

    def test_dropped_group_reported(self):
        result = survdiff(self.TIME, self.EVENT, self.GROUP)
        assert result.has_warning("'A'")
        assert len(result.warnings) == 1

    def test_four_groups_one_degenerate(self):
        time = np.concatenate([self.TIME, [6, 7, 8, 20]])
        event = np.concatenate([self.EVENT, [1, 1, 1, 0]])
        group = np.concatenate([self.GROUP, ["D"] * 4])

        full = survdiff(time, event, group)
        mask = group != "A"
        reduced = survdiff(time[mask], event[mask], group[mask])

        assert full.df == 2
        assert full.statistic == pytest.approx(reduced.statistic, rel=1e-12)
        assert full.statistic > 0

    def test_too_few_groups_left(self):
        time = np.array([0.5, 0.5, 1, 2, 3], dtype=np.float64)
        event = np.array([0, 0, 1, 1, 1], dtype=np.float64)
        group = np.array(["A", "A", "B", "B", "B"])

        with pytest.raises(InsufficientDataError, match="'A'") as exc_info:
            survdiff(time, event, group)
        assert exc_info.value.stratum == "A"

    def test_group_with_all_events_tied(self):
        """A fails three times at t=2; B fails at 1, 3, 5 (censored at 4).

        t=1: n_A=3, N=7, D=1  ->  E_A = 3/7, V_A = 12/49
        t=2: n_A=3, N=6, D=3  ->  E_A = 3/2, V_A = 3*3/(36*5) * 3*3 = 9/20
        O_A - E_A = 15/14, V_A = 681/980, chisq = 1125/681
        """
        time = np.array([2, 2, 2, 1, 3, 4, 5], dtype=np.float64)
        event = np.array([1, 1, 1, 1, 1, 0, 1], dtype=np.float64)
        group = np.array(["A"] * 3 + ["B"] * 4)

        result = survdiff(time, event, group)

        assert result.df == 1
        assert result.expected[0] == pytest.approx(27 / 14, rel=1e-12)
        assert result.variance[0, 0] == pytest.approx(681 / 980, rel=1e-12)
        assert result.statistic == pytest.approx(1125 / 681, rel=1e-12)
        assert result.warnings == ()


class TestLogRankRho:
    """G-rho family (rho > 0)."""

    def test_rho_one(self):
        result = survdiff(TWO_GROUP_TIME, TWO_GROUP_EVENT, TWO_GROUP, rho=1.0)
        assert result.rho == 1.0
        assert result.statistic >= 0
        assert 0 <= result.p_value <= 1

    def test_rho_changes_weights(self):
        r0 = survdiff(TWO_GROUP_TIME, TWO_GROUP_EVENT, TWO_GROUP, rho=0.0)
        r1 = survdiff(TWO_GROUP_TIME, TWO_GROUP_EVENT, TWO_GROUP, rho=1.0)
        assert r0.statistic != pytest.approx(r1.statistic)

    def test_negative_rho(self):
        with pytest.raises(InvalidInputError, match="rho"):
            survdiff(TWO_GROUP_TIME, TWO_GROUP_EVENT, TWO_GROUP, rho=-1.0)


class TestLogRankValidation:

    def test_single_group(self):
        with pytest.raises(InsufficientDataError, match="at least 2 groups"):
            survdiff([1, 2, 3], [1, 0, 1], ["a", "a", "a"])

    def test_declared_group_without_subjects(self):
        with pytest.raises(InsufficientDataError) as exc_info:
            survdiff(TWO_GROUP_TIME, TWO_GROUP_EVENT, TWO_GROUP,
                     levels=["RCT", "non-RCT", "pilot"])
        assert exc_info.value.stratum == "pilot"

    def test_group_length_mismatch(self):
        with pytest.raises(ValueError):
            survdiff([1, 2, 3], [1, 0, 1], ["a", "b"])


class TestLogRankSolution:

    def test_summary(self):
        s = survdiff(TWO_GROUP_TIME, TWO_GROUP_EVENT, TWO_GROUP).summary()
        assert "survdiff()" in s
        assert "Chisq=" in s
        assert "RCT" in s

    def test_repr(self):
        r = repr(survdiff(TWO_GROUP_TIME, TWO_GROUP_EVENT, TWO_GROUP))
        assert "LogRankSolution" in r
        assert "df=1" in r

    def test_backend(self):
        result = survdiff(TWO_GROUP_TIME, TWO_GROUP_EVENT, TWO_GROUP)
        assert result.backend_name == "cpu_logrank"
        assert result.info["rho"] == 0.0
