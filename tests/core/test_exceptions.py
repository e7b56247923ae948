"""
Tests for the dentalsurv exception hierarchy.

Validates:
    - Inheritance chain (all exceptions catchable via DentalSurvError)
    - InvalidInputError doubles as ValueError
    - Diagnostic attributes on InsufficientDataError, CollinearityError,
      NonConvergenceError
    - Default attribute values (None for optional attributes)
"""

import pytest

from dentalsurv.core.exceptions import (
    CollinearityError,
    DentalSurvError,
    DimensionError,
    InsufficientDataError,
    InvalidInputError,
    NonConvergenceError,
    NumericalError,
    ValidationError,
)


# ═══════════════════════════════════════════════════════════════════════
# Inheritance hierarchy
# ═══════════════════════════════════════════════════════════════════════


class TestInheritance:
    """Every exception is catchable via DentalSurvError."""

    def test_invalid_input_is_validation_error(self):
        with pytest.raises(ValidationError):
            raise InvalidInputError("negative time")

    def test_invalid_input_is_value_error(self):
        with pytest.raises(ValueError):
            raise InvalidInputError("negative time")

    def test_dimension_error_is_invalid_input(self):
        with pytest.raises(InvalidInputError):
            raise DimensionError("wrong length")

    def test_insufficient_data_is_validation_error(self):
        with pytest.raises(ValidationError):
            raise InsufficientDataError("empty stratum")

    def test_insufficient_data_is_not_value_error(self):
        err = InsufficientDataError("empty stratum")
        assert not isinstance(err, ValueError)

    def test_collinearity_is_numerical_error(self):
        with pytest.raises(NumericalError):
            raise CollinearityError("rank deficient")

    def test_collinearity_is_dentalsurv_error(self):
        with pytest.raises(DentalSurvError):
            raise CollinearityError("rank deficient")

    def test_non_convergence_is_dentalsurv_error(self):
        with pytest.raises(DentalSurvError):
            raise NonConvergenceError("did not converge", iterations=20)

    def test_non_convergence_is_not_numerical_error(self):
        """NonConvergenceError inherits from DentalSurvError, not NumericalError."""
        err = NonConvergenceError("did not converge", iterations=20)
        assert not isinstance(err, NumericalError)


# ═══════════════════════════════════════════════════════════════════════
# InsufficientDataError
# ═══════════════════════════════════════════════════════════════════════


class TestInsufficientDataError:

    def test_stratum_attribute(self):
        err = InsufficientDataError("stratum 'RCT' has no subjects", stratum="RCT")
        assert err.stratum == "RCT"
        assert "RCT" in str(err)

    def test_default_stratum_is_none(self):
        assert InsufficientDataError("no events").stratum is None


# ═══════════════════════════════════════════════════════════════════════
# CollinearityError
# ═══════════════════════════════════════════════════════════════════════


class TestCollinearityError:
    """CollinearityError carries matrix diagnostic attributes."""

    def test_all_attributes(self):
        err = CollinearityError(
            "X: rank-deficient",
            matrix_name="X",
            rank=1,
            expected_rank=2,
            columns=("age", "age_months"),
        )
        assert str(err) == "X: rank-deficient"
        assert err.matrix_name == "X"
        assert err.rank == 1
        assert err.expected_rank == 2
        assert err.columns == ("age", "age_months")

    def test_defaults_are_none(self):
        err = CollinearityError("singular")
        assert err.matrix_name is None
        assert err.rank is None
        assert err.expected_rank is None
        assert err.columns is None


# ═══════════════════════════════════════════════════════════════════════
# NonConvergenceError
# ═══════════════════════════════════════════════════════════════════════


class TestNonConvergenceError:
    """NonConvergenceError carries iteration diagnostics."""

    def test_all_attributes(self):
        err = NonConvergenceError(
            "Newton-Raphson did not converge",
            iterations=20,
            final_change=1e-4,
            threshold=1e-9,
        )
        assert err.iterations == 20
        assert err.final_change == 1e-4
        assert err.threshold == 1e-9

    def test_required_iterations(self):
        """iterations is required (positional)."""
        err = NonConvergenceError("failed", 7)
        assert err.iterations == 7

    def test_defaults_are_none(self):
        err = NonConvergenceError("failed", iterations=3)
        assert err.final_change is None
        assert err.threshold is None

    def test_top_level_export(self):
        import dentalsurv
        assert dentalsurv.NonConvergenceError is NonConvergenceError
        assert dentalsurv.DentalSurvError is DentalSurvError
