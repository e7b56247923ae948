"""
Exception hierarchy for dentalsurv.

All exceptions inherit from DentalSurvError so callers can catch any
library-specific failure in one place. Every computation here is a
deterministic function of its input, so none of these are retried.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages name the offending argument or stratum
    - Never catch and re-raise with less information
"""


class DentalSurvError(Exception):
    """Base exception for all dentalsurv errors."""
    pass


class ValidationError(DentalSurvError):
    """
    Input validation failed.

    Raised when user-provided inputs fail validation checks.
    """
    pass


class InvalidInputError(ValidationError, ValueError):
    """
    Malformed subject records or options.

    Negative or non-finite times, event indicators outside {0, 1},
    missing stratum labels, unknown option values. Also a ValueError so
    that generic callers keep working.
    """
    pass


class DimensionError(InvalidInputError):
    """
    Array dimensions are incorrect or inconsistent.

    Raised when array shapes don't match expected dimensions or
    when multiple arrays have inconsistent lengths.
    """
    pass


class InsufficientDataError(ValidationError):
    """
    Not enough data for the requested computation.

    Raised for empty strata, fewer than two groups in a comparison,
    or a Cox fit without any events.

    Attributes:
        stratum: Label of the offending stratum, if one is to blame
    """

    def __init__(self, message: str, stratum=None):
        super().__init__(message)
        self.stratum = stratum


class NumericalError(DentalSurvError):
    """
    Numerical computation failed.

    Base class for errors arising from numerical issues during computation.
    """
    pass


class CollinearityError(NumericalError):
    """
    Covariate design matrix is rank-deficient.

    Attributes:
        matrix_name: Name/description of the problematic matrix
        rank: Numerical rank
        expected_rank: Rank required for an identifiable fit
        columns: Names of the columns involved, if known
    """

    def __init__(
        self,
        message: str,
        matrix_name: str | None = None,
        rank: int | None = None,
        expected_rank: int | None = None,
        columns: tuple[str, ...] | None = None,
    ):
        super().__init__(message)
        self.matrix_name = matrix_name
        self.rank = rank
        self.expected_rank = expected_rank
        self.columns = columns


class NonConvergenceError(DentalSurvError):
    """
    Iterative algorithm failed to converge.

    Raised when Newton-Raphson does not meet its convergence criterion
    within the maximum number of iterations.

    Attributes:
        iterations: Number of iterations completed
        final_change: Final relative change in the objective
        threshold: The convergence threshold that was not met
    """

    def __init__(
        self,
        message: str,
        iterations: int,
        final_change: float | None = None,
        threshold: float | None = None,
    ):
        super().__init__(message)
        self.iterations = iterations
        self.final_change = final_change
        self.threshold = threshold
