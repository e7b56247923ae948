"""
Core infrastructure for dentalsurv.

Shared abstractions used by the survival module.

Key components:
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
    validation: Input validators
    timing: Wall-clock timer
"""

from dentalsurv.core.result import Result
from dentalsurv.core.exceptions import (
    DentalSurvError,
    ValidationError,
    InvalidInputError,
    DimensionError,
    InsufficientDataError,
    NumericalError,
    CollinearityError,
    NonConvergenceError,
)

__all__ = [
    # Result
    "Result",
    # Exceptions
    "DentalSurvError",
    "ValidationError",
    "InvalidInputError",
    "DimensionError",
    "InsufficientDataError",
    "NumericalError",
    "CollinearityError",
    "NonConvergenceError",
]
