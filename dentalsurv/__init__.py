"""
dentalsurv: time-to-event analysis for dental research.

The statistical core of a survival-analysis tutorial: Kaplan-Meier
curves and their summaries, log-rank comparisons, and Cox
proportional-hazards regression, with results matching R's survival
package.

Submodules:
    survival: Kaplan-Meier, summaries, log-rank, Cox PH, cohort description
    core: Result envelope, exceptions, validation
"""

__version__ = "0.1.0"

from dentalsurv import survival
from dentalsurv.core.exceptions import (
    DentalSurvError,
    InvalidInputError,
    InsufficientDataError,
    NonConvergenceError,
    CollinearityError,
)

__all__ = [
    "__version__",
    "survival",
    "DentalSurvError",
    "InvalidInputError",
    "InsufficientDataError",
    "NonConvergenceError",
    "CollinearityError",
]
