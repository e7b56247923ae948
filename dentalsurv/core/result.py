"""
Generic result container for all dentalsurv computations.

Every fit (Kaplan-Meier, log-rank, Cox, cohort description) returns its
domain payload inside this envelope, so timing, warnings and metadata
are handled the same way everywhere.

Design decisions:
    - Generic over parameter payload P
    - info dict for flexible metadata (method, ties, iterations)
    - timing is optional (don't burden unit tests)
    - Immutable (frozen=True): results are never mutated after creation
"""

from dataclasses import dataclass, field
from typing import TypeVar, Generic, Any

P = TypeVar('P')  # Parameter payload type


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable result envelope for survival computations.

    Attributes:
        params: Domain-specific payload (curves, test statistic, coefficients)
        info: Structured metadata (method, convergence, diagnostics)
        timing: Execution timing breakdown, or None if not measured
        backend_name: Identifier of the routine that produced this result
        warnings: Non-fatal issues encountered during computation

    Examples:
        >>> Result(
        ...     params=KMParams(curves=(curve,), ...),
        ...     info={'method': 'Kaplan-Meier', 'n_strata': 1},
        ...     timing={'total_seconds': 0.001},
        ...     backend_name='cpu_km',
        ...     warnings=('1 event recorded at time 0',),
        ... )
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def has_warning(self, substring: str) -> bool:
        """Check if any warning contains the given substring."""
        return any(substring in w for w in self.warnings)
