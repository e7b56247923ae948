"""
Input validation utilities for dentalsurv.

These validators follow the "fail fast, fail loud" principle. They raise
immediately with clear error messages rather than silently correcting
or making assumptions about user intent.

Design principles:
    - No silent type coercion (except np.asarray on array-likes)
    - Clear, actionable error messages with actual values
    - Each function validates ONE thing
    - Parameter names included in all error messages
"""

from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from dentalsurv.core.exceptions import (
    CollinearityError,
    InvalidInputError,
)


def check_array(
    array: ArrayLike,
    name: str,
) -> NDArray[np.floating[Any]]:
    """
    Validate and convert input to a float64 numpy array.

    Booleans and integers are accepted and converted. Object, string and
    datetime inputs are rejected.

    Args:
        array: Input to validate
        name: Parameter name for error messages

    Returns:
        numpy.ndarray of dtype float64

    Raises:
        InvalidInputError: If input cannot be converted to numeric array
    """
    try:
        result = np.asarray(array)
    except (ValueError, TypeError) as e:
        raise InvalidInputError(f"{name}: cannot convert to array: {e}") from e

    if result.dtype == object:
        raise InvalidInputError(
            f"{name}: converted to object dtype, indicating mixed types or non-numeric data"
        )

    if not (np.issubdtype(result.dtype, np.number) or result.dtype == np.bool_):
        raise InvalidInputError(
            f"{name}: non-numeric dtype {result.dtype}, expected numeric data"
        )

    return result.astype(np.float64)


def check_finite(array: NDArray[np.floating[Any]], name: str) -> None:
    """
    Verify array contains no NaN or Inf values.

    Raises:
        InvalidInputError: If array contains non-finite values
    """
    if not np.all(np.isfinite(array)):
        n_nan = int(np.sum(np.isnan(array)))
        n_inf = int(np.sum(np.isinf(array)))
        raise InvalidInputError(
            f"{name}: contains non-finite values ({n_nan} NaN, {n_inf} Inf)"
        )


def check_non_negative(array: NDArray[np.floating[Any]], name: str) -> None:
    """
    Verify every value is >= 0.

    Raises:
        InvalidInputError: If any value is negative
    """
    negative = np.flatnonzero(array < 0)
    if len(negative) > 0:
        raise InvalidInputError(
            f"{name} must be non-negative: {len(negative)} negative value(s), "
            f"first at index {int(negative[0])} ({array[negative[0]]:g})"
        )


def check_binary(array: NDArray[np.floating[Any]], name: str) -> None:
    """
    Verify array holds only 0 and 1.

    Raises:
        InvalidInputError: If any other value is present
    """
    unique = np.unique(array)
    if not np.all(np.isin(unique, [0.0, 1.0])):
        raise InvalidInputError(
            f"{name} must contain only 0 and 1, got unique values: {unique}"
        )


def check_conf_level(conf_level: float) -> None:
    """
    Verify a confidence level lies strictly between 0 and 1.

    Raises:
        InvalidInputError: If conf_level is outside (0, 1)
    """
    if not 0.0 < conf_level < 1.0:
        raise InvalidInputError(
            f"conf_level must be in (0, 1), got {conf_level}"
        )


def check_choice(value: str, choices: tuple[str, ...], name: str) -> None:
    """
    Verify a string option is one of the accepted values.

    Raises:
        InvalidInputError: If value is not in choices
    """
    if value not in choices:
        quoted = ", ".join(f"'{c}'" for c in choices)
        raise InvalidInputError(
            f"{name} must be one of {quoted}, got '{value}'"
        )


def check_column_rank(
    X: NDArray[np.floating[Any]],
    name: str,
    columns: tuple[str, ...] | None = None,
) -> None:
    """
    Verify a covariate matrix has full column rank after centring.

    Cox models have no intercept: a constant column is confounded with
    the baseline hazard, so rank is measured on the column-centred matrix.

    Args:
        X: 2D array to check
        name: Parameter name for error messages
        columns: Column names, reported in the error

    Raises:
        CollinearityError: If the centred matrix is rank-deficient
    """
    n, p = X.shape
    centred = X - X.mean(axis=0)
    rank = int(np.linalg.matrix_rank(centred)) if n > 0 else 0

    if rank < p:
        constant = np.flatnonzero(np.ptp(X, axis=0) == 0)
        detail = ""
        if len(constant) > 0:
            labels = [columns[i] if columns else str(i) for i in constant]
            detail = f" Constant column(s): {labels}."
        raise CollinearityError(
            f"{name}: rank-deficient (rank={rank}, expected={p}). "
            f"This indicates perfect multicollinearity.{detail}",
            matrix_name=name,
            rank=rank,
            expected_rank=p,
            columns=columns,
        )
