"""
Covariate design matrices for Cox regression.

Builds the (n, p) matrix R's model.matrix() would build for
coxph(Surv(time, event) ~ a + b + ...) with treatment contrasts:
- numeric columns enter as-is
- categorical, object and bool columns become 0/1 indicators for every
  level except the reference level
- columns are named R-style, term followed by level (e.g. "materialRMGI")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from dentalsurv.core.exceptions import CollinearityError, InvalidInputError


@dataclass(frozen=True)
class CovariateDesign:
    """Covariate matrix plus per-column labels."""

    X: NDArray
    names: tuple[str, ...]
    terms: tuple[str, ...]
    levels: tuple[Any, ...]
    references: tuple[Any, ...]


def build_design(
    data: pd.DataFrame,
    covariates: Sequence[str],
    reference: Mapping[str, Any] | None = None,
) -> CovariateDesign:
    """Build a treatment-coded covariate matrix from a DataFrame.

    Parameters
    ----------
    data : DataFrame
        Subject-level data.
    covariates : sequence of str
        Column names, in the order the terms should appear.
    reference : mapping or None
        Reference level per categorical covariate. Defaults to the first
        category (categorical order, else sorted order).

    Returns
    -------
    CovariateDesign

    Raises
    ------
    InvalidInputError
        Unknown columns, missing values, or an absent reference level.
    CollinearityError
        A categorical covariate with a single observed level.
    """
    reference = dict(reference or {})

    if len(covariates) == 0:
        raise InvalidInputError("covariates must name at least one column")

    unknown = [c for c in list(covariates) + list(reference) if c not in data.columns]
    if unknown:
        raise InvalidInputError(
            f"columns {unknown} not found in data; available: {list(data.columns)}"
        )

    stray = [c for c in reference if c not in covariates]
    if stray:
        raise InvalidInputError(
            f"reference given for {stray}, which are not among the covariates"
        )

    columns: list[NDArray] = []
    names: list[str] = []
    terms: list[str] = []
    levels: list[Any] = []
    references: list[Any] = []

    for term in covariates:
        col = data[term].reset_index(drop=True)

        n_missing = int(col.isna().sum())
        if n_missing > 0:
            raise InvalidInputError(
                f"covariate '{term}' has {n_missing} missing value(s)"
            )

        if _is_numeric(col):
            if term in reference:
                raise InvalidInputError(
                    f"reference given for numeric covariate '{term}'"
                )
            columns.append(col.to_numpy(dtype=np.float64))
            names.append(term)
            terms.append(term)
            levels.append(None)
            references.append(None)
            continue

        categories = _categories(col)
        ref = reference.get(term, categories[0])
        if ref not in categories:
            raise InvalidInputError(
                f"reference level {ref!r} for '{term}' is not among "
                f"its levels {categories}"
            )
        if len(categories) < 2:
            raise CollinearityError(
                f"covariate '{term}' has a single level {categories[0]!r} "
                f"and is confounded with the baseline hazard",
                matrix_name=term,
                rank=0,
                expected_rank=1,
                columns=(term,),
            )

        values = col.astype(object).to_numpy()
        for level in categories:
            if level == ref:
                continue
            columns.append((values == level).astype(np.float64))
            names.append(f"{term}{level}")
            terms.append(term)
            levels.append(level)
            references.append(ref)

    return CovariateDesign(
        X=np.column_stack(columns),
        names=tuple(names),
        terms=tuple(terms),
        levels=tuple(levels),
        references=tuple(references),
    )


def _is_numeric(col: pd.Series) -> bool:
    return (
        pd.api.types.is_numeric_dtype(col.dtype)
        and not pd.api.types.is_bool_dtype(col.dtype)
    )


def _categories(col: pd.Series) -> list[Any]:
    """Observed levels: categorical order if declared, else sorted."""
    if isinstance(col.dtype, pd.CategoricalDtype):
        present = set(col.unique())
        return [c for c in col.cat.categories if c in present]
    return sorted(col.unique().tolist())
