"""Merging of activity matrices.

Two strategies:

- priority merge: rows of a preferred matrix, completed with rows found
  only in a secondary matrix
- weighted integration: per-feature Stouffer combination over whichever
  matrices measure that feature
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from ...errors import AlignmentError, ParameterError
from ...utils.stats import stouffer_combine

logger = logging.getLogger(__name__)


def priority_merge(priority: pd.DataFrame, secondary: pd.DataFrame) -> pd.DataFrame:
    """Append the rows of ``secondary`` that ``priority`` lacks.

    Parameters
    ----------
    priority : pd.DataFrame
        Preferred matrix (features x samples); its rows are kept as-is
    secondary : pd.DataFrame
        Fallback matrix with the same sample columns

    Returns
    -------
    pd.DataFrame
        ``priority`` rows followed by secondary-only rows in their original
        order, with the column order of ``priority``

    Raises
    ------
    AlignmentError
        If the column sets differ
    """
    if set(priority.columns) != set(secondary.columns) or len(priority.columns) != len(
        secondary.columns
    ):
        only_p = [c for c in priority.columns if c not in secondary.columns]
        only_s = [c for c in secondary.columns if c not in priority.columns]
        raise AlignmentError(
            f"Cannot merge matrices with different samples "
            f"(only in priority: {only_p[:5]}, only in secondary: {only_s[:5]})"
        )

    extra = secondary.loc[~secondary.index.isin(priority.index), list(priority.columns)]
    logger.info(f"Priority merge: {len(priority)} + {len(extra)} rows")
    return pd.concat([priority, extra])


def integrate_matrices(
    matrices: Sequence[pd.DataFrame],
    weights: Optional[Sequence[float]] = None,
) -> pd.DataFrame:
    """Weighted Stouffer integration of several activity matrices.

    The output covers the union of features (first-seen order) and the
    samples of the first matrix. Each feature is integrated over only the
    matrices that contain it.

    Parameters
    ----------
    matrices : Sequence[pd.DataFrame]
        Activity matrices (features x samples); every matrix must contain
        the columns of the first
    weights : Sequence[float], optional
        One non-negative weight per matrix (default: 1 each)

    Returns
    -------
    pd.DataFrame
        Integrated matrix (union features x first-matrix samples)

    Raises
    ------
    ParameterError
        If no matrices are given or the weight count differs
    AlignmentError
        If a matrix lacks any sample of the first
    """
    matrices = list(matrices)
    if not matrices:
        raise ParameterError("At least one matrix is required")
    if weights is None:
        weights = [1.0] * len(matrices)
    weights = np.asarray(list(weights), dtype=float)
    if weights.shape != (len(matrices),):
        raise ParameterError(f"Expected {len(matrices)} weights, got {weights.size}")
    if np.any(weights < 0):
        raise ParameterError("Weights must be non-negative")

    samples = list(matrices[0].columns)
    for i, m in enumerate(matrices[1:], start=1):
        missing = [s for s in samples if s not in m.columns]
        if missing:
            raise AlignmentError(
                f"Matrix {i} lacks {len(missing)} sample(s) of the first: {missing[:5]}"
            )

    features: List = list(dict.fromkeys(f for m in matrices for f in m.index))
    # Absent features become NaN and drop out of the combination
    stacked = np.stack(
        [m.reindex(index=features, columns=samples).to_numpy(dtype=float) for m in matrices],
        axis=-1,
    )
    combined = stouffer_combine(stacked, weights, axis=-1)
    logger.info(
        f"Integrated {len(matrices)} matrices: {len(features)} features x {len(samples)} samples"
    )
    return pd.DataFrame(combined, index=features, columns=samples)
