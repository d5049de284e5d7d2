"""Statistical utilities for scnetprep.

Provides the weighted Stouffer primitive shared by signature integration
and matrix merging, weight alignment, and row standardisation.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from ..errors import AlignmentError, ParameterError

WeightsLike = Union[pd.Series, Mapping[str, float], Sequence[float], np.ndarray]


def align_weights(
    weights: Optional[WeightsLike],
    labels: Sequence[str],
) -> np.ndarray:
    """Return weights as an array aligned to ``labels``.

    Parameters
    ----------
    weights : WeightsLike, optional
        Series or mapping keyed by label, or a plain sequence already in
        ``labels`` order. ``None`` means uniform weight 1.
    labels : Sequence[str]
        Target order (usually matrix columns).

    Returns
    -------
    np.ndarray
        Float weights, one per label.

    Raises
    ------
    AlignmentError
        If a keyed weight vector lacks any label.
    ParameterError
        If a plain sequence has the wrong length or weights are negative.
    """
    labels = list(labels)
    if weights is None:
        return np.ones(len(labels), dtype=float)

    if isinstance(weights, (pd.Series, Mapping)):
        series = pd.Series(weights, dtype=float)
        missing = [label for label in labels if label not in series.index]
        if missing:
            raise AlignmentError(
                f"Weights missing for {len(missing)} sample(s): {missing[:5]}"
            )
        arr = series.loc[labels].to_numpy(dtype=float)
    else:
        arr = np.asarray(list(weights), dtype=float)
        if arr.shape != (len(labels),):
            raise ParameterError(
                f"Expected {len(labels)} weights, got {arr.size}"
            )

    if np.any(arr < 0):
        raise ParameterError("Weights must be non-negative")
    return arr


def stouffer_combine(
    values: np.ndarray,
    weights: np.ndarray,
    axis: int = -1,
) -> np.ndarray:
    """Weighted Stouffer combination along ``axis``.

    Computes ``sum(values * w) / sqrt(sum(w ** 2))``. NaN entries are treated
    as absent: they contribute neither value nor weight, so each output cell
    is normalised by the weights of the measurements actually present.

    Parameters
    ----------
    values : np.ndarray
        Measurements; ``axis`` indexes the measurements being combined.
    weights : np.ndarray
        One weight per measurement along ``axis``.
    axis : int
        Axis to combine over.

    Returns
    -------
    np.ndarray
        Combined scores with ``axis`` removed. Cells with no present
        measurement (or zero total weight) are NaN.
    """
    values = np.asarray(values, dtype=float)
    weights = np.asarray(weights, dtype=float)
    axis = axis % values.ndim

    shape = [1] * values.ndim
    shape[axis] = weights.size
    w = weights.reshape(shape)

    present = np.isfinite(values)
    numerator = np.where(present, values * w, 0.0).sum(axis=axis)
    denominator = np.sqrt(np.where(present, w ** 2, 0.0).sum(axis=axis))

    with np.errstate(invalid="ignore", divide="ignore"):
        return np.where(denominator > 0, numerator / denominator, np.nan)


def row_zscore(matrix: pd.DataFrame) -> pd.DataFrame:
    """Standardise each row to zero mean and unit (population) variance.

    Constant rows become all zeros.
    """
    values = matrix.to_numpy(dtype=float)
    mean = values.mean(axis=1, keepdims=True)
    std = values.std(axis=1, keepdims=True)
    std[std == 0] = np.inf
    return pd.DataFrame(
        (values - mean) / std, index=matrix.index, columns=matrix.columns
    )


def descending_order(values: Iterable[float]) -> np.ndarray:
    """Stable descending argsort that drops non-finite values.

    Ties keep their original relative order.
    """
    arr = np.asarray(list(values), dtype=float)
    finite = np.flatnonzero(np.isfinite(arr))
    order = np.argsort(-arr[finite], kind="stable")
    return finite[order]
