"""Integration of activity scores into per-feature summaries.

Provides Stouffer integration (overall and per cluster), per-feature
one-way ANOVA across clusters, bootstrap t-tests per cluster, and top-N
selection helpers used to call master regulators.
"""

from __future__ import annotations

import logging
import warnings
from typing import Any, Dict, Hashable, List, Mapping, Optional, Union

import numpy as np
import pandas as pd
from scipy import stats

from ...errors import AlignmentError, ParameterError
from ...utils.stats import WeightsLike, align_weights, descending_order, stouffer_combine

logger = logging.getLogger(__name__)

ClusteringLike = Union[pd.Series, Mapping[str, Any]]


def _cluster_labels(matrix: pd.DataFrame, clustering: ClusteringLike) -> pd.Series:
    """Labels for every column of ``matrix``, in column order."""
    labels = pd.Series(clustering)
    missing = [s for s in matrix.columns if s not in labels.index]
    if missing:
        raise AlignmentError(
            f"{len(missing)} sample(s) have no cluster label: {missing[:5]}"
        )
    return labels.loc[list(matrix.columns)]


def _sorted_labels(labels: pd.Series) -> List[Hashable]:
    unique = list(pd.unique(labels))
    try:
        return sorted(unique)
    except TypeError:
        return sorted(unique, key=str)


def stouffer_integrate(
    matrix: pd.DataFrame,
    weights: Optional[WeightsLike] = None,
) -> pd.Series:
    """Weighted Stouffer integration of each row.

    Computes ``sum(row * w) / sqrt(sum(w ** 2))``. Missing (NaN) entries
    contribute neither value nor weight.

    Parameters
    ----------
    matrix : pd.DataFrame
        Activity matrix (features x samples)
    weights : Series, Mapping or sequence, optional
        Per-sample weights (default: 1 for every sample). Keyed weights
        are realigned to the columns.

    Returns
    -------
    pd.Series
        Integrated score per feature
    """
    w = align_weights(weights, matrix.columns)
    combined = stouffer_combine(matrix.to_numpy(dtype=float), w, axis=1)
    return pd.Series(combined, index=matrix.index, name="stouffer")


def stouffer_integrate_by_cluster(
    matrix: pd.DataFrame,
    clustering: ClusteringLike,
    weights: Optional[WeightsLike] = None,
) -> Dict[Hashable, pd.Series]:
    """Stouffer integration run independently for every cluster.

    Parameters
    ----------
    matrix : pd.DataFrame
        Activity matrix (features x samples)
    clustering : Series or Mapping
        Sample id -> cluster label; every column needs a label
    weights : Series, Mapping or sequence, optional
        Per-sample weights; a plain sequence must follow the column order.
        Each cluster uses the weights of its own samples.

    Returns
    -------
    Dict[label, pd.Series]
        Integrated scores per cluster, in sorted label order
    """
    labels = _cluster_labels(matrix, clustering)
    w = pd.Series(align_weights(weights, matrix.columns), index=matrix.columns)

    out: Dict[Hashable, pd.Series] = {}
    for label in _sorted_labels(labels):
        samples = list(labels.index[(labels == label).to_numpy()])
        out[label] = stouffer_integrate(matrix.loc[:, samples], w.loc[samples])
    return out


def anova_pvalues(
    matrix: pd.DataFrame,
    clustering: ClusteringLike,
    adjust: Optional[str] = None,
) -> pd.Series:
    """One-way ANOVA of every row against the cluster labels.

    Parameters
    ----------
    matrix : pd.DataFrame
        Activity matrix (features x samples)
    clustering : Series or Mapping
        Sample id -> cluster label; every column needs a label
    adjust : str, optional
        Multiple-testing correction passed to
        ``statsmodels.stats.multitest.multipletests`` (e.g. ``"fdr_bh"``)

    Returns
    -------
    pd.Series
        p-value per feature (NaN for rows with no within-group variance)

    Raises
    ------
    ParameterError
        If fewer than two distinct labels are present
    """
    labels = _cluster_labels(matrix, clustering)
    groups = _sorted_labels(labels)
    if len(groups) < 2:
        raise ParameterError(
            f"ANOVA needs at least 2 cluster labels among the samples, got {len(groups)}"
        )

    values = matrix.to_numpy(dtype=float)
    samples = [values[:, (labels == g).to_numpy()] for g in groups]
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", RuntimeWarning)
        warnings.simplefilter("ignore", getattr(stats, "ConstantInputWarning", RuntimeWarning))
        warnings.simplefilter("ignore", getattr(stats, "DegenerateDataWarning", RuntimeWarning))
        _, pvals = stats.f_oneway(*samples, axis=1)

    pvals = np.asarray(pvals, dtype=float)
    if adjust:
        from statsmodels.stats.multitest import multipletests

        finite = np.isfinite(pvals)
        if finite.any():
            pvals = pvals.copy()
            pvals[finite] = multipletests(pvals[finite], method=adjust)[1]

    return pd.Series(pvals, index=matrix.index, name="anova_p")


def bootstrap_ttest_mrs(
    matrix: pd.DataFrame,
    clustering: ClusteringLike,
    n_bootstrap: int = 100,
    rng: Optional[np.random.Generator] = None,
) -> Dict[Hashable, pd.Series]:
    """Bootstrapped Welch t-tests of each cluster against all other samples.

    For every cluster and bootstrap round, the in-cluster and out-of-cluster
    samples are each resampled with replacement and compared per feature
    (``scipy.stats.ttest_ind`` with ``equal_var=False``). The per-feature
    p-values are averaged over rounds.

    Parameters
    ----------
    matrix : pd.DataFrame
        Activity matrix (features x samples)
    clustering : Series or Mapping
        Sample id -> cluster label; every column needs a label
    n_bootstrap : int
        Number of bootstrap rounds
    rng : np.random.Generator, optional
        Resampling generator (default: seeded with 0)

    Returns
    -------
    Dict[label, pd.Series]
        Mean p-value per feature, sorted ascending, per cluster in sorted
        label order. Features whose test is undefined in every round are
        dropped.

    Raises
    ------
    ParameterError
        If ``n_bootstrap < 1``, fewer than two labels are present, or a
        cluster or its complement has fewer than two samples
    """
    if n_bootstrap < 1:
        raise ParameterError(f"n_bootstrap must be positive, got {n_bootstrap}")
    labels = _cluster_labels(matrix, clustering)
    groups = _sorted_labels(labels)
    if len(groups) < 2:
        raise ParameterError("Bootstrap t-test needs at least 2 cluster labels")
    if rng is None:
        rng = np.random.default_rng(0)

    values = matrix.to_numpy(dtype=float)
    out: Dict[Hashable, pd.Series] = {}
    for label in groups:
        in_mask = (labels == label).to_numpy()
        in_vals, out_vals = values[:, in_mask], values[:, ~in_mask]
        n_in, n_out = in_vals.shape[1], out_vals.shape[1]
        if n_in < 2 or n_out < 2:
            raise ParameterError(
                f"Cluster {label!r} and its complement need at least 2 samples each "
                f"(got {n_in} and {n_out})"
            )

        rounds = np.empty((n_bootstrap, values.shape[0]))
        for b in range(n_bootstrap):
            a = in_vals[:, rng.integers(0, n_in, n_in)]
            c = out_vals[:, rng.integers(0, n_out, n_out)]
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", RuntimeWarning)
                _, rounds[b] = stats.ttest_ind(a, c, axis=1, equal_var=False)

        with warnings.catch_warnings():
            warnings.simplefilter("ignore", RuntimeWarning)
            mean_p = np.nanmean(rounds, axis=0)
        mean = pd.Series(mean_p, index=matrix.index, name="bootstrap_p")
        out[label] = mean.iloc[descending_order(-mean.to_numpy())]
        logger.debug(f"Cluster {label}: {n_in} vs {n_out} samples, {n_bootstrap} rounds")
    return out


def select_top(
    scores: pd.Series,
    n: int,
    include_bottom: bool = False,
    strict: bool = False,
) -> pd.Series:
    """Top ``n`` features by score, optionally followed by the bottom ``n``.

    Scores are sorted descending (stable; non-finite values dropped). When
    fewer than ``n`` features exist the result is truncated, unless
    ``strict`` is set.

    Parameters
    ----------
    scores : pd.Series
        Score per feature
    n : int
        Number of features from each end
    include_bottom : bool
        Append the ``n`` lowest-scoring features (in descending order)
    strict : bool
        Raise instead of truncating when ``n`` exceeds the feature count

    Returns
    -------
    pd.Series
        Selected scores

    Raises
    ------
    ParameterError
        If ``n`` is negative, or exceeds the feature count with ``strict``
    """
    if n < 0:
        raise ParameterError(f"n must be non-negative, got {n}")
    ordered = scores.iloc[descending_order(scores.to_numpy())]
    if strict and n > len(ordered):
        raise ParameterError(
            f"Requested top {n} features but only {len(ordered)} are available"
        )

    top = ordered.iloc[:n]
    if not include_bottom:
        return top
    bottom = ordered.iloc[len(ordered) - min(n, len(ordered)):]
    return pd.concat([top, bottom])


def per_sample_top(matrix: pd.DataFrame, n: int) -> List[Hashable]:
    """Union of each sample's top ``n`` features, de-duplicated.

    Parameters
    ----------
    matrix : pd.DataFrame
        Activity matrix (features x samples)
    n : int
        Features taken per sample

    Returns
    -------
    List
        Feature ids in first-seen order (sample by sample, rank by rank)
    """
    if n < 0:
        raise ParameterError(f"n must be non-negative, got {n}")
    seen: Dict[Hashable, None] = {}
    values = matrix.to_numpy(dtype=float)
    for j in range(values.shape[1]):
        for i in descending_order(values[:, j])[:n]:
            seen.setdefault(matrix.index[i], None)
    return list(seen)
