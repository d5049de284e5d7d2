"""Conversion of inferred networks into weighted regulons.

A regulon table has one row per (regulator, target) edge with columns
``regulator``, ``target``, ``mode`` (signed association in [-1, 1]) and
``likelihood`` (edge confidence in [0, 1]).
"""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd
from scipy import stats

from ...errors import DimensionError, ParameterError
from ...utils.stats import row_zscore

logger = logging.getLogger(__name__)

REGULON_COLUMNS = ["regulator", "target", "mode", "likelihood"]


def regulon_from_edges(edges: pd.DataFrame, expression: pd.DataFrame) -> pd.DataFrame:
    """Build a regulon table from an ARACNe edge list.

    ``mode`` is the Spearman correlation between regulator and target
    across the samples of ``expression`` (0 when either gene is constant);
    ``likelihood`` is the edge's mutual information scaled by the largest
    mutual information kept.

    Parameters
    ----------
    edges : pd.DataFrame
        Columns ``regulator``, ``target``, ``mi``
    expression : pd.DataFrame
        Expression matrix (genes x samples) the network was inferred from

    Returns
    -------
    pd.DataFrame
        Regulon table; edges whose genes are absent from ``expression`` are
        dropped

    Raises
    ------
    DimensionError
        If ``expression`` has fewer than 2 samples
    """
    if expression.shape[1] < 2:
        raise DimensionError("Spearman correlation needs at least 2 samples")

    known = edges["regulator"].isin(expression.index) & edges["target"].isin(expression.index)
    kept = edges.loc[known].reset_index(drop=True)
    dropped = len(edges) - len(kept)
    if dropped:
        logger.info(f"Dropped {dropped} edges with genes missing from the expression matrix")
    if kept.empty:
        return pd.DataFrame(columns=REGULON_COLUMNS)

    genes = pd.Index(pd.unique(pd.concat([kept["regulator"], kept["target"]])))
    ranks = pd.DataFrame(
        stats.rankdata(expression.loc[genes].to_numpy(dtype=float), axis=1),
        index=genes,
        columns=expression.columns,
    )
    # Pearson on standardised ranks is the mean product
    z = row_zscore(ranks).to_numpy()
    reg = genes.get_indexer(kept["regulator"])
    tgt = genes.get_indexer(kept["target"])
    mode = np.clip((z[reg] * z[tgt]).mean(axis=1), -1.0, 1.0)

    mi = kept["mi"].to_numpy(dtype=float)
    max_mi = mi.max()
    likelihood = mi / max_mi if max_mi > 0 else np.ones_like(mi)

    return pd.DataFrame(
        {
            "regulator": kept["regulator"].to_numpy(),
            "target": kept["target"].to_numpy(),
            "mode": mode,
            "likelihood": likelihood,
        }
    )


def prune_regulon(network: pd.DataFrame, max_targets: int = 50) -> pd.DataFrame:
    """Keep each regulator's ``max_targets`` highest-likelihood targets.

    Ties keep the input order. Regulator order follows first appearance.
    """
    if max_targets < 1:
        raise ParameterError(f"max_targets must be positive, got {max_targets}")
    ranked = network.sort_values("likelihood", ascending=False, kind="stable")
    pruned = ranked.groupby("regulator", sort=False).head(max_targets)
    order = {r: i for i, r in enumerate(pd.unique(network["regulator"]))}
    pruned = pruned.assign(_order=pruned["regulator"].map(order))
    pruned = pruned.sort_values("_order", kind="stable").drop(columns="_order")
    logger.debug(f"Pruned regulon from {len(network)} to {len(pruned)} edges")
    return pruned.reset_index(drop=True)
