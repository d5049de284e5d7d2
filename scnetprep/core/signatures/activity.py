"""Reference regulon activity primitive.

Scores each regulator in each sample as the weighted sum of its targets'
z-scores, normalised by the root-sum-square of the weights. Any callable
with the signature ``(expression, networks) -> DataFrame`` can replace it
in :class:`NetworkSelector`.
"""

from __future__ import annotations

import logging
from typing import List, Sequence, Union

import numpy as np
import pandas as pd
from scipy import sparse

from ...errors import ParameterError
from ...utils.stats import row_zscore
from .merge import integrate_matrices
from .regulon import REGULON_COLUMNS

logger = logging.getLogger(__name__)

NetworksLike = Union[pd.DataFrame, Sequence[pd.DataFrame]]


def _network_activity(z: pd.DataFrame, network: pd.DataFrame, min_targets: int) -> pd.DataFrame:
    edges = network.loc[network["target"].isin(z.index)]
    sizes = edges.groupby("regulator", sort=False)["target"].transform("size")
    edges = edges.loc[sizes >= min_targets]
    weights = (edges["mode"] * edges["likelihood"]).to_numpy(dtype=float)

    regulators = pd.Index(pd.unique(edges["regulator"]))
    if regulators.empty:
        return pd.DataFrame(columns=z.columns, dtype=float)

    W = sparse.csr_matrix(
        (weights, (regulators.get_indexer(edges["regulator"]), z.index.get_indexer(edges["target"]))),
        shape=(len(regulators), len(z.index)),
    )
    numerator = np.asarray(W.dot(z.to_numpy()))
    norm = np.sqrt(np.asarray(W.multiply(W).sum(axis=1)).ravel())

    # Regulators whose edges all carry zero weight have no defined score
    scored = norm > 0
    values = numerator[scored] / norm[scored, None]
    return pd.DataFrame(values, index=regulators[scored], columns=z.columns)


def regulon_activity(
    expression: pd.DataFrame,
    networks: NetworksLike,
    min_targets: int = 1,
) -> pd.DataFrame:
    """Infer regulator activity from one or more regulon tables.

    Parameters
    ----------
    expression : pd.DataFrame
        Expression matrix (genes x samples); rows are z-scored
    networks : DataFrame or sequence of DataFrames
        Regulon tables (``regulator``, ``target``, ``mode``, ``likelihood``)
    min_targets : int
        Regulators with fewer targets present in ``expression`` are skipped

    Returns
    -------
    pd.DataFrame
        Activity (regulators x samples). Several networks are combined by
        weighted Stouffer integration over the networks defining each
        regulator.

    Raises
    ------
    ParameterError
        If no network is given or a table lacks regulon columns
    """
    if isinstance(networks, pd.DataFrame):
        networks = [networks]
    networks: List[pd.DataFrame] = list(networks)
    if not networks:
        raise ParameterError("At least one network is required")
    for net in networks:
        missing = [c for c in REGULON_COLUMNS if c not in net.columns]
        if missing:
            raise ParameterError(f"Network table missing columns {missing}")

    z = row_zscore(expression)
    results = [_network_activity(z, net, min_targets) for net in networks]
    if len(results) == 1:
        return results[0]
    return integrate_matrices(results)
