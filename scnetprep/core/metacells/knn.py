"""K-nearest-neighbour pooling of expression profiles into meta-cells.

Each meta-cell is the sum of a focal sample's raw profile and the profiles
of its ``k`` nearest neighbours under a dissimilarity matrix. Summation (not
averaging) is intended: downstream CPM normalization restores comparability.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
import pandas as pd
from scipy import sparse

from ...errors import ParameterError
from ..preprocessing.distance import align_dissimilarity


def subsample_columns(
    matrix: pd.DataFrame,
    subset_size: Optional[int],
    rng: np.random.Generator,
) -> pd.DataFrame:
    """Draw ``subset_size`` columns uniformly without replacement.

    All columns are returned unchanged when ``subset_size`` is None or not
    smaller than the number of columns.
    """
    n = matrix.shape[1]
    if subset_size is None or subset_size >= n:
        return matrix
    if subset_size < 0:
        raise ParameterError(f"subset_size must be non-negative, got {subset_size}")
    picked = rng.choice(n, size=int(subset_size), replace=False)
    return matrix.iloc[:, picked]


class KNNPooler:
    """Meta-cell construction by neighbour summation.

    Parameters
    ----------
    logger : logging.Logger, optional
        Logger instance

    Example
    -------
    >>> from scnetprep.core.metacells import KNNPooler
    >>> pooler = KNNPooler()
    >>> meta = pooler.pool(counts, dist, k=10, subset_size=200,
    ...                    rng=np.random.default_rng(0))
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def _check_k(k: int, n_samples: int) -> int:
        if int(k) != k or k < 0:
            raise ParameterError(f"Number of neighbours must be a non-negative integer, got {k}")
        k = int(k)
        if k > 0 and k >= n_samples - 1:
            raise ParameterError(
                f"Number of neighbours k={k} must be smaller than n_samples - 1 "
                f"(n_samples={n_samples})"
            )
        return k

    def neighbor_indices(self, dissimilarity: np.ndarray, k: int) -> np.ndarray:
        """Positions of each sample's ``k`` nearest neighbours.

        Row ``i`` holds positions 1..k of a stable ascending sort of
        ``dissimilarity[i]``; position 0 is taken to be the sample itself.

        Returns
        -------
        np.ndarray
            Integer array of shape (n_samples, k)
        """
        order = np.argsort(dissimilarity, axis=1, kind="stable")
        return order[:, 1 : k + 1]

    def neighbors(self, dissimilarity: pd.DataFrame, k: int) -> pd.DataFrame:
        """Neighbour table by sample id.

        Parameters
        ----------
        dissimilarity : pd.DataFrame
            Square samples x samples dissimilarity
        k : int
            Number of neighbours

        Returns
        -------
        pd.DataFrame
            Rows = samples, columns ``nn_1`` .. ``nn_k`` = neighbour ids
        """
        k = self._check_k(k, dissimilarity.shape[0])
        idx = self.neighbor_indices(dissimilarity.to_numpy(dtype=float), k)
        labels = np.asarray(dissimilarity.columns)
        return pd.DataFrame(
            labels[idx],
            index=dissimilarity.index,
            columns=[f"nn_{j + 1}" for j in range(k)],
        )

    def pool(
        self,
        matrix: pd.DataFrame,
        dissimilarity: pd.DataFrame,
        k: int,
        subset_size: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> pd.DataFrame:
        """Build the meta-cell matrix.

        Parameters
        ----------
        matrix : pd.DataFrame
            Raw counts (genes x samples)
        dissimilarity : pd.DataFrame
            Samples x samples dissimilarity covering every column of ``matrix``
        k : int
            Number of neighbours per meta-cell; 0 returns the input unchanged
        subset_size : int, optional
            Number of meta-cells to draw; all kept when None or >= n_samples
        rng : np.random.Generator, optional
            Generator used for subsampling (default: seeded with 0)

        Returns
        -------
        pd.DataFrame
            Meta-cell matrix (genes x meta-cells), column ``i`` named after
            its focal sample

        Raises
        ------
        AlignmentError
            If the dissimilarity lacks any sample of ``matrix``
        ParameterError
            If ``k`` is negative or ``k >= n_samples - 1``
        """
        n = matrix.shape[1]
        k = self._check_k(k, n)
        dist = align_dissimilarity(dissimilarity, matrix.columns)

        if k == 0:
            pooled = matrix.copy()
        else:
            idx = self.neighbor_indices(dist.to_numpy(), k)

            # membership[j, i] = times sample j is summed into meta-cell i
            members = np.concatenate([np.arange(n), idx.ravel()])
            focal = np.concatenate([np.arange(n), np.repeat(np.arange(n), k)])
            membership = sparse.csr_matrix(
                (np.ones(members.size), (members, focal)), shape=(n, n)
            )
            values = matrix.to_numpy(dtype=float)
            summed = np.asarray(membership.T.dot(values.T)).T
            pooled = pd.DataFrame(summed, index=matrix.index, columns=matrix.columns)
            self.logger.debug(f"Pooled {n} samples with k={k}")

        if rng is None:
            rng = np.random.default_rng(0)
        return subsample_columns(pooled, subset_size, rng)
