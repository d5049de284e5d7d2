"""Library-size normalization.

Provides counts-per-million scaling of genes x samples matrices.
"""

from typing import Optional

import numpy as np
import pandas as pd

from ...errors import DimensionError
from .config import NormalizationConfig


class Normalizer:
    """Column-wise library-size normalizer.

    Parameters
    ----------
    config : NormalizationConfig
        Normalization configuration

    Example
    -------
    >>> from scnetprep.core.preprocessing import Normalizer
    >>> cpm = Normalizer().cpm(counts)
    >>> bool(np.allclose(cpm.sum(axis=0), 1e6))
    True
    """

    def __init__(self, config: Optional[NormalizationConfig] = None):
        self.config = config or NormalizationConfig()

    def cpm(self, matrix: pd.DataFrame) -> pd.DataFrame:
        """Scale every column to sum to ``config.scale`` (1e6 by default).

        Parameters
        ----------
        matrix : pd.DataFrame
            Non-negative counts (genes x samples)

        Returns
        -------
        pd.DataFrame
            Normalized matrix with the same index and columns

        Raises
        ------
        DimensionError
            If any column sums to zero
        """
        values = matrix.to_numpy(dtype=float)
        col_sums = values.sum(axis=0)
        zero = np.flatnonzero(col_sums == 0)
        if zero.size:
            names = [str(matrix.columns[i]) for i in zero[:5]]
            raise DimensionError(
                f"Cannot normalize: {zero.size} column(s) sum to zero ({names})"
            )
        scaled = values * (self.config.scale / col_sums)
        return pd.DataFrame(scaled, index=matrix.index, columns=matrix.columns)
