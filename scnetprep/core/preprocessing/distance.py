"""Sample dissimilarity matrices for neighbour search.

Builds ``(1 - pearson) / 2`` dissimilarities between the columns of an
expression matrix, and validates/realigns dissimilarities computed
elsewhere (for example from protein activity).
"""

from typing import Sequence

import numpy as np
import pandas as pd

from ...errors import AlignmentError, DimensionError


class DistanceMatrixBuilder:
    """Builder and validator for sample x sample dissimilarity matrices.

    Example
    -------
    >>> from scnetprep.core.preprocessing import DistanceMatrixBuilder
    >>> builder = DistanceMatrixBuilder()
    >>> dist = builder.pearson_dissimilarity(cpm_matrix)
    >>> dist = builder.from_precomputed(viper_dist, cpm_matrix.columns)
    """

    def pearson_dissimilarity(self, matrix: pd.DataFrame) -> pd.DataFrame:
        """Compute ``(1 - r) / 2`` between all pairs of columns.

        Parameters
        ----------
        matrix : pd.DataFrame
            Expression matrix (genes x samples)

        Returns
        -------
        pd.DataFrame
            Symmetric samples x samples matrix in [0, 1] with zero diagonal

        Raises
        ------
        DimensionError
            If there are fewer than 2 rows or columns, or a column is constant
        """
        n_rows, n_cols = matrix.shape
        if n_rows < 2 or n_cols < 2:
            raise DimensionError(
                f"Correlation needs at least 2 genes and 2 samples, got {matrix.shape}"
            )

        values = matrix.to_numpy(dtype=float)
        constant = np.flatnonzero(values.std(axis=0) == 0)
        if constant.size:
            names = [str(matrix.columns[i]) for i in constant[:5]]
            raise DimensionError(
                f"Correlation undefined for {constant.size} constant column(s): {names}"
            )

        corr = np.corrcoef(values, rowvar=False)
        dist = np.clip((1.0 - corr) / 2.0, 0.0, 1.0)
        dist = (dist + dist.T) / 2.0
        np.fill_diagonal(dist, 0.0)
        return pd.DataFrame(dist, index=matrix.columns, columns=matrix.columns)

    def from_precomputed(
        self,
        dissimilarity: pd.DataFrame,
        sample_ids: Sequence[str],
    ) -> pd.DataFrame:
        """Validate a precomputed dissimilarity and realign it to ``sample_ids``.

        Parameters
        ----------
        dissimilarity : pd.DataFrame
            Square labelled matrix (samples x samples)
        sample_ids : Sequence[str]
            Required sample order (usually expression matrix columns)

        Returns
        -------
        pd.DataFrame
            Dissimilarity restricted and reordered to ``sample_ids``

        Raises
        ------
        AlignmentError
            If labels disagree or any sample id is missing
        DimensionError
            If the matrix is not square or has negative entries
        """
        if dissimilarity.shape[0] != dissimilarity.shape[1]:
            raise DimensionError(
                f"Dissimilarity must be square, got {dissimilarity.shape}"
            )
        if set(dissimilarity.index) != set(dissimilarity.columns):
            raise AlignmentError("Dissimilarity row and column labels differ")

        return align_dissimilarity(dissimilarity, sample_ids)


def align_dissimilarity(
    dissimilarity: pd.DataFrame,
    sample_ids: Sequence[str],
) -> pd.DataFrame:
    """Reindex a dissimilarity matrix to exactly ``sample_ids`` (both axes).

    Raises
    ------
    AlignmentError
        If any sample id is missing from either axis
    DimensionError
        If any realigned entry is negative or missing
    """
    sample_ids = list(sample_ids)
    missing = [
        s for s in sample_ids
        if s not in dissimilarity.index or s not in dissimilarity.columns
    ]
    if missing:
        raise AlignmentError(
            f"{len(missing)} sample(s) missing from dissimilarity matrix: {missing[:5]}"
        )

    aligned = dissimilarity.loc[sample_ids, sample_ids].astype(float)
    values = aligned.to_numpy()
    if np.isnan(values).any():
        raise DimensionError("Dissimilarity matrix contains missing values")
    if (values < 0).any():
        raise DimensionError("Dissimilarity matrix contains negative values")
    return aligned
