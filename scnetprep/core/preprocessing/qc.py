"""Count-based quality control.

Removes low/high-count cells, rarely detected genes, and cells with a high
fraction of mitochondrial reads from a raw genes x cells count matrix.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from ...config import get_mito_genes
from .config import QCConfig


@dataclass
class QCResult:
    """Result from count filtering.

    Attributes
    ----------
    genes_total : int
        Genes before filtering
    genes_removed : int
        Genes removed
    cells_total : int
        Cells before filtering
    cells_removed : int
        Cells removed
    filtered_matrix : pd.DataFrame
        Filtered count matrix (genes x cells)
    """

    genes_total: int = 0
    genes_removed: int = 0
    cells_total: int = 0
    cells_removed: int = 0
    filtered_matrix: Optional[pd.DataFrame] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for reporting."""
        return {
            "genes_total": self.genes_total,
            "genes_removed": self.genes_removed,
            "cells_total": self.cells_total,
            "cells_removed": self.cells_removed,
        }


@dataclass
class MitoFilterResult:
    """Result from mitochondrial-fraction filtering.

    Attributes
    ----------
    cells_total : int
        Cells before filtering
    cells_kept : int
        Cells with mitochondrial fraction below the threshold
    threshold : float
        Threshold used
    mito_genes_found : List[str]
        Mitochondrial genes present in the matrix
    mito_fraction : pd.Series
        Per-cell mitochondrial fraction (NaN for cells with no counts)
    filtered_matrix : pd.DataFrame
        Matrix restricted to kept cells
    """

    cells_total: int = 0
    cells_kept: int = 0
    threshold: float = 0.10
    mito_genes_found: List[str] = field(default_factory=list)
    mito_fraction: Optional[pd.Series] = None
    filtered_matrix: Optional[pd.DataFrame] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for reporting."""
        return {
            "cells_total": self.cells_total,
            "cells_kept": self.cells_kept,
            "threshold": self.threshold,
            "n_mito_genes_found": len(self.mito_genes_found),
        }


class CountQC:
    """Count-matrix quality control filter.

    Parameters
    ----------
    config : QCConfig
        QC configuration
    logger : logging.Logger, optional
        Logger instance

    Example
    -------
    >>> from scnetprep.core.preprocessing import CountQC, QCConfig
    >>> qc = CountQC(QCConfig(min_col_sum=200, species="mouse"))
    >>> mito = qc.filter_mitochondrial(raw_counts)
    >>> result = qc.filter_counts(mito.filtered_matrix)
    """

    def __init__(
        self,
        config: Optional[QCConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config or QCConfig()
        self.logger = logger or logging.getLogger(__name__)

    def filter_counts(
        self,
        raw: pd.DataFrame,
        min_col_sum: Optional[float] = None,
        max_col_sum: Optional[float] = None,
        min_row_sum: Optional[float] = None,
    ) -> QCResult:
        """Filter cells by total count and genes by total count.

        Cells are kept when ``min_col_sum < total < max_col_sum``. Genes are
        kept when their total is at least ``min_row_sum``; the gene totals
        are taken from ``raw`` before any cell is removed unless
        ``config.row_sums_after_column_filter`` is set.

        Parameters
        ----------
        raw : pd.DataFrame
            Raw counts (genes x cells)
        min_col_sum : float, optional
            Lower cell-total bound (default from config)
        max_col_sum : float, optional
            Upper cell-total bound (default from config)
        min_row_sum : float, optional
            Gene-total bound (default from config)

        Returns
        -------
        QCResult
            Filtering result; empty matrices are allowed
        """
        if min_col_sum is None:
            min_col_sum = self.config.min_col_sum
        if max_col_sum is None:
            max_col_sum = self.config.max_col_sum
        if min_row_sum is None:
            min_row_sum = self.config.min_row_sum

        col_sums = raw.sum(axis=0)
        keep_cols = (col_sums > min_col_sum) & (col_sums < max_col_sum)
        filtered = raw.loc[:, keep_cols.to_numpy()]

        if self.config.row_sums_after_column_filter:
            row_sums = filtered.sum(axis=1)
        else:
            row_sums = raw.sum(axis=1)
        filtered = filtered.loc[(row_sums >= min_row_sum).to_numpy(), :]

        result = QCResult(
            genes_total=raw.shape[0],
            genes_removed=raw.shape[0] - filtered.shape[0],
            cells_total=raw.shape[1],
            cells_removed=raw.shape[1] - filtered.shape[1],
            filtered_matrix=filtered.copy(),
        )
        self.logger.info(
            f"Removed {result.genes_removed} genes and {result.cells_removed} cells."
        )
        return result

    @staticmethod
    def mito_fraction(raw: pd.DataFrame, mito_genes: Sequence[str]) -> pd.Series:
        """Compute the fraction of each cell's counts in mitochondrial genes.

        Parameters
        ----------
        raw : pd.DataFrame
            Raw counts (genes x cells)
        mito_genes : Sequence[str]
            Mitochondrial gene identifiers; genes absent from ``raw`` are ignored

        Returns
        -------
        pd.Series
            Fraction per cell, NaN where the cell has no counts
        """
        present = raw.index.intersection(pd.Index(mito_genes))
        totals = raw.sum(axis=0).astype(float)
        mito = raw.loc[present].sum(axis=0).astype(float)
        fraction = mito / totals.where(totals > 0)
        fraction.name = "mito_fraction"
        return fraction

    def filter_mitochondrial(
        self,
        raw: pd.DataFrame,
        namespace: Optional[str] = None,
        species: Optional[str] = None,
        threshold: Optional[float] = None,
    ) -> MitoFilterResult:
        """Remove cells whose mitochondrial fraction is at or above threshold.

        Parameters
        ----------
        raw : pd.DataFrame
            Raw counts (genes x cells)
        namespace : str, optional
            Identifier namespace (default from config)
        species : str, optional
            Species (default from config)
        threshold : float, optional
            Fraction threshold (default from config, 0.10)

        Returns
        -------
        MitoFilterResult
            Filtering result

        Raises
        ------
        ConfigurationError
            If the namespace/species combination has no gene list
        """
        namespace = namespace or self.config.namespace
        species = species or self.config.species
        if threshold is None:
            threshold = self.config.mito_threshold

        mito_genes = get_mito_genes(namespace, species)
        self.logger.info(
            f"Mitochondrial genes: namespace={namespace}, species={species}"
        )

        fraction = self.mito_fraction(raw, mito_genes)
        # NaN fractions compare False and are dropped
        keep = (fraction < threshold).to_numpy(dtype=bool)
        filtered = raw.loc[:, keep].copy()
        mito_set = set(mito_genes)
        found = [g for g in raw.index if g in mito_set]

        if not found:
            self.logger.warning(
                "No mitochondrial genes found in matrix; check namespace/species"
            )

        result = MitoFilterResult(
            cells_total=raw.shape[1],
            cells_kept=int(np.sum(keep)),
            threshold=float(threshold),
            mito_genes_found=found,
            mito_fraction=fraction,
            filtered_matrix=filtered,
        )
        self.logger.info(
            f"{result.cells_kept} out of {result.cells_total} cells survived "
            f"mitochondrial filtering (fraction < {threshold})"
        )
        return result
