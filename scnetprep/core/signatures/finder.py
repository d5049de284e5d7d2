"""Master-regulator calling on activity matrices."""

from __future__ import annotations

import logging
from typing import Dict, Hashable, List, Optional

import numpy as np
import pandas as pd

from ...utils.stats import WeightsLike
from .config import SignatureConfig
from .integration import (
    ClusteringLike,
    anova_pvalues,
    bootstrap_ttest_mrs,
    per_sample_top,
    select_top,
    stouffer_integrate,
    stouffer_integrate_by_cluster,
)


class MasterRegulatorFinder:
    """Calls master regulators with the configured list sizes.

    Parameters
    ----------
    config : SignatureConfig, optional
        ``num_mrs``, ``bottom``, ``strict``, ``cbc_num_mrs`` and bootstrap
        settings
    logger : logging.Logger, optional
        Logger instance

    Example
    -------
    >>> from scnetprep.core.signatures import MasterRegulatorFinder, SignatureConfig
    >>> finder = MasterRegulatorFinder(SignatureConfig(num_mrs=25, bottom=True))
    >>> mrs = finder.stouffer_mrs(activity)
    >>> per_cluster = finder.stouffer_mrs_by_cluster(activity, clusters)
    """

    def __init__(
        self,
        config: Optional[SignatureConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config or SignatureConfig()
        self.logger = logger or logging.getLogger(__name__)

    def _top(self, scores: pd.Series) -> pd.Series:
        return select_top(
            scores,
            self.config.num_mrs,
            include_bottom=self.config.bottom,
            strict=self.config.strict,
        )

    def stouffer_mrs(
        self,
        matrix: pd.DataFrame,
        weights: Optional[WeightsLike] = None,
    ) -> pd.Series:
        """Top regulators by Stouffer-integrated activity across all samples."""
        mrs = self._top(stouffer_integrate(matrix, weights))
        self.logger.info(f"Selected {len(mrs)} master regulators from {len(matrix)} features")
        return mrs

    def stouffer_mrs_by_cluster(
        self,
        matrix: pd.DataFrame,
        clustering: ClusteringLike,
        weights: Optional[WeightsLike] = None,
    ) -> Dict[Hashable, pd.Series]:
        """Top regulators of each cluster's Stouffer-integrated activity."""
        integrated = stouffer_integrate_by_cluster(matrix, clustering, weights)
        out = {label: self._top(scores) for label, scores in integrated.items()}
        for label, mrs in out.items():
            self.logger.info(f"  Cluster {label}: {len(mrs)} master regulators")
        return out

    def anova_mrs(self, matrix: pd.DataFrame, clustering: ClusteringLike) -> pd.Series:
        """Regulators that best separate the clusters.

        Ranked by ANOVA p-value, most significant first; ``bottom`` appends
        the least significant. Values are the p-values.
        """
        pvals = anova_pvalues(matrix, clustering, adjust=self.config.anova_adjust)
        ranked = self._top(-pvals)
        return pvals.loc[ranked.index]

    def cell_by_cell_mrs(self, matrix: pd.DataFrame, n: Optional[int] = None) -> List[Hashable]:
        """Union of each sample's top regulators (``cbc_num_mrs`` by default)."""
        n = self.config.cbc_num_mrs if n is None else n
        mrs = per_sample_top(matrix, n)
        self.logger.info(
            f"Cell-by-cell: {len(mrs)} unique regulators over {matrix.shape[1]} samples"
        )
        return mrs

    def bootstrap_mrs(
        self,
        matrix: pd.DataFrame,
        clustering: ClusteringLike,
        rng: Optional[np.random.Generator] = None,
    ) -> Dict[Hashable, pd.Series]:
        """First ``num_mrs`` regulators of each cluster's bootstrap t-test ranking."""
        if rng is None:
            rng = np.random.default_rng(self.config.random_seed)
        ranked = bootstrap_ttest_mrs(matrix, clustering, self.config.n_bootstrap, rng)
        n = self.config.num_mrs
        return {label: pvals.iloc[:n] for label, pvals in ranked.items()}
