"""
Meta-cell pipeline.

This module provides:
- MetaCellPipeline: mitochondrial filter -> count filter -> partition ->
  CPM -> dissimilarity -> KNN pooling -> CPM -> subsample
- MetaCellResult: per-partition meta-cell matrices and run diagnostics
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from ...errors import AlignmentError, ScNetPrepError
from ...io.logging import log_yaml, write_yaml
from ...io.tables import write_aracne_table
from ...pipeline import PipelineLogger, StageRunner
from ..preprocessing import (
    CountQC,
    DistanceMatrixBuilder,
    MitoFilterResult,
    NormalizationConfig,
    Normalizer,
    QCResult,
)
from .config import MetaCellRunConfig
from .knn import KNNPooler, subsample_columns

# Partition key used when no clustering is supplied
ALL_SAMPLES = "all"


@dataclass
class MetaCellResult:
    """Result from a meta-cell run.

    Attributes
    ----------
    matrices : Dict[str, pd.DataFrame]
        CPM-normalized meta-cell matrix per partition key
    neighbors : Dict[str, pd.DataFrame]
        Neighbour table per partition key
    qc : QCResult, optional
        Count filtering result
    mito : MitoFilterResult, optional
        Mitochondrial filtering result (None when disabled)
    clustered : bool
        Whether the run was partitioned by cluster
    stage_durations : Dict[str, float]
        Seconds per pipeline stage
    """

    matrices: Dict[str, pd.DataFrame] = field(default_factory=dict)
    neighbors: Dict[str, pd.DataFrame] = field(default_factory=dict)
    qc: Optional[QCResult] = None
    mito: Optional[MitoFilterResult] = None
    clustered: bool = False
    stage_durations: Dict[str, float] = field(default_factory=dict)

    @property
    def matrix(self) -> pd.DataFrame:
        """The single meta-cell matrix of an unclustered run."""
        if self.clustered:
            raise ValueError("Clustered run has one matrix per cluster; use .matrices")
        return self.matrices[ALL_SAMPLES]

    def output_name(self, key: str, prefix: str) -> str:
        """File name for one partition's ARACNe table."""
        if self.clustered:
            return f"{prefix}_clust-{key}-metaCells.tsv"
        return f"{prefix}_metacells.tsv"

    def summary(self) -> Dict[str, Any]:
        """Counts and shapes for reporting."""
        return {
            "clustered": self.clustered,
            "mito": self.mito.to_dict() if self.mito else None,
            "qc": self.qc.to_dict() if self.qc else None,
            "partitions": {
                str(key): {"genes": int(m.shape[0]), "metacells": int(m.shape[1])}
                for key, m in self.matrices.items()
            },
            "stage_durations": {k: round(v, 3) for k, v in self.stage_durations.items()},
        }

    def write(self, out_dir: Union[str, Path], prefix: str = "metacells") -> List[Path]:
        """Write one ARACNe table per partition plus a YAML run summary.

        Parameters
        ----------
        out_dir : str or Path
            Output directory (created if needed)
        prefix : str
            File name prefix

        Returns
        -------
        List[Path]
            Written table paths, in partition order
        """
        out_dir = Path(out_dir)
        paths = [
            write_aracne_table(matrix, out_dir / self.output_name(key, prefix))
            for key, matrix in self.matrices.items()
        ]
        write_yaml(out_dir / f"{prefix}_run.yaml", self.summary())
        return paths


def _sort_labels(labels: List[Any]) -> List[Any]:
    """Sort cluster labels naturally; mixed types fall back to string order."""
    try:
        return sorted(labels)
    except TypeError:
        return sorted(labels, key=str)


def _pool_partition(
    key: str,
    counts: pd.DataFrame,
    dissimilarity: Optional[pd.DataFrame],
    k: int,
    normalization: NormalizationConfig,
) -> Tuple[str, pd.DataFrame, pd.DataFrame]:
    """Normalize, build distances, pool and re-normalize one partition.

    Runs in a worker process when partitions are pooled in parallel.
    """
    normalizer = Normalizer(normalization)
    builder = DistanceMatrixBuilder()
    pooler = KNNPooler()

    try:
        cpm = normalizer.cpm(counts)
        if dissimilarity is None:
            dist = builder.pearson_dissimilarity(cpm)
        else:
            dist = builder.from_precomputed(dissimilarity, counts.columns)
        neighbors = pooler.neighbors(dist, k)
        meta = pooler.pool(counts, dist, k)
        meta_cpm = normalizer.cpm(meta)
    except ScNetPrepError as e:
        raise type(e)(f"partition {key!r}: {e.message}") from e

    return key, meta_cpm, neighbors


class MetaCellPipeline:
    """Orchestrates meta-cell construction.

    Steps: mitochondrial filter (optional) -> count filter -> optional
    partition by cluster -> per partition: CPM, dissimilarity (Pearson on
    CPM, or a precomputed matrix), KNN pooling of the filtered counts, CPM
    -> subsample with one run-wide generator.

    Parameters
    ----------
    config : MetaCellRunConfig, optional
        Run configuration
    logger : logging.Logger, optional
        Logger for progress messages
    pipeline_logger : PipelineLogger, optional
        Structured stage logger (stage start/complete/error)

    Example
    -------
    >>> from scnetprep.core.metacells import MetaCellPipeline, MetaCellRunConfig
    >>> config = MetaCellRunConfig()
    >>> config.metacells.num_neighbors = 15
    >>> config.metacells.subset_size = 200
    >>> result = MetaCellPipeline(config).run(raw_counts)
    >>> result.write("out/", prefix="dataset")
    """

    def __init__(
        self,
        config: Optional[MetaCellRunConfig] = None,
        logger: Optional[logging.Logger] = None,
        pipeline_logger: Optional[PipelineLogger] = None,
    ):
        self.config = config or MetaCellRunConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.pipeline_logger = pipeline_logger
        self.qc = CountQC(self.config.qc, logger=self.logger)

    def partition(
        self,
        counts: pd.DataFrame,
        clustering: Optional[Union[pd.Series, Mapping[str, Any]]] = None,
    ) -> Dict[str, pd.DataFrame]:
        """Split columns by cluster label.

        Parameters
        ----------
        counts : pd.DataFrame
            Filtered counts (genes x samples)
        clustering : pd.Series or Mapping, optional
            Sample id -> label. Labels of samples absent from ``counts``
            are ignored.

        Returns
        -------
        Dict[str, pd.DataFrame]
            Sub-matrices keyed by ``str(label)`` in sorted label order, or
            ``{"all": counts}`` without clustering

        Raises
        ------
        AlignmentError
            If any sample of ``counts`` has no label
        """
        if clustering is None:
            return {ALL_SAMPLES: counts}

        labels = pd.Series(clustering)
        missing = [s for s in counts.columns if s not in labels.index]
        if missing:
            raise AlignmentError(
                f"{len(missing)} sample(s) have no cluster label: {missing[:5]}"
            )

        labels = labels.loc[list(counts.columns)]
        partitions: Dict[str, pd.DataFrame] = {}
        for label in _sort_labels(list(pd.unique(labels))):
            mask = (labels == label).to_numpy()
            partitions[str(label)] = counts.loc[:, mask]
            self.logger.info(f"  Cluster {label}: {int(mask.sum())} samples")
        return partitions

    def _pool_partitions(
        self,
        partitions: Dict[str, pd.DataFrame],
        dissimilarity: Optional[pd.DataFrame],
    ) -> Dict[str, Tuple[pd.DataFrame, pd.DataFrame]]:
        k = self.config.metacells.num_neighbors
        norm = self.config.normalization
        n_jobs = self.config.metacells.n_jobs

        if n_jobs != 1 and len(partitions) > 1:
            self.logger.info(f"Pooling {len(partitions)} partitions with n_jobs={n_jobs}")
            results = Parallel(n_jobs=n_jobs)(
                delayed(_pool_partition)(key, counts, dissimilarity, k, norm)
                for key, counts in partitions.items()
            )
        else:
            results = [
                _pool_partition(key, counts, dissimilarity, k, norm)
                for key, counts in partitions.items()
            ]

        pooled = {key: (meta, neighbors) for key, meta, neighbors in results}
        # Preserve partition order regardless of completion order
        return {key: pooled[key] for key in partitions}

    def _subsample_partitions(
        self,
        pooled: Dict[str, pd.DataFrame],
        rng: np.random.Generator,
    ) -> Dict[str, pd.DataFrame]:
        subset_size = self.config.metacells.subset_size
        out = {}
        for key, meta in pooled.items():
            out[key] = subsample_columns(meta, subset_size, rng)
            self.logger.info(
                f"  {key}: {out[key].shape[1]} of {meta.shape[1]} meta-cells kept"
            )
        return out

    def run(
        self,
        raw: pd.DataFrame,
        clustering: Optional[Union[pd.Series, Mapping[str, Any]]] = None,
        dissimilarity: Optional[pd.DataFrame] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> MetaCellResult:
        """Run the full meta-cell pipeline.

        Parameters
        ----------
        raw : pd.DataFrame
            Raw counts (genes x cells)
        clustering : pd.Series or Mapping, optional
            Cell id -> cluster label; each cluster is processed independently
        dissimilarity : pd.DataFrame, optional
            Precomputed cells x cells dissimilarity used instead of Pearson
        rng : np.random.Generator, optional
            Subsampling generator (default: seeded from config.random_seed)

        Returns
        -------
        MetaCellResult
            Meta-cell matrices and diagnostics

        Raises
        ------
        ScNetPrepError
            Any stage failure, with ``stage`` naming the failing stage
        """
        self.logger.info("=" * 70)
        self.logger.info("Building meta-cells...")
        self.logger.info("=" * 70)
        log_yaml(None, self.config.to_dict(), logger=self.logger)

        if rng is None:
            rng = np.random.default_rng(self.config.metacells.random_seed)

        runner = StageRunner(self.pipeline_logger)
        result = MetaCellResult(clustered=clustering is not None)

        counts = raw
        if self.config.qc.apply_mito_filter:
            result.mito = runner.run_stage(
                "mito", "Mitochondrial filter", self.qc.filter_mitochondrial, counts
            )
            counts = result.mito.filtered_matrix

        result.qc = runner.run_stage(
            "qc", "Count filter", self.qc.filter_counts, counts
        )
        filtered = result.qc.filtered_matrix
        self.logger.info(f"The final number of cells is {filtered.shape[1]}")

        partitions = runner.run_stage(
            "partition", "Cluster partition", self.partition, filtered, clustering
        )
        pooled = runner.run_stage(
            "pool", "Normalize, distance, pool", self._pool_partitions,
            partitions, dissimilarity,
        )
        result.neighbors = {key: nbrs for key, (_, nbrs) in pooled.items()}

        result.matrices = runner.run_stage(
            "subsample", "Meta-cell subsampling", self._subsample_partitions,
            {key: meta for key, (meta, _) in pooled.items()}, rng,
        )
        result.stage_durations = dict(runner.durations)
        return result
