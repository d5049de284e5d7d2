"""Meta-cell construction for network inference input.

This module provides:
- KNNPooler: neighbour summation of raw profiles into meta-cells
- MetaCellPipeline: filtering, normalization, pooling and subsampling,
  optionally per cluster
- Configuration dataclasses loadable from YAML
"""

from .config import MetaCellConfig, MetaCellRunConfig
from .knn import KNNPooler, subsample_columns
from .engine import ALL_SAMPLES, MetaCellPipeline, MetaCellResult

__all__ = [
    "MetaCellConfig",
    "MetaCellRunConfig",
    "KNNPooler",
    "subsample_columns",
    "ALL_SAMPLES",
    "MetaCellPipeline",
    "MetaCellResult",
]
