"""Preprocessing module for count filtering and normalization.

Provides quality control, counts-per-million normalization and sample
dissimilarity construction ahead of meta-cell pooling.

Example Usage
-------------
>>> from scnetprep.core.preprocessing import (
...     CountQC, QCConfig, Normalizer, DistanceMatrixBuilder,
... )
>>> qc = CountQC(QCConfig(min_col_sum=200))
>>> filtered = qc.filter_counts(raw_counts).filtered_matrix
>>> cpm = Normalizer().cpm(filtered)
>>> dist = DistanceMatrixBuilder().pearson_dissimilarity(cpm)
"""

from .config import (
    NormalizationConfig,
    PreprocessingConfig,
    QCConfig,
)
from .qc import (
    CountQC,
    MitoFilterResult,
    QCResult,
)
from .normalization import Normalizer
from .distance import (
    DistanceMatrixBuilder,
    align_dissimilarity,
)

__all__ = [
    # Config
    "NormalizationConfig",
    "PreprocessingConfig",
    "QCConfig",
    # QC
    "CountQC",
    "MitoFilterResult",
    "QCResult",
    # Normalization
    "Normalizer",
    # Distance
    "DistanceMatrixBuilder",
    "align_dissimilarity",
]
