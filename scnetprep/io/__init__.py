"""I/O utilities for scnetprep.

Provides structured logging output and table readers/writers.
"""

from .logging import log_yaml, write_yaml
from .tables import (
    ARACNE_ID_COLUMN,
    NETWORK_COLUMNS,
    ensure_output_dir,
    load_clustering,
    load_dissimilarity,
    load_expression_matrix,
    load_network,
    load_regulon,
    write_aracne_table,
    write_dataframe,
)

__all__ = [
    # Logging
    "log_yaml",
    "write_yaml",
    # Tables
    "ARACNE_ID_COLUMN",
    "ensure_output_dir",
    "load_clustering",
    "load_dissimilarity",
    "load_expression_matrix",
    "load_network",
    "load_regulon",
    "NETWORK_COLUMNS",
    "write_aracne_table",
    "write_dataframe",
]
