"""Centralized configuration for scnetprep.

Provides the mitochondrial gene registry used by the quality filter.

Example
-------
>>> from scnetprep.config import get_mito_genes
>>> get_mito_genes("ensemble", "human")[:2]
['ENSG00000198888', 'ENSG00000198763']
"""

from .mito import (
    MitoGeneTable,
    get_mito_genes,
    load_mito_table,
    normalize_namespace,
    register_mito_genes,
    reset_mito_tables,
)

__all__ = [
    "MitoGeneTable",
    "get_mito_genes",
    "load_mito_table",
    "normalize_namespace",
    "register_mito_genes",
    "reset_mito_tables",
]
