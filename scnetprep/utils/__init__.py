"""Utility functions for scnetprep.

Provides statistical helpers used across modules.
"""

from .stats import (
    align_weights,
    descending_order,
    row_zscore,
    stouffer_combine,
)

__all__ = [
    "align_weights",
    "descending_order",
    "row_zscore",
    "stouffer_combine",
]
