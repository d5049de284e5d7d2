"""Signature integration module for activity matrices.

Provides master-regulator calling (Stouffer, ANOVA, cell-by-cell and
bootstrap t-test), merging of activity matrices, regulon construction from
ARACNe networks, a reference activity primitive, and vote-based network
selection.

Example Usage
-------------
>>> from scnetprep.core.signatures import (
...     MasterRegulatorFinder, NetworkSelector, regulon_activity,
...     integrate_matrices,
... )
>>> mrs = MasterRegulatorFinder().stouffer_mrs(activity)
>>> merged = integrate_matrices([activity_a, activity_b], weights=[2, 1])
>>> result = NetworkSelector(regulon_activity, top_k=3).select(expr, networks)
"""

from .config import SignatureConfig
from .integration import (
    anova_pvalues,
    bootstrap_ttest_mrs,
    per_sample_top,
    select_top,
    stouffer_integrate,
    stouffer_integrate_by_cluster,
)
from .finder import MasterRegulatorFinder
from .merge import integrate_matrices, priority_merge
from .regulon import REGULON_COLUMNS, prune_regulon, regulon_from_edges
from .activity import regulon_activity
from .selection import NetworkSelector, SelectionResult

__all__ = [
    # Config
    "SignatureConfig",
    # Integration
    "anova_pvalues",
    "bootstrap_ttest_mrs",
    "per_sample_top",
    "select_top",
    "stouffer_integrate",
    "stouffer_integrate_by_cluster",
    "MasterRegulatorFinder",
    # Merge
    "integrate_matrices",
    "priority_merge",
    # Regulons
    "REGULON_COLUMNS",
    "prune_regulon",
    "regulon_from_edges",
    "regulon_activity",
    # Selection
    "NetworkSelector",
    "SelectionResult",
]
