"""scnetprep: single-cell data preparation for regulatory network analysis.

This package provides tools for:
- Quality control, CPM normalization and sample dissimilarities
- Meta-cell construction by k-nearest-neighbour pooling, per cluster or overall
- Export of meta-cell matrices in the ARACNe input format
- Master-regulator calling from protein-activity matrices
- Merging and weighted integration of activity matrices
- Selection of reference networks by per-feature voting

Example usage:
    >>> from scnetprep.core.metacells import MetaCellPipeline, MetaCellRunConfig
    >>> from scnetprep.core.signatures import MasterRegulatorFinder
    >>>
    >>> # Build meta-cells for network inference
    >>> result = MetaCellPipeline(MetaCellRunConfig()).run(raw_counts)
    >>> result.write("out/", prefix="tumor")
    >>>
    >>> # Call master regulators from an activity matrix
    >>> mrs = MasterRegulatorFinder().stouffer_mrs(activity)
"""

__version__ = "0.1.0"
