"""Core computational modules for scnetprep.

This package contains the main analysis engines:
- preprocessing: count QC, CPM normalization, sample dissimilarities
- metacells: KNN pooling and the meta-cell pipeline
- signatures: master-regulator integration, matrix merging, network selection
"""
