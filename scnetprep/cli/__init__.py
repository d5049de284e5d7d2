"""Command-line interface for scnetprep.

Example Usage
-------------
    # From command line:
    scnetprep --help
    scnetprep metacells --input counts.tsv --out out/ --clusters clusters.tsv
    scnetprep mrs --input activity.tsv --out mrs.tsv --method anova --clusters clusters.tsv
    scnetprep integrate -i a.tsv -i b.tsv -w 2 -w 1 --out integrated.tsv
"""

from .main import cli, main

__all__ = [
    "cli",
    "main",
]
