"""Configuration classes for meta-cell construction.

All parameters are configurable via YAML.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..preprocessing.config import PreprocessingConfig, build_section


@dataclass
class MetaCellConfig:
    """Configuration for k-nearest-neighbour pooling.

    Attributes
    ----------
    num_neighbors : int
        Neighbours summed into each meta-cell (each meta-cell has
        ``num_neighbors + 1`` members)
    subset_size : int, optional
        Number of meta-cells to keep per partition; all are kept when None
    random_seed : int
        Seed for the run-wide subsampling generator
    n_jobs : int
        Parallel jobs across cluster partitions (1 = sequential)
    """

    num_neighbors: int = 10
    subset_size: Optional[int] = None
    random_seed: int = 0
    n_jobs: int = 1


@dataclass
class MetaCellRunConfig:
    """Master configuration for a meta-cell run.

    Attributes
    ----------
    preprocessing : PreprocessingConfig
        QC and normalization configuration
    metacells : MetaCellConfig
        Pooling configuration
    """

    preprocessing: PreprocessingConfig = field(default_factory=PreprocessingConfig)
    metacells: MetaCellConfig = field(default_factory=MetaCellConfig)

    @property
    def qc(self):
        return self.preprocessing.qc

    @property
    def normalization(self):
        return self.preprocessing.normalization

    @classmethod
    def from_yaml(cls, path: Path) -> "MetaCellRunConfig":
        """Load configuration from YAML file.

        Expected top-level sections: ``qc``, ``normalization``, ``metacells``.
        """
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls(
            preprocessing=PreprocessingConfig.from_dict(data),
            metacells=build_section(MetaCellConfig, data, "metacells"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = self.preprocessing.to_dict()
        data["metacells"] = {
            "num_neighbors": self.metacells.num_neighbors,
            "subset_size": self.metacells.subset_size,
            "random_seed": self.metacells.random_seed,
            "n_jobs": self.metacells.n_jobs,
        }
        return data
