"""Configuration classes for preprocessing stages.

All thresholds are configurable via YAML.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import yaml

from ...errors import ConfigurationError


def build_section(config_cls, data: Dict[str, Any], name: str):
    """Build one config dataclass from a named section of a run configuration."""
    section = data.get(name) or {}
    try:
        return config_cls(**section)
    except TypeError as e:
        raise ConfigurationError(f"Invalid {name} configuration: {e}") from e


@dataclass
class QCConfig:
    """Configuration for count-based quality control.

    Attributes
    ----------
    min_col_sum : float
        Keep samples whose total count is strictly above this value
    max_col_sum : float
        Keep samples whose total count is strictly below this value
    min_row_sum : float
        Keep genes whose total count is at least this value
    row_sums_after_column_filter : bool
        Compute gene totals on the column-filtered matrix instead of the raw
        matrix. False reproduces outputs of the reference R pipeline.
    apply_mito_filter : bool
        Whether to remove cells with high mitochondrial fraction
    mito_threshold : float
        Keep cells whose mitochondrial count fraction is strictly below this
    namespace : str
        Gene identifier namespace (symbol or ensembl)
    species : str
        Species for the mitochondrial gene list (human or mouse)
    """

    min_col_sum: float = 200.0
    max_col_sum: float = 100000.0
    min_row_sum: float = 1.0
    row_sums_after_column_filter: bool = False
    apply_mito_filter: bool = True
    mito_threshold: float = 0.10
    namespace: str = "symbol"
    species: str = "human"


@dataclass
class NormalizationConfig:
    """Configuration for library-size normalization.

    Attributes
    ----------
    scale : float
        Target column total (1e6 for counts per million)
    """

    scale: float = 1e6


@dataclass
class PreprocessingConfig:
    """Master configuration for preprocessing.

    Attributes
    ----------
    qc : QCConfig
        Quality control configuration
    normalization : NormalizationConfig
        Normalization configuration
    """

    qc: QCConfig = field(default_factory=QCConfig)
    normalization: NormalizationConfig = field(default_factory=NormalizationConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "PreprocessingConfig":
        """Load configuration from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        if "preprocessing" in data:
            data = data["preprocessing"]

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PreprocessingConfig":
        """Build configuration from a plain dictionary."""
        return cls(
            qc=build_section(QCConfig, data, "qc"),
            normalization=build_section(NormalizationConfig, data, "normalization"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "qc": {
                "min_col_sum": self.qc.min_col_sum,
                "max_col_sum": self.qc.max_col_sum,
                "min_row_sum": self.qc.min_row_sum,
                "row_sums_after_column_filter": self.qc.row_sums_after_column_filter,
                "apply_mito_filter": self.qc.apply_mito_filter,
                "mito_threshold": self.qc.mito_threshold,
                "namespace": self.qc.namespace,
                "species": self.qc.species,
            },
            "normalization": {
                "scale": self.normalization.scale,
            },
        }
