"""Configuration for master-regulator calling and network selection."""

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ...errors import ConfigurationError

ANOVA_ADJUSTMENTS = (None, "fdr_bh", "bonferroni", "holm")

# Run-config sections owned by other stages
OTHER_SECTIONS = ("qc", "normalization", "metacells", "preprocessing")


@dataclass
class SignatureConfig:
    """Configuration for signature integration.

    Attributes
    ----------
    num_mrs : int
        Master regulators taken from each end of a ranking
    bottom : bool
        Also report the ``num_mrs`` lowest-scoring regulators
    strict : bool
        Raise when ``num_mrs`` exceeds the feature count instead of truncating
    cbc_num_mrs : int
        Regulators per sample for cell-by-cell selection
    n_bootstrap : int
        Rounds for bootstrap t-test master regulators
    anova_adjust : str, optional
        Multiple-testing correction for ANOVA p-values
    random_seed : int
        Seed for bootstrap resampling
    top_networks : int
        Networks kept by network selection
    min_targets : int
        Minimum regulon size for the reference activity primitive
    max_targets : int
        Targets kept per regulator when pruning regulons
    n_jobs : int
        Parallel jobs for candidate network evaluation
    """

    num_mrs: int = 50
    bottom: bool = False
    strict: bool = False
    cbc_num_mrs: int = 25
    n_bootstrap: int = 100
    anova_adjust: Optional[str] = None
    random_seed: int = 0
    top_networks: int = 3
    min_targets: int = 1
    max_targets: int = 50
    n_jobs: int = 1

    def __post_init__(self):
        if self.anova_adjust not in ANOVA_ADJUSTMENTS:
            raise ConfigurationError(
                f"Unsupported ANOVA adjustment '{self.anova_adjust}'. "
                f"Choose from {ANOVA_ADJUSTMENTS}"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SignatureConfig":
        """Build from the ``signatures`` section of a run configuration.

        A flat mapping of signature settings is accepted too; sections of
        other stages are ignored.
        """
        if "signatures" in data:
            section = data["signatures"] or {}
        else:
            section = {k: v for k, v in data.items() if k not in OTHER_SECTIONS}
        try:
            return cls(**section)
        except TypeError as e:
            raise ConfigurationError(f"Invalid signatures configuration: {e}") from e

    @classmethod
    def from_yaml(cls, path: Path) -> "SignatureConfig":
        """Load configuration from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)
