"""Pytest configuration and shared fixtures for scnetprep tests."""

import logging
import sys
from pathlib import Path

import pytest
import numpy as np
import pandas as pd

# Add package to path
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Import mock data generators
from tests.fixtures import (
    create_mock_counts,
    create_clustered_counts,
    create_mock_activity,
    create_mock_regulon,
)

from scnetprep.config import reset_mito_tables


# ============================================================================
# Global State
# ============================================================================


@pytest.fixture(autouse=True)
def restore_global_state():
    """Reset the mitochondrial registry and the package logger after each test."""
    yield
    reset_mito_tables()
    package_logger = logging.getLogger("scnetprep")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)


# ============================================================================
# Count Fixtures
# ============================================================================


@pytest.fixture
def raw_counts() -> pd.DataFrame:
    """10 genes x 20 cells of raw counts without mitochondrial genes."""
    return create_mock_counts(n_genes=10, n_cells=20)


@pytest.fixture
def mito_counts() -> pd.DataFrame:
    """Counts with one human mitochondrial gene and known fractions.

    Fractions: CELL0 0.05, CELL1 0.10, CELL2 no counts, CELL3 0.20.
    """
    return pd.DataFrame(
        {
            "CELL0": [5, 50, 45],
            "CELL1": [10, 45, 45],
            "CELL2": [0, 0, 0],
            "CELL3": [20, 40, 40],
        },
        index=["MT-CO1", "GAPDH", "ACTB"],
    )


@pytest.fixture
def clustered_counts():
    """Counts (12 genes x 18 cells) and their two-cluster labels."""
    return create_clustered_counts()


# ============================================================================
# Activity Fixtures
# ============================================================================


@pytest.fixture
def activity():
    """Activity (8 regulators x 12 samples) and two-cluster labels."""
    return create_mock_activity()


@pytest.fixture
def expression() -> pd.DataFrame:
    """Expression matrix (20 genes x 15 samples) for regulon tests."""
    rng = np.random.default_rng(7)
    return pd.DataFrame(
        rng.normal(size=(20, 15)),
        index=[f"G{i}" for i in range(20)],
        columns=[f"S{j}" for j in range(15)],
    )


@pytest.fixture
def candidate_networks(expression) -> dict:
    """Five candidate regulon tables over the expression genes."""
    genes = list(expression.index)
    regulators, targets = genes[:6], genes[6:]
    return {
        f"net{i}": create_mock_regulon(regulators, targets, n_targets=4, seed=i)
        for i in range(5)
    }


# ============================================================================
# Path Fixtures
# ============================================================================


@pytest.fixture
def tmp_output_dir(tmp_path: Path) -> Path:
    """Create a temporary output directory for tests."""
    output_dir = tmp_path / "output"
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


@pytest.fixture
def sample_run_config(tmp_path) -> Path:
    """Create a sample run configuration file."""
    import yaml

    config = {
        "qc": {
            "min_col_sum": 5,
            "max_col_sum": 100000,
            "min_row_sum": 1,
            "namespace": "symbol",
            "species": "human",
        },
        "normalization": {"scale": 1000000},
        "metacells": {"num_neighbors": 3, "random_seed": 11},
        "signatures": {"num_mrs": 4, "bottom": True, "top_networks": 2},
    }

    path = tmp_path / "run.yaml"
    with open(path, "w") as f:
        yaml.dump(config, f)

    return path
