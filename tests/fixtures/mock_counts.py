"""Mock count, activity and regulon generators for testing.

Provides small deterministic inputs without requiring real data.
"""

from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd


def create_mock_counts(
    n_genes: int = 10,
    n_cells: int = 20,
    seed: int = 0,
    gene_names: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """Create a raw genes x cells count matrix.

    Every gene has a distinct baseline so no cell is constant across genes,
    and every cell total is well above zero.

    Parameters
    ----------
    n_genes : int
        Number of genes
    n_cells : int
        Number of cells
    seed : int
        Random seed for reproducibility
    gene_names : Sequence[str], optional
        Gene identifiers (default: GENE0, GENE1, ...)

    Returns
    -------
    pd.DataFrame
        Integer counts
    """
    rng = np.random.default_rng(seed)
    baseline = 5 * (np.arange(n_genes) + 1)
    counts = rng.poisson(lam=3.0, size=(n_genes, n_cells)) + baseline[:, None]

    if gene_names is None:
        gene_names = [f"GENE{i}" for i in range(n_genes)]
    return pd.DataFrame(
        counts,
        index=list(gene_names),
        columns=[f"CELL{j}" for j in range(n_cells)],
    )


def create_clustered_counts(
    n_genes: int = 12,
    cells_per_cluster: Sequence[int] = (10, 8),
    seed: int = 0,
) -> Tuple[pd.DataFrame, pd.Series]:
    """Create counts with one block of up-regulated genes per cluster.

    Returns
    -------
    Tuple[pd.DataFrame, pd.Series]
        Counts (genes x cells) and cell -> cluster label ("0", "1", ...)
    """
    n_cells = int(sum(cells_per_cluster))
    counts = create_mock_counts(n_genes, n_cells, seed=seed)
    labels = np.repeat([str(i) for i in range(len(cells_per_cluster))], cells_per_cluster)

    block = max(n_genes // len(cells_per_cluster), 1)
    for i in range(len(cells_per_cluster)):
        counts.iloc[i * block:(i + 1) * block, labels == str(i)] *= 4

    clustering = pd.Series(labels, index=counts.columns, name="cluster")
    return counts, clustering


def create_mock_activity(
    n_regulators: int = 8,
    samples_per_cluster: Sequence[int] = (6, 6),
    shift: float = 3.0,
    seed: int = 0,
) -> Tuple[pd.DataFrame, pd.Series]:
    """Create a regulators x samples activity matrix with cluster structure.

    Regulator ``i`` is shifted up by ``shift`` in cluster ``i`` (for the
    first ``len(samples_per_cluster)`` regulators).

    Returns
    -------
    Tuple[pd.DataFrame, pd.Series]
        Activity (regulators x samples) and sample -> cluster label
    """
    rng = np.random.default_rng(seed)
    n_samples = int(sum(samples_per_cluster))
    values = rng.normal(0.0, 1.0, size=(n_regulators, n_samples))
    labels = np.repeat(
        [f"c{i}" for i in range(len(samples_per_cluster))], samples_per_cluster
    )
    for i in range(min(len(samples_per_cluster), n_regulators)):
        values[i, labels == f"c{i}"] += shift

    samples = [f"S{j}" for j in range(n_samples)]
    activity = pd.DataFrame(
        values, index=[f"REG{i}" for i in range(n_regulators)], columns=samples
    )
    return activity, pd.Series(labels, index=samples, name="cluster")


def create_mock_regulon(
    regulators: List[str],
    targets: List[str],
    n_targets: int = 3,
    seed: int = 0,
) -> pd.DataFrame:
    """Create a regulon table (regulator, target, mode, likelihood)."""
    rng = np.random.default_rng(seed)
    rows: List[Dict] = []
    for reg in regulators:
        picked = rng.choice(len(targets), size=min(n_targets, len(targets)), replace=False)
        for t in picked:
            rows.append({
                "regulator": reg,
                "target": targets[t],
                "mode": float(rng.choice([-1.0, 1.0]) * rng.uniform(0.2, 1.0)),
                "likelihood": float(rng.uniform(0.1, 1.0)),
            })
    return pd.DataFrame(rows, columns=["regulator", "target", "mode", "likelihood"])
