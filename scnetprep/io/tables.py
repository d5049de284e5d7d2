"""Table I/O utilities for scnetprep.

Provides readers for expression matrices, cluster labels, dissimilarity
matrices and ARACNe edge lists, and the writer for the tab-separated
matrix format consumed by ARACNe.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from ..errors import AlignmentError, DimensionError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Header of the feature-id column in ARACNe input tables
ARACNE_ID_COLUMN = "gene"

NETWORK_COLUMNS = ["regulator", "target", "mi"]


def ensure_output_dir(path: PathLike) -> Path:
    """Create the directory at path if it does not exist and return it."""
    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def _separator_for(path: Path) -> str:
    """Pick a field separator from the file suffix."""
    suffixes = [s.lower() for s in path.suffixes]
    if ".csv" in suffixes:
        return ","
    return "\t"


def _require_file(path: PathLike, what: str) -> Path:
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"{what} not found: {file_path}")
    return file_path


def load_expression_matrix(
    path: PathLike,
    layer: Optional[str] = None,
) -> pd.DataFrame:
    """Read a features x samples expression matrix.

    Supported formats: ``.tsv``/``.txt`` (tab), ``.csv``, ``.pkl``
    and ``.h5ad``. Delimited tables must hold feature
    ids in the first column and one column per sample. AnnData files are
    cells x genes and are transposed.

    Parameters
    ----------
    path : PathLike
        Input path.
    layer : str, optional
        AnnData layer to read instead of ``X`` (``.h5ad`` only).

    Returns
    -------
    pd.DataFrame
        Numeric matrix, features x samples, with string labels.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    AlignmentError
        If feature or sample identifiers are not unique.
    """
    file_path = _require_file(path, "Expression matrix")
    suffix = file_path.suffix.lower()

    if suffix == ".h5ad":
        df = _load_h5ad(file_path, layer)
    elif suffix in (".pkl", ".pickle"):
        df = pd.read_pickle(file_path)
    else:
        df = pd.read_csv(file_path, sep=_separator_for(file_path), index_col=0)

    df.index = df.index.astype(str)
    df.columns = df.columns.astype(str)
    if not df.index.is_unique:
        raise AlignmentError(f"{file_path}: feature identifiers are not unique")
    if not df.columns.is_unique:
        raise AlignmentError(f"{file_path}: sample identifiers are not unique")

    logger.info(f"Loaded {df.shape[0]} features x {df.shape[1]} samples from {file_path}")
    return df.apply(pd.to_numeric, errors="raise")


def _load_h5ad(path: Path, layer: Optional[str]) -> pd.DataFrame:
    """Read an AnnData file as a genes x cells DataFrame."""
    import anndata as ad
    from scipy import sparse

    adata = ad.read_h5ad(path)
    X = adata.layers[layer] if layer else adata.X
    if sparse.issparse(X):
        X = X.toarray()
    return pd.DataFrame(X.T, index=adata.var_names, columns=adata.obs_names)


def load_clustering(
    path: PathLike,
    sample_col: Optional[str] = None,
    label_col: Optional[str] = None,
) -> pd.Series:
    """Read a sample -> cluster label table.

    Parameters
    ----------
    path : PathLike
        Delimited file with a sample id column and a label column.
    sample_col : str, optional
        Sample id column (default: first column).
    label_col : str, optional
        Label column (default: second column).

    Returns
    -------
    pd.Series
        Labels (as strings) indexed by sample id.
    """
    file_path = _require_file(path, "Clustering table")
    df = pd.read_csv(file_path, sep=_separator_for(file_path), dtype=str)
    if df.shape[1] < 2:
        raise DimensionError(f"{file_path}: expected at least 2 columns")

    sample_col = sample_col or df.columns[0]
    label_col = label_col or df.columns[1]
    clustering = pd.Series(
        df[label_col].to_numpy(), index=df[sample_col].astype(str), name="cluster"
    )
    if not clustering.index.is_unique:
        raise AlignmentError(f"{file_path}: duplicated sample ids in clustering")
    return clustering


def load_dissimilarity(path: PathLike) -> pd.DataFrame:
    """Read a square, labelled samples x samples dissimilarity table."""
    file_path = _require_file(path, "Dissimilarity matrix")
    df = pd.read_csv(file_path, sep=_separator_for(file_path), index_col=0)
    df.index = df.index.astype(str)
    df.columns = df.columns.astype(str)
    return df.astype(float)


def load_network(path: PathLike) -> pd.DataFrame:
    """Read an ARACNe 3-column edge list (regulator, target, MI).

    A header line is detected and skipped when its third field is not
    numeric.

    Returns
    -------
    pd.DataFrame
        Columns ``regulator``, ``target``, ``mi``.
    """
    file_path = _require_file(path, "Network")
    df = pd.read_csv(file_path, sep="\t", header=None, dtype=str, usecols=[0, 1, 2])
    df.columns = NETWORK_COLUMNS
    if len(df) and pd.to_numeric(df["mi"].iloc[:1], errors="coerce").isna().all():
        df = df.iloc[1:]
    df["mi"] = df["mi"].astype(float)
    return df.reset_index(drop=True)


def load_regulon(path: PathLike) -> pd.DataFrame:
    """Read a regulon table written by :func:`write_dataframe`.

    Expected columns: ``regulator``, ``target``, ``mode``, ``likelihood``.
    """
    file_path = _require_file(path, "Regulon")
    df = pd.read_csv(file_path, sep=_separator_for(file_path))
    required = ["regulator", "target", "mode", "likelihood"]
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(f"{file_path}: regulon table missing columns {missing}")
    df["regulator"] = df["regulator"].astype(str)
    df["target"] = df["target"].astype(str)
    return df[required]


def write_aracne_table(matrix: pd.DataFrame, path: PathLike) -> Path:
    """Write a features x samples matrix in the ARACNe input format.

    Tab-separated; the first header cell is ``gene``, followed by the
    sample (or meta-cell) column names; one row per feature.

    Parameters
    ----------
    matrix : pd.DataFrame
        Matrix to write (features x samples).
    path : PathLike
        Output path.

    Returns
    -------
    Path
        The output path.
    """
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    out = matrix.copy()
    out.index = out.index.astype(str)
    out.index.name = ARACNE_ID_COLUMN
    out.to_csv(output_path, sep="\t")
    logger.info(f"Wrote {matrix.shape[0]} x {matrix.shape[1]} table to {output_path}")
    return output_path


def write_dataframe(
    df: pd.DataFrame,
    path: PathLike,
    *,
    index: bool = False,
) -> Path:
    """Write DataFrame to path ensuring the parent directory exists.

    The separator follows the suffix (``.csv`` comma, otherwise tab).
    """
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output_path, sep=_separator_for(output_path), index=index)
    return output_path
