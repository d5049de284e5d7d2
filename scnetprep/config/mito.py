"""Mitochondrial gene lists keyed by identifier namespace and species.

The mitochondrial-fraction filter needs the mitochondrially encoded genes in
the identifier space of the count matrix. Four lists are built in
({symbol, ensembl} x {human, mouse}); a BioMart export with the same layout
as ``mt-geneList`` can replace them via :func:`load_mito_table`.

Example
-------
>>> from scnetprep.config import get_mito_genes
>>> genes = get_mito_genes("symbol", "mouse")
>>> "mt-Co1" in genes
True
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Tuple, Union

import pandas as pd

from ..errors import ConfigurationError

NAMESPACES = ("symbol", "ensembl")
SPECIES = ("human", "mouse")

# Alternative spellings accepted on input
NAMESPACE_ALIASES: Dict[str, str] = {
    "ensemble": "ensembl",
    "ensg": "ensembl",
    "gene_symbol": "symbol",
    "hgnc": "symbol",
    "mgi": "symbol",
}

# BioMart column -> (namespace, species)
BIOMART_COLUMNS: Dict[str, Tuple[str, str]] = {
    "Gene.stable.ID": ("ensembl", "human"),
    "Mouse.gene.stable.ID": ("ensembl", "mouse"),
    "HGNC.symbol": ("symbol", "human"),
    "MGI.symbol": ("symbol", "mouse"),
}

_HUMAN_SYMBOLS = [
    "MT-ND1", "MT-ND2", "MT-CO1", "MT-CO2", "MT-ATP8", "MT-ATP6", "MT-CO3",
    "MT-ND3", "MT-ND4L", "MT-ND4", "MT-ND5", "MT-ND6", "MT-CYB",
    "MT-RNR1", "MT-RNR2",
    "MT-TF", "MT-TV", "MT-TL1", "MT-TI", "MT-TQ", "MT-TM", "MT-TW", "MT-TA",
    "MT-TN", "MT-TC", "MT-TY", "MT-TS1", "MT-TD", "MT-TK", "MT-TG", "MT-TR",
    "MT-TH", "MT-TS2", "MT-TL2", "MT-TE", "MT-TT", "MT-TP",
]

_MOUSE_SYMBOLS = [
    "mt-Nd1", "mt-Nd2", "mt-Co1", "mt-Co2", "mt-Atp8", "mt-Atp6", "mt-Co3",
    "mt-Nd3", "mt-Nd4l", "mt-Nd4", "mt-Nd5", "mt-Nd6", "mt-Cytb",
    "mt-Rnr1", "mt-Rnr2",
    "mt-Tf", "mt-Tv", "mt-Tl1", "mt-Ti", "mt-Tq", "mt-Tm", "mt-Tw", "mt-Ta",
    "mt-Tn", "mt-Tc", "mt-Ty", "mt-Ts1", "mt-Td", "mt-Tk", "mt-Tg", "mt-Tr",
    "mt-Th", "mt-Ts2", "mt-Tl2", "mt-Te", "mt-Tt", "mt-Tp",
]

_HUMAN_ENSEMBL = [
    "ENSG00000198888", "ENSG00000198763", "ENSG00000198804", "ENSG00000198712",
    "ENSG00000228253", "ENSG00000198899", "ENSG00000198938", "ENSG00000198840",
    "ENSG00000212907", "ENSG00000198886", "ENSG00000198786", "ENSG00000198695",
    "ENSG00000198727", "ENSG00000211459", "ENSG00000210082",
    "ENSG00000210049", "ENSG00000210077", "ENSG00000209082", "ENSG00000210100",
    "ENSG00000210107", "ENSG00000210112", "ENSG00000210117", "ENSG00000210127",
    "ENSG00000210135", "ENSG00000210140", "ENSG00000210144", "ENSG00000210151",
    "ENSG00000210154", "ENSG00000210156", "ENSG00000210164", "ENSG00000210174",
    "ENSG00000210176", "ENSG00000210184", "ENSG00000210191", "ENSG00000210194",
    "ENSG00000210195", "ENSG00000210196",
]

_MOUSE_ENSEMBL = [
    "ENSMUSG00000064341", "ENSMUSG00000064345", "ENSMUSG00000064351",
    "ENSMUSG00000064354", "ENSMUSG00000064356", "ENSMUSG00000064357",
    "ENSMUSG00000064358", "ENSMUSG00000064360", "ENSMUSG00000065947",
    "ENSMUSG00000064363", "ENSMUSG00000064367", "ENSMUSG00000064368",
    "ENSMUSG00000064370", "ENSMUSG00000064337", "ENSMUSG00000064339",
    "ENSMUSG00000064336", "ENSMUSG00000064338", "ENSMUSG00000064340",
    "ENSMUSG00000064342", "ENSMUSG00000064343", "ENSMUSG00000064344",
    "ENSMUSG00000064346", "ENSMUSG00000064347", "ENSMUSG00000064348",
    "ENSMUSG00000064349", "ENSMUSG00000064350", "ENSMUSG00000064352",
    "ENSMUSG00000064353", "ENSMUSG00000064355", "ENSMUSG00000064359",
    "ENSMUSG00000064361", "ENSMUSG00000064362", "ENSMUSG00000064364",
    "ENSMUSG00000064365", "ENSMUSG00000064366", "ENSMUSG00000064369",
    "ENSMUSG00000064372",
]


@dataclass
class MitoGeneTable:
    """Mitochondrial gene identifiers for one namespace/species pair.

    Attributes
    ----------
    namespace : str
        Identifier namespace (symbol or ensembl)
    species : str
        Species (human or mouse)
    genes : List[str]
        Gene identifiers in that namespace
    """

    namespace: str
    species: str
    genes: List[str] = field(default_factory=list)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.namespace, self.species)


# =============================================================================
# Registry
# =============================================================================

MITO_GENE_REGISTRY: Dict[Tuple[str, str], MitoGeneTable] = {}


def normalize_namespace(namespace: str) -> str:
    """Map a namespace name or alias to its canonical form."""
    name = str(namespace).strip().lower()
    return NAMESPACE_ALIASES.get(name, name)


def register_mito_genes(table: MitoGeneTable) -> None:
    """Register (or replace) a mitochondrial gene list.

    Parameters
    ----------
    table : MitoGeneTable
        Table to register

    Raises
    ------
    ConfigurationError
        If the namespace or species is not supported
    """
    namespace = normalize_namespace(table.namespace)
    species = str(table.species).strip().lower()
    if namespace not in NAMESPACES or species not in SPECIES:
        raise ConfigurationError(
            f"Unsupported mitochondrial table ({table.namespace!r}, {table.species!r}). "
            f"Namespaces: {list(NAMESPACES)}; species: {list(SPECIES)}"
        )
    MITO_GENE_REGISTRY[(namespace, species)] = MitoGeneTable(
        namespace=namespace, species=species, genes=list(table.genes)
    )


def get_mito_genes(namespace: str, species: str) -> List[str]:
    """Get the mitochondrial gene list for a namespace/species pair.

    Parameters
    ----------
    namespace : str
        ``symbol`` or ``ensembl`` (``ensemble`` accepted)
    species : str
        ``human`` or ``mouse``

    Returns
    -------
    List[str]
        Gene identifiers

    Raises
    ------
    ConfigurationError
        If the combination is unknown
    """
    _ensure_builtins_loaded()

    key = (normalize_namespace(namespace), str(species).strip().lower())
    if key not in MITO_GENE_REGISTRY:
        available = sorted(MITO_GENE_REGISTRY.keys())
        raise ConfigurationError(
            f"No mitochondrial gene list for namespace={namespace!r}, "
            f"species={species!r}. Available: {available}"
        )
    return list(MITO_GENE_REGISTRY[key].genes)


def load_mito_table(path: Union[str, Path], sep: str = "\t") -> List[MitoGeneTable]:
    """Load a BioMart mitochondrial gene export and register its lists.

    The file must carry at least one of the columns ``Gene.stable.ID``,
    ``Mouse.gene.stable.ID``, ``HGNC.symbol`` and ``MGI.symbol``. Each column
    present replaces the corresponding built-in list.

    Parameters
    ----------
    path : str or Path
        Path to the table
    sep : str
        Field separator (default: tab)

    Returns
    -------
    List[MitoGeneTable]
        Tables that were registered

    Raises
    ------
    ConfigurationError
        If no known column is present
    """
    _ensure_builtins_loaded()

    df = pd.read_csv(path, sep=sep, dtype=str)
    tables = []
    for column, (namespace, species) in BIOMART_COLUMNS.items():
        if column not in df.columns:
            continue
        genes = [g for g in df[column].dropna().str.strip().unique() if g]
        table = MitoGeneTable(namespace=namespace, species=species, genes=genes)
        register_mito_genes(table)
        tables.append(table)

    if not tables:
        raise ConfigurationError(
            f"{path}: none of the expected columns {list(BIOMART_COLUMNS)} found"
        )
    return tables


_BUILTINS_LOADED = False


def _ensure_builtins_loaded() -> None:
    """Ensure builtin tables are registered."""
    global _BUILTINS_LOADED
    if _BUILTINS_LOADED:
        return

    _BUILTINS_LOADED = True
    register_mito_genes(MitoGeneTable("symbol", "human", _HUMAN_SYMBOLS))
    register_mito_genes(MitoGeneTable("symbol", "mouse", _MOUSE_SYMBOLS))
    register_mito_genes(MitoGeneTable("ensembl", "human", _HUMAN_ENSEMBL))
    register_mito_genes(MitoGeneTable("ensembl", "mouse", _MOUSE_ENSEMBL))


def reset_mito_tables() -> None:
    """Drop registered tables so the built-ins are reloaded on next access."""
    global _BUILTINS_LOADED
    MITO_GENE_REGISTRY.clear()
    _BUILTINS_LOADED = False
