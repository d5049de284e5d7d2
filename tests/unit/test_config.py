"""Unit tests for the mitochondrial gene registry."""

import pytest
import pandas as pd

from scnetprep.config import (
    MitoGeneTable,
    get_mito_genes,
    load_mito_table,
    normalize_namespace,
    register_mito_genes,
)
from scnetprep.errors import ConfigurationError


class TestMitoRegistry:
    """Tests for built-in mitochondrial gene lists."""

    @pytest.mark.parametrize("namespace", ["symbol", "ensembl"])
    @pytest.mark.parametrize("species", ["human", "mouse"])
    def test_four_builtin_tables(self, namespace, species):
        """Test symbol/ensembl x human/mouse are registered."""
        genes = get_mito_genes(namespace, species)
        assert genes
        assert len(set(genes)) == len(genes)

    def test_human_symbols(self):
        """Test human symbols use the MT- prefix."""
        genes = get_mito_genes("symbol", "human")
        assert "MT-CO1" in genes
        assert all(g.startswith("MT-") for g in genes)

    def test_mouse_symbols(self):
        """Test mouse symbols use the mt- prefix."""
        genes = get_mito_genes("symbol", "mouse")
        assert "mt-Co1" in genes
        assert all(g.startswith("mt-") for g in genes)

    def test_ensembl_alias(self):
        """Test 'ensemble' resolves to 'ensembl'."""
        assert normalize_namespace("Ensemble") == "ensembl"
        assert get_mito_genes("ensemble", "human") == get_mito_genes("ensembl", "human")

    def test_unknown_combination_raises(self):
        """Test unknown species raises ConfigurationError."""
        with pytest.raises(ConfigurationError):
            get_mito_genes("symbol", "rat")

    def test_returned_list_is_a_copy(self):
        """Test callers cannot mutate the registry."""
        genes = get_mito_genes("symbol", "human")
        genes.clear()
        assert get_mito_genes("symbol", "human")

    def test_register_replaces_table(self):
        """Test registering a table replaces the built-in list."""
        register_mito_genes(MitoGeneTable("symbol", "human", ["MT-X"]))
        assert get_mito_genes("symbol", "human") == ["MT-X"]

    def test_register_unsupported_raises(self):
        """Test registering an unsupported species raises."""
        with pytest.raises(ConfigurationError):
            register_mito_genes(MitoGeneTable("symbol", "yeast", ["Q0045"]))


class TestLoadMitoTable:
    """Tests for loading BioMart exports."""

    def test_load_biomart_columns(self, tmp_path):
        """Test each BioMart column replaces its list."""
        path = tmp_path / "mito.tsv"
        pd.DataFrame({
            "Gene.stable.ID": ["ENSG1", "ENSG2"],
            "HGNC.symbol": ["MT-A", None],
        }).to_csv(path, sep="\t", index=False)

        tables = load_mito_table(path)
        assert {t.key for t in tables} == {("ensembl", "human"), ("symbol", "human")}
        assert get_mito_genes("ensembl", "human") == ["ENSG1", "ENSG2"]
        assert get_mito_genes("symbol", "human") == ["MT-A"]
        # Untouched tables keep their built-in lists
        assert "mt-Co1" in get_mito_genes("symbol", "mouse")

    def test_load_without_known_columns_raises(self, tmp_path):
        """Test a table without BioMart columns raises."""
        path = tmp_path / "bad.tsv"
        pd.DataFrame({"gene": ["a"]}).to_csv(path, sep="\t", index=False)
        with pytest.raises(ConfigurationError):
            load_mito_table(path)
