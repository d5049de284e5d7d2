"""Unit tests for table and log I/O."""

import logging

import pytest
import numpy as np
import pandas as pd
import yaml

from scnetprep.errors import AlignmentError
from scnetprep.io import (
    load_clustering,
    load_dissimilarity,
    load_expression_matrix,
    load_network,
    load_regulon,
    log_yaml,
    write_aracne_table,
    write_dataframe,
    write_yaml,
)


class TestExpressionMatrix:
    """Tests for expression matrix readers and the ARACNe writer."""

    def test_aracne_table_round_trip(self, raw_counts, tmp_path):
        """Test the ARACNe table header and values."""
        path = write_aracne_table(raw_counts, tmp_path / "out" / "m.tsv")
        header = path.read_text().splitlines()[0].split("\t")
        assert header == ["gene"] + list(raw_counts.columns)
        reloaded = load_expression_matrix(path)
        np.testing.assert_array_equal(reloaded.to_numpy(), raw_counts.to_numpy())
        assert list(reloaded.index) == list(raw_counts.index)

    def test_csv(self, raw_counts, tmp_path):
        """Test comma-separated input."""
        path = tmp_path / "m.csv"
        raw_counts.to_csv(path)
        assert load_expression_matrix(path).shape == raw_counts.shape

    def test_h5ad_is_transposed(self, raw_counts, tmp_path):
        """Test AnnData cells x genes input becomes genes x cells."""
        anndata = pytest.importorskip("anndata")
        adata = anndata.AnnData(
            X=raw_counts.T.to_numpy(dtype=np.float32),
            obs=pd.DataFrame(index=raw_counts.columns),
            var=pd.DataFrame(index=raw_counts.index),
        )
        path = tmp_path / "m.h5ad"
        adata.write_h5ad(path)
        loaded = load_expression_matrix(path)
        assert list(loaded.index) == list(raw_counts.index)
        assert list(loaded.columns) == list(raw_counts.columns)

    def test_duplicate_features_raise(self, tmp_path):
        """Test duplicated feature ids raise AlignmentError."""
        path = tmp_path / "dup.tsv"
        path.write_text("gene\ts1\nA\t1\nA\t2\n")
        with pytest.raises(AlignmentError):
            load_expression_matrix(path)

    def test_missing_file_raises(self, tmp_path):
        """Test a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_expression_matrix(tmp_path / "nope.tsv")


class TestSideTables:
    """Tests for clustering, dissimilarity, network and regulon readers."""

    def test_load_clustering(self, tmp_path):
        """Test labels are strings indexed by sample id."""
        path = tmp_path / "clusters.tsv"
        path.write_text("cell\tcluster\nc1\t0\nc2\t1\n")
        clustering = load_clustering(path)
        assert clustering.to_dict() == {"c1": "0", "c2": "1"}

    def test_load_clustering_named_columns(self, tmp_path):
        """Test explicit sample and label columns."""
        path = tmp_path / "clusters.csv"
        path.write_text("extra,label,cell\nx,a,c1\ny,b,c2\n")
        clustering = load_clustering(path, sample_col="cell", label_col="label")
        assert clustering.to_dict() == {"c1": "a", "c2": "b"}

    def test_load_dissimilarity(self, tmp_path):
        """Test a labelled square table is read as floats."""
        path = tmp_path / "d.tsv"
        pd.DataFrame([[0, 1], [1, 0]], index=["a", "b"], columns=["a", "b"]).to_csv(path, sep="\t")
        d = load_dissimilarity(path)
        assert d.loc["a", "b"] == 1.0
        assert d.dtypes.eq(float).all()

    def test_load_network_skips_header(self, tmp_path):
        """Test a header line is detected and skipped."""
        path = tmp_path / "net.txt"
        path.write_text("Regulator\tTarget\tMI\tpvalue\nTF1\tG1\t0.5\t0.01\nTF1\tG2\t0.2\t0.02\n")
        net = load_network(path)
        assert list(net.columns) == ["regulator", "target", "mi"]
        assert net["mi"].tolist() == [0.5, 0.2]

    def test_load_network_without_header(self, tmp_path):
        """Test a headerless edge list keeps every line."""
        path = tmp_path / "net.txt"
        path.write_text("TF1\tG1\t0.5\nTF2\tG2\t0.2\n")
        assert len(load_network(path)) == 2

    def test_regulon_round_trip(self, tmp_path):
        """Test a written regulon table loads back."""
        regulon = pd.DataFrame({
            "regulator": ["TF"], "target": ["G"], "mode": [0.5], "likelihood": [1.0],
        })
        path = write_dataframe(regulon, tmp_path / "reg.tsv")
        pd.testing.assert_frame_equal(load_regulon(path), regulon)


class TestLogging:
    """Tests for YAML run records."""

    def test_log_yaml_appends_documents(self, tmp_path):
        """Test each call appends one YAML document."""
        path = tmp_path / "logs" / "run.yaml"
        log_yaml(path, {"a": 1})
        log_yaml(path, {"b": 2})
        docs = [d for d in yaml.safe_load_all(path.read_text()) if d]
        assert docs == [{"a": 1}, {"b": 2}]

    def test_log_yaml_to_logger(self, caplog):
        """Test records go to the logger when one is given."""
        logger = logging.getLogger("test_log_yaml")
        with caplog.at_level(logging.INFO, logger="test_log_yaml"):
            log_yaml(None, {"k": 3}, logger=logger)
        assert "k: 3" in caplog.text

    def test_write_yaml_replaces(self, tmp_path):
        """Test write_yaml overwrites the file."""
        path = tmp_path / "s.yaml"
        write_yaml(path, {"a": 1})
        write_yaml(path, {"b": 2})
        assert yaml.safe_load(path.read_text()) == {"b": 2}
