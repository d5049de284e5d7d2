"""Unit tests for meta-cell construction."""

import pytest
import numpy as np
import pandas as pd

from scnetprep.core.metacells import (
    ALL_SAMPLES,
    KNNPooler,
    MetaCellConfig,
    MetaCellPipeline,
    MetaCellRunConfig,
    subsample_columns,
)
from scnetprep.core.preprocessing import DistanceMatrixBuilder, Normalizer, QCConfig
from scnetprep.errors import AlignmentError, ConfigurationError, DimensionError, ParameterError
from scnetprep.io import load_expression_matrix


def _line_distance(labels):
    """Dissimilarity |i - j| / n for samples placed on a line."""
    n = len(labels)
    pos = np.arange(n)
    return pd.DataFrame(np.abs(pos[:, None] - pos[None, :]) / n, index=labels, columns=labels)


def _run_config(k=3, subset_size=None, seed=0, n_jobs=1, mito=True):
    config = MetaCellRunConfig()
    config.preprocessing.qc = QCConfig(
        min_col_sum=5, max_col_sum=100000, min_row_sum=1, apply_mito_filter=mito
    )
    config.metacells = MetaCellConfig(
        num_neighbors=k, subset_size=subset_size, random_seed=seed, n_jobs=n_jobs
    )
    return config


class TestKNNPooler:
    """Tests for KNNPooler class."""

    def test_neighbours_exclude_self(self):
        """Test neighbours are the k closest other samples."""
        dist = _line_distance(["a", "b", "c", "d", "e"])
        nbrs = KNNPooler().neighbors(dist, 2)
        assert list(nbrs.columns) == ["nn_1", "nn_2"]
        assert list(nbrs.loc["a"]) == ["b", "c"]
        # Ties keep the original order
        assert list(nbrs.loc["c"]) == ["b", "d"]

    def test_zero_distance_twin_excludes_by_position(self):
        """Test self is excluded by sort position, not by identity, on ties."""
        labels = ["a", "b", "c", "d"]
        dist = pd.DataFrame(
            [
                [0.0, 0.0, 0.5, 0.8],
                [0.0, 0.0, 0.5, 0.8],
                [0.5, 0.5, 0.0, 0.3],
                [0.8, 0.8, 0.3, 0.0],
            ],
            index=labels, columns=labels,
        )
        nbrs = KNNPooler().neighbors(dist, 1)
        assert nbrs.loc["a", "nn_1"] == "b"
        # a sorts first in b's row, so b is its own nearest neighbour
        assert nbrs.loc["b", "nn_1"] == "b"

        matrix = pd.DataFrame([[1.0, 10.0, 100.0, 1000.0]], index=["g"], columns=labels)
        pooled = KNNPooler().pool(matrix, dist, k=1)
        assert pooled.loc["g", "a"] == 11.0
        assert pooled.loc["g", "b"] == 20.0

    def test_each_column_sums_k_plus_one_inputs(self):
        """Test output column i is column i plus its neighbours."""
        labels = ["a", "b", "c", "d", "e"]
        matrix = pd.DataFrame(np.eye(5) * [1, 10, 100, 1000, 10000], index=labels, columns=labels)
        pooled = KNNPooler().pool(matrix, _line_distance(labels), k=2)
        # a pools a, b, c
        assert pooled["a"].sum() == 111
        # c pools c, b, d
        assert pooled["c"].sum() == 1110
        assert pooled.shape == matrix.shape

    def test_member_count(self, raw_counts):
        """Test each meta-cell has exactly k + 1 members."""
        ones = pd.DataFrame(
            np.ones((1, raw_counts.shape[1])), index=["x"], columns=raw_counts.columns
        )
        dist = DistanceMatrixBuilder().pearson_dissimilarity(Normalizer().cpm(raw_counts))
        pooled = KNNPooler().pool(ones, dist, k=4)
        np.testing.assert_array_equal(pooled.to_numpy(), 5.0)

    def test_k_zero_returns_input(self, raw_counts):
        """Test k=0 returns the input unchanged."""
        dist = _line_distance(list(raw_counts.columns))
        pooled = KNNPooler().pool(raw_counts, dist, k=0)
        pd.testing.assert_frame_equal(pooled, raw_counts)
        assert pooled is not raw_counts

    def test_k_too_large_raises(self, raw_counts):
        """Test k >= n - 1 raises ParameterError."""
        dist = _line_distance(list(raw_counts.columns))
        with pytest.raises(ParameterError):
            KNNPooler().pool(raw_counts, dist, k=raw_counts.shape[1] - 1)

    def test_negative_k_raises(self, raw_counts):
        """Test negative k raises ParameterError."""
        dist = _line_distance(list(raw_counts.columns))
        with pytest.raises(ParameterError):
            KNNPooler().pool(raw_counts, dist, k=-1)

    def test_misaligned_dissimilarity_raises(self, raw_counts):
        """Test a dissimilarity missing samples raises AlignmentError."""
        dist = _line_distance(list(raw_counts.columns[:-1]))
        with pytest.raises(AlignmentError):
            KNNPooler().pool(raw_counts, dist, k=2)

    def test_dissimilarity_is_realigned(self):
        """Test a shuffled dissimilarity gives the same result."""
        labels = ["a", "b", "c", "d", "e"]
        matrix = pd.DataFrame(np.eye(5), index=labels, columns=labels)
        dist = _line_distance(labels)
        shuffled = dist.loc[labels[::-1], labels[::-1]]
        pooler = KNNPooler()
        pd.testing.assert_frame_equal(
            pooler.pool(matrix, dist, k=2), pooler.pool(matrix, shuffled, k=2)
        )

    def test_subset_size_at_least_n_returns_all(self, raw_counts):
        """Test subset_size >= n returns all columns unchanged."""
        rng = np.random.default_rng(1)
        out = subsample_columns(raw_counts, raw_counts.shape[1], rng)
        pd.testing.assert_frame_equal(out, raw_counts)

    def test_subsample_is_seeded(self, raw_counts):
        """Test the same seed draws the same columns without replacement."""
        a = subsample_columns(raw_counts, 7, np.random.default_rng(3))
        b = subsample_columns(raw_counts, 7, np.random.default_rng(3))
        assert list(a.columns) == list(b.columns)
        assert a.columns.is_unique
        assert a.shape == (raw_counts.shape[0], 7)


class TestMetaCellConfig:
    """Tests for MetaCellRunConfig."""

    def test_default_values(self):
        """Test default pooling parameters."""
        config = MetaCellRunConfig()
        assert config.metacells.num_neighbors == 10
        assert config.metacells.subset_size is None
        assert config.qc.mito_threshold == 0.10

    def test_from_yaml(self, sample_run_config):
        """Test loading all sections from YAML."""
        config = MetaCellRunConfig.from_yaml(sample_run_config)
        assert config.qc.min_col_sum == 5
        assert config.metacells.num_neighbors == 3
        assert config.metacells.random_seed == 11
        assert config.to_dict()["metacells"]["num_neighbors"] == 3

    def test_unknown_metacells_key_raises(self, tmp_path):
        """Test a misspelled metacells key raises ConfigurationError."""
        path = tmp_path / "bad.yaml"
        path.write_text("metacells:\n  num_neighbours: 5\n")
        with pytest.raises(ConfigurationError, match="metacells"):
            MetaCellRunConfig.from_yaml(path)

    def test_unknown_qc_key_raises(self, tmp_path):
        """Test a misspelled qc key raises ConfigurationError."""
        path = tmp_path / "bad.yaml"
        path.write_text("qc:\n  min_colsum: 5\n")
        with pytest.raises(ConfigurationError, match="qc"):
            MetaCellRunConfig.from_yaml(path)


class TestMetaCellPipeline:
    """Tests for MetaCellPipeline class."""

    def test_end_to_end_scenario(self, raw_counts):
        """Test 10 x 20 input, k=3: 10 x 20 output, CPM columns."""
        result = MetaCellPipeline(_run_config(k=3)).run(raw_counts)
        meta = result.matrix
        assert meta.shape == (10, 20)
        np.testing.assert_allclose(meta.sum(axis=0).to_numpy(), 1e6)
        assert result.mito.cells_kept == 20
        assert result.qc.cells_removed == 0

    def test_metacells_pool_four_raw_columns(self, raw_counts):
        """Test each meta-cell is the CPM of four summed raw columns."""
        result = MetaCellPipeline(_run_config(k=3)).run(raw_counts)
        nbrs = result.neighbors[ALL_SAMPLES]
        cell = raw_counts.columns[0]
        members = [cell] + list(nbrs.loc[cell])
        expected = Normalizer().cpm(raw_counts[members].sum(axis=1).to_frame(cell))
        np.testing.assert_allclose(result.matrix[cell].to_numpy(), expected[cell].to_numpy())

    def test_subset_size(self, raw_counts):
        """Test subsampling keeps subset_size meta-cells."""
        result = MetaCellPipeline(_run_config(k=3, subset_size=8)).run(raw_counts)
        assert result.matrix.shape == (10, 8)

    def test_same_seed_same_subsample(self, raw_counts):
        """Test the run seed makes subsampling reproducible."""
        a = MetaCellPipeline(_run_config(k=3, subset_size=8, seed=5)).run(raw_counts)
        b = MetaCellPipeline(_run_config(k=3, subset_size=8, seed=5)).run(raw_counts)
        assert list(a.matrix.columns) == list(b.matrix.columns)

    def test_clustered_run(self, clustered_counts):
        """Test one matrix per cluster with only that cluster's samples."""
        counts, clustering = clustered_counts
        result = MetaCellPipeline(_run_config(k=2, mito=False)).run(counts, clustering=clustering)
        assert result.clustered
        assert list(result.matrices) == ["0", "1"]
        for label, meta in result.matrices.items():
            members = set(clustering.index[clustering == label])
            assert set(meta.columns) <= members
            assert set(result.neighbors[label].stack()) <= members

    def test_results_independent_of_n_jobs(self, clustered_counts):
        """Test parallel pooling reproduces the sequential result."""
        counts, clustering = clustered_counts
        seq = MetaCellPipeline(_run_config(k=2, subset_size=5, n_jobs=1, mito=False))
        par = MetaCellPipeline(_run_config(k=2, subset_size=5, n_jobs=2, mito=False))
        a = seq.run(counts, clustering=clustering)
        b = par.run(counts, clustering=clustering)
        for label in a.matrices:
            pd.testing.assert_frame_equal(a.matrices[label], b.matrices[label])

    def test_missing_cluster_label_raises(self, clustered_counts):
        """Test a sample without a label fails in the partition stage."""
        counts, clustering = clustered_counts
        with pytest.raises(AlignmentError) as excinfo:
            MetaCellPipeline(_run_config(k=2, mito=False)).run(
                counts, clustering=clustering.iloc[1:]
            )
        assert excinfo.value.stage == "partition"

    def test_failure_carries_stage(self, raw_counts):
        """Test a pooling failure is tagged with the pool stage."""
        with pytest.raises(ParameterError) as excinfo:
            MetaCellPipeline(_run_config(k=25)).run(raw_counts)
        assert excinfo.value.stage == "pool"
        assert "partition 'all'" in str(excinfo.value)

    def test_precomputed_dissimilarity(self, raw_counts):
        """Test a precomputed dissimilarity drives the neighbours."""
        dist = _line_distance(list(raw_counts.columns))
        result = MetaCellPipeline(_run_config(k=2)).run(raw_counts, dissimilarity=dist)
        assert list(result.neighbors[ALL_SAMPLES].loc["CELL0"]) == ["CELL1", "CELL2"]

    def test_single_cell_cluster_raises(self, raw_counts):
        """Test a cluster too small for correlation raises DimensionError."""
        clustering = pd.Series(["a"] * 19 + ["b"], index=raw_counts.columns)
        with pytest.raises(DimensionError):
            MetaCellPipeline(_run_config(k=2)).run(raw_counts, clustering=clustering)


class TestMetaCellOutput:
    """Tests for MetaCellResult.write."""

    def test_write_unclustered(self, raw_counts, tmp_output_dir):
        """Test one ARACNe table plus a run summary."""
        result = MetaCellPipeline(_run_config(k=3)).run(raw_counts)
        paths = result.write(tmp_output_dir, prefix="tumor")
        assert [p.name for p in paths] == ["tumor_metacells.tsv"]
        assert (tmp_output_dir / "tumor_run.yaml").exists()

        header = paths[0].read_text().splitlines()[0].split("\t")
        assert header[0] == "gene"
        assert header[1:] == list(result.matrix.columns)

        reloaded = load_expression_matrix(paths[0])
        np.testing.assert_allclose(reloaded.to_numpy(), result.matrix.to_numpy())

    def test_write_clustered(self, clustered_counts, tmp_output_dir):
        """Test one table per cluster."""
        counts, clustering = clustered_counts
        result = MetaCellPipeline(_run_config(k=2, mito=False)).run(counts, clustering=clustering)
        paths = result.write(tmp_output_dir, prefix="tumor")
        assert [p.name for p in paths] == [
            "tumor_clust-0-metaCells.tsv",
            "tumor_clust-1-metaCells.tsv",
        ]
