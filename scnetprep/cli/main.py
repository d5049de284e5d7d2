"""Command-line interface for scnetprep.

Provides CLI commands for meta-cell construction and activity-matrix
summarisation.
"""

import functools
from pathlib import Path
from typing import Optional, Tuple

import click
import pandas as pd

from scnetprep import __version__
from scnetprep.errors import ScNetPrepError
from scnetprep.pipeline import PipelineLogger

NAMESPACE_CHOICES = ["symbol", "ensembl", "ensemble"]
SPECIES_CHOICES = ["human", "mouse"]
MRS_METHODS = ["stouffer", "anova", "cbc", "bootstrap"]


def setup_logging(
    verbose: bool = False,
    debug: bool = False,
    log_dir: Optional[str] = None,
) -> PipelineLogger:
    """Setup logging for CLI commands."""
    level = "DEBUG" if debug else ("INFO" if verbose else "WARNING")
    pipeline_logger = PipelineLogger(log_dir, log_level=level)
    pipeline_logger.setup()
    return pipeline_logger


def report_errors(func):
    """Turn scnetprep errors into a click error naming the failing stage."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ScNetPrepError as e:
            if e.stage:
                raise click.ClickException(f"Stage {e.stage} failed: {e.message}") from e
            raise click.ClickException(e.message) from e

    return wrapper


def _load_weights(path: Optional[str]) -> Optional[pd.Series]:
    """Read a two-column (sample, weight) table."""
    if not path:
        return None
    sep = "," if path.lower().endswith(".csv") else "\t"
    df = pd.read_csv(path, sep=sep)
    return pd.Series(df.iloc[:, 1].astype(float).to_numpy(), index=df.iloc[:, 0].astype(str))


@click.group()
@click.version_option(version=__version__, prog_name="scnetprep")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option("--debug", is_flag=True, help="Enable debug output")
@click.option("--log-dir", type=click.Path(), help="Also write a log file to this directory")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, debug: bool, log_dir: Optional[str]) -> None:
    """scnetprep: single-cell preparation for regulatory network analysis.

    Builds meta-cell matrices for ARACNe and summarises protein-activity
    matrices into master regulators.

    Examples:

        # Meta-cells per cluster, 10 neighbours, 250 meta-cells per cluster
        scnetprep metacells -i counts.tsv -o out/ --clusters clusters.tsv -k 10 --subset-size 250

        # Stouffer master regulators per cluster
        scnetprep mrs -i activity.tsv -o mrs.tsv --clusters clusters.tsv

        # Select the 3 best of several regulon networks
        scnetprep select-networks -i expr.tsv -n a.tsv -n b.tsv -n c.tsv -o selected/
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["debug"] = debug
    ctx.obj["pipeline_logger"] = setup_logging(verbose, debug, log_dir)
    ctx.obj["logger"] = ctx.obj["pipeline_logger"].logger


@cli.command()
@click.option("--input", "-i", "input_path", required=True, type=click.Path(exists=True),
              help="Raw count matrix (genes x cells; .tsv, .csv, .pkl, .h5ad)")
@click.option("--out", "-o", "output_path", required=True, type=click.Path(),
              help="Output directory")
@click.option("--config", "-c", type=click.Path(exists=True),
              help="Run configuration file (YAML)")
@click.option("--clusters", type=click.Path(exists=True),
              help="Cell -> cluster table; meta-cells are built per cluster")
@click.option("--dissimilarity", type=click.Path(exists=True),
              help="Precomputed cell x cell dissimilarity used instead of Pearson")
@click.option("--prefix", help="Output file prefix (default: input file stem)")
@click.option("--num-neighbors", "-k", type=int, help="Neighbours pooled into each meta-cell")
@click.option("--subset-size", type=int, help="Meta-cells kept per partition")
@click.option("--namespace", type=click.Choice(NAMESPACE_CHOICES), help="Gene id namespace")
@click.option("--species", type=click.Choice(SPECIES_CHOICES), help="Species")
@click.option("--mito-threshold", type=float, help="Maximum mitochondrial fraction")
@click.option("--mito-filter/--no-mito-filter", default=None,
              help="Remove cells with high mitochondrial fraction")
@click.option("--mito-table", type=click.Path(exists=True),
              help="BioMart export replacing the built-in mitochondrial gene lists")
@click.option("--seed", type=int, help="Subsampling seed")
@click.option("--n-jobs", type=int, help="Parallel jobs across clusters")
@click.option("--layer", help="AnnData layer to read (.h5ad input only)")
@click.pass_context
@report_errors
def metacells(
    ctx: click.Context,
    input_path: str,
    output_path: str,
    config: Optional[str],
    clusters: Optional[str],
    dissimilarity: Optional[str],
    prefix: Optional[str],
    num_neighbors: Optional[int],
    subset_size: Optional[int],
    namespace: Optional[str],
    species: Optional[str],
    mito_threshold: Optional[float],
    mito_filter: Optional[bool],
    mito_table: Optional[str],
    seed: Optional[int],
    n_jobs: Optional[int],
    layer: Optional[str],
) -> None:
    """Build meta-cell matrices in the ARACNe input format.

    Steps: mitochondrial filter, count filter, CPM, Pearson dissimilarity,
    KNN pooling, CPM, optional subsampling. Options override the config.
    """
    logger = ctx.obj["logger"]

    # Import here to avoid slow startup
    from scnetprep.config import load_mito_table
    from scnetprep.core.metacells import MetaCellPipeline, MetaCellRunConfig
    from scnetprep.io import load_clustering, load_dissimilarity, load_expression_matrix

    cfg = MetaCellRunConfig.from_yaml(Path(config)) if config else MetaCellRunConfig()
    overrides = {
        (cfg.metacells, "num_neighbors"): num_neighbors,
        (cfg.metacells, "subset_size"): subset_size,
        (cfg.metacells, "random_seed"): seed,
        (cfg.metacells, "n_jobs"): n_jobs,
        (cfg.qc, "namespace"): namespace,
        (cfg.qc, "species"): species,
        (cfg.qc, "mito_threshold"): mito_threshold,
        (cfg.qc, "apply_mito_filter"): mito_filter,
    }
    for (section, name), value in overrides.items():
        if value is not None:
            setattr(section, name, value)

    if mito_table:
        tables = load_mito_table(mito_table)
        logger.info(f"Loaded {len(tables)} mitochondrial gene list(s) from {mito_table}")
    raw = load_expression_matrix(input_path, layer=layer)
    clustering = load_clustering(clusters) if clusters else None
    dist = load_dissimilarity(dissimilarity) if dissimilarity else None

    pipeline = MetaCellPipeline(cfg, logger=logger, pipeline_logger=ctx.obj["pipeline_logger"])
    result = pipeline.run(raw, clustering=clustering, dissimilarity=dist)

    prefix = prefix or Path(input_path).name.split(".")[0]
    paths = result.write(output_path, prefix=prefix)

    for path in paths:
        click.echo(f"Wrote: {path}")
    click.echo(f"Meta-cells complete: {len(paths)} table(s) in {output_path}")


@cli.command()
@click.option("--input", "-i", "input_path", required=True, type=click.Path(exists=True),
              help="Activity matrix (regulators x samples)")
@click.option("--out", "-o", "output_path", required=True, type=click.Path(),
              help="Output table (.tsv or .csv)")
@click.option("--method", type=click.Choice(MRS_METHODS), default="stouffer",
              help="Master-regulator method")
@click.option("--clusters", type=click.Path(exists=True),
              help="Sample -> cluster table (required for anova and bootstrap)")
@click.option("--weights", type=click.Path(exists=True),
              help="Sample -> weight table for Stouffer integration")
@click.option("--config", "-c", type=click.Path(exists=True),
              help="Signature configuration file (YAML)")
@click.option("--num-mrs", "-n", type=int, help="Regulators from each end")
@click.option("--bottom/--no-bottom", default=None, help="Also report the lowest regulators")
@click.pass_context
@report_errors
def mrs(
    ctx: click.Context,
    input_path: str,
    output_path: str,
    method: str,
    clusters: Optional[str],
    weights: Optional[str],
    config: Optional[str],
    num_mrs: Optional[int],
    bottom: Optional[bool],
) -> None:
    """Call master regulators from an activity matrix.

    Methods:
      stouffer:  weighted Stouffer integration (per cluster with --clusters)
      anova:     one-way ANOVA across clusters
      cbc:       union of every sample's top regulators
      bootstrap: bootstrapped Welch t-test of each cluster vs the rest
    """
    logger = ctx.obj["logger"]

    from scnetprep.core.signatures import MasterRegulatorFinder, SignatureConfig
    from scnetprep.io import load_clustering, load_expression_matrix, write_dataframe

    cfg = SignatureConfig.from_yaml(Path(config)) if config else SignatureConfig()
    if num_mrs is not None:
        cfg.num_mrs = num_mrs
        cfg.cbc_num_mrs = num_mrs
    if bottom is not None:
        cfg.bottom = bottom

    activity = load_expression_matrix(input_path)
    clustering = load_clustering(clusters) if clusters else None
    if method in ("anova", "bootstrap") and clustering is None:
        raise click.UsageError(f"--clusters is required for method '{method}'")

    finder = MasterRegulatorFinder(cfg, logger=logger)
    if method == "cbc":
        table = pd.DataFrame({"regulator": finder.cell_by_cell_mrs(activity)})
    elif method == "anova":
        scores = finder.anova_mrs(activity, clustering)
        table = pd.DataFrame({"regulator": scores.index, "p_value": scores.to_numpy()})
    else:
        if method == "bootstrap":
            per_cluster = finder.bootstrap_mrs(activity, clustering)
            value_col = "p_value"
        elif clustering is not None:
            per_cluster = finder.stouffer_mrs_by_cluster(activity, clustering, _load_weights(weights))
            value_col = "score"
        else:
            per_cluster = {"all": finder.stouffer_mrs(activity, _load_weights(weights))}
            value_col = "score"
        table = pd.concat(
            [
                pd.DataFrame({"cluster": label, "regulator": s.index, value_col: s.to_numpy()})
                for label, s in per_cluster.items()
            ],
            ignore_index=True,
        )

    write_dataframe(table, output_path)
    click.echo(f"Master regulators ({method}): {len(table)} rows written to {output_path}")


@cli.command()
@click.option("--priority", "-p", required=True, type=click.Path(exists=True),
              help="Preferred activity matrix")
@click.option("--secondary", "-s", required=True, type=click.Path(exists=True),
              help="Fallback activity matrix with the same samples")
@click.option("--out", "-o", "output_path", required=True, type=click.Path(),
              help="Output matrix (.tsv or .csv)")
@click.pass_context
@report_errors
def merge(ctx: click.Context, priority: str, secondary: str, output_path: str) -> None:
    """Priority-merge two activity matrices."""
    from scnetprep.core.signatures import priority_merge
    from scnetprep.io import load_expression_matrix, write_dataframe

    merged = priority_merge(load_expression_matrix(priority), load_expression_matrix(secondary))
    write_dataframe(merged, output_path, index=True)
    click.echo(f"Merged matrix: {merged.shape[0]} x {merged.shape[1]} written to {output_path}")


@cli.command()
@click.option("--input", "-i", "input_paths", required=True, multiple=True,
              type=click.Path(exists=True), help="Activity matrix (repeatable)")
@click.option("--weight", "-w", "weights", multiple=True, type=float,
              help="Weight per input, in input order (repeatable)")
@click.option("--out", "-o", "output_path", required=True, type=click.Path(),
              help="Output matrix (.tsv or .csv)")
@click.pass_context
@report_errors
def integrate(
    ctx: click.Context,
    input_paths: Tuple[str, ...],
    weights: Tuple[float, ...],
    output_path: str,
) -> None:
    """Stouffer-integrate several activity matrices."""
    from scnetprep.core.signatures import integrate_matrices
    from scnetprep.io import load_expression_matrix, write_dataframe

    matrices = [load_expression_matrix(p) for p in input_paths]
    merged = integrate_matrices(matrices, list(weights) if weights else None)
    write_dataframe(merged, output_path, index=True)
    click.echo(
        f"Integrated {len(matrices)} matrices: {merged.shape[0]} x {merged.shape[1]} "
        f"written to {output_path}"
    )


@cli.command()
@click.option("--network", "-n", required=True, type=click.Path(exists=True),
              help="ARACNe edge list (regulator, target, MI)")
@click.option("--expression", "-e", required=True, type=click.Path(exists=True),
              help="Expression matrix the network was inferred from")
@click.option("--max-targets", type=int, default=50, show_default=True,
              help="Targets kept per regulator")
@click.option("--out", "-o", "output_path", required=True, type=click.Path(),
              help="Output regulon table (.tsv or .csv)")
@click.pass_context
@report_errors
def regulon(
    ctx: click.Context,
    network: str,
    expression: str,
    max_targets: int,
    output_path: str,
) -> None:
    """Convert an ARACNe network into a pruned regulon table."""
    from scnetprep.core.signatures import prune_regulon, regulon_from_edges
    from scnetprep.io import load_expression_matrix, load_network, write_dataframe

    table = regulon_from_edges(load_network(network), load_expression_matrix(expression))
    table = prune_regulon(table, max_targets=max_targets)
    write_dataframe(table, output_path)
    click.echo(
        f"Regulon: {table['regulator'].nunique()} regulators, {len(table)} edges "
        f"written to {output_path}"
    )


@cli.command("select-networks")
@click.option("--input", "-i", "input_path", required=True, type=click.Path(exists=True),
              help="Expression matrix (genes x samples)")
@click.option("--network", "-n", "network_paths", required=True, multiple=True,
              type=click.Path(exists=True), help="Candidate regulon table (repeatable)")
@click.option("--out", "-o", "output_path", required=True, type=click.Path(),
              help="Output directory")
@click.option("--top-k", type=int, help="Networks to select")
@click.option("--min-targets", type=int, help="Minimum regulon size")
@click.option("--n-jobs", type=int, help="Parallel jobs across candidates")
@click.option("--config", "-c", type=click.Path(exists=True),
              help="Signature configuration file (YAML)")
@click.pass_context
@report_errors
def select_networks(
    ctx: click.Context,
    input_path: str,
    network_paths: Tuple[str, ...],
    output_path: str,
    top_k: Optional[int],
    min_targets: Optional[int],
    n_jobs: Optional[int],
    config: Optional[str],
) -> None:
    """Select reference networks by per-feature voting.

    Each candidate is scored alone with the reference activity primitive;
    the most-voted candidates are then combined for the final activity.
    """
    logger = ctx.obj["logger"]

    from scnetprep.core.signatures import NetworkSelector, SignatureConfig, regulon_activity
    from scnetprep.io import ensure_output_dir, load_expression_matrix, load_regulon, write_dataframe, write_yaml

    cfg = SignatureConfig.from_yaml(Path(config)) if config else SignatureConfig()
    top_k = cfg.top_networks if top_k is None else top_k
    min_targets = cfg.min_targets if min_targets is None else min_targets
    n_jobs = cfg.n_jobs if n_jobs is None else n_jobs

    expression = load_expression_matrix(input_path)
    candidates = {}
    for path in network_paths:
        name = Path(path).name.split(".")[0]
        if name in candidates:
            name = f"{name}_{len(candidates)}"
        candidates[name] = load_regulon(path)

    activity_fn = functools.partial(regulon_activity, min_targets=min_targets)
    selector = NetworkSelector(activity_fn, top_k=top_k, n_jobs=n_jobs, logger=logger)
    result = selector.select(expression, candidates)

    out_dir = ensure_output_dir(output_path)
    write_dataframe(result.activity, out_dir / "activity.tsv", index=True)
    write_dataframe(result.votes.rename_axis("network").reset_index(), out_dir / "votes.tsv")
    write_yaml(out_dir / "selection.yaml", result.to_dict())

    click.echo(f"Selected networks: {', '.join(result.selected)}")
    click.echo(f"Output saved to: {out_dir}")


def main() -> None:
    """Main entry point for CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
