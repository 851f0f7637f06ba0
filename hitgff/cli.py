import logging
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from hitgff.alignment.rbb import reciprocal_best_hits, write_pairs
from hitgff.config import Config, ConfigurationError
from hitgff.core.errors import HitGFFError
from hitgff.pipeline import HitAnnotator, normalize_gff

app = typer.Typer(
    name="hitgff",
    help="Cluster sequence alignment hits into GFF3 match annotations.",
    add_completion=False,
    no_args_is_help=True
)


def setup_logging(verbose: bool, level: Optional[str] = None):
    if level is None:
        level = "DEBUG" if verbose else "INFO"
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="[%(asctime)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _fail(error: Exception):
    typer.echo(f"Error: {error}", err=True)
    raise typer.Exit(code=1)


@app.command()
def cluster(
    alignment: Annotated[Path, typer.Argument(help="BLAST result file (tabular or XML)")],
    output: Annotated[Path, typer.Option("--output", "-o", help="Output GFF3 file")],
    fmt: Annotated[Optional[str], typer.Option("--format", "-f", help="tabular, xml or tree")] = None,
    cluster_on: Annotated[Optional[str], typer.Option(help="Axis to cluster on: query or subject")] = None,
    cutoff: Annotated[Optional[float], typer.Option(help="Maximum gap between clustered hits")] = None,
    alignment_error: Annotated[Optional[int], typer.Option(help="Tolerance of the contiguity check")] = None,
    e_value: Annotated[Optional[str], typer.Option(help="Maximum e-value of kept hits")] = None,
    id_prefix: Annotated[Optional[str], typer.Option(help="Prefix of assigned feature IDs")] = None,
    source: Annotated[Optional[str], typer.Option(help="GFF3 source column")] = None,
    feature_type: Annotated[Optional[str], typer.Option("--type", help="GFF3 type column")] = None,
    threads: Annotated[Optional[int], typer.Option(help="Number of worker processes")] = None,
    config: Annotated[Optional[Path], typer.Option("--config", "-c", help="YAML configuration file")] = None,
    verbose: bool = False
):
    """Cluster alignment hits and write them as GFF3 matches."""
    try:
        settings = Config(config, format=fmt, cluster_on=cluster_on, cutoff=cutoff,
                          alignment_error=alignment_error, e_value=e_value, id_prefix=id_prefix,
                          source=source, feature_type=feature_type, threads=threads,
                          progress=True if verbose else None)
    except ConfigurationError as e:
        _fail(e)

    setup_logging(verbose, None if verbose else settings.get("log_level"))

    try:
        written = HitAnnotator(settings).run(alignment, output)
    except (HitGFFError, FileNotFoundError) as e:
        _fail(e)

    typer.echo(f"Wrote {written} features to {output}")


@app.command()
def normalize(
    gff: Annotated[Path, typer.Argument(help="GFF3 file")],
    output: Annotated[Path, typer.Option("--output", "-o", help="Output GFF3 file")],
    id_prefix: Annotated[str, typer.Option(help="Prefix of assigned feature IDs")] = "",
    verbose: bool = False
):
    """Rebuild the feature trees of a GFF3 file and write them sorted."""
    setup_logging(verbose)

    try:
        written = normalize_gff(gff, output, id_prefix=id_prefix)
    except (HitGFFError, FileNotFoundError) as e:
        _fail(e)

    typer.echo(f"Wrote {written} features to {output}")


@app.command()
def rbb(
    first: Annotated[Path, typer.Argument(help="Alignments of the first set against the second")],
    second: Annotated[Path, typer.Argument(help="Alignments of the second set against the first")],
    output: Annotated[Path, typer.Option("--output", "-o", help="Output pairs file")],
    fmt: Annotated[str, typer.Option("--format", "-f", help="tabular, xml or tree")] = "tabular",
    e_value: Annotated[Optional[str], typer.Option(help="Maximum e-value of considered hits")] = None,
    verbose: bool = False
):
    """Write reciprocal best hit pairs."""
    setup_logging(verbose)

    try:
        pairs = reciprocal_best_hits(first, second, fmt, max_e_value=e_value, progress=verbose)
        written = write_pairs(pairs, output)
    except (HitGFFError, FileNotFoundError, ValueError) as e:
        _fail(e)

    typer.echo(f"Wrote {written} reciprocal best hits to {output}")


def main():
    app()


if __name__ == "__main__":
    main()
