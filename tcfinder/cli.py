"""
Command-line entry point for tcfinder.

    tcfinder -i tree.csv -t targets.txt -o clusters.csv [-s 2] [-p 0.9]

Reads a phylo4 CSV tree and a list of target tip labels, finds the
transmission clusters and writes them as a ``cluster_id,label`` table.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path

import typer
from rich import print as rprint
from rich.console import Console
from rich.markup import escape

from tcfinder import __version__
from tcfinder._clusters import find_transmission_clusters
from tcfinder._context import PACKAGE_LOGGER
from tcfinder._io import read_phylo4, read_targets, write_cluster_table

app = typer.Typer(
    name="tcfinder",
    help="Find transmission clusters in a phylo4 phylogeny",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)


class Backend(str, Enum):
    """Execution backend for clade statistics."""

    BEST = "best"
    PYTHON = "python"
    CPU_PARALLEL = "cpu-parallel"


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        rprint(f"tcfinder version {__version__}")
        raise typer.Exit


def configure_logging(verbose: bool, quiet: bool) -> None:
    """Route tcfinder log records to stderr at the requested verbosity."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")
    # basicConfig is a no-op when the root logger already has handlers
    logging.getLogger(PACKAGE_LOGGER).setLevel(level)


def report_error(error: Exception) -> None:
    """Print *error* to stderr; labels and paths may contain markup brackets."""
    err_console.print(f"[red]Error: {escape(str(error))}[/red]")


@app.command()
def main(
    tree: Path = typer.Option(
        ...,
        "--tree",
        "-i",
        help="Input tree in phylo4 CSV format (columns label, node, ancestor, nodetype)",
        exists=True,
        dir_okay=False,
    ),
    targets: Path = typer.Option(
        ...,
        "--targets",
        "-t",
        help="Target tip labels, one per line",
        exists=True,
        dir_okay=False,
    ),
    output: Path = typer.Option(
        ...,
        "--output",
        "-o",
        help="Output CSV with columns cluster_id, label",
    ),
    minimum_size: int = typer.Option(
        2,
        "--minimum-size",
        "-s",
        help="Minimum cluster size",
        min=1,
    ),
    minimum_prop: float = typer.Option(
        0.9,
        "--minimum-prop",
        "-p",
        help="Minimum proportion of targets in cluster",
        min=0.0,
        max=1.0,
    ),
    backend: Backend = typer.Option(
        Backend.BEST,
        "--backend",
        "-b",
        help="Backend for clade statistics",
        case_sensitive=False,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug output, including the per-node search trace",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Only report warnings and errors",
    ),
    version: bool = typer.Option(
        None,
        "--version",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """
    Find transmission clusters: maximal clades in which at least
    MINIMUM_PROP of the tips are targets and which hold at least
    MINIMUM_SIZE tips.
    """
    configure_logging(verbose, quiet)

    try:
        target_labels = read_targets(targets)
        phylogeny = read_phylo4(tree)
        clusters = find_transmission_clusters(
            phylogeny,
            target_labels,
            minimum_size=minimum_size,
            minimum_prop=minimum_prop,
            backend=backend.value,
        )
    except (ValueError, OSError) as e:
        report_error(e)
        raise typer.Exit(code=1) from None

    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        write_cluster_table(clusters, output)
    except OSError as e:
        report_error(e)
        raise typer.Exit(code=1) from None

    if not quiet:
        n_tips = sum(len(labels) for labels in clusters)
        console.print(
            f"[bold green]{len(clusters)} cluster(s)[/bold green] "
            f"holding {n_tips} tip(s) written to [bold]{escape(str(output))}[/bold]"
        )


if __name__ == "__main__":
    app()
