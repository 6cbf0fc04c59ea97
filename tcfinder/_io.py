"""
_io.py
======
Readers and writers for the files tcfinder works with.

  read_phylo4(source)        CSV phylogeny in phylo4 layout  -> Tree
  read_targets(source)       one label per line              -> list[str]
  write_cluster_table(...)   label groups -> CSV (cluster_id, label)

A phylo4 table has one row per node.  The mandatory columns are

  label     node label (tip labels must be unique)
  node      numeric node identifier
  ancestor  identifier of the parent node; 0 for the root
  nodetype  'tip' for tips; anything else ('root', 'internal') otherwise

Other columns (branch lengths, annotations) are ignored.  This is the
layout produced by ``as(tree, "data.frame")`` on a phylobase ``phylo4``
object.

*source* and *destination* accept a filesystem path or an open text file.
"""

import csv
import logging
import os
from contextlib import contextmanager
from typing import List, Sequence, TextIO, Union

from tcfinder._exceptions import Phylo4FormatError
from tcfinder._tree import Tree
from tcfinder._utils import unique_in_order

logger = logging.getLogger(__name__)

PHYLO4_COLUMNS = ("label", "node", "ancestor", "nodetype")
CLUSTER_TABLE_COLUMNS = ("cluster_id", "label")

PathOrFile = Union[str, os.PathLike, TextIO]


@contextmanager
def _open_text(source, mode: str):
    """
    Yield an open text handle for a path, or *source* itself if already open.

    Files are UTF-8; a leading byte-order mark (as written by Excel and some
    R exports) is dropped on read.
    """
    if isinstance(source, (str, bytes, os.PathLike)):
        encoding = "utf-8-sig" if mode == "r" else "utf-8"
        with open(source, mode, newline="", encoding=encoding) as fh:
            yield fh
    else:
        yield source


# ====================================================================== #
# Readers                                                                 #
# ====================================================================== #


def read_phylo4(source: PathOrFile) -> Tree:
    """
    Read a phylo4 CSV table and return a validated Tree.

    Parameters
    ----------
    source : path or text file

    Returns
    -------
    Tree

    Raises
    ------
    Phylo4FormatError        if a mandatory column is missing or a node /
                             ancestor value is not an integer.
    DanglingReferenceError   if an ancestor id names no node.
    MalformedTreeError       if the rows do not describe a single rooted tree.
    """
    with _open_text(source, "r") as fh:
        reader = csv.DictReader(fh)
        header = reader.fieldnames or []
        missing = [c for c in PHYLO4_COLUMNS if c not in header]
        if missing:
            raise Phylo4FormatError(
                f"Tree table is missing column(s) {', '.join(missing)}; "
                f"found {', '.join(header) if header else 'no header'}."
            )
        rows = [_parse_phylo4_row(row, line) for line, row in enumerate(reader, start=2)]

    logger.debug("Read %d phylo4 rows", len(rows))
    return Tree.from_rows(rows)


def _parse_phylo4_row(row: dict, line: int):
    """Convert one DictReader row into (label, node, ancestor, nodetype)."""
    values = []
    for column in ("node", "ancestor"):
        raw = row[column]
        try:
            values.append(int(raw))
        except (TypeError, ValueError):
            raise Phylo4FormatError(
                f"Line {line}: column '{column}' must be an integer, got {raw!r}."
            ) from None
    # Short rows leave trailing fields as None.
    label = row["label"] if row["label"] is not None else ""
    nodetype = (row["nodetype"] or "").strip()
    return label, values[0], values[1], nodetype


def read_targets(source: PathOrFile) -> List[str]:
    """
    Read target labels, one per line.

    Surrounding whitespace is stripped and blank lines are skipped.
    Duplicate labels are dropped (first occurrence kept) with a warning.

    Returns
    -------
    list[str]   Labels in file order.
    """
    with _open_text(source, "r") as fh:
        labels = [line.strip() for line in fh]
    labels = [label for label in labels if label]

    unique = unique_in_order(labels)
    if len(unique) < len(labels):
        logger.warning(
            "Target list contains %d duplicate label(s); duplicates ignored",
            len(labels) - len(unique),
        )
    logger.info("Read %d target label(s)", len(unique))
    return unique


# ====================================================================== #
# Writers                                                                 #
# ====================================================================== #


def write_cluster_table(clusters: Sequence[Sequence[str]], destination: PathOrFile) -> int:
    """
    Write label groups as a two-column CSV: ``cluster_id,label``.

    Cluster ids are 1-based positions in *clusters*; each label gets its
    own row.

    Returns
    -------
    int   Number of data rows written.
    """
    n_rows = 0
    with _open_text(destination, "w") as fh:
        writer = csv.writer(fh, lineterminator="\n")
        writer.writerow(CLUSTER_TABLE_COLUMNS)
        for cluster_id, labels in enumerate(clusters, start=1):
            for label in labels:
                writer.writerow((cluster_id, label))
                n_rows += 1
    logger.info("Wrote %d cluster(s), %d row(s)", len(clusters), n_rows)
    return n_rows
