"""
tcfinder
========

Transmission cluster finder: locate the maximal clades of a rooted
phylogeny whose tips are enriched for a set of target tips.

A clade is a *transmission cluster* when it holds at least ``minimum_size``
tips and at least ``minimum_prop`` of them are targets, and no ancestor
clade already satisfies both conditions.

Main Classes
------------
Tree : Rooted tree stored as flat numpy arrays (phylo4 node table layout)
CladeTargetStats : Size / target count / proportion of a clade or threshold
SearchEvent : One node evaluation reported to a search trace callback

Functions
---------
find_transmission_clusters : Annotate targets, search, return label groups
find_clusters : Cluster root node indices for an annotated tree
extract_clade_tip_labels : Sorted tip labels of a list of clade roots
clade_stats : Statistics of a single clade
annotate_targets, find_root : Functional forms of the Tree methods

I/O
---
read_phylo4 : Read a phylo4 CSV table into a Tree
read_targets : Read a list of target labels
write_cluster_table : Write label groups as a cluster_id,label CSV

Context Managers
----------------
quiet : Suppress tcfinder logging during operations
suppress_logger : Suppress specific logger
use_backend : Force specific computational backend

Examples
--------
>>> from tcfinder import read_phylo4, read_targets, find_transmission_clusters
>>> tree = read_phylo4('tree.csv')
>>> clusters = find_transmission_clusters(
...     tree, read_targets('targets.txt'), minimum_size=2, minimum_prop=0.9
... )
>>> clusters[0]
['t100', 't35']

Lower-level access:

>>> from tcfinder import CladeTargetStats, find_clusters, extract_clade_tip_labels
>>> tree.annotate_targets(targets)
>>> threshold = CladeTargetStats.from_threshold(0.9, 2)
>>> roots = find_clusters(tree, threshold)
>>> extract_clade_tip_labels(tree, roots)
"""

__version__ = "0.1.0"
__license__ = "MIT"

# Main classes
from ._tree import Tree, find_root, annotate_targets
from ._stats import CladeTargetStats
from ._clusters import (
    SearchEvent,
    clade_stats,
    find_clusters,
    extract_clade_tip_labels,
    find_transmission_clusters,
)

# Errors
from ._exceptions import (
    TreeError,
    MalformedTreeError,
    DanglingReferenceError,
    DegenerateCladeError,
    Phylo4FormatError,
)

# I/O
from ._io import read_phylo4, read_targets, write_cluster_table

# Context managers (user-facing utilities)
from ._context import suppress_logger, quiet, use_backend

# Backend information (useful for checking capabilities)
from ._backend import get_available_backends, get_backend_info

# Public API
__all__ = [
    # Main classes
    "Tree",
    "CladeTargetStats",
    "SearchEvent",
    # Core functions
    "find_root",
    "annotate_targets",
    "clade_stats",
    "find_clusters",
    "extract_clade_tip_labels",
    "find_transmission_clusters",
    # Errors
    "TreeError",
    "MalformedTreeError",
    "DanglingReferenceError",
    "DegenerateCladeError",
    "Phylo4FormatError",
    # I/O
    "read_phylo4",
    "read_targets",
    "write_cluster_table",
    # Context managers
    "suppress_logger",
    "quiet",
    "use_backend",
    # Backend information
    "get_available_backends",
    "get_backend_info",
    # Version info
    "__version__",
]
