"""
_logging.py
===========
Logging functions for tcfinder.

All functions in this module have NO side effects except logging. They take
computed data as parameters and format/emit log messages.

This separation ensures:
- Logging can be easily disabled/mocked in tests
- Computation is separate from presentation
- The cluster search itself contains no log calls; it reports each decision
  to a trace callback, and ``log_search_event`` is the default callback
"""

import logging
from typing import List, Sequence

logger = logging.getLogger(__name__)

# Maximum number of labels quoted in a single message.
_MAX_LISTED = 5


def _preview(items: Sequence[str]) -> str:
    """Comma-joined first few items, with an ellipsis if truncated."""
    shown = ", ".join(items[:_MAX_LISTED])
    if len(items) > _MAX_LISTED:
        shown += ", ..."
    return shown


# ============================================================================ #
# Backend Logging
# ============================================================================ #


def log_backend_availability(backends_available: List[str]) -> None:
    """
    Log which execution backends are available for clade statistics.

    Parameters
    ----------
    backends_available : List[str]
        List of available backends (e.g., ['python', 'cpu-parallel'])
    """
    logger.debug("Available backends: %s", ", ".join(backends_available))
    if "cpu-parallel" not in backends_available:
        logger.debug("  cpu-parallel: unavailable (numba could not be imported)")


def log_kernel_compilation(kernel_key: str) -> None:
    """Note that a numba kernel is being compiled on first use."""
    logger.debug("Compiling %s kernel (cached for future calls)", kernel_key)


# ============================================================================ #
# Tree Logging
# ============================================================================ #


def log_tree_summary(n_nodes: int, n_tips: int, n_edges: int, root_label: str) -> None:
    """
    Log the size of a freshly loaded tree.

    Parameters
    ----------
    n_nodes : int
        Total number of nodes.
    n_tips : int
        Number of tip nodes.
    n_edges : int
        Number of parent -> child edges.
    root_label : str
        Label of the root node.
    """
    logger.info(
        "Tree loaded: %d nodes (%d tips, %d internal), %d edges, root %r",
        n_nodes,
        n_tips,
        n_nodes - n_tips,
        n_edges,
        root_label,
    )


def log_target_annotation(n_matched: int, n_requested: int, unmatched: List[str]) -> None:
    """
    Log the outcome of flagging target tips.

    Parameters
    ----------
    n_matched : int
        Number of tips flagged as targets.
    n_requested : int
        Number of distinct target labels supplied.
    unmatched : List[str]
        Target labels that match no tip, sorted.
    """
    if n_requested == 0:
        logger.warning("Target set is empty; no clade can be enriched for targets.")
        return

    logger.info("Annotated %d of %d target label(s) as tips", n_matched, n_requested)
    if unmatched:
        logger.warning(
            "%d target label(s) do not match any tip: %s",
            len(unmatched),
            _preview(unmatched),
        )


# ============================================================================ #
# Search Logging
# ============================================================================ #


def log_search_start(root_label: str, threshold) -> None:
    """
    Log the threshold a cluster search runs with.

    Parameters
    ----------
    root_label : str
        Label of the tree root.
    threshold : CladeTargetStats
        Minimum proportion, size and derived minimum target count.
    """
    logger.debug(
        "Searching clusters from root %r: prop >= %g, size >= %d "
        "(prune below %d targets)",
        root_label,
        threshold.prop,
        threshold.size,
        threshold.targets,
    )


def log_search_event(event) -> None:
    """
    Default trace callback for the cluster search: one DEBUG line per
    evaluated node.

    Parameters
    ----------
    event : SearchEvent
        Node, label, statistics, decision and depth of one evaluation.
    """
    if not logger.isEnabledFor(logging.DEBUG):
        return
    stats = event.stats
    logger.debug(
        "%s%s %r: %d/%d targets (prop=%.3f) -> %s",
        "  " * event.depth,
        event.node,
        event.label,
        stats.targets,
        stats.size,
        stats.prop,
        event.decision,
    )


def log_cluster_summary(n_clusters: int, n_clustered_tips: int, n_targets: int) -> None:
    """
    Log how many clusters were found and how many tips they hold.

    Parameters
    ----------
    n_clusters : int
        Number of clusters found.
    n_clustered_tips : int
        Total tips across all clusters.
    n_targets : int
        Number of target tips in the tree.
    """
    if n_clusters == 0:
        logger.info("No transmission clusters found (%d target tips)", n_targets)
        return
    logger.info(
        "Found %d transmission cluster(s) holding %d tips (%d target tips in tree)",
        n_clusters,
        n_clustered_tips,
        n_targets,
    )
