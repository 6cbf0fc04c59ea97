"""
_clusters.py
============
Transmission cluster search over an annotated Tree.

Public API
----------
  clade_stats(tree, node, backend='best') -> CladeTargetStats
      Tip count, target count and target proportion of one clade.

  find_clusters(tree, threshold, backend='best', trace=None) -> list[int]
      Node indices of the maximal clades that meet *threshold*.

  extract_clade_tip_labels(tree, nodes) -> list[list[str]]
      Sorted tip labels of each clade, the groups themselves sorted.

  find_transmission_clusters(tree, targets, minimum_size=2, minimum_prop=0.9)
      Annotate, search and extract in one call.

Search
------
The search is breadth-first and top-down.  Every evaluated node gets one of
three decisions:

  qualify   prop >= threshold.prop and size >= threshold.size.  The node is
            a cluster; nothing below it is examined.
  prune     targets < threshold.targets.  No clade below can reach the
            minimum target count, so the whole subtree is dropped.
  enqueue   otherwise; its internal children are evaluated later.

Tips are never evaluated as candidate clades.  Because each decision
depends only on the node's own clade, the set of clusters found does not
depend on traversal order; only the discovery order does, and
``extract_clade_tip_labels`` sorts that away.

Tracing
-------
Each decision is reported, in evaluation order, to an optional ``trace``
callable as a ``SearchEvent``.  Without one, events go to
``tcfinder._logging.log_search_event`` (DEBUG level).
"""

import logging
from collections import deque
from typing import Callable, Iterable, List, NamedTuple, Optional

import numpy as np

from tcfinder._backend import (
    KNOWN_BACKENDS,
    get_available_backends,
    get_best_backend,
    import_cpu_kernels,
    resolve_backend,
)
from tcfinder._context import get_backend_override
from tcfinder._exceptions import MalformedTreeError
from tcfinder._logging import (
    log_backend_availability,
    log_cluster_summary,
    log_kernel_compilation,
    log_search_event,
    log_search_start,
)
from tcfinder._stats import CladeTargetStats
from tcfinder._tree import Tree

logger = logging.getLogger(__name__)

_cpu_import_ok, _clade_counts_nb, _clade_counts_batch_njit = import_cpu_kernels()
_BACKENDS_AVAILABLE = get_available_backends()
log_backend_availability(_BACKENDS_AVAILABLE)

# Track first calls to kernels for compilation logging
_kernel_first_call = {
    "cpu-parallel-single": True,
    "cpu-parallel-batch": True,
}

QUALIFY = "qualify"
PRUNE = "prune"
ENQUEUE = "enqueue"


class SearchEvent(NamedTuple):
    """One node evaluation during ``find_clusters``."""

    node: int
    label: str
    stats: CladeTargetStats
    decision: str
    depth: int


# ====================================================================== #
# Clade statistics                                                        #
# ====================================================================== #


def clade_stats(tree: Tree, node, backend: str = "best") -> CladeTargetStats:
    """
    Return the target statistics of the clade rooted at *node*.

    Parameters
    ----------
    tree    : Tree          An annotated tree.
    node    : int | str     Node index or tip label.
    backend : str           'best', 'python' or 'cpu-parallel'.

    Returns
    -------
    CladeTargetStats

    Raises
    ------
    DegenerateCladeError   if the clade has no tips.
    IndexError / KeyError  if *node* does not resolve.
    """
    index = tree._resolve_node(node)
    return _batch_stats(tree, [index], _select_backend(backend))[0]


def _select_backend(backend: str) -> str:
    """
    Resolve *backend*, honouring any ``use_backend`` override.

    Unknown names raise ``ValueError``; a known but unavailable backend is
    replaced by the best available one with a warning.
    """
    backend_override = get_backend_override()
    if backend_override is not None:
        backend = backend_override

    if backend not in KNOWN_BACKENDS:
        raise ValueError(
            f"Unknown backend '{backend}'. "
            f"Valid backends: {', '.join(KNOWN_BACKENDS)}"
        )
    try:
        return resolve_backend(backend)
    except ValueError as e:
        logger.warning(str(e))
        return get_best_backend()


def _batch_stats(tree: Tree, nodes, backend: str) -> List[CladeTargetStats]:
    """
    Statistics for each node index in *nodes* (already bounds-checked),
    computed with the resolved *backend*.
    """
    nodes = np.asarray(nodes, dtype=np.int64)
    if nodes.shape[0] == 0:
        return []

    if backend == "cpu-parallel":
        sizes, targets = _counts_cpu(tree, nodes)
    else:
        sizes, targets = _counts_python(tree, nodes)

    return [
        CladeTargetStats.from_counts(t, s, node=n)
        for n, s, t in zip(nodes.tolist(), sizes, targets)
    ]


def _counts_python(tree: Tree, nodes: np.ndarray):
    """Reference implementation: materialise each clade's tips and count."""
    sizes = []
    targets = []
    for node in nodes.tolist():
        tips = tree.descendant_tips(node)
        sizes.append(int(tips.shape[0]))
        targets.append(int(np.count_nonzero(tree.is_target[tips])))
    return sizes, targets


def _counts_cpu(tree: Tree, nodes: np.ndarray):
    """Numba kernels: one call for a single node, prange batch otherwise."""
    args = (tree.child_offsets, tree.child_index, tree.is_tip, tree.is_target)

    if nodes.shape[0] == 1:
        if _kernel_first_call["cpu-parallel-single"]:
            log_kernel_compilation("cpu-parallel-single")
            _kernel_first_call["cpu-parallel-single"] = False
        size, target = _clade_counts_nb(int(nodes[0]), *args)
        sizes = [int(size)]
        targets = [int(target)]
    else:
        if _kernel_first_call["cpu-parallel-batch"]:
            log_kernel_compilation("cpu-parallel-batch")
            _kernel_first_call["cpu-parallel-batch"] = False
        sizes_out = np.zeros(nodes.shape[0], dtype=np.int64)
        targets_out = np.zeros(nodes.shape[0], dtype=np.int64)
        _clade_counts_batch_njit(nodes, *args, sizes_out, targets_out)
        sizes = sizes_out.tolist()
        targets = targets_out.tolist()

    for node, size in zip(nodes.tolist(), sizes):
        if size < 0:
            raise MalformedTreeError(
                f"Traversal from node index {node} revisits nodes; "
                "the tree contains a cycle."
            )
    return sizes, targets


# ====================================================================== #
# Cluster search                                                          #
# ====================================================================== #


def decide(stats: CladeTargetStats, threshold: CladeTargetStats) -> str:
    """Qualify / prune / enqueue decision for one clade."""
    if stats.qualifies(threshold):
        return QUALIFY
    if not stats.can_contain_cluster(threshold):
        return PRUNE
    return ENQUEUE


def find_clusters(
    tree: Tree,
    threshold: CladeTargetStats,
    backend: str = "best",
    trace: Optional[Callable[[SearchEvent], None]] = None,
) -> List[int]:
    """
    Find the maximal clades of *tree* that meet *threshold*.

    Parameters
    ----------
    tree      : Tree
        Tree with targets already annotated.
    threshold : CladeTargetStats
        Built with ``CladeTargetStats.from_threshold(prop, size)``.
    backend   : str, default 'best'
        Backend for clade statistics.
    trace     : callable, optional
        Receives a ``SearchEvent`` for every evaluated node, in evaluation
        order.  Defaults to DEBUG logging.

    Returns
    -------
    list[int]
        Node indices of the cluster roots, in breadth-first discovery
        order.  No returned node is an ancestor of another.

    Raises
    ------
    MalformedTreeError     if the tree has no unique root.
    DegenerateCladeError   if an evaluated clade has no tips.
    """
    if not isinstance(threshold, CladeTargetStats):
        raise TypeError(
            "threshold must be a CladeTargetStats, "
            f"got {type(threshold).__name__}"
        )
    if trace is None:
        trace = log_search_event

    resolved = _select_backend(backend)
    root = tree.find_root()
    log_search_start(tree.labels[root], threshold)

    results = []
    queue = deque()

    root_stats = _batch_stats(tree, [root], resolved)[0]
    decision = decide(root_stats, threshold)
    trace(SearchEvent(root, tree.labels[root], root_stats, decision, 0))
    if decision == QUALIFY:
        results.append(root)
    elif decision == ENQUEUE:
        queue.append((root, 0))

    while queue:
        node, depth = queue.popleft()
        kids = tree.internal_children(node)
        children_stats = _batch_stats(tree, kids, resolved)
        for child, stats in zip(kids.tolist(), children_stats):
            decision = decide(stats, threshold)
            trace(SearchEvent(child, tree.labels[child], stats, decision, depth + 1))
            if decision == QUALIFY:
                results.append(child)
            elif decision == ENQUEUE:
                queue.append((child, depth + 1))

    return results


# ====================================================================== #
# Label extraction                                                        #
# ====================================================================== #


def extract_clade_tip_labels(tree: Tree, nodes: Iterable[int]) -> List[List[str]]:
    """
    Return the tip labels of each clade in *nodes*.

    Each group is sorted, and the list of groups is sorted as sequences, so
    the result depends only on the clades' contents and not on the order of
    *nodes*.
    """
    labels = [tree.tip_labels(node) for node in nodes]
    labels.sort()
    return labels


def find_transmission_clusters(
    tree: Tree,
    targets: Iterable[str],
    minimum_size: int = 2,
    minimum_prop: float = 0.9,
    backend: str = "best",
    trace: Optional[Callable[[SearchEvent], None]] = None,
) -> List[List[str]]:
    """
    Annotate *targets* on *tree*, search for clusters and return their tip
    labels.

    Parameters
    ----------
    tree         : Tree               The tree; its target flags are replaced.
    targets      : iterable of str    Target tip labels.
    minimum_size : int, default 2     Minimum number of tips in a cluster.
    minimum_prop : float, default 0.9 Minimum proportion of target tips.
    backend      : str, default 'best'
    trace        : callable, optional See ``find_clusters``.

    Returns
    -------
    list[list[str]]   Sorted label groups, one per cluster.

    Examples
    --------
    >>> tree = Tree.from_rows([
    ...     ('A', 1, 5, 'tip'), ('B', 2, 5, 'tip'), ('C', 3, 4, 'tip'),
    ...     ('root', 4, 0, 'root'), ('AB', 5, 4, 'internal'),
    ... ])
    >>> find_transmission_clusters(tree, ['A', 'B'])
    [['A', 'B']]
    """
    threshold = CladeTargetStats.from_threshold(minimum_prop, minimum_size)
    tree.annotate_targets(targets)
    nodes = find_clusters(tree, threshold, backend=backend, trace=trace)
    labels = extract_clade_tip_labels(tree, nodes)
    log_cluster_summary(len(labels), sum(len(g) for g in labels), tree.n_targets)
    return labels
