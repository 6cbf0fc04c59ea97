"""
_cpu_kernels.py
===============
CPU-accelerated clade statistics kernels using Numba.

This module contains ONLY numba-accelerated code and should not import other
project modules to avoid import-time complications.

Exported Functions
------------------
_clade_counts_nb : njit function
    Tip and target counts of one clade, by iterative depth-first traversal
    over the CSR child arrays.

_clade_counts_batch_njit : njit function
    Parallel (prange) version of _clade_counts_nb over a batch of clade
    roots, used to evaluate all internal children of one node at once.

Notes
-----
- Kernels take only numpy arrays and plain integers; the Tree instance is
  unpacked by the caller.
- A clade traversal that would exceed n_nodes visits (a cycle in an
  unvalidated tree) returns the sentinel (-1, -1) instead of looping.
- cache=True persists compiled binary to disk for faster subsequent runs
"""

import numpy as np
from numba import njit, prange


# ======================================================================== #
# CPU Kernels                                                               #
# ======================================================================== #


@njit(cache=True)
def _clade_counts_nb(node, child_offsets, child_index, is_tip, is_target):
    """
    Count the tips and target tips in the clade rooted at *node*.

    Parameters
    ----------
    node          : int
        Node index of the clade root.
    child_offsets : int64[:]
        CSR row pointer (n_nodes + 1).
    child_index   : int32[:]
        Child node indices.
    is_tip        : bool[:]
        Tip flags.
    is_target     : bool[:]
        Target flags.

    Returns
    -------
    (int, int)
        (n_tips, n_targets), or (-1, -1) if the traversal revisits nodes.
    """
    n_nodes = is_tip.shape[0]
    stack = np.empty(n_nodes, dtype=np.int64)
    top = 0
    stack[0] = node

    n_tips = 0
    n_targets = 0
    n_visited = 0
    while top >= 0:
        v = stack[top]
        top -= 1
        n_visited += 1
        if n_visited > n_nodes:
            return -1, -1
        if is_tip[v]:
            n_tips += 1
            if is_target[v]:
                n_targets += 1
        for k in range(child_offsets[v], child_offsets[v + 1]):
            if top + 1 >= n_nodes:
                return -1, -1
            top += 1
            stack[top] = child_index[k]
    return n_tips, n_targets


@njit(parallel=True, cache=True)
def _clade_counts_batch_njit(
        nodes,
        child_offsets,
        child_index,
        is_tip,
        is_target,
        sizes_out,
        targets_out):
    """
    Tip and target counts for each clade root in *nodes*.

    Parameters
    ----------
    nodes         : int64[:]
        Clade roots to evaluate.
    child_offsets, child_index, is_tip, is_target
        As for _clade_counts_nb.
    sizes_out     : int64[:]
        Output; sizes_out[i] receives the tip count of nodes[i].
    targets_out   : int64[:]
        Output; targets_out[i] receives the target count of nodes[i].

    Notes
    -----
    Iterations are independent: each reads the shared arrays and writes only
    its own output slot.
    """
    for i in prange(nodes.shape[0]):
        size, targets = _clade_counts_nb(
            nodes[i], child_offsets, child_index, is_tip, is_target
        )
        sizes_out[i] = size
        targets_out[i] = targets
