"""
test_cpu_kernels.py
===================
Tests for CPU kernels (_cpu_kernels.py).

The kernels are called directly on the CSR arrays of small hand-built trees,
so a failure here points at the kernel rather than at the search around it.
Agreement with the pure Python backend on random trees is checked in
test_kernel_agreement.py.
"""

import os
import sys
from pathlib import Path

# Add parent directory to path so we can import the kernel modules
sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
import pytest

# Try to import the CPU kernels
try:
    from tcfinder._cpu_kernels import _clade_counts_nb, _clade_counts_batch_njit

    KERNELS_AVAILABLE = True
except ImportError:
    KERNELS_AVAILABLE = False

from tcfinder._io import read_phylo4, read_targets
from tcfinder._tree import Tree

# Skip all tests if kernels not available
pytestmark = pytest.mark.skipif(
    not KERNELS_AVAILABLE,
    reason="CPU kernels module not available"
)

_HERE = os.path.dirname(__file__)


@pytest.fixture(scope="module")
def small():
    tree = read_phylo4(os.path.join(_HERE, "trees", "small_8tip.csv"))
    return tree.annotate_targets(
        read_targets(os.path.join(_HERE, "data", "small_targets.txt"))
    )


def _arrays(tree):
    return (tree.child_offsets, tree.child_index, tree.is_tip, tree.is_target)


class TestKernelImports:
    """Test that kernel imports work correctly."""

    def test_module_imports_successfully(self):
        import tcfinder._cpu_kernels as _cpu_kernels
        assert _cpu_kernels is not None

    def test_kernels_are_callable(self):
        assert callable(_clade_counts_nb)
        assert callable(_clade_counts_batch_njit)

    def test_batch_has_two_output_params(self):
        import inspect
        single = len(inspect.signature(_clade_counts_nb).parameters)
        batch = len(inspect.signature(_clade_counts_batch_njit).parameters)
        assert single == 5
        assert batch == single + 2


class TestSingleCladeKernel:
    """_clade_counts_nb on the 8-tip tree."""

    @pytest.mark.parametrize(
        "node, expected",
        [
            (8, (8, 6)),    # root
            (9, (3, 2)),    # n10: A B C
            (10, (5, 4)),   # n11: D E F G H
            (11, (2, 2)),   # n12
            (13, (3, 2)),   # n14
            (0, (1, 0)),    # tip A
            (1, (1, 1)),    # tip B
        ],
    )
    def test_counts(self, small, node, expected):
        size, targets = _clade_counts_nb(node, *_arrays(small))
        assert (int(size), int(targets)) == expected

    def test_childless_internal_node(self):
        tree = Tree(["A", "x", ""], [1, 2, 3], [3, 3, 0], [True, False, False])
        tree.annotate_targets(["A"])
        size, targets = _clade_counts_nb(1, *_arrays(tree))
        assert (int(size), int(targets)) == (0, 0)

    def test_cycle_returns_sentinel(self):
        tree = Tree(["x", "y"], [1, 2], [2, 1], [False, False])
        size, targets = _clade_counts_nb(0, *_arrays(tree))
        assert (int(size), int(targets)) == (-1, -1)


class TestBatchKernel:
    """_clade_counts_batch_njit writes one slot per requested node."""

    def test_matches_single_kernel(self, small):
        nodes = np.arange(small.n_nodes, dtype=np.int64)
        sizes = np.zeros(nodes.shape[0], dtype=np.int64)
        targets = np.zeros(nodes.shape[0], dtype=np.int64)
        _clade_counts_batch_njit(nodes, *_arrays(small), sizes, targets)
        for i, node in enumerate(nodes):
            expected = _clade_counts_nb(int(node), *_arrays(small))
            assert (sizes[i], targets[i]) == expected

    def test_output_order_follows_input(self, small):
        nodes = np.array([14, 8, 11], dtype=np.int64)
        sizes = np.zeros(3, dtype=np.int64)
        targets = np.zeros(3, dtype=np.int64)
        _clade_counts_batch_njit(nodes, *_arrays(small), sizes, targets)
        assert sizes.tolist() == [2, 8, 2]
        assert targets.tolist() == [2, 6, 2]

    def test_empty_batch(self, small):
        nodes = np.zeros(0, dtype=np.int64)
        sizes = np.zeros(0, dtype=np.int64)
        targets = np.zeros(0, dtype=np.int64)
        _clade_counts_batch_njit(nodes, *_arrays(small), sizes, targets)
        assert sizes.shape == (0,)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
