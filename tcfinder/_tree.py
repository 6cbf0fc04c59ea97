"""
_tree.py
========
A rooted phylogenetic tree stored as a set of parallel numpy arrays (an
arena of nodes addressed by integer index), with the child lists packed in
CSR form so that subtree traversals touch only flat arrays.

Public API
----------
  Tree(labels, node_ids, ancestors, is_tip)
      Constructor.  Parallel sequences, one entry per node, in input row
      order.  An ancestor value of 0 marks the root.

  Tree.from_rows(rows)
      Build and validate a tree from (label, node, ancestor, nodetype) rows.

  .validate()
  .find_root()
  .annotate_targets(targets)
  .children(node) / .internal_children(node)
  .descendant_tips(node)
  .tip_labels(node)
  .index_of(node_id)

Node indices
------------
Nodes are numbered 0 .. n_nodes-1 in the order they were supplied.  This
*node index* is what every method accepts and returns.  The external
numeric identifier from the input table (``node_ids``) is only used to
resolve ancestor references and to correlate results with input rows.

Children are kept in the order their rows appeared in the input, so every
traversal is deterministic for a given input table.

Numba notes
-----------
The traversal in ``descendant_tips`` reads only ``child_offsets``,
``child_index`` and ``is_tip``.  ``tcfinder._cpu_kernels`` contains the
same traversal as a ``@numba.njit`` kernel that counts tips and targets
without materialising the tip list.
"""

import logging
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np

from tcfinder._exceptions import DanglingReferenceError, MalformedTreeError
from tcfinder._logging import log_target_annotation, log_tree_summary

logger = logging.getLogger(__name__)

# Ancestor value that marks "no ancestor" in phylo4 tables.
NO_ANCESTOR = 0


class Tree:
    """
    A rooted tree whose nodes carry a label, a tip flag and a target flag.

    Attributes (read-only after construction)
    -----------------------------------------
    n_nodes  : int        Number of nodes.
    n_tips   : int        Number of nodes flagged as tips.
    n_edges  : int        Number of parent -> child edges.
    labels   : list[str]  Label of each node.

    Arrays
    ------
    node_ids      : int64[n_nodes]      External numeric identifier.
    is_tip        : bool [n_nodes]      Tip flag from the input metadata.
    is_target     : bool [n_nodes]      Target flag; all False until
                                        ``annotate_targets`` is called.
    parent        : int32[n_nodes]      Parent index; -1 for nodes with no
                                        incoming edge.
    child_offsets : int64[n_nodes + 1]  CSR row pointer into child_index.
    child_index   : int32[n_edges]      Child indices, grouped by parent,
                                        in input row order.
    """

    # ================================================================== #
    # Construction                                                         #
    # ================================================================== #

    def __init__(
        self,
        labels: Sequence[str],
        node_ids: Sequence[int],
        ancestors: Sequence[int],
        is_tip: Sequence[bool],
    ) -> None:
        """
        Build the node arrays and resolve ancestor references into edges.

        Parameters
        ----------
        labels    : sequence of str   Node labels.
        node_ids  : sequence of int   External node identifiers (unique, != 0).
        ancestors : sequence of int   External identifier of each node's
                                      parent; 0 for the root.
        is_tip    : sequence of bool  Tip flag for each node.

        Raises
        ------
        MalformedTreeError       on mismatched lengths, duplicate ids or an
                                 id equal to the reserved value 0.
        DanglingReferenceError   if an ancestor id does not name a node.

        Notes
        -----
        The constructor does not check the global tree invariants (single
        root, reachability, tip flags versus topology); call ``validate()``
        for that.  ``from_rows`` does so automatically.
        """
        n = len(labels)
        if not (len(node_ids) == len(ancestors) == len(is_tip) == n):
            raise MalformedTreeError(
                "labels, node_ids, ancestors and is_tip must have the same "
                f"length; got {n}, {len(node_ids)}, {len(ancestors)}, "
                f"{len(is_tip)}."
            )

        self.labels = [str(label) for label in labels]
        self.node_ids = np.asarray(node_ids, dtype=np.int64).reshape(n)
        self.is_tip = np.asarray(is_tip, dtype=np.bool_).reshape(n)
        self.is_target = np.zeros(n, dtype=np.bool_)

        self._build_id_index()
        self._link_edges(np.asarray(ancestors, dtype=np.int64).reshape(n))

        self.n_nodes: int = n
        self.n_tips: int = int(np.count_nonzero(self.is_tip))
        self.n_edges: int = int(self.child_index.shape[0])

        # Name index: built lazily on first label-based query.
        self._name_index: Optional[dict] = None
        self._ambiguous_names: frozenset = frozenset()

    @classmethod
    def from_rows(cls, rows: Iterable[Tuple[str, int, int, str]]) -> "Tree":
        """
        Build and validate a tree from phylo4-style rows.

        Parameters
        ----------
        rows : iterable of (label, node, ancestor, nodetype)
            ``nodetype == "tip"`` marks a tip; any other value is treated as
            an internal node (phylo4 uses "root" and "internal").

        Returns
        -------
        Tree   A validated tree.
        """
        labels, node_ids, ancestors, is_tip = [], [], [], []
        for label, node, ancestor, nodetype in rows:
            labels.append(label)
            node_ids.append(int(node))
            ancestors.append(int(ancestor))
            is_tip.append(nodetype == "tip")

        tree = cls(labels, node_ids, ancestors, is_tip)
        tree.validate()
        log_tree_summary(
            tree.n_nodes, tree.n_tips, tree.n_edges, tree.labels[tree.find_root()]
        )
        return tree

    # ================================================================== #
    # Public methods                                                       #
    # ================================================================== #

    @property
    def n_targets(self) -> int:
        """Number of nodes currently flagged as targets."""
        return int(np.count_nonzero(self.is_target))

    def find_root(self) -> int:
        """
        Return the index of the single node with no incoming edge.

        Raises
        ------
        MalformedTreeError   if there is no such node or more than one.
        """
        roots = np.flatnonzero(self.parent < 0)
        if roots.shape[0] == 1:
            return int(roots[0])
        if roots.shape[0] == 0:
            raise MalformedTreeError(
                "Tree has no root: every node has an incoming edge."
            )
        shown = ", ".join(repr(self.labels[i]) for i in roots[:5])
        more = "" if roots.shape[0] <= 5 else ", ..."
        raise MalformedTreeError(
            f"Tree has {roots.shape[0]} nodes without an ancestor "
            f"({shown}{more}); expected exactly one root."
        )

    def validate(self) -> None:
        """
        Check the structural invariants of the tree.

        * exactly one node has no incoming edge;
        * every node is reachable from that root (no cycles, no islands);
        * a node is flagged as a tip iff it has no children;
        * tip labels are unique.

        Raises
        ------
        MalformedTreeError   describing the first violated invariant.
        """
        root = self.find_root()

        # A node on a cycle has its parent on the same cycle, so cycles are
        # never reachable from the root and show up as unvisited nodes.
        visited = np.zeros(self.n_nodes, dtype=np.bool_)
        stack = [root]
        while stack:
            node = stack.pop()
            visited[node] = True
            lo = int(self.child_offsets[node])
            hi = int(self.child_offsets[node + 1])
            stack.extend(int(c) for c in self.child_index[lo:hi])
        n_unreached = self.n_nodes - int(np.count_nonzero(visited))
        if n_unreached:
            example = int(np.flatnonzero(~visited)[0])
            raise MalformedTreeError(
                f"{n_unreached} node(s) are not reachable from the root "
                f"(e.g. node {int(self.node_ids[example])} "
                f"{self.labels[example]!r}); the ancestor links contain a cycle."
            )

        has_children = np.diff(self.child_offsets) > 0
        bad = np.flatnonzero(has_children == self.is_tip)
        if bad.shape[0]:
            i = int(bad[0])
            if self.is_tip[i]:
                detail = "is flagged as a tip but has descendants"
            else:
                detail = "is flagged as internal but has no descendants"
            raise MalformedTreeError(
                f"Node {int(self.node_ids[i])} {self.labels[i]!r} {detail} "
                f"({bad.shape[0]} inconsistent node(s) in total)."
            )

        seen = {}
        for i in np.flatnonzero(self.is_tip):
            label = self.labels[i]
            if label in seen:
                raise MalformedTreeError(
                    f"Duplicate tip label {label!r} at nodes "
                    f"{int(self.node_ids[seen[label]])} and {int(self.node_ids[i])}."
                )
            seen[label] = int(i)

    def annotate_targets(self, targets: Iterable[str]) -> "Tree":
        """
        Flag every tip whose label is in *targets*.

        Internal nodes are never targets, even if their label is listed.
        Calling this again replaces the previous annotation.

        Parameters
        ----------
        targets : iterable of str   Target tip labels.

        Returns
        -------
        Tree   ``self``, for chaining.
        """
        target_set = frozenset(targets)
        in_set = np.fromiter(
            (label in target_set for label in self.labels),
            dtype=np.bool_,
            count=self.n_nodes,
        )
        self.is_target = in_set & self.is_tip

        tip_labels = {self.labels[i] for i in np.flatnonzero(self.is_tip)}
        unmatched = sorted(target_set - tip_labels)
        log_target_annotation(self.n_targets, len(target_set), unmatched)
        return self

    def children(self, node) -> np.ndarray:
        """Indices of the immediate children of *node*, in input order."""
        i = self._resolve_node(node)
        return self.child_index[self.child_offsets[i] : self.child_offsets[i + 1]]

    def internal_children(self, node) -> np.ndarray:
        """Immediate children of *node* that are not tips, in input order."""
        kids = self.children(node)
        return kids[~self.is_tip[kids]]

    def descendant_tips(self, node) -> np.ndarray:
        """
        Return the indices of all tips in the clade rooted at *node*.

        A tip's clade is the tip itself.  Tips are listed in depth-first
        preorder, children visited in input order.

        Parameters
        ----------
        node : int | str   Node index or tip label.

        Returns
        -------
        int32 ndarray

        Raises
        ------
        MalformedTreeError   if the traversal visits more nodes than the
                             tree holds (a cycle in an unvalidated tree).

        Notes
        -----
        Iterative, with an explicit stack; children are pushed in reverse
        so that they are popped in input order.
        """
        start = self._resolve_node(node)
        child_offsets = self.child_offsets
        child_index = self.child_index
        is_tip = self.is_tip

        tips = []
        stack = [start]
        n_visited = 0
        while stack:
            v = stack.pop()
            n_visited += 1
            if n_visited > self.n_nodes:
                raise MalformedTreeError(
                    f"Traversal from node index {start} revisits nodes; "
                    "the tree contains a cycle."
                )
            if is_tip[v]:
                tips.append(v)
            lo = int(child_offsets[v])
            hi = int(child_offsets[v + 1])
            for k in range(hi - 1, lo - 1, -1):
                stack.append(int(child_index[k]))
        return np.asarray(tips, dtype=np.int32)

    def tip_labels(self, node) -> list:
        """Sorted labels of the tips in the clade rooted at *node*."""
        return sorted(self.labels[i] for i in self.descendant_tips(node))

    def index_of(self, node_id: int) -> int:
        """
        Return the node index for an external node identifier.

        Raises
        ------
        KeyError   if no node has this identifier.
        """
        try:
            return self._id_index[int(node_id)]
        except KeyError:
            raise KeyError(f"No node with id {node_id} in tree.") from None

    def __len__(self) -> int:
        return self.n_nodes

    def __repr__(self) -> str:
        return (
            f"Tree(n_nodes={self.n_nodes}, n_tips={self.n_tips}, "
            f"n_targets={self.n_targets})"
        )

    # ================================================================== #
    # Private instance methods                                             #
    # ================================================================== #

    def _build_id_index(self) -> None:
        """
        **Private.**  Map external node ids to node indices.

        Raises
        ------
        MalformedTreeError   on duplicate ids or the reserved id 0.
        """
        idx = {}
        for i in range(self.node_ids.shape[0]):
            node_id = int(self.node_ids[i])
            if node_id == NO_ANCESTOR:
                raise MalformedTreeError(
                    f"Node {self.labels[i]!r} uses id {NO_ANCESTOR}, which is "
                    "reserved to mark the root's missing ancestor."
                )
            if node_id in idx:
                raise MalformedTreeError(
                    f"Duplicate node id {node_id} "
                    f"({self.labels[idx[node_id]]!r} and {self.labels[i]!r})."
                )
            idx[node_id] = i
        self._id_index = idx

    def _link_edges(self, ancestors: np.ndarray) -> None:
        """
        **Private.**  Resolve ancestor ids into the ``parent`` array and the
        CSR child lists.

        Populates
        ---------
        self.parent, self.child_offsets, self.child_index

        Notes
        -----
        A stable argsort on the parent index groups children by parent while
        keeping each group in input row order.
        """
        n = ancestors.shape[0]
        parent = np.full(n, -1, dtype=np.int32)
        for i in range(n):
            ancestor = int(ancestors[i])
            if ancestor == NO_ANCESTOR:
                continue
            j = self._id_index.get(ancestor)
            if j is None:
                raise DanglingReferenceError(int(self.node_ids[i]), ancestor)
            parent[i] = j

        has_parent = np.flatnonzero(parent >= 0)
        order = np.argsort(parent[has_parent], kind="stable")
        child_index = has_parent[order].astype(np.int32)

        counts = np.bincount(parent[has_parent], minlength=n)
        child_offsets = np.zeros(n + 1, dtype=np.int64)
        np.cumsum(counts, out=child_offsets[1:])

        self.parent = parent
        self.child_offsets = child_offsets
        self.child_index = child_index

    def _resolve_node(self, node) -> int:
        """
        **Private.**  Return the node index for *node*.

        Integers (including numpy integers) are taken as node indices and
        bounds-checked.  Strings are looked up as labels.

        Raises
        ------
        IndexError   if an integer index is out of range.
        KeyError     if a label is unknown or shared by several nodes.
        """
        if isinstance(node, (int, np.integer)):
            i = int(node)
            if i < 0 or i >= self.n_nodes:
                raise IndexError(
                    f"Node index {i} out of range for tree with {self.n_nodes} nodes."
                )
            return i
        if self._name_index is None:
            self._build_name_index()
        if node in self._ambiguous_names:
            raise KeyError(f"Label '{node}' is shared by several nodes.")
        if node not in self._name_index:
            raise KeyError(f"No node with label '{node}' found in tree.")
        return self._name_index[node]

    def _build_name_index(self) -> None:
        """
        **Private.**  Build and cache ``self._name_index``: a dict mapping
        each non-empty label to its node index.  Labels used by more than
        one node are recorded in ``self._ambiguous_names`` instead.
        """
        idx = {}
        ambiguous = set()
        for i, label in enumerate(self.labels):
            if label == "":
                continue
            if label in idx:
                ambiguous.add(label)
            else:
                idx[label] = i
        for label in ambiguous:
            del idx[label]
        self._name_index = idx
        self._ambiguous_names = frozenset(ambiguous)


# ====================================================================== #
# Functional interface                                                    #
# ====================================================================== #


def find_root(tree: Tree) -> int:
    """Index of the root of *tree*; see ``Tree.find_root``."""
    return tree.find_root()


def annotate_targets(tree: Tree, targets: Iterable[str]) -> Tree:
    """Flag target tips of *tree* in place and return it."""
    return tree.annotate_targets(targets)
