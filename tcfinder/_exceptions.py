"""
_exceptions.py
==============
Error types raised while building and querying a tree.

All tree errors derive from ``ValueError`` so callers that only care about
"bad input" can catch a single built-in type.
"""

from typing import Optional


class TreeError(ValueError):
    """Base class for structural problems with a tree."""


class MalformedTreeError(TreeError):
    """
    The tree violates a structural invariant: not exactly one root, nodes
    unreachable from the root, duplicate node ids, or an ``is_tip`` flag that
    disagrees with the node's outgoing edges.
    """


class DanglingReferenceError(TreeError, KeyError):
    """An ancestor reference names a node id that is not in the tree."""

    def __init__(self, node_id: int, ancestor_id: int) -> None:
        self.node_id = node_id
        self.ancestor_id = ancestor_id
        super().__init__(
            f"Node {node_id} refers to ancestor {ancestor_id}, "
            "which is not present in the tree."
        )

    def __str__(self) -> str:
        # KeyError.__str__ would wrap the message in quotes
        return self.args[0]


class DegenerateCladeError(TreeError):
    """Statistics were requested for a clade with no descendant tips."""

    def __init__(self, node: Optional[int] = None) -> None:
        self.node = node
        where = "" if node is None else f" rooted at node index {node}"
        super().__init__(f"Clade{where} has no descendant tips.")


class Phylo4FormatError(ValueError):
    """A phylo4 table is missing columns or holds unparseable values."""
