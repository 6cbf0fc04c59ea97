"""
_stats.py
=========
Target statistics of a clade, and the threshold a clade is compared against.

A ``CladeTargetStats`` holds three numbers:

  size     number of tips in the clade
  targets  number of those tips flagged as targets
  prop     targets / size

Observed clades know ``size`` and ``targets`` exactly and derive ``prop``.
Thresholds are given as (``prop``, ``size``) by the caller and derive the
minimum target count as ``round_half_away(prop * size)``.  Both the
qualification test and the pruning test read the integer ``targets`` of
the observed clade; pruning compares it with the threshold's integer
``targets``, never with a re-multiplied float.
"""

from tcfinder._exceptions import DegenerateCladeError
from tcfinder._utils import round_half_away, validate_threshold


class CladeTargetStats:
    """
    Immutable (size, targets, prop) triple.

    Use the ``from_counts`` / ``from_threshold`` constructors rather than
    calling the class directly.
    """

    __slots__ = ("size", "targets", "prop")

    def __init__(self, size: int, targets: int, prop: float) -> None:
        object.__setattr__(self, "size", int(size))
        object.__setattr__(self, "targets", int(targets))
        object.__setattr__(self, "prop", float(prop))

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    # ================================================================== #
    # Constructors                                                         #
    # ================================================================== #

    @classmethod
    def from_counts(cls, targets: int, size: int, node=None) -> "CladeTargetStats":
        """
        Statistics of an observed clade.

        Parameters
        ----------
        targets : int   Number of target tips in the clade.
        size    : int   Number of tips in the clade.
        node    : int, optional
            Node index of the clade root; only used in the error message.

        Raises
        ------
        DegenerateCladeError   if *size* is 0.
        """
        if size <= 0:
            raise DegenerateCladeError(node)
        if targets < 0 or targets > size:
            raise ValueError(
                f"Target count {targets} is outside [0, {size}] for a clade "
                f"of {size} tips."
            )
        return cls(size, targets, targets / size)

    @classmethod
    def from_threshold(cls, prop: float, size: int) -> "CladeTargetStats":
        """
        Threshold built from a minimum proportion and a minimum size.

        Raises
        ------
        ValueError   if *prop* is outside [0, 1] or *size* < 1.
        """
        validate_threshold(prop, size)
        return cls(size, round_half_away(prop * size), prop)

    # ================================================================== #
    # Comparisons                                                          #
    # ================================================================== #

    def qualifies(self, threshold: "CladeTargetStats") -> bool:
        """True if this clade is large and enriched enough to be a cluster."""
        return self.prop >= threshold.prop and self.size >= threshold.size

    def can_contain_cluster(self, threshold: "CladeTargetStats") -> bool:
        """
        False if no clade inside this one can ever qualify: the whole clade
        holds fewer targets than the threshold's minimum target count.
        """
        return self.targets >= threshold.targets

    def __eq__(self, other):
        if not isinstance(other, CladeTargetStats):
            return NotImplemented
        return (self.size, self.targets, self.prop) == (
            other.size,
            other.targets,
            other.prop,
        )

    def __hash__(self):
        return hash((self.size, self.targets, self.prop))

    def __repr__(self) -> str:
        return (
            f"CladeTargetStats(size={self.size}, targets={self.targets}, "
            f"prop={self.prop:.4g})"
        )
