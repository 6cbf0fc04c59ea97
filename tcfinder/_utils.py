"""
_utils.py
=========
General-purpose helpers for tcfinder.

These are standalone functions that don't depend on the main classes and
are shared by the statistics, search and I/O code.
"""

import math
import operator
from typing import Iterable, List


def round_half_away(value: float) -> int:
    """
    Round *value* to the nearest integer, with halves rounded away from zero.

    Python's built-in ``round`` uses banker's rounding (``round(0.5) == 0``),
    which would make the minimum target count of a threshold depend on the
    parity of the product.  This function always rounds ``x.5`` up in
    magnitude.

    Parameters
    ----------
    value : float
        Value to round.

    Returns
    -------
    int
        Rounded value.

    Examples
    --------
    >>> round_half_away(1.8)
    2
    >>> round_half_away(0.5)
    1
    >>> round_half_away(2.5)
    3
    >>> round_half_away(0.2)
    0
    """
    if value < 0:
        return -int(math.floor(-value + 0.5))
    return int(math.floor(value + 0.5))


def validate_threshold(prop: float, size: int) -> None:
    """
    Check that a (minimum proportion, minimum size) pair is usable.

    Raises
    ------
    ValueError
        If *prop* is not a finite number in [0, 1] or *size* is not an
        integer >= 1.
    """
    try:
        size = operator.index(size)
    except TypeError:
        raise ValueError(f"Minimum size must be an integer, got {size!r}.") from None
    if size < 1:
        raise ValueError(f"Minimum size must be at least 1, got {size}.")
    prop = float(prop)
    if math.isnan(prop) or prop < 0.0 or prop > 1.0:
        raise ValueError(f"Minimum proportion must lie in [0, 1], got {prop}.")


def unique_in_order(items: Iterable[str]) -> List[str]:
    """
    Return the distinct elements of *items*, keeping first occurrences.

    Examples
    --------
    >>> unique_in_order(['b', 'a', 'b', 'c', 'a'])
    ['b', 'a', 'c']
    """
    seen = set()
    out = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out
