"""
_context.py
===========
Context managers that change tcfinder's behaviour for the length of a
``with`` block and restore it afterwards, including on exceptions.

  suppress_logger(name, level)   raise one logger's threshold
  quiet(level)                   same, for every tcfinder logger at once
  use_backend(backend)           force the clade statistics backend
"""

import logging
from contextlib import contextmanager
from typing import Optional


# Set by use_backend; read by _clusters._select_backend.
_backend_override = None

# Parent logger of every tcfinder module logger.
PACKAGE_LOGGER = "tcfinder"


# ============================================================================ #
# Logging
# ============================================================================ #


@contextmanager
def suppress_logger(logger_name: str, level: int = logging.CRITICAL):
    """
    Set the level of logger *logger_name* to *level* inside the block.

    Parameters
    ----------
    logger_name : str
        For example ``'tcfinder._logging'``, which emits the tree summary,
        annotation warnings and the search trace.
    level : int, default logging.CRITICAL

    Examples
    --------
    Load many trees without one INFO summary per tree:

    >>> with suppress_logger('tcfinder._logging', logging.WARNING):
    ...     trees = [read_phylo4(p) for p in paths]
    """
    logger = logging.getLogger(logger_name)
    original_level = logger.level
    try:
        logger.setLevel(level)
        yield
    finally:
        logger.setLevel(original_level)


@contextmanager
def quiet(level: int = logging.CRITICAL):
    """
    Silence tcfinder below *level* inside the block.

    Module loggers that have no level of their own inherit it from the
    ``tcfinder`` package logger, so this covers the whole package.

    Examples
    --------
    Run a parameter sweep without unmatched-target warnings repeating:

    >>> with quiet():
    ...     sweep = {p: find_transmission_clusters(tree, targets, minimum_prop=p)
    ...              for p in (0.7, 0.8, 0.9)}
    """
    with suppress_logger(PACKAGE_LOGGER, level):
        yield


# ============================================================================ #
# Backend
# ============================================================================ #


@contextmanager
def use_backend(backend: str):
    """
    Compute clade statistics with *backend* inside the block, whatever
    ``backend=`` argument the calls themselves pass.

    Parameters
    ----------
    backend : str
        ``'best'``, ``'python'`` or ``'cpu-parallel'``.

    Raises
    ------
    ValueError
        On entry, if *backend* is unknown or unavailable.

    Examples
    --------
    Compare the two implementations on one tree:

    >>> with use_backend('python'):
    ...     reference = find_clusters(tree, threshold)
    >>> reference == find_clusters(tree, threshold, backend='cpu-parallel')
    True

    Notes
    -----
    The override is module state and is not thread-safe.
    """
    global _backend_override

    from ._backend import resolve_backend

    resolve_backend(backend)

    original_override = _backend_override
    try:
        _backend_override = backend
        yield
    finally:
        _backend_override = original_override


def get_backend_override() -> Optional[str]:
    """The backend forced by an enclosing ``use_backend``, or None."""
    return _backend_override
