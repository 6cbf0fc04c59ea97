"""
_backend.py
===========
Which implementation computes clade statistics.

Two backends count the tips and target tips below a node:

  python        Tree.descendant_tips + numpy; always present.
  cpu-parallel  numba kernels from _cpu_kernels; present when numba imports
                and the kernels compile.

Callers pass ``backend='best'`` (the default everywhere) to get
cpu-parallel when it exists and python otherwise.  Both backends return the
same integer counts, so the choice only affects speed.

Nothing here logs; ``_clusters`` reports availability and fallbacks.
"""

from typing import List, Optional, Tuple


# Every name a caller may pass as ``backend``.
KNOWN_BACKENDS = ("best", "python", "cpu-parallel")


# ============================================================================ #
# Detection
# ============================================================================ #


def check_numba_available() -> bool:
    """True if the ``numba`` package can be imported."""
    try:
        import numba  # noqa: F401

        return True
    except ImportError:
        return False


def import_cpu_kernels() -> Tuple[bool, Optional[object], Optional[object]]:
    """
    Load the clade-count kernels.

    Returns
    -------
    (ok, single, batch)
        ``ok`` is False, and both kernels None, when numba is missing.
        ``single`` is ``_clade_counts_nb``; ``batch`` is
        ``_clade_counts_batch_njit``.
    """
    try:
        from tcfinder._cpu_kernels import (
            _clade_counts_nb,
            _clade_counts_batch_njit,
        )

        return (True, _clade_counts_nb, _clade_counts_batch_njit)
    except ImportError:
        return (False, None, None)


def get_available_backends() -> List[str]:
    """
    Backends usable in this environment, slowest first.

    ``'python'`` is always the first entry, so the last entry is the fastest
    backend available.

    Examples
    --------
    With numba installed:

    >>> get_available_backends()
    ['python', 'cpu-parallel']
    """
    backends = ["python"]
    kernels_ok, _, _ = import_cpu_kernels()
    if kernels_ok:
        backends.append("cpu-parallel")
    return backends


def get_best_backend() -> str:
    """The fastest available backend: what ``'best'`` resolves to."""
    return get_available_backends()[-1]


# ============================================================================ #
# Resolution
# ============================================================================ #


def resolve_backend(backend: str) -> str:
    """
    Turn a backend name as given by a caller into a concrete backend.

    Parameters
    ----------
    backend : str
        One of ``KNOWN_BACKENDS``.

    Returns
    -------
    str
        ``'python'`` or ``'cpu-parallel'``.

    Raises
    ------
    ValueError
        If *backend* is not in ``KNOWN_BACKENDS``, or is ``'cpu-parallel'``
        without numba.  ``find_clusters`` catches the second case and falls
        back to the best available backend with a warning.

    Examples
    --------
    >>> resolve_backend('python')
    'python'
    >>> resolve_backend('gpu')
    Traceback (most recent call last):
    ...
    ValueError: Unknown backend 'gpu'. Valid backends: best, python, cpu-parallel
    """
    if backend not in KNOWN_BACKENDS:
        raise ValueError(
            f"Unknown backend '{backend}'. "
            f"Valid backends: {', '.join(KNOWN_BACKENDS)}"
        )

    if backend == "best":
        return get_best_backend()

    available = get_available_backends()
    if backend not in available:
        raise ValueError(
            f"Backend '{backend}' not available. "
            f"Available backends: {', '.join(available)}"
        )
    return backend


def get_backend_info() -> dict:
    """
    Summary of the statistics backends, for bug reports and ``--verbose``
    diagnostics.

    Returns
    -------
    dict
        numba_available       : bool
        cpu_kernels_available : bool
        backends              : list[str], as ``get_available_backends``
        best_backend          : str, what ``'best'`` resolves to

    Examples
    --------
    >>> get_backend_info()['best_backend']
    'cpu-parallel'
    """
    cpu_kernels_ok, _, _ = import_cpu_kernels()
    return {
        "numba_available": check_numba_available(),
        "cpu_kernels_available": cpu_kernels_ok,
        "backends": get_available_backends(),
        "best_backend": get_best_backend(),
    }
