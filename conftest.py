"""
tests/conftest.py
=================
Session-level pytest configuration for the test suite.

Custom marks
------------
large_scale
    Applied to tests that build trees large enough to take several seconds
    per case.  Opt in or out with ``-m large_scale`` / ``-m 'not large_scale'``.

    Registration here suppresses PytestUnknownMarkWarning and makes the mark
    visible in ``pytest --markers``.

Warning filters
---------------
NumbaPerformanceWarning messages are filtered out during tests.  The prange
batches in the tests hold a handful of siblings, far too few for numba to
parallelise usefully, and the warnings say nothing about correctness.
"""

import warnings

from numba.core.errors import NumbaPerformanceWarning


def pytest_configure(config):
    """
    Configure pytest before test collection begins.

    This runs before any test modules are imported, which is important for
    catching warnings from numba kernel compilation.
    """
    config.addinivalue_line(
        "markers",
        "large_scale: tests on large random trees (slow; select with -m large_scale)",
    )
    warnings.filterwarnings("ignore", category=NumbaPerformanceWarning)


def pytest_unconfigure(config):
    """Restore default warning behavior."""
    warnings.resetwarnings()
