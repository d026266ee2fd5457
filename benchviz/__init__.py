"""
benchviz Python package.

This package hosts the ruleset loader, the benchmark classifier and the
organizer that reshapes Go benchmark results into chart-ready series. See
README.md for usage.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("benchviz")
except PackageNotFoundError:
    # Source checkout without an installed distribution
    __version__ = "0.0.0-dev"

__all__ = ["__version__"]
