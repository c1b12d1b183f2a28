"""
Casebook: narrative modeling case studies.

This package walks through four classic tabular modeling tutorials
(hotel stays, sea urchins, flight delays, cell images) as typed,
reproducible studies: data loading, splitting, recipes, model
specification, tuning, evaluation and plotting.
"""

from importlib.metadata import version

__version__ = version("casebook")

__all__ = ["__version__"]
