"""Persistent-homology adapters and barcode comparisons."""

from .diagram_distance import DiagramDistance
from .homology import (
    Barcode,
    GudhiHomologyEngine,
    HomologyEngine,
    RipserHomologyEngine,
    make_homology_engine,
)
from .series import distance_series

__all__ = [
    "Barcode",
    "DiagramDistance",
    "GudhiHomologyEngine",
    "HomologyEngine",
    "RipserHomologyEngine",
    "distance_series",
    "make_homology_engine",
]
