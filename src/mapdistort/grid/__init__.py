"""
Grid package

This module provides:
- ScalarGrid: a regular raster of values with NaN for undefined nodes
- Aligned lattices (planar and geographic) with mesh size suggestions
- ScalarGridBuilder: local scale and rotation sampled on a lattice
"""

from .scalar_grid import MIN_NODES, MAX_NODES, ScalarGrid

from .lattice import (
    DEF_NODES, Lattice, suggest_cell_size, is_number_of_lines_ok,
    build_lattice, build_geographic_lattice,
)

from .builder import GridParams, ScaleRotationGrids, ScalarGridBuilder

__all__ = [
    "MIN_NODES", "MAX_NODES", "ScalarGrid",
    "DEF_NODES", "Lattice", "suggest_cell_size", "is_number_of_lines_ok",
    "build_lattice", "build_geographic_lattice",
    "GridParams", "ScaleRotationGrids", "ScalarGridBuilder",
]
