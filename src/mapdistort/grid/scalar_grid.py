"""
Regular raster of scalar values (scale factors, rotation angles).

Layout:
- values[row, col], row 0 is the northernmost row
- node (col, row) sits at x = west + col * mesh_size, y = north - row * mesh_size
- NaN marks nodes without a value (outside the control point hull, too few
  points in the radius of influence)
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from ..errors import GridSizeError
from ..types import FloatArray

MIN_NODES = 4
MAX_NODES = 1000


@dataclass
class ScalarGrid:
    """
    Parameters:
    - cols, rows: number of nodes in each direction
    - west, north: coordinates of node (0, 0)
    - mesh_size: distance between neighbouring nodes, > 0
    - values: (rows, cols) float64 array, created filled with NaN when omitted
    - check_size: enforce MIN_NODES <= cols, rows <= MAX_NODES
    """
    cols: int
    rows: int
    west: float
    north: float
    mesh_size: float
    values: Optional[FloatArray] = None
    check_size: bool = True

    def __post_init__(self) -> None:
        if self.mesh_size <= 0:
            raise ValueError(f"ScalarGrid.mesh_size must be > 0, got {self.mesh_size}")
        if self.cols < 1 or self.rows < 1:
            raise ValueError(f"ScalarGrid needs at least one node, got {self.cols} x {self.rows}")
        if self.check_size and not (
            MIN_NODES <= self.cols <= MAX_NODES and MIN_NODES <= self.rows <= MAX_NODES
        ):
            raise GridSizeError(
                f"Grid of {self.cols} x {self.rows} nodes: need between {MIN_NODES} "
                f"and {MAX_NODES} nodes in each direction."
            )
        if self.values is None:
            self.values = np.full((self.rows, self.cols), np.nan, dtype=np.float64)
        else:
            self.values = np.asarray(self.values, dtype=np.float64)
            if self.values.shape != (self.rows, self.cols):
                raise ValueError(
                    f"Expected values shape {(self.rows, self.cols)} but got {self.values.shape}"
                )

    @classmethod
    def from_values(
        cls, values, west: float = 0.0, north: float = 0.0, mesh_size: float = 1.0,
        check_size: bool = True,
    ) -> "ScalarGrid":
        arr = np.asarray(values, dtype=np.float64)
        if arr.ndim != 2:
            raise ValueError(f"Expected a 2D values array but got {arr.shape}")
        rows, cols = arr.shape
        return cls(cols, rows, west, north, mesh_size, arr.copy(), check_size=check_size)

    # ---------- Geometry ----------
    @property
    def south(self) -> float:
        return self.north - (self.rows - 1) * self.mesh_size

    @property
    def east(self) -> float:
        return self.west + (self.cols - 1) * self.mesh_size

    def node_coordinates(self) -> Tuple[FloatArray, FloatArray]:
        """(xs, ys) arrays of shape (rows, cols) with the coordinates of every node."""
        xs = self.west + np.arange(self.cols, dtype=np.float64) * self.mesh_size
        ys = self.north - np.arange(self.rows, dtype=np.float64) * self.mesh_size
        return np.meshgrid(xs, ys)

    # ---------- Values ----------
    def value(self, col: int, row: int) -> float:
        return float(self.values[row, col])

    def min_max(self) -> Tuple[float, float]:
        """Smallest and largest value ignoring NaN; (nan, nan) for an all-NaN grid."""
        if not np.isfinite(self.values).any():
            return float("nan"), float("nan")
        return float(np.nanmin(self.values)), float(np.nanmax(self.values))

    def nearest(self, x: float, y: float) -> float:
        """Value of the closest node, NaN outside the grid."""
        col = int(np.floor((x - self.west) / self.mesh_size + 0.5))
        row = int(np.floor((self.north - y) / self.mesh_size + 0.5))
        if col < 0 or col >= self.cols or row < 0 or row >= self.rows:
            return float("nan")
        return float(self.values[row, col])

    def bilinear(self, x: float, y: float) -> float:
        """
        Bilinear interpolation between the four surrounding nodes.
        NaN outside the grid or when any of the four nodes is NaN.
        """
        if self.cols < 2 or self.rows < 2:
            return self.nearest(x, y)
        fx = (x - self.west) / self.mesh_size
        fy = (self.north - y) / self.mesh_size
        if fx < 0 or fy < 0 or fx > self.cols - 1 or fy > self.rows - 1:
            return float("nan")

        # top left node of the cell, kept inside so the last row/column still interpolates
        col = min(int(fx), self.cols - 2)
        row = min(int(fy), self.rows - 2)
        rel_x = fx - col
        rel_y = 1.0 - (fy - row)        # counted from the bottom of the cell

        h1 = self.values[row + 1, col]          # bottom left
        h2 = self.values[row + 1, col + 1]      # bottom right
        h3 = self.values[row, col]              # top left
        h4 = self.values[row, col + 1]          # top right
        return float(
            h1 + (h2 - h1) * rel_x + (h3 - h1) * rel_y + (h1 - h2 - h3 + h4) * rel_x * rel_y
        )
