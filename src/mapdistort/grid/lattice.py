"""
Regular lattices of grid nodes.

A lattice is aligned with multiples of the mesh size (plus an optional offset),
so grid lines fall on round coordinates:

    west  = floor(min_x / mesh) * mesh + fmod(offset_x, mesh)
    south = floor(min_y / mesh) * mesh + fmod(offset_y, mesh)
    cols  = ceil(max_x / mesh) - floor(min_x / mesh) + 1
    rows  = ceil(max_y / mesh) - floor(min_y / mesh) + 1

A lattice with fewer than 4 or more than 1000 lines in one direction is
rejected with a suggested mesh size.

The geographic variant lays the lattice out in longitude / latitude degrees,
clamps rows to the latitude limits of the projection and projects the nodes
back into planar coordinates.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from ..errors import GridSizeError
from ..geometry.hull import BoundingBox, find_bounding_box
from ..projection import MAX_LAT, MIN_LAT, Projector
from ..types import FloatArray, Points2D
from .scalar_grid import MAX_NODES, MIN_NODES

# Number of cells across the shorter side of the extent for a suggested mesh size
DEF_NODES = 15

# Suggested mesh sizes are snapped to these mantissas times a power of 10
_NICE_BASES = (1.0, 1.5, 2.5, 5.0, 7.5, 10.0)


def suggest_cell_size(width: float, height: float) -> float:
    """
    A round mesh size giving about DEF_NODES cells across the shorter side.

    min(width, height) / DEF_NODES is snapped upward to the closest value of
    {1, 1.5, 2.5, 5, 7.5} x 10^k. Returns -1 for an empty extent.
    """
    cell = min(width, height) / DEF_NODES
    if not cell > 0 or not math.isfinite(cell):
        return -1.0
    exponent = math.floor(math.log10(cell))
    magnitude = 10.0 ** exponent
    mantissa = cell / magnitude
    for base in _NICE_BASES:
        # tolerance so 2.5000000001 from float noise does not jump to 5
        if base >= mantissa * (1.0 - 1e-12):
            return base * magnitude
    return 10.0 * magnitude


@dataclass(frozen=True)
class Lattice:
    """
    Grid nodes and their line labels.

    - nodes: (rows, cols, 2), row 0 is north, column 0 is west
    - col_labels: coordinate value of each vertical line (x or longitude)
    - row_labels: coordinate value of each horizontal line (y or latitude)
    - west, north, mesh_size: layout in lattice coordinates (degrees for a
      geographic lattice, in which case nodes hold projected coordinates)
    """
    cols: int
    rows: int
    west: float
    south: float
    mesh_size: float
    nodes: FloatArray
    col_labels: FloatArray
    row_labels: FloatArray
    geographic: bool = False

    @property
    def north(self) -> float:
        return self.south + (self.rows - 1) * self.mesh_size

    @property
    def size_ok(self) -> bool:
        return is_number_of_lines_ok(self.cols, self.rows)

    def vertical_lines(self) -> list[FloatArray]:
        """One polyline per column, running from south to north."""
        return [self.nodes[::-1, c].copy() for c in range(self.cols)]

    def horizontal_lines(self) -> list[FloatArray]:
        """One polyline per row, running from west to east. Index 0 is the southern line."""
        return [self.nodes[r].copy() for r in range(self.rows - 1, -1, -1)]

    def flat_nodes(self) -> FloatArray:
        return self.nodes.reshape(-1, 2)

    def with_nodes(self, nodes: FloatArray) -> "Lattice":
        """Same lattice with its node coordinates replaced (e.g. after a transformation)."""
        nodes = np.asarray(nodes, dtype=np.float64).reshape(self.rows, self.cols, 2)
        return Lattice(
            self.cols, self.rows, self.west, self.south, self.mesh_size,
            nodes, self.col_labels, self.row_labels, self.geographic,
        )


def is_number_of_lines_ok(cols: int, rows: int) -> bool:
    return MIN_NODES <= cols <= MAX_NODES and MIN_NODES <= rows <= MAX_NODES


def _lines_error(cols: int, rows: int, bounds: BoundingBox, unit: str) -> GridSizeError:
    return GridSizeError(
        f"With a mesh size giving {cols} x {rows} lines, the grid would contain less than "
        f"{MIN_NODES} or more than {MAX_NODES} vertical or horizontal lines ({unit}).",
        suggested_mesh_size=suggest_cell_size(bounds.width, bounds.height),
    )


def _layout(bounds: BoundingBox, mesh_size: float, offset: Tuple[float, float]):
    if not mesh_size > 0 or not math.isfinite(mesh_size):
        raise ValueError(f"mesh size must be > 0, got {mesh_size}")
    ox = math.fmod(offset[0], mesh_size) if offset[0] != 0 else 0.0
    oy = math.fmod(offset[1], mesh_size) if offset[1] != 0 else 0.0

    cells_left = math.floor(bounds.min_x / mesh_size)
    cells_right = math.ceil(bounds.max_x / mesh_size)
    cells_bottom = math.floor(bounds.min_y / mesh_size)
    cells_top = math.ceil(bounds.max_y / mesh_size)

    cols = cells_right - cells_left + 1
    rows = cells_top - cells_bottom + 1
    west = cells_left * mesh_size + ox
    south = cells_bottom * mesh_size + oy
    return cols, rows, west, south


def _make_lattice(cols: int, rows: int, west: float, south: float, mesh_size: float,
                  geographic: bool = False) -> Lattice:
    xs = west + np.arange(cols, dtype=np.float64) * mesh_size
    ys = south + np.arange(rows - 1, -1, -1, dtype=np.float64) * mesh_size   # north first
    gx, gy = np.meshgrid(xs, ys)
    nodes = np.stack([gx, gy], axis=-1)
    return Lattice(cols, rows, west, south, mesh_size, nodes, xs.copy(), ys.copy(), geographic)


def build_lattice(
    bounds: BoundingBox,
    mesh_size: float,
    *,
    offset: Tuple[float, float] = (0.0, 0.0),
) -> Lattice:
    """Aligned lattice covering bounds. Raises GridSizeError for too few or too many lines."""
    cols, rows, west, south = _layout(bounds, mesh_size, offset)
    if not is_number_of_lines_ok(cols, rows):
        raise _lines_error(cols, rows, bounds, "planar")
    return _make_lattice(cols, rows, west, south, mesh_size)


def build_geographic_lattice(
    points: Points2D,
    mesh_size: float,
    projector: Projector,
    *,
    offset: Tuple[float, float] = (0.0, 0.0),
) -> Lattice:
    """
    Longitude / latitude lattice around planar points.

    1) convert points to (lon, lat) with the projector
    2) clamp the bounding box to [MIN_LAT, MAX_LAT]
    3) lay out the lattice in degrees; rows beyond a latitude limit are moved
       onto the limit and labelled with it
    4) check the number of lines and project the nodes back to planar coordinates
    """
    geo = projector.to_geo(points)
    box = find_bounding_box(geo)
    box = BoundingBox(box.min_x, max(box.min_y, MIN_LAT), box.max_x, min(box.max_y, MAX_LAT))

    cols, rows, west, south = _layout(box, mesh_size, offset)
    lattice = _make_lattice(cols, rows, west, south, mesh_size, geographic=True)

    nodes = lattice.nodes.copy()
    row_labels = lattice.row_labels.copy()
    for r in range(rows):
        lat = nodes[r, 0, 1]
        if lat > MAX_LAT:
            nodes[r, :, 1] = MAX_LAT
            row_labels[r] = MAX_LAT
        elif lat < MIN_LAT:
            nodes[r, :, 1] = MIN_LAT
            row_labels[r] = MIN_LAT

    if not is_number_of_lines_ok(cols, rows):
        raise _lines_error(cols, rows, box, "degrees")

    planar = projector.from_geo(nodes.reshape(-1, 2)).reshape(rows, cols, 2)
    return Lattice(
        cols, rows, west, south, mesh_size, planar, lattice.col_labels, row_labels, True,
    )
