"""
Isolines from a ScalarGrid by marching squares with contour following.

Each cell of the grid is formed by four nodes:

    v2 (upper left)  ---  v3 (upper right)
         |                     |
    v0 (lower left)  ---  v1 (lower right)

For a level, a 4-bit code marks which corners are above the level
(1: v0, 2: v1, 4: v2, 8: v3). The code decides on which edge the isoline
leaves the cell and which neighbour is visited next. A contour is traced from a
seed cell first backwards (values and level negated, which flips the direction
of travel) and then forwards, so the resulting polyline runs in one direction.

Limitations:
- saddle cells (codes 6 and 9) are not resolved; tracing stops there, so a
  contour may be split into pieces near a saddle. No point is added for the
  saddle cell: its upper left node is not on the isoline, so the polyline ends
  at the last crossing before the saddle
- a cell with any NaN corner ends the trace

Degree mode (rotation grids): values are angles in [0, 360). A cell whose
corners straddle the 0/360 seam (two corners on opposite sides of 180 that
differ by more than 90) has every value above 180 shifted by -360 before it is
classified, so the seam does not produce a bundle of spurious isolines.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from ..grid.scalar_grid import ScalarGrid
from ..types import Polyline

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Contour:
    level: float
    polylines: List[Polyline] = field(default_factory=list)


def _interpol(level: float, a: float, b: float) -> float:
    return (level - a) / (b - a)


def _straddles_seam(a: float, b: float) -> bool:
    ad = a - 180.0
    bd = b - 180.0
    return (ad > 0 > bd and ad - bd > 90.0) or (ad < 0 < bd and bd - ad > 90.0)


class Contourer:
    """
    Parameters:
    - grid: ScalarGrid to contour
    - interval: spacing between levels for contour(), > 0
    - treat_degree_jump: values are angles in degrees, handle the 0/360 seam
    """

    def __init__(self, grid: ScalarGrid, interval: float = 1.0, treat_degree_jump: bool = False) -> None:
        if not interval > 0:
            raise ValueError(f"Contourer.interval must be > 0, got {interval}")
        self.grid = grid
        self.interval = float(interval)
        self.treat_degree_jump = treat_degree_jump
        self._flags = np.zeros((grid.rows, grid.cols), dtype=bool)

    # ---------- All levels ----------
    def contour(self) -> List[Contour]:
        """
        Trace every multiple of the interval between the grid minimum and maximum.

        Levels yielding fewer than 2 polylines are dropped. In degree mode the
        level 0 is traced first.
        """
        vmin, vmax = self.grid.min_max()
        if math.isnan(vmin):
            return []

        first = math.ceil(vmin / self.interval) * self.interval
        last = math.floor(vmax / self.interval) * self.interval
        n_levels = int(round((last - first) / self.interval)) + 1

        levels: List[float] = []
        if self.treat_degree_jump:
            levels.append(0.0)
        for i in range(max(n_levels, 0)):
            level = first + i * self.interval
            if self.treat_degree_jump and level == 0.0:
                continue
            levels.append(level)

        contours: List[Contour] = []
        for level in levels:
            polylines = self.trace(level)
            if len(polylines) > 1:
                contours.append(Contour(level, polylines))
        logger.debug("Contoured %d of %d levels", len(contours), len(levels))
        return contours

    # ---------- One level ----------
    def trace(self, level: float) -> List[Polyline]:
        """All polylines of one level, each with at least 2 points."""
        self._flags[:] = False
        cells_x = self.grid.cols - 1
        cells_y = self.grid.rows - 1
        polylines: List[Polyline] = []
        for y in range(cells_y):
            for x in range(cells_x):
                if self._flags[y, x]:
                    continue
                pts = self._trace_contour(x, y, level)
                if len(pts) > 1:
                    polylines.append(np.array(pts, dtype=np.float64))
        return polylines

    def _in_cells(self, x: int, y: int) -> bool:
        return 0 <= x < self.grid.cols - 1 and 0 <= y < self.grid.rows - 1

    def _trace_contour(self, x0: int, y0: int, level: float) -> List[Tuple[float, float]]:
        pts: List[Tuple[float, float]] = []

        x, y = x0, y0
        while self._in_cells(x, y):
            step = self._next(False, x, y, level)
            if step is None:
                break
            pt, x, y = step
            pts.insert(0, pt)

        # the seed cell is visited again in forward direction
        self._flags[y0, x0] = False

        x, y = x0, y0
        while self._in_cells(x, y):
            step = self._next(True, x, y, level)
            if step is None:
                break
            pt, x, y = step
            pts.append(pt)
        return pts

    def _next(
        self, forward: bool, x: int, y: int, level: float
    ) -> Optional[Tuple[Tuple[float, float], int, int]]:
        """
        Crossing point of the isoline in cell (x, y) and the next cell, or None
        when the cell was visited, has a NaN corner, is not crossed, or is a saddle.
        """
        if self._flags[y, x]:
            return None
        self._flags[y, x] = True

        g = self.grid.values
        v0 = g[y + 1, x]
        v1 = g[y + 1, x + 1]
        v2 = g[y, x]
        v3 = g[y, x + 1]
        if math.isnan(v0) or math.isnan(v1) or math.isnan(v2) or math.isnan(v3):
            return None

        if self.treat_degree_jump:
            corners = (v0, v1, v2, v3)
            adjust = any(
                _straddles_seam(corners[i], corners[j])
                for i in range(4) for j in range(i + 1, 4)
            )
            if adjust:
                v0, v1, v2, v3 = (v - 360.0 if v > 180.0 else v for v in corners)

        if not forward:
            v0, v1, v2, v3, level = -v0, -v1, -v2, -v3, -level

        code = 0
        if v0 > level:
            code |= 1
        if v1 > level:
            code |= 2
        if v2 > level:
            code |= 4
        if v3 > level:
            code |= 8
        if code in (0, 15, 6, 9):
            return None

        cs = self.grid.mesh_size
        px = self.grid.west + x * cs
        py = self.grid.north - y * cs

        if code in (1, 3, 11):
            # left edge, continue west
            py -= _interpol(level, v2, v0) * cs
            x -= 1
        elif code in (2, 10, 14):
            # bottom edge, continue south
            px += _interpol(level, v0, v1) * cs
            py -= cs
            y += 1
        elif code in (4, 5, 7):
            # top edge, continue north
            px += _interpol(level, v2, v3) * cs
            y -= 1
        else:
            # codes 8, 12, 13: right edge, continue east
            px += cs
            py -= _interpol(level, v3, v1) * cs
            x += 1
        return (float(px), float(py)), x, y
