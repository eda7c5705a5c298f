"""
Sample local scale and rotation on a regular grid.

ScalarGridBuilder lays an aligned lattice over the destination control points
and evaluates the weighted local Helmert fit at every node inside the convex
hull of the destination points. Two grids come out:
- scale: local scale factor dst / src (or src / dst with invert_scale)
- rotation: local counter-clockwise rotation in degrees, [0, 360)

Nodes outside the hull, or with fewer than 2 control points inside the radius
of influence, are NaN.

With a projector the lattice is laid out in longitude / latitude. Values are
sampled at the projected (planar) nodes, but the grids keep the geographic
layout: west, north and mesh size are in degrees. ScaleRotationGrids.scale_at,
rotation_at and to_planar convert between planar coordinates and the grids.
A row clamped to a latitude limit keeps its regular position in the grid.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np

from ..errors import InsufficientDataError
from ..geometry.hull import convex_hull, find_bounding_box
from ..geometry.polygon import points_in_polygon
from ..projection import Projector
from ..transform.weighted import DEFAULT_RADIUS_OF_INFLUENCE, sample_scale_rotation
from ..types import FloatArray, Points2D, Polygon, as_point_pair, as_points
from .lattice import Lattice, build_geographic_lattice, build_lattice, suggest_cell_size
from .scalar_grid import ScalarGrid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GridParams:
    """
    Parameters:
    - mesh_size: node spacing; None picks suggest_cell_size() for the point extent
    - offset: shift of the lattice against multiples of the mesh size (x, y)
    - radius: radius of influence of the weighted local fit (destination units)
    - invert_scale: store 1 / scale (used when the old map is the destination)
    - clip_to_hull: leave nodes outside the destination hull undefined
    """
    mesh_size: Optional[float] = None
    offset: Tuple[float, float] = (0.0, 0.0)
    radius: float = DEFAULT_RADIUS_OF_INFLUENCE
    invert_scale: bool = False
    clip_to_hull: bool = True

    def __post_init__(self) -> None:
        if self.mesh_size is not None and self.mesh_size <= 0:
            raise ValueError("GridParams.mesh_size must be > 0")
        if self.radius <= 0:
            raise ValueError("GridParams.radius must be > 0")


@dataclass(frozen=True)
class ScaleRotationGrids:
    scale: ScalarGrid
    rotation: ScalarGrid
    lattice: Lattice
    projector: Optional[Projector] = field(default=None, compare=False)  # set for geographic grids

    @property
    def geographic(self) -> bool:
        return self.projector is not None

    def _grid_xy(self, x: float, y: float) -> Tuple[float, float]:
        if self.projector is None:
            return x, y
        lon, lat = self.projector.to_geo(np.array([[x, y]], dtype=np.float64))[0]
        return float(lon), float(lat)

    def scale_at(self, x: float, y: float) -> float:
        """Bilinear scale at planar (x, y)."""
        return self.scale.bilinear(*self._grid_xy(x, y))

    def rotation_at(self, x: float, y: float) -> float:
        """Rotation in degrees of the node closest to planar (x, y)."""
        return self.rotation.nearest(*self._grid_xy(x, y))

    def to_planar(self, polyline) -> FloatArray:
        """Grid coordinates (e.g. contour vertices) to planar coordinates."""
        pts = as_points(polyline, "polyline")
        if self.projector is None:
            return pts
        return self.projector.from_geo(pts)


class ScalarGridBuilder:
    def __init__(self, params: GridParams = GridParams()) -> None:
        self.params = params

    def mesh_size_for(self, dst: Points2D, projector: Optional[Projector] = None) -> float:
        """Configured mesh size, or one suggested for the extent of dst (degrees with a projector)."""
        if self.params.mesh_size is not None:
            return self.params.mesh_size
        bounds = find_bounding_box(dst if projector is None else projector.to_geo(dst))
        mesh = suggest_cell_size(bounds.width, bounds.height)
        if mesh <= 0:
            raise InsufficientDataError("Cannot size a grid for control points without extent")
        return mesh

    def lattice_for(self, dst: Points2D, projector: Optional[Projector] = None) -> Lattice:
        dst = as_points(dst, "dst")
        mesh = self.mesh_size_for(dst, projector)
        if projector is not None:
            return build_geographic_lattice(dst, mesh, projector, offset=self.params.offset)
        return build_lattice(find_bounding_box(dst), mesh, offset=self.params.offset)

    def build(
        self,
        src: Points2D,
        dst: Points2D,
        *,
        hull: Optional[Polygon] = None,
        projector: Optional[Projector] = None,
    ) -> ScaleRotationGrids:
        """
        Build scale and rotation grids.

        - src, dst: control points, src in the source map, dst in the map the grid covers
        - hull: closed polygon limiting the defined nodes; defaults to the convex
          hull of dst when clip_to_hull is set
        - projector: lay the lattice out in longitude / latitude (geographic variant);
          the returned grids are then in degrees
        """
        src, dst = as_point_pair(src, dst)
        lattice = self.lattice_for(dst, projector)

        xs = lattice.nodes[..., 0].ravel()
        ys = lattice.nodes[..., 1].ravel()

        if hull is None and self.params.clip_to_hull:
            hull = convex_hull(dst)
        if hull is not None:
            inside = points_in_polygon(xs, ys, hull)
        else:
            inside = np.ones(xs.shape, dtype=bool)

        scale = np.full(xs.shape, np.nan, dtype=np.float64)
        rot = np.full(xs.shape, np.nan, dtype=np.float64)
        s, r = sample_scale_rotation(xs[inside], ys[inside], src, dst, self.params.radius)
        if self.params.invert_scale:
            with np.errstate(divide="ignore"):
                s = 1.0 / s
        scale[inside] = s
        rot[inside] = np.degrees(r)

        shape = (lattice.rows, lattice.cols)
        north = lattice.north
        scale_grid = ScalarGrid(lattice.cols, lattice.rows, lattice.west, north,
                                lattice.mesh_size, scale.reshape(shape))
        rot_grid = ScalarGrid(lattice.cols, lattice.rows, lattice.west, north,
                              lattice.mesh_size, rot.reshape(shape))

        logger.debug(
            "Scale/rotation grids: %d x %d nodes, mesh %.6g, %d defined",
            lattice.cols, lattice.rows, lattice.mesh_size, int(np.isfinite(scale).sum()),
        )
        return ScaleRotationGrids(scale_grid, rot_grid, lattice, projector)
