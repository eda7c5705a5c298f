"""
Isolines of local scale and rotation.

The scale and rotation grids are sampled over the destination points with a
mesh of max(width, height) / 80 and contoured:
- isoscales every isoscale_interval
- isorotations every isorotation_interval degrees, with the 0/360 seam handled

When the old map is analysed the radius of influence, given in new map units,
is converted to old map units and the grid stores 1 / scale.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..contour.contourer import Contour, Contourer
from ..geometry.polygon import clip_polylines
from ..grid.builder import GridParams, ScalarGridBuilder, ScaleRotationGrids
from ..grid.scalar_grid import ScalarGrid
from ..transform.weighted import DEFAULT_RADIUS_OF_INFLUENCE, is_radius_valid, radius_range, recommended_radius
from .params import VisualizationParams

logger = logging.getLogger(__name__)

GRID_SIZE = 80


@dataclass(frozen=True)
class IsolineParams:
    """
    Parameters:
    - radius: radius of influence in new map units
    - isoscale_interval: spacing of isoscales
    - isorotation_interval: spacing of isorotations (degrees)
    - mesh_size: grid spacing; None uses max(width, height) / GRID_SIZE
    - clip_to_hull: cut contours at the hull of the destination points
    """
    radius: float = DEFAULT_RADIUS_OF_INFLUENCE
    isoscale_interval: float = 5000.0
    isorotation_interval: float = 5.0
    mesh_size: Optional[float] = None
    clip_to_hull: bool = False

    def __post_init__(self) -> None:
        if self.radius <= 0:
            raise ValueError("IsolineParams.radius must be > 0")
        if self.isoscale_interval <= 0 or self.isorotation_interval <= 0:
            raise ValueError("IsolineParams intervals must be > 0")
        if self.mesh_size is not None and self.mesh_size <= 0:
            raise ValueError("IsolineParams.mesh_size must be > 0")


@dataclass(frozen=True)
class IsolineResult:
    grids: ScaleRotationGrids
    scale_contours: List[Contour]
    rotation_contours: List[Contour]
    radius: float                      # radius of influence actually used, destination units
    analyze_old_map: bool

    @property
    def scale_grid(self) -> ScalarGrid:
        return self.grids.scale

    @property
    def rotation_grid(self) -> ScalarGrid:
        return self.grids.rotation

    def cached_scale_rotation(self, x: float, y: float, for_old_map: bool) -> Optional[Tuple[float, float]]:
        """
        Scale (bilinear) and rotation in degrees (nearest node) at (x, y), or
        None when the grids were built for the other map or the point is undefined.
        """
        if for_old_map != self.analyze_old_map:
            return None
        scale = self.grids.scale_at(x, y)
        rot = self.grids.rotation_at(x, y)
        if math.isnan(scale) or math.isnan(rot):
            return None
        return scale, rot


class Isolines:
    name = "Isolines"

    def __init__(self, params: IsolineParams = IsolineParams()) -> None:
        self.params = params

    # ---------- Radius of influence ----------
    @staticmethod
    def recommended_radius(vis: VisualizationParams) -> float:
        box = vis.dst_bounds
        return recommended_radius(box.width, box.height)

    @staticmethod
    def radius_range(vis: VisualizationParams) -> Tuple[float, float]:
        box = vis.dst_bounds
        return radius_range(box.width, box.height)

    def is_radius_valid(self, vis: VisualizationParams) -> bool:
        box = vis.dst_bounds
        return is_radius_valid(self._radius(vis), box.width, box.height)

    def _radius(self, vis: VisualizationParams) -> float:
        scale = vis.transformation_scale if vis.analyze_old_map else 1.0
        return self.params.radius * scale

    # ---------- Analysis ----------
    def analyze(self, vis: VisualizationParams) -> IsolineResult:
        box = vis.dst_bounds
        mesh = self.params.mesh_size
        if mesh is None:
            mesh = box.max_extent / GRID_SIZE
        radius = self._radius(vis)

        builder = ScalarGridBuilder(GridParams(
            mesh_size=mesh,
            radius=radius,
            invert_scale=vis.analyze_old_map,
        ))
        grids = builder.build(vis.src_points, vis.dst_points, hull=vis.dst_hull)

        scale_contours = Contourer(grids.scale, self.params.isoscale_interval).contour()
        rotation_contours = Contourer(
            grids.rotation, self.params.isorotation_interval, treat_degree_jump=True
        ).contour()

        if self.params.clip_to_hull and vis.dst_hull is not None:
            scale_contours = _clip(scale_contours, vis)
            rotation_contours = _clip(rotation_contours, vis)

        logger.info(
            "Isolines: %d scale levels, %d rotation levels (radius %.6g)",
            len(scale_contours), len(rotation_contours), radius,
        )
        return IsolineResult(grids, scale_contours, rotation_contours, radius, vis.analyze_old_map)


def _clip(contours: List[Contour], vis: VisualizationParams) -> List[Contour]:
    out = []
    for c in contours:
        lines = clip_polylines(c.polylines, vis.dst_hull)
        if lines:
            out.append(Contour(c.level, lines))
    return out
