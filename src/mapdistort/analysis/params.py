"""
Inputs shared by all analyzers of one analysis run.

The run decides which map is the destination:
- analyze_old_map=False: old map points are the source, new map points the destination
- analyze_old_map=True:  new map points are the source, old map points the destination
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..geometry.hull import BoundingBox, find_bounding_box
from ..projection import Projector
from ..transform.factory import AnyTransformation
from ..transform.multiquadric import MultiquadricInterpolation
from ..types import Points2D, Polygon


@dataclass(frozen=True)
class VisualizationParams:
    transformation: AnyTransformation                 # fitted src -> dst
    old_points: Points2D
    new_points: Points2D
    old_hull: Optional[Polygon]
    new_hull: Optional[Polygon]
    transformed_src_points: Points2D                  # src points mapped into dst space
    analyze_old_map: bool = False
    interpolation: Optional[MultiquadricInterpolation] = None
    projector: Optional[Projector] = None

    @property
    def src_points(self) -> Points2D:
        return self.new_points if self.analyze_old_map else self.old_points

    @property
    def dst_points(self) -> Points2D:
        return self.old_points if self.analyze_old_map else self.new_points

    @property
    def src_hull(self) -> Optional[Polygon]:
        return self.new_hull if self.analyze_old_map else self.old_hull

    @property
    def dst_hull(self) -> Optional[Polygon]:
        return self.old_hull if self.analyze_old_map else self.new_hull

    @property
    def src_bounds(self) -> BoundingBox:
        return find_bounding_box(self.src_points)

    @property
    def dst_bounds(self) -> BoundingBox:
        return find_bounding_box(self.dst_points)

    @property
    def transformation_scale(self) -> float:
        return self.transformation.get_scale()

    @property
    def mesh_size_scale(self) -> float:
        """
        Factor converting a mesh size given in new map units into source map units.
        1 when the source is the new map, else the old-to-new scale.
        """
        return 1.0 if self.analyze_old_map else self.transformation_scale
