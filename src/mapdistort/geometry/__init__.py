"""
Geometry package

This module provides:
- Point in polygon tests (single and vectorised)
- Segment / polygon intersections
- Polyline clipping with closed polygons
- Convex hull and bounding box of point sets
"""

from .polygon import (
    point_in_polygon, points_in_polygon,
    intersect_segments, intersect_segment_with_polygon,
    ClipResult, clip_polyline, clip_polylines,
)

from .hull import BoundingBox, find_bounding_box, convex_hull

__all__ = [
    "point_in_polygon", "points_in_polygon",
    "intersect_segments", "intersect_segment_with_polygon",
    "ClipResult", "clip_polyline", "clip_polylines",
    "BoundingBox", "find_bounding_box", "convex_hull",
]
