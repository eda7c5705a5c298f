"""
Convex hull and bounding box of point sets.

The hull is returned as a closed ring (first point repeated at the end) in
counter-clockwise order, ready for point_in_polygon and clip_polyline.
"""
from __future__ import annotations

from dataclasses import dataclass

import cv2
import numpy as np

from ..errors import InsufficientDataError
from ..types import Points2D, Polygon, as_points


@dataclass(frozen=True)
class BoundingBox:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def max_extent(self) -> float:
        return max(self.width, self.height)


def find_bounding_box(points: Points2D) -> BoundingBox:
    pts = as_points(points)
    if pts.shape[0] == 0:
        raise InsufficientDataError("bounding box of an empty point set")
    lo = pts.min(axis=0)
    hi = pts.max(axis=0)
    return BoundingBox(float(lo[0]), float(lo[1]), float(hi[0]), float(hi[1]))


def convex_hull(points: Points2D) -> Polygon:
    """
    Convex hull of (N,2) points as a closed (M+1, 2) ring.

    cv2.convexHull works on float32, which cannot hold map coordinates like
    600000.123 exactly. The points are reduced to their centroid for the hull
    search and the hull vertices are taken from the original float64 array by
    index.
    """
    pts = as_points(points)
    if pts.shape[0] < 3:
        raise InsufficientDataError(f"convex hull needs at least 3 points, got {pts.shape[0]}")

    reduced = (pts - pts.mean(axis=0)).astype(np.float32)
    idx = cv2.convexHull(reduced.reshape(-1, 1, 2), clockwise=False, returnPoints=False)
    idx = idx.reshape(-1)
    if idx.size < 3:
        raise InsufficientDataError("convex hull is degenerate (points are collinear)")

    ring = pts[idx]
    # OpenCV's orientation flag refers to image axes (y down); force ccw for y up
    if _signed_area(ring) < 0:
        ring = ring[::-1]
    return np.vstack([ring, ring[:1]])


def _signed_area(ring: Points2D) -> float:
    x = ring[:, 0]
    y = ring[:, 1]
    return 0.5 * float(np.sum(x * np.roll(y, -1) - np.roll(x, -1) * y))
