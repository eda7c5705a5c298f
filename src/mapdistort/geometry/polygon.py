"""
Polygon predicates and polyline clipping.

- point_in_polygon: even-odd rule (W. R. Franklin's crossing test). Points
  strictly inside are True, strictly outside False; boundary points are
  assigned consistently so a partition of the plane puts each point in exactly
  one polygon.
- intersect_segments: proper intersection of two segments, parameters strictly
  inside (0, 1); parallel segments never intersect.
- clip_polyline: split a polyline at every crossing with a closed polygon and
  keep the runs whose segment midpoints lie inside.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from ..types import BoolArray, FloatArray, Point2D, Polygon, Polyline, as_points, is_closed


# ---------- Point in polygon ----------
def point_in_polygon(x: float, y: float, polygon: Polygon) -> bool:
    inside = False
    n = polygon.shape[0]
    j = n - 1
    for i in range(n):
        xi, yi = polygon[i]
        xj, yj = polygon[j]
        if ((yi <= y < yj) or (yj <= y < yi)) and (x < (xj - xi) * (y - yi) / (yj - yi) + xi):
            inside = not inside
        j = i
    return inside


def points_in_polygon(xs, ys, polygon: Polygon) -> BoolArray:
    """
    Vectorised point_in_polygon over many points (same crossing rule).
    Loops over polygon edges, not over points.
    """
    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64)
    inside = np.zeros(np.broadcast(xs, ys).shape, dtype=bool)
    n = polygon.shape[0]
    j = n - 1
    for i in range(n):
        xi, yi = polygon[i]
        xj, yj = polygon[j]
        j = i
        if yi == yj:
            # horizontal edges never satisfy the half-open y test
            continue
        straddles = ((yi <= ys) & (ys < yj)) | ((yj <= ys) & (ys < yi))
        x_cross = (xj - xi) * (ys - yi) / (yj - yi) + xi
        inside ^= straddles & (xs < x_cross)
    return inside


# ---------- Segment intersection ----------
def intersect_segments(
    p1: Point2D, p2: Point2D, p3: Point2D, p4: Point2D
) -> Optional[Tuple[float, float, float]]:
    """
    Intersection of segment p1-p2 with segment p3-p4.

    Returns (x, y, ua) where ua is the parameter along p1-p2, or None when the
    segments are parallel or do not cross with both parameters in (0, 1).
    """
    x1, y1 = p1
    x2, y2 = p2
    x3, y3 = p3
    x4, y4 = p4
    denominator = (y4 - y3) * (x2 - x1) - (x4 - x3) * (y2 - y1)
    if denominator == 0.0:
        return None
    ua = ((x4 - x3) * (y1 - y3) - (y4 - y3) * (x1 - x3)) / denominator
    if ua <= 0.0 or ua >= 1.0:
        return None
    ub = ((x2 - x1) * (y1 - y3) - (y2 - y1) * (x1 - x3)) / denominator
    if ub <= 0.0 or ub >= 1.0:
        return None
    return x1 + ua * (x2 - x1), y1 + ua * (y2 - y1), ua


def intersect_segment_with_polygon(p1: Point2D, p2: Point2D, polygon: Polygon) -> FloatArray:
    """All crossings of p1-p2 with the polygon edges, ordered from p1 towards p2. Shape (K, 2)."""
    hits = []
    for i in range(1, polygon.shape[0]):
        hit = intersect_segments(p1, p2, polygon[i - 1], polygon[i])
        if hit is not None:
            hits.append(hit)
    hits.sort(key=lambda h: h[2])
    return np.array([(h[0], h[1]) for h in hits], dtype=np.float64).reshape(-1, 2)


# ---------- Clipping ----------
@dataclass(frozen=True)
class ClipResult:
    lines: List[Polyline]            # clipped pieces, each with >= 2 points
    first_point: Optional[Point2D]   # first point of the first piece (label anchor)
    last_point: Optional[Point2D]    # last point of the last piece (label anchor)

    @property
    def is_empty(self) -> bool:
        return not self.lines


def clip_polyline(polyline, polygon) -> ClipResult:
    """
    Clip a polyline with a closed polygon.

    Every segment is split at its crossings with the polygon boundary. A
    sub-segment is kept when its midpoint is inside the polygon, and runs of
    kept sub-segments become output polylines. Runs with fewer than 2 points are
    dropped.

    Raises ValueError if the polygon is not closed or the polyline has fewer
    than 2 points.
    """
    polyline = as_points(polyline, "polyline")
    polygon = as_points(polygon, "polygon")
    if polyline.shape[0] < 2:
        raise ValueError(f"polyline needs at least 2 points, got {polyline.shape[0]}")
    if polygon.shape[0] < 4 or not is_closed(polygon):
        raise ValueError("polygon not closed")

    # polyline densified with the crossing points
    pts = [polyline[0]]
    for i in range(1, polyline.shape[0]):
        crossings = intersect_segment_with_polygon(polyline[i - 1], polyline[i], polygon)
        pts.extend(crossings)
        pts.append(polyline[i])

    lines: List[Polyline] = []
    line: List[FloatArray] = []
    added_last = False
    for k in range(len(pts) - 1):
        mid_x = 0.5 * (pts[k][0] + pts[k + 1][0])
        mid_y = 0.5 * (pts[k][1] + pts[k + 1][1])
        if point_in_polygon(mid_x, mid_y, polygon):
            line.append(pts[k])
            added_last = True
        elif added_last:
            # first segment outside: its start point closes the current run
            line.append(pts[k])
            if len(line) > 1:
                lines.append(np.array(line, dtype=np.float64))
            line = []
            added_last = False

    if added_last:
        line.append(pts[-1])
    if len(line) > 1:
        lines.append(np.array(line, dtype=np.float64))

    if not lines:
        return ClipResult(lines=[], first_point=None, last_point=None)
    return ClipResult(lines=lines, first_point=lines[0][0].copy(), last_point=lines[-1][-1].copy())


def clip_polylines(polylines: List[Polyline], polygon: Optional[Polygon]) -> List[Polyline]:
    """Clip many polylines; with polygon None the input is returned as is."""
    if polygon is None:
        return list(polylines)
    out: List[Polyline] = []
    for pl in polylines:
        if len(pl) < 2:
            continue
        out.extend(clip_polyline(pl, polygon).lines)
    return out
