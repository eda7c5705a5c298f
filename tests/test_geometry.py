"""Tests for point in polygon, intersections, clipping and hulls."""

import numpy as np
import pytest

from mapdistort.errors import InsufficientDataError
from mapdistort.geometry import (
    clip_polyline, clip_polylines, convex_hull, find_bounding_box, intersect_segment_with_polygon,
    intersect_segments, point_in_polygon, points_in_polygon,
)


# ---------- Point in polygon ----------
def test_point_in_polygon(unit_square):
    assert point_in_polygon(5.0, 5.0, unit_square)
    assert not point_in_polygon(15.0, 5.0, unit_square)
    assert not point_in_polygon(5.0, -1.0, unit_square)


def test_point_in_concave_polygon():
    # U shape open to the north
    u = np.array([[0, 0], [9, 0], [9, 9], [6, 9], [6, 3], [3, 3], [3, 9], [0, 9], [0, 0]],
                 dtype=np.float64)
    assert point_in_polygon(1.5, 6.0, u)
    assert not point_in_polygon(4.5, 6.0, u)
    assert point_in_polygon(4.5, 1.5, u)


def test_vectorised_matches_scalar(unit_square):
    rng = np.random.default_rng(11)
    xs = rng.uniform(-5, 15, 200)
    ys = rng.uniform(-5, 15, 200)
    # include boundary points
    xs[:4] = [0.0, 10.0, 5.0, 5.0]
    ys[:4] = [5.0, 5.0, 0.0, 10.0]
    expected = [point_in_polygon(x, y, unit_square) for x, y in zip(xs, ys)]
    np.testing.assert_array_equal(points_in_polygon(xs, ys, unit_square), expected)


def test_shared_edge_puts_point_in_one_polygon():
    left = np.array([[0, 0], [5, 0], [5, 10], [0, 10], [0, 0]], dtype=np.float64)
    right = np.array([[5, 0], [10, 0], [10, 10], [5, 10], [5, 0]], dtype=np.float64)
    hits = [point_in_polygon(5.0, 5.0, p) for p in (left, right)]
    assert sum(hits) == 1


# ---------- Intersections ----------
def test_intersect_segments():
    hit = intersect_segments((0, 0), (10, 10), (0, 10), (10, 0))
    assert hit == pytest.approx((5.0, 5.0, 0.5))


def test_parallel_and_touching_segments_do_not_intersect():
    assert intersect_segments((0, 0), (10, 0), (0, 1), (10, 1)) is None
    # touching at an end point: parameter 0 is excluded
    assert intersect_segments((0, 0), (10, 0), (0, -5), (0, 5)) is None
    assert intersect_segments((0, 0), (1, 1), (5, 0), (5, 10)) is None


def test_intersections_are_ordered_along_segment(unit_square):
    hits = intersect_segment_with_polygon((20.0, 5.0), (-10.0, 5.0), unit_square)
    np.testing.assert_allclose(hits, [[10.0, 5.0], [0.0, 5.0]])
    assert intersect_segment_with_polygon((2.0, 2.0), (3.0, 3.0), unit_square).shape == (0, 2)


# ---------- Clipping ----------
def test_clip_keeps_line_inside(unit_square):
    line = np.array([[1.0, 1.0], [5.0, 2.0], [9.0, 9.0]])
    res = clip_polyline(line, unit_square)
    assert len(res.lines) == 1
    np.testing.assert_allclose(res.lines[0], line)
    np.testing.assert_allclose(res.first_point, [1.0, 1.0])
    np.testing.assert_allclose(res.last_point, [9.0, 9.0])


def test_clip_drops_line_outside(unit_square):
    res = clip_polyline([[20.0, 0.0], [30.0, 5.0]], unit_square)
    assert res.is_empty
    assert res.first_point is None and res.last_point is None


def test_clip_splits_at_boundary(unit_square):
    res = clip_polyline([[-5.0, 5.0], [15.0, 5.0]], unit_square)
    assert len(res.lines) == 1
    np.testing.assert_allclose(res.lines[0], [[0.0, 5.0], [10.0, 5.0]])


def test_clip_line_leaving_and_reentering():
    u = np.array([[0, 0], [9, 0], [9, 9], [6, 9], [6, 3], [3, 3], [3, 9], [0, 9], [0, 0]],
                 dtype=np.float64)
    res = clip_polyline([[-1.0, 6.0], [10.0, 6.0]], u)
    assert len(res.lines) == 2
    np.testing.assert_allclose(res.lines[0], [[0.0, 6.0], [3.0, 6.0]])
    np.testing.assert_allclose(res.lines[1], [[6.0, 6.0], [9.0, 6.0]])
    np.testing.assert_allclose(res.first_point, [0.0, 6.0])
    np.testing.assert_allclose(res.last_point, [9.0, 6.0])


def test_clip_requires_closed_polygon():
    open_square = np.array([[0, 0], [10, 0], [10, 10], [0, 10]], dtype=np.float64)
    with pytest.raises(ValueError, match="not closed"):
        clip_polyline([[1.0, 1.0], [2.0, 2.0]], open_square)


def test_clip_requires_two_points(unit_square):
    with pytest.raises(ValueError):
        clip_polyline([[1.0, 1.0]], unit_square)


def test_clip_polylines_without_polygon_returns_input(unit_square):
    lines = [np.array([[-5.0, 5.0], [15.0, 5.0]]), np.array([[20.0, 0.0], [30.0, 0.0]])]
    unclipped = clip_polylines(lines, None)
    assert len(unclipped) == 2 and unclipped[0] is lines[0]
    clipped = clip_polylines(lines, unit_square)
    assert len(clipped) == 1


# ---------- Hull and bounds ----------
def test_convex_hull_is_closed_and_counter_clockwise():
    pts = np.array([[0, 0], [10, 0], [10, 10], [0, 10], [5, 5], [2, 7]], dtype=np.float64)
    hull = convex_hull(pts)
    assert hull.shape == (5, 2)
    np.testing.assert_array_equal(hull[0], hull[-1])
    x, y = hull[:-1, 0], hull[:-1, 1]
    area = 0.5 * np.sum(x * np.roll(y, -1) - np.roll(x, -1) * y)
    assert area == pytest.approx(100.0)


def test_convex_hull_keeps_map_coordinate_precision():
    pts = np.array([[600000.123, 200000.456], [600010.789, 200000.001],
                    [600005.5, 200010.25], [600005.0, 200003.0]])
    hull = convex_hull(pts)
    assert len(hull) == 4
    for p in hull[:-1]:
        assert any(np.array_equal(p, q) for q in pts[:3])


def test_convex_hull_errors():
    with pytest.raises(InsufficientDataError):
        convex_hull(np.zeros((2, 2)))
    with pytest.raises(InsufficientDataError):
        convex_hull(np.array([[0, 0], [1, 1], [2, 2]], dtype=np.float64))


def test_bounding_box():
    box = find_bounding_box(np.array([[1.0, 5.0], [4.0, -1.0], [2.0, 3.0]]))
    assert (box.min_x, box.min_y, box.max_x, box.max_y) == (1.0, -1.0, 4.0, 5.0)
    assert box.width == 3.0 and box.height == 6.0
    assert box.max_extent == 6.0
    with pytest.raises(InsufficientDataError):
        find_bounding_box(np.zeros((0, 2)))
