"""Tests for lattices, scalar grids and the scale / rotation grid builder."""

import math

import numpy as np
import pytest

from mapdistort.errors import GridSizeError
from mapdistort.geometry import BoundingBox
from mapdistort.grid import (
    GridParams, ScalarGrid, ScalarGridBuilder, build_geographic_lattice, build_lattice,
    suggest_cell_size,
)
from mapdistort.projection import MAX_LAT, SphericalMercator
from tests.conftest import similarity


# ---------- Cell size suggestion ----------
@pytest.mark.parametrize(
    "width, height, expected",
    [
        (1000.0, 3000.0, 75.0),       # 66.7 -> 75
        (150.0, 150.0, 10.0),         # exactly 10
        (10.0, 10.0, 0.75),           # 0.667 -> 0.75
        (30000.0, 20000.0, 1500.0),   # 1333 -> 1500
        (120000.0, 90000.0, 7500.0),  # 6000 -> 7500
    ],
)
def test_suggest_cell_size(width, height, expected):
    assert suggest_cell_size(width, height) == pytest.approx(expected)


def test_suggest_cell_size_empty_extent():
    assert suggest_cell_size(0.0, 100.0) == -1.0


# ---------- Planar lattice ----------
def test_lattice_is_aligned_to_mesh_multiples():
    lat = build_lattice(BoundingBox(100.0, 200.0, 1050.0, 980.0), 100.0)
    assert (lat.cols, lat.rows) == (11, 9)
    assert lat.west == pytest.approx(100.0)
    assert lat.south == pytest.approx(200.0)
    assert lat.north == pytest.approx(1000.0)
    assert lat.nodes.shape == (9, 11, 2)
    np.testing.assert_allclose(lat.nodes[0, 0], [100.0, 1000.0])
    np.testing.assert_allclose(lat.row_labels[[0, -1]], [1000.0, 200.0])

    vertical = lat.vertical_lines()
    horizontal = lat.horizontal_lines()
    assert len(vertical) == 11 and len(horizontal) == 9
    np.testing.assert_allclose(vertical[0][0], [100.0, 200.0])     # starts in the south
    np.testing.assert_allclose(horizontal[0][:, 1], 200.0)          # southern line first


def test_lattice_offset_shifts_nodes():
    lat = build_lattice(BoundingBox(100.0, 200.0, 1050.0, 980.0), 100.0, offset=(30.0, 250.0))
    assert lat.west == pytest.approx(130.0)
    assert lat.south == pytest.approx(250.0)


def test_lattice_with_too_few_lines_suggests_mesh_size():
    with pytest.raises(GridSizeError) as err:
        build_lattice(BoundingBox(0.0, 0.0, 10.0, 10.0), 5.0)
    assert err.value.suggested_mesh_size == pytest.approx(0.75)
    assert "0.75" in str(err.value)


def test_lattice_with_too_many_lines():
    with pytest.raises(GridSizeError):
        build_lattice(BoundingBox(0.0, 0.0, 10000.0, 100.0), 1.0)


def test_lattice_rejects_bad_mesh_size():
    with pytest.raises(ValueError):
        build_lattice(BoundingBox(0.0, 0.0, 10.0, 10.0), 0.0)


def test_with_nodes_keeps_layout():
    lat = build_lattice(BoundingBox(0.0, 0.0, 300.0, 300.0), 100.0)
    moved = lat.with_nodes(lat.flat_nodes() + 5.0)
    assert (moved.cols, moved.rows) == (lat.cols, lat.rows)
    np.testing.assert_allclose(moved.nodes, lat.nodes + 5.0)
    np.testing.assert_allclose(moved.col_labels, lat.col_labels)


# ---------- Geographic lattice ----------
def test_geographic_lattice_clamps_to_latitude_limit():
    proj = SphericalMercator()
    pts = proj.from_geo(np.array([[1.0, 61.0], [39.0, 61.0], [20.0, 75.0]]))
    pts = np.vstack([pts, [proj.from_geo(np.array([[20.0, 0.0]]))[0, 0], 25e6]])

    lat = build_geographic_lattice(pts, 10.0, proj)
    assert lat.geographic
    assert (lat.cols, lat.rows) == (5, 4)
    np.testing.assert_allclose(lat.col_labels, [0.0, 10.0, 20.0, 30.0, 40.0])
    np.testing.assert_allclose(lat.row_labels, [MAX_LAT, 80.0, 70.0, 60.0])

    top_y = proj.from_geo(np.array([[0.0, MAX_LAT]]))[0, 1]
    np.testing.assert_allclose(lat.nodes[0, :, 1], top_y)
    np.testing.assert_allclose(lat.nodes[-1, 0], proj.from_geo(np.array([[0.0, 60.0]]))[0])


# ---------- Scalar grid ----------
def _grid_2x2() -> ScalarGrid:
    # nodes: (0, 1)=10  (1, 1)=20
    #        (0, 0)=30  (1, 0)=40
    return ScalarGrid.from_values([[10.0, 20.0], [30.0, 40.0]], west=0.0, north=1.0,
                                  mesh_size=1.0, check_size=False)


def test_scalar_grid_geometry():
    g = _grid_2x2()
    assert (g.cols, g.rows) == (2, 2)
    assert g.south == pytest.approx(0.0)
    assert g.east == pytest.approx(1.0)
    xs, ys = g.node_coordinates()
    np.testing.assert_allclose(xs, [[0.0, 1.0], [0.0, 1.0]])
    np.testing.assert_allclose(ys, [[1.0, 1.0], [0.0, 0.0]])


def test_bilinear_interpolation():
    g = _grid_2x2()
    assert g.bilinear(0.5, 0.5) == pytest.approx(25.0)
    assert g.bilinear(0.0, 0.0) == pytest.approx(30.0)
    assert g.bilinear(1.0, 1.0) == pytest.approx(20.0)
    assert g.bilinear(0.25, 1.0) == pytest.approx(12.5)
    assert math.isnan(g.bilinear(1.5, 0.5))
    assert math.isnan(g.bilinear(0.5, -0.1))


def test_bilinear_with_nan_corner_is_nan():
    g = ScalarGrid.from_values([[np.nan, 20.0], [30.0, 40.0]], check_size=False)
    assert math.isnan(g.bilinear(0.5, -0.5))


def test_nearest_value():
    g = _grid_2x2()
    assert g.nearest(0.9, 0.1) == 40.0
    assert g.nearest(0.1, 0.6) == 10.0
    assert math.isnan(g.nearest(-0.6, 0.5))


def test_min_max_ignores_nan():
    g = ScalarGrid.from_values([[np.nan, 2.0], [-3.0, np.nan]], check_size=False)
    assert g.min_max() == (-3.0, 2.0)
    empty = ScalarGrid(2, 2, 0.0, 0.0, 1.0, check_size=False)
    assert all(math.isnan(v) for v in empty.min_max())


def test_scalar_grid_validation():
    with pytest.raises(GridSizeError):
        ScalarGrid(3, 3, 0.0, 0.0, 1.0)
    with pytest.raises(ValueError, match="values shape"):
        ScalarGrid(4, 4, 0.0, 0.0, 1.0, values=np.zeros((3, 4)))
    with pytest.raises(ValueError, match="mesh_size"):
        ScalarGrid(4, 4, 0.0, 0.0, 0.0)


# ---------- Builder ----------
def test_builder_recovers_constant_scale_and_rotation(exact_old_points, new_points):
    builder = ScalarGridBuilder(GridParams(mesh_size=2500.0, radius=10000.0))
    grids = builder.build(exact_old_points, new_points)

    scale = grids.scale.values
    rot = grids.rotation.values
    assert scale.shape == (grids.lattice.rows, grids.lattice.cols)
    assert np.isfinite(scale).any()
    # corners of the aligned lattice lie outside the convex hull
    assert np.isnan(scale).any()
    np.testing.assert_allclose(scale[np.isfinite(scale)], 2.0, rtol=1e-9)
    np.testing.assert_allclose(rot[np.isfinite(rot)], 10.0, atol=1e-7)
    np.testing.assert_array_equal(np.isnan(scale), np.isnan(rot))


def test_builder_inverts_scale(exact_old_points, new_points):
    builder = ScalarGridBuilder(GridParams(mesh_size=2500.0, radius=10000.0, invert_scale=True))
    grids = builder.build(exact_old_points, new_points)
    values = grids.scale.values
    np.testing.assert_allclose(values[np.isfinite(values)], 0.5, rtol=1e-9)


def test_builder_without_hull_defines_every_node(exact_old_points, new_points):
    builder = ScalarGridBuilder(GridParams(mesh_size=2500.0, radius=10000.0, clip_to_hull=False))
    grids = builder.build(exact_old_points, new_points)
    assert np.isfinite(grids.scale.values).all()


def test_builder_suggests_mesh_size(exact_old_points, new_points):
    builder = ScalarGridBuilder(GridParams(radius=10000.0))
    assert builder.mesh_size_for(new_points) == pytest.approx(2500.0)


def test_grid_params_validation():
    with pytest.raises(ValueError):
        GridParams(mesh_size=-1.0)
    with pytest.raises(ValueError):
        GridParams(radius=0.0)


def test_planar_grids_use_planar_lookups(exact_old_points, new_points):
    grids = ScalarGridBuilder(GridParams(mesh_size=2500.0, radius=10000.0)).build(exact_old_points, new_points)
    assert not grids.geographic
    x, y = grids.lattice.nodes[2, 3]
    assert grids.scale_at(x, y) == grids.scale.bilinear(x, y)
    assert grids.rotation_at(x, y) == grids.rotation.nearest(x, y)
    np.testing.assert_array_equal(grids.to_planar(new_points), new_points)


def _swiss_links(proj):
    rng = np.random.default_rng(3)
    lon, lat = np.meshgrid(np.linspace(7.05, 8.95, 8), np.linspace(46.05, 47.45, 5))
    geo = np.column_stack([lon.ravel(), lat.ravel()]) + rng.uniform(-0.02, 0.02, size=(40, 2))
    new = proj.from_geo(geo)
    old = similarity(new - new.mean(axis=0), 0.5, -10.0, 0.0, 0.0)
    return old, new


def test_geographic_grids_are_in_degrees_with_planar_lookups():
    proj = SphericalMercator()
    old, new = _swiss_links(proj)
    grids = ScalarGridBuilder(GridParams(mesh_size=0.1, radius=200000.0)).build(old, new, projector=proj)

    assert grids.geographic
    assert grids.scale.west == pytest.approx(7.0)
    assert grids.scale.north == pytest.approx(47.5)
    assert grids.scale.mesh_size == pytest.approx(0.1)

    r, c = grids.lattice.rows // 2, grids.lattice.cols // 2
    x, y = grids.lattice.nodes[r, c]
    assert grids.scale.values[r, c] == pytest.approx(2.0, rel=1e-9)
    # planar coordinates do not address the degree grid directly
    assert math.isnan(grids.scale.bilinear(x, y))
    assert grids.scale_at(x, y) == pytest.approx(2.0, rel=1e-9)
    assert grids.rotation_at(x, y) == pytest.approx(10.0, abs=1e-7)

    # grid coordinates (e.g. contour vertices) map back onto the planar nodes
    lon = grids.scale.west + c * grids.scale.mesh_size
    lat = grids.scale.north - r * grids.scale.mesh_size
    np.testing.assert_allclose(grids.to_planar([[lon, lat]])[0], [x, y], rtol=1e-9)


def test_geographic_mesh_size_is_suggested_in_degrees():
    proj = SphericalMercator()
    old, new = _swiss_links(proj)
    builder = ScalarGridBuilder(GridParams(radius=200000.0))
    assert builder.mesh_size_for(new, proj) == pytest.approx(0.1)
    assert builder.build(old, new, projector=proj).lattice.mesh_size == pytest.approx(0.1)
