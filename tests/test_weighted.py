"""Tests for the weighted local Helmert fit."""

import math

import numpy as np
import pytest

from mapdistort.transform import HelmertTransformation
from mapdistort.transform.weighted import (
    WEIGHT_AT_MAX_DIST, is_radius_valid, local_scale_rotation, radius_range,
    recommended_radius, sample_scale_rotation, weight_constant,
)


def test_weight_constant_hits_target_weight_at_radius():
    k = weight_constant(250.0)
    assert math.exp(-k * 250.0 ** 2) == pytest.approx(WEIGHT_AT_MAX_DIST)
    with pytest.raises(ValueError):
        weight_constant(0.0)


def test_exact_similarity_is_recovered_everywhere(exact_old_points, new_points):
    # new = 2 * R(10 deg) * old + t
    centre = new_points.mean(axis=0)
    xs = centre[0] + np.array([-5000.0, 0.0, 4000.0])
    ys = centre[1] + np.array([3000.0, 0.0, -2000.0])
    scale, rot = sample_scale_rotation(xs, ys, exact_old_points, new_points, 10000.0)
    np.testing.assert_allclose(scale, 2.0, rtol=1e-9)
    np.testing.assert_allclose(np.degrees(rot), 10.0, atol=1e-7)


def test_huge_radius_matches_global_helmert(noisy_old_points, new_points):
    h = HelmertTransformation()
    h.init(new_points, noisy_old_points)

    x, y = new_points.mean(axis=0)
    scale, rot = local_scale_rotation(x, y, noisy_old_points, new_points, 1e9)
    assert scale == pytest.approx(h.get_scale(), rel=1e-6)
    assert rot == pytest.approx(h.get_rotation(), abs=1e-6)


def test_fewer_than_two_points_in_radius_is_undefined():
    src = np.array([[0, 0], [10, 0], [0, 10]], dtype=np.float64)
    dst = src * 2.0
    scale, rot = local_scale_rotation(0.0, 0.0, src, dst, 5.0)
    assert math.isnan(scale)
    assert math.isnan(rot)


def test_radius_boundary_is_strict():
    src = np.array([[0, 0], [1, 0], [0, 1]], dtype=np.float64)
    dst = np.array([[0, 0], [100, 0], [0, 100]], dtype=np.float64)

    # both remaining points lie exactly at distance 100: excluded
    scale, _ = local_scale_rotation(0.0, 0.0, src, dst, 100.0)
    assert math.isnan(scale)

    scale, _ = local_scale_rotation(0.0, 0.0, src, dst, 100.0 + 1e-6)
    assert scale == pytest.approx(100.0)


def test_sample_rejects_mismatched_query_arrays(exact_old_points, new_points):
    with pytest.raises(ValueError, match="same length"):
        sample_scale_rotation([1.0, 2.0], [1.0], exact_old_points, new_points, 1000.0)


def test_sample_handles_more_queries_than_one_block(exact_old_points, new_points):
    centre = new_points.mean(axis=0)
    xs = np.full(5000, centre[0])
    ys = np.full(5000, centre[1])
    scale, _ = sample_scale_rotation(xs, ys, exact_old_points, new_points, 10000.0)
    assert scale.shape == (5000,)
    np.testing.assert_allclose(scale, 2.0, rtol=1e-9)


def test_radius_helpers():
    assert recommended_radius(1000.0, 400.0) == pytest.approx(350.0)
    assert radius_range(400.0, 1000.0) == pytest.approx((100.0, 600.0))
    assert is_radius_valid(350.0, 1000.0, 400.0)
    assert not is_radius_valid(100.0, 1000.0, 400.0)
    assert not is_radius_valid(700.0, 1000.0, 400.0)
