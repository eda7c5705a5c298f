"""Shared test fixtures."""

from __future__ import annotations

import math

import numpy as np
import pytest

from mapdistort.analysis import LinkSet


# Control points of a small distorted survey (multiquadric reference data)
MQ_SRC = np.array([
    [1200, 1000], [1800, 1000], [2000, 1000], [1000, 1200], [1600, 1200],
    [2000, 1200], [1000, 1400], [1400, 1400], [1600, 1400], [1200, 1600],
    [1400, 1600], [1800, 1600], [1400, 1800], [2000, 1800], [1000, 2000],
    [1600, 2000], [1800, 2000],
], dtype=np.float64)

MQ_DST = np.array([
    [1220, 1000], [1800, 980], [1980, 1020], [1000, 1240], [1620, 1220],
    [2020, 1180], [980, 1400], [1400, 1380], [1560, 1400], [1220, 1620],
    [1400, 1580], [1820, 1600], [1360, 1780], [2020, 1780], [1000, 2040],
    [1620, 1990], [1780, 1990],
], dtype=np.float64)


def similarity(points, scale: float, rot_deg: float, tx: float, ty: float) -> np.ndarray:
    """Apply X = tx + s*(cos*x - sin*y), Y = ty + s*(sin*x + cos*y)."""
    pts = np.asarray(points, dtype=np.float64)
    a = math.radians(rot_deg)
    c, s = math.cos(a), math.sin(a)
    out = np.empty_like(pts)
    out[:, 0] = tx + scale * (c * pts[:, 0] - s * pts[:, 1])
    out[:, 1] = ty + scale * (s * pts[:, 0] + c * pts[:, 1])
    return out


@pytest.fixture
def mq_points():
    return MQ_SRC.copy(), MQ_DST.copy()


@pytest.fixture
def new_points() -> np.ndarray:
    """Jittered 8 x 6 lattice of control points in the new map, 5 km apart."""
    rng = np.random.default_rng(42)
    gx, gy = np.meshgrid(np.arange(8) * 5000.0, np.arange(6) * 5000.0)
    pts = np.column_stack([gx.ravel(), gy.ravel()]) + np.array([600000.0, 200000.0])
    return pts + rng.uniform(-800.0, 800.0, size=pts.shape)


@pytest.fixture
def exact_old_points(new_points) -> np.ndarray:
    """Old map points related to the new points by an exact similarity (new = 2 * R(10 deg) * old + t)."""
    centered = new_points - new_points.mean(axis=0)
    return similarity(centered, 0.5, -10.0, 1000.0, 2000.0)


@pytest.fixture
def noisy_old_points(exact_old_points) -> np.ndarray:
    rng = np.random.default_rng(7)
    old = exact_old_points.copy()
    # smooth bulge plus noise
    c = old - old.mean(axis=0)
    old[:, 0] += 150.0 * np.exp(-np.sum((c / 5000.0) ** 2, axis=1))
    return old + rng.normal(0.0, 20.0, size=old.shape)


@pytest.fixture
def exact_links(exact_old_points, new_points) -> LinkSet:
    return LinkSet.from_arrays(exact_old_points, new_points)


@pytest.fixture
def noisy_links(noisy_old_points, new_points) -> LinkSet:
    return LinkSet.from_arrays(noisy_old_points, new_points)


@pytest.fixture
def unit_square() -> np.ndarray:
    return np.array([[0, 0], [10, 0], [10, 10], [0, 10], [0, 0]], dtype=np.float64)
