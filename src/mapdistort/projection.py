"""
Projection collaborator for graticules (longitude / latitude grids).

Only two operations are needed: planar -> geographic and back. The spherical
Mercator projection is included as a working reference; any object with the
same two methods can be passed instead.
"""
from __future__ import annotations

import math
from typing import Protocol

import numpy as np

from .types import FloatArray, Points2D, as_points

# Latitude limits of spherical (web) Mercator, where the projected map is square.
MAX_LAT = 85.05112877980659
MIN_LAT = -MAX_LAT

EARTH_RADIUS = 6378137.0


class Projector(Protocol):
    def to_geo(self, points: Points2D) -> FloatArray:
        """Planar (x, y) -> (longitude, latitude) in degrees. (N,2) in, (N,2) out."""
        ...

    def from_geo(self, points: Points2D) -> FloatArray:
        """(longitude, latitude) in degrees -> planar (x, y). (N,2) in, (N,2) out."""
        ...


class SphericalMercator:
    """
    Mercator projection on a sphere.

        x = R * (lon - lon0)
        y = R * ln(tan(pi/4 + lat/2))
    """

    def __init__(self, lon0: float = 0.0, radius: float = EARTH_RADIUS) -> None:
        if radius <= 0:
            raise ValueError(f"radius must be > 0, got {radius}")
        self.lon0 = lon0
        self.radius = radius

    def to_geo(self, points: Points2D) -> FloatArray:
        pts = as_points(points)
        lon = np.degrees(pts[:, 0] / self.radius) + self.lon0
        lat = np.degrees(2.0 * np.arctan(np.exp(pts[:, 1] / self.radius)) - 0.5 * math.pi)
        return np.column_stack([lon, lat])

    def from_geo(self, points: Points2D) -> FloatArray:
        pts = as_points(points)
        lat = np.clip(pts[:, 1], MIN_LAT, MAX_LAT)
        x = self.radius * np.radians(pts[:, 0] - self.lon0)
        y = self.radius * np.log(np.tan(0.25 * math.pi + 0.5 * np.radians(lat)))
        return np.column_stack([x, y])
