"""
Warp an old map image into the geometry of the reference map with OpenCV.

Every pixel of the output raster is a location in the reference map. Its
centre is moved into the old map by:
  1) the global transformation (reference -> old map)
  2) the multiquadric interpolation of the remaining residuals
and the old map image is sampled there. cv2.remap does the sampling, so the
whole raster is resampled in one call with the per-pixel lookup maps.

The output covers the bounding box of the control points in the reference map
and has about as many pixels as the source image.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import cv2

from .geometry.hull import BoundingBox, find_bounding_box
from .transform.factory import AnyTransformation
from .transform.multiquadric import MultiquadricInterpolation
from .types import FloatArray, Points2D, as_points

logger = logging.getLogger(__name__)


# ---------- Warp parameters ----------
@dataclass(frozen=True)
class WarpParams:
    """
    Parameters:
    - border_mode: OpenCV border mode for samples outside the source image.
      cv2.BORDER_CONSTANT leaves them at border_value (transparent for RGBA).
    - border_value: fill value for cv2.BORDER_CONSTANT, one entry per channel
    - interpolation: cv2.INTER_LINEAR (bilinear), cv2.INTER_NEAREST or cv2.INTER_CUBIC
    """
    border_mode: int = cv2.BORDER_CONSTANT
    border_value: Tuple[int, int, int, int] = (0, 0, 0, 0)
    interpolation: int = cv2.INTER_LINEAR


# ---------- Georeferenced image ----------
@dataclass(frozen=True)
class GeoImage:
    """
    Image with square pixels placed in map coordinates.

    - image: (H, W) or (H, W, C) array, row 0 is north
    - west, north: map coordinates of the outer corner of pixel (0, 0)
    - cell_size: pixel size in map units
    """
    image: np.ndarray
    west: float
    north: float
    cell_size: float

    def __post_init__(self) -> None:
        if self.image is None or self.image.ndim not in (2, 3) or self.image.size == 0:
            shape = None if self.image is None else self.image.shape
            raise ValueError(f"GeoImage expected a non-empty (H, W) or (H, W, C) image, got {shape}")
        if not self.cell_size > 0:
            raise ValueError(f"GeoImage.cell_size must be > 0, got {self.cell_size}")

    @property
    def height(self) -> int:
        return self.image.shape[0]

    @property
    def width(self) -> int:
        return self.image.shape[1]

    @property
    def east(self) -> float:
        return self.west + self.width * self.cell_size

    @property
    def south(self) -> float:
        return self.north - self.height * self.cell_size

    @property
    def bounds(self) -> BoundingBox:
        return BoundingBox(self.west, self.south, self.east, self.north)

    def pixel_centers(self) -> Tuple[FloatArray, FloatArray]:
        """(H, W) arrays with the map coordinates of every pixel centre."""
        xs = self.west + (np.arange(self.width, dtype=np.float64) + 0.5) * self.cell_size
        ys = self.north - (np.arange(self.height, dtype=np.float64) + 0.5) * self.cell_size
        return np.meshgrid(xs, ys)

    def to_pixel(self, points: Points2D) -> Tuple[FloatArray, FloatArray]:
        """Fractional (col, row) of map points, pixel centres at integer positions."""
        pts = as_points(points)
        cols = (pts[:, 0] - self.west) / self.cell_size - 0.5
        rows = (self.north - pts[:, 1]) / self.cell_size - 0.5
        return cols, rows


def destination_size(bounds: BoundingBox, n_pixels: int) -> Tuple[int, int]:
    """
    (width, height) of a raster with about n_pixels pixels and the aspect
    ratio of bounds.
    """
    if bounds.width <= 0 or bounds.height <= 0:
        raise ValueError(f"Cannot size a raster for an empty extent {bounds}")
    ratio = bounds.width / bounds.height
    h = math.sqrt(n_pixels / ratio)
    w = n_pixels / h
    return int(math.ceil(w)), int(math.ceil(h))


# ---------- Warp ----------
def warp_image(
    source: GeoImage,
    transformation: AnyTransformation,
    interpolation: Optional[MultiquadricInterpolation],
    control_points: Points2D,
    *,
    params: WarpParams = WarpParams(),
) -> GeoImage:
    """
    Resample source into the reference map.

    - source: old map image in old map coordinates
    - transformation: fitted global transformation reference -> old map
    - interpolation: multiquadric interpolation from transformed reference points
      to old map points; None warps with the global transformation only
    - control_points: control points in the reference map, they define the extent

    Output: GeoImage in reference map coordinates.
    """
    bounds = find_bounding_box(as_points(control_points, "control_points"))
    w, h = destination_size(bounds, source.width * source.height)
    cell_size = bounds.width / w
    out_geo = GeoImage(np.zeros((h, w) + source.image.shape[2:], dtype=source.image.dtype),
                       bounds.min_x, bounds.max_y, cell_size)

    gx, gy = out_geo.pixel_centers()
    pts = np.column_stack([gx.ravel(), gy.ravel()])
    pts = transformation.transform(pts)
    if interpolation is not None:
        pts = interpolation.transform(pts)

    cols, rows = source.to_pixel(pts)
    map_x = cols.reshape(h, w).astype(np.float32)
    map_y = rows.reshape(h, w).astype(np.float32)

    warped = cv2.remap(
        source.image,
        map_x,
        map_y,
        interpolation=params.interpolation,
        borderMode=params.border_mode,
        borderValue=params.border_value,
    )
    logger.info("Warped %dx%d image to %dx%d, cell size %.6g", source.width, source.height, w, h, cell_size)
    return GeoImage(warped, bounds.min_x, bounds.max_y, cell_size)
