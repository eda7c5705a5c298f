"""
Error vectors and error circles.

For every control link, the residual between the destination point and the
transformed source point is drawn as:
- a vector starting at the destination point, pointing towards the transformed
  source point, with its length multiplied by vector_scale
- a circle around the destination point whose area is proportional to the
  residual length

Residuals longer than 3 * sigma0 of the global transformation are outliers.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List

import numpy as np

from ..types import Point2D
from .params import VisualizationParams

logger = logging.getLogger(__name__)

OUTLIER_FACTOR = 3.0

# Residuals shorter than this get no circle.
_MIN_LENGTH = 1e-8


@dataclass(frozen=True)
class ErrorVectorParams:
    vector_scale: float = 1.0

    def __post_init__(self) -> None:
        if self.vector_scale <= 0:
            raise ValueError("ErrorVectorParams.vector_scale must be > 0")


@dataclass(frozen=True)
class ErrorVector:
    start: Point2D
    end: Point2D
    length: float         # unscaled residual length
    outlier: bool


@dataclass(frozen=True)
class ErrorCircle:
    center: Point2D
    radius: float
    length: float
    outlier: bool


@dataclass(frozen=True)
class ErrorVectorResult:
    vectors: List[ErrorVector]
    circles: List[ErrorCircle]     # largest first

    @property
    def n_outliers(self) -> int:
        return sum(1 for v in self.vectors if v.outlier)


class ErrorVectors:
    name = "Error Vector"

    def __init__(self, params: ErrorVectorParams = ErrorVectorParams()) -> None:
        self.params = params

    def analyze(self, vis: VisualizationParams) -> ErrorVectorResult:
        sigma0 = vis.transformation.sigma0
        dst = vis.dst_points
        d = dst - vis.transformed_src_points
        lengths = np.hypot(d[:, 0], d[:, 1])
        outlier = lengths > OUTLIER_FACTOR * sigma0
        scale = self.params.vector_scale

        vectors = [
            ErrorVector(
                start=dst[i].copy(),
                end=dst[i] - scale * d[i],
                length=float(lengths[i]),
                outlier=bool(outlier[i]),
            )
            for i in range(dst.shape[0])
        ]
        circles = self._circles(dst, lengths, outlier)
        logger.debug("Error vectors: %d, outliers: %d", len(vectors), int(outlier.sum()))
        return ErrorVectorResult(vectors, circles)

    def _circles(self, dst, lengths, outlier) -> List[ErrorCircle]:
        """
        Circle area proportional to the residual length, A = pi * r^2 ~ d.
        Radii are scaled so the median residual gets a radius of its length
        times the square root of the vector scale.
        """
        if lengths.size == 0:
            return []
        order = np.argsort(lengths, kind="stable")
        median = float(lengths[order[lengths.size // 2]])
        if median < _MIN_LENGTH:
            return []
        median_r = math.sqrt(median / math.pi / self.params.vector_scale)
        r_scale = median / median_r

        circles = []
        for i in order[::-1]:
            length = float(lengths[i])
            if length < _MIN_LENGTH:
                continue
            r = math.sqrt(length / math.pi) * r_scale
            if r < _MIN_LENGTH:
                continue
            circles.append(ErrorCircle(dst[i].copy(), r, length, bool(outlier[i])))
        return circles
