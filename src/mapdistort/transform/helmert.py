"""
Helmert transformation (4 parameters, similarity transform).

Maps a source point (x, y) to the destination system:

    X = x0 + a1*x - a2*y
    Y = y0 + a2*x + a1*y

with a1 = m*cos(alpha), a2 = m*sin(alpha). m is the scale factor, alpha the
counter-clockwise rotation, (x0, y0) the translation.

Least squares solution with coordinates reduced to their centroids:

    a1 = sum(X*x + Y*y) / sum(x^2 + y^2)
    a2 = sum(Y*x - X*y) / sum(x^2 + y^2)

Accuracy (n points, 2n - 4 degrees of freedom):

    sigma0       = sqrt(sum(v^2) / (2n - 4))
    sigma_m      = sigma0 * sqrt(1 / sum(x^2 + y^2))
    sigma_alpha  = sigma_m / m
    sigma_x0,y0  = sigma0 * sqrt(1 / n)
"""
from __future__ import annotations

import logging
import math
from typing import Optional

import numpy as np

from ..errors import InsufficientDataError, SingularMatrixError
from ..types import FloatArray, Points2D, as_point_pair
from . import report as rp
from .types import SCALE_TO_INVERT, TransformationResult, apply_points, normalize_angle

logger = logging.getLogger(__name__)

MIN_POINTS = 3


class HelmertTransformation:
    name = "Helmert (4 Parameters)"

    def __init__(self) -> None:
        self._result: Optional[TransformationResult] = None
        self.a1 = 0.0
        self.a2 = 0.0
        self.x0 = 0.0
        self.y0 = 0.0

    # ---------- Fitting ----------
    def init(self, dst: Points2D, src: Points2D) -> TransformationResult:
        src, dst = as_point_pair(src, dst)
        n = src.shape[0]
        if n < MIN_POINTS:
            raise InsufficientDataError(
                f"Helmert transformation needs at least {MIN_POINTS} points, got {n}"
            )

        c_src = src.mean(axis=0)
        c_dst = dst.mean(axis=0)
        s = src - c_src
        d = dst - c_dst

        denom = float(np.sum(s[:, 0] ** 2 + s[:, 1] ** 2))
        if denom <= 0.0 or not math.isfinite(denom):
            raise SingularMatrixError("Helmert transformation: all source points coincide")

        a1 = float(np.sum(d[:, 0] * s[:, 0] + d[:, 1] * s[:, 1])) / denom
        a2 = float(np.sum(d[:, 1] * s[:, 0] - d[:, 0] * s[:, 1])) / denom

        self.a1, self.a2 = a1, a2
        self.x0 = float(c_dst[0] - a1 * c_src[0] + a2 * c_src[1])
        self.y0 = float(c_dst[1] - a2 * c_src[0] - a1 * c_src[1])

        v = self._forward(src) - dst
        vtv = float(np.sum(v * v))
        dof = 2 * n - 4
        sigma0 = math.sqrt(vtv / dof)

        scale = math.hypot(a1, a2)
        scale_sigma = sigma0 * math.sqrt(1.0 / denom)
        trans_sigma = math.sqrt(1.0 / n) * sigma0

        self._result = TransformationResult(
            name=self.name,
            parameters={
                "x0": self.x0,
                "y0": self.y0,
                "scale": scale,
                "rotation": normalize_angle(math.atan2(a2, a1)),
            },
            sigmas={
                "x0": trans_sigma,
                "y0": trans_sigma,
                "scale": scale_sigma,
                "rotation": scale_sigma / scale if scale > 0 else math.nan,
            },
            residuals=v,
            sigma0=sigma0,
            dof=dof,
            rms=math.sqrt(vtv / n),
            n_points=n,
        )
        logger.debug("Helmert fit: n=%d scale=%.6g sigma0=%.6g", n, scale, sigma0)
        return self._result

    # ---------- State ----------
    @property
    def result(self) -> TransformationResult:
        if self._result is None:
            raise RuntimeError("Helmert transformation is not initialized")
        return self._result

    def _check_initialized(self) -> None:
        if self._result is None:
            raise RuntimeError("Helmert transformation is not initialized")

    @property
    def is_initialized(self) -> bool:
        return self._result is not None

    @property
    def n_points(self) -> int:
        return 0 if self._result is None else self._result.n_points

    @property
    def sigma0(self) -> float:
        return self.result.sigma0

    @property
    def residuals(self) -> FloatArray:
        return self.result.residuals

    @property
    def standard_error_of_position(self) -> float:
        return self.result.standard_error_of_position

    # ---------- Mapping ----------
    def _forward(self, pts: Points2D) -> FloatArray:
        x = pts[:, 0]
        y = pts[:, 1]
        out = np.empty_like(pts)
        out[:, 0] = self.x0 + self.a1 * x - self.a2 * y
        out[:, 1] = self.y0 + self.a2 * x + self.a1 * y
        return out

    def _backward(self, pts: Points2D) -> FloatArray:
        det = self.a1 * self.a1 + self.a2 * self.a2
        dx = pts[:, 0] - self.x0
        dy = pts[:, 1] - self.y0
        out = np.empty_like(pts)
        out[:, 0] = (self.a1 * dx + self.a2 * dy) / det
        out[:, 1] = (-self.a2 * dx + self.a1 * dy) / det
        return out

    def transform(self, points) -> FloatArray:
        self._check_initialized()
        return apply_points(points, self._forward)

    def transform_in_place(self, points: Points2D) -> Points2D:
        points[:] = self.transform(points)
        return points

    def inverse_transform(self, points) -> FloatArray:
        self._check_initialized()
        return apply_points(points, self._backward)

    # ---------- Parameters ----------
    def get_scale(self, invert: bool = False) -> float:
        scale = self.result.parameters["scale"]
        return 1.0 / scale if invert else scale

    def get_scale_sigma(self, invert: bool = False) -> float:
        sigma = self.result.sigmas["scale"]
        if invert:
            scale = self.get_scale()
            return sigma / (scale * scale)
        return sigma

    def get_rotation(self, invert: bool = False) -> float:
        rot = self.result.parameters["rotation"]
        return normalize_angle(-rot) if invert else rot

    # ---------- Reports ----------
    def short_description(self) -> str:
        return (
            f"{self.name}\n"
            "4 Parameters:\n"
            "X = x0 + a1*x - a2*y\n"
            "Y = y0 + a2*x + a1*y\n"
            "a1 = m*cos(alpha)\n"
            "a2 = m*sin(alpha)\n\n"
            "x0:    Horizontal Translation\n"
            "y0:    Vertical Translation\n"
            "m:     Scale Factor\n"
            "alpha: Rotation in Counter-Clockwise Direction.\n"
        )

    def report(self, invert: bool = False) -> str:
        res = self.result
        scale = self.get_scale(invert)
        scale_sigma = self.get_scale_sigma(invert)
        invert_scale = scale < SCALE_TO_INVERT

        lines = [
            f"Transformation parameters and standard deviations computed with {res.n_points} points:",
            "",
            rp.parameter_line("x0 Translation Horizontal [m]:", res.parameters["x0"], res.sigmas["x0"]),
            rp.parameter_line("y0 Translation Vertical [m]:", res.parameters["y0"], res.sigmas["y0"]),
        ]
        if invert_scale:
            lines.append(rp.parameter_line("m Scale Factor (inverted):", 1.0 / scale, scale_sigma / (scale * scale)))
        else:
            lines.append(rp.parameter_line("m Scale Factor:", scale, scale_sigma))
        lines.append(
            rp.parameter_line(
                "alpha Rotation: [deg ccw]",
                math.degrees(res.parameters["rotation"]),
                math.degrees(res.sigmas["rotation"]),
            )
        )

        return (
            self.short_description()
            + rp.BREAK_LINE
            + "\n".join(lines)
            + rp.BREAK_LINE
            + "Standard deviation and root mean square position error for all points:\n\n"
            + rp.point_accuracy_report(res.sigma0, scale)
        )

    def short_report(self, invert: bool = False) -> str:
        scale = self.get_scale(invert)
        factor = scale if invert else 1.0
        return "\n".join([
            rp.format_scale("Scale", scale),
            rp.format_rotation("Rotation", self.get_rotation(invert)),
            rp.format_sigma0(self.sigma0 * factor),
            rp.format_standard_error_of_position(self.standard_error_of_position * factor),
        ]) + "\n"

    def residuals_report(self, threshold: float = 0.0) -> str:
        return rp.residuals_table(self.residuals, threshold)
