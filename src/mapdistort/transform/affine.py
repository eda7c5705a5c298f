"""
Affine transformation with 6 parameters.

    X = a1 + a2*x + a3*y
    Y = b1 + b2*x + b3*y

Geometric interpretation:

    a1 = x0, b1 = y0                    translation
    a2 = mx*cos(alpha), b2 = mx*sin(alpha)
    a3 = -my*sin(beta), b3 = my*cos(beta)

mx, my are the scale factors of the two axes, alpha and beta their
counter-clockwise rotations.

Least squares with design matrix A = [1, x, y] (n x 3):

    Q = (A^T A)^-1
    a = Q A^T X,    b = Q A^T Y

Both coordinate equations share Q, so the standard deviation of parameter i is
sqrt(sigma0^2 * Q_ii), with sigma0 = sqrt(sum(v^2) / (2n - 6)).
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

MIN_POINTS = 4

# Relative singular value below which the reduced design matrix counts as rank deficient
_RANK_TOL = 1e-10


# ---------- Degeneracy Check ----------
def _is_rank_deficient(src: Points2D) -> bool:
    """
    Check whether the source points are (nearly) collinear.

    Runs on centroid-reduced, scale-normalised coordinates so that large map
    coordinates (e.g. 600000 m) do not masquerade as ill-conditioning.
    """
    c = src - src.mean(axis=0)
    extent = float(np.max(np.abs(c))) if c.size else 0.0
    if extent == 0.0:
        return True
    sv = np.linalg.svd(c / extent, compute_uv=False)
    return bool(sv[-1] <= _RANK_TOL * sv[0])


class Affine6Transformation:
    name = "Affine (6 Parameters)"

    def __init__(self) -> None:
        self._result: Optional[TransformationResult] = None
        self.a = np.zeros(3, dtype=np.float64)   # a1, a2, a3
        self.b = np.zeros(3, dtype=np.float64)   # b1, b2, b3

    # ---------- Fitting ----------
    def init(self, dst: Points2D, src: Points2D) -> TransformationResult:
        src, dst = as_point_pair(src, dst)
        n = src.shape[0]
        if n < MIN_POINTS:
            raise InsufficientDataError(
                f"Affine transformation needs at least {MIN_POINTS} points, got {n}"
            )
        if _is_rank_deficient(src):
            raise SingularMatrixError("Affine transformation: source points are collinear")

        A = np.column_stack([np.ones(n, dtype=np.float64), src[:, 0], src[:, 1]])
        try:
            Q = np.linalg.inv(A.T @ A)
        except np.linalg.LinAlgError as exc:
            raise SingularMatrixError(f"Affine transformation: normal equations are singular ({exc})") from exc

        self.a = Q @ (A.T @ dst[:, 0])
        self.b = Q @ (A.T @ dst[:, 1])

        v = self._forward(src) - dst
        vtv = float(np.sum(v * v))
        dof = 2 * n - 6
        sigma0 = math.sqrt(vtv / dof)

        s = np.sqrt(sigma0 * sigma0 * np.diag(Q))
        a1, a2, a3 = map(float, self.a)
        b1, b2, b3 = map(float, self.b)
        scale_x = math.hypot(a2, b2)
        scale_y = math.hypot(a3, b3)

        self._result = TransformationResult(
            name=self.name,
            parameters={
                "a1": a1, "a2": a2, "a3": a3,
                "b1": b1, "b2": b2, "b3": b3,
                "scale_x": scale_x,
                "scale_y": scale_y,
                "rotation_x": normalize_angle(math.atan2(b2, a2)),
                "rotation_y": normalize_angle(math.atan2(-a3, b3)),
            },
            sigmas={
                "translation": float(s[0]),
                "scale_x": float(s[1]),
                "scale_y": float(s[2]),
                "rotation_x": float(s[1]) / scale_x if scale_x > 0 else math.nan,
                "rotation_y": float(s[2]) / scale_y if scale_y > 0 else math.nan,
            },
            residuals=v,
            sigma0=sigma0,
            dof=dof,
            rms=math.sqrt(vtv / n),
            n_points=n,
        )
        logger.debug(
            "Affine6 fit: n=%d mx=%.6g my=%.6g sigma0=%.6g", n, scale_x, scale_y, sigma0
        )
        return self._result

    # ---------- State ----------
    def _check_initialized(self) -> None:
        if self._result is None:
            raise RuntimeError("Affine transformation is not initialized")

    @property
    def result(self) -> TransformationResult:
        self._check_initialized()
        return self._result

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
        out[:, 0] = self.a[0] + self.a[1] * x + self.a[2] * y
        out[:, 1] = self.b[0] + self.b[1] * x + self.b[2] * y
        return out

    def _backward(self, pts: Points2D) -> FloatArray:
        M = np.array([[self.a[1], self.a[2]], [self.b[1], self.b[2]]], dtype=np.float64)
        rhs = (pts - np.array([self.a[0], self.b[0]])).T
        return np.linalg.solve(M, rhs).T

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
    def get_scale_x(self, invert: bool = False) -> float:
        scale = self.result.parameters["scale_x"]
        return 1.0 / scale if invert else scale

    def get_scale_y(self, invert: bool = False) -> float:
        scale = self.result.parameters["scale_y"]
        return 1.0 / scale if invert else scale

    def get_scale_x_sigma(self, invert: bool = False) -> float:
        sigma = self.result.sigmas["scale_x"]
        if invert:
            scale = self.get_scale_x()
            return sigma / (scale * scale)
        return sigma

    def get_scale_y_sigma(self, invert: bool = False) -> float:
        sigma = self.result.sigmas["scale_y"]
        if invert:
            scale = self.get_scale_y()
            return sigma / (scale * scale)
        return sigma

    def get_rotation_x(self, invert: bool = False) -> float:
        rot = self.result.parameters["rotation_x"]
        return normalize_angle(-rot) if invert else rot

    def get_rotation_y(self, invert: bool = False) -> float:
        rot = self.result.parameters["rotation_y"]
        return normalize_angle(-rot) if invert else rot

    def get_scale(self, invert: bool = False) -> float:
        """Mean of the two axis scales."""
        scale = 0.5 * (self.get_scale_x() + self.get_scale_y())
        return 1.0 / scale if invert else scale

    def get_rotation(self, invert: bool = False) -> float:
        """Mean of the two axis rotations (circular, so 359 and 1 degree average to 0)."""
        rx = self.get_rotation_x()
        ry = self.get_rotation_y()
        rot = normalize_angle(math.atan2(math.sin(rx) + math.sin(ry), math.cos(rx) + math.cos(ry)))
        return normalize_angle(-rot) if invert else rot

    # ---------- Reports ----------
    def short_description(self) -> str:
        return (
            f"{self.name}\n"
            "6 Parameters:\n"
            "X = x0 + mx*cos(alpha)*x - my*sin(beta)*y\n"
            "Y = y0 + mx*sin(alpha)*x + my*cos(beta)*y\n"
            "a1 = x0\n"
            "a2 = mx*cos(alpha)\n"
            "a3 = my*sin(beta)\n"
            "b1 = y0\n"
            "b2 = mx*sin(alpha)\n"
            "b3 = my*cos(beta)\n\n"
            "x0:    Horizontal Translation\n"
            "y0:    Vertical Translation\n"
            "mx:    Horizontal Scale Factor\n"
            "my:    Vertical Scale Factor\n"
            "alpha: Rotation in Counter-Clockwise Direction for Horizontal Axis.\n"
            "beta:  Rotation in Counter-Clockwise Direction for Vertical Axis.\n"
        )

    def report(self, invert: bool = False) -> str:
        res = self.result
        p, s = res.parameters, res.sigmas

        lines = [
            f"Transformation parameters and standard deviations computed with {res.n_points} points:",
            "",
            rp.parameter_line("x0 Translation Horizontal:", p["a1"], s["translation"]),
            rp.parameter_line("y0 Translation Vertical:", p["b1"], s["translation"]),
            rp.parameter_line(
                "alpha Horizontal Rotation [deg ccw]:",
                math.degrees(self.get_rotation_x(invert)),
                math.degrees(s["rotation_x"]),
            ),
            rp.parameter_line(
                "beta Vertical Rotation [deg ccw]:",
                math.degrees(self.get_rotation_y(invert)),
                math.degrees(s["rotation_y"]),
            ),
        ]

        scale_x = self.get_scale_x(invert)
        scale_y = self.get_scale_y(invert)
        sx_sigma = self.get_scale_x_sigma(invert)
        sy_sigma = self.get_scale_y_sigma(invert)
        if scale_x < SCALE_TO_INVERT and scale_y < SCALE_TO_INVERT:
            lines.append(rp.parameter_line("mx Horizontal Scale Factor (inverted):", 1.0 / scale_x, sx_sigma / (scale_x * scale_x)))
            lines.append(rp.parameter_line("my Vertical Scale Factor (inverted):", 1.0 / scale_y, sy_sigma / (scale_y * scale_y)))
        else:
            lines.append(rp.parameter_line("mx Horizontal Scale Factor:", scale_x, sx_sigma))
            lines.append(rp.parameter_line("my Vertical Scale Factor:", scale_y, sy_sigma))

        lines.append("")
        lines.append(f"Root mean square error:{res.rms:>50.10f}")

        return (
            self.short_description()
            + rp.BREAK_LINE
            + "\n".join(lines)
            + rp.BREAK_LINE
            + "Standard deviation and root mean square position error for all points:\n\n"
            + rp.point_accuracy_report(res.sigma0, self.get_scale(invert))
        )

    def short_report(self, invert: bool = False) -> str:
        factor = self.get_scale(invert) if invert else 1.0
        return "\n".join([
            rp.format_scale("Scale Hor.", self.get_scale_x(invert)),
            rp.format_scale("Scale Vert.", self.get_scale_y(invert)),
            rp.format_rotation("Rotation X", self.get_rotation_x(invert)),
            rp.format_rotation("Rotation Y", self.get_rotation_y(invert)),
            rp.format_sigma0(self.sigma0 * factor),
            rp.format_standard_error_of_position(self.standard_error_of_position * factor),
        ]) + "\n"

    def residuals_report(self, threshold: float = 0.0) -> str:
        return rp.residuals_table(self.residuals, threshold)
