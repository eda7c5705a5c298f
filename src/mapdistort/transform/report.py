"""
Plain text formatting for transformation reports.

Numbers are right aligned in fixed width columns so a report reads as a table:

    x0 Translation Horizontal [m]:          1250.0000000000 +/-     0.41231
"""
from __future__ import annotations

import math

import numpy as np

from ..types import FloatArray

BREAK_LINE = "\n\n" + "-" * 94 + "\n\n"


def format_precise(value: float) -> str:
    return f"{value:25.10f}"


def format_precise_short(value: float) -> str:
    return f"{value:12.5f}"


def format_scale(label: str, scale: float) -> str:
    """
    Format a scale factor as a map scale.
    Factors >= 1 read as 1:m (metres in reality per map unit), smaller ones as the plain factor.
    """
    if not math.isfinite(scale) or scale <= 0.0:
        return f"{label}:\t-"
    if scale >= 1.0:
        return f"{label}:\t1:{scale:,.0f}"
    return f"{label}:\t{scale:.6g}"


def format_rotation(label: str | None, rad: float) -> str:
    """
    Format a rotation as whole degrees in [0, 180] with a direction suffix.
    Angles in (180, 360) are written as their complement with [ccw].
    """
    deg = math.degrees(rad)
    if deg < 0.0:
        deg += 360.0
    suffix = "[cw]"
    if deg > 180.0:
        deg = 360.0 - deg
        suffix = "[ccw]"
    text = f"{deg:.0f}° {suffix}"
    if label is not None:
        return f"{label}:\t{text}"
    return text


def format_sigma0(sigma0: float) -> str:
    value = f"{sigma0:,.5f}".rstrip("0").rstrip(".") if sigma0 < 10 else f"{sigma0:,.0f}"
    return f"Std. Deviation:\t±{value}m"


def format_standard_error_of_position(sep: float) -> str:
    value = f"{sep:,.5f}".rstrip("0").rstrip(".") if sep < 1 else f"{sep:,.0f}"
    return f"Mean Pos. Err.:\t±{value}m"


def point_accuracy_report(sigma0: float, scale: float) -> str:
    """Standard deviation and mean position error in both maps."""
    sep = sigma0 * math.sqrt(2.0)
    lines = [
        "Standard Deviation in Destination Map [m]:              " + format_precise(sigma0 * scale),
        "Standard Deviation in Source Map [m]:                   " + format_precise(sigma0),
        "Root Mean Square Position Error in Destination Map [m]: " + format_precise(sep * scale),
        "Root Mean Square Position Error in Source Map [m]:      " + format_precise(sep),
    ]
    return "\n".join(lines) + "\n"


def parameter_line(label: str, value: float, sigma: float) -> str:
    return f"{label:<51}{format_precise(value)} +/-{format_precise_short(sigma)}"


def residuals_table(residuals: FloatArray, threshold: float = 0.0) -> str:
    """
    One row per point: index (1-based), dx, dy and d = hypot(dx, dy).
    Rows with d > threshold get a trailing '*' (threshold <= 0 disables marking).
    """
    rows = []
    d = np.hypot(residuals[:, 0], residuals[:, 1])
    for i, (dx, dy) in enumerate(residuals):
        row = f"{i + 1}\t{format_precise_short(dx)}\t{format_precise_short(dy)}\t{format_precise_short(d[i])}"
        if threshold > 0 and d[i] > threshold:
            row += "\t*"
        rows.append(row)
    return "\n".join(rows) + ("\n" if rows else "")
