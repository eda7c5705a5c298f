"""
Contour package

This module provides:
- Contourer: marching squares isolines with contour following
- Contour: polylines of one level
"""

from .contourer import Contour, Contourer

__all__ = ["Contour", "Contourer"]
