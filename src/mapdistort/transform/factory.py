"""
Runtime selection of a global transformation and side-by-side comparison.
"""
from __future__ import annotations

import logging
from typing import Dict, Type, Union

from ..errors import MapAnalysisError
from ..types import Points2D
from .affine import Affine6Transformation
from .helmert import HelmertTransformation
from .report import BREAK_LINE
from .types import TransformationKind

logger = logging.getLogger(__name__)

AnyTransformation = Union[HelmertTransformation, Affine6Transformation]

TRANSFORMATIONS: Dict[str, Type] = {
    "helmert": HelmertTransformation,
    "affine6": Affine6Transformation,
}


def create_transformation(kind: TransformationKind = "helmert") -> AnyTransformation:
    try:
        cls = TRANSFORMATIONS[kind]
    except KeyError:
        raise ValueError(
            f"Unknown transformation {kind!r}, expected one of {sorted(TRANSFORMATIONS)}"
        ) from None
    return cls()


def compare_transformations(dst: Points2D, src: Points2D, invert: bool = False) -> str:
    """
    Fit every available transformation to the same points and return their short
    reports one after another. Variants that cannot be fitted report the error instead.
    """
    parts = []
    for kind in TRANSFORMATIONS:
        trans = create_transformation(kind)
        try:
            trans.init(dst, src)
        except MapAnalysisError as exc:
            logger.info("Comparison: %s skipped (%s)", trans.name, exc)
            parts.append(f"{trans.name}\n{exc}\n")
            continue
        parts.append(f"{trans.name}\n{trans.short_report(invert)}")
    return BREAK_LINE.join(parts)
