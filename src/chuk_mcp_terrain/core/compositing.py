"""
Raster compositing: slope, aspect and shadow rasters to RGBA.

Plain threshold/lookup mappings with no interpolation. Pixels without data
(NaN) fall through every threshold and stay transparent.
"""

import io
from typing import Any

import numpy as np
from numpy.typing import NDArray
from PIL import Image

from ..constants import (
    ASPECT_COLORS,
    ASPECT_DIRECTIONS,
    ASPECT_MIN_SLOPE_DEG,
    SHADOW_COLOR,
    SLOPE_CLASSES,
    TRANSPARENT,
)
from .slope import aspect_bucket_indices

RGBAArray = NDArray[np.uint8]
FloatArray = NDArray[np.floating[Any]]

_ASPECT_PALETTE = np.array([ASPECT_COLORS[d] for d in ASPECT_DIRECTIONS], dtype=np.uint8)


def _blank(shape: tuple[int, ...]) -> RGBAArray:
    return np.zeros((*shape, 4), dtype=np.uint8)


def slope_color(slope: float) -> tuple[int, int, int, int]:
    """RGBA for a single slope value."""
    for threshold, color in SLOPE_CLASSES:
        if slope >= threshold:
            return color
    return TRANSPARENT


def slope_to_rgba(slope: FloatArray) -> RGBAArray:
    """Avalanche slope classes (27/30/35/40/45 degrees); transparent below 27."""
    slope = np.asarray(slope)
    rgba = _blank(slope.shape)
    assigned = np.zeros(slope.shape, dtype=bool)

    with np.errstate(invalid="ignore"):
        for threshold, color in SLOPE_CLASSES:
            sel = (slope >= threshold) & ~assigned
            rgba[sel] = color
            assigned |= sel

    return rgba


def slope_aspect_to_rgba(slope: FloatArray, aspect: FloatArray) -> RGBAArray:
    """Slopes at or above 20 degrees coloured by aspect sector; transparent elsewhere."""
    slope = np.asarray(slope)
    rgba = _blank(slope.shape)

    with np.errstate(invalid="ignore"):
        steep = slope >= ASPECT_MIN_SLOPE_DEG
    if np.any(steep):
        buckets = aspect_bucket_indices(np.asarray(aspect)[steep])
        rgba[steep] = _ASPECT_PALETTE[buckets]

    return rgba


def shadow_to_rgba(mask: NDArray[np.bool_]) -> RGBAArray:
    """Shadowed pixels get SHADOW_COLOR; lit pixels are transparent."""
    mask = np.asarray(mask, dtype=bool)
    rgba = _blank(mask.shape)
    rgba[mask] = SHADOW_COLOR
    return rgba


def rgba_to_png(rgba: RGBAArray) -> bytes:
    """Encode an (H, W, 4) uint8 array as PNG bytes."""
    img = Image.fromarray(np.ascontiguousarray(rgba, dtype=np.uint8))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
