"""
Slope and aspect from decoded elevation tiles.

Gradients use forward differences against the east and south neighbours.
At the right and bottom tile edges the neighbour is the centre pixel itself,
so the gradient on that axis is zero. No cross-tile lookups are made.
"""

import math
from typing import Any

import numpy as np
from numpy.typing import NDArray

from ..constants import (
    ASPECT_DIRECTIONS,
    ASPECT_SECTOR_DEG,
    EARTH_CIRCUMFERENCE_M,
    TILE_SIZE,
)
from .tile_cache import tile_center_latitude

FloatArray = NDArray[np.floating[Any]]

_HALF_SECTOR = ASPECT_SECTOR_DEG / 2.0


def meters_per_pixel(z: int, tile_y: int) -> float:
    """Ground resolution at the centre latitude of tile row ``tile_y``."""
    lat_rad = math.radians(tile_center_latitude(z, tile_y))
    return (EARTH_CIRCUMFERENCE_M * math.cos(lat_rad)) / (2**z) / float(TILE_SIZE)


def slope_aspect_at(
    elevation: FloatArray,
    row: int,
    col: int,
    mpp: float,
) -> tuple[float, float]:
    """
    Slope and aspect for one pixel.

    Args:
        elevation: 2D height field (row 0 = top)
        row, col: Pixel indices
        mpp: Metres per pixel

    Returns:
        (slope_degrees, aspect_degrees) with aspect in [0, 360)
    """
    last_row = elevation.shape[0] - 1
    last_col = elevation.shape[1] - 1

    e0 = float(elevation[row, col])
    e_dx = float(elevation[row, col + 1]) if col < last_col else e0
    e_dy = float(elevation[row + 1, col]) if row < last_row else e0

    dzdx = (e_dx - e0) / mpp
    dzdy = (e_dy - e0) / mpp

    slope = math.degrees(math.atan(math.sqrt(dzdx * dzdx + dzdy * dzdy)))

    aspect = 90.0 - math.degrees(math.atan2(dzdy, dzdx))
    if aspect < 0.0:
        aspect += 360.0
    if aspect >= 360.0:
        aspect -= 360.0

    return slope, aspect


def compute_slope_aspect(
    elevation: FloatArray,
    mpp: float,
) -> tuple[FloatArray, FloatArray]:
    """Whole-tile slope and aspect (degrees) with the same edge clamping as slope_aspect_at()."""
    padded = np.pad(np.asarray(elevation, dtype=np.float64), ((0, 1), (0, 1)), mode="edge")
    center = padded[:-1, :-1]

    dzdx = (padded[:-1, 1:] - center) / mpp
    dzdy = (padded[1:, :-1] - center) / mpp

    slope = np.degrees(np.arctan(np.sqrt(dzdx * dzdx + dzdy * dzdy)))

    aspect = 90.0 - np.degrees(np.arctan2(dzdy, dzdx))
    aspect = np.where(aspect < 0.0, aspect + 360.0, aspect)
    aspect = np.where(aspect >= 360.0, aspect - 360.0, aspect)

    return slope, aspect


# ---------------------------------------------------------------------------
# Aspect sectors
# ---------------------------------------------------------------------------


def aspect_bucket_index(bearing: float) -> int:
    """Index into ASPECT_DIRECTIONS for a bearing; lower sector bound inclusive."""
    return int(((bearing + _HALF_SECTOR) % 360.0) // ASPECT_SECTOR_DEG) % len(ASPECT_DIRECTIONS)


def classify_aspect(bearing: float) -> str:
    """
    Compass sector for a bearing in degrees.

    N covers [337.5, 360) and [0, 22.5); every other sector is 45 degrees
    wide and includes its lower bound (22.5 -> NE, 337.5 -> N).
    """
    return ASPECT_DIRECTIONS[aspect_bucket_index(bearing)]


def aspect_bucket_indices(aspect: FloatArray) -> NDArray[np.intp]:
    """Vectorised aspect_bucket_index()."""
    shifted = np.mod(np.asarray(aspect, dtype=np.float64) + _HALF_SECTOR, 360.0)
    return (np.floor_divide(shifted, ASPECT_SECTOR_DEG).astype(np.intp)) % len(ASPECT_DIRECTIONS)
