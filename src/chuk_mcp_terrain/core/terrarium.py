"""
Terrarium elevation tile decoding.

Terrarium tiles are 256x256 PNGs whose RGB channels encode elevation as

    elevation = (R * 256 + G + B / 256) - 32768

The formula is fixed and applied to every pixel without range checks.
"""

import io
import logging
from dataclasses import dataclass, field
from typing import Any

import numpy as np
from numpy.typing import NDArray
from PIL import Image, UnidentifiedImageError

from ..constants import TERRARIUM_OFFSET_M, TILE_SIZE, ErrorMessages
from .errors import TileDecodeError

logger = logging.getLogger(__name__)

FloatArray = NDArray[np.floating[Any]]


@dataclass(frozen=True, eq=False)
class ElevationTile:
    """A decoded elevation tile addressed by slippy-map coordinates.

    ``elevation`` is row-major with row 0 at the top (north) edge and is
    read-only once the tile is constructed.
    """

    z: int
    x: int
    y: int
    elevation: FloatArray = field(repr=False)

    def __post_init__(self) -> None:
        self.elevation.setflags(write=False)

    @property
    def key(self) -> str:
        return tile_key(self.z, self.x, self.y)

    @property
    def nbytes(self) -> int:
        return int(self.elevation.nbytes)


def tile_key(z: int, x: int, y: int) -> str:
    """Cache key for a tile, ``z/x/y``."""
    return f"{z}/{x}/{y}"


def decode_pixel(r: int, g: int, b: int) -> float:
    """Decode a single Terrarium RGB triple to metres."""
    return (r * 256.0 + g + b / 256.0) - TERRARIUM_OFFSET_M


def decode_terrarium(rgb: NDArray[Any]) -> FloatArray:
    """Decode an (H, W, 3+) uint8 Terrarium array to float64 elevations in metres."""
    channels = np.asarray(rgb)[..., :3].astype(np.float64)
    r = channels[..., 0]
    g = channels[..., 1]
    b = channels[..., 2]
    return (r * 256.0 + g + b / 256.0) - TERRARIUM_OFFSET_M


def decode_terrarium_png(data: bytes, z: int, x: int, y: int) -> ElevationTile:
    """
    Decode a Terrarium PNG into an ElevationTile.

    Args:
        data: Raw PNG bytes as served by the tile source
        z, x, y: Tile address

    Returns:
        ElevationTile with a 256x256 float64 height field

    Raises:
        TileDecodeError: If the bytes are not a readable 256x256 image
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            rgb = np.asarray(img.convert("RGB"), dtype=np.uint8)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise TileDecodeError(ErrorMessages.TILE_DECODE_FAILED.format(z, x, y, e)) from e

    height, width = rgb.shape[:2]
    if (height, width) != (TILE_SIZE, TILE_SIZE):
        raise TileDecodeError(
            ErrorMessages.TILE_DECODE_FAILED.format(
                z, x, y, ErrorMessages.TILE_WRONG_SIZE.format(TILE_SIZE, TILE_SIZE, width, height)
            )
        )

    return ElevationTile(z=z, x=x, y=y, elevation=decode_terrarium(rgb))
