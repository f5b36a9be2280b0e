"""
Terrain shadow by ray-marching toward the sun over cached elevation tiles.

Each query walks up to RAY_MAX_STEPS - 1 steps of RAY_STEP_DEG (~50 m)
toward the sun and reports shadow as soon as the terrain rises above the
line from the query point to the sun. Positions are stepped with a
flat-earth approximation, adequate over the ~5 km search radius.

All lookups are synchronous against the tile cache; generate_shadow_layer()
preloads the area first so the pixel loop never waits on the network.
"""

import asyncio
import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..constants import (
    DEFAULT_SHADOW_RESOLUTION,
    METERS_PER_DEGREE,
    RAY_MAX_STEPS,
    RAY_STEP_DEG,
    SHADOW_PRELOAD_MARGIN_DEG,
    ErrorMessages,
)
from .compositing import RGBAArray, shadow_to_rgba
from .errors import LayerGenerationError
from .solar import SunPosition, sun_position
from .tile_cache import Bounds, ElevationTileCache, clamp_zoom

logger = logging.getLogger(__name__)

SunProvider = Callable[[datetime, float, float], SunPosition]


@dataclass
class ShadowLayer:
    """Result of a shadow layer generation pass."""

    rgba: RGBAArray = field(repr=False)
    mask: NDArray[np.bool_] = field(repr=False)
    sun: SunPosition | None
    bounds: Bounds
    zoom: int
    resolution: int

    @property
    def shadow_fraction(self) -> float:
        if self.mask.size == 0:
            return 0.0
        return float(np.count_nonzero(self.mask)) / float(self.mask.size)


class ShadowCaster:
    """Shadow queries and shadow layers backed by an ElevationTileCache."""

    def __init__(
        self,
        cache: ElevationTileCache,
        sun_provider: SunProvider = sun_position,
    ) -> None:
        self.cache = cache
        self.sun_provider = sun_provider

    def is_in_shadow(self, lat: float, lon: float, sun: SunPosition, zoom: int) -> bool:
        """
        True if terrain between (lat, lon) and the sun blocks direct light.

        The sun below the horizon means shadow without any lookups. A point
        with no elevation data is reported as lit.
        """
        if sun.altitude <= 0:
            return True

        origin = self.cache.get_elevation_sync(lat, lon, zoom)
        if origin is None:
            return False

        tan_alt = math.tan(sun.altitude)
        dlat = math.cos(sun.azimuth)
        dlon = math.sin(sun.azimuth) / math.cos(math.radians(lat))

        for step in range(1, RAY_MAX_STEPS):
            distance = step * RAY_STEP_DEG
            sample = self.cache.get_elevation_sync(
                lat + distance * dlat, lon + distance * dlon, zoom
            )
            if sample is None:
                continue

            required_height = origin + distance * METERS_PER_DEGREE * tan_alt
            if sample > required_height:
                return True

        return False

    def shadow_mask(
        self,
        lats: ArrayLike,
        lons: ArrayLike,
        sun: SunPosition,
        zoom: int,
    ) -> NDArray[np.bool_]:
        """is_in_shadow() evaluated over arrays of points, stepping all rays together."""
        lat_arr, lon_arr = np.broadcast_arrays(
            np.asarray(lats, dtype=np.float64), np.asarray(lons, dtype=np.float64)
        )
        if sun.altitude <= 0:
            return np.ones(lat_arr.shape, dtype=bool)

        origin = self.cache.sample_elevations(lat_arr, lon_arr, zoom)
        shadow = np.zeros(lat_arr.shape, dtype=bool)
        marching = ~np.isnan(origin)

        tan_alt = math.tan(sun.altitude)
        dlat = math.cos(sun.azimuth)
        dlon = math.sin(sun.azimuth) / np.cos(np.radians(lat_arr))

        for step in range(1, RAY_MAX_STEPS):
            if not marching.any():
                break
            distance = step * RAY_STEP_DEG
            sample = self.cache.sample_elevations(
                lat_arr[marching] + distance * dlat,
                lon_arr[marching] + distance * dlon[marching],
                zoom,
            )
            required_height = origin[marching] + distance * METERS_PER_DEGREE * tan_alt
            with np.errstate(invalid="ignore"):
                blocked = sample > required_height

            hit = np.zeros(lat_arr.shape, dtype=bool)
            hit[marching] = blocked
            shadow |= hit
            marching &= ~hit

        return shadow

    async def generate_shadow_layer(
        self,
        bounds: Bounds,
        zoom: int,
        when: datetime,
        resolution: int = DEFAULT_SHADOW_RESOLUTION,
    ) -> ShadowLayer:
        """
        Shadow raster of ``resolution`` x ``resolution`` pixels over ``bounds``.

        Tiles for the bounds plus a 0.05 degree margin are loaded before any
        pixel is evaluated. One sun position, taken at the centre of the
        bounds, is used for every pixel.

        Raises:
            LayerGenerationError: If no elevation tile could be loaded while
                the sun is above the horizon
        """
        z = clamp_zoom(zoom, self.cache.max_zoom)
        area = bounds.expanded(SHADOW_PRELOAD_MARGIN_DEG)

        # Held until the mask is rendered; the pixel loop reads resident tiles only
        with self.cache.pinned(self.cache.area_tiles(area, z)):
            tiles = await self.cache.preload_area(area, z)

            center_lat, center_lon = bounds.center
            try:
                sun = self.sun_provider(when, center_lat, center_lon)
            except Exception as e:
                logger.error(ErrorMessages.SUN_PROVIDER_FAILED.format(e))
                mask = np.zeros((resolution, resolution), dtype=bool)
                return ShadowLayer(
                    rgba=shadow_to_rgba(mask),
                    mask=mask,
                    sun=None,
                    bounds=bounds,
                    zoom=z,
                    resolution=resolution,
                )

            if sun.altitude > 0 and not any(t is not None for t in tiles):
                raise LayerGenerationError(ErrorMessages.NO_TILES_LOADED)

            mask = await asyncio.to_thread(self._render_mask, bounds, z, sun, resolution)

        return ShadowLayer(
            rgba=shadow_to_rgba(mask),
            mask=mask,
            sun=sun,
            bounds=bounds,
            zoom=z,
            resolution=resolution,
        )

    def _render_mask(
        self,
        bounds: Bounds,
        zoom: int,
        sun: SunPosition,
        resolution: int,
    ) -> NDArray[np.bool_]:
        lat_step = (bounds.north - bounds.south) / resolution
        lon_step = (bounds.east - bounds.west) / resolution

        lats = bounds.north - np.arange(resolution, dtype=np.float64) * lat_step
        lons = bounds.west + np.arange(resolution, dtype=np.float64) * lon_step
        grid_lons, grid_lats = np.meshgrid(lons, lats)

        return self.shadow_mask(grid_lats, grid_lons, sun, zoom)
