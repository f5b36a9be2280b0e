"""
Terrain Manager: central orchestrator for terrain layer operations.

Owns the elevation tile cache, the shadow caster and the tile protocol
registry, and stores rendered rasters in the artifact store. CPU-bound
raster work runs via asyncio.to_thread() once the tiles it needs are loaded.
"""

import asyncio
import functools
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import numpy as np

from ..constants import (
    DEFAULT_SHADOW_RESOLUTION,
    DEFAULT_SHADOW_ZOOM,
    MAX_SHADOW_RESOLUTION,
    MAX_TILE_ZOOM,
    MIN_SHADOW_ZOOM,
    TILE_LAYERS,
    TILE_SOURCE_ATTRIBUTION,
    ErrorMessages,
    TerrainLayer,
)
from .compositing import RGBAArray, rgba_to_png, slope_aspect_to_rgba, slope_to_rgba
from .errors import TileUnavailableError
from .protocols import ProtocolRegistry
from .route_stats import RouteStats, analyze_track, parse_gpx
from .shadow import ShadowCaster, SunProvider
from .slope import classify_aspect, compute_slope_aspect, meters_per_pixel, slope_aspect_at
from .solar import SunPosition, sun_position, to_utc
from .terrarium import ElevationTile
from .tile_cache import (
    MERCATOR_MAX_LAT,
    Bounds,
    ElevationTileCache,
    pixel_coords,
)

logger = logging.getLogger(__name__)


@dataclass
class TileRaster:
    """A rendered terrain tile before encoding."""

    rgba: RGBAArray
    elevation_range: list[float]
    slope_range: list[float]
    meters_per_pixel: float

    @property
    def coverage_percentage(self) -> float:
        alpha = self.rgba[..., 3]
        if alpha.size == 0:
            return 0.0
        return float(np.count_nonzero(alpha)) / float(alpha.size) * 100.0


@dataclass
class TileResult:
    """Result of a terrain tile render."""

    artifact_ref: str
    layer: str
    z: int
    x: int
    y: int
    meters_per_pixel: float
    elevation_range: list[float]
    slope_range: list[float]
    coverage_percentage: float


@dataclass
class PointTerrainResult:
    """Elevation, slope and aspect at one point."""

    lon: float
    lat: float
    zoom: int
    tile: list[int]
    elevation_m: float
    slope_deg: float
    aspect_deg: float
    aspect_direction: str


@dataclass
class SunResult:
    """Sun direction at one place and time."""

    datetime_utc: str
    azimuth_deg: float
    altitude_deg: float
    is_up: bool


@dataclass
class ShadowResult:
    """Result of a shadow layer computation."""

    artifact_ref: str
    bbox: list[float]
    zoom: int
    resolution: int
    datetime_utc: str
    shadow_percentage: float
    sun_azimuth_deg: float | None
    sun_altitude_deg: float | None


class TerrainManager:
    """Central manager for terrain layer operations."""

    def __init__(
        self,
        cache: ElevationTileCache | None = None,
        sun_provider: SunProvider = sun_position,
    ) -> None:
        self.cache = cache or ElevationTileCache()
        self.shadow = ShadowCaster(self.cache, sun_provider=sun_provider)

        self.protocols = ProtocolRegistry()
        for layer in TILE_LAYERS:
            self.protocols.register(layer, functools.partial(self._render_layer, layer))

    # ------------------------------------------------------------------
    # Tiles
    # ------------------------------------------------------------------

    async def render_tile(self, layer: str, z: int, x: int, y: int) -> TileResult:
        """Render a slope or slope-aspect tile and store it as PNG."""
        if layer not in TILE_LAYERS:
            raise ValueError(ErrorMessages.INVALID_LAYER.format(layer, ", ".join(TILE_LAYERS)))
        self._validate_tile(z, x, y)

        raster: TileRaster = await self.protocols.resolve(f"{layer}://{z}/{x}/{y}")
        png = await asyncio.to_thread(rgba_to_png, raster.rgba)

        artifact_ref = await self._store_raster(
            png,
            {
                "schema_version": "1.0",
                "type": f"{layer}_tile",
                "layer": layer,
                "tile": [z, x, y],
                "meters_per_pixel": raster.meters_per_pixel,
                "elevation_range": raster.elevation_range,
                "slope_range": raster.slope_range,
                "attribution": TILE_SOURCE_ATTRIBUTION,
            },
            suffix=f"_{layer}.png",
        )

        return TileResult(
            artifact_ref=artifact_ref,
            layer=layer,
            z=z,
            x=x,
            y=y,
            meters_per_pixel=raster.meters_per_pixel,
            elevation_range=raster.elevation_range,
            slope_range=raster.slope_range,
            coverage_percentage=round(raster.coverage_percentage, 1),
        )

    async def _render_layer(self, layer: str, z: int, x: int, y: int) -> TileRaster:
        """Protocol handler: load the elevation tile and colour it for ``layer``."""
        tile = await self._require_tile(x, y, z)
        return await asyncio.to_thread(_compose_tile, layer, tile)

    # ------------------------------------------------------------------
    # Point queries
    # ------------------------------------------------------------------

    async def point_terrain(
        self,
        lon: float,
        lat: float,
        zoom: int = MAX_TILE_ZOOM,
    ) -> PointTerrainResult:
        """Elevation, slope and aspect at (lon, lat), loading the tile if needed."""
        self._validate_point(lon, lat)
        self._validate_zoom(zoom)

        x, y, px, py = pixel_coords(lat, lon, zoom)
        tile = await self._require_tile(x, y, zoom)

        slope, aspect = slope_aspect_at(tile.elevation, py, px, meters_per_pixel(zoom, y))

        return PointTerrainResult(
            lon=lon,
            lat=lat,
            zoom=zoom,
            tile=[zoom, x, y],
            elevation_m=round(float(tile.elevation[py, px]), 2),
            slope_deg=round(slope, 2),
            aspect_deg=round(aspect, 1) % 360.0,
            aspect_direction=classify_aspect(aspect),
        )

    async def sun_position(
        self,
        lon: float,
        lat: float,
        when: datetime | str | None = None,
    ) -> SunResult:
        """Sun azimuth and altitude at (lon, lat); ``when`` defaults to now."""
        self._validate_point(lon, lat)
        dt = parse_datetime(when)
        sun: SunPosition = self.shadow.sun_provider(dt, lat, lon)

        return SunResult(
            datetime_utc=dt.isoformat(),
            azimuth_deg=round(sun.azimuth_deg, 2),
            altitude_deg=round(sun.altitude_deg, 2),
            is_up=sun.is_up,
        )

    # ------------------------------------------------------------------
    # Shadow layer
    # ------------------------------------------------------------------

    async def shadow_layer(
        self,
        bbox: list[float],
        zoom: int = DEFAULT_SHADOW_ZOOM,
        when: datetime | str | None = None,
        resolution: int = DEFAULT_SHADOW_RESOLUTION,
    ) -> ShadowResult:
        """Compute terrain shadow over a bbox and store it as PNG."""
        bounds = Bounds.from_bbox(bbox)
        self._validate_zoom(zoom)
        if not 1 <= resolution <= MAX_SHADOW_RESOLUTION:
            raise ValueError(
                ErrorMessages.INVALID_RESOLUTION.format(MAX_SHADOW_RESOLUTION, resolution)
            )
        dt = parse_datetime(when)

        # Ray steps are ~50 m; coarser tiles would flatten the terrain
        z = max(zoom, MIN_SHADOW_ZOOM)

        layer = await self.shadow.generate_shadow_layer(bounds, z, dt, resolution)
        png = await asyncio.to_thread(rgba_to_png, layer.rgba)

        shadow_pct = round(layer.shadow_fraction * 100.0, 1)
        azimuth = round(layer.sun.azimuth_deg, 2) if layer.sun else None
        altitude = round(layer.sun.altitude_deg, 2) if layer.sun else None

        artifact_ref = await self._store_raster(
            png,
            {
                "schema_version": "1.0",
                "type": "shadow_layer",
                "bbox": bounds.to_bbox(),
                "zoom": layer.zoom,
                "resolution": resolution,
                "datetime_utc": dt.isoformat(),
                "sun_azimuth_deg": azimuth,
                "sun_altitude_deg": altitude,
                "shadow_percentage": shadow_pct,
            },
            suffix="_shadow.png",
        )

        return ShadowResult(
            artifact_ref=artifact_ref,
            bbox=bounds.to_bbox(),
            zoom=layer.zoom,
            resolution=resolution,
            datetime_utc=dt.isoformat(),
            shadow_percentage=shadow_pct,
            sun_azimuth_deg=azimuth,
            sun_altitude_deg=altitude,
        )

    # ------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------

    async def analyze_route(self, gpx: str, name: str = "route") -> RouteStats:
        """Route statistics for a GPX document."""
        points = parse_gpx(gpx)
        return analyze_track(points, name)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def cache_stats(self) -> dict[str, int]:
        return self.cache.stats()

    async def close(self) -> None:
        await self.cache.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _require_tile(self, x: int, y: int, z: int) -> ElevationTile:
        tile = await self.cache.load_tile(x, y, z)
        if tile is None:
            raise TileUnavailableError(
                ErrorMessages.TILE_UNAVAILABLE.format(z, x, y, "fetch or decode failed")
            )
        return tile

    def _validate_zoom(self, zoom: int) -> None:
        if not 0 <= zoom <= MAX_TILE_ZOOM:
            raise ValueError(ErrorMessages.INVALID_ZOOM.format(MAX_TILE_ZOOM, zoom))

    def _validate_tile(self, z: int, x: int, y: int) -> None:
        self._validate_zoom(z)
        scale = 2**z
        if not (0 <= x < scale and 0 <= y < scale):
            raise ValueError(ErrorMessages.INVALID_TILE.format(z, x, y))

    def _validate_point(self, lon: float, lat: float) -> None:
        if not -180.0 <= lon <= 180.0 or not -MERCATOR_MAX_LAT <= lat <= MERCATOR_MAX_LAT:
            raise ValueError(ErrorMessages.INVALID_COORDINATES.format(lon, lat))

    def _get_store(self) -> Any:
        """Get the artifact store instance."""
        from chuk_mcp_server import get_artifact_store

        store = get_artifact_store()
        if store is None:
            raise RuntimeError(ErrorMessages.NO_ARTIFACT_STORE)
        return store

    async def _store_raster(
        self,
        data: bytes,
        metadata: dict,
        suffix: str = ".png",
    ) -> str:
        """Store a rendered raster in the artifact store."""
        try:
            store = self._get_store()
            ref = f"terrain/{uuid.uuid4().hex[:12]}{suffix}"

            await store.store(
                ref,
                data,
                mime_type="image/png",
                metadata=metadata,
                summary=f"Terrain raster ({metadata.get('type', 'unknown')})",
            )
            return ref
        except Exception as e:
            logger.error(f"Failed to store raster: {e}")
            raise


def parse_datetime(when: datetime | str | None) -> datetime:
    """ISO 8601 string, datetime or None (now) to an aware UTC datetime."""
    if when is None:
        return datetime.now(timezone.utc)
    if isinstance(when, datetime):
        return to_utc(when)
    try:
        text = when.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        return to_utc(datetime.fromisoformat(text))
    except (AttributeError, ValueError) as e:
        raise ValueError(ErrorMessages.INVALID_DATETIME.format(when)) from e


def _compose_tile(layer: str, tile: ElevationTile) -> TileRaster:
    mpp = meters_per_pixel(tile.z, tile.y)
    slope, aspect = compute_slope_aspect(tile.elevation, mpp)

    if layer == TerrainLayer.SLOPE:
        rgba = slope_to_rgba(slope)
    else:
        rgba = slope_aspect_to_rgba(slope, aspect)

    return TileRaster(
        rgba=rgba,
        elevation_range=[float(np.min(tile.elevation)), float(np.max(tile.elevation))],
        slope_range=[round(float(np.min(slope)), 2), round(float(np.max(slope)), 2)],
        meters_per_pixel=round(mpp, 3),
    )
