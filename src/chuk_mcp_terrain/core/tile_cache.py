"""
Elevation tile cache: fetch, decode and memoise Terrarium tiles by z/x/y.

Network I/O happens only in load_tile()/preload_area(). Once tiles are
resident, get_elevation_sync() and sample_elevations() answer point queries
synchronously, so per-pixel loops never interleave network requests.
"""

import asyncio
import logging
import math
import os
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, NamedTuple

import aiohttp
import numpy as np
from numpy.typing import ArrayLike, NDArray
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..constants import (
    HTTP_TIMEOUT_S,
    MAX_TILE_ZOOM,
    RETRY_ATTEMPTS,
    RETRY_WAIT_MAX,
    RETRY_WAIT_MIN,
    TERRARIUM_URL_TEMPLATE,
    TILE_CACHE_MAX_BYTES,
    TILE_SIZE,
    EnvVar,
    ErrorMessages,
)
from .errors import TileUnavailableError
from .terrarium import ElevationTile, decode_terrarium_png, tile_key

logger = logging.getLogger(__name__)

# Web Mercator is undefined at the poles
MERCATOR_MAX_LAT = 85.05112878


class TileCoords(NamedTuple):
    """Slippy tile containing a point, with ``scale = 2**z``."""

    x: int
    y: int
    z: int
    scale: int


@dataclass(frozen=True)
class Bounds:
    """Geographic bounding box in degrees."""

    west: float
    south: float
    east: float
    north: float

    @classmethod
    def from_bbox(cls, bbox: list[float]) -> "Bounds":
        """Build from the [west, south, east, north] list form."""
        if len(bbox) != 4:
            raise ValueError(ErrorMessages.INVALID_BBOX)
        west, south, east, north = (float(v) for v in bbox)
        if west >= east:
            raise ValueError(ErrorMessages.INVALID_BBOX_VALUES.format(west, east))
        if south >= north:
            raise ValueError(ErrorMessages.INVALID_BBOX_LAT.format(south, north))
        return cls(west=west, south=south, east=east, north=north)

    def to_bbox(self) -> list[float]:
        return [self.west, self.south, self.east, self.north]

    @property
    def center(self) -> tuple[float, float]:
        """(lat, lon) of the box centre."""
        return (self.north + self.south) / 2.0, (self.east + self.west) / 2.0

    def expanded(self, margin_deg: float) -> "Bounds":
        return Bounds(
            west=self.west - margin_deg,
            south=self.south - margin_deg,
            east=self.east + margin_deg,
            north=self.north + margin_deg,
        )


# ---------------------------------------------------------------------------
# Slippy-map projection
# ---------------------------------------------------------------------------


def clamp_zoom(zoom: int, max_zoom: int = MAX_TILE_ZOOM) -> int:
    """Clamp a requested zoom to the range the elevation dataset supports."""
    return max(0, min(int(zoom), max_zoom))


def world_coords(lat: float, lon: float, z: int) -> tuple[float, float]:
    """Fractional tile coordinates (x, y) of a point at zoom ``z``."""
    scale = 2**z
    lat = max(-MERCATOR_MAX_LAT, min(MERCATOR_MAX_LAT, lat))
    lat_rad = math.radians(lat)
    fx = (lon + 180.0) / 360.0 * scale
    fy = (1.0 - math.log(math.tan(lat_rad) + 1.0 / math.cos(lat_rad)) / math.pi) / 2.0 * scale
    return fx, fy


def tile_coords(lat: float, lon: float, zoom: int, max_zoom: int = MAX_TILE_ZOOM) -> TileCoords:
    """Slippy tile containing (lat, lon); zoom is clamped to ``max_zoom``."""
    z = clamp_zoom(zoom, max_zoom)
    x, y, _, _ = pixel_coords(lat, lon, z)
    return TileCoords(x=x, y=y, z=z, scale=2**z)


def pixel_coords(lat: float, lon: float, z: int) -> tuple[int, int, int, int]:
    """(tile_x, tile_y, px, py) of a point at zoom ``z``; pixel indices clamped to the tile."""
    fx, fy = world_coords(lat, lon, z)
    # lon = 180 and the southern Mercator limit land on the far edge of the grid
    last = 2**z - 1
    x = min(last, max(0, math.floor(fx)))
    y = min(last, max(0, math.floor(fy)))
    px = min(TILE_SIZE - 1, max(0, math.floor((fx - x) * TILE_SIZE)))
    py = min(TILE_SIZE - 1, max(0, math.floor((fy - y) * TILE_SIZE)))
    return x, y, px, py


def tile_center_latitude(z: int, y: int) -> float:
    """Latitude in degrees of the centre row of tile row ``y`` (inverse Mercator)."""
    n = 2**z
    return math.degrees(math.atan(math.sinh(math.pi * (1.0 - 2.0 * (y + 0.5) / n))))


def _world_coords_array(
    lats: NDArray[np.float64], lons: NDArray[np.float64], z: int
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    scale = 2**z
    lat_rad = np.radians(np.clip(lats, -MERCATOR_MAX_LAT, MERCATOR_MAX_LAT))
    fx = (lons + 180.0) / 360.0 * scale
    fy = (1.0 - np.log(np.tan(lat_rad) + 1.0 / np.cos(lat_rad)) / np.pi) / 2.0 * scale
    return fx, fy


# ---------------------------------------------------------------------------
# HTTP fetcher
# ---------------------------------------------------------------------------

_retry_network = retry(
    stop=stop_after_attempt(RETRY_ATTEMPTS),
    wait=wait_exponential(multiplier=1, min=RETRY_WAIT_MIN, max=RETRY_WAIT_MAX),
    retry=retry_if_exception_type((aiohttp.ClientConnectionError, asyncio.TimeoutError)),
    reraise=True,
)


class TerrariumFetcher:
    """Fetches raw Terrarium PNG bytes over HTTP with aiohttp."""

    def __init__(
        self,
        url_template: str | None = None,
        timeout_s: float | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.url_template = url_template or os.environ.get(EnvVar.TILE_URL, TERRARIUM_URL_TEMPLATE)
        self.timeout_s = timeout_s or float(os.environ.get(EnvVar.HTTP_TIMEOUT, HTTP_TIMEOUT_S))
        self._session = session
        self._owns_session = session is None

    def tile_url(self, z: int, x: int, y: int) -> str:
        return self.url_template.format(z=z, x=x, y=y)

    async def fetch(self, z: int, x: int, y: int) -> bytes:
        """
        Fetch one tile.

        Raises:
            TileUnavailableError: On non-200 responses or network failure
                after retries
        """
        url = self.tile_url(z, x, y)
        try:
            return await self._request(url, z, x, y)
        except aiohttp.ClientError as e:
            raise TileUnavailableError(ErrorMessages.TILE_UNAVAILABLE.format(z, x, y, e)) from e
        except asyncio.TimeoutError as e:
            raise TileUnavailableError(
                ErrorMessages.TILE_UNAVAILABLE.format(z, x, y, "timeout")
            ) from e

    @_retry_network
    async def _request(self, url: str, z: int, x: int, y: int) -> bytes:
        session = self._get_session()
        timeout = aiohttp.ClientTimeout(total=self.timeout_s)
        async with session.get(url, timeout=timeout) as resp:
            if resp.status != HTTPStatus.OK:
                raise TileUnavailableError(
                    ErrorMessages.TILE_UNAVAILABLE.format(z, x, y, f"HTTP {resp.status}")
                )
            return await resp.read()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None


# ---------------------------------------------------------------------------
# Tile cache
# ---------------------------------------------------------------------------


class ElevationTileCache:
    """
    Write-once cache of decoded elevation tiles keyed by ``z/x/y``.

    A failed fetch or decode is cached as None so the tile is not retried
    while the entry is resident. Memory is bounded by an LRU on decoded
    bytes; eviction removes entries but never changes one in place.
    """

    def __init__(
        self,
        fetcher: Any | None = None,
        max_bytes: int = TILE_CACHE_MAX_BYTES,
        max_zoom: int = MAX_TILE_ZOOM,
    ) -> None:
        self.fetcher = fetcher or TerrariumFetcher()
        self.max_bytes = max_bytes
        self.max_zoom = max_zoom

        # Insertion-ordered dict doubles as LRU: key -> tile (None = unavailable)
        self._tiles: dict[str, ElevationTile | None] = {}
        self._sizes: dict[str, int] = {}
        self._total_bytes: int = 0
        self._pending: dict[str, asyncio.Future] = {}
        self._pins: dict[str, int] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Async loading
    # ------------------------------------------------------------------

    async def load_tile(self, x: int, y: int, z: int) -> ElevationTile | None:
        """Return the decoded tile, fetching it at most once per key."""
        key = tile_key(z, x, y)
        with self._lock:
            if key in self._tiles:
                tile = self._tiles.pop(key)
                self._tiles[key] = tile
                return tile

        future = self._pending.get(key)
        if future is None:
            future = asyncio.ensure_future(self._fetch_and_decode(x, y, z))
            self._pending[key] = future
            future.add_done_callback(lambda _f, k=key: self._pending.pop(k, None))

        # One waiter cancelling must not cancel the fetch shared by others
        return await asyncio.shield(future)

    def area_tiles(self, bounds: Bounds, zoom: int) -> list[tuple[int, int, int]]:
        """(x, y, z) of every tile covering ``bounds`` plus a one-tile buffer."""
        nw = tile_coords(bounds.north, bounds.west, zoom, self.max_zoom)
        se = tile_coords(bounds.south, bounds.east, zoom, self.max_zoom)
        return [
            (x, y, nw.z)
            for x in range(nw.x - 1, se.x + 2)
            for y in range(nw.y - 1, se.y + 2)
            if 0 <= x < nw.scale and 0 <= y < nw.scale
        ]

    async def preload_area(self, bounds: Bounds, zoom: int) -> list[ElevationTile | None]:
        """
        Load every tile covering ``bounds`` plus a one-tile buffer on each side.

        Returns once all loads have settled (success or failure). Callers
        that read the tiles afterwards should hold them with pinned(), or
        the LRU may evict some of them before they are read.
        """
        tiles = self.area_tiles(bounds, zoom)
        results = await asyncio.gather(*(self.load_tile(x, y, z) for x, y, z in tiles))

        available = sum(1 for t in results if t is not None)
        z = clamp_zoom(zoom, self.max_zoom)
        logger.debug(f"Preloaded {available}/{len(results)} tiles at z={z}")
        return list(results)

    @contextmanager
    def pinned(self, tiles: Iterable[tuple[int, int, int]]) -> Iterator[None]:
        """
        Exempt ``tiles`` (x, y, z) from eviction for the duration of the block.

        Pins are counted, so overlapping passes may pin the same tile. The
        budget may be exceeded while pinned tiles alone fill it; the excess
        is evicted once the pins are released.
        """
        keys = [tile_key(z, x, y) for x, y, z in tiles]
        with self._lock:
            for key in keys:
                self._pins[key] = self._pins.get(key, 0) + 1
        try:
            yield
        finally:
            with self._lock:
                for key in keys:
                    count = self._pins.pop(key) - 1
                    if count:
                        self._pins[key] = count
                self._evict_locked(0)

    async def _fetch_and_decode(self, x: int, y: int, z: int) -> ElevationTile | None:
        key = tile_key(z, x, y)
        tile: ElevationTile | None
        try:
            data = await self.fetcher.fetch(z, x, y)
            tile = await asyncio.to_thread(decode_terrarium_png, data, z, x, y)
        except Exception as e:
            logger.warning(f"Failed to load tile {key}: {e}")
            tile = None

        self._store(key, tile)
        return tile

    def cancel_pending(self) -> int:
        """Abort all in-flight fetches. Cancelled tiles are not cached."""
        pending = list(self._pending.values())
        for future in pending:
            future.cancel()
        return len(pending)

    async def close(self) -> None:
        self.cancel_pending()
        close = getattr(self.fetcher, "close", None)
        if close is not None:
            await close()

    # ------------------------------------------------------------------
    # Synchronous queries
    # ------------------------------------------------------------------

    def has_tile(self, x: int, y: int, z: int) -> bool:
        """True if an entry (available or not) is resident for this key."""
        with self._lock:
            return tile_key(z, x, y) in self._tiles

    def get_tile(self, x: int, y: int, z: int) -> ElevationTile | None:
        """Resident tile or None (not loaded, or unavailable)."""
        with self._lock:
            return self._tiles.get(tile_key(z, x, y))

    def get_elevation_sync(self, lat: float, lon: float, zoom: int) -> float | None:
        """
        Elevation in metres at (lat, lon) from resident tiles only.

        Returns None when the backing tile is not cached or is unavailable.
        """
        z = clamp_zoom(zoom, self.max_zoom)
        x, y, px, py = pixel_coords(lat, lon, z)

        tile = self.get_tile(x, y, z)
        if tile is None:
            return None
        return float(tile.elevation[py, px])

    def sample_elevations(self, lats: ArrayLike, lons: ArrayLike, zoom: int) -> NDArray[np.float64]:
        """Vectorised get_elevation_sync; NaN where no data is resident."""
        lat_arr, lon_arr = np.broadcast_arrays(
            np.asarray(lats, dtype=np.float64), np.asarray(lons, dtype=np.float64)
        )
        z = clamp_zoom(zoom, self.max_zoom)
        fx, fy = _world_coords_array(lat_arr.ravel(), lon_arr.ravel(), z)

        last = 2**z - 1
        tx = np.clip(np.floor(fx), 0, last).astype(np.int64)
        ty = np.clip(np.floor(fy), 0, last).astype(np.int64)
        px = np.clip(np.floor((fx - tx) * TILE_SIZE), 0, TILE_SIZE - 1).astype(np.intp)
        py = np.clip(np.floor((fy - ty) * TILE_SIZE), 0, TILE_SIZE - 1).astype(np.intp)

        out = np.full(tx.shape, np.nan, dtype=np.float64)
        if out.size == 0:
            return out.reshape(lat_arr.shape)

        keys, inverse = np.unique(np.stack([tx, ty], axis=1), axis=0, return_inverse=True)
        inverse = inverse.reshape(-1)
        for i, (x, y) in enumerate(keys):
            tile = self.get_tile(int(x), int(y), z)
            if tile is None:
                continue
            sel = inverse == i
            out[sel] = tile.elevation[py[sel], px[sel]]

        return out.reshape(lat_arr.shape)

    # ------------------------------------------------------------------
    # Cache management
    # ------------------------------------------------------------------

    def _store(self, key: str, tile: ElevationTile | None) -> None:
        """Insert if absent, evicting least-recently-used entries over budget."""
        size = tile.nbytes if tile is not None else 0
        with self._lock:
            if key in self._tiles:
                return

            self._evict_locked(size)
            self._tiles[key] = tile
            self._sizes[key] = size
            self._total_bytes += size

    def _evict_locked(self, incoming: int) -> None:
        """Drop unpinned entries, oldest first, until ``incoming`` bytes fit."""
        for key in list(self._tiles):
            if self._total_bytes + incoming <= self.max_bytes:
                return
            if key in self._pins:
                continue
            del self._tiles[key]
            self._total_bytes -= self._sizes.pop(key, 0)
            logger.debug(f"Evicted tile {key}")

    def stats(self) -> dict[str, int]:
        with self._lock:
            unavailable = sum(1 for t in self._tiles.values() if t is None)
            return {
                "tiles": len(self._tiles) - unavailable,
                "unavailable": unavailable,
                "pending": len(self._pending),
                "bytes": self._total_bytes,
            }

    @property
    def total_bytes(self) -> int:
        return self._total_bytes
