"""Shared test fixtures for chuk-mcp-terrain."""

import asyncio
import io
import math

import numpy as np
import pytest
from PIL import Image
from unittest.mock import AsyncMock, MagicMock

from chuk_mcp_terrain.core.errors import TileUnavailableError

# Tile over the Karwendel (lat ~47.39-47.52, lon ~11.60-11.78)
ALPINE_TILE = (11, 1090, 716)

# Row where the synthetic ridge starts in wall_elevation
WALL_ROW = 150


def encode_terrarium(elevation: np.ndarray) -> np.ndarray:
    """Inverse of the Terrarium formula, to 1/256 m."""
    v = np.asarray(elevation, dtype=np.float64) + 32768.0
    whole = np.floor(v)
    r = np.floor(whole / 256.0)
    g = whole - r * 256.0
    b = np.clip(np.round((v - whole) * 256.0), 0, 255)
    return np.stack([r, g, b], axis=-1).astype(np.uint8)


def terrarium_png(elevation: np.ndarray) -> bytes:
    buf = io.BytesIO()
    Image.fromarray(encode_terrarium(elevation)).save(buf, format="PNG")
    return buf.getvalue()


def pixel_latlon(z: int, x: int, y: int, px: float, py: float) -> tuple[float, float]:
    """(lat, lon) of the centre of pixel (px, py) in tile z/x/y."""
    n = 2**z
    lon = (x + (px + 0.5) / 256.0) / n * 360.0 - 180.0
    lat = math.degrees(math.atan(math.sinh(math.pi * (1.0 - 2.0 * (y + (py + 0.5) / 256.0) / n))))
    return lat, lon


class FakeTileFetcher:
    """Serves canned Terrarium PNGs by z/x/y; unknown keys fail like a 404."""

    def __init__(self, tiles=None, default=None):
        self.tiles = dict(tiles or {})
        self.default = default
        self.calls = []
        self.closed = False

    async def fetch(self, z, x, y):
        self.calls.append((z, x, y))
        await asyncio.sleep(0)
        payload = self.tiles.get(f"{z}/{x}/{y}", self.default)
        if payload is None:
            raise TileUnavailableError(f"Elevation tile {z}/{x}/{y} unavailable: HTTP 404")
        if isinstance(payload, Exception):
            raise payload
        return payload

    async def close(self):
        self.closed = True


@pytest.fixture
def fetcher_cls():
    return FakeTileFetcher


@pytest.fixture
def make_png():
    """Factory: elevation array -> Terrarium PNG bytes."""
    return terrarium_png


@pytest.fixture
def latlon_of_pixel():
    """Factory: (z, x, y, px, py) -> (lat, lon) of a pixel centre."""
    return pixel_latlon


@pytest.fixture
def flat_elevation():
    """256x256 flat field at 1000 m."""
    return np.full((256, 256), 1000.0)


@pytest.fixture
def wall_elevation():
    """1000 m plain in the north of the tile, 3000 m plateau from WALL_ROW southwards."""
    arr = np.full((256, 256), 1000.0)
    arr[WALL_ROW:, :] = 3000.0
    return arr


@pytest.fixture
def fake_fetcher():
    """Fetcher with no tiles; every load fails."""
    return FakeTileFetcher()


@pytest.fixture
def alpine_fetcher(wall_elevation):
    """Fetcher serving the wall tile at ALPINE_TILE only."""
    z, x, y = ALPINE_TILE
    return FakeTileFetcher(tiles={f"{z}/{x}/{y}": terrarium_png(wall_elevation)})


@pytest.fixture
def tile_cache(fake_fetcher):
    from chuk_mcp_terrain.core.tile_cache import ElevationTileCache

    return ElevationTileCache(fetcher=fake_fetcher)


@pytest.fixture
def alpine_cache(alpine_fetcher):
    from chuk_mcp_terrain.core.tile_cache import ElevationTileCache

    return ElevationTileCache(fetcher=alpine_fetcher)


@pytest.fixture
def mock_artifact_store():
    """Mock artifact store."""
    store = AsyncMock()
    store.store = AsyncMock(return_value=None)
    store.retrieve = AsyncMock(return_value=b"fake-png-bytes")
    return store


@pytest.fixture
def mock_manager(mock_artifact_store, tile_cache):
    """TerrainManager with mocked store and a fetcher that never hits the network."""
    from chuk_mcp_terrain.core.terrain_manager import TerrainManager

    manager = TerrainManager(cache=tile_cache)
    manager._get_store = MagicMock(return_value=mock_artifact_store)
    return manager


@pytest.fixture
def mock_mcp():
    """Mock ChukMCPServer."""
    mcp = MagicMock()
    mcp.tool = MagicMock(return_value=lambda fn: fn)
    return mcp


@pytest.fixture
def capture_tools():
    """Factory: register_fn(mcp, manager) -> dict of captured tool coroutines."""

    def _capture(register_fn, manager):
        tools = {}
        mcp = MagicMock()

        def capture_tool(**kwargs):
            def decorator(fn):
                tools[fn.__name__] = fn
                return fn

            return decorator

        mcp.tool = capture_tool
        register_fn(mcp, manager)
        return tools

    return _capture
