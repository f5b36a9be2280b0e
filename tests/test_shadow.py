"""
Tests for chuk_mcp_terrain.core.shadow.

Uses a synthetic tile over the Karwendel (11/1090/716): a 1000 m plain in
the northern part and a 3000 m plateau from row 150 southwards. With the
sun low in the south the plain lies in the plateau's shadow.
"""

import math
from datetime import datetime, timezone

import numpy as np
import pytest
from unittest.mock import MagicMock

from chuk_mcp_terrain.constants import SHADOW_COLOR, SHADOW_PRELOAD_MARGIN_DEG
from chuk_mcp_terrain.core.errors import LayerGenerationError, SunProviderUnavailableError
from chuk_mcp_terrain.core.shadow import ShadowCaster, ShadowLayer
from chuk_mcp_terrain.core.solar import SunPosition
from chuk_mcp_terrain.core.tile_cache import Bounds, ElevationTileCache

ALPINE_TILE = (11, 1090, 716)
WHEN = datetime(2025, 1, 15, 14, 0, tzinfo=timezone.utc)
TILE_BYTES = 256 * 256 * 8

LOW_SOUTH_SUN = SunPosition(azimuth=math.pi, altitude=math.radians(10.0))
LOW_NORTH_SUN = SunPosition(azimuth=0.0, altitude=math.radians(10.0))
NIGHT = SunPosition(azimuth=math.pi, altitude=-0.1)

# Inside tile 11/1090/716; the plateau edge is at about lat 47.455
LAYER_BBOX = [11.65, 47.42, 11.72, 47.48]


def _fixed_sun(sun):
    return MagicMock(return_value=sun)


@pytest.fixture
async def loaded_cache(alpine_cache):
    await alpine_cache.load_tile(1090, 716, 11)
    return alpine_cache


# ===================================================================
# Single-point queries
# ===================================================================


class TestIsInShadow:
    def test_sun_below_horizon_skips_lookups(self):
        cache = MagicMock()
        caster = ShadowCaster(cache)
        assert caster.is_in_shadow(47.45, 11.7, NIGHT, 11) is True
        cache.get_elevation_sync.assert_not_called()

    def test_sun_on_horizon_is_shadow(self):
        cache = MagicMock()
        caster = ShadowCaster(cache)
        horizon = SunPosition(azimuth=1.0, altitude=0.0)
        assert caster.is_in_shadow(47.45, 11.7, horizon, 11) is True
        cache.get_elevation_sync.assert_not_called()

    def test_missing_origin_is_lit(self, tile_cache):
        caster = ShadowCaster(tile_cache)
        assert caster.is_in_shadow(47.45, 11.7, LOW_SOUTH_SUN, 11) is False

    async def test_flat_terrain_is_lit(self, fetcher_cls, make_png, flat_elevation):
        cache = ElevationTileCache(fetcher=fetcher_cls(default=make_png(flat_elevation)))
        await cache.preload_area(Bounds.from_bbox(LAYER_BBOX), 11)
        caster = ShadowCaster(cache)
        assert caster.is_in_shadow(47.45, 11.7, LOW_SOUTH_SUN, 11) is False

    async def test_plain_shadowed_by_plateau(self, loaded_cache, latlon_of_pixel):
        lat, lon = latlon_of_pixel(*ALPINE_TILE, 128, 100)
        caster = ShadowCaster(loaded_cache)
        assert caster.is_in_shadow(lat, lon, LOW_SOUTH_SUN, 11) is True

    async def test_sun_behind_observer_is_lit(self, loaded_cache, latlon_of_pixel):
        lat, lon = latlon_of_pixel(*ALPINE_TILE, 128, 100)
        caster = ShadowCaster(loaded_cache)
        assert caster.is_in_shadow(lat, lon, LOW_NORTH_SUN, 11) is False

    async def test_high_sun_clears_plateau(self, loaded_cache, latlon_of_pixel):
        # 2000 m rise over ~2.5 km needs an elevation angle of ~38 degrees
        lat, lon = latlon_of_pixel(*ALPINE_TILE, 128, 100)
        caster = ShadowCaster(loaded_cache)
        high = SunPosition(azimuth=math.pi, altitude=math.radians(60.0))
        assert caster.is_in_shadow(lat, lon, high, 11) is False

    async def test_ridge_beyond_ray_reach_ignored(self, loaded_cache, latlon_of_pixel):
        # Row 2 is ~8 km north of the plateau edge, past the ~5 km ray
        lat, lon = latlon_of_pixel(*ALPINE_TILE, 128, 2)
        caster = ShadowCaster(loaded_cache)
        assert caster.is_in_shadow(lat, lon, LOW_SOUTH_SUN, 11) is False

    async def test_plateau_top_is_lit(self, loaded_cache, latlon_of_pixel):
        lat, lon = latlon_of_pixel(*ALPINE_TILE, 128, 200)
        caster = ShadowCaster(loaded_cache)
        assert caster.is_in_shadow(lat, lon, LOW_SOUTH_SUN, 11) is False


# ===================================================================
# Vectorised mask
# ===================================================================


class TestShadowMask:
    async def test_matches_point_queries(self, loaded_cache, latlon_of_pixel):
        caster = ShadowCaster(loaded_cache)
        sun = SunPosition(azimuth=math.radians(200.0), altitude=math.radians(12.0))

        points = [latlon_of_pixel(*ALPINE_TILE, px, py) for py in range(0, 256, 17) for px in range(0, 256, 17)]
        lats = np.array([p[0] for p in points])
        lons = np.array([p[1] for p in points])

        mask = caster.shadow_mask(lats, lons, sun, 11)
        expected = [caster.is_in_shadow(lat, lon, sun, 11) for lat, lon in points]

        assert mask.tolist() == expected
        assert any(expected)
        assert not all(expected)

    def test_night_is_all_shadow(self, tile_cache):
        caster = ShadowCaster(tile_cache)
        mask = caster.shadow_mask(np.zeros((3, 3)), np.zeros((3, 3)), NIGHT, 11)
        assert mask.shape == (3, 3)
        assert mask.all()

    def test_no_data_is_lit(self, tile_cache):
        caster = ShadowCaster(tile_cache)
        mask = caster.shadow_mask(np.full(4, 47.45), np.full(4, 11.7), LOW_SOUTH_SUN, 11)
        assert not mask.any()


# ===================================================================
# Layer generation
# ===================================================================


class TestGenerateShadowLayer:
    async def test_plain_in_shadow_plateau_lit(self, alpine_cache):
        caster = ShadowCaster(alpine_cache, sun_provider=_fixed_sun(LOW_SOUTH_SUN))
        layer = await caster.generate_shadow_layer(Bounds.from_bbox(LAYER_BBOX), 11, WHEN, 64)

        assert isinstance(layer, ShadowLayer)
        assert layer.rgba.shape == (64, 64, 4)
        assert layer.rgba.dtype == np.uint8
        assert layer.mask[0].all()
        assert not layer.mask[-1].any()
        assert 0.0 < layer.shadow_fraction < 1.0
        assert layer.sun == LOW_SOUTH_SUN

    async def test_pixel_colours(self, alpine_cache):
        caster = ShadowCaster(alpine_cache, sun_provider=_fixed_sun(LOW_SOUTH_SUN))
        layer = await caster.generate_shadow_layer(Bounds.from_bbox(LAYER_BBOX), 11, WHEN, 16)

        assert tuple(layer.rgba[0, 0]) == SHADOW_COLOR
        assert tuple(layer.rgba[-1, -1]) == (0, 0, 0, 0)

    async def test_sun_evaluated_once_at_center(self, alpine_cache):
        provider = _fixed_sun(LOW_SOUTH_SUN)
        caster = ShadowCaster(alpine_cache, sun_provider=provider)
        await caster.generate_shadow_layer(Bounds.from_bbox(LAYER_BBOX), 11, WHEN, 8)

        provider.assert_called_once()
        when, lat, lon = provider.call_args[0]
        assert when == WHEN
        assert lat == pytest.approx(47.45)
        assert lon == pytest.approx(11.685)

    async def test_preloads_expanded_area(self, alpine_cache, alpine_fetcher):
        caster = ShadowCaster(alpine_cache, sun_provider=_fixed_sun(LOW_SOUTH_SUN))
        await caster.generate_shadow_layer(Bounds.from_bbox(LAYER_BBOX), 11, WHEN, 8)

        xs = {x for _, x, _ in alpine_fetcher.calls}
        ys = {y for _, _, y in alpine_fetcher.calls}
        # 0.05 degree margin plus the one-tile buffer
        assert min(xs) <= 1088
        assert max(ys) >= 718
        assert (11, 1090, 716) in alpine_fetcher.calls

    async def test_area_larger_than_cache_budget(self, fetcher_cls, make_png, wall_elevation):
        png = make_png(wall_elevation)
        bounds = Bounds.from_bbox(LAYER_BBOX)
        small = ElevationTileCache(fetcher=fetcher_cls(default=png), max_bytes=2 * TILE_BYTES)
        unbounded = ElevationTileCache(fetcher=fetcher_cls(default=png))
        area = small.area_tiles(bounds.expanded(SHADOW_PRELOAD_MARGIN_DEG), 11)
        assert len(area) > 2

        resident = []

        def sun(when, lat, lon):
            resident.append(all(small.get_tile(x, y, z) is not None for x, y, z in area))
            return LOW_SOUTH_SUN

        layer = await ShadowCaster(small, sun_provider=sun).generate_shadow_layer(
            bounds, 11, WHEN, 32
        )
        expected = await ShadowCaster(
            unbounded, sun_provider=_fixed_sun(LOW_SOUTH_SUN)
        ).generate_shadow_layer(bounds, 11, WHEN, 32)

        assert resident == [True]
        assert layer.mask.any()
        assert np.array_equal(layer.mask, expected.mask)
        assert small.total_bytes <= 2 * TILE_BYTES

    async def test_zoom_clamped(self, alpine_cache):
        caster = ShadowCaster(alpine_cache, sun_provider=_fixed_sun(NIGHT))
        layer = await caster.generate_shadow_layer(
            Bounds.from_bbox([11.7, 47.45, 11.7005, 47.4505]), 17, WHEN, 4
        )
        assert layer.zoom == 15

    async def test_sun_below_horizon_all_shadow(self, alpine_cache):
        caster = ShadowCaster(alpine_cache, sun_provider=_fixed_sun(NIGHT))
        layer = await caster.generate_shadow_layer(Bounds.from_bbox(LAYER_BBOX), 11, WHEN, 32)

        assert layer.mask.all()
        assert np.all(layer.rgba == np.array(SHADOW_COLOR, dtype=np.uint8))
        assert layer.shadow_fraction == 1.0

    async def test_sun_below_horizon_without_tiles(self, tile_cache):
        caster = ShadowCaster(tile_cache, sun_provider=_fixed_sun(NIGHT))
        layer = await caster.generate_shadow_layer(Bounds.from_bbox(LAYER_BBOX), 11, WHEN, 8)
        assert layer.mask.all()

    async def test_no_tiles_loaded_fails_whole_layer(self, tile_cache):
        caster = ShadowCaster(tile_cache, sun_provider=_fixed_sun(LOW_SOUTH_SUN))
        with pytest.raises(LayerGenerationError, match="No elevation tiles"):
            await caster.generate_shadow_layer(Bounds.from_bbox(LAYER_BBOX), 11, WHEN, 8)

    async def test_sun_provider_failure_gives_transparent_layer(self, alpine_cache, caplog):
        provider = MagicMock(side_effect=SunProviderUnavailableError("ephemeris offline"))
        caster = ShadowCaster(alpine_cache, sun_provider=provider)

        layer = await caster.generate_shadow_layer(Bounds.from_bbox(LAYER_BBOX), 11, WHEN, 8)

        assert layer.sun is None
        assert not layer.mask.any()
        assert not layer.rgba.any()
        assert "ephemeris offline" in caplog.text

    async def test_any_provider_exception_is_absorbed(self, alpine_cache):
        provider = MagicMock(side_effect=KeyError("tz"))
        caster = ShadowCaster(alpine_cache, sun_provider=provider)
        layer = await caster.generate_shadow_layer(Bounds.from_bbox(LAYER_BBOX), 11, WHEN, 4)
        assert layer.shadow_fraction == 0.0

    async def test_default_provider_used(self, alpine_cache):
        caster = ShadowCaster(alpine_cache)
        # 14:00 UTC mid-January: sun low in the south-west over the Alps
        layer = await caster.generate_shadow_layer(Bounds.from_bbox(LAYER_BBOX), 11, WHEN, 8)
        assert layer.sun is not None
        assert layer.sun.is_up
        assert 180.0 < layer.sun.azimuth_deg < 250.0
