"""Tests for chuk_mcp_terrain.core.solar (NOAA sun position)."""

import math
from datetime import datetime, timedelta, timezone

import pytest

from chuk_mcp_terrain.core.errors import SunProviderUnavailableError
from chuk_mcp_terrain.core.solar import SunPosition, sun_position, to_utc

UTC = timezone.utc


class TestSunPosition:
    def test_equinox_noon_on_equator_is_overhead(self):
        sun = sun_position(datetime(2024, 3, 20, 12, 0, tzinfo=UTC), 0.0, 0.0)
        assert sun.altitude_deg > 85.0

    def test_midnight_is_below_horizon(self):
        sun = sun_position(datetime(2024, 1, 15, 0, 0, tzinfo=UTC), 47.0, 11.0)
        assert sun.altitude < 0
        assert not sun.is_up

    def test_winter_solstice_noon_alps(self):
        # Local solar noon at lon 0 is within a few minutes of 12:00 UTC
        sun = sun_position(datetime(2024, 12, 21, 12, 0, tzinfo=UTC), 47.0, 0.0)
        assert sun.azimuth_deg == pytest.approx(180.0, abs=3.0)
        assert sun.altitude_deg == pytest.approx(90.0 - 47.0 - 23.44, abs=1.0)

    def test_summer_morning_sun_in_east(self):
        sun = sun_position(datetime(2024, 6, 21, 6, 0, tzinfo=UTC), 47.0, 11.0)
        assert sun.is_up
        assert 45.0 < sun.azimuth_deg < 110.0

    def test_summer_afternoon_sun_in_west(self):
        sun = sun_position(datetime(2024, 6, 21, 15, 0, tzinfo=UTC), 47.0, 11.0)
        assert sun.is_up
        assert 180.0 < sun.azimuth_deg < 300.0

    def test_southern_hemisphere_noon_sun_in_north(self):
        sun = sun_position(datetime(2024, 6, 21, 12, 0, tzinfo=UTC), -33.9, 0.0)
        assert sun.azimuth_deg < 10.0 or sun.azimuth_deg > 350.0

    def test_azimuth_in_range(self):
        start = datetime(2024, 2, 1, tzinfo=UTC)
        for hour in range(0, 24, 3):
            sun = sun_position(start + timedelta(hours=hour), 47.4, 11.7)
            assert 0.0 <= sun.azimuth < 2 * math.pi
            assert -math.pi / 2 <= sun.altitude <= math.pi / 2

    def test_naive_datetime_is_utc(self):
        naive = sun_position(datetime(2024, 6, 21, 9, 30), 47.0, 11.0)
        aware = sun_position(datetime(2024, 6, 21, 9, 30, tzinfo=UTC), 47.0, 11.0)
        assert naive == aware

    def test_other_timezone_converted(self):
        cest = timezone(timedelta(hours=2))
        local = sun_position(datetime(2024, 6, 21, 8, 0, tzinfo=cest), 47.0, 11.0)
        utc = sun_position(datetime(2024, 6, 21, 6, 0, tzinfo=UTC), 47.0, 11.0)
        assert local.azimuth == pytest.approx(utc.azimuth)
        assert local.altitude == pytest.approx(utc.altitude)

    def test_bad_input_raises_provider_error(self):
        with pytest.raises(SunProviderUnavailableError):
            sun_position("tomorrow", 47.0, 11.0)


class TestSunPositionDataclass:
    def test_degree_properties(self):
        sun = SunPosition(azimuth=math.pi, altitude=math.pi / 6)
        assert sun.azimuth_deg == pytest.approx(180.0)
        assert sun.altitude_deg == pytest.approx(30.0)
        assert sun.zenith == pytest.approx(math.pi / 3)

    def test_horizon_is_not_up(self):
        assert not SunPosition(azimuth=0.0, altitude=0.0).is_up


class TestToUtc:
    def test_naive(self):
        dt = to_utc(datetime(2024, 1, 1, 10))
        assert dt.tzinfo is UTC

    def test_aware(self):
        dt = to_utc(datetime(2024, 1, 1, 10, tzinfo=timezone(timedelta(hours=-5))))
        assert dt.hour == 15
