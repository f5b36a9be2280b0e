"""
Solar position from the NOAA general solar position equations.

Azimuth is measured clockwise from north and altitude above the horizon,
both in radians. Accuracy is well under a degree, which is plenty for
terrain shading; atmospheric refraction is ignored.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone

from ..constants import ErrorMessages
from .errors import SunProviderUnavailableError


@dataclass(frozen=True)
class SunPosition:
    """Sun direction for one place and time."""

    azimuth: float  # radians, clockwise from north
    altitude: float  # radians, negative below the horizon

    @property
    def azimuth_deg(self) -> float:
        return math.degrees(self.azimuth)

    @property
    def altitude_deg(self) -> float:
        return math.degrees(self.altitude)

    @property
    def zenith(self) -> float:
        return math.pi / 2.0 - self.altitude

    @property
    def is_up(self) -> bool:
        return self.altitude > 0.0


def _julian_day(dt_utc: datetime) -> float:
    year, month = dt_utc.year, dt_utc.month
    day = dt_utc.day + (dt_utc.hour + dt_utc.minute / 60.0 + dt_utc.second / 3600.0) / 24.0
    if month <= 2:
        year -= 1
        month += 12
    a = year // 100
    b = 2 - a + a // 4
    return int(365.25 * (year + 4716)) + int(30.6001 * (month + 1)) + day + b - 1524.5


def to_utc(when: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if when.tzinfo is None:
        return when.replace(tzinfo=timezone.utc)
    return when.astimezone(timezone.utc)


def sun_position(when: datetime, lat: float, lon: float) -> SunPosition:
    """
    Sun azimuth and altitude at (lat, lon) for ``when``.

    Args:
        when: Date and time (naive values are treated as UTC)
        lat: Latitude in degrees
        lon: Longitude in degrees (east positive)

    Returns:
        SunPosition in radians
    """
    try:
        dt_utc = to_utc(when)
    except (AttributeError, TypeError, ValueError) as e:
        raise SunProviderUnavailableError(ErrorMessages.SUN_PROVIDER_FAILED.format(e)) from e

    t = (_julian_day(dt_utc) - 2451545.0) / 36525.0

    mean_long = (280.46646 + 36000.76983 * t + 0.0003032 * t * t) % 360.0
    mean_anom = 357.52911 + 35999.05029 * t - 0.0001537 * t * t
    eccent = 0.016708634 - 0.000042037 * t - 0.0000001267 * t * t

    m_rad = math.radians(mean_anom)
    center = (
        (1.914602 - 0.004817 * t - 0.000014 * t * t) * math.sin(m_rad)
        + (0.019993 - 0.000101 * t) * math.sin(2 * m_rad)
        + 0.000289 * math.sin(3 * m_rad)
    )

    omega = 125.04 - 1934.136 * t
    apparent_long = mean_long + center - 0.00569 - 0.00478 * math.sin(math.radians(omega))

    obliq0 = 23 + (26 + ((21.448 - (46.8150 * t + 0.00059 * t * t - 0.001813 * t**3)) / 60.0)) / 60.0
    obliq = obliq0 + 0.00256 * math.cos(math.radians(omega))

    decl = math.asin(math.sin(math.radians(obliq)) * math.sin(math.radians(apparent_long)))

    # Equation of time in minutes
    y = math.tan(math.radians(obliq / 2.0)) ** 2
    l0 = math.radians(mean_long)
    eq_time = 4.0 * math.degrees(
        y * math.sin(2 * l0)
        - 2 * eccent * math.sin(m_rad)
        + 4 * eccent * y * math.sin(m_rad) * math.cos(2 * l0)
        - 0.5 * y * y * math.sin(4 * l0)
        - 1.25 * eccent * eccent * math.sin(2 * m_rad)
    )

    minutes_utc = dt_utc.hour * 60 + dt_utc.minute + dt_utc.second / 60.0
    true_solar_minutes = (minutes_utc + eq_time + 4.0 * lon) % 1440.0
    hour_angle = math.radians(true_solar_minutes / 4.0 - 180.0)

    lat_rad = math.radians(lat)
    sin_alt = math.sin(lat_rad) * math.sin(decl) + math.cos(lat_rad) * math.cos(decl) * math.cos(
        hour_angle
    )
    altitude = math.asin(max(-1.0, min(1.0, sin_alt)))

    # atan2 gives the angle from south, positive toward west
    az_from_south = math.atan2(
        math.sin(hour_angle),
        math.cos(hour_angle) * math.sin(lat_rad) - math.tan(decl) * math.cos(lat_rad),
    )
    azimuth = (az_from_south + math.pi) % (2.0 * math.pi)

    return SunPosition(azimuth=azimuth, altitude=altitude)
