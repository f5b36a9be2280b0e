"""
Route statistics from GPX tracks.

Distances are great-circle (haversine). Segment aspect is the travel bearing,
flipped by 180 degrees on climbing segments since a slope walked uphill
faces the opposite way. Aspect sectors match the terrain layers.
"""

import logging
import math
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

from ..constants import (
    ASPECT_DIRECTIONS,
    DEFAULT_PRIMARY_ASPECT,
    EARTH_RADIUS_M,
    ROUTE_ASPECT_MIN_SLOPE_DEG,
    ErrorMessages,
)
from .slope import classify_aspect

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrackPoint:
    lat: float
    lon: float
    ele: float = 0.0


@dataclass
class RouteStats:
    """Summary statistics for one track."""

    name: str
    point_count: int
    distance_km: float
    ascent_m: int
    descent_m: int
    elevation_min_m: int
    elevation_max_m: int
    max_slope_deg: int
    avg_slope_deg: float
    primary_aspect: str
    aspect_breakdown: dict[str, float] = field(default_factory=dict)


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in metres.

    Args:
        lat1, lon1: First point (degrees)
        lat2, lon2: Second point (degrees)

    Returns:
        Distance in metres
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlam = math.radians(lon2 - lon1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlam / 2) ** 2
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def initial_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Initial great-circle bearing from point 1 to point 2, degrees in [0, 360)."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dlam = math.radians(lon2 - lon1)

    y = math.sin(dlam) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(dlam)
    return (math.degrees(math.atan2(y, x)) + 360.0) % 360.0


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def parse_gpx(text: str | bytes) -> list[TrackPoint]:
    """
    Extract ``trkpt`` points from a GPX document, any namespace.

    A point without ``<ele>`` gets elevation 0.

    Raises:
        ValueError: If the document is not well-formed XML or a point has
            unparseable coordinates
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise ValueError(ErrorMessages.INVALID_GPX.format(e)) from e

    points = []
    for elem in root.iter():
        if _local_name(elem.tag) != "trkpt":
            continue
        try:
            lat = float(elem.attrib["lat"])
            lon = float(elem.attrib["lon"])
        except (KeyError, ValueError) as e:
            raise ValueError(ErrorMessages.INVALID_GPX.format(f"bad trkpt {elem.attrib}")) from e

        ele = 0.0
        for child in elem:
            if _local_name(child.tag) == "ele" and child.text:
                ele = float(child.text.strip())
                break
        points.append(TrackPoint(lat=lat, lon=lon, ele=ele))

    return points


def segment_slope_aspect(p1: TrackPoint, p2: TrackPoint, distance: float) -> tuple[float, float]:
    """
    Slope magnitude and slope aspect of a track segment, both in degrees.

    ``distance`` must be positive.
    """
    rise = p2.ele - p1.ele
    slope = abs(math.degrees(math.atan(rise / distance)))
    aspect = initial_bearing(p1.lat, p1.lon, p2.lat, p2.lon)
    if rise > 0:
        aspect = (aspect + 180.0) % 360.0
    return slope, aspect


def _pick_primary(distances: dict[str, float]) -> str | None:
    best = None
    best_distance = 0.0
    for direction in ASPECT_DIRECTIONS:
        if distances[direction] > best_distance:
            best_distance = distances[direction]
            best = direction
    return best


def route_name(filename: str) -> str:
    """Display name for a GPX file: the filename without its .gpx suffix."""
    return re.sub(r"\.gpx$", "", filename, flags=re.IGNORECASE)


def analyze_track(points: list[TrackPoint], name: str = "route") -> RouteStats:
    """
    Distance, climb, slope and aspect statistics for a track.

    The aspect breakdown covers segments at or above 15 degrees, weighted by
    distance. The primary aspect is taken from steep descending segments,
    falling back to the breakdown and then to north.

    Raises:
        ValueError: If the track has fewer than two points
    """
    if len(points) < 2:
        raise ValueError(ErrorMessages.EMPTY_ROUTE.format(len(points)))

    total_distance = 0.0
    ascent = 0.0
    descent = 0.0
    ele_min = math.inf
    ele_max = -math.inf
    max_slope = 0.0
    slope_distance = 0.0

    steep = dict.fromkeys(ASPECT_DIRECTIONS, 0.0)
    steep_descent = dict.fromkeys(ASPECT_DIRECTIONS, 0.0)
    steep_total = 0.0

    for p1, p2 in zip(points, points[1:]):
        distance = haversine_distance(p1.lat, p1.lon, p2.lat, p2.lon)
        total_distance += distance

        rise = p2.ele - p1.ele
        if rise > 0:
            ascent += rise
        elif rise < 0:
            descent -= rise

        ele_min = min(ele_min, p1.ele, p2.ele)
        ele_max = max(ele_max, p1.ele, p2.ele)

        if distance <= 0.0:
            continue

        slope, aspect = segment_slope_aspect(p1, p2, distance)
        max_slope = max(max_slope, slope)
        slope_distance += slope * distance

        if slope >= ROUTE_ASPECT_MIN_SLOPE_DEG:
            sector = classify_aspect(aspect)
            steep[sector] += distance
            steep_total += distance
            if rise < 0:
                steep_descent[sector] += distance

    breakdown = {
        d: (round(steep[d] / steep_total * 100.0, 1) if steep_total > 0 else 0.0)
        for d in ASPECT_DIRECTIONS
    }
    avg_slope = slope_distance / total_distance if total_distance > 0 else 0.0
    primary = _pick_primary(steep_descent) or _pick_primary(steep) or DEFAULT_PRIMARY_ASPECT

    logger.debug(f"Analysed route '{name}': {len(points)} points, primary aspect {primary}")

    return RouteStats(
        name=name,
        point_count=len(points),
        distance_km=round(total_distance / 1000.0, 2),
        ascent_m=round(ascent),
        descent_m=round(descent),
        elevation_min_m=round(ele_min),
        elevation_max_m=round(ele_max),
        max_slope_deg=round(max_slope),
        avg_slope_deg=round(avg_slope, 1),
        primary_aspect=primary,
        aspect_breakdown=breakdown,
    )
