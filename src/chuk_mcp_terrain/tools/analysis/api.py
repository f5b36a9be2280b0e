"""
Analysis tools: sun position, terrain shadow layer and GPX route statistics.
"""

import logging

from ...constants import (
    DEFAULT_SHADOW_RESOLUTION,
    DEFAULT_SHADOW_ZOOM,
    SuccessMessages,
)
from ...core.route_stats import route_name
from ...models.responses import (
    ErrorResponse,
    RouteStatsResponse,
    ShadowLayerResponse,
    SunPositionResponse,
    format_response,
)

logger = logging.getLogger(__name__)


def register_analysis_tools(mcp, manager):
    """Register analysis tools with the MCP server."""

    @mcp.tool()
    async def terrain_sun_position(
        lon: float,
        lat: float,
        datetime_utc: str | None = None,
        output_mode: str = "json",
    ) -> str:
        """Compute the sun's azimuth and altitude at a location and time.

        Args:
            lon: Longitude in decimal degrees
            lat: Latitude in decimal degrees
            datetime_utc: ISO 8601 time, e.g. 2025-01-15T10:30:00Z (default: now)
            output_mode: "json" or "text"

        Returns:
            Sun azimuth (clockwise from north) and altitude in degrees
        """
        try:
            result = await manager.sun_position(lon, lat, datetime_utc)

            response = SunPositionResponse(
                lon=lon,
                lat=lat,
                datetime_utc=result.datetime_utc,
                azimuth_deg=result.azimuth_deg,
                altitude_deg=result.altitude_deg,
                is_up=result.is_up,
                message=SuccessMessages.SUN_POSITION.format(
                    result.azimuth_deg, result.altitude_deg
                ),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"terrain_sun_position failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def terrain_shadow_layer(
        bbox: list[float],
        datetime_utc: str | None = None,
        zoom: int = DEFAULT_SHADOW_ZOOM,
        resolution: int = DEFAULT_SHADOW_RESOLUTION,
        output_mode: str = "json",
    ) -> str:
        """Compute terrain shadow over a bounding box for a given time.

        Each output pixel casts a ray toward the sun over the elevation tiles
        (about 5 km reach) and is shaded if the terrain blocks the sun. When
        the sun is below the horizon every pixel is in shadow.

        Args:
            bbox: Bounding box [west, south, east, north] in EPSG:4326
            datetime_utc: ISO 8601 time, e.g. 2025-01-15T10:30:00Z (default: now)
            zoom: Elevation tile zoom (raised to at least 11)
            resolution: Output size in pixels per side (1-512, default 64)
            output_mode: "json" or "text"

        Returns:
            PNG shadow layer artifact with shadowed percentage and sun angles
        """
        try:
            result = await manager.shadow_layer(
                bbox=bbox,
                zoom=zoom,
                when=datetime_utc,
                resolution=resolution,
            )

            response = ShadowLayerResponse(
                bbox=result.bbox,
                zoom=result.zoom,
                resolution=result.resolution,
                datetime_utc=result.datetime_utc,
                artifact_ref=result.artifact_ref,
                shadow_percentage=result.shadow_percentage,
                sun_azimuth_deg=result.sun_azimuth_deg,
                sun_altitude_deg=result.sun_altitude_deg,
                message=SuccessMessages.SHADOW_COMPLETE.format(
                    result.resolution, result.resolution, result.shadow_percentage
                ),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"terrain_shadow_layer failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def terrain_route_stats(
        gpx: str,
        filename: str = "route.gpx",
        output_mode: str = "json",
    ) -> str:
        """Summarise a GPX track: distance, climb, slope and aspect of steep sections.

        The aspect breakdown covers segments of 15 degrees and steeper. The
        primary aspect is taken from steep descents.

        Args:
            gpx: GPX document text containing <trkpt> elements
            filename: File name used to derive the route name
            output_mode: "json" or "text"

        Returns:
            Route statistics with aspect breakdown
        """
        try:
            stats = await manager.analyze_route(gpx, route_name(filename))

            response = RouteStatsResponse(
                name=stats.name,
                point_count=stats.point_count,
                distance_km=stats.distance_km,
                ascent_m=stats.ascent_m,
                descent_m=stats.descent_m,
                elevation_min_m=stats.elevation_min_m,
                elevation_max_m=stats.elevation_max_m,
                max_slope_deg=stats.max_slope_deg,
                avg_slope_deg=stats.avg_slope_deg,
                primary_aspect=stats.primary_aspect,
                aspect_breakdown=stats.aspect_breakdown,
                message=SuccessMessages.ROUTE_COMPLETE.format(
                    stats.distance_km, stats.primary_aspect
                ),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"terrain_route_stats failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)
