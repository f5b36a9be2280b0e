"""
Tile tools: slope and slope-aspect tile rendering, point terrain queries.

These tools load Terrarium elevation tiles over the network (once per tile)
and store rendered PNGs in the artifact store.
"""

import logging

from ...constants import MAX_TILE_ZOOM, SuccessMessages, TerrainLayer
from ...models.responses import (
    ErrorResponse,
    PointTerrainResponse,
    TileResponse,
    format_response,
)

logger = logging.getLogger(__name__)


def register_tile_tools(mcp, manager):
    """Register tile tools with the MCP server."""

    @mcp.tool()
    async def terrain_tile(
        z: int,
        x: int,
        y: int,
        layer: str = TerrainLayer.SLOPE,
        output_mode: str = "json",
    ) -> str:
        """Render a slope or slope-aspect overlay for one slippy-map tile as a 256x256 PNG.

        slope colours avalanche slope classes: 27-30 yellow, 30-35 orange,
        35-40 red, 40-45 dark red, 45+ purple. slope-aspect colours slopes of
        20 degrees and steeper by the compass direction they face.

        Args:
            z: Zoom level (0-15)
            x: Tile column
            y: Tile row
            layer: "slope" or "slope-aspect"
            output_mode: "json" or "text"

        Returns:
            PNG tile artifact with elevation and slope ranges
        """
        try:
            result = await manager.render_tile(layer, z, x, y)

            response = TileResponse(
                layer=result.layer,
                tile=[result.z, result.x, result.y],
                artifact_ref=result.artifact_ref,
                meters_per_pixel=result.meters_per_pixel,
                elevation_range=result.elevation_range,
                slope_range=result.slope_range,
                coverage_percentage=result.coverage_percentage,
                message=SuccessMessages.TILE_COMPLETE.format(layer, z, x, y),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"terrain_tile failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def terrain_point(
        lon: float,
        lat: float,
        zoom: int = MAX_TILE_ZOOM,
        output_mode: str = "json",
    ) -> str:
        """Get elevation, slope and aspect at a single point.

        Args:
            lon: Longitude in decimal degrees
            lat: Latitude in decimal degrees
            zoom: Elevation tile zoom (0-15, default 15 for ~4 m pixels at mid-latitudes)
            output_mode: "json" or "text"

        Returns:
            Elevation in metres, slope in degrees, aspect bearing and compass sector
        """
        try:
            result = await manager.point_terrain(lon, lat, zoom)

            response = PointTerrainResponse(
                lon=result.lon,
                lat=result.lat,
                zoom=result.zoom,
                tile=result.tile,
                elevation_m=result.elevation_m,
                slope_deg=result.slope_deg,
                aspect_deg=result.aspect_deg,
                aspect_direction=result.aspect_direction,
                message=SuccessMessages.POINT_TERRAIN.format(
                    result.elevation_m, result.slope_deg, result.aspect_direction
                ),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"terrain_point failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)
