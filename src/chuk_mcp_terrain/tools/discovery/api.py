"""
Discovery tools: server status, capabilities and terrain layer listing.

These tools require no network I/O and report on the available layers,
the tile cache and the storage configuration.
"""

import logging
import os

from ...constants import (
    ALL_LAYERS,
    ANALYSIS_TOOLS,
    LAYER_DESCRIPTIONS,
    MAX_TILE_ZOOM,
    OUTPUT_FORMATS,
    TILE_LAYERS,
    TILE_SOURCE_ATTRIBUTION,
    EnvVar,
    ServerConfig,
    StorageProvider,
    SuccessMessages,
)
from ...models.responses import (
    CapabilitiesResponse,
    ErrorResponse,
    LayerInfo,
    LayersResponse,
    StatusResponse,
    format_response,
)

logger = logging.getLogger(__name__)


def _layer_infos() -> list[LayerInfo]:
    return [
        LayerInfo(id=layer, description=LAYER_DESCRIPTIONS[layer], tiled=layer in TILE_LAYERS)
        for layer in ALL_LAYERS
    ]


def register_discovery_tools(mcp, manager):
    """Register discovery tools with the MCP server."""

    @mcp.tool()
    async def terrain_list_layers(output_mode: str = "json") -> str:
        """List the terrain layers this server can render.

        slope and slope-aspect are rendered per z/x/y tile; shadow is computed
        over a bounding box for a given date and time.

        Args:
            output_mode: "json" for structured data, "text" for human-readable summary

        Returns:
            Available layers with descriptions and registered tile protocols
        """
        try:
            layers = _layer_infos()
            response = LayersResponse(
                layers=layers,
                protocols=manager.protocols.names,
                message=SuccessMessages.LAYERS_LIST.format(len(layers)),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"terrain_list_layers failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def terrain_status(output_mode: str = "json") -> str:
        """Get server status including version, layers, tile cache and storage configuration.

        Args:
            output_mode: "json" for structured data, "text" for human-readable summary

        Returns:
            Server status information
        """
        try:
            provider = os.environ.get(EnvVar.ARTIFACTS_PROVIDER, StorageProvider.MEMORY)

            store_available = False
            try:
                manager._get_store()
                store_available = True
            except Exception:
                pass

            stats = manager.cache_stats()

            response = StatusResponse(
                server=ServerConfig.NAME,
                version=ServerConfig.VERSION,
                available_layers=ALL_LAYERS,
                storage_provider=provider,
                artifact_store_available=store_available,
                tiles_cached=stats["tiles"],
                tiles_unavailable=stats["unavailable"],
                cache_size_mb=round(stats["bytes"] / (1024 * 1024), 1),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"terrain_status failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def terrain_capabilities(output_mode: str = "json") -> str:
        """Get full server capabilities including layers, analysis tools and output formats.

        Args:
            output_mode: "json" for structured data, "text" for human-readable summary

        Returns:
            Complete server capabilities
        """
        try:
            response = CapabilitiesResponse(
                server=ServerConfig.NAME,
                version=ServerConfig.VERSION,
                layers=_layer_infos(),
                analysis_tools=ANALYSIS_TOOLS,
                output_formats=OUTPUT_FORMATS,
                max_zoom=MAX_TILE_ZOOM,
                tile_source=TILE_SOURCE_ATTRIBUTION,
                tool_count=8,
                llm_guidance=(
                    "Use terrain_list_layers to see available layers. "
                    "Use terrain_tile to render slope or slope-aspect for a z/x/y tile. "
                    "Use terrain_point for elevation, slope and aspect at a location. "
                    "Use terrain_sun_position to check sun azimuth/altitude for a time. "
                    "Use terrain_shadow_layer to compute terrain shadow over a bbox. "
                    "Use terrain_route_stats to summarise a GPX track. "
                    "Slopes of 30 degrees and steeper are avalanche terrain."
                ),
                message=f"{ServerConfig.NAME} v{ServerConfig.VERSION} capabilities",
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"terrain_capabilities failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)
