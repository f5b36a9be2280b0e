"""Response models for chuk-mcp-terrain."""

from .responses import (
    CapabilitiesResponse,
    ErrorResponse,
    LayerInfo,
    LayersResponse,
    PointTerrainResponse,
    RouteStatsResponse,
    ShadowLayerResponse,
    StatusResponse,
    SunPositionResponse,
    TileResponse,
    format_response,
)

__all__ = [
    "ErrorResponse",
    "LayerInfo",
    "LayersResponse",
    "StatusResponse",
    "CapabilitiesResponse",
    "TileResponse",
    "PointTerrainResponse",
    "SunPositionResponse",
    "ShadowLayerResponse",
    "RouteStatsResponse",
    "format_response",
]
