"""
Response models for chuk-mcp-terrain tools.

All tool responses are Pydantic models for type safety and consistent API.
"""

from pydantic import BaseModel, ConfigDict, Field


def format_response(model: BaseModel, output_mode: str = "json") -> str:
    """Format a response model as JSON or human-readable text.

    Args:
        model: Pydantic response model instance
        output_mode: "json" (default) or "text"

    Returns:
        Formatted string
    """
    if output_mode == "text" and hasattr(model, "to_text"):
        return str(model.to_text())
    return str(model.model_dump_json())


class ErrorResponse(BaseModel):
    """Error response model for tool failures."""

    model_config = ConfigDict(extra="forbid")

    error: str = Field(..., description="Error message describing what went wrong")

    def to_text(self) -> str:
        return f"Error: {self.error}"


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


class LayerInfo(BaseModel):
    """Summary information about a terrain layer."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., description="Layer identifier (e.g., slope)")
    description: str = Field(..., description="What the layer shows")
    tiled: bool = Field(..., description="Whether the layer is rendered per z/x/y tile")

    def to_text(self) -> str:
        kind = "tile" if self.tiled else "bbox"
        return f"{self.id} ({kind}): {self.description}"


class LayersResponse(BaseModel):
    """Response model for listing terrain layers."""

    model_config = ConfigDict(extra="forbid")

    layers: list[LayerInfo] = Field(..., description="Available terrain layers")
    protocols: list[str] = Field(..., description="Registered tile protocol names")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [self.message, ""]
        for layer in self.layers:
            lines.append(f"  {layer.to_text()}")
        return "\n".join(lines)


class StatusResponse(BaseModel):
    """Response model for server status queries."""

    model_config = ConfigDict(extra="forbid")

    server: str = Field(default="chuk-mcp-terrain", description="Server name")
    version: str = Field(default="0.1.0", description="Server version")
    available_layers: list[str] = Field(..., description="Available terrain layer identifiers")
    storage_provider: str = Field(..., description="Active storage provider (memory/filesystem/s3)")
    artifact_store_available: bool = Field(
        default=False, description="Whether artifact store is available"
    )
    tiles_cached: int = Field(default=0, description="Decoded elevation tiles in cache", ge=0)
    tiles_unavailable: int = Field(
        default=0, description="Tiles that failed to load and are cached as unavailable", ge=0
    )
    cache_size_mb: float = Field(default=0.0, description="Current tile cache size in megabytes")

    def to_text(self) -> str:
        store_status = "available" if self.artifact_store_available else "not available"
        lines = [
            f"{self.server} v{self.version}",
            f"Layers: {', '.join(self.available_layers)}",
            f"Storage: {self.storage_provider}",
            f"Artifact store: {store_status}",
            f"Cache: {self.tiles_cached} tiles ({self.tiles_unavailable} unavailable), "
            f"{self.cache_size_mb:.1f} MB",
        ]
        return "\n".join(lines)


class CapabilitiesResponse(BaseModel):
    """Response model for server capabilities listing."""

    model_config = ConfigDict(extra="forbid")

    server: str = Field(..., description="Server name")
    version: str = Field(..., description="Server version")
    layers: list[LayerInfo] = Field(..., description="Available terrain layers")
    analysis_tools: list[str] = Field(..., description="Available analysis tool types")
    output_formats: list[str] = Field(..., description="Supported output formats")
    max_zoom: int = Field(..., description="Highest zoom served by the elevation tiles")
    tile_source: str = Field(..., description="Elevation tile source attribution")
    tool_count: int = Field(..., description="Number of available tools", ge=0)
    llm_guidance: str = Field(..., description="Guidance for LLM tool usage")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [
            f"{self.server} v{self.version}",
            f"Tools: {self.tool_count}",
            f"Layers: {', '.join(layer.id for layer in self.layers)}",
            f"Analysis: {', '.join(self.analysis_tools)}",
            f"Formats: {', '.join(self.output_formats)}",
            f"Max zoom: {self.max_zoom}",
            f"Tiles: {self.tile_source}",
            "",
            self.llm_guidance,
        ]
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Tiles and points
# ---------------------------------------------------------------------------


class TileResponse(BaseModel):
    """Response model for a rendered terrain tile."""

    model_config = ConfigDict(extra="forbid")

    layer: str = Field(..., description="Layer rendered (slope or slope-aspect)")
    tile: list[int] = Field(..., description="Tile address [z, x, y]")
    artifact_ref: str = Field(..., description="Artifact store reference for the PNG tile")
    meters_per_pixel: float = Field(..., description="Ground resolution at the tile centre")
    elevation_range: list[float] = Field(..., description="[min, max] elevation in metres")
    slope_range: list[float] = Field(..., description="[min, max] slope in degrees")
    coverage_percentage: float = Field(
        ..., description="Percentage of pixels coloured by the layer", ge=0, le=100
    )
    output_format: str = Field(default="png", description="Output format")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        z, x, y = self.tile
        lines = [
            f"Layer: {self.layer}",
            f"Tile: {z}/{x}/{y}",
            f"Artifact: {self.artifact_ref}",
            f"Resolution: {self.meters_per_pixel:.2f} m/pixel",
            f"Elevation: {self.elevation_range[0]:.1f}m - {self.elevation_range[1]:.1f}m",
            f"Slope: {self.slope_range[0]:.1f} - {self.slope_range[1]:.1f} deg",
            f"Coloured: {self.coverage_percentage:.1f}%",
        ]
        return "\n".join(lines)


class PointTerrainResponse(BaseModel):
    """Response model for a single-point terrain query."""

    model_config = ConfigDict(extra="forbid")

    lon: float = Field(..., description="Query longitude")
    lat: float = Field(..., description="Query latitude")
    zoom: int = Field(..., description="Tile zoom used for the lookup")
    tile: list[int] = Field(..., description="Tile address [z, x, y]")
    elevation_m: float = Field(..., description="Elevation in metres")
    slope_deg: float = Field(..., description="Slope in degrees", ge=0)
    aspect_deg: float = Field(..., description="Aspect bearing in degrees [0, 360)", ge=0, lt=360)
    aspect_direction: str = Field(..., description="Compass sector (N, NE, ... NW)")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [
            f"Point: ({self.lon:.6f}, {self.lat:.6f}) at z{self.zoom}",
            f"Elevation: {self.elevation_m:.1f}m",
            f"Slope: {self.slope_deg:.1f} deg",
            f"Aspect: {self.aspect_deg:.1f} deg ({self.aspect_direction})",
        ]
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------


class SunPositionResponse(BaseModel):
    """Response model for a sun position query."""

    model_config = ConfigDict(extra="forbid")

    lon: float = Field(..., description="Query longitude")
    lat: float = Field(..., description="Query latitude")
    datetime_utc: str = Field(..., description="Query time (ISO 8601, UTC)")
    azimuth_deg: float = Field(..., description="Sun azimuth, degrees clockwise from north")
    altitude_deg: float = Field(..., description="Sun altitude above the horizon in degrees")
    is_up: bool = Field(..., description="Whether the sun is above the horizon")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        state = "above" if self.is_up else "below"
        lines = [
            f"Sun at ({self.lon:.6f}, {self.lat:.6f}), {self.datetime_utc}",
            f"Azimuth: {self.azimuth_deg:.1f} deg",
            f"Altitude: {self.altitude_deg:.1f} deg ({state} horizon)",
        ]
        return "\n".join(lines)


class ShadowLayerResponse(BaseModel):
    """Response model for a terrain shadow layer."""

    model_config = ConfigDict(extra="forbid")

    bbox: list[float] = Field(..., description="Bounding box [west, south, east, north]")
    zoom: int = Field(..., description="Elevation tile zoom used for ray-marching")
    resolution: int = Field(..., description="Output raster size in pixels per side")
    datetime_utc: str = Field(..., description="Time the sun position was computed for")
    artifact_ref: str = Field(..., description="Artifact store reference for the PNG layer")
    shadow_percentage: float = Field(
        ..., description="Percentage of pixels in terrain shadow", ge=0, le=100
    )
    sun_azimuth_deg: float | None = Field(
        None, description="Sun azimuth in degrees (None if unavailable)"
    )
    sun_altitude_deg: float | None = Field(
        None, description="Sun altitude in degrees (None if unavailable)"
    )
    output_format: str = Field(default="png", description="Output format")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [
            f"Shadow layer: {self.resolution}x{self.resolution} at z{self.zoom}",
            f"Bbox: {self.bbox}",
            f"Time: {self.datetime_utc}",
            f"Artifact: {self.artifact_ref}",
            f"In shadow: {self.shadow_percentage:.1f}%",
        ]
        if self.sun_azimuth_deg is not None and self.sun_altitude_deg is not None:
            lines.append(
                f"Sun: azimuth {self.sun_azimuth_deg:.1f} deg, "
                f"altitude {self.sun_altitude_deg:.1f} deg"
            )
        else:
            lines.append("Sun: unavailable")
        return "\n".join(lines)


class RouteStatsResponse(BaseModel):
    """Response model for GPX route statistics."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., description="Route name")
    point_count: int = Field(..., description="Number of track points", ge=2)
    distance_km: float = Field(..., description="Total distance in kilometres", ge=0)
    ascent_m: int = Field(..., description="Total ascent in metres", ge=0)
    descent_m: int = Field(..., description="Total descent in metres", ge=0)
    elevation_min_m: int = Field(..., description="Lowest elevation in metres")
    elevation_max_m: int = Field(..., description="Highest elevation in metres")
    max_slope_deg: int = Field(..., description="Steepest segment slope in degrees", ge=0)
    avg_slope_deg: float = Field(..., description="Distance-weighted mean slope in degrees", ge=0)
    primary_aspect: str = Field(..., description="Dominant aspect of steep descents")
    aspect_breakdown: dict[str, float] = Field(
        ..., description="Percent of steep (>= 15 deg) distance per aspect sector"
    )
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        breakdown = ", ".join(
            f"{d} {pct:.1f}%" for d, pct in self.aspect_breakdown.items() if pct > 0
        )
        lines = [
            f"Route: {self.name} ({self.point_count} points)",
            f"Distance: {self.distance_km:.2f} km",
            f"Ascent/descent: +{self.ascent_m}m / -{self.descent_m}m",
            f"Elevation: {self.elevation_min_m}m - {self.elevation_max_m}m",
            f"Slope: max {self.max_slope_deg} deg, avg {self.avg_slope_deg:.1f} deg",
            f"Primary aspect: {self.primary_aspect}",
        ]
        if breakdown:
            lines.append(f"Steep aspects: {breakdown}")
        return "\n".join(lines)
