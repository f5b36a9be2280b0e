"""
Constants for chuk-mcp-terrain server.

All magic strings, tile source settings, colour tables, and configuration values live here.
"""


class ServerConfig:
    NAME = "chuk-mcp-terrain"
    VERSION = "0.1.0"
    DESCRIPTION = "Avalanche Terrain Analysis MCP Server (slope, aspect, terrain shadow)"


class StorageProvider:
    MEMORY = "memory"
    S3 = "s3"
    FILESYSTEM = "filesystem"


class SessionProvider:
    MEMORY = "memory"
    REDIS = "redis"


class EnvVar:
    ARTIFACTS_PROVIDER = "CHUK_ARTIFACTS_PROVIDER"
    BUCKET_NAME = "BUCKET_NAME"
    REDIS_URL = "REDIS_URL"
    ARTIFACTS_PATH = "CHUK_ARTIFACTS_PATH"
    AWS_ACCESS_KEY_ID = "AWS_ACCESS_KEY_ID"
    AWS_SECRET_ACCESS_KEY = "AWS_SECRET_ACCESS_KEY"
    AWS_ENDPOINT_URL_S3 = "AWS_ENDPOINT_URL_S3"
    MCP_STDIO = "MCP_STDIO"
    TILE_URL = "TERRAIN_TILE_URL"
    HTTP_TIMEOUT = "TERRAIN_HTTP_TIMEOUT"


# ---------------------------------------------------------------------------
# Elevation tile source (Mapzen Terrarium on AWS Open Data)
# ---------------------------------------------------------------------------

TERRARIUM_URL_TEMPLATE = "https://s3.amazonaws.com/elevation-tiles-prod/terrarium/{z}/{x}/{y}.png"
TILE_SIZE = 256
MAX_TILE_ZOOM = 15  # Terrarium dataset limit
TERRARIUM_OFFSET_M = 32768.0
TILE_SOURCE_ATTRIBUTION = "Elevation: Mapzen Terrarium (AWS Open Data)"

HTTP_TIMEOUT_S = 30.0

# Cache & retry
TILE_CACHE_MAX_BYTES = 256 * 1024 * 1024  # 256 MB of decoded float64 tiles
RETRY_ATTEMPTS = 3
RETRY_WAIT_MIN = 1
RETRY_WAIT_MAX = 10

# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

EARTH_CIRCUMFERENCE_M = 40075016.686
EARTH_RADIUS_M = 6371000.0
METERS_PER_DEGREE = 111000.0  # flat-earth ray step conversion

# ---------------------------------------------------------------------------
# Shadow ray-casting
# ---------------------------------------------------------------------------

RAY_STEP_DEG = 0.0005  # ~50 m per step
RAY_MAX_STEPS = 100  # steps 1..99, ~5 km search radius
SHADOW_PRELOAD_MARGIN_DEG = 0.05
DEFAULT_SHADOW_RESOLUTION = 64
MAX_SHADOW_RESOLUTION = 512
MIN_SHADOW_ZOOM = 11
DEFAULT_SHADOW_ZOOM = 13

# ---------------------------------------------------------------------------
# Layers and colours (RGBA)
# ---------------------------------------------------------------------------


class TerrainLayer:
    SLOPE = "slope"
    SLOPE_ASPECT = "slope-aspect"
    SHADOW = "shadow"


TILE_LAYERS = [TerrainLayer.SLOPE, TerrainLayer.SLOPE_ASPECT]
ALL_LAYERS = [TerrainLayer.SLOPE, TerrainLayer.SLOPE_ASPECT, TerrainLayer.SHADOW]

LAYER_DESCRIPTIONS: dict[str, str] = {
    TerrainLayer.SLOPE: "Avalanche slope classes: 27/30/35/40/45 degree bands, transparent below 27",
    TerrainLayer.SLOPE_ASPECT: "Slopes of 20 degrees and steeper coloured by 8-sector aspect",
    TerrainLayer.SHADOW: "Terrain shadow for a date and time, ray-cast toward the sun",
}

TRANSPARENT = (0, 0, 0, 0)

# Highest threshold first; lower bound inclusive.
SLOPE_CLASSES: list[tuple[float, tuple[int, int, int, int]]] = [
    (45.0, (26, 0, 51, 204)),  # #1a0033
    (40.0, (153, 0, 0, 204)),  # #990000
    (35.0, (255, 0, 0, 204)),  # #ff0000
    (30.0, (255, 128, 0, 204)),  # #ff8000
    (27.0, (255, 255, 0, 204)),  # #ffff00
]

ASPECT_MIN_SLOPE_DEG = 20.0
ASPECT_DIRECTIONS = ["N", "NE", "E", "SE", "S", "SW", "W", "NW"]
ASPECT_SECTOR_DEG = 45.0

ASPECT_COLORS: dict[str, tuple[int, int, int, int]] = {
    "N": (59, 130, 246, 204),  # blue
    "NE": (34, 211, 238, 204),  # cyan
    "E": (34, 197, 94, 204),  # green
    "SE": (163, 230, 53, 204),  # yellow-green
    "S": (239, 68, 68, 204),  # red
    "SW": (251, 146, 60, 204),  # orange
    "W": (250, 204, 21, 204),  # yellow
    "NW": (168, 85, 247, 204),  # purple
}

SHADOW_COLOR = (0, 0, 40, 160)

# ---------------------------------------------------------------------------
# Route statistics
# ---------------------------------------------------------------------------

ROUTE_ASPECT_MIN_SLOPE_DEG = 15.0
DEFAULT_PRIMARY_ASPECT = "N"

ANALYSIS_TOOLS = ["point", "sun_position", "shadow_layer", "route_stats"]
OUTPUT_FORMATS = ["png"]


class ErrorMessages:
    INVALID_BBOX = "Invalid bounding box: must be [west, south, east, north]"
    INVALID_BBOX_VALUES = "Invalid bounding box values: west ({}) must be < east ({})"
    INVALID_BBOX_LAT = "Invalid bounding box values: south ({}) must be < north ({})"
    INVALID_LAYER = "Invalid layer '{}'. Available: {}"
    INVALID_ZOOM = "zoom must be between 0 and {}, got {}"
    INVALID_TILE = "Tile {}/{}/{} is outside the tile grid"
    INVALID_RESOLUTION = "resolution must be between 1 and {}, got {}"
    INVALID_DATETIME = "Invalid datetime '{}': expected ISO 8601 (e.g. 2025-01-15T10:30:00Z)"
    INVALID_PROTOCOL_URL = "Invalid tile URL '{}': expected <protocol>://z/x/y"
    UNKNOWN_PROTOCOL = "No tile protocol registered for '{}'. Registered: {}"
    TILE_UNAVAILABLE = "Elevation tile {}/{}/{} unavailable: {}"
    TILE_DECODE_FAILED = "Elevation tile {}/{}/{} could not be decoded: {}"
    TILE_WRONG_SIZE = "Elevation tile must be {}x{} pixels, got {}x{}"
    INVALID_COORDINATES = (
        "Invalid coordinates ({}, {}): lon must be within [-180, 180], lat within [-85.05, 85.05]"
    )
    NO_TILES_LOADED = "No elevation tiles could be loaded for the requested area"
    SUN_PROVIDER_FAILED = "Sun position could not be computed: {}"
    EMPTY_ROUTE = "Route needs at least 2 track points, got {}"
    INVALID_GPX = "Could not parse GPX: {}"
    NO_ARTIFACT_STORE = (
        "No artifact store available. Configure CHUK_ARTIFACTS_PROVIDER "
        "environment variable (memory, filesystem, or s3)."
    )


class SuccessMessages:
    STATUS = "Terrain MCP Server v{} ({} layers, storage: {})"
    LAYERS_LIST = "{} terrain layers available"
    TILE_COMPLETE = "{} tile {}/{}/{} rendered"
    POINT_TERRAIN = "Elevation {:.1f}m, slope {:.1f} deg facing {}"
    SUN_POSITION = "Sun azimuth {:.1f} deg, altitude {:.1f} deg"
    SHADOW_COMPLETE = "Shadow layer computed ({}x{}, {:.1f}% in shadow)"
    ROUTE_COMPLETE = "Route analysed: {:.2f} km, primary aspect {}"
