"""Exception types for the terrain core."""


class TerrainError(Exception):
    """Base class for terrain pipeline failures."""


class TileUnavailableError(TerrainError):
    """An elevation tile could not be fetched (network failure or non-200 response)."""


class TileDecodeError(TileUnavailableError):
    """An elevation tile was fetched but is not a valid 256x256 Terrarium image."""


class SunProviderUnavailableError(TerrainError):
    """The sun-position routine failed or is misconfigured."""


class LayerGenerationError(TerrainError):
    """A whole layer could not be produced (e.g. no tiles loaded for the area)."""
