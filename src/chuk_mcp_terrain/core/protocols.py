"""
Named tile protocols addressed as ``<name>://z/x/y``.

Handlers are async callables taking (z, x, y). Registration is idempotent:
the first handler registered under a name stays in place.
"""

import logging
import re
from collections.abc import Awaitable, Callable
from typing import Any

from ..constants import ErrorMessages

logger = logging.getLogger(__name__)

TileHandler = Callable[[int, int, int], Awaitable[Any]]

_URL_RE = re.compile(r"^(?P<name>[a-z][a-z0-9+.-]*)://(?P<z>\d+)/(?P<x>\d+)/(?P<y>\d+)$")


class ProtocolRegistry:
    """Maps protocol names to tile handlers."""

    def __init__(self) -> None:
        self._handlers: dict[str, TileHandler] = {}

    def register(self, name: str, handler: TileHandler) -> bool:
        """Register ``handler`` under ``name``. Returns False if the name is taken."""
        if name in self._handlers:
            logger.debug(f"Tile protocol '{name}' already registered")
            return False
        self._handlers[name] = handler
        return True

    def is_registered(self, name: str) -> bool:
        return name in self._handlers

    @property
    def names(self) -> list[str]:
        return sorted(self._handlers)

    @staticmethod
    def parse_url(url: str) -> tuple[str, int, int, int]:
        """Split ``name://z/x/y`` into (name, z, x, y)."""
        match = _URL_RE.match(url.strip())
        if match is None:
            raise ValueError(ErrorMessages.INVALID_PROTOCOL_URL.format(url))
        return match["name"], int(match["z"]), int(match["x"]), int(match["y"])

    async def resolve(self, url: str) -> Any:
        """Dispatch a tile URL to its handler and return the handler's result."""
        name, z, x, y = self.parse_url(url)
        handler = self._handlers.get(name)
        if handler is None:
            raise ValueError(ErrorMessages.UNKNOWN_PROTOCOL.format(name, ", ".join(self.names)))
        return await handler(z, x, y)
