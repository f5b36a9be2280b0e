#!/usr/bin/env python3
"""
Async Terrain MCP Server using chuk-mcp-server

Avalanche terrain analysis from Terrarium elevation tiles: slope classes,
slope aspect, terrain shadow for a given sun position, and GPX route
statistics. Rendered layers are stored in chuk-artifacts.

Storage is managed through chuk-mcp-server's built-in artifact store context.
"""

import logging

from chuk_mcp_server import ChukMCPServer

from .constants import ServerConfig
from .core.terrain_manager import TerrainManager
from .tools.analysis import register_analysis_tools
from .tools.discovery import register_discovery_tools
from .tools.tiles import register_tile_tools

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create the MCP server instance
mcp = ChukMCPServer(ServerConfig.NAME)

# One manager, so every tool shares the elevation tile cache
manager = TerrainManager()

# Register all tool modules
register_discovery_tools(mcp, manager)
register_tile_tools(mcp, manager)
register_analysis_tools(mcp, manager)

# Run the server
if __name__ == "__main__":
    logger.info("Starting Terrain MCP Server...")
    logger.info("Storage: Using chuk-mcp-server artifact store context")
    mcp.run(stdio=True)
