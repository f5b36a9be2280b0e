"""
Shared helper for running chuk-mcp-terrain MCP tools directly from Python.

Provides a ToolRunner class that registers all MCP tools and sets up
an in-memory artifact store, without requiring a full MCP transport layer.
Demo scripts use this to call tools as plain async functions.

Usage:
    from tool_runner import ToolRunner

    async def main():
        runner = ToolRunner()
        result = await runner.run("terrain_list_layers")
        print(result)
"""

from __future__ import annotations

import json
import os
from typing import Any

from chuk_artifacts import ArtifactStore
from chuk_mcp_server import set_global_artifact_store

from chuk_mcp_terrain.core.terrain_manager import TerrainManager
from chuk_mcp_terrain.tools.analysis import register_analysis_tools
from chuk_mcp_terrain.tools.discovery import register_discovery_tools
from chuk_mcp_terrain.tools.tiles import register_tile_tools


class _MiniMCP:
    """Minimal MCP server that captures tools registered via @mcp.tool."""

    def __init__(self) -> None:
        self._tools: dict[str, Any] = {}

    def tool(self) -> Any:
        def decorator(fn: Any) -> Any:
            self._tools[fn.__name__] = fn
            return fn

        return decorator

    def get_tool(self, name: str) -> Any:
        return self._tools[name]


class ToolRunner:
    """
    Run chuk-mcp-terrain MCP tools directly from Python.

    All tools are registered and callable via run(tool_name, **kwargs),
    sharing one TerrainManager and therefore one elevation tile cache.
    """

    def __init__(self) -> None:
        os.environ.setdefault("CHUK_ARTIFACTS_PROVIDER", "memory")
        set_global_artifact_store(
            ArtifactStore(storage_provider="memory", session_provider="memory")
        )

        self._mcp = _MiniMCP()
        self.manager = TerrainManager()
        register_discovery_tools(self._mcp, self.manager)
        register_tile_tools(self._mcp, self.manager)
        register_analysis_tools(self._mcp, self.manager)

    @property
    def tool_names(self) -> list[str]:
        return list(self._mcp._tools.keys())

    async def run(self, tool_name: str, **kwargs: Any) -> dict[str, Any]:
        """Call a tool by name and return parsed JSON."""
        raw = await self._mcp.get_tool(tool_name)(**kwargs)
        return json.loads(raw)

    async def run_text(self, tool_name: str, **kwargs: Any) -> str:
        """Call a tool by name with output_mode='text'."""
        return await self._mcp.get_tool(tool_name)(output_mode="text", **kwargs)

    async def retrieve(self, artifact_ref: str) -> bytes:
        """Fetch a stored raster from the artifact store."""
        return await self.manager._get_store().retrieve(artifact_ref)

    async def close(self) -> None:
        await self.manager.close()
