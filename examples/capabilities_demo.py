#!/usr/bin/env python3
"""
Capabilities Demo -- chuk-mcp-terrain

Quick-start script showing what the server can do, without any network
access. Lists terrain layers, server status and full capabilities, and
shows the dual output mode (JSON vs text).

Usage:
    python examples/capabilities_demo.py
"""

import asyncio

from tool_runner import ToolRunner


async def main() -> None:
    runner = ToolRunner()

    print("=" * 60)
    print("chuk-mcp-terrain -- Server Capabilities")
    print("=" * 60)

    print(f"\nRegistered tools ({len(runner.tool_names)}):")
    for name in sorted(runner.tool_names):
        print(f"  - {name}")

    layers = await runner.run("terrain_list_layers")
    print(f"\nLayers ({len(layers['layers'])}):")
    for layer in layers["layers"]:
        kind = "tile" if layer["tiled"] else "bbox"
        print(f"  {layer['id']:13s} {kind:5s} {layer['description']}")
    print(f"  Tile protocols: {', '.join(layers['protocols'])}")

    status = await runner.run("terrain_status")
    print("\nServer Status:")
    print(f"  {status['server']} v{status['version']}")
    print(f"  Storage: {status['storage_provider']}")
    print(f"  Cache: {status['tiles_cached']} tiles, {status['cache_size_mb']:.1f} MB")

    caps = await runner.run("terrain_capabilities")
    print("\nCapabilities:")
    print(f"  Tools: {caps['tool_count']}")
    print(f"  Analysis tools: {', '.join(caps['analysis_tools'])}")
    print(f"  Max zoom: {caps['max_zoom']}")
    print(f"  Tiles: {caps['tile_source']}")

    # Sun position is pure computation, no tiles needed
    sun = await runner.run(
        "terrain_sun_position", lon=11.39, lat=47.27, datetime_utc="2025-01-15T10:30:00Z"
    )
    print("\nSun over Innsbruck, 2025-01-15 10:30 UTC:")
    print(f"  Azimuth {sun['azimuth_deg']:.1f} deg, altitude {sun['altitude_deg']:.1f} deg")

    print("\n" + "-" * 60)
    print("Dual Output Mode Demo")
    print("-" * 60)

    print("\nterrain_status (output_mode='text'):")
    print(await runner.run_text("terrain_status"))

    print("\nterrain_list_layers (output_mode='text'):")
    print(await runner.run_text("terrain_list_layers"))

    await runner.close()


if __name__ == "__main__":
    asyncio.run(main())
