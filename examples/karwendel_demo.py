#!/usr/bin/env python3
"""
Karwendel Avalanche Terrain -- chuk-mcp-terrain Demo

Runs the terrain pipeline over the Karwendel north of Innsbruck:
    terrain_tile (slope, slope-aspect) -> terrain_point ->
    terrain_sun_position -> terrain_shadow_layer -> terrain_route_stats

Rendered PNGs are retrieved from the artifact store and written to
examples/output/.

Usage:
    python examples/karwendel_demo.py

Requirements:
    pip install chuk-mcp-terrain
    (Requires network access to the AWS Terrarium elevation tiles)
"""

import asyncio
from pathlib import Path

from tool_runner import ToolRunner

# -- Configuration -----------------------------------------------------------

TILE = (12, 2177, 1435)  # Nordkette above Innsbruck
PEAK = (11.4217, 47.3117)  # Hafelekarspitze (lon, lat)
BBOX = [11.36, 47.29, 11.46, 47.34]
WHEN = "2025-01-15T14:00:00Z"
OUTPUT_DIR = Path(__file__).parent / "output"

# Short descent off the Hafelekar ridge
GPX = """<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="demo" xmlns="http://www.topografix.com/GPX/1/1">
  <trk><name>Hafelekar north</name><trkseg>
    <trkpt lat="47.3125" lon="11.3860"><ele>2270</ele></trkpt>
    <trkpt lat="47.3150" lon="11.3865"><ele>2140</ele></trkpt>
    <trkpt lat="47.3180" lon="11.3872"><ele>1990</ele></trkpt>
    <trkpt lat="47.3215" lon="11.3880"><ele>1850</ele></trkpt>
    <trkpt lat="47.3250" lon="11.3900"><ele>1740</ele></trkpt>
  </trkseg></trk>
</gpx>
"""


async def _save(runner: ToolRunner, artifact_ref: str, name: str) -> None:
    data = await runner.retrieve(artifact_ref)
    path = OUTPUT_DIR / name
    path.write_bytes(data)
    print(f"  Saved {path}")


# -- Main pipeline -----------------------------------------------------------


async def main() -> None:
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    runner = ToolRunner()
    z, x, y = TILE

    print("=" * 60)
    print("Karwendel -- Avalanche Terrain Pipeline")
    print("=" * 60)

    print(f"\nStep 1: Slope tiles {z}/{x}/{y}...")
    for layer in ("slope", "slope-aspect"):
        tile = await runner.run("terrain_tile", z=z, x=x, y=y, layer=layer)
        if "error" in tile:
            print(f"  ERROR: {tile['error']}")
            return
        elev_min, elev_max = tile["elevation_range"]
        print(f"  {layer}: {elev_min:.0f}-{elev_max:.0f}m, {tile['coverage_percentage']}% coloured")
        await _save(runner, tile["artifact_ref"], f"karwendel_{layer}.png")

    print("\nStep 2: Terrain at Hafelekarspitze...")
    lon, lat = PEAK
    point = await runner.run_text("terrain_point", lon=lon, lat=lat)
    print("  " + point.replace("\n", "\n  "))

    print(f"\nStep 3: Sun at {WHEN}...")
    sun = await runner.run("terrain_sun_position", lon=lon, lat=lat, datetime_utc=WHEN)
    print(f"  Azimuth {sun['azimuth_deg']:.1f} deg, altitude {sun['altitude_deg']:.1f} deg")

    print("\nStep 4: Shadow layer...")
    shadow = await runner.run(
        "terrain_shadow_layer", bbox=BBOX, datetime_utc=WHEN, zoom=13, resolution=128
    )
    if "error" in shadow:
        print(f"  ERROR: {shadow['error']}")
    else:
        print(f"  {shadow['shadow_percentage']}% in shadow at z{shadow['zoom']}")
        await _save(runner, shadow["artifact_ref"], "karwendel_shadow.png")

    print("\nStep 5: Route statistics...")
    route = await runner.run_text("terrain_route_stats", gpx=GPX, filename="hafelekar.gpx")
    print("  " + route.replace("\n", "\n  "))

    status = await runner.run("terrain_status")
    print(f"\nTile cache: {status['tiles_cached']} tiles, {status['cache_size_mb']:.1f} MB")

    await runner.close()


if __name__ == "__main__":
    asyncio.run(main())
