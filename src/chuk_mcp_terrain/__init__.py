"""
chuk-mcp-terrain: Avalanche Terrain Analysis MCP Server

Decodes Terrarium elevation tiles and renders slope-class, slope-aspect and
terrain-shadow layers for backcountry map views. Also computes sun position
and GPX route statistics. Rendered layers are stored in chuk-artifacts.
"""
