"""MCP tool registrations for chuk-mcp-terrain."""
