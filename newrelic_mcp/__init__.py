"""MCP server exposing New Relic's NerdGraph and REST v2 APIs as tools."""

__version__ = "2.0.0"
