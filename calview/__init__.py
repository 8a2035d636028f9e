"""Interactive terminal calendar browser over a calendar MCP server"""

__version__ = "0.1.0"
