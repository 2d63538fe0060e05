"""Expose configured shell commands and resources to agents over MCP."""

__version__ = "0.3.0"
