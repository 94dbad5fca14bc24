"""Tether Core - remote MCP servers behind local stdio proxies.

Spawns one proxy process per remote server, speaks newline-delimited
JSON-RPC over its stdio, and persists connection metadata across restarts.
"""

from tether_core.application import TetherApplication

__version__ = "1.0.0"
__all__ = ["__version__", "TetherApplication"]
