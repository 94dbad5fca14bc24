"""Tether MCP client - proxy processes, JSON-RPC framing and connection state."""

from .connection import TRANSITIONS, MCPConnection, transition
from .correlator import RequestCorrelator
from .manager import MCPClientManager
from .protocol import FrameDecoder, JSONRPCMessage, read_frames
from .store import ConnectionStore, InMemoryConnectionStore, JSONFileConnectionStore
from .supervisor import ProcessSupervisor, ProxyProcess, classify_stderr
from .types import Connection, LaunchDescriptor, Tool, ToolEntry

__all__ = [
    # Manager
    "MCPClientManager",
    # Connection
    "MCPConnection",
    "TRANSITIONS",
    "transition",
    # Process
    "ProcessSupervisor",
    "ProxyProcess",
    "classify_stderr",
    # Protocol
    "JSONRPCMessage",
    "FrameDecoder",
    "read_frames",
    "RequestCorrelator",
    # Store
    "ConnectionStore",
    "InMemoryConnectionStore",
    "JSONFileConnectionStore",
    # Types
    "Connection",
    "LaunchDescriptor",
    "Tool",
    "ToolEntry",
]
