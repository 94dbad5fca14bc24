"""Shared enumerations for Tether."""

from enum import Enum


class LogLevel(str, Enum):
    """Log verbosity level."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


class LogFormat(str, Enum):
    """Log output format."""

    COLORED = "colored"
    JSON = "json"


class ConnectionStatus(str, Enum):
    """MCP server connection status."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"


class StderrKind(str, Enum):
    """Classification of a proxy process stderr line."""

    OAUTH_FLOW = "oauth_flow"
    AUTH_SUCCESS = "auth_success"
    DIAGNOSTIC = "diagnostic"
