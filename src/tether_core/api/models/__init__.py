"""REST API models."""

from .common import ErrorDetail, ErrorResponse
from .connection import (
    ConnectionListResponse,
    ConnectionResponse,
    ConnectRequest,
    SDKServersResponse,
    ToolCallRequest,
    ToolCallResponse,
    ToolEntryResponse,
    ToolListResponse,
    ToolResponse,
)

__all__ = [
    # Common
    "ErrorDetail",
    "ErrorResponse",
    # Connections
    "ConnectRequest",
    "ConnectionResponse",
    "ConnectionListResponse",
    "SDKServersResponse",
    # Tools
    "ToolResponse",
    "ToolEntryResponse",
    "ToolListResponse",
    "ToolCallRequest",
    "ToolCallResponse",
]
