"""Connection and tool REST API models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tether_core.mcp.types import Connection, Tool, ToolEntry
from tether_core.types import ConnectionStatus


class ToolResponse(BaseModel):
    """Tool schema as reported by its server."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(default_factory=dict, alias="inputSchema")

    @classmethod
    def from_tool(cls, tool: Tool) -> "ToolResponse":
        return cls(name=tool.name, description=tool.description, input_schema=tool.input_schema)


class ConnectionResponse(BaseModel):
    """Connection record."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    url: str
    status: ConnectionStatus
    pid: int | None = None
    tools: list[ToolResponse] | None = None
    error: str | None = None
    connected_at: int | None = Field(default=None, alias="connectedAt")

    @classmethod
    def from_connection(cls, connection: Connection) -> "ConnectionResponse":
        return cls(
            id=connection.id,
            name=connection.name,
            url=connection.url,
            status=connection.status,
            pid=connection.pid,
            tools=(
                [ToolResponse.from_tool(t) for t in connection.tools]
                if connection.tools is not None
                else None
            ),
            error=connection.error,
            connected_at=connection.connected_at,
        )


class ConnectionListResponse(BaseModel):
    """Connection list response."""

    connections: list[ConnectionResponse]
    total: int


class ConnectRequest(BaseModel):
    """Connect request body."""

    url: str
    name: str | None = None

    @field_validator("url")
    @classmethod
    def url_must_be_http(cls, value: str) -> str:
        if not value.startswith("http"):
            raise ValueError("url must start with http")
        return value


class ToolEntryResponse(BaseModel):
    """Tool tagged with the server that provides it."""

    model_config = ConfigDict(populate_by_name=True)

    server_id: str = Field(alias="serverId")
    server_name: str = Field(alias="serverName")
    tool: ToolResponse

    @classmethod
    def from_entry(cls, entry: ToolEntry) -> "ToolEntryResponse":
        return cls(
            server_id=entry.server_id,
            server_name=entry.server_name,
            tool=ToolResponse.from_tool(entry.tool),
        )


class ToolListResponse(BaseModel):
    """Tools across all connected servers."""

    tools: list[ToolEntryResponse]
    total: int


class ToolCallRequest(BaseModel):
    """Tool call request body."""

    arguments: dict[str, Any] = Field(default_factory=dict)


class ToolCallResponse(BaseModel):
    """Tool call response."""

    server_id: str
    tool_name: str
    duration_ms: int
    result: Any


class SDKServersResponse(BaseModel):
    """Stdio launch entries for connected servers, keyed by server id."""

    servers: dict[str, dict[str, Any]]
