"""MCP client manager types for Tether."""

from dataclasses import dataclass, field
from typing import Any

from tether_core.types import ConnectionStatus


@dataclass(frozen=True)
class Tool:
    """MCP tool schema, as discovered via tools/list."""

    name: str
    description: str
    input_schema: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Tool":
        """Build from a wire-format tool (``inputSchema`` key)."""
        return cls(
            name=data["name"],
            description=data.get("description") or "",
            input_schema=data.get("inputSchema") or {},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


@dataclass
class Connection:
    """Connection record for one MCP server.

    ``pid`` is runtime-only and never persisted.
    """

    id: str
    name: str
    url: str
    status: ConnectionStatus = ConnectionStatus.CONNECTING
    pid: int | None = None
    tools: list[Tool] | None = None
    error: str | None = None
    connected_at: int | None = None  # epoch milliseconds

    def to_dict(self, include_runtime: bool = True) -> dict[str, Any]:
        """Serialize with the persisted key names.

        Args:
            include_runtime: Include ``pid`` (False for persistence)
        """
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "status": self.status.value,
        }
        if include_runtime and self.pid is not None:
            data["pid"] = self.pid
        if self.tools is not None:
            data["tools"] = [tool.to_dict() for tool in self.tools]
        if self.error is not None:
            data["error"] = self.error
        if self.connected_at is not None:
            data["connectedAt"] = self.connected_at
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Connection":
        """Restore a persisted record.

        Raises:
            KeyError: If id, name or url is missing
            ValueError: If status is not a known value
        """
        tools = data.get("tools")
        return cls(
            id=data["id"],
            name=data["name"],
            url=data["url"],
            status=ConnectionStatus(data.get("status", ConnectionStatus.DISCONNECTED.value)),
            pid=data.get("pid"),
            tools=[Tool.from_dict(t) for t in tools] if tools is not None else None,
            error=data.get("error"),
            connected_at=data.get("connectedAt"),
        )


@dataclass(frozen=True)
class LaunchDescriptor:
    """Typed launch description of a stdio proxy for one server URL."""

    command: str
    args: tuple[str, ...] = ()
    url: str = ""
    env: dict[str, str] = field(default_factory=dict)

    @property
    def argv(self) -> list[str]:
        """Full argument vector; the URL is always last."""
        return [self.command, *self.args, self.url]

    def to_sdk_dict(self) -> dict[str, Any]:
        """Stdio server entry for the host agent runtime."""
        return {
            "type": "stdio",
            "command": self.command,
            "args": [*self.args, self.url],
        }


@dataclass(frozen=True)
class ToolEntry:
    """A tool together with the server that provides it."""

    server_id: str
    server_name: str
    tool: Tool

    def to_dict(self) -> dict[str, Any]:
        return {
            "serverId": self.server_id,
            "serverName": self.server_name,
            "tool": self.tool.to_dict(),
        }
