"""Tether logger - component-scoped colored logging for proxy connections."""

import json
import sys
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, TextIO

from tether_core.logging.colors import (
    CYAN,
    GREEN,
    LIGHT_BLUE,
    MAGENTA,
    ORANGE,
    RED,
    RESET,
    YELLOW,
)
from tether_core.types import LogFormat, LogLevel, StderrKind

COMPONENTS = ("manager", "process", "transport", "store")


@dataclass
class LogConfig:
    """Logger configuration."""

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.COLORED
    show_context: bool = True
    truncate_at: int = 200
    components: dict[str, bool] = field(default_factory=dict)
    output: TextIO = field(default=sys.stdout)

    def __post_init__(self) -> None:
        """Initialize default components if not provided."""
        if not self.components:
            self.components = {name: True for name in COMPONENTS}


class TetherLogger:
    """Main logger facade. Creates server-scoped loggers."""

    def __init__(self, config: LogConfig | None = None):
        """Initialize logger with configuration.

        Args:
            config: Logger configuration (defaults to LogConfig())
        """
        self.config = config or LogConfig()
        self._level_order = {
            LogLevel.DEBUG: 0,
            LogLevel.INFO: 1,
            LogLevel.WARN: 2,
            LogLevel.ERROR: 3,
        }

    def server(self, server_id: str, name: str | None = None) -> "ServerLogger":
        """Get a logger scoped to one MCP server.

        Args:
            server_id: Server identifier
            name: Display name (defaults to server_id)

        Returns:
            ServerLogger instance
        """
        return ServerLogger(self, server_id, name or server_id)

    def configure(self, config: LogConfig) -> None:
        """Update configuration."""
        self.config = config

    def _should_log(self, level: LogLevel) -> bool:
        return self._level_order.get(level, 0) >= self._level_order.get(self.config.level, 1)

    def _log(
        self,
        level: LogLevel,
        component: str,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Internal logging method.

        Args:
            level: Log level
            component: Component name (manager, process, transport, store)
            message: Log message
            context: Additional context data
        """
        if not self._should_log(level):
            return

        # Scoped names like "transport.jira" follow their root component
        root = component.split(".", 1)[0]
        if not self.config.components.get(root, True):
            return

        if self.config.format == LogFormat.JSON:
            self._log_json(level, component, message, context)
        else:
            self._log_colored(level, component, message, context)

    def _log_json(
        self,
        level: LogLevel,
        component: str,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        log_entry = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": level.value,
            "component": component,
            "message": message,
        }
        if context:
            log_entry.update(context)

        print(json.dumps(log_entry, default=str), file=self.config.output)

    def _log_colored(
        self,
        level: LogLevel,
        component: str,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        level_colors = {
            LogLevel.DEBUG: LIGHT_BLUE,
            LogLevel.INFO: CYAN,
            LogLevel.WARN: YELLOW,
            LogLevel.ERROR: RED,
        }

        color = level_colors.get(level, RESET)
        component_color = {
            "manager": MAGENTA,
            "process": ORANGE,
            "transport": GREEN,
            "store": LIGHT_BLUE,
        }.get(component.split(".", 1)[0], RESET)

        # Format: [COMPONENT] message
        output = f"{component_color}[{component.upper()}]{RESET} {color}{message}{RESET}"

        if context and self.config.show_context:
            context_str = str(context)
            if len(context_str) > self.config.truncate_at:
                context_str = context_str[: self.config.truncate_at] + "..."
            output += f" {LIGHT_BLUE}{context_str}{RESET}"

        print(output, file=self.config.output)


class ServerLogger:
    """Logger for the lifecycle events of one MCP server connection."""

    def __init__(self, parent: TetherLogger, server_id: str, name: str):
        self.parent = parent
        self.server_id = server_id
        self.name = name

    def _context(self, event: str, **extra: Any) -> dict[str, Any]:
        context: dict[str, Any] = {"server_id": self.server_id, "event": event}
        context.update({k: v for k, v in extra.items() if v is not None})
        return context

    def connecting(self, url: str) -> None:
        self.parent._log(
            LogLevel.INFO,
            "manager",
            f"Connecting to {self.name} ({url})...",
            self._context("connecting", url=url),
        )

    def spawned(self, pid: int, argv: list[str]) -> None:
        self.parent._log(
            LogLevel.DEBUG,
            "process",
            f"[{self.name}] Spawned proxy (pid {pid})",
            self._context("spawned", pid=pid, argv=argv),
        )

    def stderr(self, kind: StderrKind, line: str) -> None:
        """Log a classified stderr line from the proxy process."""
        if kind == StderrKind.OAUTH_FLOW:
            message = f"[{self.name}] OAuth flow started - check your browser"
            level = LogLevel.INFO
        elif kind == StderrKind.AUTH_SUCCESS:
            message = f"[{self.name}] Authentication successful"
            level = LogLevel.INFO
        else:
            message = f"[{self.name}] {line}"
            level = LogLevel.DEBUG
        self.parent._log(level, "process", message, self._context("stderr", kind=kind.value))

    def connected(self, tools: list[Any]) -> None:
        """Log a completed handshake with a short tool listing.

        Args:
            tools: Discovered tools (anything with name/description)
        """
        self.parent._log(
            LogLevel.INFO,
            "manager",
            f"[{self.name}] Connected with {len(tools)} tools",
            self._context("connected", tool_count=len(tools)),
        )
        for tool in tools:
            description = (tool.description or "No description")[:60]
            self.parent._log(LogLevel.DEBUG, "manager", f"   - {tool.name}: {description}")

    def failed(self, error: Exception) -> None:
        self.parent._log(
            LogLevel.ERROR,
            "manager",
            f"[{self.name}] Connection failed: {error}",
            self._context("failed", error=str(error), error_type=type(error).__name__),
        )

    def exited(self, returncode: int | None) -> None:
        self.parent._log(
            LogLevel.INFO,
            "process",
            f"[{self.name}] Process exited with code {returncode}",
            self._context("exited", returncode=returncode),
        )

    def disconnected(self) -> None:
        self.parent._log(
            LogLevel.INFO,
            "manager",
            f"Disconnecting {self.server_id}...",
            self._context("disconnected"),
        )

    def tool_call(self, tool_name: str) -> None:
        self.parent._log(
            LogLevel.INFO,
            "transport",
            f"[{self.server_id}] Calling tool {tool_name}",
            self._context("tool_call", tool_name=tool_name),
        )
