"""MCP Connection - drives one server through spawn, handshake and tool discovery."""

import asyncio
import time
from typing import Any

from tether_core.config.models import HandshakeConfig
from tether_core.errors import TetherError, create_error
from tether_core.logging.logger import ServerLogger, TetherLogger
from tether_core.types import ConnectionStatus, LogLevel

from .supervisor import ExitCallback, ProcessSupervisor, ProxyProcess
from .types import Connection, LaunchDescriptor, Tool

# Legal status changes of a Connection record
TRANSITIONS: dict[ConnectionStatus, frozenset[ConnectionStatus]] = {
    ConnectionStatus.CONNECTING: frozenset(
        {ConnectionStatus.CONNECTED, ConnectionStatus.ERROR, ConnectionStatus.DISCONNECTED}
    ),
    ConnectionStatus.CONNECTED: frozenset({ConnectionStatus.DISCONNECTED}),
    ConnectionStatus.ERROR: frozenset({ConnectionStatus.DISCONNECTED}),
    ConnectionStatus.DISCONNECTED: frozenset({ConnectionStatus.DISCONNECTED}),
}


def transition(record: Connection, status: ConnectionStatus, error: str | None = None) -> None:
    """Move a record to a new status.

    Leaving the connected state clears ``pid``.

    Raises:
        TetherError(INVALID_STATE): If the transition is not allowed
    """
    if status not in TRANSITIONS[record.status]:
        raise create_error(
            "INVALID_STATE",
            server_id=record.id,
            from_status=record.status.value,
            to_status=status.value,
        )
    record.status = status
    if status == ConnectionStatus.ERROR:
        record.error = error
    if status != ConnectionStatus.CONNECTED:
        record.pid = None


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


class MCPConnection:
    """Single connection attempt to an MCP server through a stdio proxy.

    The record starts in ``connecting`` and ends in ``connected`` or
    ``error``.
    """

    def __init__(
        self,
        record: Connection,
        launch: LaunchDescriptor,
        handshake: HandshakeConfig | None = None,
        logger: TetherLogger | None = None,
    ):
        """Initialize connection.

        Args:
            record: Connection record in ``connecting`` state
            launch: How to start the proxy
            handshake: Handshake settings
            logger: Optional logger
        """
        self.record = record
        self.launch = launch
        self.handshake_config = handshake or HandshakeConfig()
        self._logger = logger
        self._events: ServerLogger | None = (
            logger.server(record.id, record.name) if logger else None
        )

    def _log(self, level: LogLevel, message: str, **kwargs: Any) -> None:
        if self._logger:
            self._logger._log(level, f"manager.{self.record.id}", message, kwargs or None)

    @property
    def status(self) -> ConnectionStatus:
        return self.record.status

    async def spawn(self, supervisor: ProcessSupervisor, on_exit: ExitCallback) -> ProxyProcess:
        """Start the proxy process.

        Raises:
            TetherError(SPAWN_FAILED)
        """
        if self._events:
            self._events.connecting(self.record.url)
        return await supervisor.spawn(self.record.id, self.record.name, self.launch, on_exit)

    async def handshake(self, process: ProxyProcess) -> list[Tool]:
        """Initialize the session, discover tools and mark the record connected.

        Args:
            process: Started proxy for this record

        Returns:
            Discovered tools

        Raises:
            TetherError(HANDSHAKE_FAILED): If initialize or tools/list fails
        """
        config = self.handshake_config
        if config.settle_delay > 0:
            # Give the proxy time to open its upstream session
            await asyncio.sleep(config.settle_delay)

        try:
            await self._initialize(process)
            await process.correlator.notify("notifications/initialized", {})
            result = await process.correlator.send("tools/list", {})
        except TetherError as e:
            raise create_error(
                "HANDSHAKE_FAILED",
                server_id=self.record.id,
                detail=e.message,
            ) from e

        if process.exited:
            raise create_error(
                "HANDSHAKE_FAILED",
                server_id=self.record.id,
                detail="Proxy exited during handshake",
            )

        tools = self._parse_tools(result)
        process.tools = tools

        transition(self.record, ConnectionStatus.CONNECTED)
        self.record.pid = process.pid
        self.record.tools = list(tools)
        self.record.error = None
        self.record.connected_at = now_ms()

        if self._events:
            self._events.connected(tools)
        return tools

    def fail(self, error: TetherError) -> None:
        """Record a failed attempt, if it is still in progress."""
        if self.record.status != ConnectionStatus.CONNECTING:
            # Disconnected or removed while connecting
            return
        transition(self.record, ConnectionStatus.ERROR, error=error.summary)
        if self._events:
            self._events.failed(error)

    async def _initialize(self, process: ProxyProcess) -> Any:
        """Send initialize, retrying on timeout with exponential backoff."""
        config = self.handshake_config
        params = {
            "protocolVersion": config.protocol_version,
            "capabilities": {},
            "clientInfo": {
                "name": config.client_name,
                "version": config.client_version,
            },
        }

        delay = config.retry_delay
        attempts = 0
        while True:
            attempts += 1
            try:
                return await process.correlator.send("initialize", params)
            except TetherError as e:
                if e.code != "REQUEST_TIMEOUT" or attempts > config.initialize_retries:
                    raise
                self._log(
                    LogLevel.WARN,
                    f"initialize attempt {attempts} timed out, retrying in {delay:.1f}s",
                )
                await asyncio.sleep(delay)
                delay *= 2

    def _parse_tools(self, result: Any) -> list[Tool]:
        if not isinstance(result, dict):
            return []
        tools: list[Tool] = []
        for item in result.get("tools") or []:
            if not isinstance(item, dict) or not isinstance(item.get("name"), str):
                self._log(LogLevel.WARN, f"Skipping invalid tool entry: {str(item)[:100]}")
                continue
            tools.append(Tool.from_dict(item))
        return tools
