"""MCP Client Manager - owns every proxy connection and its process."""

import asyncio
from typing import Any

from tether_core.config.models import HandshakeConfig, ProxyConfig
from tether_core.errors import ErrorFactory, TetherError, create_error, get_error_factory
from tether_core.logging.logger import TetherLogger
from tether_core.types import ConnectionStatus, LogLevel

from .connection import MCPConnection, transition
from .store import ConnectionStore, InMemoryConnectionStore
from .supervisor import ProcessSupervisor, ProxyProcess
from .types import Connection, LaunchDescriptor, ToolEntry


class MCPClientManager:
    """Manages connections to remote MCP servers through stdio proxies.

    The manager is the only writer of the connection map and the live
    process map. A live process exists for an id only while its child
    process is running.
    """

    def __init__(
        self,
        store: ConnectionStore | None = None,
        proxy: ProxyConfig | None = None,
        handshake: HandshakeConfig | None = None,
        logger: TetherLogger | None = None,
        error_factory: ErrorFactory | None = None,
        supervisor: ProcessSupervisor | None = None,
    ):
        """Initialize MCP client manager.

        Args:
            store: Where connection metadata is persisted
            proxy: Proxy launch settings
            handshake: Handshake and request settings
            logger: Optional logger
            error_factory: Optional error factory
            supervisor: Optional process supervisor (built from config otherwise)
        """
        self._connections: dict[str, Connection] = {}
        self._processes: dict[str, ProxyProcess] = {}
        self._connecting: dict[str, asyncio.Task[Connection]] = {}
        self._store = store or InMemoryConnectionStore()
        self._proxy = proxy or ProxyConfig()
        self._handshake = handshake or HandshakeConfig()
        self._logger = logger
        self._error_factory = error_factory or get_error_factory()
        self._supervisor = supervisor or ProcessSupervisor(
            request_timeout=self._handshake.request_timeout,
            inherit_env=self._proxy.inherit_env,
            logger=logger,
        )

    def _log(self, level: LogLevel, message: str, **kwargs: Any) -> None:
        if self._logger:
            self._logger._log(level, "manager", message, kwargs or None)

    def launch_descriptor(self, url: str) -> LaunchDescriptor:
        """Proxy launch description for a server URL."""
        return LaunchDescriptor(
            command=self._proxy.command,
            args=tuple(self._proxy.args),
            url=url,
            env=dict(self._proxy.env),
        )

    async def load(self) -> int:
        """Restore saved connections as ``disconnected``.

        Returns:
            Number of connections restored
        """
        restored = await self._store.load()
        for cid, connection in restored.items():
            if cid not in self._connections:
                self._connections[cid] = connection
        return len(restored)

    async def connect(self, server_id: str, name: str, url: str) -> Connection:
        """Connect to an MCP server, spawning its proxy.

        Never raises: failures are reported through the returned record's
        ``status`` and ``error``. A connect for a server whose attempt is
        already in flight waits for that attempt and returns its record.

        Args:
            server_id: Server identifier
            name: Display name
            url: Remote MCP server URL

        Returns:
            The connection record
        """
        task = self._connecting.get(server_id)
        if task is None or task.done():
            existing = self._processes.get(server_id)
            if existing is not None:
                current = self._connections.get(server_id)
                if existing.is_alive() and current is not None:
                    return current
                # Dead or orphaned process
                existing.kill()
                del self._processes[server_id]

            task = asyncio.create_task(self._connect(server_id, name, url))
            self._connecting[server_id] = task
        else:
            self._log(LogLevel.DEBUG, f"Connect to {server_id} already in flight")

        return await asyncio.shield(task)

    async def _connect(self, server_id: str, name: str, url: str) -> Connection:
        record = Connection(id=server_id, name=name, url=url)
        self._connections[server_id] = record
        attempt = MCPConnection(
            record,
            self.launch_descriptor(url),
            handshake=self._handshake,
            logger=self._logger,
        )

        process: ProxyProcess | None = None
        try:
            process = await attempt.spawn(self._supervisor, self._handle_exit)
            if record.status != ConnectionStatus.CONNECTING:
                # Disconnected or closed while spawning
                await process.terminate(self._handshake.shutdown_timeout)
                return record
            self._processes[server_id] = process
            await attempt.handshake(process)
        except Exception as e:
            error = self._error_factory.from_exception(e, server_id=server_id)
            attempt.fail(error)
            if process is not None:
                if self._processes.get(server_id) is process:
                    del self._processes[server_id]
                await process.terminate(self._handshake.shutdown_timeout)
        finally:
            if self._connecting.get(server_id) is asyncio.current_task():
                del self._connecting[server_id]

        await self._save()
        return record

    async def disconnect(self, server_id: str) -> None:
        """Disconnect from an MCP server. Safe to call when not connected."""
        process = self._processes.pop(server_id, None)
        connection = self._connections.get(server_id)
        if connection is not None:
            transition(connection, ConnectionStatus.DISCONNECTED)

        if process is not None:
            if self._logger:
                self._logger.server(server_id).disconnected()
            await process.terminate(self._handshake.shutdown_timeout)

        await self._save()

    async def remove_connection(self, server_id: str) -> None:
        """Disconnect and forget a saved connection."""
        await self.disconnect(server_id)
        self._connections.pop(server_id, None)
        await self._save()

    async def call_tool(
        self,
        server_id: str,
        tool_name: str,
        arguments: dict[str, Any] | None = None,
    ) -> Any:
        """Call a tool on a connected server.

        Args:
            server_id: Server identifier
            tool_name: Name of tool
            arguments: Tool arguments

        Returns:
            The raw ``tools/call`` result

        Raises:
            TetherError(NOT_CONNECTED): No live process for the server
            TetherError(REQUEST_TIMEOUT): No response in time
            TetherError(REMOTE_ERROR): The server returned an error
            TetherError(CONNECTION_CLOSED): The process exited mid-call
        """
        process = self._processes.get(server_id)
        if process is None:
            raise create_error("NOT_CONNECTED", server_id=server_id, tool_name=tool_name)

        if self._logger:
            self._logger.server(server_id).tool_call(tool_name)

        try:
            return await process.correlator.send(
                "tools/call",
                {"name": tool_name, "arguments": arguments or {}},
            )
        except TetherError as e:
            raise self._error_factory.from_exception(
                e, server_id=server_id, tool_name=tool_name
            ) from e

    def get_connections(self) -> list[Connection]:
        """List all connection records."""
        return list(self._connections.values())

    def get_connection(self, server_id: str) -> Connection | None:
        """Get a connection record by id."""
        return self._connections.get(server_id)

    def is_connected(self, server_id: str) -> bool:
        """Check whether a server is in the connected state."""
        connection = self._connections.get(server_id)
        return connection is not None and connection.status == ConnectionStatus.CONNECTED

    def get_all_tools(self) -> list[ToolEntry]:
        """All tools of connected servers, tagged with their server."""
        entries: list[ToolEntry] = []
        for connection in self._connections.values():
            if connection.status == ConnectionStatus.CONNECTED and connection.tools:
                for tool in connection.tools:
                    entries.append(ToolEntry(connection.id, connection.name, tool))
        return entries

    def get_mcp_servers_for_sdk(self) -> dict[str, dict[str, Any]]:
        """Stdio launch entries for every connected server, keyed by id."""
        return {
            connection.id: self.launch_descriptor(connection.url).to_sdk_dict()
            for connection in self._connections.values()
            if connection.status == ConnectionStatus.CONNECTED
        }

    async def close(self) -> None:
        """Terminate every live process and persist the final state.

        Attempts still in flight are marked disconnected and awaited, so no
        proxy they spawn outlives the manager.
        """
        attempts = list(self._connecting.items())
        processes = list(self._processes.items())
        self._processes.clear()
        if processes:
            self._log(LogLevel.INFO, f"Stopping {len(processes)} MCP proxy processes")

        for server_id in {sid for sid, _ in attempts} | {sid for sid, _ in processes}:
            connection = self._connections.get(server_id)
            if connection is not None:
                transition(connection, ConnectionStatus.DISCONNECTED)

        await asyncio.gather(
            *(p.terminate(self._handshake.shutdown_timeout) for _, p in processes),
            return_exceptions=True,
        )
        if attempts:
            await asyncio.gather(*(task for _, task in attempts), return_exceptions=True)
        await self._save()

    async def _handle_exit(self, process: ProxyProcess, returncode: int | None) -> None:
        """Process exit: drop the live entry and mark the server disconnected."""
        if self._processes.get(process.server_id) is not process:
            # Already disconnected, or replaced by a newer process
            return
        del self._processes[process.server_id]

        connection = self._connections.get(process.server_id)
        if connection is None or connection.status != ConnectionStatus.CONNECTED:
            # A connecting record is settled by its failing handshake
            return
        transition(connection, ConnectionStatus.DISCONNECTED)
        await self._save()

    async def _save(self) -> None:
        try:
            await self._store.save(self._connections)
        except TetherError as e:
            self._log(LogLevel.ERROR, f"{e.message}: {e.detail}")
