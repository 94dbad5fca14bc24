"""Tests for the connection state machine and the handshake."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from tether_core.config.models import HandshakeConfig
from tether_core.errors import TetherError, create_error
from tether_core.mcp.connection import TRANSITIONS, MCPConnection, transition
from tether_core.mcp.types import Connection, LaunchDescriptor
from tether_core.types import ConnectionStatus

S = ConnectionStatus


def _record(status: ConnectionStatus = S.CONNECTING) -> Connection:
    return Connection(id="jira", name="Jira", url="https://mcp.example.com/mcp", status=status)


@pytest.fixture
def process():
    """Mock ProxyProcess whose correlator answers the handshake."""
    proc = MagicMock()
    proc.pid = 4321
    proc.exited = False
    proc.correlator.notify = AsyncMock()

    async def send(method, params=None, timeout=None):
        if method == "initialize":
            return {"protocolVersion": "2024-11-05"}
        if method == "tools/list":
            return {
                "tools": [
                    {"name": "search", "description": "Search issues", "inputSchema": {}},
                    {"description": "nameless"},
                ]
            }
        raise AssertionError(method)

    proc.correlator.send = AsyncMock(side_effect=send)
    return proc


@pytest.fixture
def connection():
    return MCPConnection(
        _record(),
        LaunchDescriptor(command="npx", args=("-y", "mcp-remote"), url="https://mcp.example.com/mcp"),
        handshake=HandshakeConfig(settle_delay=0.0),
    )


class TestTransitions:
    """Tests for the status transition table."""

    @pytest.mark.parametrize(
        "start,target",
        [
            (S.CONNECTING, S.CONNECTED),
            (S.CONNECTING, S.ERROR),
            (S.CONNECTING, S.DISCONNECTED),
            (S.CONNECTED, S.DISCONNECTED),
            (S.ERROR, S.DISCONNECTED),
            (S.DISCONNECTED, S.DISCONNECTED),
        ],
    )
    def test_allowed(self, start, target):
        record = _record(start)
        transition(record, target)
        assert record.status == target

    @pytest.mark.parametrize(
        "start,target",
        [
            (S.CONNECTED, S.ERROR),
            (S.CONNECTED, S.CONNECTING),
            (S.ERROR, S.CONNECTED),
            (S.DISCONNECTED, S.CONNECTED),
        ],
    )
    def test_rejected(self, start, target):
        record = _record(start)
        with pytest.raises(TetherError) as exc_info:
            transition(record, target)
        assert exc_info.value.code == "INVALID_STATE"
        assert record.status == start

    def test_every_status_has_an_entry(self):
        assert set(TRANSITIONS) == set(ConnectionStatus)

    def test_leaving_connected_clears_pid(self):
        record = _record(S.CONNECTED)
        record.pid = 1234
        transition(record, S.DISCONNECTED)
        assert record.pid is None

    def test_error_message_is_recorded(self):
        record = _record()
        transition(record, S.ERROR, error="boom")
        assert record.error == "boom"


class TestHandshake:
    """Tests for MCPConnection.handshake."""

    @pytest.mark.asyncio
    async def test_handshake_sequence(self, connection, process):
        """initialize, then the initialized notification, then tools/list."""
        tools = await connection.handshake(process)

        calls = process.correlator.send.call_args_list
        assert [c.args[0] for c in calls] == ["initialize", "tools/list"]
        init_params = calls[0].args[1]
        assert init_params["protocolVersion"] == "2024-11-05"
        assert init_params["capabilities"] == {}
        assert init_params["clientInfo"]["name"] == "tether"
        process.correlator.notify.assert_awaited_once_with("notifications/initialized", {})

        assert [t.name for t in tools] == ["search"]
        record = connection.record
        assert record.status == S.CONNECTED
        assert record.pid == 4321
        assert record.error is None
        assert record.connected_at is not None

    @pytest.mark.asyncio
    async def test_handshake_failure_is_wrapped(self, connection, process):
        """Test that a request failure becomes HANDSHAKE_FAILED with the cause in detail."""
        process.correlator.send.side_effect = create_error(
            "REQUEST_TIMEOUT", method="initialize", timeout_seconds=30
        )

        with pytest.raises(TetherError) as exc_info:
            await connection.handshake(process)

        error = exc_info.value
        assert error.code == "HANDSHAKE_FAILED"
        assert error.detail == "MCP request timeout: initialize"
        assert connection.record.status == S.CONNECTING

    @pytest.mark.asyncio
    async def test_initialize_retries_on_timeout(self, process):
        """Test that initialize is retried on timeout when retries are configured."""
        attempts = {"n": 0}
        original = process.correlator.send.side_effect

        async def flaky(method, params=None, timeout=None):
            if method == "initialize" and attempts["n"] < 2:
                attempts["n"] += 1
                raise create_error("REQUEST_TIMEOUT", method=method, timeout_seconds=1)
            return await original(method, params, timeout)

        process.correlator.send.side_effect = flaky
        connection = MCPConnection(
            _record(),
            LaunchDescriptor(command="npx", url="https://mcp.example.com/mcp"),
            handshake=HandshakeConfig(settle_delay=0.0, initialize_retries=2, retry_delay=0.01),
        )

        await connection.handshake(process)

        assert attempts["n"] == 2
        assert connection.record.status == S.CONNECTED

    @pytest.mark.asyncio
    async def test_remote_error_is_not_retried(self, process):
        """Test that only timeouts are retried."""
        process.correlator.send.side_effect = create_error(
            "REMOTE_ERROR", method="initialize", remote_message="Unauthorized"
        )
        connection = MCPConnection(
            _record(),
            LaunchDescriptor(command="npx", url="https://mcp.example.com/mcp"),
            handshake=HandshakeConfig(settle_delay=0.0, initialize_retries=3, retry_delay=0.01),
        )

        with pytest.raises(TetherError, match="handshake"):
            await connection.handshake(process)
        assert process.correlator.send.await_count == 1

    @pytest.mark.asyncio
    async def test_exited_process_fails_handshake(self, connection, process):
        """Test that a process that died during the handshake is not marked connected."""
        process.exited = True
        with pytest.raises(TetherError) as exc_info:
            await connection.handshake(process)
        assert exc_info.value.code == "HANDSHAKE_FAILED"


class TestFail:
    """Tests for MCPConnection.fail."""

    def test_fail_sets_error(self, connection):
        connection.fail(create_error("SPAWN_FAILED", server_id="jira", detail="npx: not found"))
        assert connection.status == S.ERROR
        assert connection.record.error == "Failed to spawn proxy process for 'jira': npx: not found"
        assert connection.record.pid is None

    def test_fail_after_disconnect_is_ignored(self, connection):
        transition(connection.record, S.DISCONNECTED)
        connection.fail(create_error("INTERNAL_ERROR"))
        assert connection.status == S.DISCONNECTED
        assert connection.record.error is None
