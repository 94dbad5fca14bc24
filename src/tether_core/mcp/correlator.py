"""Request correlation for one proxy connection.

Pending requests are keyed by the JSON-RPC id that was sent, so a
response always completes the request it answers even if the remote
replies out of order.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Protocol

from tether_core.errors import TetherError, create_error
from tether_core.logging.logger import TetherLogger
from tether_core.types import LogLevel

from .protocol import JSONRPCMessage

DEFAULT_REQUEST_TIMEOUT = 30.0


class FrameWriter(Protocol):
    """The parts of ``asyncio.StreamWriter`` the correlator needs."""

    def write(self, data: bytes) -> None: ...

    async def drain(self) -> None: ...


@dataclass
class PendingRequest:
    """An outstanding request awaiting its response."""

    id: int
    method: str
    future: asyncio.Future[Any]
    timer: asyncio.TimerHandle | None = None


class RequestCorrelator:
    """Issues requests on one connection and settles them exactly once.

    Every request sent is settled by one of: its matching response, its
    timeout, or ``fail_all`` when the process exits.
    """

    def __init__(
        self,
        server_id: str,
        writer: FrameWriter | None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        logger: TetherLogger | None = None,
    ):
        """Initialize correlator.

        Args:
            server_id: Server identifier (for errors and logs)
            writer: Process stdin, or None if unavailable
            timeout: Default per-request timeout in seconds
            logger: Optional logger
        """
        self.server_id = server_id
        self.timeout = timeout
        self._writer = writer
        self._logger = logger
        self._next_id = 0
        self._pending: dict[int, PendingRequest] = {}
        self._closed = False

    def _log(self, level: LogLevel, message: str, **kwargs: Any) -> None:
        if self._logger:
            self._logger._log(level, f"transport.{self.server_id}", message, kwargs or None)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def next_id(self) -> int:
        """Id the next request will carry."""
        return self._next_id + 1

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Send a request and wait for its result.

        Args:
            method: JSON-RPC method
            params: Request params
            timeout: Override of the default timeout in seconds

        Returns:
            The response's ``result`` member

        Raises:
            TetherError(NOT_CONNECTED): No writer, closed, or the write failed
            TetherError(REQUEST_TIMEOUT): No response within the timeout
            TetherError(REMOTE_ERROR): Response carried an ``error`` member
            TetherError(CONNECTION_CLOSED): Process exited while pending
        """
        if self._closed or self._writer is None:
            raise create_error("NOT_CONNECTED", server_id=self.server_id, method=method)

        loop = asyncio.get_running_loop()
        self._next_id += 1
        request_id = self._next_id
        future: asyncio.Future[Any] = loop.create_future()
        pending = PendingRequest(id=request_id, method=method, future=future)
        self._pending[request_id] = pending
        future.add_done_callback(lambda _: self._discard(request_id))

        message = JSONRPCMessage.request(method, params, id=request_id)
        try:
            self._writer.write(JSONRPCMessage.encode(message))
            await self._writer.drain()
        except (OSError, RuntimeError) as e:
            # BrokenPipeError and ConnectionResetError are OSErrors
            self._discard(request_id)
            if not future.done():
                future.cancel()
            raise create_error(
                "NOT_CONNECTED",
                server_id=self.server_id,
                method=method,
                detail=f"Failed to write request: {e}",
            ) from e

        # The response may already have arrived while draining
        if not future.done() and request_id in self._pending:
            effective = self.timeout if timeout is None else timeout
            pending.timer = loop.call_later(effective, self._expire, request_id, effective)

        self._log(LogLevel.DEBUG, f"-> {method} (id {request_id})")
        return await future

    async def notify(self, method: str, params: dict[str, Any] | None = None) -> None:
        """Send a notification; nothing is registered and no reply is read.

        Raises:
            TetherError(NOT_CONNECTED): No writer, closed, or the write failed
        """
        if self._closed or self._writer is None:
            raise create_error("NOT_CONNECTED", server_id=self.server_id, method=method)

        try:
            self._writer.write(JSONRPCMessage.encode(JSONRPCMessage.notification(method, params)))
            await self._writer.drain()
        except (OSError, RuntimeError) as e:
            raise create_error(
                "NOT_CONNECTED",
                server_id=self.server_id,
                method=method,
                detail=f"Failed to write notification: {e}",
            ) from e
        self._log(LogLevel.DEBUG, f"-> {method} (notification)")

    def resolve(self, frame: dict[str, Any]) -> bool:
        """Settle the pending request a response frame answers.

        Args:
            frame: Decoded frame with an ``id`` member

        Returns:
            True if a pending request was settled
        """
        request_id = frame.get("id")
        # bool is an int subclass; "id": true must not match request 1
        if isinstance(request_id, int) and not isinstance(request_id, bool):
            pending = self._pending.pop(request_id, None)
        else:
            pending = None
        if pending is None:
            self._log(LogLevel.WARN, f"Ignoring response with unknown id {request_id!r}")
            return False

        if pending.timer:
            pending.timer.cancel()
        if pending.future.done():
            return False

        if JSONRPCMessage.is_error(frame):
            error = JSONRPCMessage.get_error(frame)
            pending.future.set_exception(
                create_error(
                    "REMOTE_ERROR",
                    server_id=self.server_id,
                    method=pending.method,
                    remote_message=error.get("message") or "MCP error",
                )
            )
        else:
            pending.future.set_result(frame.get("result"))
        return True

    def fail_all(self, error: TetherError) -> int:
        """Close the correlator and fail every pending request.

        Args:
            error: Error each pending request fails with

        Returns:
            Number of requests failed
        """
        self._closed = True
        pending = list(self._pending.values())
        self._pending.clear()
        failed = 0
        for entry in pending:
            if entry.timer:
                entry.timer.cancel()
            if not entry.future.done():
                entry.future.set_exception(error.with_context(method=entry.method))
                failed += 1
        if failed:
            self._log(LogLevel.WARN, f"Failed {failed} pending requests: {error.message}")
        return failed

    def _expire(self, request_id: int, timeout: float) -> None:
        pending = self._pending.pop(request_id, None)
        if pending is None or pending.future.done():
            return
        self._log(LogLevel.WARN, f"Request {pending.method} (id {request_id}) timed out")
        pending.future.set_exception(
            create_error(
                "REQUEST_TIMEOUT",
                server_id=self.server_id,
                method=pending.method,
                timeout_seconds=timeout,
            )
        )

    def _discard(self, request_id: int) -> None:
        pending = self._pending.pop(request_id, None)
        if pending and pending.timer:
            pending.timer.cancel()
