"""JSON-RPC protocol helpers for MCP communication over stdio.

Messages are newline-delimited JSON documents, UTF-8 encoded.
"""

import asyncio
import codecs
import json
import logging
from collections.abc import AsyncIterator
from typing import Any

logger = logging.getLogger(__name__)

# Bytes read from the proxy stdout per chunk
READ_CHUNK_SIZE = 64 * 1024


class JSONRPCMessage:
    """JSON-RPC 2.0 message builder and parser."""

    @staticmethod
    def request(method: str, params: dict[str, Any] | None = None, id: int = 1) -> dict[str, Any]:
        """Build a JSON-RPC request.

        Args:
            method: Method name (e.g., "initialize", "tools/list", "tools/call")
            params: Optional parameters
            id: Request ID

        Returns:
            JSON-RPC request dict
        """
        msg: dict[str, Any] = {
            "jsonrpc": "2.0",
            "id": id,
            "method": method,
        }
        if params is not None:
            msg["params"] = params
        return msg

    @staticmethod
    def notification(method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Build a JSON-RPC notification (no id, no response expected)."""
        msg: dict[str, Any] = {
            "jsonrpc": "2.0",
            "method": method,
        }
        if params is not None:
            msg["params"] = params
        return msg

    @staticmethod
    def success_response(id: int, result: Any) -> dict[str, Any]:
        """Build a JSON-RPC success response."""
        return {
            "jsonrpc": "2.0",
            "id": id,
            "result": result,
        }

    @staticmethod
    def error_response(id: int, code: int, message: str, data: Any = None) -> dict[str, Any]:
        """Build a JSON-RPC error response."""
        error: dict[str, Any] = {
            "code": code,
            "message": message,
        }
        if data is not None:
            error["data"] = data

        return {
            "jsonrpc": "2.0",
            "id": id,
            "error": error,
        }

    @staticmethod
    def encode(message: dict[str, Any]) -> bytes:
        """Serialize a message as one newline-terminated UTF-8 line."""
        return (json.dumps(message, separators=(",", ":")) + "\n").encode("utf-8")

    @staticmethod
    def parse(message: str | bytes) -> dict[str, Any]:
        """Parse a JSON-RPC message.

        Raises:
            ValueError: If message is not valid JSON or not a JSON object
        """
        if isinstance(message, bytes):
            message = message.decode("utf-8")
        parsed = json.loads(message)
        if not isinstance(parsed, dict):
            raise ValueError(f"Expected a JSON object, got {type(parsed).__name__}")
        return parsed

    @staticmethod
    def is_response(message: dict[str, Any]) -> bool:
        """Check if message is a response (has an id and 'result' or 'error')."""
        return message.get("id") is not None and ("result" in message or "error" in message)

    @staticmethod
    def is_error(message: dict[str, Any]) -> bool:
        """Check if message is an error response."""
        return "error" in message

    @staticmethod
    def get_result(message: dict[str, Any]) -> Any:
        """Extract result from response message.

        Raises:
            KeyError: If message has no result
        """
        return message["result"]

    @staticmethod
    def get_error(message: dict[str, Any]) -> dict[str, Any]:
        """Extract error from error response.

        A non-object error member is wrapped as ``{"message": str(error)}``.

        Raises:
            KeyError: If message has no error
        """
        error = message["error"]
        if not isinstance(error, dict):
            return {"message": str(error)}
        return error


class FrameDecoder:
    """Incremental decoder for newline-delimited JSON-RPC frames.

    Chunks may split frames (and multi-byte characters) at any position;
    the trailing incomplete segment is kept until its newline arrives.
    """

    def __init__(self, source: str = "mcp") -> None:
        self._source = source
        self._buffer = ""
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self.malformed_count = 0

    @property
    def buffered(self) -> str:
        """Text received after the last newline."""
        return self._buffer

    def reset(self) -> None:
        """Drop any partial frame and decoder state."""
        self._buffer = ""
        self._utf8.reset()
        self.malformed_count = 0

    def feed(self, chunk: str | bytes) -> list[dict[str, Any]]:
        """Consume a chunk and return every complete frame it finishes.

        Args:
            chunk: Raw text or bytes from the stream

        Returns:
            Decoded JSON objects, in stream order
        """
        if isinstance(chunk, bytes):
            chunk = self._utf8.decode(chunk)

        self._buffer += chunk
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()

        frames: list[dict[str, Any]] = []
        for line in lines:
            frame = self._decode_line(line)
            if frame is not None:
                frames.append(frame)
        return frames

    def _decode_line(self, line: str) -> dict[str, Any] | None:
        line = line.strip()
        if not line:
            return None
        try:
            return JSONRPCMessage.parse(line)
        except ValueError:
            # JSONDecodeError is a ValueError
            self.malformed_count += 1
            logger.warning("MCP [%s]: Failed to parse message: %s", self._source, line[:100])
            return None


async def read_frames(
    stream: asyncio.StreamReader,
    decoder: FrameDecoder,
    chunk_size: int = READ_CHUNK_SIZE,
) -> AsyncIterator[dict[str, Any]]:
    """Yield decoded frames from a stream until EOF.

    Args:
        stream: Reader attached to the proxy's stdout
        decoder: Per-connection decoder holding partial-frame state
        chunk_size: Maximum bytes per read
    """
    while True:
        chunk = await stream.read(chunk_size)
        if not chunk:
            break
        for frame in decoder.feed(chunk):
            yield frame

    if decoder.buffered.strip():
        logger.debug("MCP: Discarding unterminated frame at EOF: %s", decoder.buffered[:100])
