"""Tests for TetherLogger."""

import io
import json

from tether_core.errors import create_error
from tether_core.logging import LogConfig, TetherLogger
from tether_core.mcp.types import Tool
from tether_core.types import LogFormat, LogLevel, StderrKind


def _json_lines(output: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in output.getvalue().splitlines()]


class TestLevels:
    """Tests for level and component filtering."""

    def test_level_filter(self):
        output = io.StringIO()
        logger = TetherLogger(LogConfig(level=LogLevel.WARN, format=LogFormat.JSON, output=output))

        logger._log(LogLevel.INFO, "manager", "hidden")
        logger._log(LogLevel.ERROR, "manager", "shown")

        assert [e["message"] for e in _json_lines(output)] == ["shown"]

    def test_scoped_component_follows_root_switch(self):
        output = io.StringIO()
        logger = TetherLogger(
            LogConfig(
                format=LogFormat.JSON,
                components={"manager": True, "process": True, "transport": False, "store": True},
                output=output,
            )
        )

        logger._log(LogLevel.INFO, "transport.jira", "hidden")
        logger._log(LogLevel.INFO, "process.jira", "shown")

        assert [e["component"] for e in _json_lines(output)] == ["process.jira"]


class TestServerLogger:
    """Tests for server-scoped events."""

    def test_json_event_context(self, logger, log_output):
        logger.server("jira", "Jira").spawned(1234, ["npx", "-y", "mcp-remote", "https://x"])

        entry = _json_lines(log_output)[0]
        assert entry["level"] == "DEBUG"
        assert entry["component"] == "process"
        assert entry["event"] == "spawned"
        assert entry["pid"] == 1234
        assert entry["timestamp"].endswith("Z")

    def test_connected_lists_tools(self, logger, log_output):
        logger.server("jira", "Jira").connected([Tool("search", "Search issues")])

        messages = [e["message"] for e in _json_lines(log_output)]
        assert messages[0] == "[Jira] Connected with 1 tools"
        assert "   - search: Search issues" in messages

    def test_stderr_diagnostic_is_debug(self, logger, log_output):
        logger.server("jira").stderr(StderrKind.DIAGNOSTIC, "Using transport sse")

        entry = _json_lines(log_output)[0]
        assert entry["level"] == "DEBUG"
        assert entry["message"] == "[jira] Using transport sse"

    def test_failed_logs_error(self, logger, log_output):
        logger.server("jira").failed(create_error("SPAWN_FAILED", server_id="jira"))

        entry = _json_lines(log_output)[0]
        assert entry["level"] == "ERROR"
        assert entry["error_type"] == "TetherError"


class TestColoredOutput:
    """Tests for colored output."""

    def test_colored_format_and_truncation(self):
        output = io.StringIO()
        logger = TetherLogger(LogConfig(truncate_at=10, output=output))

        logger._log(LogLevel.INFO, "manager", "hello", {"key": "x" * 50})

        line = output.getvalue()
        assert "[MANAGER]" in line
        assert "hello" in line
        assert "..." in line
        assert "\033[" in line
