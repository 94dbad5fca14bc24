"""Tether configuration data models."""

from dataclasses import dataclass, field

from tether_core.types import LogFormat, LogLevel


@dataclass
class ProxyConfig:
    """How to launch the stdio proxy for a remote MCP server.

    The target server URL is appended after ``args``.
    """

    command: str = "npx"
    args: list[str] = field(default_factory=lambda: ["-y", "mcp-remote"])
    env: dict[str, str] = field(default_factory=dict)
    inherit_env: bool = True


@dataclass
class HandshakeConfig:
    """MCP handshake and request settings."""

    protocol_version: str = "2024-11-05"
    client_name: str = "tether"
    client_version: str = "1.0.0"
    settle_delay: float = 2.0  # seconds before the first request
    request_timeout: float = 30.0
    initialize_retries: int = 0
    retry_delay: float = 1.0
    shutdown_timeout: float = 5.0


@dataclass
class StoreConfig:
    """Connection metadata persistence."""

    path: str = ".claude/mcp-connections.json"


@dataclass
class LoggingComponentsConfig:
    """Per-component logging switches."""

    manager: bool = True
    process: bool = True
    transport: bool = True
    store: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.COLORED
    show_context: bool = True
    truncate_at: int = 200
    components: LoggingComponentsConfig = field(default_factory=LoggingComponentsConfig)


@dataclass
class RESTConfig:
    """REST API configuration."""

    host: str = "127.0.0.1"
    port: int = 3001
    prefix: str = "/api/v1"
    title: str = "Tether REST API"
    version: str = "1.0.0"
    docs_enabled: bool = True
    cors_enabled: bool = True
    cors_origins: list[str] = field(default_factory=lambda: ["*"])


@dataclass
class TetherConfig:
    """Complete Tether configuration."""

    proxy: ProxyConfig = field(default_factory=ProxyConfig)
    handshake: HandshakeConfig = field(default_factory=HandshakeConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    rest: RESTConfig = field(default_factory=RESTConfig)
