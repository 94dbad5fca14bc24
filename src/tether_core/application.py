"""Tether Application - wires configuration, logging, the manager and the REST API."""

import sys
from pathlib import Path
from typing import TextIO

from fastapi import FastAPI

from tether_core.api import create_rest_app
from tether_core.config import ConfigLoader, TetherConfig
from tether_core.errors import ErrorFactory, ErrorRegistry
from tether_core.logging import LogConfig, TetherLogger
from tether_core.mcp import JSONFileConnectionStore, MCPClientManager


class TetherApplication:
    """
    Tether Application orchestrator.

    Initialization sequence:

    1. Config loading
    2. Logger setup
    3. Error registry
    4. Connection store
    5. MCP client manager (saved connections restored as disconnected)
    6. REST API app
    """

    def __init__(
        self,
        config_path: str | None = None,
        log_output: TextIO | None = None,
        base_dir: str | Path | None = None,
    ):
        """Initialize application.

        Args:
            config_path: Path to config file (optional)
            log_output: Output stream for logs (default: sys.stdout)
            base_dir: Directory a relative store path is resolved against (default: cwd)
        """
        self._config_path = config_path
        self._log_output = log_output or sys.stdout
        self._base_dir = Path(base_dir) if base_dir else Path.cwd()
        self._initialized = False

        # Components (initialized in initialize())
        self.config_loader: ConfigLoader | None = None
        self.config: TetherConfig | None = None
        self.logger: TetherLogger | None = None
        self.error_registry: ErrorRegistry | None = None
        self.error_factory: ErrorFactory | None = None
        self.store: JSONFileConnectionStore | None = None
        self.manager: MCPClientManager | None = None
        self.rest_app: FastAPI | None = None

    async def initialize(self) -> None:
        """Initialize all components. Calling it twice is a no-op."""
        if self._initialized:
            return

        # 1. Config
        self.config_loader = ConfigLoader()
        self.config = self.config_loader.load(self._config_path)

        # 2. Logger
        components = self.config.logging.components
        self.logger = TetherLogger(
            LogConfig(
                level=self.config.logging.level,
                format=self.config.logging.format,
                show_context=self.config.logging.show_context,
                truncate_at=self.config.logging.truncate_at,
                components={
                    "manager": components.manager,
                    "process": components.process,
                    "transport": components.transport,
                    "store": components.store,
                },
                output=self._log_output,
            )
        )

        # 3. Errors
        self.error_registry = ErrorRegistry()
        self.error_factory = ErrorFactory(self.error_registry)

        # 4. Store
        store_path = Path(self.config.store.path).expanduser()
        if not store_path.is_absolute():
            store_path = self._base_dir / store_path
        self.store = JSONFileConnectionStore(store_path)

        # 5. Manager
        self.manager = MCPClientManager(
            store=self.store,
            proxy=self.config.proxy,
            handshake=self.config.handshake,
            logger=self.logger,
            error_factory=self.error_factory,
        )
        await self.manager.load()

        # 6. REST API
        self.rest_app = create_rest_app(self.manager, self.config.rest, logger=self.logger)

        self._initialized = True

    async def shutdown(self) -> None:
        """Stop every proxy process and persist final state."""
        if not self._initialized:
            return

        if self.manager:
            await self.manager.close()

        self._initialized = False

    async def start(self) -> None:
        """Serve the REST API until interrupted, then shut down."""
        import uvicorn

        if not self._initialized:
            await self.initialize()

        assert self.config is not None
        server = uvicorn.Server(
            uvicorn.Config(
                self.rest_app,
                host=self.config.rest.host,
                port=self.config.rest.port,
                log_level="info",
            )
        )
        try:
            await server.serve()
        finally:
            await self.shutdown()
