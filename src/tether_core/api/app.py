"""REST API application factory."""

from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tether_core.api.errors import setup_error_handlers
from tether_core.api.middleware import RequestIDMiddleware
from tether_core.api.routers import connection_router, health_router, tool_router
from tether_core.config.models import RESTConfig

if TYPE_CHECKING:
    from tether_core.logging import TetherLogger
    from tether_core.mcp import MCPClientManager


def create_rest_app(
    manager: "MCPClientManager",
    config: RESTConfig | None = None,
    logger: "TetherLogger | None" = None,
) -> FastAPI:
    """Create FastAPI application with all routes.

    Args:
        manager: Connection manager the routes operate on
        config: REST API configuration
        logger: Optional logger

    Returns:
        Configured FastAPI application
    """
    config = config or RESTConfig()
    app = FastAPI(
        title=config.title,
        version=config.version,
        docs_url="/docs" if config.docs_enabled else None,
        redoc_url="/redoc" if config.docs_enabled else None,
        openapi_url="/openapi.json" if config.docs_enabled else None,
    )

    app.state.manager = manager
    app.state.config = config
    app.state.logger = logger

    # First added is outermost
    app.add_middleware(RequestIDMiddleware)
    if config.cors_enabled:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    setup_error_handlers(app)

    app.include_router(health_router, prefix=config.prefix)
    app.include_router(connection_router, prefix=config.prefix)
    app.include_router(tool_router, prefix=config.prefix)

    return app
