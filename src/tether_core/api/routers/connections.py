"""Connection router."""

from fastapi import APIRouter, Body, Path, Request, status

from tether_core.api.models import (
    ConnectionListResponse,
    ConnectionResponse,
    ConnectRequest,
    ErrorResponse,
    SDKServersResponse,
)
from tether_core.errors import create_error
from tether_core.mcp import MCPClientManager

connection_router = APIRouter(tags=["Connections"])


def _manager(request: Request) -> MCPClientManager:
    return request.app.state.manager


@connection_router.get("/connections", response_model=ConnectionListResponse)
async def list_connections(request: Request) -> ConnectionListResponse:
    """List all known connections, live and saved."""
    connections = [
        ConnectionResponse.from_connection(c) for c in _manager(request).get_connections()
    ]
    return ConnectionListResponse(connections=connections, total=len(connections))


@connection_router.get(
    "/connections/{server_id}",
    response_model=ConnectionResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_connection(
    request: Request,
    server_id: str = Path(...),
) -> ConnectionResponse:
    """Get one connection."""
    connection = _manager(request).get_connection(server_id)
    if connection is None:
        raise create_error("CONNECTION_NOT_FOUND", server_id=server_id)
    return ConnectionResponse.from_connection(connection)


@connection_router.post("/connections/{server_id}/connect", response_model=ConnectionResponse)
async def connect(
    request: Request,
    server_id: str = Path(...),
    body: ConnectRequest = Body(...),
) -> ConnectionResponse:
    """Connect to a remote MCP server.

    Failures are reported in the returned record (``status: error``).
    """
    connection = await _manager(request).connect(server_id, body.name or server_id, body.url)
    return ConnectionResponse.from_connection(connection)


@connection_router.post(
    "/connections/{server_id}/disconnect",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def disconnect(request: Request, server_id: str = Path(...)) -> None:
    """Disconnect from a server, keeping its saved record."""
    await _manager(request).disconnect(server_id)


@connection_router.delete(
    "/connections/{server_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
)
async def remove_connection(request: Request, server_id: str = Path(...)) -> None:
    """Disconnect and forget a server."""
    manager = _manager(request)
    if manager.get_connection(server_id) is None:
        raise create_error("CONNECTION_NOT_FOUND", server_id=server_id)
    await manager.remove_connection(server_id)


@connection_router.get("/sdk-servers", response_model=SDKServersResponse)
async def sdk_servers(request: Request) -> SDKServersResponse:
    """Launch entries an agent SDK can use to spawn its own proxies."""
    return SDKServersResponse(servers=_manager(request).get_mcp_servers_for_sdk())
