"""Tool router."""

import time

from fastapi import APIRouter, Body, Path, Request

from tether_core.api.models import (
    ErrorResponse,
    ToolCallRequest,
    ToolCallResponse,
    ToolEntryResponse,
    ToolListResponse,
)

tool_router = APIRouter(tags=["Tools"])


@tool_router.get("/tools", response_model=ToolListResponse)
async def list_tools(
    request: Request,
    server: str | None = None,
    search: str | None = None,
) -> ToolListResponse:
    """List tools of all connected servers."""
    entries = request.app.state.manager.get_all_tools()

    if server:
        entries = [e for e in entries if e.server_id == server]

    if search:
        search_lower = search.lower()
        entries = [
            e
            for e in entries
            if search_lower in e.tool.name.lower() or search_lower in e.tool.description.lower()
        ]

    tools = [ToolEntryResponse.from_entry(e) for e in entries]
    return ToolListResponse(tools=tools, total=len(tools))


@tool_router.post(
    "/connections/{server_id}/tools/{tool_name}/call",
    response_model=ToolCallResponse,
    responses={
        409: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
async def call_tool(
    request: Request,
    server_id: str = Path(...),
    tool_name: str = Path(...),
    call_request: ToolCallRequest | None = Body(default=None),
) -> ToolCallResponse:
    """Call a tool on a connected server."""
    started = time.monotonic()
    result = await request.app.state.manager.call_tool(
        server_id, tool_name, call_request.arguments if call_request else {}
    )
    return ToolCallResponse(
        server_id=server_id,
        tool_name=tool_name,
        duration_ms=int((time.monotonic() - started) * 1000),
        result=result,
    )
