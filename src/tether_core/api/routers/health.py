"""Health router."""

from datetime import UTC, datetime

from fastapi import APIRouter, Request
from pydantic import BaseModel

from tether_core.types import ConnectionStatus

health_router = APIRouter(tags=["Health"])


class HealthCheck(BaseModel):
    """Health check response."""

    status: str
    connections: dict[str, int]
    timestamp: datetime


@health_router.get("/health", response_model=HealthCheck)
async def health_check(request: Request) -> HealthCheck:
    """Service status with connection counts per state."""
    counts = {s.value: 0 for s in ConnectionStatus}
    for connection in request.app.state.manager.get_connections():
        counts[connection.status.value] += 1
    return HealthCheck(status="ok", connections=counts, timestamp=datetime.now(UTC))
