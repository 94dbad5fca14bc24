"""Common REST API models."""

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Error detail model (matches the error registry)."""

    code: str
    category: str
    message: str
    detail: str | None = None
    suggestion: str | None = None
    server_id: str | None = None
    request_id: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: ErrorDetail
