"""REST API error handlers."""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tether_core.api.middleware import get_request_id
from tether_core.errors import TetherError


def _error_body(code: str, category: str, message: str, **extra: Any) -> dict[str, Any]:
    return {
        "error": {
            "code": code,
            "category": category,
            "message": message,
            **extra,
            "request_id": get_request_id(),
        }
    }


def setup_error_handlers(app: FastAPI) -> None:
    """Configure error handlers for the FastAPI app."""

    @app.exception_handler(TetherError)
    async def tether_error_handler(request: Request, exc: TetherError) -> JSONResponse:
        error_dict = exc.to_dict()
        error_dict["request_id"] = get_request_id()
        return JSONResponse(status_code=exc.http_status, content={"error": error_dict})

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(f"HTTP_{exc.status_code}", "SYSTEM", str(exc.detail)),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        first_error = errors[0] if errors else {"msg": "Validation error"}
        return JSONResponse(
            status_code=422,
            content=_error_body(
                "VALIDATION_ERROR",
                "VALIDATION",
                first_error.get("msg", "Validation error"),
                detail=str(errors),
            ),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "INTERNAL_ERROR",
                "SYSTEM",
                "An unexpected error occurred",
                detail=str(exc) if app.debug else None,
            ),
        )
