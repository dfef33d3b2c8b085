"""Error types and exception handlers producing the ``{"success": false, "message": ...}`` envelope."""

from typing import Any, Optional

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class ApiError(HTTPException):
    """An HTTP error whose detail is rendered as the ``message`` of the response envelope."""

    def __init__(self, status_code: int, message: str, headers: Optional[dict[str, str]] = None):
        super().__init__(status_code=status_code, detail=message, headers=headers)

    @property
    def message(self) -> str:
        return str(self.detail)


def error_body(message: Any) -> dict:
    return {"success": False, "message": message}


async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Render any HTTPException (ours or FastAPI's own 404/405) in the envelope format."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are a client error, reported as 400 rather than FastAPI's 422."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("Invalid request"),
    )
