"""FastAPI exception handlers for custom exceptions."""

from __future__ import annotations

from fastapi import Request, status
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.exceptions import (
    ObjectNotFoundError,
    TempdropError,
    ValidationError,
)

GENERIC_ERROR_MESSAGE = "An internal error occurred."
NOT_FOUND_MESSAGE = "Not found."


def _error_response(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "message": message})


async def tempdrop_exception_handler(request: Request, exc: TempdropError) -> JSONResponse:
    """Handle Tempdrop-specific exceptions."""
    if isinstance(exc, ValidationError):
        logger.info("Rejected request {path}: {message}", path=request.url.path, message=exc.message)
        return _error_response(status.HTTP_400_BAD_REQUEST, type(exc).__name__, exc.message)
    if isinstance(exc, ObjectNotFoundError):
        return _error_response(status.HTTP_404_NOT_FOUND, type(exc).__name__, exc.message)

    # Storage and configuration failures never leak detail to the client
    logger.error(
        "Tempdrop exception: {type} - {message}",
        type=type(exc).__name__,
        message=str(exc),
        details=exc.details,
    )
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "InternalServerError", GENERIC_ERROR_MESSAGE)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Collapse unknown routes and unsupported methods into a plain 404."""
    if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
        return _error_response(status.HTTP_404_NOT_FOUND, "NotFound", NOT_FOUND_MESSAGE)
    return _error_response(exc.status_code, "HTTPException", str(exc.detail))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error("Unhandled exception on {method} {path}", method=request.method, path=request.url.path)
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "InternalServerError", GENERIC_ERROR_MESSAGE)
