"""Exception handlers that render errors in the API's response envelope."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from clipvault.config import get_settings
from clipvault.exceptions import AppError

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Internal Server Error. Something went wrong"


def _envelope(status_code: int, message: str, **extra) -> JSONResponse:
    label = "fail" if status_code < 500 else "error"
    return JSONResponse(status_code=status_code, content={"status": label, "message": message, **extra})


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render an operational error with its own message."""
    response = _envelope(exc.status_code, exc.message)
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render body/query validation failures as a 400 with joined messages."""
    messages = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"] if part not in ("body", "query", "path"))
        messages.append(f"{field}: {error['msg']}" if field else error["msg"])
    return _envelope(status.HTTP_400_BAD_REQUEST, ". ".join(messages) or "Invalid input")


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP errors (unknown route, wrong method) in the same envelope."""
    message = exc.detail
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        message = f"The resource {request.url.path} is not found on this server"
    return _envelope(exc.status_code, str(message))


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render anything else without leaking internals outside development."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    if get_settings().is_development:
        return _envelope(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            GENERIC_ERROR_MESSAGE,
            error=type(exc).__name__,
            detail=str(exc),
        )
    return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, GENERIC_ERROR_MESSAGE)


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all handlers to the application."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
