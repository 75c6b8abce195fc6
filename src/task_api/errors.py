from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .schemas import ErrorOut
from .utils import utc_now

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class AppError(Exception):
    """
    Base class for failures that map onto an HTTP error response.

    Subclasses pin the status code; the message is returned to the client as is.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(AppError):
    """The requested task does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class BadRequestError(AppError):
    """The client sent invalid input."""

    status_code = status.HTTP_400_BAD_REQUEST


class InternalError(AppError):
    """A storage or backend fault."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def error_response(
    status_code: int,
    message: str,
    detail: Optional[List[Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Build a JSON error response carrying the message and the current timestamp."""
    body = ErrorOut(error=message, timestamp=utc_now(), detail=detail)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
        headers=headers,
    )


# PUBLIC_INTERFACE
def install_error_handlers(app: FastAPI) -> None:
    """
    Register exception handlers so every failure is rendered as
    {"error": ..., "timestamp": ...}.

    - AppError subclasses use their own status code
    - HTTPException (unknown route, method not allowed) keeps its status and headers
    - RequestValidationError becomes a 422 with the pydantic error entries under "detail"
    - Anything else becomes a 500 with the exception text passed through
    """

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            logger.info("%s %s rejected (%d): %s", request.method, request.url.path, exc.status_code, exc.message)
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(
            422,
            "Request validation failed",
            detail=jsonable_encoder(exc.errors()),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))
