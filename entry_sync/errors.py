"""
Error taxonomy for the entry sync service and the FastAPI handlers that
turn it into `{"error": "..."}` responses.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class EntrySyncError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class AuthenticationMissing(EntrySyncError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Missing token"


class AuthenticationInvalid(EntrySyncError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid token"


class ValidationError(EntrySyncError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid request"


class StoreUnavailable(EntrySyncError):
    """The persistence layer could not complete the operation."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    message = "Service unavailable"


class ConfigurationError(RuntimeError):
    """Raised at startup when required process configuration is missing."""


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(EntrySyncError)
    async def entry_sync_error_handler(request: Request, exc: EntrySyncError):
        if isinstance(exc, StoreUnavailable):
            logger.error(
                "Store unavailable on %s %s: %s",
                request.method,
                request.url.path,
                exc.__cause__.__class__.__name__ if exc.__cause__ else exc.message,
            )
        else:
            logger.info(
                "%s on %s %s", exc.__class__.__name__, request.method, request.url.path
            )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ):
        logger.info("Unparseable request body on %s", request.url.path)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request body"},
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        # Never forward internal detail to the caller.
        logger.error(
            "Unhandled exception on %s %s",
            request.method,
            request.url.path,
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )
