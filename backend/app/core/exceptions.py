"""Domain exceptions and their HTTP rendering.

Services raise these instead of ``HTTPException`` when a caller other than
a router (background loop, multi-region import) needs to tell the failure
kinds apart.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class DomainError(Exception):
    """Base class for errors with a stable error code and HTTP status."""

    status_code: int = 400
    error: str = "domain_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(DomainError):
    status_code = 404
    error = "not_found"


class InvalidRequestError(DomainError):
    """Rejected synchronously; never reaches the import state machine."""

    status_code = 422
    error = "validation_error"


class ImportInProgressError(DomainError):
    """A pending import already exists for the identity. Callers should wait."""

    status_code = 409
    error = "import_in_progress"


class HolidayProviderError(DomainError):
    """The external holiday provider failed. Message is kept verbatim."""

    status_code = 502
    error = "provider_error"


def register_exception_handlers(app: FastAPI) -> None:
    """Render domain and storage errors as JSON responses."""

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.error, "detail": exc.message},
        )

    @app.exception_handler(SQLAlchemyError)
    async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.exception("Storage error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=503,
            content={"error": "storage_error", "detail": "Storage operation failed"},
        )
