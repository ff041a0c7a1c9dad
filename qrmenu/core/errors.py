"""
Domain exceptions and their HTTP translation
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError
import re
import structlog

logger = structlog.get_logger(__name__)

# Messages the supported drivers produce for a missing table or column
_MISSING_SCHEMA_PATTERNS = [
    re.compile(r"relation .* does not exist", re.IGNORECASE),
    re.compile(r"column .* does not exist", re.IGNORECASE),
    re.compile(r"no such table", re.IGNORECASE),
    re.compile(r"no such column", re.IGNORECASE),
]


class QRMenuError(Exception):
    """Base class for errors surfaced to API clients"""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class SchemaNotReadyError(QRMenuError):
    """Database schema is missing a table or column; run migrations"""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "schema_not_ready"


class OrderingDisabledError(QRMenuError):
    """Restaurant does not accept orders right now"""

    status_code = status.HTTP_409_CONFLICT
    code = "ordering_disabled"


class InvalidCartError(QRMenuError):
    """Cart references items, variants or options that cannot be ordered"""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_cart"


class InvalidStatusTransitionError(QRMenuError):
    """Requested order status is not the next step"""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_status_transition"


class OrderVersionConflictError(QRMenuError):
    """Order changed since the client last read it"""

    status_code = status.HTTP_409_CONFLICT
    code = "version_conflict"


class MenuConflictError(QRMenuError):
    """Menu document references ids owned by another restaurant"""

    status_code = status.HTTP_409_CONFLICT
    code = "menu_conflict"


def is_missing_schema_error(error: BaseException) -> bool:
    """Check whether a database error means a table or column is absent"""
    message = str(getattr(error, "orig", None) or error)
    return any(pattern.search(message) for pattern in _MISSING_SCHEMA_PATTERNS)


def raise_if_schema_missing(error: BaseException) -> None:
    """Re-raise a missing table/column database error as SchemaNotReadyError"""
    if isinstance(error, DBAPIError) and is_missing_schema_error(error):
        raise SchemaNotReadyError("Database schema is not ready. Run the migrations and retry.") from error


async def qrmenu_error_handler(request: Request, exc: QRMenuError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
    )


async def database_error_handler(request: Request, exc: DBAPIError) -> JSONResponse:
    """Fail fast on schema drift instead of trying to repair it per request"""
    if is_missing_schema_error(exc):
        logger.error("Database schema is not ready", path=request.url.path, error=str(exc.orig))
        error = SchemaNotReadyError("Database schema is not ready. Run the migrations and retry.")
        return await qrmenu_error_handler(request, error)

    logger.error("Unhandled database error", path=request.url.path, error=str(exc), exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Database error", "code": "database_error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(QRMenuError, qrmenu_error_handler)
    app.add_exception_handler(DBAPIError, database_error_handler)
