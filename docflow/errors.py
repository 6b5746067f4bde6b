import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError

logger = logging.getLogger(__name__)

_MAX_MESSAGE_LENGTH = 200


class DocflowError(Exception):
    """Base of the error taxonomy returned by the repository layer.

    ``code`` is the machine-checkable kind, ``message`` the human-readable
    text. ``status_code`` is only used by the HTTP adapter.
    """

    code = "error"
    status_code = 500

    def __init__(self, message: str, details=None):
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(DocflowError):
    code = "not_found"
    status_code = 404


class DuplicateError(DocflowError):
    code = "duplicate"
    status_code = 409


class ConstraintError(DocflowError):
    code = "constraint"
    status_code = 409


class StorageConnectionError(DocflowError):
    code = "connection_error"
    status_code = 503


class QueryError(DocflowError):
    code = "query_error"
    status_code = 500


class WorkflowError(DocflowError):
    code = "workflow_violation"
    status_code = 409


class ValidationError(DocflowError):
    code = "validation_error"
    status_code = 400


def _sanitize(message: str) -> str:
    # Driver messages carry the statement and parameters after the first line.
    first_line = message.strip().splitlines()[0] if message.strip() else ""
    if len(first_line) > _MAX_MESSAGE_LENGTH:
        return first_line[: _MAX_MESSAGE_LENGTH - 3] + "..."
    return first_line


def _driver_message(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


def translate_db_error(exc: SQLAlchemyError, context: str | None = None) -> DocflowError:
    """Map a SQLAlchemy/driver exception onto the error taxonomy."""
    raw = _driver_message(exc)
    lowered = raw.lower()
    sqlstate = getattr(getattr(exc, "orig", None), "sqlstate", None)
    prefix = f"{context}: " if context else ""

    if isinstance(exc, IntegrityError):
        if sqlstate == "23505" or "unique" in lowered or "duplicate" in lowered:
            return DuplicateError(f"{prefix}duplicate entry", {"reason": _sanitize(raw)})
        if sqlstate == "23503" or "foreign key" in lowered:
            return ConstraintError(
                f"{prefix}referenced record does not exist",
                {"reason": _sanitize(raw)},
            )
        return ConstraintError(f"{prefix}constraint violated", {"reason": _sanitize(raw)})

    if isinstance(exc, OperationalError) and (
        "unable to open" in lowered
        or "could not connect" in lowered
        or "connection refused" in lowered
        or "readonly database" in lowered
    ):
        return StorageConnectionError(
            f"{prefix}database unavailable", {"reason": _sanitize(raw)}
        )

    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return StorageConnectionError(
            f"{prefix}database connection lost", {"reason": _sanitize(raw)}
        )

    logger.error("Database query failed: %s", _sanitize(raw))
    return QueryError(f"{prefix}database query failed", {"reason": _sanitize(raw)})


def _error_payload(code: str, message: str, details):
    return {"code": code, "message": message, "details": details}


def register_error_handlers(app) -> None:
    @app.exception_handler(DocflowError)
    async def docflow_exception_handler(request: Request, exc: DocflowError):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_payload(exc.code, exc.message, exc.details),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        detail = exc.detail
        code = f"http_{exc.status_code}"
        message = "Request failed"
        details = None
        if isinstance(detail, dict):
            code = detail.get("code", code)
            message = detail.get("message", message)
            details = detail.get("details")
        elif isinstance(detail, str):
            message = detail
        else:
            details = detail
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_payload(code, message, details),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        # ctx may hold raw Exception objects which are not JSON-serialisable.
        errors = [
            {k: str(v) if k == "ctx" else v for k, v in err.items()}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content=_error_payload("validation_error", "Validation error", errors),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=_error_payload("internal_error", "Internal server error", None),
        )
