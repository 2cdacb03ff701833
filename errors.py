"""
API error types and the handlers that turn them into JSON responses.

Every failure leaves the API as `{"success": false, "message": ...}`, with
`errors` for field-level problems. Server-side detail is only echoed back when
the app runs in development mode.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError, PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class APIError(Exception):
    status_code = 500
    default_message = "Something went wrong"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        errors: Optional[Dict[str, Any]] = None,
        detail: Any = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message or self.default_message
        self.errors = errors
        self.detail = detail
        self.extra = extra or {}
        super().__init__(self.message)


class ValidationFailed(APIError):
    status_code = 400
    default_message = "Validation failed"


class Unauthorized(APIError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(APIError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(APIError):
    status_code = 404
    default_message = "Resource not found"

    @classmethod
    def resource(cls, name: str) -> "NotFound":
        return cls(f"{name} not found")


class Conflict(APIError):
    status_code = 409
    default_message = "Resource already exists"


class PayloadTooLarge(APIError):
    status_code = 413
    default_message = "File size too large"


class UnsupportedMedia(APIError):
    status_code = 415
    default_message = "Only image files are allowed (JPEG, PNG, GIF, WEBP)"


class StorageFailure(APIError):
    status_code = 500
    default_message = "File upload failed"


class PersistenceFailure(APIError):
    status_code = 500
    default_message = "Database operation failed"


def field_errors(exc: Any) -> Dict[str, str]:
    """Flatten pydantic / FastAPI validation errors into {field: reason}."""

    errors: Dict[str, str] = {}
    for item in exc.errors():
        loc: List[Any] = [part for part in item.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(str(part) for part in loc) or "body"
        errors.setdefault(field, item.get("msg", "Invalid value"))
    return errors


def _debug_enabled(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return bool(settings is not None and settings.is_development)


def _error_body(request: Request, exc: APIError) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "message": exc.message}
    if exc.errors:
        body["errors"] = exc.errors
    body.update(exc.extra)
    if exc.detail is not None and _debug_enabled(request):
        body["error"] = exc.detail
    return body


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s (%r)", request.method, request.url.path, exc.message, exc.detail)
        return JSONResponse(status_code=exc.status_code, content=_error_body(request, exc))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content=_error_body(request, ValidationFailed(errors=field_errors(exc))),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(DuplicateKeyError)
    async def duplicate_key_handler(request: Request, exc: DuplicateKeyError) -> JSONResponse:
        logger.info("Duplicate key on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=409,
            content=_error_body(request, Conflict(detail=str(exc))),
        )

    @app.exception_handler(PyMongoError)
    async def database_error_handler(request: Request, exc: PyMongoError) -> JSONResponse:
        logger.exception("Database error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=_error_body(request, PersistenceFailure(detail=str(exc))),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=_error_body(request, APIError(detail=str(exc))),
        )
