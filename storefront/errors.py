"""
Error taxonomy and the top-level HTTP error translator.

Every non-2xx response leaves the API as::

    {"error": <kind>, "message": <string>, "details": [...]}   # details optional
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront.database.store import RecordNotFound, StoreError, UniqueConstraintViolation

logger = logging.getLogger("storefront.errors")

INTERNAL_ERROR_MESSAGE = "Internal server error"

_KIND_BY_STATUS = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    409: "Conflict",
    413: "Payload Too Large",
    415: "Unsupported Media Type",
    429: "Too Many Requests",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


class AppHTTPException(HTTPException):
    """HTTP exception carrying the error kind and optional field details."""

    def __init__(
        self,
        status_code: int,
        error: str,
        message: str,
        details: Optional[List[Dict[str, Any]]] = None,
        headers: Optional[Dict[str, str]] = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.error = error
        self.message = message
        self.details = details
        self.extra = extra or {}

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error, "message": self.message}
        if self.details:
            body["details"] = self.details
        body.update(self.extra)
        return body


def validation_error(message: str, details: Optional[List[Dict[str, Any]]] = None) -> AppHTTPException:
    return AppHTTPException(status.HTTP_400_BAD_REQUEST, "Validation Error", message, details)


def bad_request(message: str) -> AppHTTPException:
    return AppHTTPException(status.HTTP_400_BAD_REQUEST, "Bad Request", message)


def unauthorized(message: str = "Authentication required") -> AppHTTPException:
    return AppHTTPException(
        status.HTTP_401_UNAUTHORIZED,
        "Unauthorized",
        message,
        headers={"WWW-Authenticate": "Bearer"},
    )


def forbidden(message: str = "Insufficient permissions") -> AppHTTPException:
    return AppHTTPException(status.HTTP_403_FORBIDDEN, "Forbidden", message)


def not_found(message: str = "Resource not found") -> AppHTTPException:
    return AppHTTPException(status.HTTP_404_NOT_FOUND, "Not Found", message)


def conflict(message: str = "Resource already exists") -> AppHTTPException:
    return AppHTTPException(status.HTTP_409_CONFLICT, "Conflict", message)


def too_many_requests(message: str, retry_after: int) -> AppHTTPException:
    return AppHTTPException(
        status.HTTP_429_TOO_MANY_REQUESTS,
        "Too Many Requests",
        message,
        headers={"Retry-After": str(retry_after)},
        extra={"retryAfter": retry_after},
    )


def internal_error(message: str = INTERNAL_ERROR_MESSAGE) -> AppHTTPException:
    return AppHTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error", message)


def format_validation_errors(errors) -> List[Dict[str, str]]:
    """Flatten pydantic/FastAPI error entries into ``{field, message}`` items."""
    details = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        details.append({
            "field": ".".join(loc),
            "message": err.get("msg", "Invalid value"),
        })
    return details


def error_response(exc: AppHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers)


async def app_exception_handler(request: Request, exc: AppHTTPException) -> JSONResponse:
    return error_response(exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(validation_error("Invalid request data", format_validation_errors(exc.errors())))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        message = f"Route {request.method} {request.url.path} not found"
    elif exc.status_code >= 500:
        message = INTERNAL_ERROR_MESSAGE
    else:
        message = str(exc.detail)
    kind = _KIND_BY_STATUS.get(exc.status_code, "Error")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": kind, "message": message},
        headers=getattr(exc, "headers", None),
    )


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    if isinstance(exc, UniqueConstraintViolation):
        return error_response(conflict())
    if isinstance(exc, RecordNotFound):
        return error_response(not_found())
    logger.error("Unhandled store error on %s %s: %s", request.method, request.url.path, exc)
    return error_response(internal_error())


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(internal_error())


def register_exception_handlers(app: FastAPI) -> None:
    """Install the translators that turn every failure into the error envelope."""
    app.add_exception_handler(AppHTTPException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
