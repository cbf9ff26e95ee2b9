"""
API error taxonomy and the handlers that render it.

Every failure leaves the API as:
    {"success": false, "message": "...", "errors": [...]}
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ValidationError(HTTPException):
    def __init__(self, detail: Any = None, errors: Optional[List[Dict[str, Any]]] = None,
                 headers: Optional[Dict[str, str]] = None):
        super().__init__(status.HTTP_400_BAD_REQUEST, detail or "Validation failed", headers)
        self.errors = errors or []


class AuthenticationError(HTTPException):
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(
            status.HTTP_401_UNAUTHORIZED,
            detail or "Not authenticated",
            headers or {"WWW-Authenticate": "Bearer"},
        )


class MissingCredential(AuthenticationError):
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(detail or "Access denied. No token provided.", headers)


class InvalidCredential(AuthenticationError):
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(detail or "Invalid or expired token", headers)


class UnknownIdentity(AuthenticationError):
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(detail or "Token is valid but user no longer exists", headers)


class AuthorizationError(HTTPException):
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(status.HTTP_403_FORBIDDEN, detail or "Access denied", headers)


class ForbiddenSelfAction(AuthorizationError):
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(detail or "This action cannot be performed on your own account", headers)


class NotFoundError(HTTPException):
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(status.HTTP_404_NOT_FOUND, detail or "Not found", headers)


class ConflictError(HTTPException):
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(status.HTTP_400_BAD_REQUEST, detail or "Conflict", headers)


class ResourceInUseError(HTTPException):
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(status.HTTP_400_BAD_REQUEST, detail or "Resource is in use", headers)


class DependencyError(HTTPException):
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, detail or "Internal server error", headers)


def _envelope(message: str, errors: Optional[list] = None) -> dict:
    body = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body


def _field_errors(exc: RequestValidationError) -> List[Dict[str, Any]]:
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({
            "field": ".".join(loc) or None,
            "message": err.get("msg"),
        })
    return errors


def register_exception_handlers(app: FastAPI, development: bool) -> None:
    """Install the handlers that turn exceptions into the error envelope."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        errors = getattr(exc, "errors", None)
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder(_envelope(str(exc.detail), errors)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=jsonable_encoder(_envelope("Validation failed", _field_errors(exc))),
        )

    @app.exception_handler(PyMongoError)
    async def storage_exception_handler(request: Request, exc: PyMongoError):
        logger.error(f"Storage failure on {request.method} {request.url.path}: {exc}")
        message = f"Database error: {exc}" if development else "Internal server error"
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_envelope(message),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        message = str(exc) if development else "Internal server error"
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_envelope(message or "Internal server error"),
        )
