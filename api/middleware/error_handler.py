"""
Global Error Handler Middleware - API Layer

Turns every failure into the same JSON body:

    {"error": {"code": 404, "message": "file not found", "type": "HTTPException"}}

Storage failures are reported as 500 without their internal message
(store paths, SQL, user ids) unless running in development.

@.architecture
Incoming: app.py (middleware/handler registration), Exceptions escaping endpoints --- {Request, StorageError/CorruptIndexError/NotFoundError, auth errors, HTTPException, RequestValidationError}
Processing: dispatch(), _classify_error(), _build_error_response(), _log_error(), http_exception_handler(), validation_exception_handler() --- {5 jobs: exception_catching, error_classification, response_formatting, sanitization, logging}
Outgoing: monitoring/logging.py, Clients (HTTP) --- {structured error logs, JSONResponse with code/message/type}
"""

import traceback
from typing import Any, Callable, Dict, Optional, Tuple, Type
from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from data.database.errors import CorruptIndexError, NotFoundError, StorageError
from monitoring import get_logger, get_request_id
from security.auth import AuthenticationError, RegistrationError

logger = get_logger(__name__)

INTERNAL_ERROR_MESSAGE = "internal server error"

# First match wins; subclasses before their bases
ERROR_STATUS: Tuple[Tuple[Type[Exception], int, bool], ...] = (
    # (exception type, status code, message is safe to show)
    (RegistrationError, 400, True),
    (AuthenticationError, 403, True),
    (NotFoundError, 404, True),
    (CorruptIndexError, 500, False),
    (StorageError, 500, False),
)


class ErrorHandlerConfig:
    """Error handler behavior for one environment."""

    def __init__(
        self,
        include_traceback: bool = False,
        sanitize_errors: bool = True,
        log_errors: bool = True,
    ):
        """
        Args:
            include_traceback: Add the traceback to the response body (development only)
            sanitize_errors: Replace internal error messages with a generic one
            log_errors: Log every handled error
        """
        self.include_traceback = include_traceback
        self.sanitize_errors = sanitize_errors
        self.log_errors = log_errors


def _error_body(status_code: int, message: str, error_type: str) -> Dict[str, Any]:
    return {
        "error": {
            "code": status_code,
            "message": message,
            "type": error_type
        }
    }


def _request_id_headers() -> Optional[Dict[str, str]]:
    request_id = get_request_id()
    return {"X-Request-ID": request_id} if request_id else None


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Catch exceptions that escape the endpoints and render them.

    HTTPException and validation errors are rendered by the exception
    handlers below; this middleware sees what the endpoints did not map
    themselves, mostly storage failures running in the threadpool.
    """

    def __init__(self, app: ASGIApp, config: Optional[ErrorHandlerConfig] = None):
        super().__init__(app)
        self.config = config or ErrorHandlerConfig()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            return self._handle_error(request, e)

    def _handle_error(self, request: Request, error: Exception) -> JSONResponse:
        status_code, message = self._classify_error(error)

        if self.config.log_errors:
            self._log_error(request, error, status_code)

        return JSONResponse(
            status_code=status_code,
            content=self._build_error_response(status_code, message, error),
            headers=_request_id_headers(),
        )

    def _classify_error(self, error: Exception) -> Tuple[int, str]:
        """
        Map an exception to (status code, client-facing message).

        Unknown exceptions are 500s; their message is hidden when
        sanitizing, like storage errors.
        """
        if isinstance(error, StarletteHTTPException):
            return error.status_code, str(error.detail)

        for error_class, status_code, safe in ERROR_STATUS:
            if isinstance(error, error_class):
                break
        else:
            status_code, safe = 500, False

        if not safe and self.config.sanitize_errors:
            return status_code, INTERNAL_ERROR_MESSAGE
        return status_code, str(error)

    def _build_error_response(self, status_code: int, message: str, error: Exception) -> Dict[str, Any]:
        body = _error_body(status_code, message, type(error).__name__)
        if self.config.include_traceback:
            body["error"]["traceback"] = traceback.format_exception(
                type(error), error, error.__traceback__
            )
        return body

    def _log_error(self, request: Request, error: Exception, status_code: int) -> None:
        fields = {
            "method": request.method,
            "path": request.url.path,
            "status_code": status_code,
            "error_type": type(error).__name__,
        }
        if status_code >= 500:
            logger.error(f"Server error: {error}", exc_info=True, **fields)
        else:
            logger.warning(f"Client error: {error}", **fields)


# =============================================================================
# Exception Handlers
# =============================================================================

async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTPException (400, 403, 404, 405, 503) in the standard error format."""
    headers = dict(exc.headers or {})
    headers.update(_request_id_headers() or {})
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.status_code, str(exc.detail), type(exc).__name__),
        headers=headers or None,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request validation failures are client errors (400)."""
    errors = exc.errors()
    message = errors[0].get("msg", "invalid request") if errors else "invalid request"
    return JSONResponse(
        status_code=400,
        content=_error_body(400, message, type(exc).__name__),
        headers=_request_id_headers(),
    )


def create_error_handler_middleware(development: bool = False):
    """
    Middleware class and kwargs for app.add_middleware().

    Development shows internal messages and tracebacks; every other
    environment sanitizes them.
    """
    if development:
        config = ErrorHandlerConfig(include_traceback=True, sanitize_errors=False)
    else:
        config = ErrorHandlerConfig()

    return (ErrorHandlerMiddleware, {"config": config})
