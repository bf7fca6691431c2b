"""
API Middleware Layer

Provides middleware components for request/response processing including:
- Error handling (storage, auth and HTTP errors in one format)
- CORS (via FastAPI)
"""

from .error_handler import (
    ErrorHandlerMiddleware,
    ErrorHandlerConfig,
    create_error_handler_middleware,
    http_exception_handler,
    validation_exception_handler,
)

__all__ = [
    # Error handling
    'ErrorHandlerMiddleware',
    'ErrorHandlerConfig',
    'create_error_handler_middleware',
    'http_exception_handler',
    'validation_exception_handler',
]
