"""
Unit Tests: Error Handler

Tests for exception-to-status mapping and message sanitization.
"""

import pytest
from fastapi import HTTPException
from starlette.applications import Starlette

from api.middleware.error_handler import (
    INTERNAL_ERROR_MESSAGE,
    ErrorHandlerConfig,
    ErrorHandlerMiddleware,
    create_error_handler_middleware,
)
from data.database.errors import CorruptIndexError, NotFoundError, StorageError
from security.auth import AuthenticationError, InvalidTokenError, RegistrationError


@pytest.fixture
def sanitizing_handler():
    return ErrorHandlerMiddleware(Starlette(), ErrorHandlerConfig())


@pytest.fixture
def verbose_handler():
    return ErrorHandlerMiddleware(Starlette(), ErrorHandlerConfig(sanitize_errors=False))


class TestClassification:
    """Test exception classification."""

    @pytest.mark.unit
    @pytest.mark.parametrize("error,status_code", [
        (RegistrationError("username already taken"), 400),
        (AuthenticationError("authentication failed"), 403),
        (InvalidTokenError("invalid token"), 403),
        (NotFoundError("file not found"), 404),
    ])
    def test_client_errors_keep_message(self, sanitizing_handler, error, status_code):
        """Test that client errors are shown as raised."""
        assert sanitizing_handler._classify_error(error) == (status_code, str(error))

    @pytest.mark.unit
    @pytest.mark.parametrize("error", [
        CorruptIndexError("user-1"),
        StorageError("disk I/O error at /var/data/files.db"),
        RuntimeError("unexpected"),
    ])
    def test_server_errors_sanitized(self, sanitizing_handler, error):
        """Test that internal messages are hidden."""
        assert sanitizing_handler._classify_error(error) == (500, INTERNAL_ERROR_MESSAGE)

    @pytest.mark.unit
    def test_server_errors_verbose(self, verbose_handler):
        """Test that development mode shows the message."""
        status_code, message = verbose_handler._classify_error(StorageError("disk I/O error"))

        assert status_code == 500
        assert "disk I/O error" in message

    @pytest.mark.unit
    def test_http_exception(self, sanitizing_handler):
        """Test that HTTPException keeps its status and detail."""
        error = HTTPException(status_code=503, detail="File storage not available")

        assert sanitizing_handler._classify_error(error) == (503, "File storage not available")

    @pytest.mark.unit
    def test_traceback_only_in_development(self):
        """Test environment-specific configuration."""
        _, dev_kwargs = create_error_handler_middleware(development=True)
        _, prod_kwargs = create_error_handler_middleware(development=False)

        assert dev_kwargs["config"].include_traceback is True
        assert dev_kwargs["config"].sanitize_errors is False
        assert prod_kwargs["config"].include_traceback is False
        assert prod_kwargs["config"].sanitize_errors is True
