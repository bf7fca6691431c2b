"""
API V1 Schemas

Pydantic models for request/response validation.
"""

from .common import (
    ErrorDetail,
    ErrorResponse,
    HealthStatus,
)

from .health import (
    HealthCheckResponse,
    ComponentHealth,
    SimpleHealthResponse,
)

from .auth import (
    UserCredentials,
    LoginResponse,
)

from .files import (
    StoredFileResponse,
)

__all__ = [
    # Common
    "ErrorDetail",
    "ErrorResponse",
    "HealthStatus",
    # Health
    "HealthCheckResponse",
    "ComponentHealth",
    "SimpleHealthResponse",
    # Auth
    "UserCredentials",
    "LoginResponse",
    # Files
    "StoredFileResponse",
]
