"""
Common Schemas

Shared Pydantic models used across API endpoints.

@.architecture
Incoming: api/v1/endpoints/*.py --- {error data, component status}
Processing: Pydantic validation and serialization --- {2 jobs: data_validation, serialization}
Outgoing: api/v1/endpoints/*.py --- {ErrorResponse, HealthStatus validated models}
"""

from enum import Enum
from pydantic import BaseModel


# =============================================================================
# Response Models
# =============================================================================

class ErrorDetail(BaseModel):
    """Body of an error response."""
    code: int
    message: str
    type: str


class ErrorResponse(BaseModel):
    """Error response model (shape produced by the error handlers)."""
    error: ErrorDetail


# =============================================================================
# Status Models
# =============================================================================

class HealthStatus(str, Enum):
    """Health status levels."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"
