"""
Health Check Schemas

Pydantic models for health check endpoints.

@.architecture
Incoming: api/v1/endpoints/health.py, data/database/connection.py (health_check) --- {store health dicts, component status}
Processing: Pydantic validation and serialization --- {2 jobs: data_validation, serialization}
Outgoing: api/v1/endpoints/health.py --- {HealthCheckResponse, ComponentHealth, SimpleHealthResponse validated models}
"""

from typing import Dict, List, Optional, Any
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field

from .common import HealthStatus


# =============================================================================
# Component Health Models
# =============================================================================

class ComponentHealth(BaseModel):
    """Health status of a single component."""
    component: str
    status: HealthStatus
    message: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


# =============================================================================
# Health Check Response Models
# =============================================================================

class HealthCheckResponse(BaseModel):
    """Storage health check response."""
    status: HealthStatus
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    uptime_seconds: float
    check_duration_ms: float
    components: List[ComponentHealth]

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "healthy",
                "timestamp": "2026-01-04T12:00:00Z",
                "uptime_seconds": 3600,
                "check_duration_ms": 3.5,
                "components": [
                    {
                        "component": "files_store",
                        "status": "healthy",
                        "details": {"counts": {"file_blobs": 12, "user_files": 3}}
                    },
                    {
                        "component": "auth_store",
                        "status": "healthy",
                        "details": {"counts": {"tokens": 5, "users": 3}}
                    }
                ]
            }
        }
    )


class SimpleHealthResponse(BaseModel):
    """Simple health check response."""
    status: str = "ok"
    timestamp: float
    uptime_seconds: float
