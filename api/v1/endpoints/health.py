"""
Health Check Endpoints

Store health checks and metrics export.

@.architecture
Incoming: api/v1/router.py, Clients (HTTP GET), Load Balancers, Prometheus --- {HTTP requests to /v1/health, /v1/health/live, /v1/metrics}
Processing: health_check(), liveness_probe(), metrics(), _store_health() --- {3 jobs: component_checking, health_monitoring, metrics_export}
Outgoing: data/database/connection.py (health_check), monitoring/metrics.py, Clients (HTTP) --- {HealthCheckResponse, SimpleHealthResponse, Prometheus text}
"""

import time
from typing import Callable, Optional
from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool

from api.dependencies import (
    get_auth_manager,
    get_file_storage,
    get_settings,
    setup_request_context
)
from api.v1.schemas.common import HealthStatus
from api.v1.schemas.health import (
    ComponentHealth,
    HealthCheckResponse,
    SimpleHealthResponse
)
from config.settings import Settings
from data.database.connection import DatabaseConnection
from monitoring import get_logger, get_registry

logger = get_logger(__name__)
router = APIRouter(tags=["health"])

# Track startup time
START_TIME = time.time()


def _resolve_store(getter: Callable) -> Optional[DatabaseConnection]:
    """Store behind a dependency getter, or None while starting up."""
    try:
        return getter().db
    except HTTPException:
        return None


async def _store_health(component: str, db: Optional[DatabaseConnection]) -> ComponentHealth:
    if db is None:
        return ComponentHealth(
            component=component,
            status=HealthStatus.UNKNOWN,
            message="Store not initialized"
        )

    result = await run_in_threadpool(db.health_check)
    return ComponentHealth(
        component=component,
        status=HealthStatus.HEALTHY if result["healthy"] else HealthStatus.UNHEALTHY,
        message=result.get("error"),
        details={key: result[key] for key in ("counts", "pool") if key in result}
    )


# =============================================================================
# Health Checks
# =============================================================================

@router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Storage health check",
    description="Status of the file and account stores"
)
async def health_check(
    response: Response,
    _context: dict = Depends(setup_request_context)
) -> HealthCheckResponse:
    """
    Storage health check.

    Reports each store separately; any unhealthy store makes the overall
    status unhealthy and the response a 503.
    """
    start_time = time.time()

    components = [
        await _store_health("files_store", _resolve_store(get_file_storage)),
        await _store_health("auth_store", _resolve_store(get_auth_manager)),
    ]

    statuses = {component.status for component in components}
    if HealthStatus.UNHEALTHY in statuses:
        overall = HealthStatus.UNHEALTHY
    elif HealthStatus.UNKNOWN in statuses:
        overall = HealthStatus.UNKNOWN
    else:
        overall = HealthStatus.HEALTHY

    if overall != HealthStatus.HEALTHY:
        logger.warning(f"Health check reported {overall.value}")
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthCheckResponse(
        status=overall,
        uptime_seconds=time.time() - START_TIME,
        check_duration_ms=(time.time() - start_time) * 1000,
        components=components
    )


@router.get(
    "/health/live",
    response_model=SimpleHealthResponse,
    summary="Liveness probe",
    description="Process is up and serving requests"
)
async def liveness_probe() -> SimpleHealthResponse:
    """Liveness probe; never touches the stores."""
    return SimpleHealthResponse(
        status="ok",
        timestamp=time.time(),
        uptime_seconds=time.time() - START_TIME
    )


# =============================================================================
# Metrics
# =============================================================================

@router.get(
    "/metrics",
    response_class=PlainTextResponse,
    summary="Prometheus metrics",
    description="In-process counters and histograms in Prometheus text format"
)
async def metrics(settings: Settings = Depends(get_settings)) -> PlainTextResponse:
    """Export metrics."""
    if not settings.monitoring.metrics_enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="metrics disabled")

    return PlainTextResponse(
        get_registry().export_prometheus(),
        media_type="text/plain; version=0.0.4"
    )
