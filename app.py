"""
FastAPI Application Factory

Creates and configures the FastAPI application with:
- API versioning
- Middleware (CORS, error handling)
- Dependency injection setup
- Lifecycle management (startup/shutdown)

@.architecture
Incoming: main.py, config/settings.py, api/v1/router.py, api/middleware/*.py --- {Settings object, APIRouter instances, middleware constructors}
Processing: create_app(), startup_event(), shutdown_event(), _open_store() --- {6 jobs: application_creation, cleanup, dependency_injection, lifecycle_management, middleware_registration, routing_registration}
Outgoing: main.py, Clients (HTTP) --- {FastAPI application instance, HTTP responses}
"""

from pathlib import Path
from typing import Optional, Sequence

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.settings import Settings, get_settings
from api.v1.router import api_v1_router
from api.v1.endpoints.health import health_check as storage_health_check
from api.v1.schemas.health import HealthCheckResponse
from api.middleware import (
    create_error_handler_middleware,
    http_exception_handler,
    validation_exception_handler,
)
from api.dependencies import (
    set_auth_manager,
    set_file_storage,
)
from data.database.connection import DatabaseConnection
from data.database.errors import StorageError
from data.storage.user_files import UserFileStorage
from monitoring import (
    configure_from_preset,
    get_logger,
)
from security.auth import AuthConfig, AuthenticationManager

logger = get_logger(__name__)


def _open_store(settings: Settings, path: Path, buckets: Sequence[str]) -> DatabaseConnection:
    """Open one long-lived store with the configured pool limits."""
    db = DatabaseConnection(
        path,
        buckets=buckets,
        max_size=settings.storage.pool_size,
        timeout=settings.storage.timeout,
        busy_timeout=settings.storage.busy_timeout,
    )
    db.connect()
    return db


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        FastAPI: Configured application instance
    """
    # Load settings
    settings = get_settings()

    # Configure logging based on environment
    if settings.environment == "production":
        configure_from_preset(
            "production",
            level=settings.monitoring.log_level,
            format_type=settings.monitoring.log_format,
            log_file=settings.monitoring.log_file,
        )
    elif settings.environment == "test":
        configure_from_preset("testing")
    else:
        configure_from_preset(
            "development",
            level=settings.monitoring.log_level,
            log_file=settings.monitoring.log_file,
        )

    logger.info(f"Creating FileVault Backend application (environment: {settings.environment})")

    # Create FastAPI app
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="FileVault - per-user file storage API",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        redirect_slashes=False  # /v1/files and /v1/files/ are distinct routes
    )

    # ==========================================================================
    # Middleware Configuration
    # ==========================================================================

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.allowed_origins,
        allow_credentials=settings.security.cors_allow_credentials,
        allow_methods=settings.security.cors_allow_methods,
        allow_headers=settings.security.cors_allow_headers,
    )

    # Error handler middleware
    middleware_class, middleware_kwargs = create_error_handler_middleware(
        development=settings.environment == "development"
    )
    app.add_middleware(middleware_class, **middleware_kwargs)

    # Uniform error body for HTTP and validation errors
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # ==========================================================================
    # API Routers
    # ==========================================================================

    # Include v1 API router
    app.include_router(api_v1_router)

    # Stores opened at startup
    files_db: Optional[DatabaseConnection] = None
    auth_db: Optional[DatabaseConnection] = None

    # Root-level health endpoint for load balancers (same report as /v1/health)
    app.add_api_route(
        "/health",
        storage_health_check,
        methods=["GET"],
        response_model=HealthCheckResponse,
        tags=["health"],
        summary="Storage health check",
    )

    # ==========================================================================
    # Lifecycle Events
    # ==========================================================================

    @app.on_event("startup")
    async def startup_event():
        """
        Application startup.

        Initializes:
        - File store (user_files, file_blobs buckets) and UserFileStorage
        - Account store (users, tokens buckets) and AuthenticationManager
        """
        nonlocal files_db, auth_db

        logger.info("=== Application Startup ===")

        try:
            logger.info(f"Opening file store at {settings.storage.files_db_path}...")
            files_db = _open_store(settings, settings.storage.files_db_path, UserFileStorage.BUCKETS)
            set_file_storage(UserFileStorage(files_db))
            logger.info("✅ File storage initialized")
        except StorageError as e:
            logger.error(f"Failed to open file store: {e}", exc_info=True)
            # Continue without storage - file endpoints will return 503

        try:
            logger.info(f"Opening account store at {settings.storage.auth_db_path}...")
            auth_db = _open_store(settings, settings.storage.auth_db_path, AuthenticationManager.BUCKETS)
            set_auth_manager(AuthenticationManager(
                auth_db,
                AuthConfig(
                    username_min_length=settings.security.username_min_length,
                    username_max_length=settings.security.username_max_length,
                    password_min_length=settings.security.password_min_length,
                    bcrypt_rounds=settings.security.bcrypt_rounds,
                ),
            ))
            logger.info("✅ Authentication initialized")
        except StorageError as e:
            logger.error(f"Failed to open account store: {e}", exc_info=True)
            # Continue without auth - register/login/files will return 503

        logger.info("=== Startup Complete ===")

    @app.on_event("shutdown")
    async def shutdown_event():
        """
        Application shutdown.

        Cleanup:
        - Detach storage and auth from the dependencies
        - Close both stores
        """
        logger.info("=== Application Shutdown ===")

        set_file_storage(None)
        set_auth_manager(None)

        for name, db in (("file", files_db), ("account", auth_db)):
            if db is not None:
                db.disconnect()
                logger.info(f"✅ {name.capitalize()} store closed")

        logger.info("=== Shutdown Complete ===")

    return app
