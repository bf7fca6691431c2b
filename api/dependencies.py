"""
API Dependencies

FastAPI dependency injection functions for:
- Settings management
- File storage access
- Authentication manager access
- Request context setup
- Token authentication
- Bounded request body reads

@.architecture
Incoming: app.py (startup_event), api/v1/endpoints/*.py --- {set_file_storage/set_auth_manager calls, Depends() injections from endpoints}
Processing: get_settings(), get_file_storage(), get_auth_manager(), setup_request_context(), get_current_user_id(), read_limited_body() --- {5 jobs: context_setup, dependency_injection, authentication, resource_management, validation}
Outgoing: api/v1/endpoints/*.py, app.py --- {Settings instance, UserFileStorage instance, AuthenticationManager instance, str user_id, bytes request body}
"""

from typing import Optional
from fastapi import Depends, HTTPException, Header, Request
from functools import lru_cache
from starlette.concurrency import run_in_threadpool
import uuid

from config.settings import Settings, get_settings as load_settings
from data.storage.user_files import UserFileStorage
from monitoring import get_logger, set_request_context, counter
from security.auth import AuthenticationManager, InvalidTokenError

logger = get_logger(__name__)

auth_events = counter(
    "filevault_auth_events_total",
    "Authentication events",
    ["event", "status"],
)


# =============================================================================
# Settings Dependencies
# =============================================================================

@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Loads settings from config files and environment variables.
    Cached to avoid repeated file I/O.

    Returns:
        Settings: Application configuration
    """
    return load_settings()


# =============================================================================
# Storage Dependencies
# =============================================================================

_file_storage: Optional[UserFileStorage] = None


def set_file_storage(storage: Optional[UserFileStorage]) -> None:
    """Set the global file storage instance."""
    global _file_storage
    _file_storage = storage


def get_file_storage() -> UserFileStorage:
    """
    Get the file storage instance.

    Returns:
        UserFileStorage: Transactional per-user file operations

    Raises:
        HTTPException: If storage is not initialized
    """
    if _file_storage is None:
        logger.error("File storage not initialized")
        raise HTTPException(
            status_code=503,
            detail="File storage not available. Server is starting up."
        )
    return _file_storage


# =============================================================================
# Authentication Dependencies
# =============================================================================

_auth_manager: Optional[AuthenticationManager] = None


def set_auth_manager(manager: Optional[AuthenticationManager]) -> None:
    """Set the global authentication manager instance."""
    global _auth_manager
    _auth_manager = manager


def get_auth_manager() -> AuthenticationManager:
    """
    Get the authentication manager instance.

    Returns:
        AuthenticationManager: Account and token manager

    Raises:
        HTTPException: If the manager is not initialized
    """
    if _auth_manager is None:
        logger.error("Authentication manager not initialized")
        raise HTTPException(
            status_code=503,
            detail="Authentication not available. Server is starting up."
        )
    return _auth_manager


def _extract_token(x_session: Optional[str], authorization: Optional[str]) -> Optional[str]:
    if x_session:
        return x_session.strip()
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
    return None


async def get_current_user_id(
    request: Request,
    x_session: Optional[str] = Header(None),
    authorization: Optional[str] = Header(None),
    auth: AuthenticationManager = Depends(get_auth_manager),
) -> str:
    """
    Resolve the caller's access token to a user id.

    Accepts the token in X-Session or as an Authorization Bearer credential.

    Returns:
        str: Authenticated user id

    Raises:
        HTTPException: 403 if the token is missing or invalid
    """
    token = _extract_token(x_session, authorization)

    try:
        user_id = await run_in_threadpool(auth.validate_token, token)
    except InvalidTokenError as e:
        auth_events.inc(event="token", status="rejected")
        logger.warning(f"Rejected access token: {e}")
        raise HTTPException(status_code=403, detail="invalid session") from e

    auth_events.inc(event="token", status="accepted")
    set_request_context(user_id=user_id)
    request.state.user_id = user_id
    return user_id


# =============================================================================
# Request Context Dependencies
# =============================================================================

async def setup_request_context(
    request: Request,
    x_request_id: Optional[str] = Header(None),
) -> dict:
    """
    Setup request context for logging.

    Extracts request metadata and sets up context variables for
    structured logging.

    Args:
        request: FastAPI request object
        x_request_id: Optional request ID from header

    Returns:
        dict: Request context information
    """
    # Generate request ID if not provided
    request_id = x_request_id or str(uuid.uuid4())

    set_request_context(request_id=request_id)

    # Store in request state for access in handlers
    request.state.request_id = request_id

    return {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path
    }


# =============================================================================
# Request Body Dependencies
# =============================================================================

async def read_limited_body(request: Request, limit: int) -> bytes:
    """
    Read the request body, refusing anything over the limit.

    Stops reading as soon as the limit is exceeded, so an oversized upload
    is never fully buffered.

    Args:
        request: FastAPI request object
        limit: Maximum accepted body size in bytes

    Returns:
        bytes: The complete body

    Raises:
        HTTPException: 400 if the body exceeds the limit
    """
    chunks = []
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > limit:
            raise HTTPException(status_code=400, detail="request body too large")
        chunks.append(chunk)
    return b"".join(chunks)
