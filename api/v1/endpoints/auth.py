"""
Authentication Endpoints

Account registration and password login.

@.architecture
Incoming: api/v1/router.py, Clients (HTTP POST) --- {JSON {username, password} bodies to /v1/register, /v1/login}
Processing: register(), login(), _read_credentials() --- {4 jobs: payload_limiting, payload_validation, registration, token_issuing}
Outgoing: security/auth.py, Clients (HTTP) --- {create_user/login calls in the threadpool, 204 / LoginResponse / error responses}
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from api.dependencies import (
    auth_events,
    get_auth_manager,
    get_settings,
    read_limited_body,
    setup_request_context,
)
from api.v1.schemas.auth import LoginResponse, UserCredentials
from config.settings import Settings
from monitoring import get_logger
from security.auth import AuthenticationError, AuthenticationManager, RegistrationError

logger = get_logger(__name__)
router = APIRouter(tags=["auth"])


async def _read_credentials(request: Request, settings: Settings) -> UserCredentials:
    body = await read_limited_body(request, settings.security.max_json_payload)
    try:
        return UserCredentials.model_validate_json(body)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="invalid request body"
        ) from e


# =============================================================================
# Registration
# =============================================================================

@router.post(
    "/register",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Register user",
    description="Create an account from a username and password"
)
async def register(
    request: Request,
    settings: Settings = Depends(get_settings),
    auth: AuthenticationManager = Depends(get_auth_manager),
    _context: dict = Depends(setup_request_context)
) -> Response:
    """
    Register a new user.

    Usernames are 3-20 letters and digits; passwords need at least 8
    characters. A taken username is rejected.
    """
    credentials = await _read_credentials(request, settings)

    try:
        await run_in_threadpool(auth.create_user, credentials.username, credentials.password)
    except RegistrationError as e:
        auth_events.inc(event='register', status='rejected')
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    auth_events.inc(event='register', status='success')
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Login
# =============================================================================

@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Log in",
    description="Exchange a username and password for an access token"
)
async def login(
    request: Request,
    settings: Settings = Depends(get_settings),
    auth: AuthenticationManager = Depends(get_auth_manager),
    _context: dict = Depends(setup_request_context)
) -> LoginResponse:
    """
    Log in.

    The returned token goes in the X-Session header of file requests.
    """
    credentials = await _read_credentials(request, settings)

    try:
        token = await run_in_threadpool(auth.login, credentials.username, credentials.password)
    except AuthenticationError as e:
        auth_events.inc(event='login', status='rejected')
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from e

    auth_events.inc(event='login', status='success')
    return LoginResponse(token=token)
