"""
Access endpoints: observer and NGO admin login.

Login failures answer 400 with a single localized "error" message so the
clients can show it as is; malformed requests answer 400 with field errors
(see the validation handler in main.py).
"""

import structlog
from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from api.src.dependencies import get_auth_service, require_ngo_user
from api.src.models.auth import (
    AuthenticateNgoAdminRequest,
    AuthenticateUserRequest,
    CurrentUser,
    LoginErrorResponse,
    TokenResponse,
)
from api.src.services.auth_service import AuthService, LOGIN_ERROR_MESSAGE
from shared.metrics import api_metrics

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/access", tags=["Access"])


def _login_failed() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": LOGIN_ERROR_MESSAGE}
    )


@router.post(
    "/authorize",
    response_model=TokenResponse,
    responses={status.HTTP_400_BAD_REQUEST: {"model": LoginErrorResponse}}
)
async def authorize(
    request: AuthenticateUserRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    Observer login.

    Exchanges the observer's phone number and PIN for an access token whose
    subject is the phone number.
    """
    token = await auth_service.login_observer(request)

    if token is None:
        api_metrics.logins_total.labels(kind="observer", outcome="failure").inc()
        return _login_failed()

    api_metrics.logins_total.labels(kind="observer", outcome="success").inc()
    return token


@router.post(
    "/admin",
    response_model=TokenResponse,
    responses={status.HTTP_400_BAD_REQUEST: {"model": LoginErrorResponse}}
)
async def authorize_ngo_admin(
    request: AuthenticateNgoAdminRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """NGO admin login."""
    token = await auth_service.login_ngo_admin(request)

    if token is None:
        api_metrics.logins_total.labels(kind="ngo_admin", outcome="failure").inc()
        return _login_failed()

    api_metrics.logins_total.labels(kind="ngo_admin", outcome="success").inc()
    return token


@router.get("/test")
async def test_token(current_user: CurrentUser = Depends(require_ngo_user)) -> Dict[str, Any]:
    """Echo the caller's identity and claims; used to check a token."""
    return {
        "user": current_user.subject,
        "claims": current_user.claims,
    }
