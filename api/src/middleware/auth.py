"""
Authorization policy middleware.

Every request must carry a valid bearer token with an NGO claim, except
requests to the exempt paths (login endpoints, health checks, metrics,
Swagger and static files).

Outcomes:
- exempt path: passed through, request.state.user stays None
- missing or invalid token: 401
- valid token without the NGO claim: 403
- otherwise request.state.user holds the CurrentUser
"""

import structlog
from typing import Callable, Iterable, List, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from api.src.models.auth import CurrentUser

logger = structlog.get_logger(__name__)


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Middleware to authenticate requests using JWT tokens.

    The token service is resolved from the application's service container
    on each request, so the middleware can be installed before startup.
    """

    def __init__(self, app, exempt_paths: Optional[Iterable[str]] = None):
        """
        Initialize auth middleware.

        Args:
            app: ASGI application
            exempt_paths: Path prefixes that don't require authentication
        """
        super().__init__(app)
        self.exempt_paths: List[str] = [p.rstrip("/") or "/" for p in (exempt_paths or [])]

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process request and authenticate user.

        Args:
            request: HTTP request
            call_next: Next middleware in chain

        Returns:
            HTTP response
        """
        request.state.user = None

        if request.method == "OPTIONS" or self._is_exempt_path(request.url.path):
            logger.debug("auth_exempt", path=request.url.path)
            return await call_next(request)

        token = self._extract_token(request)

        if not token:
            logger.warning(
                "auth_missing_token",
                path=request.url.path,
                method=request.method,
                client=request.client.host if request.client else None
            )
            return self._unauthorized("Missing authentication token")

        token_service = request.app.state.container.token_service
        claims = token_service.decode_token(token)

        if claims is None:
            logger.warning(
                "auth_invalid_token",
                path=request.url.path,
                method=request.method,
                client=request.client.host if request.client else None
            )
            return self._unauthorized("Invalid authentication token")

        current_user = CurrentUser.from_claims(claims)

        if not current_user.has_ngo:
            logger.warning("auth_missing_ngo_claim", path=request.url.path, subject=current_user.subject)
            return JSONResponse(
                status_code=status.HTTP_403_FORBIDDEN,
                content={"detail": "NGO claim required"}
            )

        request.state.user = current_user

        logger.debug(
            "request_authenticated",
            path=request.url.path,
            method=request.method,
            subject=current_user.subject,
            ngo_id=current_user.id_ngo
        )

        return await call_next(request)

    def _is_exempt_path(self, path: str) -> bool:
        """
        Check if path is exempt from authentication.

        Args:
            path: Request path

        Returns:
            True if exempt, False otherwise
        """
        for exempt_path in self.exempt_paths:
            if path == exempt_path or path.startswith(exempt_path + "/"):
                return True
        return False

    def _extract_token(self, request: Request) -> Optional[str]:
        """
        Extract JWT token from Authorization header.

        Args:
            request: HTTP request

        Returns:
            JWT token or None if not found
        """
        authorization = request.headers.get("Authorization")

        if not authorization:
            return None

        parts = authorization.split()

        if len(parts) != 2 or parts[0].lower() != "bearer":
            logger.warning("auth_malformed_header")
            return None

        return parts[1]

    @staticmethod
    def _unauthorized(detail: str) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"detail": detail},
            headers={"WWW-Authenticate": "Bearer"}
        )
